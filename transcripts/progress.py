"""Salesloft Transcript Sync — persisted progress.

Tracks which conversation ids have been processed and which page the next
run starts from, as a JSON file:

    {"lastUpdated": "...", "processedIds": [...], "nextPageCursor": 7}

Older installs wrote processed *call* ids to a separate file shaped
``{"processedIds": [...], "nextPage": 3}``. That file is read-only here and
folded into the current state on load by ``migrate_legacy_state``.
"""
import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from transcripts.models import ProgressState

logger = logging.getLogger("transcript_sync.progress")

# Debug dumps older versions left next to the state file
_DEBUG_FILES = ("debug_conversation.json", "debug_response.json")


def _read_json(path: Path) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a JSON object")
    return data


def _cursor(value) -> Optional[int]:
    try:
        cursor = int(value)
    except (TypeError, ValueError):
        return None
    return cursor if cursor >= 1 else None


def migrate_legacy_state(legacy_path: Path) -> Optional[ProgressState]:
    """Upgrade a legacy ``{processedIds, nextPage}`` file to a ProgressState.

    Returns None when there is no legacy file. Parse errors propagate so
    the caller can apply its own degradation policy.
    """
    legacy_path = Path(legacy_path)
    if not legacy_path.exists():
        return None

    data = _read_json(legacy_path)
    state = ProgressState(
        processed_ids={str(i) for i in data.get("processedIds") or []},
        next_page_cursor=_cursor(data.get("nextPage")) or 1,
    )
    logger.info(f"Loaded {len(state.processed_ids)} legacy call ids from {legacy_path}")
    return state


class ProgressStore:
    """Loads and saves ProgressState. Never raises to the sync driver."""

    def __init__(self, path: Path, legacy_path: Optional[Path] = None):
        self.path = Path(path)
        self.legacy_path = Path(legacy_path) if legacy_path else None

    def load(self) -> ProgressState:
        """
        Legacy ids first, then the current file's ids on top (union).
        The current file's cursor wins when it has one.
        Any read/parse error yields the empty state {∅, 1}.
        """
        try:
            state = None
            if self.legacy_path is not None:
                state = migrate_legacy_state(self.legacy_path)
            if state is None:
                state = ProgressState()

            if self.path.exists():
                data = _read_json(self.path)
                state.processed_ids.update(str(i) for i in data.get("processedIds") or [])
                cursor = _cursor(data.get("nextPageCursor")) or _cursor(data.get("nextPage"))
                if cursor is not None:
                    state.next_page_cursor = cursor
                state.last_updated = data.get("lastUpdated")

            return state
        except Exception as e:
            logger.warning(f"Could not load processed ids ({e}) — starting from empty state")
            return ProgressState()

    def _stored_cursor(self) -> Optional[int]:
        if not self.path.exists():
            return None
        try:
            data = _read_json(self.path)
        except Exception as e:
            logger.warning(f"Could not read stored cursor from {self.path}: {e}")
            return None
        return _cursor(data.get("nextPageCursor")) or _cursor(data.get("nextPage"))

    def save(self, state: ProgressState, cursor: Optional[int] = None) -> bool:
        """
        Write the state as a whole-file replacement.
        Without a cursor override the previously stored cursor is kept.
        Returns False (after logging) when the write fails.
        """
        if cursor is None:
            cursor = self._stored_cursor() or 1

        now = datetime.now(timezone.utc).isoformat()
        payload = {
            "lastUpdated": now,
            "processedIds": sorted(state.processed_ids),
            "nextPageCursor": cursor,
        }

        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_name, self.path)
            tmp_name = None
        except Exception as e:
            logger.warning(f"Could not save processed ids to {self.path}: {e}")
            return False
        finally:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)

        state.last_updated = now
        logger.debug(f"Saved {len(state.processed_ids)} processed ids, cursor={cursor}")
        return True

    def reset(self, backup_dir: Path) -> Optional[Path]:
        """
        Back up and delete the current progress file (the 'clean' job).
        The legacy file is left alone. Returns the backup path, or None
        when there was nothing to reset.
        """
        for name in _DEBUG_FILES:
            debug_file = self.path.parent / name
            if debug_file.exists():
                debug_file.unlink()
                logger.info(f"Removed debug file {debug_file}")

        if not self.path.exists():
            logger.info(f"No progress file at {self.path} — nothing to reset")
            return None

        backup_dir = Path(backup_dir)
        backup_dir.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%f")
        backup_path = backup_dir / f"{self.path.stem}_backup_{stamp}.json"
        backup_path.write_bytes(self.path.read_bytes())
        self.path.unlink()
        logger.info(f"Progress reset — backup saved to {backup_path}")
        return backup_path

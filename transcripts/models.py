"""Salesloft Transcript Sync — data models.

Everything the sync core passes around: the conversation record as parsed at
the adapter boundary, persisted progress, resolver outcomes, stored artifacts
and the per-run report.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple, Union


class Classification(str, Enum):
    """Which fallback step supplied an artifact's body."""
    AI_TRANSCRIPT = "AI_TRANSCRIPT"
    MANUAL_NOTE = "MANUAL_NOTE"
    RAW_TEXT = "RAW_TEXT"        # inline text from a legacy payload shape
    NONE = "NONE"


def _ref_id(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


@dataclass(frozen=True)
class TranscriptionRef:
    """Reference to an AI transcription: `{id}` or `{id, inline_text}`.

    A conversation without a reference is represented by ``None`` rather
    than an empty ref.
    """
    id: str
    inline_text: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> Optional["TranscriptionRef"]:
        """Parse whichever transcription shape the payload carries."""
        raw = payload.get("transcription")
        if isinstance(raw, dict):
            ref_id = _ref_id(raw.get("id"))
            if ref_id is None:
                return None
            text = raw.get("text") or raw.get("transcript")
            return cls(id=ref_id, inline_text=text if isinstance(text, str) and text.strip() else None)
        if isinstance(raw, (str, int)) and not isinstance(raw, bool):
            # Older payloads carried the bare id
            return cls(id=str(raw)) if str(raw).strip() else None
        ref_id = _ref_id(payload.get("transcription_id"))
        return cls(id=ref_id) if ref_id else None


def _linked_id(payload: Dict[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    if isinstance(value, dict):
        return _ref_id(value.get("id"))
    return _ref_id(value)


def _duration(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass
class ConversationRecord:
    """One Salesloft conversation (phone call or meeting)."""
    id: str
    transcription: Optional[TranscriptionRef] = None
    call_id: Optional[str] = None
    call_uuid: Optional[str] = None
    media_type: str = "unknown"
    platform: str = "unknown"
    duration: Optional[float] = None
    created_at: Optional[str] = None
    person_id: Optional[str] = None
    account_id: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "ConversationRecord":
        return cls(
            id=str(payload["id"]),
            transcription=TranscriptionRef.from_payload(payload),
            call_id=_ref_id(payload.get("call_id")),
            call_uuid=_ref_id(payload.get("call_uuid")),
            media_type=payload.get("media_type") or "unknown",
            platform=payload.get("platform") or "unknown",
            duration=_duration(payload.get("duration")),
            created_at=payload.get("created_at"),
            person_id=_linked_id(payload, "person"),
            account_id=_linked_id(payload, "account"),
            raw=payload,
        )

    @property
    def has_crm_links(self) -> bool:
        return bool(self.person_id or self.account_id)


@dataclass
class ConversationPage:
    """A window of conversations plus the page the next window starts at."""
    records: List[ConversationRecord]
    next_page: int


@dataclass
class ProgressState:
    processed_ids: Set[str] = field(default_factory=set)
    next_page_cursor: int = 1
    last_updated: Optional[str] = None


# -------------------------------------------------------
# Resolver outcomes
# -------------------------------------------------------

@dataclass
class Found:
    text: str
    classification: Classification
    sentence_count: Optional[int] = None


@dataclass
class NotFound:
    reason: str = ""


@dataclass
class TransientError:
    cause: BaseException


Outcome = Union[Found, NotFound, TransientError]


@dataclass
class ResolvedTranscript:
    text: str
    classification: Classification
    sentence_count: Optional[int] = None   # only for AI_TRANSCRIPT
    step: str = ""


@dataclass
class CrmLinkage:
    conversation_id: str
    person_id: Optional[str] = None
    person_crm_id: Optional[str] = None
    account_id: Optional[str] = None
    account_crm_id: Optional[str] = None


@dataclass
class TranscriptArtifact:
    file_name: str
    local_path: str
    classification: Classification
    sentence_count: Optional[int] = None
    drive_file: Optional[dict] = None
    mapping_written: bool = False


@dataclass
class RunReport:
    """Pure-data summary of one sync run, rendered by transcripts.report."""
    mode: str
    target_ai_transcripts: Optional[int]
    max_records_to_scan: int
    start_cursor: int = 1
    next_cursor: int = 1
    fetched: int = 0
    skipped_already_processed: int = 0
    skipped_no_transcription: int = 0
    skipped_too_short: int = 0
    duplicates_in_batch: int = 0
    eligible: int = 0
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    ai_transcripts: int = 0
    manual_notes: int = 0
    raw_text: int = 0
    no_transcript: int = 0
    drive_uploads: int = 0
    drive_failures: int = 0
    mapping_rows: int = 0
    checkpoints: int = 0
    target_reached: bool = False
    total_processed: int = 0
    artifacts: List[TranscriptArtifact] = field(default_factory=list)
    failures: List[Tuple[str, str]] = field(default_factory=list)

    def count(self, classification: Classification):
        if classification == Classification.AI_TRANSCRIPT:
            self.ai_transcripts += 1
        elif classification == Classification.MANUAL_NOTE:
            self.manual_notes += 1
        elif classification == Classification.RAW_TEXT:
            self.raw_text += 1
        else:
            self.no_transcript += 1

    @property
    def new_records_processed(self) -> int:
        return self.succeeded + self.failed

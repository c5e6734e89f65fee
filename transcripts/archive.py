"""Salesloft Transcript Sync — archive sink.

Local text file first (required), Google Drive mirror second (best effort),
and one row per linked conversation in the CRM mapping CSV.
"""
import csv
import logging
import re
import time
from pathlib import Path
from typing import Optional

from transcripts.models import (
    Classification,
    ConversationRecord,
    CrmLinkage,
    ResolvedTranscript,
    TranscriptArtifact,
)

logger = logging.getLogger("transcript_sync.archive")

MAPPING_COLUMNS = [
    "ConversationID",
    "Filename",
    "PersonID",
    "PersonCrmID",
    "AccountID",
    "AccountCrmID",
    "MediaType",
    "Platform",
    "Date",
    "Duration",
]

TRANSCRIPT_MARKER = "=== TRANSCRIPT ==="


def _blank(value) -> str:
    return "" if value is None else str(value)


def _format_duration(duration: Optional[float]) -> str:
    if duration is None:
        return "N/A"
    return str(int(duration)) if float(duration).is_integer() else str(duration)


def build_file_name(record: ConversationRecord, now_ms: Optional[int] = None) -> str:
    """transcript_<media type>_<conversation id>_<epoch ms>.txt"""
    media = re.sub(r"[^a-z0-9]", "_", (record.media_type or "unknown").lower())
    safe_id = re.sub(r"[^A-Za-z0-9_-]", "_", record.id)
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"transcript_{media}_{safe_id}_{stamp}.txt"


def render_artifact(record: ConversationRecord, resolved: ResolvedTranscript,
                    crm: Optional[CrmLinkage] = None) -> str:
    """Metadata header in fixed order, then the transcript body."""
    raw = record.raw
    lines = [
        "=== CONVERSATION TRANSCRIPT ===",
        f"Conversation ID: {record.id}",
        f"Date: {_blank(record.created_at)}",
        f"Duration: {_format_duration(record.duration)} seconds",
        f"Media Type: {record.media_type}",
        f"Platform: {record.platform}",
    ]
    if record.transcription:
        lines.append(f"Transcription ID: {record.transcription.id}")

    if crm:
        if crm.person_crm_id:
            lines.append(f"Salesforce Contact/Lead ID: {crm.person_crm_id}")
        if crm.account_crm_id:
            lines.append(f"Salesforce Account ID: {crm.account_crm_id}")
        if crm.person_id:
            lines.append(f"SalesLoft Person ID: {crm.person_id}")
        if crm.account_id:
            lines.append(f"SalesLoft Account ID: {crm.account_id}")

    if raw.get("from"):
        lines.append(f"From: {raw['from']}")
    if raw.get("to"):
        lines.append(f"To: {raw['to']}")
    if raw.get("disposition"):
        lines.append(f"Disposition: {raw['disposition']}")
    if raw.get("connected") is not None:
        lines.append(f"Connected: {'Yes' if raw['connected'] else 'No'}")

    header = "\n".join(lines)

    if resolved.classification == Classification.AI_TRANSCRIPT:
        body = f"[AI-GENERATED TRANSCRIPT - {resolved.sentence_count} sentences]\n\n{resolved.text}"
    elif resolved.classification == Classification.MANUAL_NOTE:
        body = f"[MANUAL NOTE - Not AI Transcript]:\n\n{resolved.text}"
    elif resolved.classification == Classification.NONE:
        body = f"No transcript text found. Raw data:\n\n{resolved.text}"
    else:
        body = resolved.text

    return f"{header}\n\n{TRANSCRIPT_MARKER}\n\n{body}"


class ArchiveSink:
    """Writes artifacts locally, mirrors them to Drive, logs CRM linkage."""

    def __init__(self, download_folder: Path, mapping_csv: Path,
                 drive=None, drive_folder_id: Optional[str] = None,
                 clock=time.time):
        self.download_folder = Path(download_folder)
        self.mapping_csv = Path(mapping_csv)
        self.drive = drive
        self.drive_folder_id = drive_folder_id
        self._clock = clock

    @property
    def drive_enabled(self) -> bool:
        return bool(self.drive_folder_id and self.drive is not None and self.drive.authorized)

    def write(self, file_name: str, content: str) -> Path:
        """Write the artifact to the download folder. Raises on failure."""
        self.download_folder.mkdir(parents=True, exist_ok=True)
        path = self.download_folder / file_name
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        return path

    def upload_best_effort(self, file_name: str, content: str) -> Optional[dict]:
        """Mirror to Drive when configured. Never raises."""
        if not self.drive_enabled:
            return None
        try:
            return self.drive.upload_text(file_name, content, self.drive_folder_id)
        except Exception as e:
            logger.warning(f"Drive upload failed for {file_name} (saved locally): {e}")
            return None

    def append_mapping(self, row: dict) -> bool:
        """Append one row; header written when the file is created."""
        try:
            self.mapping_csv.parent.mkdir(parents=True, exist_ok=True)
            is_new = not self.mapping_csv.exists()
            with open(self.mapping_csv, "a", encoding="utf-8", newline="") as f:
                writer = csv.DictWriter(f, fieldnames=MAPPING_COLUMNS)
                if is_new:
                    writer.writeheader()
                    logger.info(f"Created mapping file: {self.mapping_csv}")
                writer.writerow({k: _blank(row.get(k)) for k in MAPPING_COLUMNS})
            return True
        except Exception as e:
            logger.error(f"Failed to save mapping record for {row.get('ConversationID')}: {e}")
            return False

    def store(self, record: ConversationRecord, resolved: ResolvedTranscript,
              crm: Optional[CrmLinkage] = None) -> TranscriptArtifact:
        """Local write, Drive mirror, mapping row — in that order."""
        file_name = build_file_name(record, int(self._clock() * 1000))
        content = render_artifact(record, resolved, crm)

        path = self.write(file_name, content)
        logger.info(f"Saved locally: {file_name} ({resolved.classification.value})")

        drive_file = self.upload_best_effort(file_name, content)

        mapping_written = False
        if crm:
            mapping_written = self.append_mapping({
                "ConversationID": record.id,
                "Filename": file_name,
                "PersonID": crm.person_id,
                "PersonCrmID": crm.person_crm_id,
                "AccountID": crm.account_id,
                "AccountCrmID": crm.account_crm_id,
                "MediaType": record.media_type,
                "Platform": record.platform,
                "Date": record.created_at,
                "Duration": None if record.duration is None else _format_duration(record.duration),
            })

        return TranscriptArtifact(
            file_name=file_name,
            local_path=str(path),
            classification=resolved.classification,
            sentence_count=resolved.sentence_count,
            drive_file=drive_file,
            mapping_written=mapping_written,
        )

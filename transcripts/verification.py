"""Salesloft Transcript Sync — archive verification.

Reads every transcript file in the download folder and flags identical
bodies saved under different conversations (the symptom of a resolver
returning the wrong transcription) and AI transcripts whose sentence
marker is missing or zero.
"""
import hashlib
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from transcripts.archive import TRANSCRIPT_MARKER

logger = logging.getLogger("transcript_sync.verify")

_FILE_ID_RE = re.compile(r"^transcript_[a-z0-9_]*?_([A-Za-z0-9-]+)_\d+\.txt$")
_CONVERSATION_ID_RE = re.compile(r"^Conversation ID: (.+)$", re.MULTILINE)
_TRANSCRIPTION_ID_RE = re.compile(r"^Transcription ID: (.+)$", re.MULTILINE)
_AI_MARKER_RE = re.compile(r"\[AI-GENERATED TRANSCRIPT - (\w+) sentences\]")


@dataclass
class DuplicateGroup:
    files: List[str] = field(default_factory=list)
    conversation_ids: List[str] = field(default_factory=list)
    preview: str = ""


@dataclass
class VerificationResult:
    total_files: int = 0
    conversation_ids: set = field(default_factory=set)
    transcription_ids: set = field(default_factory=set)
    unique_bodies: int = 0
    duplicate_groups: List[DuplicateGroup] = field(default_factory=list)
    suspect_ai_files: List[str] = field(default_factory=list)
    shortest_body: Optional[int] = None
    longest_body: Optional[int] = None

    @property
    def ok(self) -> bool:
        return not self.duplicate_groups


def _conversation_id(file_name: str, content: str) -> str:
    match = _CONVERSATION_ID_RE.search(content)
    if match:
        return match.group(1).strip()
    match = _FILE_ID_RE.match(file_name)
    return match.group(1) if match else "unknown"


def transcript_body(content: str) -> Optional[str]:
    """Text after the transcript marker, or None for files without one."""
    idx = content.find(TRANSCRIPT_MARKER)
    if idx == -1:
        return None
    return content[idx + len(TRANSCRIPT_MARKER):].strip()


def verify_archive(folder: Path) -> VerificationResult:
    folder = Path(folder)
    result = VerificationResult()
    groups: Dict[str, DuplicateGroup] = {}
    lengths = []

    for path in sorted(folder.glob("*.txt")):
        content = path.read_text(encoding="utf-8", errors="replace")
        result.total_files += 1

        conversation_id = _conversation_id(path.name, content)
        result.conversation_ids.add(conversation_id)
        match = _TRANSCRIPTION_ID_RE.search(content)
        if match:
            result.transcription_ids.add(match.group(1).strip())

        body = transcript_body(content)
        if body is None:
            logger.debug(f"{path.name}: no transcript marker, skipped")
            continue

        ai = _AI_MARKER_RE.search(body)
        if ai and (not ai.group(1).isdigit() or int(ai.group(1)) == 0):
            result.suspect_ai_files.append(path.name)

        digest = hashlib.md5(body.encode("utf-8")).hexdigest()
        group = groups.setdefault(digest, DuplicateGroup(preview=body[:100]))
        group.files.append(path.name)
        group.conversation_ids.append(conversation_id)
        lengths.append(len(body))

    result.unique_bodies = len(groups)
    result.duplicate_groups = [g for g in groups.values() if len(g.files) > 1]
    if lengths:
        result.shortest_body = min(lengths)
        result.longest_body = max(lengths)

    logger.info(
        f"Verified {result.total_files} files: {result.unique_bodies} unique bodies, "
        f"{len(result.duplicate_groups)} duplicate groups"
    )
    return result


# -------------------------------------------------------
# CRM header check (Drive copies)
# -------------------------------------------------------

CRM_CONTACT_LABEL = "Salesforce Contact/Lead ID"
CRM_ACCOUNT_LABEL = "Salesforce Account ID"

LINKED = "linked"
UNLINKED = "unlinked"
PARTIAL = "partial"


@dataclass
class HeaderCheck:
    status: str
    contact_line: Optional[str] = None
    account_line: Optional[str] = None
    head: List[str] = field(default_factory=list)


def check_crm_header(content: str, head_lines: int = 15) -> HeaderCheck:
    """
    Look for both Salesforce id lines in the artifact header.
    PARTIAL (one without the other) points at a broken CRM lookup;
    UNLINKED is a conversation with no person or account.
    """
    head = content.split("\n")[:head_lines]
    contact = next((line.strip() for line in head if CRM_CONTACT_LABEL in line), None)
    account = next((line.strip() for line in head if CRM_ACCOUNT_LABEL in line), None)

    if contact and account:
        status = LINKED
    elif not contact and not account:
        status = UNLINKED
    else:
        status = PARTIAL
    return HeaderCheck(status=status, contact_line=contact, account_line=account, head=head)

"""Salesloft Transcript Sync — transcript resolution.

Salesloft's payload shape changed several times, so finding the text for a
conversation means probing a chain of places, cheapest and most specific
first:

    1. sentences for the known transcription id        → AI_TRANSCRIPT
    2. transcription id recovered via conversation lookup → AI_TRANSCRIPT
    3. inline text on embedded recordings               → RAW_TEXT
    4. legacy top-level transcript fields               → RAW_TEXT
    5. the conversation's note (inline or fetched)      → MANUAL_NOTE
    6. nothing: raw payload kept for debugging          → NONE

Each step returns Found / NotFound / TransientError. A step that raises is a
miss, never a failure of the record.
"""
import json
import logging
from typing import Callable, List, Optional, Tuple

from salesloft_client import join_sentences
from transcripts.models import (
    Classification,
    ConversationRecord,
    Found,
    NotFound,
    Outcome,
    ResolvedTranscript,
    TransientError,
)

logger = logging.getLogger("transcript_sync.resolver")

_TOP_LEVEL_FIELDS = ("transcript", "transcription", "conversation_transcript")
_NOTE_FIELDS = ("content", "text", "body")


def _text(value) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _recovered_transcription_id(conversation: dict) -> Optional[str]:
    if conversation.get("transcription_id"):
        return str(conversation["transcription_id"])
    ref = conversation.get("transcription")
    if isinstance(ref, dict) and ref.get("id"):
        return str(ref["id"])
    if isinstance(ref, (str, int)) and not isinstance(ref, bool) and str(ref).strip():
        return str(ref)
    return None


def _note_text(note: dict) -> Optional[str]:
    for key in _NOTE_FIELDS:
        text = _text(note.get(key))
        if text:
            return text
    return None


class TranscriptResolver:
    """Runs the fallback chain for one conversation at a time."""

    def __init__(self, client):
        self.client = client

    def resolve(self, record: ConversationRecord,
                transcription_id: Optional[str] = None) -> ResolvedTranscript:
        """Return the best transcript text available for a conversation."""
        direct_id = transcription_id or (record.transcription.id if record.transcription else None)

        steps: List[Tuple[str, Callable[[], Outcome]]] = [
            ("transcription_id", lambda: self.from_transcription_id(direct_id)),
            ("conversation_lookup", lambda: self.from_conversation_lookup(record, skip_id=direct_id)),
            ("recordings", lambda: self.from_recordings(record)),
            ("top_level_fields", lambda: self.from_top_level_fields(record)),
            ("note", lambda: self.from_note(record)),
        ]

        for name, step in steps:
            outcome = self._attempt(record, name, step)
            if isinstance(outcome, Found):
                logger.info(
                    f"Conversation {record.id}: {outcome.classification.value} via {name}"
                    + (f" ({outcome.sentence_count} sentences)" if outcome.sentence_count else "")
                )
                return ResolvedTranscript(
                    text=outcome.text,
                    classification=outcome.classification,
                    sentence_count=outcome.sentence_count,
                    step=name,
                )

        logger.info(f"Conversation {record.id}: no transcript text found")
        return ResolvedTranscript(
            text=json.dumps(record.raw, indent=2, default=str),
            classification=Classification.NONE,
            step="exhausted",
        )

    def _attempt(self, record: ConversationRecord, name: str,
                 step: Callable[[], Outcome]) -> Outcome:
        try:
            outcome = step()
        except Exception as e:
            outcome = TransientError(e)

        if isinstance(outcome, TransientError):
            logger.warning(f"Conversation {record.id}: {name} step failed: {outcome.cause}")
        elif isinstance(outcome, NotFound) and outcome.reason:
            logger.debug(f"Conversation {record.id}: {name} missed ({outcome.reason})")
        return outcome

    # -------------------------------------------------------
    # Steps (each usable on its own)
    # -------------------------------------------------------

    def _sentences(self, transcription_id: str) -> Outcome:
        sentences = self.client.fetch_transcription_sentences(transcription_id)
        if not sentences:
            return NotFound(f"transcription {transcription_id} has no sentences")
        # Blank fragments are dropped by the join and not counted
        joined = [s for s in sentences if (s.get("text") or "").strip()]
        if not joined:
            return NotFound(f"transcription {transcription_id} sentences are blank")
        return Found(join_sentences(joined), Classification.AI_TRANSCRIPT, sentence_count=len(joined))

    def from_transcription_id(self, transcription_id: Optional[str]) -> Outcome:
        if not transcription_id:
            return NotFound("no transcription id")
        return self._sentences(transcription_id)

    def from_conversation_lookup(self, record: ConversationRecord,
                                 skip_id: Optional[str] = None) -> Outcome:
        """Recover a transcription id by id-based, then UUID-based, lookup."""
        lookup_id = record.call_id or record.id
        if not lookup_id and not record.call_uuid:
            return NotFound("no call id or uuid")

        conversation = None
        if lookup_id:
            try:
                conversation = self.client.find_conversation_for_call(lookup_id)
            except Exception as e:
                logger.debug(f"Conversation {record.id}: id lookup failed ({e}), trying uuid")

        if conversation is None and record.call_uuid:
            conversation = self.client.fetch_conversation_for_call_uuid(record.call_uuid)

        if not conversation:
            return NotFound("no matching conversation")

        recovered = _recovered_transcription_id(conversation)
        if not recovered:
            return NotFound("conversation has no transcription")
        if recovered == skip_id:
            return NotFound(f"transcription {recovered} already tried")
        return self._sentences(recovered)

    def from_recordings(self, record: ConversationRecord) -> Outcome:
        recordings = record.raw.get("recordings")
        if not isinstance(recordings, list):
            return NotFound()
        for recording in recordings:
            if not isinstance(recording, dict):
                continue
            text = _text(recording.get("transcript")) or _text(recording.get("transcription"))
            if text:
                return Found(text, Classification.RAW_TEXT)
        return NotFound("recordings carry no inline transcript")

    def from_top_level_fields(self, record: ConversationRecord) -> Outcome:
        for key in _TOP_LEVEL_FIELDS:
            text = _text(record.raw.get(key))
            if text:
                return Found(text, Classification.RAW_TEXT)
        if record.transcription and record.transcription.inline_text:
            return Found(record.transcription.inline_text, Classification.RAW_TEXT)
        return NotFound()

    def from_note(self, record: ConversationRecord) -> Outcome:
        note = record.raw.get("note")
        if isinstance(note, str):
            return Found(note, Classification.MANUAL_NOTE) if note.strip() else NotFound("empty note")
        if not isinstance(note, dict):
            return NotFound()

        if note.get("id"):
            logger.debug(f"Conversation {record.id}: fetching note {note['id']}")
            note_data = self.client.fetch_note_content(str(note["id"]))
            source = note_data.get("data", note_data) if isinstance(note_data, dict) else {}
            text = _note_text(source) if isinstance(source, dict) else None
            if text is None:
                text = "Note data (no content field):\n" + json.dumps(note_data, indent=2, default=str)
            return Found(text, Classification.MANUAL_NOTE)

        text = _note_text(note)
        if text is None:
            text = json.dumps(note, indent=2, default=str)
        return Found(text, Classification.MANUAL_NOTE)

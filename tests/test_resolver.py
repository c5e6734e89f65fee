"""
Tests for the transcript resolver — fallback order and classification.
"""
import os
import sys
import unittest
from unittest.mock import MagicMock

# Ensure the project root is on the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from salesloft_client import SalesloftAPIError
from transcripts.models import Classification, ConversationRecord, Found, NotFound
from transcripts.resolver import TranscriptResolver


def _record(**payload):
    payload.setdefault("id", "C1")
    return ConversationRecord.from_api(payload)


def _client():
    client = MagicMock()
    client.fetch_transcription_sentences.return_value = []
    client.find_conversation_for_call.return_value = None
    client.fetch_conversation_for_call_uuid.return_value = None
    return client


class TestResolveChain(unittest.TestCase):

    def test_direct_transcription_id(self):
        client = _client()
        client.fetch_transcription_sentences.return_value = [
            {"order_number": 1, "text": "Hello"},
            {"order_number": 2, "text": "world"},
        ]
        # Lookup could recover a different transcription if it were reached
        client.find_conversation_for_call.return_value = {"transcription": {"id": "T2"}}
        resolved = TranscriptResolver(client).resolve(_record(transcription={"id": "T1"}))

        self.assertEqual(resolved.text, "Hello world")
        self.assertEqual(resolved.classification, Classification.AI_TRANSCRIPT)
        self.assertEqual(resolved.sentence_count, 2)
        self.assertEqual(resolved.step, "transcription_id")
        client.fetch_transcription_sentences.assert_called_once_with("T1")
        client.find_conversation_for_call.assert_not_called()

    def test_sentence_count_excludes_blank_fragments(self):
        client = _client()
        client.fetch_transcription_sentences.return_value = [
            {"order_number": 1, "text": "hello"},
            {"order_number": 2, "text": ""},
            {"order_number": 3, "text": None},
            {"order_number": 4, "text": "world"},
        ]
        resolved = TranscriptResolver(client).resolve(_record(transcription={"id": "T1"}))

        self.assertEqual(resolved.text, "hello world")
        self.assertEqual(resolved.sentence_count, 2)

    def test_all_blank_fragments_fall_through(self):
        client = _client()
        client.fetch_transcription_sentences.return_value = [{"order_number": 1, "text": "  "}]
        resolved = TranscriptResolver(client).resolve(_record(transcription={"id": "T1"}, note="left a message"))

        self.assertEqual(resolved.classification, Classification.MANUAL_NOTE)

    def test_later_steps_not_attempted_after_success(self):
        client = _client()
        client.fetch_transcription_sentences.return_value = [{"order_number": 1, "text": "hi"}]
        record = _record(transcription={"id": "T1"}, note="a note", transcript="inline")

        resolved = TranscriptResolver(client).resolve(record)

        self.assertEqual(resolved.classification, Classification.AI_TRANSCRIPT)
        client.fetch_note_content.assert_not_called()

    def test_failing_first_step_falls_through_to_lookup(self):
        client = _client()
        client.fetch_transcription_sentences.side_effect = [
            SalesloftAPIError("GET", "/transcriptions/T1/sentences.json", 500),
            [{"order_number": 1, "text": "recovered"}],
        ]
        client.find_conversation_for_call.return_value = {"id": "C1", "transcription": {"id": "T2"}}

        resolved = TranscriptResolver(client).resolve(_record(transcription={"id": "T1"}, call_id="55"))

        self.assertEqual(resolved.text, "recovered")
        self.assertEqual(resolved.step, "conversation_lookup")
        client.find_conversation_for_call.assert_called_once_with("55")
        self.assertEqual(client.fetch_transcription_sentences.call_count, 2)

    def test_lookup_does_not_refetch_same_transcription(self):
        client = _client()
        client.find_conversation_for_call.return_value = {"id": "C1", "transcription": {"id": "T1"}}

        resolved = TranscriptResolver(client).resolve(_record(transcription={"id": "T1"}, note="fallback"))

        self.assertEqual(client.fetch_transcription_sentences.call_count, 1)
        self.assertEqual(resolved.classification, Classification.MANUAL_NOTE)

    def test_uuid_lookup_when_id_lookup_misses(self):
        client = _client()
        client.fetch_conversation_for_call_uuid.return_value = {"transcription_id": "T9"}
        client.fetch_transcription_sentences.side_effect = [[], [{"order_number": 1, "text": "via uuid"}]]

        resolved = TranscriptResolver(client).resolve(
            _record(transcription={"id": "T1"}, call_uuid="uuid-1")
        )

        self.assertEqual(resolved.text, "via uuid")
        client.fetch_conversation_for_call_uuid.assert_called_once_with("uuid-1")

    def test_note_fallback(self):
        client = _client()
        resolved = TranscriptResolver(client).resolve(
            _record(id="C3", transcription={"id": "T3"}, note="called back later")
        )

        self.assertEqual(resolved.text, "called back later")
        self.assertEqual(resolved.classification, Classification.MANUAL_NOTE)

    def test_recordings_inline_text(self):
        resolved = TranscriptResolver(_client()).resolve(
            _record(transcription={"id": "T1"}, recordings=[{"url": "x"}, {"transcript": "from recording"}])
        )
        self.assertEqual(resolved.text, "from recording")
        self.assertEqual(resolved.classification, Classification.RAW_TEXT)

    def test_top_level_legacy_field(self):
        resolved = TranscriptResolver(_client()).resolve(
            _record(transcription_id="T1", conversation_transcript="legacy text")
        )
        self.assertEqual(resolved.text, "legacy text")
        self.assertEqual(resolved.classification, Classification.RAW_TEXT)

    def test_nothing_found_keeps_raw_payload(self):
        resolved = TranscriptResolver(_client()).resolve(_record(id="C9", transcription={"id": "T1"}))
        self.assertEqual(resolved.classification, Classification.NONE)
        self.assertIn('"id": "C9"', resolved.text)
        self.assertEqual(resolved.step, "exhausted")


class TestNoteStep(unittest.TestCase):

    def test_note_by_id_is_fetched(self):
        client = _client()
        client.fetch_note_content.return_value = {"data": {"id": 5, "content": "fetched note"}}
        outcome = TranscriptResolver(client).from_note(_record(note={"id": 5}))

        self.assertIsInstance(outcome, Found)
        self.assertEqual(outcome.text, "fetched note")
        client.fetch_note_content.assert_called_once_with("5")

    def test_note_by_id_without_content_dumps_data(self):
        client = _client()
        client.fetch_note_content.return_value = {"data": {"id": 5}}
        outcome = TranscriptResolver(client).from_note(_record(note={"id": 5}))

        self.assertTrue(outcome.text.startswith("Note data (no content field):"))
        self.assertEqual(outcome.classification, Classification.MANUAL_NOTE)

    def test_inline_note_dict(self):
        outcome = TranscriptResolver(_client()).from_note(_record(note={"body": "inline body"}))
        self.assertEqual(outcome.text, "inline body")

    def test_no_note(self):
        self.assertIsInstance(TranscriptResolver(_client()).from_note(_record()), NotFound)

    def test_blank_note(self):
        self.assertIsInstance(TranscriptResolver(_client()).from_note(_record(note="  ")), NotFound)


if __name__ == "__main__":
    unittest.main()

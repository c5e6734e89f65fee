"""
Tests for the archive sink — artifact rendering, file naming, mapping CSV.
"""
import csv
import os
import sys
from unittest.mock import MagicMock

# Ensure the project root is on the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from transcripts.archive import (
    MAPPING_COLUMNS,
    TRANSCRIPT_MARKER,
    ArchiveSink,
    build_file_name,
    render_artifact,
)
from transcripts.models import Classification, ConversationRecord, CrmLinkage, ResolvedTranscript


def _record(**extra):
    payload = {
        "id": "conv-1",
        "media_type": "video",
        "platform": "zoom",
        "duration": 300,
        "created_at": "2025-11-14T10:00:00Z",
        "transcription": {"id": "T1"},
    }
    payload.update(extra)
    return ConversationRecord.from_api(payload)


def _ai(text="Hello world", count=2):
    return ResolvedTranscript(text=text, classification=Classification.AI_TRANSCRIPT, sentence_count=count)


def test_file_name():
    assert build_file_name(_record(), now_ms=1700000000000) == "transcript_video_conv-1_1700000000000.txt"


def test_file_name_sanitizes():
    record = _record(id="a/b c", media_type="Phone Call")
    assert build_file_name(record, now_ms=1) == "transcript_phone_call_a_b_c_1.txt"


def test_render_ai_transcript():
    crm = CrmLinkage(conversation_id="conv-1", person_id="7", person_crm_id="003ABC",
                     account_id="9", account_crm_id="001XYZ")
    content = render_artifact(_record(connected=True, disposition="Connected"), _ai(), crm)

    header, body = content.split(TRANSCRIPT_MARKER)
    assert header.startswith("=== CONVERSATION TRANSCRIPT ===\nConversation ID: conv-1\n")
    assert "Duration: 300 seconds" in header
    assert "Transcription ID: T1" in header
    assert "Salesforce Contact/Lead ID: 003ABC" in header
    assert "Salesforce Account ID: 001XYZ" in header
    assert "Connected: Yes" in header
    assert "Disposition: Connected" in header
    assert body.strip() == "[AI-GENERATED TRANSCRIPT - 2 sentences]\n\nHello world"


def test_render_manual_note_and_none():
    note = ResolvedTranscript(text="called back", classification=Classification.MANUAL_NOTE)
    assert "[MANUAL NOTE - Not AI Transcript]:\n\ncalled back" in render_artifact(_record(), note)

    none = ResolvedTranscript(text='{"id": "conv-1"}', classification=Classification.NONE)
    assert "No transcript text found. Raw data:" in render_artifact(_record(), none)


def test_render_unknown_duration():
    assert "Duration: N/A seconds" in render_artifact(_record(duration=None), _ai())


def test_store_writes_file_and_mapping(tmp_path):
    sink = ArchiveSink(tmp_path / "out", tmp_path / "mapping.csv", clock=lambda: 1.5)
    crm = CrmLinkage(conversation_id="conv-1", person_id="7", person_crm_id="003ABC")

    artifact = sink.store(_record(), _ai(), crm)

    assert artifact.file_name == "transcript_video_conv-1_1500.txt"
    assert (tmp_path / "out" / artifact.file_name).exists()
    assert artifact.mapping_written is True
    assert artifact.drive_file is None

    with open(tmp_path / "mapping.csv", newline="") as f:
        reader = csv.DictReader(f)
        assert reader.fieldnames == MAPPING_COLUMNS
        rows = list(reader)
    assert rows[0]["PersonCrmID"] == "003ABC"
    assert rows[0]["AccountCrmID"] == ""
    assert rows[0]["Duration"] == "300"


def test_mapping_header_written_once(tmp_path):
    sink = ArchiveSink(tmp_path / "out", tmp_path / "mapping.csv")
    sink.append_mapping({"ConversationID": "a"})
    sink.append_mapping({"ConversationID": "b"})

    lines = (tmp_path / "mapping.csv").read_text().splitlines()
    assert lines[0].startswith("ConversationID,Filename")
    assert len(lines) == 3


def test_mapping_quotes_commas(tmp_path):
    sink = ArchiveSink(tmp_path / "out", tmp_path / "mapping.csv")
    sink.append_mapping({"ConversationID": "a", "Platform": "zoom, inc"})
    with open(tmp_path / "mapping.csv", newline="") as f:
        assert list(csv.DictReader(f))[0]["Platform"] == "zoom, inc"


def test_no_mapping_row_without_crm(tmp_path):
    sink = ArchiveSink(tmp_path / "out", tmp_path / "mapping.csv")
    artifact = sink.store(_record(), _ai())
    assert artifact.mapping_written is False
    assert not (tmp_path / "mapping.csv").exists()


def test_drive_upload(tmp_path):
    drive = MagicMock()
    drive.authorized = True
    drive.upload_text.return_value = {"id": "f1", "webViewLink": "https://drive/f1"}
    sink = ArchiveSink(tmp_path / "out", tmp_path / "mapping.csv", drive=drive, drive_folder_id="folder")

    artifact = sink.store(_record(), _ai())

    assert artifact.drive_file["id"] == "f1"
    name, content, folder = drive.upload_text.call_args[0]
    assert name == artifact.file_name
    assert folder == "folder"
    assert TRANSCRIPT_MARKER in content


def test_drive_disabled_without_folder(tmp_path):
    drive = MagicMock()
    drive.authorized = True
    sink = ArchiveSink(tmp_path / "out", tmp_path / "mapping.csv", drive=drive)
    assert sink.drive_enabled is False
    sink.store(_record(), _ai())
    drive.upload_text.assert_not_called()

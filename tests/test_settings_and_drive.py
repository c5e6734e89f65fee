"""
Tests for run profiles and the Google Drive client helpers.
The Drive service itself is mocked; no Google credentials are needed.
"""
import os
import sys
import unittest
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

# Ensure the project root is on the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from config.settings import PROFILES, DriveConfig, SyncProfile, get_profile
from transcripts.drive_client import (
    DriveAuthError,
    DriveError,
    GoogleDriveClient,
    drive_url_map,
    files_created_before,
)


class TestProfiles(unittest.TestCase):

    def test_test_profile(self):
        profile = get_profile("test")
        self.assertEqual(profile.mode, "limited")
        self.assertEqual(profile.target_ai_transcripts, 10)
        self.assertEqual(profile.max_records_to_scan, 50)
        self.assertEqual(profile.min_duration, 30)

    def test_batch_profile(self):
        profile = get_profile("batch")
        self.assertEqual(profile.mode, "unlimited")
        self.assertIsNone(profile.target_ai_transcripts)
        self.assertEqual(profile.max_records_to_scan, 500)

    def test_unknown_profile_falls_back_to_test(self):
        self.assertIs(get_profile("nope"), PROFILES["test"])

    def test_overrides_ignore_none_and_copy(self):
        base = SyncProfile()
        profile = base.with_overrides(max_records_to_scan=200, api_delay_seconds=None)
        self.assertEqual(profile.max_records_to_scan, 200)
        self.assertEqual(profile.api_delay_seconds, base.api_delay_seconds)
        self.assertEqual(base.max_records_to_scan, 50)


class TestDriveHelpers(unittest.TestCase):

    def test_files_created_before(self):
        files = [
            {"id": "1", "name": "old.txt", "createdTime": "2025-11-01T09:00:00.000Z"},
            {"id": "2", "name": "new.txt", "createdTime": "2025-11-20T09:00:00.000Z"},
            {"id": "3", "name": "undated.txt"},
        ]
        cutoff = datetime(2025, 11, 15, tzinfo=timezone.utc)
        self.assertEqual([f["id"] for f in files_created_before(files, cutoff)], ["1"])

    def test_naive_cutoff_treated_as_utc(self):
        files = [{"id": "1", "name": "a", "createdTime": "2025-11-14T23:59:59Z"}]
        self.assertEqual(len(files_created_before(files, datetime(2025, 11, 15))), 1)

    def test_drive_url_map(self):
        files = [
            {"name": "a.txt", "webViewLink": "https://drive/a"},
            {"name": "b.txt"},
        ]
        self.assertEqual(drive_url_map(files), {"a.txt": "https://drive/a"})


class TestDriveClient(unittest.TestCase):

    def test_requires_authorization(self):
        client = GoogleDriveClient(DriveConfig(folder_id="f"))
        self.assertFalse(client.authorized)
        with self.assertRaises(DriveError):
            client.upload_text("a.txt", "hi", "f")

    def test_upload_text(self):
        service = MagicMock()
        service.files.return_value.create.return_value.execute.return_value = {
            "id": "file1", "name": "a.txt", "webViewLink": "https://drive/file1",
        }
        client = GoogleDriveClient(DriveConfig(folder_id="f"), service=service)

        result = client.upload_text("a.txt", "hello", "f")

        self.assertEqual(result["id"], "file1")
        kwargs = service.files.return_value.create.call_args.kwargs
        self.assertEqual(kwargs["body"]["parents"], ["f"])
        self.assertEqual(kwargs["body"]["name"], "a.txt")

    def test_download_text_decodes_bytes(self):
        service = MagicMock()
        service.files.return_value.get_media.return_value.execute.return_value = "héllo".encode("utf-8")
        client = GoogleDriveClient(DriveConfig(folder_id="f"), service=service)

        self.assertEqual(client.download_text("file1"), "héllo")
        service.files.return_value.get_media.assert_called_once_with(fileId="file1")

    def test_list_folder_follows_page_tokens(self):
        service = MagicMock()
        service.files.return_value.list.return_value.execute.side_effect = [
            {"files": [{"id": "1"}], "nextPageToken": "p2"},
            {"files": [{"id": "2"}]},
        ]
        client = GoogleDriveClient(DriveConfig(folder_id="f"), service=service)

        self.assertEqual([f["id"] for f in client.list_folder("f")], ["1", "2"])

    @patch("transcripts.drive_client._HEADLESS", True)
    def test_headless_without_credentials_fails(self):
        cfg = DriveConfig(
            folder_id="f",
            token_path="/nonexistent/token.json",
            credentials_path="/nonexistent/creds.json",
            service_account_key="",
            oauth_client_id="",
            oauth_client_secret="",
            oauth_refresh_token="",
        )
        with self.assertRaises(DriveAuthError):
            GoogleDriveClient(cfg).authorize()

    @patch("transcripts.drive_client.build")
    def test_env_refresh_token_used_first(self, mock_build):
        cfg = DriveConfig(
            folder_id="f",
            service_account_key="",
            oauth_client_id="id",
            oauth_client_secret="secret",
            oauth_refresh_token="refresh",
        )
        client = GoogleDriveClient(cfg)
        client.authorize()

        self.assertTrue(client.authorized)
        creds = mock_build.call_args.kwargs["credentials"]
        self.assertEqual(creds.refresh_token, "refresh")


if __name__ == "__main__":
    unittest.main()

"""
Salesloft Transcript Sync — Google Drive client
Uploads transcript files into a shared folder and supports the maintenance
jobs (listing, pruning, downloading for verification).

Auth order:
    1. GOOGLE_OAUTH_CLIENT_ID / _SECRET / _REFRESH_TOKEN — CI
    2. GOOGLE_SERVICE_ACCOUNT_KEY (JSON string) — CI with a service account
    3. token file from an earlier consent flow
    4. interactive consent flow (local only, never on a headless box)
"""
import io
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from google.auth.transport.requests import Request
from google.oauth2 import service_account
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.http import MediaIoBaseUpload

from config.settings import DriveConfig, config

logger = logging.getLogger("transcript_sync.drive")

_TOKEN_URI = "https://oauth2.googleapis.com/token"

# Are we on a headless runner (CI, Docker, etc.)?
_HEADLESS = bool(os.environ.get("CI") or os.environ.get("GITHUB_ACTIONS"))


class DriveError(RuntimeError):
    pass


class DriveAuthError(DriveError):
    pass


class GoogleDriveClient:
    """Thin wrapper over the Drive v3 files API."""

    def __init__(self, drive_config: DriveConfig = None, service=None):
        self._config = drive_config or config.drive
        self._service = service
        self._credentials = None

    @property
    def authorized(self) -> bool:
        return self._service is not None

    # -------------------------------------------------------
    # Auth
    # -------------------------------------------------------

    def _credentials_from_env(self):
        cfg = self._config
        if cfg.oauth_client_id and cfg.oauth_client_secret and cfg.oauth_refresh_token:
            logger.info("Drive: using OAuth refresh token from environment")
            return Credentials(
                token=None,
                refresh_token=cfg.oauth_refresh_token,
                client_id=cfg.oauth_client_id,
                client_secret=cfg.oauth_client_secret,
                token_uri=_TOKEN_URI,
                scopes=cfg.scopes,
            )
        if cfg.service_account_key:
            logger.info("Drive: using service account")
            info = json.loads(cfg.service_account_key)
            return service_account.Credentials.from_service_account_info(info, scopes=cfg.scopes)
        return None

    def _credentials_from_token_file(self):
        cfg = self._config
        token_path = Path(cfg.token_path)
        creds = None
        if token_path.exists():
            try:
                creds = Credentials.from_authorized_user_file(str(token_path), cfg.scopes)
                logger.info(f"Drive: loaded token from {token_path}")
            except Exception as e:
                logger.warning(f"Drive: could not load token from {token_path} ({e})")

        if creds and creds.valid:
            return creds

        if creds and creds.expired and creds.refresh_token:
            try:
                creds.refresh(Request())
                token_path.write_text(creds.to_json())
                logger.info(f"Drive: token refreshed → saved to {token_path}")
                return creds
            except Exception as e:
                logger.warning(f"Drive: token refresh failed ({e})")

        creds_path = Path(cfg.credentials_path)
        if _HEADLESS:
            raise DriveAuthError(
                "Drive token invalid and cannot run the OAuth browser flow on a headless runner. "
                "Set GOOGLE_SERVICE_ACCOUNT_KEY or the GOOGLE_OAUTH_* variables."
            )
        if not creds_path.exists():
            raise DriveAuthError(f"Drive OAuth client file not found: {creds_path}")

        logger.info("Drive: starting OAuth2 consent flow (will open browser)...")
        flow = InstalledAppFlow.from_client_secrets_file(str(creds_path), cfg.scopes)
        creds = flow.run_local_server(port=0)
        token_path.write_text(creds.to_json())
        logger.info(f"Drive: token saved to {token_path}")
        return creds

    def authorize(self):
        """Build the Drive service. Raises DriveAuthError on failure."""
        if self._service is not None:
            return self._service
        try:
            creds = self._credentials_from_env() or self._credentials_from_token_file()
            self._service = build("drive", "v3", credentials=creds, cache_discovery=False)
        except DriveAuthError:
            raise
        except Exception as e:
            raise DriveAuthError(f"Drive authorization failed: {e}") from e
        self._credentials = creds
        logger.info("Drive: authorized")
        return self._service

    def _require_service(self):
        if self._service is None:
            raise DriveError("Not authorized. Call authorize() first.")
        return self._service

    # -------------------------------------------------------
    # Files
    # -------------------------------------------------------

    def upload_text(self, file_name: str, content: str, folder_id: str) -> dict:
        """Create a text/plain file in folder_id. Returns {id, name, webViewLink}."""
        service = self._require_service()
        media = MediaIoBaseUpload(
            io.BytesIO(content.encode("utf-8")), mimetype="text/plain", resumable=False
        )
        result = service.files().create(
            body={"name": file_name, "parents": [folder_id], "mimeType": "text/plain"},
            media_body=media,
            fields="id, name, webViewLink",
        ).execute()
        logger.info(f"Drive: uploaded {result.get('name', file_name)}")
        return result

    def list_folder(self, folder_id: str, page_size: int = 1000) -> list:
        """All non-trashed files in folder_id (id, name, createdTime, webViewLink)."""
        service = self._require_service()
        files = []
        page_token = None
        while True:
            resp = service.files().list(
                q=f"'{folder_id}' in parents and trashed=false",
                fields="nextPageToken, files(id, name, createdTime, modifiedTime, webViewLink)",
                pageSize=page_size,
                pageToken=page_token,
            ).execute()
            files.extend(resp.get("files", []))
            page_token = resp.get("nextPageToken")
            if not page_token:
                break
        logger.info(f"Drive: {len(files)} files in folder {folder_id}")
        return files

    def delete_file(self, file_id: str):
        self._require_service().files().delete(fileId=file_id).execute()

    def download_text(self, file_id: str) -> str:
        data = self._require_service().files().get_media(fileId=file_id).execute()
        return data.decode("utf-8") if isinstance(data, bytes) else str(data)


def files_created_before(files: list, cutoff: datetime) -> list:
    """Drive file dicts whose createdTime is earlier than cutoff (UTC)."""
    if cutoff.tzinfo is None:
        cutoff = cutoff.replace(tzinfo=timezone.utc)
    selected = []
    for f in files:
        created = f.get("createdTime")
        if not created:
            continue
        created_at = datetime.fromisoformat(created.replace("Z", "+00:00"))
        if created_at < cutoff:
            selected.append(f)
    return selected


def drive_url_map(files: list) -> dict:
    """file name → webViewLink, for files that have one."""
    return {f["name"]: f["webViewLink"] for f in files if f.get("name") and f.get("webViewLink")}

"""
Salesloft Transcript Sync — Configuration
All secrets loaded from environment variables.
Copy .env.example → .env and fill in your credentials.
"""
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv

# Load .env before any os.getenv() calls in dataclass defaults
_ENV_PATH = Path(__file__).parent / ".env"
load_dotenv(_ENV_PATH, override=True)

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_DATA_DIR = Path(os.getenv("TRANSCRIPT_SYNC_DATA_DIR", str(_PROJECT_ROOT / "data")))


@dataclass
class SalesloftConfig:
    api_key: str = os.getenv("SALESLOFT_API_KEY", "")
    base_url: str = os.getenv("SALESLOFT_API_URL", "https://api.salesloft.com/v2")
    # Salesloft caps per_page at 100
    per_page: int = 100
    timeout: float = float(os.getenv("SALESLOFT_TIMEOUT", "30"))


@dataclass
class DriveConfig:
    folder_id: str = os.getenv("GOOGLE_DRIVE_FOLDER_ID", "")
    # OAuth2 client file (downloaded from Google Cloud Console)
    credentials_path: str = os.getenv(
        "GOOGLE_OAUTH_CREDENTIALS_PATH", str(_PROJECT_ROOT / "oauth_credentials.json")
    )
    # Token file (auto-generated after first OAuth2 flow)
    token_path: str = os.getenv("GOOGLE_TOKEN_PATH", str(_PROJECT_ROOT / "token.json"))
    # CI: either a service account key (JSON string) or OAuth refresh token triple
    service_account_key: str = os.getenv("GOOGLE_SERVICE_ACCOUNT_KEY", "")
    oauth_client_id: str = os.getenv("GOOGLE_OAUTH_CLIENT_ID", "")
    oauth_client_secret: str = os.getenv("GOOGLE_OAUTH_CLIENT_SECRET", "")
    oauth_refresh_token: str = os.getenv("GOOGLE_OAUTH_REFRESH_TOKEN", "")
    scopes: list = field(default_factory=lambda: [
        "https://www.googleapis.com/auth/drive",
    ])

    @property
    def enabled(self) -> bool:
        return bool(self.folder_id)


@dataclass
class PathsConfig:
    data_dir: Path = _DATA_DIR
    download_folder: Path = Path(
        os.getenv("TRANSCRIPT_SYNC_DOWNLOAD_DIR", str(_PROJECT_ROOT / "recordings"))
    )
    processed_ids_file: Path = _DATA_DIR / "processed_conversation_ids.json"
    legacy_processed_ids_file: Path = _DATA_DIR / "processed_call_ids.json"
    mapping_csv_file: Path = _DATA_DIR / "transcript_salesforce_mapping.csv"
    backup_folder: Path = _PROJECT_ROOT / "backups"
    crm_report_csv: Path = Path(
        os.getenv("SALESFORCE_REPORT_CSV", str(_DATA_DIR / "salesforce" / "report.csv"))
    )
    import_csv_file: Path = _DATA_DIR / "salesforce_import_ready.csv"
    import_archive_dir: Path = _DATA_DIR / "archive"
    last_generation_file: Path = _DATA_DIR / "last_generation.json"


@dataclass
class SyncProfile:
    """Knobs the sync driver needs from the outside world."""
    mode: str = "limited"                  # "limited" | "unlimited"
    target_ai_transcripts: Optional[int] = 10
    max_records_to_scan: int = 50
    min_duration: int = 30                 # seconds
    api_delay_seconds: float = 0.1
    checkpoint_every: int = 10

    def with_overrides(self, **overrides) -> "SyncProfile":
        """Return a copy with every non-None override applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **values)


PROFILES: Dict[str, SyncProfile] = {
    # Quick spot-check: a handful of AI transcripts from a small window
    "test": SyncProfile(
        mode="limited",
        target_ai_transcripts=10,
        max_records_to_scan=50,
        min_duration=30,
        api_delay_seconds=0.1,
    ),
    # Full backfill / scheduled sync: drain the whole scan window
    "batch": SyncProfile(
        mode="unlimited",
        target_ai_transcripts=None,
        max_records_to_scan=500,
        min_duration=30,
        api_delay_seconds=0.1,
    ),
}


def get_profile(name: str) -> SyncProfile:
    """Look up a run profile by name. Unknown names fall back to 'test'."""
    return PROFILES.get(name, PROFILES["test"])


@dataclass
class AppConfig:
    salesloft: SalesloftConfig = field(default_factory=SalesloftConfig)
    drive: DriveConfig = field(default_factory=DriveConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    debug: bool = os.getenv("TRANSCRIPT_SYNC_DEBUG", "false").lower() == "true"


# Global config instance
config = AppConfig()

"""Salesloft Transcript Sync — CRM cross-referencing.

Joins the append-only mapping CSV written by the sync against a Salesforce
contact report so an operator can review matches and import transcript
links. Salesforce ids come in 15- and 18-character forms; both sides are
compared on the first 15 characters.

The mapping log may contain a conversation more than once (one row per run
that touched it); the newest row per conversation wins here.
"""
import csv
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from transcripts.archive import MAPPING_COLUMNS

logger = logging.getLogger("transcript_sync.crm_import")

MATCHED = "Matched"
NOT_FOUND = "Not Found"

IMPORT_COLUMNS = [
    "ConversationID",
    "Filename",
    "PersonID",
    "PersonCrmID",
    "ContactName",
    "ContactEmail",
    "ContactMatchStatus",
    "AccountID",
    "AccountCrmID",
    "AccountName",
    "AccountMatchStatus",
    "MediaType",
    "Platform",
    "Date",
    "Duration",
    "GoogleDriveURL",
]

# Report header aliases (Salesforce exports vary by report type)
_REPORT_COLUMNS = {
    "first_name": ("First Name", "FirstName"),
    "last_name": ("Last Name", "LastName"),
    "email": ("Email",),
    "account_name": ("Account Name", "AccountName"),
    "contact_id": ("Contact ID", "ContactId", "Contact Id", "Lead ID"),
    "account_id": ("Account ID", "AccountId", "Account Id"),
}


def to_15_char(crm_id: Optional[str]) -> str:
    return (crm_id or "").strip()[:15]


@dataclass
class CrmDirectory:
    contacts: Dict[str, dict] = field(default_factory=dict)
    accounts: Dict[str, dict] = field(default_factory=dict)


@dataclass
class ImportSummary:
    total: int = 0
    contact_matches: int = 0
    account_matches: int = 0
    drive_urls: int = 0


def _pick(row: dict, key: str) -> str:
    for name in _REPORT_COLUMNS[key]:
        value = row.get(name)
        if value:
            return value.strip()
    return ""


def load_crm_report(path: Path) -> CrmDirectory:
    """Contacts and accounts keyed by 15-char Salesforce id."""
    directory = CrmDirectory()
    with open(path, "r", encoding="utf-8-sig", newline="") as f:
        for row in csv.DictReader(f):
            contact_id = to_15_char(_pick(row, "contact_id"))
            account_id = to_15_char(_pick(row, "account_id"))
            account_name = _pick(row, "account_name")
            if contact_id:
                directory.contacts[contact_id] = {
                    "name": f"{_pick(row, 'first_name')} {_pick(row, 'last_name')}".strip(),
                    "email": _pick(row, "email"),
                    "account": account_name,
                }
            if account_id and account_name:
                directory.accounts[account_id] = {"name": account_name}

    logger.info(f"Loaded {len(directory.contacts)} contacts and {len(directory.accounts)} accounts from {path}")
    return directory


def load_mapping(path: Path) -> List[dict]:
    """Mapping rows, last row per conversation id kept, in first-seen order."""
    latest: Dict[str, dict] = {}
    with open(path, "r", encoding="utf-8", newline="") as f:
        for row in csv.DictReader(f):
            conversation_id = (row.get("ConversationID") or "").strip()
            if not conversation_id:
                continue
            latest[conversation_id] = {k: (row.get(k) or "").strip() for k in MAPPING_COLUMNS}
    return list(latest.values())


def build_import_rows(mapping_rows: Iterable[dict], directory: CrmDirectory,
                      drive_urls: Optional[Dict[str, str]] = None):
    """Return (rows, summary) for the import-ready CSV."""
    drive_urls = drive_urls or {}
    rows = []
    summary = ImportSummary()

    for mapping in mapping_rows:
        summary.total += 1
        contact = directory.contacts.get(to_15_char(mapping.get("PersonCrmID")))
        account = directory.accounts.get(to_15_char(mapping.get("AccountCrmID")))
        drive_url = drive_urls.get(mapping.get("Filename", ""), "")

        if contact:
            summary.contact_matches += 1
        if account:
            summary.account_matches += 1
        if drive_url:
            summary.drive_urls += 1

        rows.append({
            "ConversationID": mapping.get("ConversationID", ""),
            "Filename": mapping.get("Filename", ""),
            "PersonID": mapping.get("PersonID", ""),
            "PersonCrmID": mapping.get("PersonCrmID", ""),
            "ContactName": contact["name"] if contact else "",
            "ContactEmail": contact["email"] if contact else "",
            "ContactMatchStatus": MATCHED if contact else NOT_FOUND,
            "AccountID": mapping.get("AccountID", ""),
            "AccountCrmID": mapping.get("AccountCrmID", ""),
            "AccountName": account["name"] if account else "",
            "AccountMatchStatus": MATCHED if account else NOT_FOUND,
            "MediaType": mapping.get("MediaType", ""),
            "Platform": mapping.get("Platform", ""),
            "Date": mapping.get("Date", ""),
            "Duration": mapping.get("Duration", ""),
            "GoogleDriveURL": drive_url,
        })

    return rows, summary


def check_overlap(mapping_rows: Iterable[dict], directory: CrmDirectory) -> dict:
    """How many distinct person/account CRM ids in the mapping exist in the report."""
    mapping_rows = list(mapping_rows)
    person_ids = {to_15_char(r.get("PersonCrmID")) for r in mapping_rows if r.get("PersonCrmID")}
    account_ids = {to_15_char(r.get("AccountCrmID")) for r in mapping_rows if r.get("AccountCrmID")}
    return {
        "person_ids": len(person_ids),
        "person_matches": len(person_ids & set(directory.contacts)),
        "account_ids": len(account_ids),
        "account_matches": len(account_ids & set(directory.accounts)),
    }


def write_import(rows: List[dict], summary: ImportSummary, output_csv: Path,
                 archive_dir: Path, metadata_file: Path, now: datetime = None) -> Path:
    """Write the latest import CSV, a timestamped archive copy, and run metadata."""
    now = now or datetime.now(timezone.utc)
    stamp = now.strftime("%Y-%m-%dT%H-%M-%S")
    archive_path = Path(archive_dir) / f"salesforce_import_{stamp}.csv"

    for path in (Path(output_csv), archive_path):
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=IMPORT_COLUMNS)
            writer.writeheader()
            writer.writerows(rows)

    metadata = {
        "generatedAt": now.isoformat(),
        "totalRecords": summary.total,
        "contactMatches": summary.contact_matches,
        "accountMatches": summary.account_matches,
        "googleDriveUrls": summary.drive_urls,
        "archiveFile": archive_path.name,
    }
    Path(metadata_file).parent.mkdir(parents=True, exist_ok=True)
    with open(metadata_file, "w", encoding="utf-8") as f:
        json.dump(metadata, f, indent=2)

    logger.info(f"Import CSV written: {output_csv} ({summary.total} rows), archive copy {archive_path}")
    return archive_path


# -------------------------------------------------------
# Import file quality and history
# -------------------------------------------------------

@dataclass
class ImportQuality:
    total: int = 0
    contact_matches: int = 0
    account_matches: int = 0
    both_matched: int = 0
    drive_urls: int = 0
    duplicate_conversation_ids: List[str] = field(default_factory=list)
    duplicate_filenames: List[str] = field(default_factory=list)
    unlinked: List[dict] = field(default_factory=list)

    @property
    def linked(self) -> int:
        return self.total - len(self.unlinked)

    @property
    def ok(self) -> bool:
        return not self.duplicate_conversation_ids and not self.duplicate_filenames

    def rate(self, count: int) -> float:
        return 100.0 * count / self.total if self.total else 0.0


def _duplicates(values: List[str]) -> List[str]:
    seen, dupes = set(), []
    for value in values:
        if value and value in seen and value not in dupes:
            dupes.append(value)
        seen.add(value)
    return dupes


def verify_import_csv(path: Path) -> ImportQuality:
    """Match rates and duplicate ids/filenames in an import-ready CSV."""
    with open(path, "r", encoding="utf-8", newline="") as f:
        rows = list(csv.DictReader(f))

    quality = ImportQuality(total=len(rows))
    for row in rows:
        contact = row.get("ContactMatchStatus") == MATCHED
        account = row.get("AccountMatchStatus") == MATCHED
        quality.contact_matches += contact
        quality.account_matches += account
        quality.both_matched += contact and account
        if row.get("GoogleDriveURL"):
            quality.drive_urls += 1
        if not contact and not account:
            quality.unlinked.append(row)

    quality.duplicate_conversation_ids = _duplicates([r.get("ConversationID", "") for r in rows])
    quality.duplicate_filenames = _duplicates([r.get("Filename", "") for r in rows])
    logger.info(
        f"Import file {path}: {quality.total} rows, {len(quality.duplicate_conversation_ids)} duplicate ids, "
        f"{len(quality.duplicate_filenames)} duplicate filenames"
    )
    return quality


@dataclass
class ArchivedImport:
    name: str
    size: int
    modified: datetime


@dataclass
class GenerationHistory:
    latest: Optional[dict] = None
    archives: List[ArchivedImport] = field(default_factory=list)


def load_generation_history(metadata_file: Path, archive_dir: Path) -> GenerationHistory:
    """Latest run metadata plus archived import files, newest first."""
    history = GenerationHistory()
    metadata_file = Path(metadata_file)
    if metadata_file.exists():
        with open(metadata_file, "r", encoding="utf-8") as f:
            history.latest = json.load(f)

    archive_dir = Path(archive_dir)
    if archive_dir.is_dir():
        for path in archive_dir.glob("salesforce_import_*.csv"):
            stat = path.stat()
            history.archives.append(ArchivedImport(
                name=path.name,
                size=stat.st_size,
                modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            ))
        # Stamped names sort chronologically
        history.archives.sort(key=lambda a: a.name, reverse=True)
    return history

"""
Salesloft Transcript Sync — Salesforce Import Builder
Combines the transcript mapping CSV with a Salesforce contact report and the
Drive file links into an import-ready CSV.

Usage:
    python scripts/build_crm_import.py
    python scripts/build_crm_import.py --report data/salesforce/report.csv --no-drive
    python scripts/build_crm_import.py --check      # id overlap only, writes nothing
    python scripts/build_crm_import.py --verify     # quality check of the latest import CSV

Output:
    data/salesforce_import_ready.csv            (latest)
    data/archive/salesforce_import_<stamp>.csv  (history)
    data/last_generation.json
"""
import argparse
import logging
import sys
from pathlib import Path

# Ensure project root is on sys.path
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

from config.settings import config
from transcripts.crm_import import (
    build_import_rows,
    check_overlap,
    load_crm_report,
    load_mapping,
    verify_import_csv,
    write_import,
)

logger = logging.getLogger("transcript_sync.crm_import")


def fetch_drive_urls() -> dict:
    """File name → Drive link. Empty when Drive is not configured or auth fails."""
    if not config.drive.enabled:
        logger.warning("GOOGLE_DRIVE_FOLDER_ID not set — import will have no Drive URLs")
        return {}

    from transcripts.drive_client import GoogleDriveClient, drive_url_map
    drive = GoogleDriveClient(config.drive)
    try:
        drive.authorize()
        return drive_url_map(drive.list_folder(config.drive.folder_id))
    except Exception as e:
        logger.warning(f"Could not fetch Drive URLs ({e}) — continuing without them")
        return {}


def build(report_csv: Path, mapping_csv: Path, with_drive: bool = True):
    """Generate the import files. Returns the ImportSummary."""
    directory = load_crm_report(report_csv)
    mapping_rows = load_mapping(mapping_csv)
    drive_urls = fetch_drive_urls() if with_drive else {}

    rows, summary = build_import_rows(mapping_rows, directory, drive_urls)
    archive_path = write_import(
        rows,
        summary,
        output_csv=config.paths.import_csv_file,
        archive_dir=config.paths.import_archive_dir,
        metadata_file=config.paths.last_generation_file,
    )

    print("=" * 60)
    print("SALESFORCE IMPORT CSV")
    print("=" * 60)
    print(f"Records: {summary.total}")
    print(f"Contact matches: {summary.contact_matches}")
    print(f"Account matches: {summary.account_matches}")
    print(f"Drive URLs: {summary.drive_urls}")
    print(f"Output: {config.paths.import_csv_file}")
    print(f"Archive: {archive_path}")
    return summary


def check(report_csv: Path, mapping_csv: Path):
    overlap = check_overlap(load_mapping(mapping_csv), load_crm_report(report_csv))
    print("=" * 60)
    print("SALESFORCE ID OVERLAP")
    print("=" * 60)
    print(f"Person CRM ids in mapping: {overlap['person_ids']} ({overlap['person_matches']} in report)")
    print(f"Account CRM ids in mapping: {overlap['account_ids']} ({overlap['account_matches']} in report)")
    if overlap["person_ids"] and not overlap["person_matches"]:
        print("\nNo person ids match — check that the report includes the Contact ID column.")


def verify(import_csv: Path) -> bool:
    """Print match rates and duplicates for an import CSV. False on duplicates."""
    quality = verify_import_csv(import_csv)
    print("=" * 60)
    print("IMPORT DATA QUALITY")
    print("=" * 60)
    print(f"Records: {quality.total}")
    print(f"Contact matches: {quality.contact_matches} ({quality.rate(quality.contact_matches):.1f}%)")
    print(f"Account matches: {quality.account_matches} ({quality.rate(quality.account_matches):.1f}%)")
    print(f"Both matched: {quality.both_matched}")
    print(f"Drive URLs: {quality.drive_urls} ({quality.rate(quality.drive_urls):.1f}%)")
    print(f"With at least one Salesforce link: {quality.linked} ({quality.rate(quality.linked):.1f}%)")

    if quality.unlinked:
        print(f"\nRecords with no Salesforce match (first 10 of {len(quality.unlinked)}):")
        for row in quality.unlinked[:10]:
            print(f"  {row.get('Filename')}  conversation={row.get('ConversationID')}  "
                  f"person={row.get('PersonCrmID') or 'N/A'}  account={row.get('AccountCrmID') or 'N/A'}")

    if quality.ok:
        print("\nNo duplicate conversation ids or filenames. Ready to import.")
        return True

    print(f"\nDuplicate conversation ids: {len(quality.duplicate_conversation_ids)}")
    for value in quality.duplicate_conversation_ids[:10]:
        print(f"  {value}")
    print(f"Duplicate filenames: {len(quality.duplicate_filenames)}")
    for value in quality.duplicate_filenames[:10]:
        print(f"  {value}")
    print("\nFix duplicates before importing.")
    return False


def main():
    parser = argparse.ArgumentParser(description="Build the Salesforce import CSV")
    parser.add_argument("--report", type=Path, default=config.paths.crm_report_csv,
                        help="Salesforce contact report CSV")
    parser.add_argument("--mapping", type=Path, default=config.paths.mapping_csv_file,
                        help="Transcript mapping CSV written by the sync")
    parser.add_argument("--no-drive", action="store_true", help="Skip the Drive URL lookup")
    parser.add_argument("--check", action="store_true", help="Report id overlap only")
    parser.add_argument("--verify", action="store_true", help="Quality-check the latest import CSV")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(name)s] %(levelname)s: %(message)s")

    if args.verify:
        if not config.paths.import_csv_file.exists():
            print(f"ERROR: Import CSV not found: {config.paths.import_csv_file}")
            sys.exit(1)
        if not verify(config.paths.import_csv_file):
            sys.exit(1)
        return

    for label, path in (("Salesforce report", args.report), ("Mapping file", args.mapping)):
        if not path.exists():
            print(f"ERROR: {label} not found: {path}")
            sys.exit(1)

    if args.check:
        check(args.report, args.mapping)
    else:
        build(args.report, args.mapping, with_drive=not args.no_drive)


if __name__ == "__main__":
    main()

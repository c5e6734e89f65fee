"""
Salesloft Transcript Sync — Drive Upload Verifier
Downloads a few transcript files from the Drive folder and checks that their
headers carry the Salesforce Contact/Lead and Account ID lines.

Usage:
    python scripts/verify_drive.py
    python scripts/verify_drive.py --limit 10

Exit code 1 when a file has only one of the two id lines.
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
from transcripts.drive_client import DriveAuthError, GoogleDriveClient
from transcripts.verification import LINKED, PARTIAL, check_crm_header

logger = logging.getLogger("transcript_sync.verify_drive")


def verify_files(drive: GoogleDriveClient, files: list) -> dict:
    """Download each file and return {file name: HeaderCheck}."""
    results = {}
    for f in files:
        try:
            content = drive.download_text(f["id"])
        except Exception as e:
            logger.error(f"Could not download {f['name']}: {e}")
            continue
        results[f["name"]] = check_crm_header(content)
    return results


def main():
    parser = argparse.ArgumentParser(description="Check Drive transcript headers for Salesforce ids")
    parser.add_argument("--limit", type=int, default=3, help="Files to download and check")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(name)s] %(levelname)s: %(message)s")

    if not config.drive.folder_id:
        print("ERROR: GOOGLE_DRIVE_FOLDER_ID is not set")
        sys.exit(1)

    drive = GoogleDriveClient(config.drive)
    try:
        drive.authorize()
    except DriveAuthError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    files = drive.list_folder(config.drive.folder_id)
    print(f"Found {len(files)} files in Drive folder")
    if not files:
        print("No files to verify.")
        return

    results = verify_files(drive, files[:args.limit])

    partial = 0
    for name, check in results.items():
        print(f"\n{name}")
        if check.status == LINKED:
            print("  HAS Salesforce ids")
            print(f"  {check.contact_line}")
            print(f"  {check.account_line}")
        elif check.status == PARTIAL:
            partial += 1
            print("  MISSING one Salesforce id! Header:")
            for i, line in enumerate(check.head[:12], 1):
                print(f"  {i}: {line}")
        else:
            print("  No Salesforce ids (conversation without person/account)")

    print("\n" + "=" * 60)
    print(f"Checked {len(results)} files, {partial} with a missing id")
    if partial:
        sys.exit(1)


if __name__ == "__main__":
    main()

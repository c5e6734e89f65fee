"""
Salesloft Transcript Sync — Google Drive Cleanup
Deletes transcript files from the configured Drive folder that were uploaded
before a cutoff date, or every file with --all (full reset before a re-sync).

Usage:
    python scripts/cleanup_drive.py --before 2025-11-15 --dry-run
    python scripts/cleanup_drive.py --before 2025-11-15
    python scripts/cleanup_drive.py --all --yes
"""
import argparse
import logging
import sys
import time
from datetime import datetime, timezone
from pathlib import Path

# Ensure project root is on sys.path
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

from config.settings import config
from transcripts.drive_client import DriveAuthError, GoogleDriveClient, files_created_before

logger = logging.getLogger("transcript_sync.cleanup")

_CONFIRM_SECONDS = 5


def main():
    parser = argparse.ArgumentParser(description="Delete old transcript files from Google Drive")
    scope = parser.add_mutually_exclusive_group(required=True)
    scope.add_argument("--before", type=str, help="Delete files created before YYYY-MM-DD (UTC)")
    scope.add_argument("--all", action="store_true", help="Delete every file in the folder")
    parser.add_argument("--dry-run", action="store_true", help="List what would be deleted")
    parser.add_argument("--yes", action="store_true", help="Skip the confirmation delay")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(name)s] %(levelname)s: %(message)s")

    folder_id = config.drive.folder_id
    if not folder_id:
        print("ERROR: GOOGLE_DRIVE_FOLDER_ID is not set")
        sys.exit(1)

    drive = GoogleDriveClient(config.drive)
    try:
        drive.authorize()
    except DriveAuthError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    files = drive.list_folder(folder_id)
    print(f"Found {len(files)} files in folder {folder_id}")

    if args.all:
        to_delete = files
        label = "all files"
    else:
        cutoff = datetime.strptime(args.before, "%Y-%m-%d").replace(tzinfo=timezone.utc)
        to_delete = files_created_before(files, cutoff)
        label = f"created before {cutoff.date().isoformat()}"

    print(f"Files to delete ({label}): {len(to_delete)}")
    print(f"Files to keep: {len(files) - len(to_delete)}")

    if not to_delete:
        print("Nothing to delete.")
        return

    if args.dry_run:
        for f in to_delete:
            print(f"  would delete: {f['name']} ({f.get('createdTime', '?')})")
        return

    if not args.yes:
        print("\nWARNING: this permanently deletes files from Google Drive.")
        print(f"Press Ctrl+C to cancel, or wait {_CONFIRM_SECONDS} seconds to continue...")
        time.sleep(_CONFIRM_SECONDS)

    deleted = 0
    failed = 0
    for f in to_delete:
        try:
            drive.delete_file(f["id"])
            deleted += 1
            logger.info(f"Deleted {f['name']}")
        except Exception as e:
            failed += 1
            logger.error(f"Failed to delete {f['name']}: {e}")

    print("\n" + "=" * 60)
    print("CLEANUP SUMMARY")
    print("=" * 60)
    print(f"Deleted: {deleted}")
    if failed:
        print(f"Failed: {failed}")
    print(f"Remaining: {len(files) - deleted}")


if __name__ == "__main__":
    main()

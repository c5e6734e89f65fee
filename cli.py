#!/usr/bin/env python3
"""
Salesloft Transcript Sync — Command Line Interface
Pull Salesloft conversation transcripts into the local archive and Google Drive.

Usage:
    python cli.py test                      # a few AI transcripts, quick check
    python cli.py batch                     # drain the next 500 conversations
    python cli.py batch --max-records 1000 --delay 0.25
    python cli.py clean                     # back up and reset progress
    python cli.py status

Batch mode is safe to repeat: already-processed conversations are skipped.
Run it until it reports no new conversations.
"""
import argparse
import logging
import sys
from pathlib import Path

from config.settings import config, get_profile
from salesloft_client import SalesloftClient
from transcripts.archive import ArchiveSink
from transcripts.driver import SyncDriver
from transcripts.progress import ProgressStore
from transcripts.report import render_report

logger = logging.getLogger("transcript_sync.cli")


def setup_logging(debug: bool = False):
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def build_store() -> ProgressStore:
    return ProgressStore(
        config.paths.processed_ids_file,
        legacy_path=config.paths.legacy_processed_ids_file,
    )


def build_sink() -> ArchiveSink:
    """Archive sink with Drive attached when a folder is configured and auth works."""
    drive = None
    if config.drive.enabled:
        from transcripts.drive_client import GoogleDriveClient
        drive = GoogleDriveClient(config.drive)
        try:
            drive.authorize()
            logger.info(f"Will upload to Drive folder: {config.drive.folder_id}")
        except Exception as e:
            logger.warning(f"Google Drive authorization failed: {e} — files will be saved locally only")
    else:
        logger.warning("GOOGLE_DRIVE_FOLDER_ID not set — files will be saved locally only")

    return ArchiveSink(
        download_folder=config.paths.download_folder,
        mapping_csv=config.paths.mapping_csv_file,
        drive=drive,
        drive_folder_id=config.drive.folder_id or None,
    )


def run_profile(profile_name: str, **overrides):
    """Run one sync with the named profile. Returns the RunReport."""
    if not config.salesloft.api_key:
        logger.error("SALESLOFT_API_KEY is not set (config/.env or environment)")
        sys.exit(1)

    profile = get_profile(profile_name).with_overrides(**overrides)
    client = SalesloftClient()
    try:
        driver = SyncDriver(client, build_store(), build_sink(), profile)
        return driver.run()
    finally:
        client.close()


def cmd_sync(args):
    """test / batch: one bounded sync run."""
    print("=" * 60)
    print(f"Salesloft Transcript Sync — {args.command.upper()} MODE")
    print("=" * 60)

    try:
        report = run_profile(
            args.command,
            target_ai_transcripts=getattr(args, "target", None),
            max_records_to_scan=args.max_records,
            min_duration=args.min_duration,
            api_delay_seconds=args.delay,
        )
    except Exception as e:
        logger.critical(f"Sync run failed: {e}", exc_info=True)
        sys.exit(1)

    print(render_report(report, config.paths.download_folder))


def cmd_clean(args):
    """Back up and reset the processed-ids tracker."""
    store = build_store()
    state = store.load()
    print(f"Current tracker: {len(state.processed_ids)} processed conversations, page {state.next_page_cursor}")

    backup = store.reset(config.paths.backup_folder)
    if backup is None:
        print("No progress file found — nothing to clean.")
        return

    print(f"Backed up to: {backup}")
    print("Cleared processed conversation ids and reset pagination.")
    if config.paths.legacy_processed_ids_file.exists():
        print(f"Note: legacy ids in {config.paths.legacy_processed_ids_file} are still merged on load.")


def cmd_status(args):
    """Show sync progress and configuration."""
    state = build_store().load()
    download_folder = Path(config.paths.download_folder)
    files = list(download_folder.glob("*.txt")) if download_folder.exists() else []

    print("Salesloft Transcript Sync — Status")
    print("=" * 40)
    print(f"Processed conversations: {len(state.processed_ids)}")
    print(f"Next page: {state.next_page_cursor}")
    print(f"Last updated: {state.last_updated or 'never'}")
    print(f"Archived files: {len(files)} in {download_folder}")
    print(f"Salesloft API key: {'configured' if config.salesloft.api_key else 'missing'}")
    print(f"Drive folder: {config.drive.folder_id or 'not configured'}")


def main():
    parser = argparse.ArgumentParser(description="Salesloft Transcript Sync")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")

    for name, help_text in (
        ("test", "Fetch a limited number of AI transcripts"),
        ("batch", "Process every available conversation in the scan window"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--max-records", type=int, default=None, help="Scan ceiling (records)")
        sub.add_argument("--min-duration", type=int, default=None, help="Minimum duration in seconds")
        sub.add_argument("--delay", type=float, default=None, help="Seconds between conversations")
        if name == "test":
            sub.add_argument("--target", type=int, default=None, help="AI transcripts to collect")

    subparsers.add_parser("clean", help="Back up and reset processed conversation ids")
    subparsers.add_parser("status", help="Show sync progress")

    args = parser.parse_args()
    setup_logging(args.debug or config.debug)

    if args.command in ("test", "batch"):
        cmd_sync(args)
    elif args.command == "clean":
        cmd_clean(args)
    elif args.command == "status":
        cmd_status(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()

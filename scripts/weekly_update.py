"""
Salesloft Transcript Sync — Weekly Update
Runs a batch sync, then regenerates the Salesforce import CSV when the
contact report is present. Meant for a weekly cron / CI schedule.

Usage:
    python scripts/weekly_update.py
    python scripts/weekly_update.py --max-records 1000 --skip-import
"""
import argparse
import logging
import sys
from pathlib import Path

# Ensure project root is on sys.path
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

from cli import run_profile, setup_logging
from config.settings import config
from scripts.build_crm_import import build
from transcripts.report import render_report

logger = logging.getLogger("transcript_sync.weekly")


def main():
    parser = argparse.ArgumentParser(description="Weekly transcript sync + Salesforce import")
    parser.add_argument("--max-records", type=int, default=None, help="Scan ceiling for the batch run")
    parser.add_argument("--skip-import", action="store_true", help="Only run the sync")
    parser.add_argument("--debug", action="store_true")
    args = parser.parse_args()

    setup_logging(args.debug)

    print("=" * 60)
    print("WEEKLY UPDATE — step 1/2: batch sync")
    print("=" * 60)
    try:
        report = run_profile("batch", max_records_to_scan=args.max_records)
    except Exception as e:
        logger.critical(f"Batch sync failed: {e}", exc_info=True)
        sys.exit(1)
    print(render_report(report, config.paths.download_folder))

    if args.skip_import:
        return

    print("=" * 60)
    print("WEEKLY UPDATE — step 2/2: Salesforce import CSV")
    print("=" * 60)
    if not config.paths.crm_report_csv.exists():
        print(f"Salesforce report not found at {config.paths.crm_report_csv} — skipping import build.")
    elif not config.paths.mapping_csv_file.exists():
        print("No mapping file yet — nothing to import.")
    else:
        build(config.paths.crm_report_csv, config.paths.mapping_csv_file)

    print(f"\nNew conversations this week: {report.new_records_processed}")
    print(f"Total processed: {report.total_processed}")


if __name__ == "__main__":
    main()

"""
Salesloft Transcript Sync — Conversation Analyzer
Fetches recent conversations and shows how many carry an AI transcription,
broken down by media type, platform and status. Read-only: nothing is
archived and progress is not touched.

Usage:
    python scripts/analyze_conversations.py
    python scripts/analyze_conversations.py --max-records 300 --samples 5
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
from salesloft_client import SalesloftClient
from transcripts.analysis import format_breakdown, summarize_conversations

logger = logging.getLogger("transcript_sync.analyze")


def main():
    parser = argparse.ArgumentParser(description="Analyze Salesloft conversation transcript availability")
    parser.add_argument("--max-records", type=int, default=100, help="Conversations to fetch")
    parser.add_argument("--start-page", type=int, default=1, help="First page to fetch")
    parser.add_argument("--samples", type=int, default=10, help="Sample conversations to list")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(name)s] %(levelname)s: %(message)s")

    if not config.salesloft.api_key:
        print("ERROR: SALESLOFT_API_KEY is not set")
        sys.exit(1)

    client = SalesloftClient()
    try:
        page = client.list_conversations(args.max_records, args.start_page)
    except Exception as e:
        logger.error(f"Could not fetch conversations: {e}")
        sys.exit(1)
    finally:
        client.close()

    summary = summarize_conversations(page.records, sample_size=args.samples)

    print("=" * 60)
    print("CONVERSATION ANALYSIS")
    print("=" * 60)
    print(f"Total conversations: {summary.total}")
    print(f"With AI transcriptions: {summary.with_transcripts}")
    print(f"Without: {summary.without_transcripts}")

    print("\nBy media type:")
    for line in format_breakdown(summary.by_media_type, summary.transcripts_by_media_type):
        print(line)
    print("\nBy platform:")
    for line in format_breakdown(summary.by_platform, summary.transcripts_by_platform):
        print(line)
    print("\nBy status:")
    for line in format_breakdown(summary.by_status):
        print(line)

    if summary.samples:
        print(f"\nSample conversations with transcripts (first {len(summary.samples)}):")
        for record in summary.samples:
            duration = "?" if record.duration is None else f"{int(record.duration)}s"
            print(f"  {record.id}  {record.media_type:<10} {record.platform:<12} "
                  f"{duration:>6}  transcription={record.transcription.id}")

    if summary.total and not summary.with_transcripts:
        print("\nNo conversations in this window have AI transcriptions.")
        print("Check that conversation intelligence is enabled for your Salesloft team.")


if __name__ == "__main__":
    main()

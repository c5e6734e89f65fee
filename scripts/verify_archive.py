"""
Salesloft Transcript Sync — Archive Verifier
Checks the local transcript folder for identical bodies saved under
different conversations and for AI transcripts without a sentence count.

Usage:
    python scripts/verify_archive.py
    python scripts/verify_archive.py --folder /path/to/recordings

Exit code 1 when duplicates are found.
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
from transcripts.verification import verify_archive


def main():
    parser = argparse.ArgumentParser(description="Verify archived transcripts for duplicates")
    parser.add_argument("--folder", type=Path, default=config.paths.download_folder,
                        help="Transcript folder (default: configured download folder)")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(name)s] %(levelname)s: %(message)s")

    if not args.folder.exists():
        print(f"Folder not found: {args.folder}")
        sys.exit(1)

    result = verify_archive(args.folder)

    print("=" * 60)
    print("ARCHIVE VERIFICATION")
    print("=" * 60)
    print(f"Files: {result.total_files}")
    print(f"Unique conversation ids: {len(result.conversation_ids)}")
    print(f"Unique transcription ids: {len(result.transcription_ids)}")
    print(f"Unique transcript bodies: {result.unique_bodies}")
    if result.shortest_body is not None:
        print(f"Body length: shortest {result.shortest_body} chars, longest {result.longest_body} chars")

    if result.suspect_ai_files:
        print(f"\nAI transcripts with missing sentence count: {len(result.suspect_ai_files)}")
        for name in result.suspect_ai_files[:10]:
            print(f"  {name}")

    if result.ok:
        print("\nNo duplicate transcripts found.")
        return

    print(f"\nDUPLICATES: {len(result.duplicate_groups)} groups share identical content")
    for i, group in enumerate(result.duplicate_groups, 1):
        print(f"\n  Group {i}: {len(group.files)} files")
        for name, conversation_id in zip(group.files, group.conversation_ids):
            print(f"    {name} (conversation {conversation_id})")
        print(f"    Preview: {group.preview!r}")
    sys.exit(1)


if __name__ == "__main__":
    main()

"""
Salesloft Transcript Sync — Import Generation History
Shows when the Salesforce import CSV was last generated and lists the
archived versions, newest first.

Usage:
    python scripts/show_import_history.py
"""
import sys
from pathlib import Path

# Ensure project root is on sys.path
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

from config.settings import config
from transcripts.crm_import import load_generation_history


def _pct(count: int, total: int) -> str:
    return f"{100.0 * count / total:.1f}%" if total else "n/a"


def main():
    history = load_generation_history(config.paths.last_generation_file, config.paths.import_archive_dir)

    print("=" * 60)
    print("IMPORT CSV GENERATION HISTORY")
    print("=" * 60)

    latest = history.latest
    if latest:
        total = latest.get("totalRecords", 0)
        print(f"Latest: {config.paths.import_csv_file}")
        print(f"Generated: {latest.get('generatedAt', '?')}")
        print(f"Total records: {total}")
        print(f"Contact matches: {latest.get('contactMatches', 0)} ({_pct(latest.get('contactMatches', 0), total)})")
        print(f"Account matches: {latest.get('accountMatches', 0)} ({_pct(latest.get('accountMatches', 0), total)})")
        print(f"Drive URLs: {latest.get('googleDriveUrls', 0)} ({_pct(latest.get('googleDriveUrls', 0), total)})")
    else:
        print("No generation metadata yet. Run scripts/build_crm_import.py first.")

    print()
    if not history.archives:
        print("No archived versions yet.")
        return

    print("Archived versions:")
    for i, archive in enumerate(history.archives, 1):
        print(f"  {i}. {archive.name}  {archive.size / 1024:.1f} KB  "
              f"(written {archive.modified:%Y-%m-%d %H:%M} UTC)")
    print(f"\nTotal archived versions: {len(history.archives)}")


if __name__ == "__main__":
    main()

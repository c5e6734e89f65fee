"""Salesloft Transcript Sync — run summary rendering."""
from pathlib import Path
from typing import Optional

from transcripts.models import RunReport


def render_report(report: RunReport, download_folder: Optional[Path] = None) -> str:
    """Format a RunReport as the operator-facing summary block."""
    lines = ["", "=" * 60, "SYNC SUMMARY", "=" * 60]

    if report.mode == "limited":
        lines.append(f"Mode: limited (target {report.target_ai_transcripts} AI transcripts)")
    else:
        lines.append(f"Mode: unlimited (scanning up to {report.max_records_to_scan} records)")

    lines += [
        f"Fetched: {report.fetched} conversations (pages from {report.start_cursor})",
        f"AI transcripts this run: {report.ai_transcripts}",
        f"Total processed (all time): {report.total_processed}",
        "",
        "This run:",
        f"  Processed:            {report.succeeded}",
        f"  AI transcripts:       {report.ai_transcripts}",
        f"  Manual notes only:    {report.manual_notes}",
        f"  Inline text (legacy): {report.raw_text}",
        f"  No transcript:        {report.no_transcript}",
        f"  Failed:               {report.failed}",
        "",
        "Skipped:",
        f"  Already processed:    {report.skipped_already_processed}",
        f"  No AI transcription:  {report.skipped_no_transcription}",
        f"  Too short:            {report.skipped_too_short}",
        f"  Duplicate in batch:   {report.duplicates_in_batch}",
    ]

    if report.drive_uploads or report.drive_failures:
        lines += ["", f"Drive: {report.drive_uploads} uploaded, {report.drive_failures} failed"]
    if report.mapping_rows:
        lines.append(f"CRM mapping rows appended: {report.mapping_rows}")

    if report.failures:
        lines += ["", "Failures:"]
        for conversation_id, error in report.failures:
            lines.append(f"  {conversation_id}: {error}")

    lines += ["", f"Next run starts at page: {report.next_cursor}"]
    if download_folder is not None:
        lines.append(f"Files saved to: {Path(download_folder).resolve()}")

    if report.mode == "limited" and not report.target_reached:
        lines += [
            "",
            f"Only found {report.ai_transcripts}/{report.target_ai_transcripts} AI transcripts.",
            "Run again to scan more records, or use batch mode.",
        ]
    elif report.mode == "unlimited" and report.fetched >= report.max_records_to_scan:
        lines += ["", f"Scanned {report.max_records_to_scan} records. Run again to continue."]
    elif report.new_records_processed == 0:
        lines += ["", "No new conversations — archive is up to date."]

    lines.append("=" * 60)
    return "\n".join(lines)

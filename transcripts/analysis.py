"""Salesloft Transcript Sync — conversation availability breakdown."""
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List

from transcripts.models import ConversationRecord


@dataclass
class ConversationSummary:
    total: int = 0
    with_transcripts: int = 0
    by_media_type: Counter = field(default_factory=Counter)
    by_platform: Counter = field(default_factory=Counter)
    by_status: Counter = field(default_factory=Counter)
    transcripts_by_media_type: Counter = field(default_factory=Counter)
    transcripts_by_platform: Counter = field(default_factory=Counter)
    samples: List[ConversationRecord] = field(default_factory=list)

    @property
    def without_transcripts(self) -> int:
        return self.total - self.with_transcripts


def summarize_conversations(records: List[ConversationRecord], sample_size: int = 10) -> ConversationSummary:
    summary = ConversationSummary(total=len(records))
    for record in records:
        status = record.raw.get("status") or "unknown"
        summary.by_media_type[record.media_type] += 1
        summary.by_platform[record.platform] += 1
        summary.by_status[status] += 1
        if record.transcription is not None:
            summary.with_transcripts += 1
            summary.transcripts_by_media_type[record.media_type] += 1
            summary.transcripts_by_platform[record.platform] += 1
            if len(summary.samples) < sample_size:
                summary.samples.append(record)
    return summary


def format_breakdown(counts: Counter, with_transcripts: Dict[str, int] = None) -> List[str]:
    lines = []
    for key, count in counts.most_common():
        line = f"  {key:<20} {count:>3} total"
        if with_transcripts is not None:
            line += f"  ({with_transcripts.get(key, 0)} with transcripts)"
        lines.append(line)
    return lines

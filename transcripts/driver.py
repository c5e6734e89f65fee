"""Salesloft Transcript Sync — sync driver.

One bounded, restartable run:

    load progress → fetch window from cursor → filter → dedup →
    resolve → archive → mark processed → checkpoint → final flush

Safe to run repeatedly: processed ids only grow and the cursor only moves
forward, so a source with no new data converges to zero new work.
"""
import logging
import time
from typing import Callable, List, Optional

from config.settings import SyncProfile
from transcripts.archive import ArchiveSink
from transcripts.models import (
    ConversationRecord,
    CrmLinkage,
    ProgressState,
    RunReport,
)
from transcripts.progress import ProgressStore
from transcripts.resolver import TranscriptResolver

logger = logging.getLogger("transcript_sync.driver")

MODE_LIMITED = "limited"
MODE_UNLIMITED = "unlimited"


class SyncDriver:
    """Ties the Salesloft client, progress store, resolver and sink together."""

    def __init__(self, client, store: ProgressStore, sink: ArchiveSink,
                 profile: SyncProfile, resolver: Optional[TranscriptResolver] = None,
                 sleep: Callable[[float], None] = time.sleep):
        if profile.mode not in (MODE_LIMITED, MODE_UNLIMITED):
            raise ValueError(f"Unknown sync mode: {profile.mode!r}")
        if profile.mode == MODE_LIMITED and not profile.target_ai_transcripts:
            raise ValueError("Limited mode needs a positive target_ai_transcripts")

        self.client = client
        self.store = store
        self.sink = sink
        self.profile = profile
        self.resolver = resolver or TranscriptResolver(client)
        self._sleep = sleep

    # -------------------------------------------------------
    # Filter stage
    # -------------------------------------------------------

    def _filter(self, records: List[ConversationRecord], state: ProgressState,
                report: RunReport) -> List[ConversationRecord]:
        eligible = []
        seen = set()
        for record in records:
            if record.id in state.processed_ids:
                report.skipped_already_processed += 1
                continue

            if record.transcription is None:
                logger.debug(f"Conversation {record.id}: no AI transcription available")
                report.skipped_no_transcription += 1
                continue

            # Unknown duration passes
            if record.duration is not None and record.duration < self.profile.min_duration:
                logger.debug(
                    f"Conversation {record.id}: duration {record.duration}s below "
                    f"minimum {self.profile.min_duration}s"
                )
                report.skipped_too_short += 1
                continue

            # Overlapping pages can repeat a conversation
            if record.id in seen:
                report.duplicates_in_batch += 1
                continue

            seen.add(record.id)
            eligible.append(record)

        report.eligible = len(eligible)
        return eligible

    # -------------------------------------------------------
    # Per-record work
    # -------------------------------------------------------

    def _crm_linkage(self, record: ConversationRecord) -> Optional[CrmLinkage]:
        """Look up CRM ids for the person/account. Lookup failures leave them blank."""
        if not record.has_crm_links:
            return None

        crm = CrmLinkage(
            conversation_id=record.id,
            person_id=record.person_id,
            account_id=record.account_id,
        )
        if record.person_id:
            try:
                person = self.client.fetch_person_details(record.person_id)
                if person and person.get("data"):
                    crm.person_crm_id = person["data"].get("crm_id") or None
            except Exception as e:
                logger.warning(f"Conversation {record.id}: person lookup failed: {e}")
        if record.account_id:
            try:
                account = self.client.fetch_account_details(record.account_id)
                if account and account.get("data"):
                    crm.account_crm_id = account["data"].get("crm_id") or None
            except Exception as e:
                logger.warning(f"Conversation {record.id}: account lookup failed: {e}")
        return crm

    def _process(self, record: ConversationRecord, report: RunReport):
        resolved = self.resolver.resolve(record)
        crm = self._crm_linkage(record)
        artifact = self.sink.store(record, resolved, crm)

        report.artifacts.append(artifact)
        report.count(artifact.classification)
        if artifact.drive_file is not None:
            report.drive_uploads += 1
        elif self.sink.drive_enabled:
            report.drive_failures += 1
        if artifact.mapping_written:
            report.mapping_rows += 1

    def _target_reached(self, report: RunReport) -> bool:
        return (
            self.profile.mode == MODE_LIMITED
            and report.ai_transcripts >= self.profile.target_ai_transcripts
        )

    # -------------------------------------------------------
    # Run
    # -------------------------------------------------------

    def run(self) -> RunReport:
        """
        Execute one sync run and return its report.
        A failure of the initial listing propagates; everything else is
        contained per record.
        """
        profile = self.profile
        state = self.store.load()
        report = RunReport(
            mode=profile.mode,
            target_ai_transcripts=profile.target_ai_transcripts if profile.mode == MODE_LIMITED else None,
            max_records_to_scan=profile.max_records_to_scan,
            start_cursor=state.next_page_cursor,
            next_cursor=state.next_page_cursor,
        )
        logger.info(
            f"Sync starting: mode={profile.mode}, previously processed={len(state.processed_ids)}, "
            f"cursor={state.next_page_cursor}"
        )

        page = self.client.list_conversations(profile.max_records_to_scan, state.next_page_cursor)
        # Never move backwards
        new_cursor = max(page.next_page, state.next_page_cursor)
        report.fetched = len(page.records)
        report.next_cursor = new_cursor

        records = self._filter(page.records, state, report)
        logger.info(f"{len(records)} of {len(page.records)} conversations passed filters")

        try:
            for i, record in enumerate(records):
                if self._target_reached(report):
                    report.target_reached = True
                    logger.info(f"Target reached: {report.ai_transcripts} AI transcripts — stopping")
                    break

                if i > 0 and profile.api_delay_seconds > 0:
                    self._sleep(profile.api_delay_seconds)

                report.attempted += 1
                try:
                    self._process(record, report)
                    report.succeeded += 1
                except Exception as e:
                    logger.error(f"Failed to process conversation {record.id}: {e}", exc_info=True)
                    report.failed += 1
                    report.failures.append((record.id, str(e)))

                # Marked either way so a broken record is never retried
                state.processed_ids.add(record.id)

                if report.attempted % profile.checkpoint_every == 0:
                    if self.store.save(state, new_cursor):
                        report.checkpoints += 1
                        logger.info(f"Checkpoint: {len(state.processed_ids)} processed ids saved")
                    else:
                        logger.warning(f"Checkpoint after {report.attempted} records was not saved")

            if not report.target_reached and self._target_reached(report):
                report.target_reached = True
        finally:
            # Nothing new and cursor unchanged: leave the file untouched
            if report.attempted or new_cursor != report.start_cursor:
                self.store.save(state, new_cursor)
            report.total_processed = len(state.processed_ids)
            logger.info(
                f"Sync finished: {report.succeeded} processed, {report.failed} failed, "
                f"{report.ai_transcripts} AI transcripts, next cursor={new_cursor}"
            )

        return report


def run_sync(profile: SyncProfile, client, store: ProgressStore, sink: ArchiveSink,
             sleep: Callable[[float], None] = time.sleep) -> RunReport:
    """Convenience wrapper: build a driver and run it once."""
    return SyncDriver(client, store, sink, profile, sleep=sleep).run()

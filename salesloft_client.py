"""
Salesloft Transcript Sync — Salesloft API Client
Read-only wrapper over the Salesloft v2 REST API: conversations, AI
transcription sentences, call activities, notes, people and accounts.
Failures propagate to the caller except for the person/account enrichment
lookups, which degrade to None.
"""
import logging
import math
import time
from typing import Optional

import httpx

from config.settings import config
from transcripts.models import ConversationPage, ConversationRecord

logger = logging.getLogger("transcript_sync.salesloft")

# Salesloft refuses per_page above 100
_MAX_PER_PAGE = 100
_MAX_RETRIES = 4
_MAX_BACKOFF = 30


class SalesloftAPIError(Exception):
    """Non-2xx response (after retries) from the Salesloft API."""

    def __init__(self, method: str, path: str, status_code: Optional[int], detail: str = ""):
        self.method = method
        self.path = path
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"Salesloft API {method} {path} → {status_code}: {detail}")


def join_sentences(sentences: list) -> str:
    """Concatenate ordered sentence fragments with single spaces."""
    return " ".join((s.get("text") or "").strip() for s in sentences if (s.get("text") or "").strip())


class SalesloftClient:
    """Salesloft API v2 wrapper with 429 backoff."""

    def __init__(self, api_key: str = None, base_url: str = None,
                 per_page: int = None, timeout: float = None,
                 transport: httpx.BaseTransport = None):
        self._api_key = api_key if api_key is not None else config.salesloft.api_key
        if not self._api_key:
            logger.warning("SALESLOFT_API_KEY not set — Salesloft client will not work")

        self._base_url = base_url or config.salesloft.base_url
        self._per_page = min(per_page or config.salesloft.per_page, _MAX_PER_PAGE)
        self._client = httpx.Client(
            base_url=self._base_url,
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout or config.salesloft.timeout,
            transport=transport,
        )
        self._request_count = 0

    # -------------------------------------------------------
    # Transport
    # -------------------------------------------------------

    def _get(self, path: str, params: dict = None) -> dict:
        """
        GET with retry on 429 and timeouts.
        Raises SalesloftAPIError on any other non-2xx response.
        """
        backoff = 1
        for attempt in range(_MAX_RETRIES):
            self._request_count += 1
            try:
                resp = self._client.get(path, params=params)
            except httpx.TimeoutException:
                logger.warning(f"Salesloft timeout: GET {path} (attempt {attempt + 1})")
                time.sleep(backoff)
                backoff = min(backoff * 2, _MAX_BACKOFF)
                continue

            if resp.status_code == 429:
                retry_after = resp.headers.get("Retry-After")
                wait = int(retry_after) if retry_after and retry_after.isdigit() else backoff
                logger.warning(f"Salesloft 429 rate limited — sleeping {wait}s (attempt {attempt + 1})")
                time.sleep(wait)
                backoff = min(backoff * 2, _MAX_BACKOFF)
                continue

            if resp.status_code >= 400:
                raise SalesloftAPIError("GET", path, resp.status_code, resp.text[:200])

            return resp.json()

        raise SalesloftAPIError("GET", path, None, "exhausted retries")

    @property
    def request_count(self) -> int:
        return self._request_count

    # -------------------------------------------------------
    # Conversations
    # -------------------------------------------------------

    def list_conversations(self, max_records: int = 100, start_page: int = 1) -> ConversationPage:
        """
        GET /conversations.json page by page from start_page.
        Stops at max_records, on an empty page, or when paging.next_page is
        missing. In the last case next_page still moves past the final page
        so the following run does not refetch it.
        """
        logger.info(f"Fetching up to {max_records} conversations (starting at page {start_page})")

        records = []
        current_page = start_page
        max_pages = max(1, math.ceil(max_records / self._per_page))

        while len(records) < max_records and (current_page - start_page) < max_pages:
            data = self._get(
                "/conversations.json",
                params={"per_page": self._per_page, "page": current_page},
            )
            page_records = data.get("data") or []
            if not page_records:
                logger.info(f"Page {current_page} returned no records — reached end of data")
                break

            records.extend(ConversationRecord.from_api(r) for r in page_records)

            paging = (data.get("metadata") or {}).get("paging") or {}
            if not paging.get("next_page"):
                logger.info(f"Page {current_page} is the last page")
                current_page += 1
                break

            logger.debug(f"Fetched page {current_page}: {len(page_records)} records (total {len(records)})")
            current_page += 1

        if len(records) > max_records:
            records = records[:max_records]

        logger.info(f"Found {len(records)} conversations (pages {start_page}-{current_page - 1})")
        return ConversationPage(records=records, next_page=current_page)

    def find_conversation_for_call(self, call_record_id: str) -> Optional[dict]:
        """
        Scan the most recent conversations for one whose call_id matches.
        The API returns call_id as a string, so compare as strings.
        """
        data = self._get("/conversations.json", params={"per_page": _MAX_PER_PAGE})
        for conv in data.get("data") or []:
            if str(conv.get("call_id")) == str(call_record_id):
                logger.debug(f"Matched conversation {conv.get('id')} for call {call_record_id}")
                return conv
        return None

    def fetch_conversation_for_call_uuid(self, call_uuid: str) -> Optional[dict]:
        """GET /conversations/calls.json?call_uuid=... — first match or None."""
        data = self._get("/conversations/calls.json", params={"call_uuid": call_uuid})
        matches = data.get("data")
        if isinstance(matches, list):
            return matches[0] if matches else None
        return matches or None

    # -------------------------------------------------------
    # Transcripts
    # -------------------------------------------------------

    def fetch_transcription_sentences(self, transcription_id: str) -> list:
        """
        GET /transcriptions/{id}/sentences.json — every page.
        Page count comes from paging.total_count / paging.per_page.
        Returned fragments are sorted by order_number.
        """
        sentences = []
        current_page = 1
        total_pages = 1

        while current_page <= total_pages:
            data = self._get(
                f"/transcriptions/{transcription_id}/sentences.json",
                params={"per_page": _MAX_PER_PAGE, "page": current_page},
            )
            sentences.extend(data.get("data") or [])

            paging = (data.get("metadata") or {}).get("paging") or {}
            total_count = paging.get("total_count")
            per_page = paging.get("per_page")
            if total_count is not None and per_page:
                total_pages = math.ceil(total_count / per_page) or 1

            current_page += 1

        return sorted(sentences, key=lambda s: s.get("order_number") or 0)

    def fetch_call_activity(self, call_id: str) -> dict:
        """GET /activities/calls/{id}.json"""
        return self._get(f"/activities/calls/{call_id}.json")

    def fetch_note_content(self, note_id: str) -> dict:
        """GET /notes/{id}.json"""
        return self._get(f"/notes/{note_id}.json")

    # -------------------------------------------------------
    # CRM enrichment (never raises)
    # -------------------------------------------------------

    def fetch_person_details(self, person_id: str) -> Optional[dict]:
        """GET /people/{id}.json — None on failure."""
        try:
            return self._get(f"/people/{person_id}.json")
        except Exception as e:
            logger.warning(f"Could not fetch person {person_id}: {e}")
            return None

    def fetch_account_details(self, account_id: str) -> Optional[dict]:
        """GET /accounts/{id}.json — None on failure."""
        try:
            return self._get(f"/accounts/{account_id}.json")
        except Exception as e:
            logger.warning(f"Could not fetch account {account_id}: {e}")
            return None

    # -------------------------------------------------------
    # Cleanup
    # -------------------------------------------------------

    def close(self):
        """Close the HTTP client."""
        self._client.close()
        logger.debug("Salesloft client closed")

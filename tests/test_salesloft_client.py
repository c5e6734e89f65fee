"""
Unit tests for the Salesloft client — paging, retries, sentence assembly.
All HTTP goes through httpx.MockTransport; no network.
"""
import os
import sys
import unittest
from unittest.mock import patch

import httpx

# Ensure the project root is on the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from salesloft_client import SalesloftAPIError, SalesloftClient, join_sentences


def _conversation(cid, **extra):
    payload = {"id": cid, "media_type": "call", "platform": "dialer", "duration": 120}
    payload.update(extra)
    return payload


def _page(records, next_page):
    return {"data": records, "metadata": {"paging": {"next_page": next_page}}}


def _client(handler, per_page=100):
    return SalesloftClient(
        api_key="test_key",
        base_url="https://api.example.test/v2",
        per_page=per_page,
        transport=httpx.MockTransport(handler),
    )


class TestListConversations(unittest.TestCase):

    def test_pages_until_max_records_and_truncates(self):
        requested = []

        def handler(request):
            page = int(request.url.params["page"])
            requested.append(page)
            ids = [f"c{page}a", f"c{page}b"]
            return httpx.Response(200, json=_page([_conversation(i) for i in ids], page + 1))

        client = _client(handler, per_page=2)
        result = client.list_conversations(max_records=5, start_page=1)

        self.assertEqual(requested, [1, 2, 3])
        self.assertEqual(len(result.records), 5)
        self.assertEqual(result.next_page, 4)

    def test_starts_from_cursor(self):
        requested = []

        def handler(request):
            requested.append(int(request.url.params["page"]))
            return httpx.Response(200, json=_page([_conversation("x")], 8))

        client = _client(handler)
        result = client.list_conversations(max_records=100, start_page=7)

        self.assertEqual(requested, [7])
        self.assertEqual(result.next_page, 8)

    def test_last_page_advances_cursor_past_it(self):
        def handler(request):
            return httpx.Response(200, json=_page([_conversation("only")], None))

        result = _client(handler).list_conversations(max_records=500, start_page=3)
        self.assertEqual([r.id for r in result.records], ["only"])
        self.assertEqual(result.next_page, 4)

    def test_empty_page_stops_without_advancing(self):
        def handler(request):
            return httpx.Response(200, json=_page([], None))

        result = _client(handler).list_conversations(max_records=500, start_page=5)
        self.assertEqual(result.records, [])
        self.assertEqual(result.next_page, 5)

    def test_records_are_parsed(self):
        payload = _conversation(
            "conv-1",
            transcription={"id": "t-1"},
            call_id=42,
            person={"id": 7},
            account={"id": 9},
        )

        def handler(request):
            return httpx.Response(200, json=_page([payload], None))

        record = _client(handler).list_conversations(10).records[0]
        self.assertEqual(record.id, "conv-1")
        self.assertEqual(record.transcription.id, "t-1")
        self.assertEqual(record.call_id, "42")
        self.assertEqual(record.person_id, "7")
        self.assertEqual(record.account_id, "9")
        self.assertEqual(record.duration, 120.0)

    def test_http_error_raises(self):
        def handler(request):
            return httpx.Response(500, text="boom")

        with self.assertRaises(SalesloftAPIError) as ctx:
            _client(handler).list_conversations(10)
        self.assertEqual(ctx.exception.status_code, 500)

    def test_sends_bearer_token(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json=_page([], None))

        _client(handler).list_conversations(10)
        self.assertEqual(seen["auth"], "Bearer test_key")


class TestRateLimiting(unittest.TestCase):

    @patch("salesloft_client.time.sleep")
    def test_429_is_retried_with_retry_after(self, mock_sleep):
        calls = []

        def handler(request):
            calls.append(1)
            if len(calls) == 1:
                return httpx.Response(429, headers={"Retry-After": "3"})
            return httpx.Response(200, json={"data": {"id": 1}})

        client = _client(handler)
        result = client.fetch_call_activity("1")

        self.assertEqual(result, {"data": {"id": 1}})
        mock_sleep.assert_called_once_with(3)
        self.assertEqual(client.request_count, 2)

    @patch("salesloft_client.time.sleep")
    def test_persistent_429_gives_up(self, mock_sleep):
        def handler(request):
            return httpx.Response(429)

        with self.assertRaises(SalesloftAPIError):
            _client(handler).fetch_call_activity("1")
        self.assertEqual(mock_sleep.call_count, 4)


class TestTranscriptionSentences(unittest.TestCase):

    def test_fetches_every_page_and_sorts(self):
        pages = {
            1: [{"order_number": 3, "text": "three"}, {"order_number": 1, "text": "one"}],
            2: [{"order_number": 2, "text": "two"}],
        }

        def handler(request):
            page = int(request.url.params["page"])
            return httpx.Response(200, json={
                "data": pages[page],
                "metadata": {"paging": {"total_count": 3, "per_page": 2}},
            })

        sentences = _client(handler).fetch_transcription_sentences("t-1")
        self.assertEqual([s["text"] for s in sentences], ["one", "two", "three"])

    def test_join_sentences(self):
        sentences = [{"text": " Hello "}, {"text": ""}, {"text": "world"}, {}]
        self.assertEqual(join_sentences(sentences), "Hello world")


class TestLookups(unittest.TestCase):

    def test_find_conversation_for_call_matches_as_string(self):
        def handler(request):
            return httpx.Response(200, json={"data": [
                _conversation("a", call_id="11"),
                _conversation("b", call_id="12"),
            ]})

        conv = _client(handler).find_conversation_for_call(12)
        self.assertEqual(conv["id"], "b")

    def test_find_conversation_for_call_no_match(self):
        def handler(request):
            return httpx.Response(200, json={"data": [_conversation("a", call_id="11")]})

        self.assertIsNone(_client(handler).find_conversation_for_call("99"))

    def test_person_lookup_failure_returns_none(self):
        def handler(request):
            return httpx.Response(404, text="not found")

        self.assertIsNone(_client(handler).fetch_person_details("1"))
        self.assertIsNone(_client(handler).fetch_account_details("1"))


if __name__ == "__main__":
    unittest.main()

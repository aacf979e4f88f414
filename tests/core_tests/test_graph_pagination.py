"""Tests for graphcore/graph/pagination.py (tokens, queries, normalizing, aggregation)."""

from __future__ import annotations

import unittest
from urllib.parse import parse_qs, quote, unquote

from graphcore.graph.pagination import (
    AggregatedListResponse,
    CursorToken,
    ListRequest,
    ListResponse,
    OffsetToken,
    aggregate,
    build_query,
    build_url,
    decode_page_token,
    encode_page_params,
    normalize_page,
    normalize_payload,
    parse_page_token,
)

BASE = "https://graph.microsoft.com/v1.0/me/drive/root/children"


def cursor_link(token: str) -> str:
    return f"{BASE}?$top=10&$skiptoken={quote(token, safe='')}"


def offset_link(n: int) -> str:
    return f"{BASE}?$skip={n}&$top=10"


# -------------------- Token decoding --------------------

class TestDecodePageToken(unittest.TestCase):
    def test_skiptoken(self):
        self.assertEqual(decode_page_token(f"{BASE}?$skiptoken=abc123xyz"), "abc123xyz")

    def test_skip_offset(self):
        self.assertEqual(decode_page_token(f"{BASE}?$skip=50&$top=50"), "50")

    def test_cursor_wins_over_offset(self):
        self.assertEqual(decode_page_token(f"{BASE}?$skip=50&$skiptoken=abc123"), "abc123")

    def test_malformed_link_yields_empty(self):
        self.assertEqual(decode_page_token("not a valid url %%"), "")

    def test_empty_and_none(self):
        for link in ("", None, "?", "&&&", f"{BASE}?$top=5", f"{BASE}?$skiptoken="):
            with self.subTest(link=link):
                self.assertEqual(decode_page_token(link), "")

    def test_bad_ipv6_host_yields_empty(self):
        self.assertEqual(decode_page_token("http://[::1/items?$skiptoken=x"), "")

    def test_cursor_round_trip(self):
        for token in ("abc", "X'12345'", "a+b/c==", "tok en", "RFNwdAIAAQAAAD8"):
            with self.subTest(token=token):
                self.assertEqual(decode_page_token(cursor_link(token)), token)

    def test_offset_round_trip(self):
        for n in (0, 1, 50, 1000000):
            with self.subTest(n=n):
                self.assertEqual(decode_page_token(offset_link(n)), str(n))


class TestParsePageToken(unittest.TestCase):
    def test_empty_is_none(self):
        self.assertIsNone(parse_page_token(None))
        self.assertIsNone(parse_page_token(""))

    def test_digits_are_offsets(self):
        self.assertEqual(parse_page_token("50"), OffsetToken(50))

    def test_other_text_is_cursor(self):
        self.assertEqual(parse_page_token("abc123"), CursorToken("abc123"))
        self.assertEqual(parse_page_token("-5"), CursorToken("-5"))

    def test_str_gives_wire_value(self):
        self.assertEqual(str(OffsetToken(7)), "7")
        self.assertEqual(str(CursorToken("x")), "x")


# -------------------- Query building --------------------

class TestEncodePageParams(unittest.TestCase):
    def test_cursor_token(self):
        req = ListRequest("/me/events", continuation=CursorToken("tok"))
        self.assertEqual(encode_page_params(req), [("$skiptoken", "tok")])

    def test_offset_token(self):
        req = ListRequest("/me/events", continuation=OffsetToken(20))
        self.assertEqual(encode_page_params(req), [("$skip", "20")])

    def test_zero_offset_token_emits_nothing(self):
        req = ListRequest("/me/events", continuation=OffsetToken(0))
        self.assertEqual(encode_page_params(req), [])

    def test_skip_offset_without_token(self):
        req = ListRequest("/me/messages", skip_offset=30)
        self.assertEqual(encode_page_params(req), [("$skip", "30")])

    def test_token_overrides_skip_offset(self):
        req = ListRequest("/me/messages", skip_offset=100, continuation=CursorToken("tok"))
        self.assertEqual(encode_page_params(req), [("$skiptoken", "tok")])

    def test_offset_token_overrides_skip_offset(self):
        req = ListRequest("/me/messages", skip_offset=100, continuation=OffsetToken(40))
        self.assertEqual(encode_page_params(req), [("$skip", "40")])


class TestBuildQuery(unittest.TestCase):
    def test_continuation_suppresses_offset(self):
        req = ListRequest("/me/messages", skip_offset=100, continuation=CursorToken("tok"))
        query = build_query(req)
        self.assertIn("$skiptoken=tok", query)
        self.assertNotIn("$skip=", query)

    def test_parameter_order(self):
        req = ListRequest(
            "/me/calendarView",
            limit=10,
            continuation=CursorToken("abc"),
            filter_expression="isCancelled eq false",
            order_by="start/dateTime",
        )
        query = build_query(req, fixed_params=(("startDateTime", "s"), ("endDateTime", "e")))
        keys = [part.split("=", 1)[0] for part in query.split("&")]
        self.assertEqual(
            keys, ["startDateTime", "endDateTime", "$top", "$filter", "$orderby", "$skiptoken"]
        )

    def test_empty_values_omitted(self):
        req = ListRequest("/me/events", limit=0)
        self.assertEqual(build_query(req, fixed_params=(("a", None), ("b", ""))), "")

    def test_negative_limit_omitted(self):
        self.assertEqual(build_query(ListRequest("/me/events", limit=-3)), "")

    def test_values_are_percent_encoded(self):
        req = ListRequest("/me/messages", filter_expression="subject eq 'a b'")
        query = build_query(req)
        self.assertIn("$filter=subject%20eq%20%27a%20b%27", query)
        self.assertEqual(parse_qs(query)["$filter"], ["subject eq 'a b'"])

    def test_filter_clauses_are_anded(self):
        req = ListRequest("/me/messages", filter_expression="isRead eq false")
        query = build_query(req, filter_clauses=["receivedDateTime ge 2024-01-01T00:00:00Z", None])
        self.assertEqual(
            parse_qs(query)["$filter"],
            ["receivedDateTime ge 2024-01-01T00:00:00Z and isRead eq false"],
        )

    def test_or_clause_is_parenthesized_when_combined(self):
        req = ListRequest("/me/events", filter_expression="a eq 1 or b eq 2")
        query = build_query(req, filter_clauses=["c eq 3"])
        self.assertEqual(parse_qs(query)["$filter"], ["c eq 3 and (a eq 1 or b eq 2)"])

    def test_single_or_clause_left_alone(self):
        req = ListRequest("/me/events", filter_expression="a eq 1 or b eq 2")
        self.assertEqual(parse_qs(build_query(req))["$filter"], ["a eq 1 or b eq 2"])

    def test_duplicate_keys_keep_first(self):
        req = ListRequest("/me/events", limit=5)
        query = build_query(req, fixed_params=(("$top", "99"),))
        self.assertEqual(query, "$top=99")


class TestBuildUrl(unittest.TestCase):
    def test_no_query_no_question_mark(self):
        self.assertEqual(build_url(ListRequest("/me/events")), "/me/events")

    def test_with_query(self):
        url = build_url(ListRequest("/me/events", limit=25))
        self.assertEqual(url, "/me/events?$top=25")

    def test_cursor_with_reserved_characters_survives(self):
        url = build_url(ListRequest("/me/events", continuation=CursorToken("a+b/c=")))
        self.assertEqual(unquote(url.split("$skiptoken=", 1)[1]), "a+b/c=")


# -------------------- Normalizing --------------------

class TestNormalize(unittest.TestCase):
    def test_two_items_no_link(self):
        resp = normalize_page([{"id": 1}, {"id": 2}])
        self.assertEqual(resp.count, 2)
        self.assertFalse(resp.has_more)
        self.assertIsNone(resp.next_token)

    def test_next_link_sets_token(self):
        resp = normalize_page([{"id": 1}], f"{BASE}?$skiptoken=next")
        self.assertTrue(resp.has_more)
        self.assertEqual(resp.next_token, "next")

    def test_undecodable_link_means_no_more(self):
        resp = normalize_page([{"id": 1}], f"{BASE}?$top=1")
        self.assertFalse(resp.has_more)
        self.assertIsNone(resp.next_token)

    def test_empty_items(self):
        for raw in (None, [], ()):
            with self.subTest(raw=raw):
                resp = normalize_page(raw)
                self.assertEqual(resp.count, 0)
                self.assertEqual(resp.items, ())

    def test_order_preserved(self):
        resp = normalize_page(iter(["c", "a", "b"]))
        self.assertEqual(resp.items, ("c", "a", "b"))

    def test_has_more_matches_token(self):
        for link in (None, "", "%%", f"{BASE}?$skip=10", f"{BASE}?$skiptoken=z"):
            with self.subTest(link=link):
                resp = normalize_page([], link)
                self.assertEqual(resp.has_more, bool(resp.next_token))

    def test_payload(self):
        resp = normalize_payload({
            "value": [{"id": "m1"}],
            "@odata.nextLink": f"{BASE}?$skip=10",
        })
        self.assertEqual(resp.items, ({"id": "m1"},))
        self.assertEqual(resp.next_token, "10")

    def test_payload_missing_value(self):
        self.assertEqual(normalize_payload({}).count, 0)
        self.assertEqual(normalize_payload(None).count, 0)

    def test_list_response_defaults(self):
        resp = ListResponse()
        self.assertEqual(resp.count, 0)
        self.assertFalse(resp.has_more)


# -------------------- Aggregation --------------------

class TestAggregate(unittest.TestCase):
    def test_failed_source_is_skipped(self):
        pages = {
            "A": ListResponse(items=("a1", "a2")),
            "C": ListResponse(items=("c1",)),
        }

        def fetch(source):
            if source == "B":
                raise RuntimeError("boom")
            return pages[source]

        result = aggregate(lambda: ["A", "B", "C"], fetch)
        self.assertEqual(result.items, ("a1", "a2", "c1"))
        self.assertEqual([s for s, _ in result.succeeded], ["A", "C"])
        self.assertEqual(len(result.failed), 1)
        self.assertEqual(result.failed[0][0], "B")
        self.assertIsInstance(result.failed[0][1], RuntimeError)

    def test_enumeration_failure_propagates(self):
        def list_sources():
            raise RuntimeError("cannot list")

        with self.assertRaises(RuntimeError):
            aggregate(list_sources, lambda s: ListResponse())

    def test_never_paginated(self):
        result = aggregate(
            lambda: ["A"],
            lambda s: ListResponse(items=("x",), next_token="more"),
        )
        self.assertFalse(result.has_more)
        self.assertIsNone(result.next_token)
        self.assertEqual(result.count, 1)

    def test_tag_stamps_source(self):
        result = aggregate(
            lambda: ["cal1", "cal2"],
            lambda s: ListResponse(items=({"id": f"e-{s}"},)),
            tag=lambda item, s: {**item, "calendarId": s},
        )
        self.assertEqual(
            list(result.items),
            [{"id": "e-cal1", "calendarId": "cal1"}, {"id": "e-cal2", "calendarId": "cal2"}],
        )

    def test_no_sources(self):
        result = aggregate(lambda: [], lambda s: ListResponse())
        self.assertIsInstance(result, AggregatedListResponse)
        self.assertEqual(result.count, 0)
        self.assertEqual(result.failed, ())


if __name__ == "__main__":
    unittest.main()

"""Tests for graphcore/graph/mail.py."""

from __future__ import annotations

import unittest
from urllib.parse import parse_qs, urlsplit

from graphcore.cli_errors import UsageError
from graphcore.graph.mail import MailOperations, build_message, split_addresses
from graphcore.graph.models import MessageListOptions
from tests.fakes import make_graph_client


def query_of(path):
    return parse_qs(urlsplit(path).query)


class TestBuildMessage(unittest.TestCase):
    def test_split_addresses(self):
        self.assertEqual(split_addresses(" a@x.com, ,b@x.com "), ["a@x.com", "b@x.com"])
        self.assertEqual(split_addresses(None), [])

    def test_minimal_message(self):
        msg = build_message("Hi", "a@x.com", "Hello")
        self.assertEqual(msg["subject"], "Hi")
        self.assertEqual(msg["body"], {"contentType": "Text", "content": "Hello"})
        self.assertEqual(msg["toRecipients"], [{"emailAddress": {"address": "a@x.com"}}])
        self.assertNotIn("ccRecipients", msg)
        self.assertNotIn("bccRecipients", msg)

    def test_cc_and_bcc(self):
        msg = build_message("Hi", "a@x.com", "<p>x</p>", "HTML", cc="c@x.com", bcc="d@x.com,e@x.com")
        self.assertEqual(msg["body"]["contentType"], "HTML")
        self.assertEqual(len(msg["ccRecipients"]), 1)
        self.assertEqual(len(msg["bccRecipients"]), 2)


class TestListMessages(unittest.TestCase):
    def test_default_page_size(self):
        client = make_graph_client({"/me/messages": {"value": [{"id": "m1"}]}})
        resp = MailOperations(client).list_messages()
        self.assertEqual(resp.count, 1)
        self.assertEqual(client.gets, ["/me/messages?$top=100"])

    def test_folder_path(self):
        client = make_graph_client()
        MailOperations(client).list_messages(MessageListOptions(folder_id="inbox", top=5))
        self.assertTrue(client.gets[0].startswith("/me/mailFolders/inbox/messages?"))

    def test_next_token_from_next_link(self):
        client = make_graph_client({
            "/me/messages": {
                "value": [{"id": "m1"}],
                "@odata.nextLink": "https://graph.microsoft.com/v1.0/me/messages?$skip=100",
            }
        })
        resp = MailOperations(client).list_messages()
        self.assertTrue(resp.has_more)
        self.assertEqual(resp.next_token, "100")

    def test_numeric_page_token_sent_as_skip(self):
        client = make_graph_client()
        MailOperations(client).list_messages(MessageListOptions(page_token="100"))
        self.assertEqual(query_of(client.gets[0])["$skip"], ["100"])

    def test_page_token_wins_over_skip(self):
        client = make_graph_client()
        MailOperations(client).list_messages(MessageListOptions(skip=100, page_token="tok"))
        query = query_of(client.gets[0])
        self.assertEqual(query["$skiptoken"], ["tok"])
        self.assertNotIn("$skip", query)

    def test_date_range_and_filter(self):
        client = make_graph_client()
        MailOperations(client).list_messages(MessageListOptions(
            start_iso="2024-01-01T00:00:00Z",
            end_iso="2024-02-01T00:00:00Z",
            filter="isRead eq false",
            order_by="receivedDateTime desc",
        ))
        query = query_of(client.gets[0])
        self.assertEqual(
            query["$filter"],
            ["receivedDateTime ge 2024-01-01T00:00:00Z and "
             "receivedDateTime lt 2024-02-01T00:00:00Z and isRead eq false"],
        )
        self.assertEqual(query["$orderby"], ["receivedDateTime desc"])


class TestMessageActions(unittest.TestCase):
    def test_get_message_requires_id(self):
        with self.assertRaises(UsageError):
            MailOperations(make_graph_client()).get_message("")

    def test_get_message_quotes_id(self):
        client = make_graph_client({"/me/messages/": {"id": "a/b"}})
        self.assertEqual(MailOperations(client).get_message("a/b"), {"id": "a/b"})
        self.assertEqual(client.gets, ["/me/messages/a%2Fb"])

    def test_send_mail(self):
        client = make_graph_client()
        msg = build_message("Hi", "a@x.com", "Hello")
        MailOperations(client).send_mail(msg, save_to_sent_items=False)
        self.assertEqual(client.posts, [("/me/sendMail", {"message": msg, "saveToSentItems": False})])

    def test_send_mail_validation(self):
        ops = MailOperations(make_graph_client())
        with self.assertRaises(UsageError):
            ops.send_mail({})
        with self.assertRaises(UsageError):
            ops.send_mail({"subject": "", "toRecipients": [{}]})
        with self.assertRaises(UsageError):
            ops.send_mail({"subject": "Hi", "toRecipients": []})


if __name__ == "__main__":
    unittest.main()

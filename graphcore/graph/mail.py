"""Mail operations via Microsoft Graph."""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import quote

from graphcore.cli_errors import UsageError
from graphcore.constants import DEFAULT_MAIL_PAGE_SIZE

from .client import GraphClient
from .models import MessageListOptions
from .pagination import ListRequest, ListResponse, build_url, normalize_payload, parse_page_token


def split_addresses(addresses: Optional[str]) -> List[str]:
    """Split a comma-separated address list, dropping blanks."""
    if not addresses:
        return []
    return [a.strip() for a in addresses.split(",") if a.strip()]


def _recipients(addresses: Optional[str]) -> List[Dict[str, Any]]:
    return [{"emailAddress": {"address": a}} for a in split_addresses(addresses)]


def build_message(
    subject: str,
    to: str,
    body: str,
    body_type: str = "Text",
    cc: Optional[str] = None,
    bcc: Optional[str] = None,
) -> Dict[str, Any]:
    """Build a Graph message resource from CLI-style strings."""
    message: Dict[str, Any] = {
        "subject": subject,
        "body": {"contentType": body_type or "Text", "content": body},
        "toRecipients": _recipients(to),
    }
    cc_list = _recipients(cc)
    if cc_list:
        message["ccRecipients"] = cc_list
    bcc_list = _recipients(bcc)
    if bcc_list:
        message["bccRecipients"] = bcc_list
    return message


class MailOperations:
    """Messages in the signed-in user's mailbox."""

    def __init__(self, client: GraphClient):
        self.client = client

    @staticmethod
    def messages_path(folder_id: Optional[str] = None) -> str:
        if folder_id:
            return f"/me/mailFolders/{quote(folder_id, safe='')}/messages"
        return "/me/messages"

    def list_request(self, options: MessageListOptions) -> ListRequest:
        limit = options.top if options.top and options.top > 0 else DEFAULT_MAIL_PAGE_SIZE
        return ListRequest(
            resource_path=self.messages_path(options.folder_id),
            limit=limit,
            continuation=parse_page_token(options.page_token),
            skip_offset=options.skip,
            filter_expression=options.filter,
            order_by=options.order_by,
        )

    def list_messages(self, options: Optional[MessageListOptions] = None) -> ListResponse[Dict[str, Any]]:
        options = options or MessageListOptions()
        clauses = []
        if options.start_iso:
            clauses.append(f"receivedDateTime ge {options.start_iso}")
        if options.end_iso:
            clauses.append(f"receivedDateTime lt {options.end_iso}")
        url = build_url(self.list_request(options), filter_clauses=clauses)
        return normalize_payload(self.client.get(url))

    def get_message(self, message_id: str) -> Dict[str, Any]:
        if not message_id:
            raise UsageError("message ID is required")
        return self.client.get(f"/me/messages/{quote(message_id, safe='')}")

    def send_mail(self, message: Dict[str, Any], save_to_sent_items: bool = True) -> None:
        if not message:
            raise UsageError("message is required")
        if not message.get("subject"):
            raise UsageError("subject is required")
        if not message.get("toRecipients"):
            raise UsageError("at least one recipient is required")
        self.client.post(
            "/me/sendMail",
            {"message": message, "saveToSentItems": bool(save_to_sent_items)},
        )

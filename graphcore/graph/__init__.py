"""Microsoft Graph client, list pagination and per-resource operations."""

from .calendar import CalendarOperations
from .client import GraphClient
from .drive import DriveOperations
from .mail import MailOperations
from .pagination import (
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

__all__ = [
    "AggregatedListResponse",
    "CalendarOperations",
    "CursorToken",
    "DriveOperations",
    "GraphClient",
    "ListRequest",
    "ListResponse",
    "MailOperations",
    "OffsetToken",
    "aggregate",
    "build_query",
    "build_url",
    "decode_page_token",
    "encode_page_params",
    "normalize_page",
    "normalize_payload",
    "parse_page_token",
]

"""Paginated list retrieval for Microsoft Graph collections.

Shared by messages, calendar views, raw events and drive items:

- page token codec: ``@odata.nextLink`` -> opaque token -> ``$skiptoken``/``$skip``
- query builder: ListRequest -> query string
- normalizer: raw ``{"value": [...], "@odata.nextLink": ...}`` -> ListResponse
- aggregator: one request fanned out over several sources (all calendars)

Nothing here performs I/O or logs; callers own the HTTP client and output.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    Generic,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
    Union,
)
from urllib.parse import parse_qs, quote, urlencode, urlsplit

from graphcore.constants import (
    NEXT_LINK_KEY,
    PARAM_FILTER,
    PARAM_ORDERBY,
    PARAM_SKIP,
    PARAM_SKIPTOKEN,
    PARAM_TOP,
    VALUE_KEY,
)

T = TypeVar("T")
S = TypeVar("S")

_OFFSET_RE = re.compile(r"[0-9]+")


# -------------------- Page tokens --------------------

@dataclass(frozen=True)
class CursorToken:
    """Opaque server-issued cursor, sent back as ``$skiptoken``."""

    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class OffsetToken:
    """Numeric offset, sent back as ``$skip``."""

    value: int

    def __str__(self) -> str:
        return str(self.value)


PageToken = Union[CursorToken, OffsetToken]


def parse_page_token(text: Optional[str]) -> Optional[PageToken]:
    """Classify a ``--page-token`` string.

    Digits-only strings become offsets, anything else an opaque cursor. A
    server cursor made only of digits is therefore read as an offset.
    """
    if not text:
        return None
    if _OFFSET_RE.fullmatch(text):
        return OffsetToken(int(text))
    return CursorToken(text)


def decode_page_token(link: Optional[str]) -> str:
    """Extract the continuation token from a next-page link.

    ``$skiptoken`` wins over ``$skip``. Empty or unparseable links yield "".
    """
    if not link:
        return ""
    try:
        query = parse_qs(urlsplit(link).query)
    except ValueError:
        return ""
    for key in (PARAM_SKIPTOKEN, PARAM_SKIP):
        values = query.get(key) or []
        if values and values[0]:
            return values[0]
    return ""


# -------------------- Requests --------------------

@dataclass(frozen=True)
class ListRequest:
    """One page of a Graph collection.

    ``continuation`` takes precedence over ``skip_offset``; when both are set
    the offset is dropped.
    """

    resource_path: str
    limit: Optional[int] = None
    continuation: Optional[PageToken] = None
    skip_offset: Optional[int] = None
    filter_expression: Optional[str] = None
    order_by: Optional[str] = None


def encode_page_params(request: ListRequest) -> List[Tuple[str, str]]:
    """Render the pagination parameter for a request (zero or one pair)."""
    token = request.continuation
    if token is not None:
        if isinstance(token, OffsetToken):
            return [(PARAM_SKIP, str(token.value))] if token.value > 0 else []
        return [(PARAM_SKIPTOKEN, token.value)] if token.value else []
    if request.skip_offset and request.skip_offset > 0:
        return [(PARAM_SKIP, str(int(request.skip_offset)))]
    return []


def _combine_filters(clauses: Sequence[str]) -> str:
    if len(clauses) == 1:
        return clauses[0]
    parts = []
    for clause in clauses:
        if re.search(r"\sor\s", clause, flags=re.IGNORECASE):
            clause = f"({clause})"
        parts.append(clause)
    return " and ".join(parts)


def build_query(
    request: ListRequest,
    fixed_params: Iterable[Tuple[str, Any]] = (),
    filter_clauses: Iterable[Optional[str]] = (),
) -> str:
    """Render a ListRequest into a query string.

    Order: fixed params, ``$top``, ``$filter`` (filter_clauses first, then the
    request's own filter, ANDed), ``$orderby``, pagination. Empty values are
    omitted and each key appears once.
    """
    params: List[Tuple[str, str]] = []
    for key, value in fixed_params:
        if value is None or value == "":
            continue
        params.append((key, str(value)))

    if request.limit and request.limit > 0:
        params.append((PARAM_TOP, str(int(request.limit))))

    clauses = [c for c in filter_clauses if c]
    if request.filter_expression:
        clauses.append(request.filter_expression)
    if clauses:
        params.append((PARAM_FILTER, _combine_filters(clauses)))

    if request.order_by:
        params.append((PARAM_ORDERBY, request.order_by))

    params.extend(encode_page_params(request))

    seen = set()
    unique: List[Tuple[str, str]] = []
    for key, value in params:
        if key in seen:
            continue
        seen.add(key)
        unique.append((key, value))
    return urlencode(unique, quote_via=quote, safe="$")


def build_url(
    request: ListRequest,
    fixed_params: Iterable[Tuple[str, Any]] = (),
    filter_clauses: Iterable[Optional[str]] = (),
) -> str:
    """Resource path plus rendered query string (no ``?`` when empty)."""
    query = build_query(request, fixed_params, filter_clauses)
    return f"{request.resource_path}?{query}" if query else request.resource_path


# -------------------- Responses --------------------

@dataclass(frozen=True)
class ListResponse(Generic[T]):
    """A single page of results in server order."""

    items: Tuple[T, ...] = ()
    next_token: Optional[str] = None

    @property
    def count(self) -> int:
        return len(self.items)

    @property
    def has_more(self) -> bool:
        return self.next_token is not None


def normalize_page(raw_items: Optional[Iterable[T]], continuation_link: Optional[str] = None) -> ListResponse[T]:
    """Build a ListResponse from raw items and an optional next-page link."""
    items = tuple(raw_items or ())
    token = decode_page_token(continuation_link)
    return ListResponse(items=items, next_token=token or None)


def normalize_payload(payload: Optional[Mapping[str, Any]]) -> ListResponse[Any]:
    """Build a ListResponse from a Graph list payload."""
    payload = payload or {}
    return normalize_page(payload.get(VALUE_KEY) or [], payload.get(NEXT_LINK_KEY))


@dataclass(frozen=True)
class AggregatedListResponse(Generic[T, S]):
    """Items merged across sources; never paginated.

    ``succeeded`` and ``failed`` keep per-source outcomes so callers can
    report the sources that were skipped.
    """

    items: Tuple[T, ...] = ()
    succeeded: Tuple[Tuple[S, ListResponse[T]], ...] = ()
    failed: Tuple[Tuple[S, Exception], ...] = ()

    @property
    def count(self) -> int:
        return len(self.items)

    @property
    def has_more(self) -> bool:
        return False

    @property
    def next_token(self) -> Optional[str]:
        return None


def aggregate(
    list_sources: Callable[[], Iterable[S]],
    fetch: Callable[[S], ListResponse[T]],
    tag: Optional[Callable[[T, S], T]] = None,
) -> AggregatedListResponse[T, S]:
    """Fan one list request out over every source, sequentially.

    Errors from ``list_sources`` propagate. Errors from ``fetch`` are recorded
    in ``failed`` and that source is skipped. ``tag`` lets the caller stamp
    each item with its source.
    """
    sources = list(list_sources())
    items: List[T] = []
    succeeded: List[Tuple[S, ListResponse[T]]] = []
    failed: List[Tuple[S, Exception]] = []
    for source in sources:
        try:
            page = fetch(source)
        except Exception as exc:
            failed.append((source, exc))
            continue
        if tag is not None:
            items.extend(tag(item, source) for item in page.items)
        else:
            items.extend(page.items)
        succeeded.append((source, page))
    return AggregatedListResponse(
        items=tuple(items),
        succeeded=tuple(succeeded),
        failed=tuple(failed),
    )

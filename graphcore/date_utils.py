"""Date and time parsing for CLI flags.

Accepts RFC 3339 timestamps, local ``YYYY-MM-DDTHH:MM:SS`` and
``YYYY-MM-DD`` values, and a small natural-language vocabulary
("tomorrow", "next week", "in 3 days", "friday 2pm"). Results are always
timezone-aware; naive inputs are read in the local zone.
"""
from __future__ import annotations

import datetime as _dt
import re
from typing import Optional

from dateutil import parser as _du_parser
from dateutil import tz as _du_tz
from dateutil.relativedelta import FR, MO, SA, SU, TH, TU, WE, relativedelta

from .constants import FMT_DATETIME_SEC, FMT_DAY

__all__ = [
    "add_days",
    "format_graph_utc",
    "format_iso8601",
    "local_now",
    "parse_date",
    "parse_duration",
    "start_of_day",
]

WEEKDAY_MAP = {
    "monday": MO, "mon": MO,
    "tuesday": TU, "tue": TU, "tues": TU,
    "wednesday": WE, "wed": WE,
    "thursday": TH, "thu": TH, "thur": TH, "thurs": TH,
    "friday": FR, "fri": FR,
    "saturday": SA, "sat": SA,
    "sunday": SU, "sun": SU,
}

_UNIT_FIELDS = {
    "minute": "minutes", "min": "minutes",
    "hour": "hours", "hr": "hours",
    "day": "days",
    "week": "weeks",
    "month": "months",
    "year": "years",
}

_RFC3339_RE = re.compile(
    r"\d{4}-\d{2}-\d{2}[Tt ]\d{2}:\d{2}:\d{2}(\.\d+)?([Zz]|[+-]\d{2}:\d{2})"
)
_RELATIVE_IN_RE = re.compile(r"in (\d+|an?) ([a-z]+?)s?")
_RELATIVE_AGO_RE = re.compile(r"(\d+|an?) ([a-z]+?)s? ago")
_NEXT_LAST_RE = re.compile(r"(next|last) (week|month|year)")
_DAY_WORD_RE = re.compile(
    r"(today|tomorrow|yesterday|(?:(?:next|last|this) )?[a-z]+)(?:,? (?:at )?(.+))?"
)
_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_DURATION_UNITS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}


def local_now() -> _dt.datetime:
    return _dt.datetime.now(_du_tz.tzlocal())


def _aware(value: _dt.datetime) -> _dt.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=_du_tz.tzlocal())
    return value


def start_of_day(value: _dt.datetime) -> _dt.datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def add_days(value: _dt.datetime, days: int) -> _dt.datetime:
    """Add calendar days (wall-clock time is kept across DST changes)."""
    return value + relativedelta(days=days)


def format_iso8601(value: _dt.datetime) -> str:
    """RFC 3339 with seconds precision; ``Z`` for UTC."""
    text = value.isoformat(timespec="seconds")
    if value.tzinfo is not None and value.utcoffset() == _dt.timedelta(0):
        text = text[: -len("+00:00")] + "Z"
    return text


def format_graph_utc(value: _dt.datetime) -> str:
    """UTC wall-clock time for Graph ``dateTimeTimeZone`` values."""
    return _aware(value).astimezone(_dt.timezone.utc).strftime(FMT_DATETIME_SEC)


def parse_duration(text: str) -> _dt.timedelta:
    """Parse durations like ``30m``, ``1h``, ``1h30m``, ``90s``."""
    s = (text or "").strip().lower()
    if s == "0":
        return _dt.timedelta(0)
    parts = list(_DURATION_PART_RE.finditer(s))
    if not s or "".join(m.group(0) for m in parts) != s:
        raise ValueError(f"invalid duration {text!r}")
    seconds = sum(float(m.group(1)) * _DURATION_UNITS[m.group(2)] for m in parts)
    return _dt.timedelta(seconds=seconds)


def _amount(token: str) -> int:
    return 1 if token in ("a", "an") else int(token)


def _unit_delta(unit: str, amount: int) -> Optional[relativedelta]:
    field = _UNIT_FIELDS.get(unit)
    if field is None:
        return None
    return relativedelta(**{field: amount})


def _resolve_day(word: str, ref: _dt.datetime, past: bool) -> Optional[_dt.datetime]:
    day = start_of_day(ref)
    if word == "today":
        return day
    if word == "tomorrow":
        return add_days(day, 1)
    if word == "yesterday":
        return add_days(day, -1)

    modifier, _, name = word.rpartition(" ")
    wd = WEEKDAY_MAP.get(name)
    if wd is None:
        return None
    if modifier == "next":
        return add_days(day, 1) + relativedelta(weekday=wd(+1))
    if modifier == "last":
        return add_days(day, -1) + relativedelta(weekday=wd(-1))
    if modifier in ("", "this"):
        return day + relativedelta(weekday=wd(-1) if past else wd(+1))
    return None


def _parse_natural(s: str, ref: _dt.datetime, past: bool) -> Optional[_dt.datetime]:
    if s == "now":
        return ref

    m = _RELATIVE_IN_RE.fullmatch(s)
    if m:
        delta = _unit_delta(m.group(2), _amount(m.group(1)))
        return ref + delta if delta is not None else None

    m = _RELATIVE_AGO_RE.fullmatch(s)
    if m:
        delta = _unit_delta(m.group(2), _amount(m.group(1)))
        return ref - delta if delta is not None else None

    m = _NEXT_LAST_RE.fullmatch(s)
    if m:
        delta = _unit_delta(m.group(2), 1)
        return ref + delta if m.group(1) == "next" else ref - delta

    m = _DAY_WORD_RE.fullmatch(s)
    if m:
        day = _resolve_day(m.group(1), ref, past)
        if day is None:
            return None
        if not m.group(2):
            return day
        try:
            return _du_parser.parse(m.group(2), default=day)
        except (ValueError, OverflowError):
            return None
    return None


def parse_date(
    text: str,
    ref: Optional[_dt.datetime] = None,
    past: bool = False,
) -> _dt.datetime:
    """Parse a CLI date/time value relative to ``ref`` (default: now).

    Bare weekday names resolve forward, or backward when ``past`` is set.

    Raises:
        ValueError: when the value cannot be parsed.
    """
    s = " ".join((text or "").split())
    if not s:
        raise ValueError("could not parse date: empty date string")
    ref = _aware(ref) if ref is not None else local_now()

    if _RFC3339_RE.fullmatch(s):
        try:
            return _du_parser.isoparse(s)
        except ValueError:
            pass

    for fmt in (FMT_DATETIME_SEC, FMT_DAY):
        try:
            return _dt.datetime.strptime(s, fmt).replace(tzinfo=ref.tzinfo)
        except ValueError:
            continue

    natural = _parse_natural(s.lower(), ref, past)
    if natural is not None:
        return natural

    try:
        return _du_parser.parse(s, default=start_of_day(ref))
    except (ValueError, OverflowError) as exc:
        raise ValueError(f"could not parse date {text!r}") from exc

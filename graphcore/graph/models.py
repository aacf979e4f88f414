"""Option models for Graph list and action operations."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class MessageListOptions:
    """Options for listing mail messages."""

    folder_id: Optional[str] = None
    top: Optional[int] = None
    skip: Optional[int] = None
    page_token: Optional[str] = None
    filter: Optional[str] = None
    order_by: Optional[str] = None
    start_iso: Optional[str] = None  # receivedDateTime ge
    end_iso: Optional[str] = None  # receivedDateTime lt


@dataclass
class CalendarViewOptions:
    """Options for a calendarView query (occurrences expanded)."""

    start_iso: str
    end_iso: str
    calendar_id: Optional[str] = None
    user_id: Optional[str] = None
    all_calendars: bool = False
    top: Optional[int] = None
    page_token: Optional[str] = None


@dataclass
class EventListOptions:
    """Options for listing raw events (series masters not expanded)."""

    calendar_id: Optional[str] = None
    top: Optional[int] = None
    page_token: Optional[str] = None
    filter: Optional[str] = None


@dataclass
class FindTimeOptions:
    """Options for findMeetingTimes."""

    attendees: List[str] = field(default_factory=list)
    duration_minutes: int = 30
    start_iso: Optional[str] = None
    end_iso: Optional[str] = None
    max_candidates: int = 5
    is_organizer_optional: bool = False


@dataclass
class DriveRef:
    """Which drive to address. First set field wins: drive, user, site."""

    drive_id: Optional[str] = None
    user_id: Optional[str] = None
    site_id: Optional[str] = None


@dataclass
class DriveListOptions:
    """Options for listing drive items."""

    drive: DriveRef = field(default_factory=DriveRef)
    path: Optional[str] = None
    shared: bool = False
    top: Optional[int] = None
    page_token: Optional[str] = None
    order_by: Optional[str] = None

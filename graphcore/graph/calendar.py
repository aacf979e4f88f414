"""Calendar operations via Microsoft Graph.

Includes calendar views (single calendar or all calendars), raw events,
invitation responses, free/busy, meeting-time suggestions and creation.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Union
from urllib.parse import quote

from graphcore.cli_errors import NotFoundError, UsageError
from graphcore.constants import SCHEDULE_INTERVAL_MINUTES
from graphcore.date_utils import format_graph_utc

from .client import GraphClient
from .models import CalendarViewOptions, EventListOptions, FindTimeOptions
from .pagination import (
    AggregatedListResponse,
    ListRequest,
    ListResponse,
    aggregate,
    build_url,
    normalize_payload,
    parse_page_token,
)

PENDING_FILTER = (
    "responseStatus/response eq 'notResponded' or responseStatus/response eq 'none'"
)

RESPONSE_ENDPOINTS = {
    "accept": "accept",
    "decline": "decline",
    "tentative": "tentativelyAccept",
}

DateLike = Union[datetime, str]


def _seg(value: str) -> str:
    return quote(value, safe="")


def _owner(user_id: Optional[str]) -> str:
    return f"/users/{_seg(user_id)}" if user_id else "/me"


def _graph_time(value: DateLike) -> str:
    if isinstance(value, datetime):
        return format_graph_utc(value)
    return value


def build_event(
    subject: str,
    start: datetime,
    end: datetime,
    *,
    attendees: Optional[Iterable[str]] = None,
    location: Optional[str] = None,
    body: Optional[str] = None,
    online: bool = False,
    all_day: bool = False,
) -> Dict[str, Any]:
    """Build a Graph event resource with UTC start/end."""
    if all_day:
        first = start.date()
        last = end.date() if end.date() > first else first + timedelta(days=1)
        start_str = f"{first.isoformat()}T00:00:00"
        end_str = f"{last.isoformat()}T00:00:00"
    else:
        start_str = format_graph_utc(start)
        end_str = format_graph_utc(end)
    event: Dict[str, Any] = {
        "subject": subject,
        "start": {"dateTime": start_str, "timeZone": "UTC"},
        "end": {"dateTime": end_str, "timeZone": "UTC"},
        "isAllDay": bool(all_day),
    }
    if online:
        event["isOnlineMeeting"] = True
        event["onlineMeetingProvider"] = "teamsForBusiness"
    if location:
        event["location"] = {"displayName": location}
    if body:
        event["body"] = {"contentType": "Text", "content": body}
    people = [a.strip() for a in (attendees or []) if a and a.strip()]
    if people:
        event["attendees"] = [
            {"emailAddress": {"address": a}, "type": "required"} for a in people
        ]
    return event


class CalendarOperations:
    """Calendars and events for the signed-in user (or another user)."""

    def __init__(self, client: GraphClient):
        self.client = client

    # -------------------- Calendars --------------------
    def list_calendars(self, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        data = self.client.get(f"{_owner(user_id)}/calendars")
        return list(data.get("value") or [])

    # -------------------- Calendar view --------------------
    @staticmethod
    def calendar_view_path(calendar_id: Optional[str] = None, user_id: Optional[str] = None) -> str:
        base = _owner(user_id)
        if calendar_id:
            return f"{base}/calendars/{_seg(calendar_id)}/calendarView"
        return f"{base}/calendarView"

    def calendar_view(
        self, options: CalendarViewOptions
    ) -> Union[ListResponse[Dict[str, Any]], AggregatedListResponse[Dict[str, Any], Dict[str, Any]]]:
        """Events (recurrences expanded) between start and end.

        With ``all_calendars`` every calendar is queried and each event is
        tagged with ``calendarId``; that mode is never paginated.
        """
        if options is None:
            raise UsageError("options are required")
        if not options.start_iso or not options.end_iso:
            raise UsageError("startDateTime and endDateTime are required")
        if options.all_calendars:
            return self._calendar_view_all(options)
        return self._calendar_view_single(options)

    def _calendar_view_single(self, options: CalendarViewOptions) -> ListResponse[Dict[str, Any]]:
        request = ListRequest(
            resource_path=self.calendar_view_path(options.calendar_id, options.user_id),
            limit=options.top,
            continuation=parse_page_token(options.page_token),
        )
        url = build_url(
            request,
            fixed_params=(("startDateTime", options.start_iso), ("endDateTime", options.end_iso)),
        )
        return normalize_payload(self.client.get(url))

    def _calendar_view_all(
        self, options: CalendarViewOptions
    ) -> AggregatedListResponse[Dict[str, Any], Dict[str, Any]]:
        def fetch(calendar: Dict[str, Any]) -> ListResponse[Dict[str, Any]]:
            calendar_id = calendar.get("id")
            if not calendar_id:
                # An empty id would address the primary calendar again.
                raise NotFoundError(f"calendar {calendar.get('name') or '(unnamed)'} has no id")
            single = replace(
                options,
                calendar_id=calendar_id,
                all_calendars=False,
                page_token=None,
            )
            return self._calendar_view_single(single)

        def tag(event: Dict[str, Any], calendar: Dict[str, Any]) -> Dict[str, Any]:
            return {**event, "calendarId": calendar.get("id")}

        return aggregate(lambda: self.list_calendars(options.user_id), fetch, tag)

    # -------------------- Events --------------------
    def list_events(self, options: Optional[EventListOptions] = None) -> ListResponse[Dict[str, Any]]:
        options = options or EventListOptions()
        path = "/me/events"
        if options.calendar_id:
            path = f"/me/calendars/{_seg(options.calendar_id)}/events"
        request = ListRequest(
            resource_path=path,
            limit=options.top,
            continuation=parse_page_token(options.page_token),
            filter_expression=options.filter,
        )
        return normalize_payload(self.client.get(build_url(request)))

    def list_pending(self, top: Optional[int] = None, page_token: Optional[str] = None) -> ListResponse[Dict[str, Any]]:
        return self.list_events(EventListOptions(top=top, page_token=page_token, filter=PENDING_FILTER))

    def get_event(
        self,
        event_id: str,
        calendar_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        if not event_id:
            raise UsageError("event ID is required")
        base = _owner(user_id)
        if calendar_id:
            base = f"{base}/calendars/{_seg(calendar_id)}"
        return self.client.get(f"{base}/events/{_seg(event_id)}")

    def respond_to_event(self, event_id: str, response: str, message: str = "") -> None:
        if not event_id:
            raise UsageError("event ID is required")
        endpoint = RESPONSE_ENDPOINTS.get(response)
        if endpoint is None:
            raise UsageError(f"invalid response: {response} (must be accept, decline, or tentative)")
        body: Dict[str, Any] = {"sendResponse": True}
        if message:
            body["comment"] = message
        self.client.post(f"/me/events/{_seg(event_id)}/{endpoint}", body)

    def create_event(self, event: Dict[str, Any], calendar_id: Optional[str] = None) -> Dict[str, Any]:
        if not event:
            raise UsageError("event is required")
        if not event.get("subject"):
            raise UsageError("event subject is required")
        path = f"/me/calendars/{_seg(calendar_id)}/events" if calendar_id else "/me/events"
        return self.client.post(path, event)

    # -------------------- Availability --------------------
    def get_schedule(self, emails: List[str], start: DateLike, end: DateLike) -> Dict[str, Any]:
        if not emails:
            raise UsageError("at least one email is required")
        if not start or not end:
            raise UsageError("start and end date/time are required")
        body = {
            "schedules": list(emails),
            "startTime": {"dateTime": _graph_time(start), "timeZone": "UTC"},
            "endTime": {"dateTime": _graph_time(end), "timeZone": "UTC"},
            "availabilityViewInterval": SCHEDULE_INTERVAL_MINUTES,
        }
        return self.client.post("/me/calendar/getSchedule", body)

    def find_meeting_times(self, options: FindTimeOptions) -> Dict[str, Any]:
        if options is None:
            raise UsageError("options are required")
        if not options.attendees:
            raise UsageError("at least one attendee is required")
        body: Dict[str, Any] = {
            "attendees": [
                {"emailAddress": {"address": a}, "type": "required"} for a in options.attendees
            ],
        }
        if options.max_candidates:
            body["maxCandidates"] = options.max_candidates
        if options.is_organizer_optional:
            body["isOrganizerOptional"] = True
        if options.duration_minutes and options.duration_minutes > 0:
            body["meetingDuration"] = f"PT{int(options.duration_minutes)}M"
        if options.start_iso and options.end_iso:
            body["timeConstraint"] = {
                "activityDomain": "work",
                "timeSlots": [
                    {
                        "start": {"dateTime": options.start_iso, "timeZone": "UTC"},
                        "end": {"dateTime": options.end_iso, "timeZone": "UTC"},
                    }
                ],
            }
        return self.client.post("/me/findMeetingTimes", body)

"""Human-readable renderers for Graph resources.

Each renderer takes a raw Graph JSON dict and returns the lines to print.
"""
from __future__ import annotations

from typing import Any, Dict, List

from graphcore.cli_output import format_recipient, format_recipients


def _when(value: Any) -> str:
    if isinstance(value, dict):
        return value.get("dateTime") or ""
    return value or ""


def _human_size(size: Any) -> str:
    try:
        n = float(size)
    except (TypeError, ValueError):
        return ""
    for unit in ("B", "KB", "MB", "GB", "TB"):
        if n < 1024 or unit == "TB":
            return f"{int(n)} {unit}" if unit == "B" else f"{n:.1f} {unit}"
        n /= 1024
    return ""


# -------------------- Mail --------------------

def message_summary(msg: Dict[str, Any]) -> List[str]:
    lines = [f"ID: {msg.get('id', '')}", f"Subject: {msg.get('subject', '')}"]
    sender = format_recipient(msg.get("from"))
    if sender:
        lines.append(f"From: {sender}")
    if msg.get("receivedDateTime"):
        lines.append(f"Received: {msg['receivedDateTime']}")
    return lines


def message_detail(msg: Dict[str, Any]) -> List[str]:
    lines = [f"ID: {msg.get('id', '')}", f"Subject: {msg.get('subject', '')}"]
    sender = format_recipient(msg.get("from"))
    if sender:
        lines.append(f"From: {sender}")
    to = format_recipients(msg.get("toRecipients"))
    if to:
        lines.append(f"To: {to}")
    cc = format_recipients(msg.get("ccRecipients"))
    if cc:
        lines.append(f"Cc: {cc}")
    if msg.get("receivedDateTime"):
        lines.append(f"Received: {msg['receivedDateTime']}")
    body = msg.get("body") or {}
    if body:
        lines.append("")
        lines.append(f"Body ({body.get('contentType', '')}):")
        lines.append(body.get("content") or "")
    return lines


# -------------------- Calendar --------------------

def event_summary(event: Dict[str, Any]) -> List[str]:
    lines = [f"ID: {event.get('id', '')}", f"Subject: {event.get('subject', '')}"]
    if event.get("start"):
        lines.append(f"Start: {_when(event['start'])}")
    if event.get("end"):
        lines.append(f"End: {_when(event['end'])}")
    if event.get("isAllDay"):
        lines.append("AllDay: true")
    location = (event.get("location") or {}).get("displayName")
    if location:
        lines.append(f"Location: {location}")
    organizer = format_recipient(event.get("organizer"))
    if organizer:
        lines.append(f"Organizer: {organizer}")
    response = (event.get("responseStatus") or {}).get("response")
    if response:
        lines.append(f"Response: {response}")
    if event.get("calendarId"):
        lines.append(f"Calendar: {event['calendarId']}")
    return lines


def event_brief(event: Dict[str, Any]) -> List[str]:
    lines = [f"ID: {event.get('id', '')}", f"Subject: {event.get('subject', '')}"]
    if event.get("start"):
        lines.append(f"Start: {_when(event['start'])}")
    if event.get("end"):
        lines.append(f"End: {_when(event['end'])}")
    return lines


def event_detail(event: Dict[str, Any]) -> List[str]:
    lines = [f"ID: {event.get('id', '')}", f"Subject: {event.get('subject', '')}"]
    for key, label in (("start", "Start"), ("end", "End")):
        value = event.get(key)
        if isinstance(value, dict):
            lines.append(f"{label}: {value.get('dateTime', '')} ({value.get('timeZone', '')})")
    rest = event_summary(event)[2:]
    lines.extend(line for line in rest if not line.startswith(("Start:", "End:")))

    attendees = event.get("attendees") or []
    if attendees:
        lines.append("")
        lines.append("Attendees:")
        for att in attendees:
            status = (att.get("status") or {}).get("response", "")
            lines.append(f"  - {format_recipient(att)} [{att.get('type', '')}] ({status})")

    join_url = (event.get("onlineMeeting") or {}).get("joinUrl")
    if join_url:
        lines.append("")
        lines.append(f"Online Meeting: {join_url}")

    body = event.get("body") or {}
    if body.get("content"):
        lines.append("")
        lines.append(f"Body ({body.get('contentType', '')}):")
        lines.append(body["content"])
    return lines


def calendar_line(index: int, calendar: Dict[str, Any]) -> List[str]:
    lines = [f"{index}. {calendar.get('name', '')}", f"   ID: {calendar.get('id', '')}"]
    owner = (calendar.get("owner") or {}).get("address")
    if owner:
        lines.append(f"   Owner: {owner}")
    lines.append("")
    return lines


def pending_line(index: int, event: Dict[str, Any]) -> List[str]:
    lines = [f"{index}. {event.get('subject', '')}", f"   ID: {event.get('id', '')}"]
    if event.get("start"):
        lines.append(f"   When: {_when(event['start'])}")
    organizer = ((event.get("organizer") or {}).get("emailAddress") or {}).get("address")
    if organizer:
        lines.append(f"   From: {organizer}")
    lines.append("")
    return lines


def schedule_lines(schedule: Dict[str, Any]) -> List[str]:
    lines = [f"{schedule.get('scheduleId', '')}:"]
    error = schedule.get("error")
    if error:
        lines.append(f"  Error: {error.get('message', '')}")
        return lines
    items = schedule.get("scheduleItems") or []
    if not items:
        lines.append("  Free")
        return lines
    for item in items:
        status = str(item.get("status") or "")
        lines.append(f"  {status[:1].upper()}{status[1:]}: {_when(item.get('start'))} - {_when(item.get('end'))}")
    lines.append("")
    return lines


def suggestion_lines(index: int, suggestion: Dict[str, Any]) -> List[str]:
    slot = suggestion.get("meetingTimeSlot") or {}
    if not slot.get("start"):
        return []
    lines = [f"{index}. {_when(slot.get('start'))} - {_when(slot.get('end'))}"]
    for avail in suggestion.get("attendeeAvailability") or []:
        address = (((avail.get("attendee") or {}).get("emailAddress")) or {}).get("address")
        if address:
            lines.append(f"   {address}: {avail.get('availability', '')}")
    lines.append("")
    return lines


def created_event_lines(event: Dict[str, Any]) -> List[str]:
    lines = [f"Created event: {event.get('subject', '')}", f"ID: {event.get('id', '')}"]
    if event.get("start"):
        lines.append(f"Start: {_when(event['start'])}")
    if event.get("end"):
        lines.append(f"End: {_when(event['end'])}")
    join_url = (event.get("onlineMeeting") or {}).get("joinUrl")
    if join_url:
        lines.append(f"Teams Link: {join_url}")
    return lines


# -------------------- Drive --------------------

def drive_lines(drive: Dict[str, Any]) -> List[str]:
    lines = [
        f"Name: {drive.get('name', '')}",
        f"ID: {drive.get('id', '')}",
        f"Type: {drive.get('driveType', '')}",
    ]
    owner = ((drive.get("owner") or {}).get("user") or {}).get("displayName")
    if owner:
        lines.append(f"Owner: {owner}")
    quota = drive.get("quota") or {}
    if quota:
        lines.append(
            f"Quota: {_human_size(quota.get('used'))} used of {_human_size(quota.get('total'))}"
            f" ({quota.get('state', '')})"
        )
    if drive.get("webUrl"):
        lines.append(f"Web URL: {drive['webUrl']}")
    return lines


def drive_item_line(item: Dict[str, Any]) -> List[str]:
    if "folder" in item:
        count = (item.get("folder") or {}).get("childCount")
        suffix = f" ({count} items)" if count is not None else ""
        return [f"[DIR]  {item.get('name', '')}/{suffix}"]
    return [f"       {item.get('name', '')} ({_human_size(item.get('size'))})"]


def drive_item_detail(item: Dict[str, Any]) -> List[str]:
    lines = [
        f"Name: {item.get('name', '')}",
        f"ID: {item.get('id', '')}",
        f"Type: {'folder' if 'folder' in item else 'file'}",
    ]
    if "size" in item:
        lines.append(f"Size: {_human_size(item.get('size'))}")
    mime = (item.get("file") or {}).get("mimeType")
    if mime:
        lines.append(f"MIME type: {mime}")
    if item.get("lastModifiedDateTime"):
        lines.append(f"Modified: {item['lastModifiedDateTime']}")
    parent = (item.get("parentReference") or {}).get("path")
    if parent:
        lines.append(f"Parent: {parent}")
    if item.get("webUrl"):
        lines.append(f"Web URL: {item['webUrl']}")
    return lines

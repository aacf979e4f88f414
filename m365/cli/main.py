"""m365 CLI.

Commands:
  login / logout / status / whoami   - session management
  config set|show                    - tenant and client configuration
  plugins                            - list m365-* plugins on PATH
  mail list|get|send                 - mailbox messages
  calendar list|get|calendars|events|pending|respond|free-busy|find-time|create
  drive info|ls|get|download         - OneDrive / SharePoint files

Unknown commands are handed to an ``m365-<command>`` executable on PATH.
"""
from __future__ import annotations

import json
import logging
import sys
from typing import Any, Dict, List, Optional

from graphcore.auth import Authenticator
from graphcore.cli_errors import CLIError, ConfigError, NotFoundError, UsageError
from graphcore.cli_framework import CLIApp
from graphcore.cli_output import with_markdown_body
from graphcore.config import Config, ConfigManager, resolve_config
from graphcore.constants import DEFAULT_FIND_TIME_CANDIDATES, DEFAULT_MEETING_MINUTES
from graphcore.date_utils import (
    add_days,
    format_graph_utc,
    format_iso8601,
    local_now,
    parse_date,
    parse_duration,
    start_of_day,
)
from graphcore.graph import CalendarOperations, DriveOperations, GraphClient, MailOperations
from graphcore.graph.calendar import RESPONSE_ENDPOINTS, build_event
from graphcore.graph.mail import build_message, split_addresses
from graphcore.graph.models import (
    CalendarViewOptions,
    DriveListOptions,
    DriveRef,
    EventListOptions,
    FindTimeOptions,
    MessageListOptions,
)
from graphcore.graph.pagination import ListResponse
from graphcore.plugins import execute_plugin, list_plugins

from .. import APP_ID, PURPOSE, __version__
from . import formatters as fmt

LOG = logging.getLogger(__name__)

CONFIG_HINT = "Use 'm365 config set --tenant-id <id> --client-id <id>'"

app = CLIApp(
    APP_ID,
    PURPOSE,
    version=__version__,
    epilog="Use --help on subcommands for details.",
)


# ============================================================================
# Session helpers
# ============================================================================

def _config_manager() -> ConfigManager:
    return ConfigManager()


def _load_config() -> Config:
    return resolve_config(_config_manager())


def _authenticator(cfg: Config) -> Authenticator:
    return Authenticator(cfg.tenant_id, cfg.client_id, cfg.scopes)


def _graph_client() -> GraphClient:
    cfg = _load_config()
    if not cfg.is_complete:
        raise ConfigError("client ID and tenant ID must be configured", hint=CONFIG_HINT)
    return GraphClient(_authenticator(cfg).get_access_token())


def _parse_when(text: str, label: str, ref=None, past: bool = False):
    try:
        return parse_date(text, ref=ref, past=past)
    except ValueError as exc:
        raise UsageError(f"invalid {label}: {exc}") from exc


def _utc_iso(value) -> str:
    return format_graph_utc(value) + "Z"


def _print_lines(out, lines: List[str]) -> None:
    for line in lines:
        out.print(line)


def _drive_ref(args) -> DriveRef:
    return DriveRef(
        drive_id=getattr(args, "drive_id", None),
        user_id=getattr(args, "user", None),
        site_id=getattr(args, "site", None),
    )


def _report_skipped(response: Any) -> None:
    for calendar, exc in getattr(response, "failed", ()):
        label = calendar.get("name") or calendar.get("id")
        LOG.warning("Skipped calendar %s: %s", label, exc)


# ============================================================================
# Session Commands
# ============================================================================

@app.command("login", help="Authenticate with Microsoft 365 (device code flow)")
def cmd_login(args) -> int:
    cfg = _load_config()
    if not cfg.is_complete:
        raise ConfigError("client ID and tenant ID must be configured", hint=CONFIG_HINT)
    _authenticator(cfg).login_with_device_code(
        printer=lambda message: print(message, file=sys.stderr)
    )
    args._output.print_action("Successfully authenticated!")
    return 0


@app.command("logout", help="Remove stored authentication tokens")
def cmd_logout(args) -> int:
    _authenticator(_load_config()).logout()
    args._output.print_action("Successfully logged out!")
    return 0


@app.command("status", help="Show authentication status and user information")
def cmd_status(args) -> int:
    out = args._output
    cfg = _load_config()
    auth = _authenticator(cfg)
    if not cfg.is_complete or not auth.is_authenticated():
        out.print_dict({"Status": "Not authenticated"})
        return 0

    info: Dict[str, Any] = {"Status": "Authenticated"}
    try:
        me = GraphClient(auth.get_access_token()).get_me()
    except CLIError as exc:
        out.print_warning(f"Could not retrieve user info: {exc}")
    else:
        if me.get("displayName"):
            info["User"] = me["displayName"]
        if me.get("userPrincipalName"):
            info["Email"] = me["userPrincipalName"]
    out.print_dict(info)
    return 0


@app.command("whoami", help="Print the signed-in user's profile")
def cmd_whoami(args) -> int:
    me = _graph_client().get_me()
    if args._output.is_text:
        args._output.print(json.dumps(me, indent=2))
    else:
        args._output.print_data(me)
    return 0


@app.command("plugins", help="List available m365-* plugins in PATH")
def cmd_plugins(args) -> int:
    out = args._output
    names = list_plugins()
    if not out.is_text:
        out.print_data({"plugins": names})
        return 0
    if not names:
        out.print("No plugins found in PATH")
        return 0
    out.print("Available plugins:")
    for name in names:
        out.print(f"  - {name}")
    return 0


# ============================================================================
# Config Commands
# ============================================================================

config_group = app.group("config", help="Manage configuration")


@config_group.command("set", help="Set configuration values")
@app.argument("--tenant-id", help="Azure AD tenant ID")
@app.argument("--client-id", help="Azure AD application (client) ID")
def cmd_config_set(args) -> int:
    manager = _config_manager()
    cfg = manager.load()
    if args.tenant_id:
        cfg.tenant_id = args.tenant_id
    if args.client_id:
        cfg.client_id = args.client_id
    manager.save(cfg)
    args._output.print_action("Configuration saved successfully!")
    return 0


@config_group.command("show", help="Show current configuration")
def cmd_config_show(args) -> int:
    out = args._output
    cfg = _load_config()
    if not out.is_text:
        out.print_data({**cfg.to_dict(), "path": _config_manager().path})
        return 0
    out.print_dict({
        "Tenant ID": cfg.tenant_id,
        "Client ID": cfg.client_id,
        "Scopes": " ".join(cfg.scopes),
    })
    return 0


# ============================================================================
# Mail Commands
# ============================================================================

mail_group = app.group("mail", help="Read and send email messages")


@mail_group.command("list", help="List email messages")
@app.argument("--folder-id", help="Folder ID or well-known name (inbox, sentitems, ...)")
@app.argument("--top", type=int, help="Page size (default: 100)")
@app.argument("--skip", type=int, help="Skip the first N messages (offset pagination)")
@app.argument("--page-token", help="Continue from a previous response")
@app.argument("--start", help="Received on or after (accepts natural language)")
@app.argument("--end", help="Received before (accepts natural language)")
@app.argument("--filter", help="Additional OData $filter expression")
@app.argument("--order-by", help="OData $orderby expression")
def cmd_mail_list(args) -> int:
    now = local_now()
    start = _parse_when(args.start, "start date", now, past=True) if args.start else None
    end = _parse_when(args.end, "end date", now, past=True) if args.end else None
    options = MessageListOptions(
        folder_id=args.folder_id,
        top=args.top,
        skip=args.skip,
        page_token=args.page_token,
        filter=args.filter,
        order_by=args.order_by,
        start_iso=_utc_iso(start) if start else None,
        end_iso=_utc_iso(end) if end else None,
    )
    response = MailOperations(_graph_client()).list_messages(options)
    args._output.print_list_response(response, fmt.message_summary, empty_message="No messages found")
    return 0


@mail_group.command("get", help="Get a specific email message")
@app.argument("message_id", help="Message ID")
def cmd_mail_get(args) -> int:
    message = MailOperations(_graph_client()).get_message(args.message_id)
    if args.markdown:
        message = with_markdown_body(message)
    if not args._output.is_text:
        args._output.print_data(message)
        return 0
    _print_lines(args._output, fmt.message_detail(message))
    return 0


@mail_group.command("send", help="Send an email message")
@app.argument("--subject", help="Email subject (required)")
@app.argument("--to", help="Recipient address(es), comma-separated (required)")
@app.argument("--body", help="Email body content (required)")
@app.argument("--body-type", default="Text", choices=["Text", "HTML"], help="Body content type")
@app.argument("--cc", help="CC address(es), comma-separated")
@app.argument("--bcc", help="BCC address(es), comma-separated")
@app.argument(
    "--no-save-to-sent-items",
    dest="save_to_sent_items",
    action="store_false",
    help="Do not keep a copy in Sent Items",
)
def cmd_mail_send(args) -> int:
    if not args.subject:
        raise UsageError("subject is required")
    if not args.to:
        raise UsageError("to is required")
    if not args.body:
        raise UsageError("body is required")
    message = build_message(args.subject, args.to, args.body, args.body_type, args.cc, args.bcc)
    MailOperations(_graph_client()).send_mail(message, save_to_sent_items=args.save_to_sent_items)
    args._output.print_action("Message sent successfully", text="Message sent successfully!")
    return 0


# ============================================================================
# Calendar Commands
# ============================================================================

calendar_group = app.group("calendar", help="View and manage calendar events")


@calendar_group.command("list", help="List events in a time range (default: today)")
@app.argument("--start", help="Start date/time (default: today, accepts natural language)")
@app.argument("--end", help="End date/time (default: start + 1 day)")
@app.argument("--days", type=int, default=0, help="Number of days from start (overrides --end)")
@app.argument("--calendar-id", help="Query a specific calendar (default: primary)")
@app.argument("--all-calendars", action="store_true", help="Query all calendars (not paginated)")
@app.argument("--top", type=int, help="Limit number of results")
@app.argument("--page-token", help="Pagination token from a previous response")
@app.argument("--user", help="View another user's calendar (email or ID)")
def cmd_calendar_list(args) -> int:
    now = local_now()
    start = _parse_when(args.start, "start date", now) if args.start else start_of_day(now)
    if args.days and args.days > 0:
        end = add_days(start, args.days)
    elif args.end:
        end = _parse_when(args.end, "end date", now)
    else:
        end = add_days(start, 1)
    if args.all_calendars and args.page_token:
        args._output.print_warning("--page-token is ignored with --all-calendars")

    options = CalendarViewOptions(
        start_iso=format_iso8601(start),
        end_iso=format_iso8601(end),
        calendar_id=args.calendar_id,
        user_id=args.user,
        all_calendars=args.all_calendars,
        top=args.top,
        page_token=args.page_token,
    )
    response = CalendarOperations(_graph_client()).calendar_view(options)
    _report_skipped(response)
    args._output.print_list_response(response, fmt.event_summary, empty_message="No events found")
    return 0


@calendar_group.command("get", help="Get a specific calendar event")
@app.argument("event_id", help="Event ID")
@app.argument("--calendar-id", help="Calendar containing the event (default: primary)")
@app.argument("--user", help="Another user's event (email or ID)")
def cmd_calendar_get(args) -> int:
    event = CalendarOperations(_graph_client()).get_event(
        args.event_id, calendar_id=args.calendar_id, user_id=args.user
    )
    if args.markdown:
        event = with_markdown_body(event)
    if not args._output.is_text:
        args._output.print_data(event)
        return 0
    _print_lines(args._output, fmt.event_detail(event))
    return 0


@calendar_group.command("calendars", help="List available calendars")
def cmd_calendar_calendars(args) -> int:
    out = args._output
    calendars = CalendarOperations(_graph_client()).list_calendars()
    if not out.is_text:
        out.print_list_response(ListResponse(items=tuple(calendars)), fmt.calendar_line)
        return 0
    if not calendars:
        out.print("No calendars found")
        return 0
    out.print("Calendars:")
    for index, calendar in enumerate(calendars, start=1):
        _print_lines(out, fmt.calendar_line(index, calendar))
    return 0


@calendar_group.command("events", help="List raw events (series masters, not occurrences)")
@app.argument("--calendar-id", help="Query a specific calendar")
@app.argument("--top", type=int, help="Limit number of results")
@app.argument("--page-token", help="Pagination token from a previous response")
@app.argument("--filter", help="OData $filter expression")
def cmd_calendar_events(args) -> int:
    options = EventListOptions(
        calendar_id=args.calendar_id,
        top=args.top,
        page_token=args.page_token,
        filter=args.filter,
    )
    response = CalendarOperations(_graph_client()).list_events(options)
    args._output.print_list_response(response, fmt.event_brief, empty_message="No events found")
    return 0


@calendar_group.command("pending", help="List invitations awaiting your response")
@app.argument("--top", type=int, help="Limit number of results")
@app.argument("--page-token", help="Pagination token from a previous response")
def cmd_calendar_pending(args) -> int:
    out = args._output
    response = CalendarOperations(_graph_client()).list_pending(top=args.top, page_token=args.page_token)
    if not out.is_text:
        out.print_list_response(response, fmt.event_brief)
        return 0
    if not response.items:
        out.print("No pending invitations")
        return 0
    out.print(f"{response.count} pending invitation(s):\n")
    for index, event in enumerate(response.items, start=1):
        _print_lines(out, fmt.pending_line(index, event))
    if response.next_token:
        out.print(f"\nNext page: --page-token {response.next_token}")
    return 0


def _all_pending_ids(ops: CalendarOperations) -> List[str]:
    ids: List[str] = []
    token: Optional[str] = None
    while True:
        page = ops.list_pending(page_token=token)
        ids.extend(e.get("id") for e in page.items if e.get("id"))
        if not page.next_token or page.next_token == token:
            return ids
        token = page.next_token


@calendar_group.command("respond", help="Accept, decline or tentatively accept invitations")
@app.argument("params", nargs="+", metavar="ARG",
              help="<event-id> <accept|decline|tentative>, or only the response with --all/--ids")
@app.argument("--message", default="", help="Optional response message")
@app.argument("--all", dest="respond_all", action="store_true", help="Respond to all pending invitations")
@app.argument("--ids", help="Comma-separated event IDs to respond to")
def cmd_calendar_respond(args) -> int:
    out = args._output
    ops = CalendarOperations(_graph_client())
    if args.respond_all or args.ids:
        response = args.params[0]
    else:
        if len(args.params) < 2:
            raise UsageError("usage: calendar respond <event-id> <accept|decline|tentative>")
        response = args.params[1]
    if response not in RESPONSE_ENDPOINTS:
        raise UsageError(f"invalid response: {response} (must be accept, decline, or tentative)")

    if args.respond_all:
        event_ids = _all_pending_ids(ops)
    elif args.ids:
        event_ids = split_addresses(args.ids)
    else:
        event_ids = [args.params[0]]

    if not event_ids:
        out.print_action("No events to respond to")
        return 0

    results = []
    failures = 0
    for event_id in event_ids:
        try:
            ops.respond_to_event(event_id, response, args.message)
        except UsageError:
            raise
        except CLIError as exc:
            failures += 1
            results.append({"eventId": event_id, "success": False, "message": str(exc)})
            if out.is_text:
                out.print(f"Failed to respond to {event_id}: {exc}")
            continue
        results.append({"eventId": event_id, "success": True, "message": response})
        if out.is_text:
            out.print(f"Responded '{response}' to event {event_id}")
    if not out.is_text:
        out.print_data(results)
    return 1 if failures else 0


@calendar_group.command("free-busy", help="Check availability for one or more users")
@app.argument("emails", nargs="+", help="Email addresses (space or comma separated)")
@app.argument("--start", help="Start date/time (default: now)")
@app.argument("--end", help="End date/time (default: start + 1 day)")
def cmd_calendar_free_busy(args) -> int:
    out = args._output
    emails = [e for arg in args.emails for e in split_addresses(arg)]
    now = local_now()
    start = _parse_when(args.start, "start time", now) if args.start else now
    end = _parse_when(args.end, "end time", now) if args.end else add_days(start, 1)
    result = CalendarOperations(_graph_client()).get_schedule(emails, start, end)
    if not out.is_text:
        out.print_data(result)
        return 0
    for schedule in result.get("value") or []:
        _print_lines(out, fmt.schedule_lines(schedule))
    return 0


@calendar_group.command("find-time", help="Find available meeting times")
@app.argument("--attendees", help="Comma-separated email addresses (required)")
@app.argument("--duration", default="30m", help="Meeting duration, e.g. 30m, 1h (default: 30m)")
@app.argument("--start", help="Search window start (default: tomorrow)")
@app.argument("--end", help="Search window end (default: start + 7 days)")
@app.argument("--max-results", type=int, default=DEFAULT_FIND_TIME_CANDIDATES,
              help="Maximum suggestions to return")
def cmd_calendar_find_time(args) -> int:
    out = args._output
    attendees = split_addresses(args.attendees)
    if not attendees:
        raise UsageError("--attendees is required")

    minutes = DEFAULT_MEETING_MINUTES
    if args.duration:
        try:
            minutes = int(parse_duration(args.duration).total_seconds() // 60)
        except ValueError as exc:
            raise UsageError(f"invalid duration: {exc}") from exc

    now = local_now()
    start = _parse_when(args.start, "start time", now) if args.start else add_days(now, 1)
    end = _parse_when(args.end, "end time", now) if args.end else add_days(start, 7)

    options = FindTimeOptions(
        attendees=attendees,
        duration_minutes=minutes,
        start_iso=format_graph_utc(start),
        end_iso=format_graph_utc(end),
        max_candidates=args.max_results or DEFAULT_FIND_TIME_CANDIDATES,
    )
    result = CalendarOperations(_graph_client()).find_meeting_times(options)
    if not out.is_text:
        out.print_data(result)
        return 0

    suggestions = result.get("meetingTimeSuggestions") or []
    if not suggestions:
        out.print("No available times found")
        if result.get("emptySuggestionsReason"):
            out.print(f"Reason: {result['emptySuggestionsReason']}")
        return 0
    out.print(f"Found {len(suggestions)} available slots for {minutes}m meeting:\n")
    for index, suggestion in enumerate(suggestions, start=1):
        _print_lines(out, fmt.suggestion_lines(index, suggestion))
    return 0


@calendar_group.command("create", help="Create a calendar event")
@app.argument("subject", help="Event subject")
@app.argument("--start", help="Start date/time (required, accepts natural language)")
@app.argument("--end", help="End date/time")
@app.argument("--duration", help="Duration, e.g. 30m, 1h (alternative to --end)")
@app.argument("--attendees", help="Comma-separated email addresses")
@app.argument("--location", help="Location")
@app.argument("--body", help="Description/agenda")
@app.argument("--online", action="store_true", help="Generate a Teams meeting link")
@app.argument("--all-day", action="store_true", help="All-day event")
@app.argument("--calendar-id", help="Target calendar")
def cmd_calendar_create(args) -> int:
    if not args.start:
        raise UsageError("--start is required")
    if args.end and args.duration:
        raise UsageError("--end and --duration are mutually exclusive")

    now = local_now()
    start = _parse_when(args.start, "start time", now)
    if args.end:
        end = _parse_when(args.end, "end time", now)
    elif args.duration:
        try:
            end = start + parse_duration(args.duration)
        except ValueError as exc:
            raise UsageError(f"invalid duration: {exc}") from exc
    else:
        end = start + parse_duration(f"{DEFAULT_MEETING_MINUTES}m")

    event = build_event(
        args.subject,
        start,
        end,
        attendees=split_addresses(args.attendees),
        location=args.location,
        body=args.body,
        online=args.online,
        all_day=args.all_day,
    )
    created = CalendarOperations(_graph_client()).create_event(event, calendar_id=args.calendar_id)
    if not args._output.is_text:
        args._output.print_data(created)
        return 0
    _print_lines(args._output, fmt.created_event_lines(created))
    return 0


# ============================================================================
# Drive Commands
# ============================================================================

drive_group = app.group("drive", help="Browse and download OneDrive / SharePoint files")


@drive_group.command("info", help="Show drive information and quota")
@app.argument("--drive-id", help="Access a specific drive by ID")
@app.argument("--user", help="Access another user's drive")
@app.argument("--site", help="Access a SharePoint site's drive")
def cmd_drive_info(args) -> int:
    drive = DriveOperations(_graph_client()).get_drive(_drive_ref(args))
    if not args._output.is_text:
        args._output.print_data(drive)
        return 0
    _print_lines(args._output, fmt.drive_lines(drive))
    return 0


@drive_group.command("ls", help="List files and folders")
@app.argument("path", nargs="?", default="", help="Folder path (default: root)")
@app.argument("--shared", action="store_true", help="List items shared with you")
@app.argument("--top", type=int, help="Limit number of results")
@app.argument("--page-token", help="Pagination token from a previous response")
@app.argument("--order-by", help="OData $orderby expression, e.g. 'name asc'")
@app.argument("--drive-id", help="Access a specific drive by ID")
@app.argument("--user", help="Access another user's drive")
@app.argument("--site", help="Access a SharePoint site's drive")
def cmd_drive_ls(args) -> int:
    options = DriveListOptions(
        drive=_drive_ref(args),
        path=args.path,
        shared=args.shared,
        top=args.top,
        page_token=args.page_token,
        order_by=args.order_by,
    )
    response = DriveOperations(_graph_client()).list_items(options)
    args._output.print_list_response(
        response, fmt.drive_item_line, empty_message="No items found", separator=None
    )
    return 0


@drive_group.command("get", help="Show file or folder details")
@app.argument("path", help="Item path, or id:<item-id>")
@app.argument("--drive-id", help="Access a specific drive by ID")
@app.argument("--user", help="Access another user's drive")
@app.argument("--site", help="Access a SharePoint site's drive")
def cmd_drive_get(args) -> int:
    item = DriveOperations(_graph_client()).get_item(args.path, _drive_ref(args))
    if not args._output.is_text:
        args._output.print_data(item)
        return 0
    _print_lines(args._output, fmt.drive_item_detail(item))
    return 0


@drive_group.command("download", help="Download a file")
@app.argument("path", help="Item path, or id:<item-id>")
@app.argument("--out", help="Destination file or directory (default: current directory)")
@app.argument("--drive-id", help="Access a specific drive by ID")
@app.argument("--user", help="Access another user's drive")
@app.argument("--site", help="Access a SharePoint site's drive")
def cmd_drive_download(args) -> int:
    target = DriveOperations(_graph_client()).download(args.path, args.out, _drive_ref(args))
    args._output.print_action(f"Downloaded to {target}")
    return 0


# ============================================================================
# Main
# ============================================================================

def _dispatch_plugin(argv: List[str]) -> Optional[int]:
    """Run ``m365-<argv[0]>`` when argv[0] is not a known command."""
    if not argv:
        return None
    name = argv[0]
    if not name or name.startswith("-") or name in app.command_names():
        return None
    try:
        return execute_plugin(name, argv[1:])
    except NotFoundError:
        LOG.debug("no plugin for %r, falling back to argument parsing", name)
        return None


def main(argv: Optional[List[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    code = _dispatch_plugin(args)
    if code is not None:
        return code
    return app.run(args)


if __name__ == "__main__":
    sys.exit(main())

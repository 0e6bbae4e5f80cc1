"""
iCalendar (.ics) feed generation.

We convert assignments into a calendar document that can be downloaded once or
subscribed to (webcal://) from:
- Google Calendar
- Outlook
- Apple Calendar

The document is built as a header + one block per assignment + a fixed footer.
DTSTART is floating local time (no TZID). CREATED and DTSTAMP are UTC.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from duetrack.errors import FeedBuildError
from duetrack.model import Assignment, CalendarEvent, LocalDateTime, to_local

logger = logging.getLogger(__name__)

PRODID = "-//duetrack//Assignment Feed//EN"
DEFAULT_CALENDAR_NAME = "My Courses"

# Google Calendar rejects UIDs that start with a digit
UID_PREFIX = "X"
EVENT_DURATION_MINUTES = 15
SUMMARY_SEPARATOR = " - "

_MAX_LINE_OCTETS = 75


def _ics_escape(text: str) -> str:
    """
    Escape text for ICS fields (TEXT value type, RFC 5545 §3.3.11).
    """
    # a lone CR is a line break too; TEXT values carry no raw control characters
    text = text.replace("\\", "\\\\").replace("\r\n", "\n").replace("\r", "\n")
    return text.replace("\n", "\\n").replace(";", "\\;").replace(",", "\\,")


def _fold(line: str) -> str:
    """
    Fold a content line at 75 octets; continuation lines start with one space.

    Never splits a multi-byte UTF-8 character.
    """
    if len(line.encode("utf-8")) <= _MAX_LINE_OCTETS:
        return line

    parts: list[str] = []
    current = ""
    current_len = 0
    limit = _MAX_LINE_OCTETS
    for ch in line:
        ch_len = len(ch.encode("utf-8"))
        if current_len + ch_len > limit:
            parts.append(current)
            current = ""
            current_len = 0
            # following lines carry the leading space
            limit = _MAX_LINE_OCTETS - 1
        current += ch
        current_len += ch_len
    parts.append(current)
    return "\r\n ".join(parts)


def _local_parts(dt: datetime) -> LocalDateTime:
    """
    Decompose a datetime into local (year, month, day, hour, minute).
    """
    local = to_local(dt)
    return (local.year, local.month, local.day, local.hour, local.minute)


def _format_local(parts: LocalDateTime) -> str:
    """
    Convert (y, m, d, H, M) to ICS floating local datetime 'YYYYMMDDTHHMM00'.
    """
    year, month, day, hour, minute = parts
    return f"{year:04d}{month:02d}{day:02d}T{hour:02d}{minute:02d}00"


def _to_utc(dt: datetime) -> datetime:
    # naive values are local time
    return dt.astimezone(timezone.utc)


def _format_utc(dt: datetime) -> str:
    """
    Convert to an ICS UTC datetime 'YYYYMMDDTHHMMSSZ'.
    """
    return _to_utc(dt).strftime("%Y%m%dT%H%M%SZ")


def _format_duration(minutes: int) -> str:
    hours, mins = divmod(minutes, 60)
    if hours and mins:
        return f"PT{hours}H{mins}M"
    if hours:
        return f"PT{hours}H"
    return f"PT{mins}M"


def make_uid(assignment_id: int) -> str:
    """
    Stable UID for one assignment: same id -> same UID on every regeneration.
    """
    return f"{UID_PREFIX}{assignment_id}"


def assignment_to_event(assignment: Assignment) -> CalendarEvent:
    """
    Map one assignment to its calendar event.

    Raises FeedBuildError if the assignment cannot be represented.
    """
    try:
        if not isinstance(assignment.id, int):
            raise TypeError(f"id is not an integer: {assignment.id!r}")
        if not isinstance(assignment.due_date, datetime):
            raise TypeError(f"due_date is not a datetime: {assignment.due_date!r}")
        created = assignment.created_at
        if created is not None and not isinstance(created, datetime):
            raise TypeError(f"created_at is not a datetime: {created!r}")
        return CalendarEvent(
            uid=make_uid(assignment.id),
            summary=f"{assignment.course_code}{SUMMARY_SEPARATOR}{assignment.title}",
            start=_local_parts(assignment.due_date),
            created=_to_utc(created) if created is not None else None,
            duration_minutes=EVENT_DURATION_MINUTES,
            url=assignment.url or None,
        )
    except (AttributeError, TypeError, ValueError, OverflowError) as exc:
        raise FeedBuildError(f"feed could not be built: assignment {getattr(assignment, 'id', '?')}: {exc}") from exc


def _validate_event(ev: CalendarEvent) -> None:
    if not ev.uid or ev.uid[0].isdigit():
        raise FeedBuildError(f"feed could not be built: invalid UID {ev.uid!r}")
    if not ev.summary.strip():
        raise FeedBuildError(f"feed could not be built: empty summary for {ev.uid}")
    if ev.duration_minutes <= 0:
        raise FeedBuildError(f"feed could not be built: non-positive duration for {ev.uid}")
    if ev.url is not None and ("\r" in ev.url or "\n" in ev.url):
        raise FeedBuildError(f"feed could not be built: line break in URL for {ev.uid}")
    year, month, day, hour, minute = ev.start
    if not (1 <= year <= 9999 and 1 <= month <= 12 and 1 <= day <= 31 and 0 <= hour <= 23 and 0 <= minute <= 59):
        raise FeedBuildError(f"feed could not be built: invalid date {ev.start!r} for {ev.uid}")
    if ev.created is not None and ev.created.tzinfo is None:
        raise FeedBuildError(f"feed could not be built: created time without timezone for {ev.uid}")


def _header_lines(calendar_name: str, site_url: Optional[str]) -> List[str]:
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "CALSCALE:GREGORIAN",
        f"PRODID:{PRODID}",
        "METHOD:PUBLISH",
        "X-PUBLISHED-TTL:PT1H",
        f"X-WR-CALNAME:{_ics_escape(calendar_name)}",
    ]
    # only when configured; never an empty value
    origin = (site_url or "").strip()
    if origin:
        lines.append(f"X-ORIGINAL-URL:{origin}")
    return lines


def _event_lines(ev: CalendarEvent, dtstamp: str) -> List[str]:
    lines = [
        "BEGIN:VEVENT",
        f"UID:{_ics_escape(ev.uid)}",
        f"SUMMARY:{_ics_escape(ev.summary)}",
        f"DTSTAMP:{dtstamp}",
        f"DTSTART:{_format_local(ev.start)}",
        f"DURATION:{_format_duration(ev.duration_minutes)}",
    ]
    if ev.created is not None:
        lines.append(f"CREATED:{_format_utc(ev.created)}")
    if ev.url:
        lines.append(f"URL:{ev.url}")
    if ev.categories:
        lines.append("CATEGORIES:" + ",".join(_ics_escape(c) for c in ev.categories))
    lines.append(f"STATUS:{ev.status}")
    lines.append(f"SEQUENCE:{ev.sequence}")
    lines.append("END:VEVENT")
    return lines


def build_events(assignments: Iterable[Assignment]) -> List[CalendarEvent]:
    """
    Map assignments to events, keeping input order.
    """
    events: List[CalendarEvent] = []
    for a in assignments:
        ev = assignment_to_event(a)
        _validate_event(ev)
        events.append(ev)
    return events


def build_feed(
    assignments: Sequence[Assignment],
    site_url: Optional[str] = None,
    calendar_name: str = DEFAULT_CALENDAR_NAME,
    now: Optional[datetime] = None,
) -> str:
    """
    Build the complete calendar document for the given assignments.

    Exactly one VEVENT per assignment, in input order. An empty sequence gives
    a valid calendar with no events. Raises FeedBuildError instead of ever
    returning a partial document.
    """
    events = build_events(assignments)

    stamp_dt = now if now is not None else datetime.now(timezone.utc)
    if stamp_dt.tzinfo is not None:
        stamp_dt = stamp_dt.astimezone(timezone.utc)
    dtstamp = stamp_dt.strftime("%Y%m%dT%H%M%SZ")

    lines: list[str] = _header_lines(calendar_name, site_url)
    for ev in events:
        lines.extend(_event_lines(ev, dtstamp))
    lines.append("END:VCALENDAR")

    logger.info(f"Built calendar feed with {len(events)} events")
    # ICS standard uses CRLF
    return "\r\n".join(_fold(line) for line in lines) + "\r\n"


def export_feed_to_file(
    assignments: Sequence[Assignment],
    out_path: str | Path,
    site_url: Optional[str] = None,
    calendar_name: str = DEFAULT_CALENDAR_NAME,
) -> int:
    """
    Write the calendar document to an .ics file. Returns number of exported events.
    """
    text = build_feed(assignments, site_url=site_url, calendar_name=calendar_name)

    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    # newline="" keeps the CRLF line endings intact
    with out.open("w", encoding="utf-8", newline="") as fh:
        fh.write(text)
    return len(assignments)

"""
Central data model definitions used across the project.

This module defines the canonical structure of Course, Assignment, Session and
CalendarEvent objects so that:
- the store, the HTTP layer and the terminal UI share the same field names
- the calendar feed generator works on plain objects, not ORM rows
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple


# (year, month, day, hour, minute), month is 1-indexed
LocalDateTime = Tuple[int, int, int, int, int]


def to_local(dt: datetime) -> datetime:
    """
    Return dt as a naive local datetime.

    Aware datetimes are converted to the machine's local time first.
    Naive datetimes are assumed to already be local.
    """
    if dt.tzinfo is not None:
        return dt.astimezone().replace(tzinfo=None)
    return dt


@dataclass
class Course:
    """
    One course, keyed by its short code (e.g. "3AC3").
    """

    code: str
    name: str


@dataclass
class Assignment:
    """
    One tracked deadline.

    due_date and created_at are naive datetimes interpreted as local time.
    course is filled in when the store joins the Course row for display.
    """

    id: int
    title: str
    due_date: datetime
    course_code: str
    url: Optional[str] = None
    session_id: Optional[str] = None
    completed: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    course: Optional[Course] = None


@dataclass
class Session:
    """
    Opaque grouping key for a set of assignments. Not an auth mechanism.
    """

    id: str
    created_at: datetime
    assignments: List[Assignment] = field(default_factory=list)


@dataclass
class CalendarEvent:
    """
    One VEVENT, derived from exactly one Assignment on every feed request.

    start is floating local time; created is an aware UTC datetime.
    """

    uid: str
    summary: str
    start: LocalDateTime
    created: Optional[datetime]
    duration_minutes: int = 15
    status: str = "CONFIRMED"
    sequence: int = 0
    url: Optional[str] = None
    categories: Tuple[str, ...] = ("event",)

"""
Client-side view of a list of assignments.

- countdown text and urgency for each row (recomputed locally, never re-fetched)
- optimistic create / delete / complete: the local list changes first, is
  restored from a snapshot if the call fails, and is reconciled with the
  server once the call settles
- Ticker: a restartable periodic callback owned by a live view
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Callable, List, Optional

import requests

from duetrack.errors import DuetrackError, ValidationError
from duetrack.model import Assignment, Course, to_local

logger = logging.getLogger(__name__)

PLACEHOLDER_ID = -1
SOON_DAYS = 3
DUE_FORMAT = "%Y-%m-%d %H:%M"

_DAY = timedelta(days=1)


def parse_due(text: str) -> datetime:
    """
    Parse 'YYYY-MM-DD HH:MM' (local time). Raises ValidationError on bad input.
    """
    try:
        return datetime.strptime(text.strip(), DUE_FORMAT)
    except ValueError as exc:
        raise ValidationError(f"Due date must look like 2025-03-01 23:59, got {text!r}") from exc


def format_countdown(due: datetime, now: Optional[datetime] = None) -> str:
    """
    Human readable time left until due.

        "Overdue"           due is in the past
        "N days left"       more than one (rounded up) day left
        "Hh Mm Ss left"     less than 24 hours left
        "Due today"         exactly one day left
    """
    now = to_local(now) if now is not None else datetime.now()
    left = to_local(due) - now
    if left < timedelta(0):
        return "Overdue"

    days_left = math.ceil(left / _DAY)
    if days_left > 1:
        return f"{days_left} days left"
    if left < _DAY:
        total = int(left.total_seconds())
        hours, rest = divmod(total, 3600)
        minutes, seconds = divmod(rest, 60)
        return f"{hours}h {minutes}m {seconds}s left"
    return "Due today"


def urgency(due: datetime, now: Optional[datetime] = None) -> str:
    """Return "overdue", "soon" (3 days or less) or "ok"."""
    now = to_local(now) if now is not None else datetime.now()
    left = to_local(due) - now
    if left < timedelta(0):
        return "overdue"
    if math.ceil(left / _DAY) <= SOON_DAYS:
        return "soon"
    return "ok"


def _sort_key(a: Assignment) -> tuple:
    return (to_local(a.due_date), a.id)


class AssignmentBoard:
    """
    Local list of assignments for one session (or all, when session_id is None).

    client is anything with the ApiClient methods list_assignments,
    create_assignment, delete_assignment and set_completed.
    """

    def __init__(self, client: Any, session_id: Optional[str] = None) -> None:
        self.client = client
        self.session_id = session_id
        self.assignments: List[Assignment] = []

    def refresh(self) -> List[Assignment]:
        """Replace the local list with the server's authoritative list."""
        self.assignments = sorted(self.client.list_assignments(self.session_id), key=_sort_key)
        return self.assignments

    def _reconcile(self) -> None:
        try:
            self.refresh()
        except (DuetrackError, requests.RequestException) as e:
            logger.warning(f"Could not reconcile assignments with server: {e}")

    def add(
        self,
        title: str,
        due_date: datetime,
        course_code: str,
        url: Optional[str] = None,
    ) -> Assignment:
        snapshot = list(self.assignments)
        now = datetime.now()
        placeholder = Assignment(
            id=PLACEHOLDER_ID,
            title=title,
            url=url or None,
            due_date=due_date,
            course_code=course_code,
            session_id=self.session_id,
            completed=False,
            created_at=now,
            updated_at=now,
            course=Course(code=course_code, name=""),
        )
        self.assignments = sorted(snapshot + [placeholder], key=_sort_key)
        try:
            created = self.client.create_assignment(
                title=title,
                due_date=due_date,
                course_code=course_code,
                url=url,
                session_id=self.session_id,
            )
        except Exception:
            logger.warning("Create failed, rolling back optimistic row")
            self.assignments = snapshot
            self._reconcile()
            raise

        self.assignments = sorted(
            [a for a in self.assignments if a.id != PLACEHOLDER_ID] + [created], key=_sort_key
        )
        self._reconcile()
        return created

    def delete(self, assignment_id: int) -> None:
        snapshot = list(self.assignments)
        self.assignments = [a for a in snapshot if a.id != assignment_id]
        try:
            self.client.delete_assignment(assignment_id)
        except Exception:
            logger.warning(f"Delete of {assignment_id} failed, rolling back")
            self.assignments = snapshot
            self._reconcile()
            raise
        self._reconcile()

    def complete(self, assignment_id: int, completed: bool = True) -> None:
        snapshot = list(self.assignments)
        updated: List[Assignment] = []
        for a in snapshot:
            if a.id == assignment_id:
                a = replace(a, completed=completed)
            updated.append(a)
        self.assignments = updated
        try:
            self.client.set_completed(assignment_id, completed)
        except Exception:
            logger.warning(f"Completing {assignment_id} failed, rolling back")
            self.assignments = snapshot
            self._reconcile()
            raise
        self._reconcile()


class Ticker:
    """
    Calls callback every `interval` seconds on a daemon thread until stopped.

    Can be started again after stop(). Use as a context manager to tie it to
    the lifetime of a view.
    """

    def __init__(self, interval: float, callback: Callable[[], None]) -> None:
        self.interval = interval
        self.callback = callback
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.callback()
            except Exception:
                logger.exception("Ticker callback failed")

    def start(self) -> None:
        if self.running:
            return
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name="duetrack-ticker", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=max(self.interval, 1.0) * 2)
        self._thread = None

    def __enter__(self) -> "Ticker":
        self.start()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.stop()

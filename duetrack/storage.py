"""
Persistent storage for courses, sessions and assignments.

Tables:
    courses      code (PK), name
    sessions     id (PK, uuid4 hex), created_at
    assignments  id (PK, autoincrement), title, url, due_date, course_code (FK),
                 session_id (FK, nullable), completed, created_at, updated_at

Every public function runs in its own transaction (see db.session_scope) and
returns plain dataclasses from duetrack.model, never ORM rows.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, select
from sqlalchemy.orm import relationship, selectinload

from duetrack.db import Base, session_scope
from duetrack.errors import NotFoundError, ValidationError
from duetrack.model import Assignment, Course, Session, to_local

logger = logging.getLogger(__name__)

MIN_TITLE_LENGTH = 3
MIN_COURSE_CODE_LENGTH = 2
MIN_COURSE_NAME_LENGTH = 3


def _local_now() -> datetime:
    return datetime.now()


class CourseRow(Base):
    __tablename__ = "courses"

    code = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)


class SessionRow(Base):
    __tablename__ = "sessions"

    id = Column(String(32), primary_key=True, default=lambda: uuid.uuid4().hex)
    created_at = Column(DateTime(timezone=False), default=_local_now, nullable=False)

    assignments = relationship("AssignmentRow", back_populates="session")


class AssignmentRow(Base):
    __tablename__ = "assignments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    url = Column(String(2048), nullable=True)
    due_date = Column(DateTime(timezone=False), nullable=False, index=True)
    course_code = Column(String(64), ForeignKey("courses.code"), nullable=False)
    session_id = Column(String(32), ForeignKey("sessions.id"), nullable=True, index=True)
    completed = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=False), default=_local_now, nullable=False)
    updated_at = Column(DateTime(timezone=False), default=_local_now, onupdate=_local_now, nullable=False)

    course = relationship("CourseRow")
    session = relationship("SessionRow", back_populates="assignments")


# ---------------------------------------------------------------------------
# Row -> dataclass
# ---------------------------------------------------------------------------


def _course_from_row(row: CourseRow) -> Course:
    return Course(code=row.code, name=row.name)


def _assignment_from_row(row: AssignmentRow) -> Assignment:
    return Assignment(
        id=row.id,
        title=row.title,
        url=row.url,
        due_date=row.due_date,
        course_code=row.course_code,
        session_id=row.session_id,
        completed=bool(row.completed),
        created_at=row.created_at,
        updated_at=row.updated_at,
        course=_course_from_row(row.course) if row.course is not None else None,
    )


def _ordered_assignments_query():
    return (
        select(AssignmentRow)
        .options(selectinload(AssignmentRow.course))
        .order_by(AssignmentRow.due_date.asc(), AssignmentRow.id.asc())
    )


# ---------------------------------------------------------------------------
# Assignments
# ---------------------------------------------------------------------------


def list_assignments(session_id: Optional[str] = None) -> List[Assignment]:
    """
    Return assignments joined with their course, ascending by due date.

    session_id=None returns every assignment in the store.
    """
    query = _ordered_assignments_query()
    if session_id is not None:
        query = query.where(AssignmentRow.session_id == session_id)
    with session_scope() as db:
        rows = db.execute(query).scalars().all()
        return [_assignment_from_row(r) for r in rows]


def create_assignment(
    title: str,
    due_date: datetime,
    course_code: str,
    url: Optional[str] = None,
    session_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Assignment:
    """
    Validate and insert one assignment.

    Raises ValidationError for a short title or course code, a due date that
    is not strictly in the future, or an unknown course / session.
    """
    title = (title or "").strip()
    course_code = (course_code or "").strip()
    url = (url or "").strip() or None

    if len(title) < MIN_TITLE_LENGTH:
        raise ValidationError(f"Title must be at least {MIN_TITLE_LENGTH} characters")
    if len(course_code) < MIN_COURSE_CODE_LENGTH:
        raise ValidationError(f"Course code must be at least {MIN_COURSE_CODE_LENGTH} characters")
    if not isinstance(due_date, datetime):
        raise ValidationError("Due date is required")

    due_local = to_local(due_date)
    now_local = to_local(now) if now is not None else _local_now()
    if due_local <= now_local:
        raise ValidationError("Due date must be in the future")

    with session_scope() as db:
        course = db.get(CourseRow, course_code)
        if course is None:
            raise ValidationError(f"Unknown course code: {course_code}")
        if session_id is not None and db.get(SessionRow, session_id) is None:
            raise ValidationError(f"Unknown session: {session_id}")

        stamp = _local_now()
        row = AssignmentRow(
            title=title,
            url=url,
            due_date=due_local,
            course_code=course_code,
            session_id=session_id,
            completed=False,
            created_at=stamp,
            updated_at=stamp,
        )
        row.course = course
        db.add(row)
        db.flush()
        logger.info(f"Created assignment {row.id} ({course_code} - {title}) due {due_local.isoformat()}")
        return _assignment_from_row(row)


def delete_assignment(assignment_id: int) -> None:
    """Delete one assignment. Raises NotFoundError for unknown ids."""
    with session_scope() as db:
        row = db.get(AssignmentRow, assignment_id)
        if row is None:
            raise NotFoundError(f"Assignment {assignment_id} not found")
        db.delete(row)
    logger.info(f"Deleted assignment {assignment_id}")


def set_completed(assignment_id: int, completed: bool = True) -> Assignment:
    """Mark one assignment as completed (or not). Raises NotFoundError for unknown ids."""
    with session_scope() as db:
        row = db.get(AssignmentRow, assignment_id)
        if row is None:
            raise NotFoundError(f"Assignment {assignment_id} not found")
        row.completed = bool(completed)
        row.updated_at = _local_now()
        db.flush()
        return _assignment_from_row(row)


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------


def list_courses() -> List[Course]:
    """Return all courses ascending by code."""
    with session_scope() as db:
        rows = db.execute(select(CourseRow).order_by(CourseRow.code.asc())).scalars().all()
        return [_course_from_row(r) for r in rows]


def create_course(code: str, name: str) -> Course:
    """Insert one course. Raises ValidationError for short values or a duplicate code."""
    code = (code or "").strip()
    name = (name or "").strip()
    if len(code) < MIN_COURSE_CODE_LENGTH:
        raise ValidationError(f"Course code must be at least {MIN_COURSE_CODE_LENGTH} characters")
    if len(name) < MIN_COURSE_NAME_LENGTH:
        raise ValidationError(f"Course name must be at least {MIN_COURSE_NAME_LENGTH} characters")

    with session_scope() as db:
        if db.get(CourseRow, code) is not None:
            raise ValidationError(f"Course already exists: {code}")
        row = CourseRow(code=code, name=name)
        db.add(row)
        db.flush()
        logger.info(f"Created course {code}")
        return _course_from_row(row)


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


def create_session() -> Session:
    """Create a new, empty session with an opaque id."""
    with session_scope() as db:
        row = SessionRow(id=uuid.uuid4().hex, created_at=_local_now())
        db.add(row)
        db.flush()
        logger.info(f"Created session {row.id}")
        return Session(id=row.id, created_at=row.created_at)


def get_session(session_id: str) -> Session:
    """Return one session with its assignments. Raises NotFoundError for unknown ids."""
    with session_scope() as db:
        row = db.get(SessionRow, session_id)
        if row is None:
            raise NotFoundError(f"Session {session_id} not found")
        rows = db.execute(
            _ordered_assignments_query().where(AssignmentRow.session_id == session_id)
        ).scalars().all()
        return Session(
            id=row.id,
            created_at=row.created_at,
            assignments=[_assignment_from_row(r) for r in rows],
        )


def session_exists(session_id: str) -> bool:
    with session_scope() as db:
        return db.get(SessionRow, session_id) is not None

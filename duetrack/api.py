"""
FastAPI application for duetrack.

Central endpoints:
    GET    /health
    GET    /api/calendar[?sessionId=]            text/calendar feed
    GET    /api/assignments[?sessionId=]         ascending by due date
    POST   /api/assignments
    DELETE /api/assignments/{id}
    POST   /api/assignments/{id}/complete
    GET    /api/courses, POST /api/courses
    POST   /api/sessions, GET /api/sessions/{id}, GET /api/sessions/{id}/links

Run with `duetrack serve` (uvicorn). Docs at /docs.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import FastAPI, Query, Request, Response
from fastapi.responses import JSONResponse

from duetrack import storage
from duetrack.config import Settings, get_settings
from duetrack.db import init_db
from duetrack.errors import FeedBuildError, NotFoundError, ValidationError
from duetrack.export_ics import build_feed
from duetrack.links import build_session_links
from duetrack.schemas import (
    AssignmentCreate,
    AssignmentOut,
    CompleteRequest,
    CourseCreate,
    CourseOut,
    LinksOut,
    SessionDetail,
    SessionOut,
)

logger = logging.getLogger(__name__)

CALENDAR_MEDIA_TYPE = "text/calendar"


def create_app(settings: Optional[Settings] = None, db_url: Optional[str] = None) -> FastAPI:
    """
    Create the FastAPI app.

    The database engine is process-wide: the first init_db() wins and a
    different db_url passed later is ignored with a warning.
    """
    settings = settings or get_settings()
    init_db(db_url or settings.database_url)

    app = FastAPI(title="duetrack", description="Assignment deadlines and their calendar feed")

    @app.exception_handler(ValidationError)
    def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(NotFoundError)
    def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(FeedBuildError)
    def _feed_build_error(request: Request, exc: FeedBuildError) -> JSONResponse:
        return JSONResponse(status_code=500, content={"detail": "feed could not be built"})

    @app.get("/health")
    def healthcheck() -> dict:
        return {"status": "ok"}

    # ------------------------------------------------------------------
    # Calendar feed
    # ------------------------------------------------------------------
    @app.get("/api/calendar")
    def calendar_feed(session_id: Optional[str] = Query(None, alias="sessionId")) -> Response:
        """Generate the feed fresh from the store on every request."""
        if session_id is not None and not storage.session_exists(session_id):
            raise NotFoundError(f"Session {session_id} not found")
        assignments = storage.list_assignments(session_id)
        try:
            ics = build_feed(assignments, site_url=settings.site_url, calendar_name=settings.calendar_name)
        except FeedBuildError:
            logger.exception("Calendar feed build failed")
            raise
        return Response(content=ics, media_type=CALENDAR_MEDIA_TYPE)

    # ------------------------------------------------------------------
    # Assignments
    # ------------------------------------------------------------------
    @app.get("/api/assignments", response_model=List[AssignmentOut])
    def list_assignments(session_id: Optional[str] = Query(None, alias="sessionId")) -> List[AssignmentOut]:
        return [AssignmentOut.model_validate(a) for a in storage.list_assignments(session_id)]

    @app.post("/api/assignments", response_model=AssignmentOut, status_code=201)
    def create_assignment(payload: AssignmentCreate) -> AssignmentOut:
        created = storage.create_assignment(
            title=payload.title,
            due_date=payload.due_date,
            course_code=payload.course_code,
            url=payload.url,
            session_id=payload.session_id,
        )
        return AssignmentOut.model_validate(created)

    @app.delete("/api/assignments/{assignment_id}", status_code=204)
    def delete_assignment(assignment_id: int) -> Response:
        storage.delete_assignment(assignment_id)
        return Response(status_code=204)

    @app.post("/api/assignments/{assignment_id}/complete", response_model=AssignmentOut)
    def complete_assignment(assignment_id: int, payload: CompleteRequest) -> AssignmentOut:
        return AssignmentOut.model_validate(storage.set_completed(assignment_id, payload.completed))

    # ------------------------------------------------------------------
    # Courses
    # ------------------------------------------------------------------
    @app.get("/api/courses", response_model=List[CourseOut])
    def list_courses() -> List[CourseOut]:
        return [CourseOut.model_validate(c) for c in storage.list_courses()]

    @app.post("/api/courses", response_model=CourseOut, status_code=201)
    def create_course(payload: CourseCreate) -> CourseOut:
        return CourseOut.model_validate(storage.create_course(payload.code, payload.name))

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------
    @app.post("/api/sessions", response_model=SessionOut, status_code=201)
    def create_session() -> SessionOut:
        return SessionOut.model_validate(storage.create_session())

    @app.get("/api/sessions/{session_id}", response_model=SessionDetail)
    def get_session(session_id: str) -> SessionDetail:
        return SessionDetail.model_validate(storage.get_session(session_id))

    @app.get("/api/sessions/{session_id}/links", response_model=LinksOut)
    def session_links(session_id: str) -> LinksOut:
        if not storage.session_exists(session_id):
            raise NotFoundError(f"Session {session_id} not found")
        return LinksOut.model_validate(build_session_links(settings.public_base_url, session_id))

    return app

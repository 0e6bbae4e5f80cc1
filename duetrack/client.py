"""
HTTP client for the duetrack API.

Used by the terminal UI. Responses are converted back into duetrack.model
dataclasses so the UI never deals with raw JSON.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

import requests

from duetrack.errors import ApiError, NotFoundError, ValidationError
from duetrack.model import Assignment, Course, Session


def _parse_dt(value: Any) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(str(value))


def _course_from_json(data: dict[str, Any]) -> Course:
    return Course(code=str(data.get("code", "")), name=str(data.get("name", "")))


def assignment_from_json(data: dict[str, Any]) -> Assignment:
    course = data.get("course")
    return Assignment(
        id=int(data["id"]),
        title=str(data.get("title", "")),
        url=data.get("url"),
        due_date=_parse_dt(data.get("due_date")),
        course_code=str(data.get("course_code", "")),
        session_id=data.get("session_id"),
        completed=bool(data.get("completed", False)),
        created_at=_parse_dt(data.get("created_at")),
        updated_at=_parse_dt(data.get("updated_at")),
        course=_course_from_json(course) if isinstance(course, dict) else None,
    )


class ApiClient:
    """Thin wrapper around requests for the RPC surface of duetrack.api."""

    def __init__(self, base_url: str, timeout: float = 10.0, session: Optional[requests.Session] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        resp = self.http.request(method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs)
        if resp.ok:
            return resp

        detail = ""
        try:
            body = resp.json()
            detail = (body.get("detail") or "") if isinstance(body, dict) else ""
        except ValueError:
            detail = resp.text
        if not isinstance(detail, str):
            # FastAPI request validation returns a list of error dicts
            detail = "; ".join(str(d.get("msg", d)) if isinstance(d, dict) else str(d) for d in detail)

        if resp.status_code == 404:
            raise NotFoundError(detail or "not found")
        if resp.status_code == 422:
            raise ValidationError(detail or "invalid input")
        raise ApiError(resp.status_code, detail)

    # ------------------------------------------------------------------
    # Assignments
    # ------------------------------------------------------------------
    def list_assignments(self, session_id: Optional[str] = None) -> list[Assignment]:
        params = {"sessionId": session_id} if session_id else None
        resp = self._request("GET", "/api/assignments", params=params)
        return [assignment_from_json(x) for x in resp.json()]

    def create_assignment(
        self,
        title: str,
        due_date: datetime,
        course_code: str,
        url: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> Assignment:
        payload = {
            "title": title,
            "due_date": due_date.isoformat(),
            "course_code": course_code,
            "url": url,
            "session_id": session_id,
        }
        resp = self._request("POST", "/api/assignments", json=payload)
        return assignment_from_json(resp.json())

    def delete_assignment(self, assignment_id: int) -> None:
        self._request("DELETE", f"/api/assignments/{assignment_id}")

    def set_completed(self, assignment_id: int, completed: bool = True) -> Assignment:
        resp = self._request("POST", f"/api/assignments/{assignment_id}/complete", json={"completed": completed})
        return assignment_from_json(resp.json())

    # ------------------------------------------------------------------
    # Courses
    # ------------------------------------------------------------------
    def list_courses(self) -> list[Course]:
        return [_course_from_json(x) for x in self._request("GET", "/api/courses").json()]

    def create_course(self, code: str, name: str) -> Course:
        resp = self._request("POST", "/api/courses", json={"code": code, "name": name})
        return _course_from_json(resp.json())

    # ------------------------------------------------------------------
    # Sessions / feed
    # ------------------------------------------------------------------
    def create_session(self) -> Session:
        data = self._request("POST", "/api/sessions").json()
        return Session(id=data["id"], created_at=_parse_dt(data.get("created_at")))

    def get_session(self, session_id: str) -> Session:
        data = self._request("GET", f"/api/sessions/{session_id}").json()
        return Session(
            id=data["id"],
            created_at=_parse_dt(data.get("created_at")),
            assignments=[assignment_from_json(x) for x in data.get("assignments", [])],
        )

    def session_links(self, session_id: str) -> dict[str, str]:
        return self._request("GET", f"/api/sessions/{session_id}/links").json()

    def calendar(self, session_id: Optional[str] = None) -> str:
        params = {"sessionId": session_id} if session_id else None
        return self._request("GET", "/api/calendar", params=params).text

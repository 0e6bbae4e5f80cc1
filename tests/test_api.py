"""
HTTP tests for the FastAPI application (in-memory SQLite per test).
"""

import unittest
from datetime import datetime, timedelta
from unittest import mock

from fastapi.testclient import TestClient
from icalendar import Calendar

from duetrack import storage
from duetrack.api import create_app
from duetrack.config import Settings
from duetrack.db import reset_db
from duetrack.model import Assignment


def _future(days: int) -> str:
    return (datetime.now() + timedelta(days=days)).replace(second=0, microsecond=0).isoformat()


class ApiTestCase(unittest.TestCase):
    site_url = ""

    def setUp(self) -> None:
        reset_db()
        settings = Settings(site_url=self.site_url, public_base_url="due.example.com")
        self.client = TestClient(create_app(settings, db_url="sqlite://"))
        self.assertEqual(self.client.post("/api/courses", json={"code": "CS101", "name": "Intro"}).status_code, 201)

    def tearDown(self) -> None:
        reset_db()

    def _add(self, title: str, days: int, **extra) -> dict:
        payload = {"title": title, "due_date": _future(days), "course_code": "CS101", **extra}
        resp = self.client.post("/api/assignments", json=payload)
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()

    def _feed_events(self, **params) -> list:
        resp = self.client.get("/api/calendar", params=params)
        self.assertEqual(resp.status_code, 200, resp.text)
        return Calendar.from_ical(resp.text).walk("VEVENT")


class TestHealthAndCourses(ApiTestCase):
    def test_healthcheck(self) -> None:
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "ok")

    def test_courses_sorted_by_code(self) -> None:
        self.client.post("/api/courses", json={"code": "AB1", "name": "Accounting"})
        codes = [c["code"] for c in self.client.get("/api/courses").json()]
        self.assertEqual(codes, ["AB1", "CS101"])

    def test_duplicate_course_is_validation_error(self) -> None:
        resp = self.client.post("/api/courses", json={"code": "CS101", "name": "Intro again"})
        self.assertEqual(resp.status_code, 422)
        self.assertIn("already exists", resp.json()["detail"])


class TestAssignments(ApiTestCase):
    def test_create_and_list(self) -> None:
        created = self._add("Lab report", 3, url="https://lms.example.com/1")
        self.assertEqual(created["course"]["code"], "CS101")
        self.assertFalse(created["completed"])

        listed = self.client.get("/api/assignments").json()
        self.assertEqual([a["id"] for a in listed], [created["id"]])

    def test_past_due_date_rejected_and_absent_from_feed(self) -> None:
        payload = {"title": "Too late", "due_date": _future(-1), "course_code": "CS101"}
        resp = self.client.post("/api/assignments", json=payload)
        self.assertEqual(resp.status_code, 422)
        self.assertIn("future", resp.json()["detail"])
        self.assertEqual(self._feed_events(), [])

    def test_delete_removes_from_list_and_feed(self) -> None:
        keep = self._add("Keep me", 2)
        drop = self._add("Drop me", 3)
        self.assertEqual(len(self._feed_events()), 2)

        self.assertEqual(self.client.delete(f"/api/assignments/{drop['id']}").status_code, 204)

        listed = self.client.get("/api/assignments").json()
        self.assertEqual([a["id"] for a in listed], [keep["id"]])
        self.assertEqual([str(ev["UID"]) for ev in self._feed_events()], [f"X{keep['id']}"])

    def test_delete_unknown_is_404(self) -> None:
        resp = self.client.delete("/api/assignments/9999")
        self.assertEqual(resp.status_code, 404)

    def test_complete(self) -> None:
        a = self._add("Essay", 4)
        resp = self.client.post(f"/api/assignments/{a['id']}/complete", json={"completed": True})
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()["completed"])
        self.assertEqual(self.client.post("/api/assignments/777/complete", json={}).status_code, 404)


class TestCalendarFeed(ApiTestCase):
    def test_content_type_and_empty_feed(self) -> None:
        resp = self.client.get("/api/calendar")
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.headers["content-type"].startswith("text/calendar"))
        self.assertEqual(Calendar.from_ical(resp.text).walk("VEVENT"), [])
        self.assertNotIn("X-ORIGINAL-URL", resp.text)

    def test_feed_is_ordered_by_due_date(self) -> None:
        now = datetime(2024, 1, 1)
        for day in ("2024-03-01", "2024-01-15", "2024-02-10"):
            storage.create_assignment(f"Due {day}", datetime.fromisoformat(f"{day}T09:00"), "CS101", now=now)
        starts = [ev["DTSTART"].dt.date().isoformat() for ev in self._feed_events()]
        self.assertEqual(starts, ["2024-01-15", "2024-02-10", "2024-03-01"])

    def test_uids_stable_between_requests(self) -> None:
        self._add("One", 1)
        self._add("Two", 2)
        first = [str(ev["UID"]) for ev in self._feed_events()]
        second = [str(ev["UID"]) for ev in self._feed_events()]
        self.assertEqual(first, second)
        self.assertEqual(len(set(first)), 2)

    def test_feed_scoped_by_session(self) -> None:
        session_id = self.client.post("/api/sessions").json()["id"]
        mine = self._add("Mine", 2, session_id=session_id)
        self._add("Global", 3)
        uids = [str(ev["UID"]) for ev in self._feed_events(sessionId=session_id)]
        self.assertEqual(uids, [f"X{mine['id']}"])
        self.assertEqual(self.client.get("/api/calendar", params={"sessionId": "nope"}).status_code, 404)

    def test_build_failure_is_500_without_partial_output(self) -> None:
        broken = Assignment(id=1, title="Broken", due_date="not a date", course_code="CS101")  # type: ignore[arg-type]
        with mock.patch("duetrack.api.storage.list_assignments", return_value=[broken]):
            resp = self.client.get("/api/calendar")
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()["detail"], "feed could not be built")
        self.assertNotIn("BEGIN:VCALENDAR", resp.text)


class TestCalendarFeedWithSiteUrl(ApiTestCase):
    site_url = "https://due.example.com"

    def test_origin_url_line_present(self) -> None:
        resp = self.client.get("/api/calendar")
        self.assertIn("X-ORIGINAL-URL:https://due.example.com\r\n", resp.text)


class TestSessions(ApiTestCase):
    def test_create_get_and_links(self) -> None:
        created = self.client.post("/api/sessions")
        self.assertEqual(created.status_code, 201)
        session_id = created.json()["id"]
        self._add("Session work", 5, session_id=session_id)

        detail = self.client.get(f"/api/sessions/{session_id}").json()
        self.assertEqual(detail["id"], session_id)
        self.assertEqual([a["title"] for a in detail["assignments"]], ["Session work"])

        links = self.client.get(f"/api/sessions/{session_id}/links").json()
        self.assertEqual(links["subscribe_url"], f"webcal://due.example.com/api/calendar?sessionId={session_id}")
        self.assertEqual(links["feed_url"], f"http://due.example.com/api/calendar?sessionId={session_id}")

    def test_unknown_session_is_404(self) -> None:
        self.assertEqual(self.client.get("/api/sessions/missing").status_code, 404)
        self.assertEqual(self.client.get("/api/sessions/missing/links").status_code, 404)


if __name__ == "__main__":
    unittest.main()

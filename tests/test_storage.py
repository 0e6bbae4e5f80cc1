"""
Unit tests for the assignment store.

Storage contract:
- assignments come back joined with their course, ascending by due date
- due date must be strictly in the future at creation time
- title >= 3 chars, course code >= 2 chars, course name >= 3 chars
- unknown ids -> NotFoundError
"""

import unittest
from datetime import datetime, timedelta

from duetrack import storage
from duetrack.db import init_db, reset_db
from duetrack.errors import NotFoundError, ValidationError


NOW = datetime(2024, 1, 1, 12, 0)


class StoreTestCase(unittest.TestCase):
    def setUp(self) -> None:
        reset_db()
        init_db("sqlite://")
        storage.create_course("CS101", "Intro to Programming")
        storage.create_course("MA2", "Linear Algebra")

    def tearDown(self) -> None:
        reset_db()


class TestAssignments(StoreTestCase):
    def test_create_returns_joined_assignment(self) -> None:
        a = storage.create_assignment("Lab report", datetime(2024, 1, 15, 9, 30), "CS101", now=NOW)
        self.assertGreater(a.id, 0)
        self.assertFalse(a.completed)
        self.assertIsNone(a.url)
        self.assertIsNotNone(a.created_at)
        self.assertEqual(a.course.name, "Intro to Programming")

    def test_list_is_ascending_by_due_date(self) -> None:
        for day in ("2024-03-01", "2024-01-15", "2024-02-10"):
            storage.create_assignment(f"Due {day}", datetime.fromisoformat(f"{day}T10:00"), "CS101", now=NOW)
        dues = [a.due_date.date().isoformat() for a in storage.list_assignments()]
        self.assertEqual(dues, ["2024-01-15", "2024-02-10", "2024-03-01"])

    def test_due_date_must_be_strictly_future(self) -> None:
        with self.assertRaises(ValidationError):
            storage.create_assignment("Too late", NOW - timedelta(minutes=1), "CS101", now=NOW)
        with self.assertRaises(ValidationError):
            storage.create_assignment("Right now", NOW, "CS101", now=NOW)
        self.assertEqual(storage.list_assignments(), [])

    def test_past_due_date_against_real_clock(self) -> None:
        with self.assertRaises(ValidationError):
            storage.create_assignment("Yesterday", datetime.now() - timedelta(days=1), "CS101")

    def test_short_title_and_code_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            storage.create_assignment("ab", datetime(2024, 2, 1), "CS101", now=NOW)
        with self.assertRaises(ValidationError):
            storage.create_assignment("Essay", datetime(2024, 2, 1), "C", now=NOW)

    def test_unknown_course_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            storage.create_assignment("Essay", datetime(2024, 2, 1), "XX999", now=NOW)

    def test_blank_url_stored_as_none(self) -> None:
        a = storage.create_assignment("Essay", datetime(2024, 2, 1), "CS101", url="  ", now=NOW)
        self.assertIsNone(a.url)
        b = storage.create_assignment("Quiz", datetime(2024, 2, 2), "CS101", url="https://lms.example.com/q", now=NOW)
        self.assertEqual(b.url, "https://lms.example.com/q")

    def test_delete_removes_assignment(self) -> None:
        a = storage.create_assignment("Essay", datetime(2024, 2, 1), "CS101", now=NOW)
        storage.delete_assignment(a.id)
        self.assertEqual(storage.list_assignments(), [])

    def test_delete_unknown_raises_not_found(self) -> None:
        with self.assertRaises(NotFoundError):
            storage.delete_assignment(424242)

    def test_set_completed(self) -> None:
        a = storage.create_assignment("Essay", datetime(2024, 2, 1), "CS101", now=NOW)
        done = storage.set_completed(a.id)
        self.assertTrue(done.completed)
        self.assertGreaterEqual(done.updated_at, a.updated_at)
        reopened = storage.set_completed(a.id, completed=False)
        self.assertFalse(reopened.completed)
        with self.assertRaises(NotFoundError):
            storage.set_completed(999)


class TestCourses(StoreTestCase):
    def test_list_is_ascending_by_code(self) -> None:
        storage.create_course("AB12", "Accounting Basics")
        self.assertEqual([c.code for c in storage.list_courses()], ["AB12", "CS101", "MA2"])

    def test_duplicate_or_short_values_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            storage.create_course("CS101", "Again")
        with self.assertRaises(ValidationError):
            storage.create_course("C", "Valid name")
        with self.assertRaises(ValidationError):
            storage.create_course("PH1", "Ph")


class TestInitDb(StoreTestCase):
    def test_second_url_is_ignored_with_warning(self) -> None:
        with self.assertLogs("duetrack.db", level="WARNING") as logs:
            init_db("sqlite:////tmp/other-duetrack.db")
        self.assertIn("ignoring sqlite:////tmp/other-duetrack.db", logs.output[0])
        # still the in-memory database from setUp
        self.assertEqual([c.code for c in storage.list_courses()], ["CS101", "MA2"])

    def test_same_url_is_a_quiet_no_op(self) -> None:
        with self.assertLogs("duetrack.db", level="DEBUG") as logs:
            init_db("sqlite://")
        self.assertTrue(all("DEBUG" in line for line in logs.output))


class TestSessions(StoreTestCase):
    def test_session_scopes_assignments(self) -> None:
        s1 = storage.create_session()
        s2 = storage.create_session()
        self.assertNotEqual(s1.id, s2.id)

        storage.create_assignment("Mine", datetime(2024, 2, 1), "CS101", session_id=s1.id, now=NOW)
        storage.create_assignment("Theirs", datetime(2024, 2, 2), "MA2", session_id=s2.id, now=NOW)
        storage.create_assignment("Nobody's", datetime(2024, 2, 3), "MA2", now=NOW)

        self.assertEqual([a.title for a in storage.list_assignments(s1.id)], ["Mine"])
        self.assertEqual(len(storage.list_assignments()), 3)

        fetched = storage.get_session(s1.id)
        self.assertEqual(fetched.id, s1.id)
        self.assertEqual([a.title for a in fetched.assignments], ["Mine"])

    def test_unknown_session(self) -> None:
        with self.assertRaises(NotFoundError):
            storage.get_session("does-not-exist")
        with self.assertRaises(ValidationError):
            storage.create_assignment("Essay", datetime(2024, 2, 1), "CS101", session_id="nope", now=NOW)
        self.assertFalse(storage.session_exists("nope"))


if __name__ == "__main__":
    unittest.main()

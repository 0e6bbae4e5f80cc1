import unittest

from duetrack.links import build_session_links, feed_url


class TestLinks(unittest.TestCase):
    def test_base_without_scheme_defaults_to_http(self) -> None:
        links = build_session_links("localhost:8000", "abc123")
        self.assertEqual(links.session_url, "http://localhost:8000/session/abc123")
        self.assertEqual(links.feed_url, "http://localhost:8000/api/calendar?sessionId=abc123")
        self.assertEqual(links.subscribe_url, "webcal://localhost:8000/api/calendar?sessionId=abc123")

    def test_https_base_with_prefix_and_trailing_slash(self) -> None:
        links = build_session_links("https://due.example.com/app/", "s1")
        self.assertEqual(links.feed_url, "https://due.example.com/app/api/calendar?sessionId=s1")
        self.assertEqual(links.subscribe_url, "webcal://due.example.com/app/api/calendar?sessionId=s1")

    def test_feed_url_without_session(self) -> None:
        self.assertEqual(feed_url("due.example.com"), "http://due.example.com/api/calendar")

    def test_empty_base_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            feed_url("  ")


if __name__ == "__main__":
    unittest.main()

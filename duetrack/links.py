"""
Shareable links built from the public base URL.

    session page   http://<host>/session/<id>
    feed download  http://<host>/api/calendar?sessionId=<id>
    subscription   webcal://<host>/api/calendar?sessionId=<id>
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode, urlsplit

FEED_PATH = "/api/calendar"


@dataclass
class SessionLinks:
    session_url: str
    feed_url: str
    subscribe_url: str


def _split_base(public_base_url: str) -> tuple[str, str]:
    """
    Return (scheme, host[/prefix]) for a base URL with or without scheme.
    """
    base = (public_base_url or "").strip().rstrip("/")
    if not base:
        raise ValueError("public base URL is empty")
    if "://" not in base:
        return "http", base
    parts = urlsplit(base)
    return parts.scheme or "http", f"{parts.netloc}{parts.path}".rstrip("/")


def feed_url(public_base_url: str, session_id: Optional[str] = None, scheme: Optional[str] = None) -> str:
    """
    URL of the calendar feed; scheme="webcal" gives the subscription form.
    """
    base_scheme, host = _split_base(public_base_url)
    query = f"?{urlencode({'sessionId': session_id})}" if session_id else ""
    return f"{scheme or base_scheme}://{host}{FEED_PATH}{query}"


def build_session_links(public_base_url: str, session_id: str) -> SessionLinks:
    scheme, host = _split_base(public_base_url)
    return SessionLinks(
        session_url=f"{scheme}://{host}/session/{session_id}",
        feed_url=feed_url(public_base_url, session_id),
        subscribe_url=feed_url(public_base_url, session_id, scheme="webcal"),
    )

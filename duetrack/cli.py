"""
CLI (Command Line Interface).

Quick terminal commands against a running duetrack service, e.g.:

    duetrack serve
    duetrack session new
    duetrack add-course 3AC3 "Advanced Accounting"
    duetrack --session <id> add 3AC3 "Case study" "2025-03-01 23:59"
    duetrack --session <id> list
    duetrack --session <id> export out.ics
    duetrack --session <id> watch

Note:
- The interactive UI lives in duetrack/interactive.py
- This CLI prints plain text; only `watch` and `interactive` use rich
"""

from __future__ import annotations

import argparse
import os
from pathlib import Path

import requests

from duetrack.board import AssignmentBoard, format_countdown, parse_due
from duetrack.client import ApiClient
from duetrack.config import get_settings, setup_logging
from duetrack.errors import DuetrackError

DEFAULT_API_URL = "http://127.0.0.1:8000"


def _client(args: argparse.Namespace) -> ApiClient:
    return ApiClient(args.api)


def _cmd_serve(args: argparse.Namespace) -> int:
    """
    Run the HTTP service with uvicorn.
    """
    import uvicorn

    from duetrack.api import create_app

    settings = get_settings()
    setup_logging(settings.log_level)
    uvicorn.run(create_app(settings, db_url=args.db), host=args.host, port=args.port)
    return 0


def _cmd_session(args: argparse.Namespace) -> int:
    client = _client(args)
    if args.action == "new":
        session = client.create_session()
        print(f"Session: {session.id}")
        links = client.session_links(session.id)
        print(f"Open:      {links['session_url']}")
        print(f"Subscribe: {links['subscribe_url']}")
        return 0

    session_id = (args.session_id or args.session or "").strip()
    if not session_id:
        print("Please provide a session id.")
        return 1
    session = client.get_session(session_id)
    print(f"Session {session.id} (created {session.created_at:%Y-%m-%d %H:%M})")
    print(f"Assignments: {len(session.assignments)}")
    return 0


def _cmd_courses(args: argparse.Namespace) -> int:
    courses = _client(args).list_courses()
    if not courses:
        print("No courses.")
        return 0
    for c in courses:
        print(f"{c.code} | {c.name}")
    return 0


def _cmd_add_course(args: argparse.Namespace) -> int:
    course = _client(args).create_course(args.code, args.name)
    print(f"Added course: {course.code} | {course.name}")
    return 0


def _cmd_list(args: argparse.Namespace) -> int:
    """
    Print assignments ascending by due date, with countdowns.
    """
    assignments = _client(args).list_assignments(args.session)
    if not assignments:
        print("No assignments.")
        return 0
    for a in assignments:
        left = "done" if a.completed else format_countdown(a.due_date)
        print(f"{a.id} | {a.course_code} | {a.title} | {a.due_date:%Y-%m-%d %H:%M} | {left}")
    return 0


def _cmd_add(args: argparse.Namespace) -> int:
    due = parse_due(args.due)
    title = (args.title or "").strip()
    if not title:
        print("Please provide a title.")
        return 1

    board = AssignmentBoard(_client(args), session_id=args.session)
    created = board.add(title=title, due_date=due, course_code=args.course_code.strip(), url=args.url)
    print(f"Added: #{created.id} {created.course_code} - {created.title} ({format_countdown(created.due_date)})")
    return 0


def _cmd_delete(args: argparse.Namespace) -> int:
    board = AssignmentBoard(_client(args), session_id=args.session)
    board.delete(args.id)
    print(f"Deleted: #{args.id}")
    return 0


def _cmd_complete(args: argparse.Namespace) -> int:
    board = AssignmentBoard(_client(args), session_id=args.session)
    board.complete(args.id, completed=not args.undo)
    print(f"{'Reopened' if args.undo else 'Completed'}: #{args.id}")
    return 0


def _cmd_export(args: argparse.Namespace) -> int:
    """
    Export the calendar feed into an .ics file.

    --local builds it straight from the local database instead of the service.
    """
    out_path = (args.out or "").strip()
    if not out_path:
        print("Please provide output .ics path.")
        return 1

    if args.local:
        from duetrack import storage
        from duetrack.db import init_db
        from duetrack.export_ics import export_feed_to_file

        settings = get_settings()
        init_db(args.db or settings.database_url)
        assignments = storage.list_assignments(args.session)
        n = export_feed_to_file(
            assignments, out_path, site_url=settings.site_url, calendar_name=settings.calendar_name
        )
    else:
        text = _client(args).calendar(args.session)
        out = Path(out_path)
        out.parent.mkdir(parents=True, exist_ok=True)
        with out.open("w", encoding="utf-8", newline="") as fh:
            fh.write(text)
        n = text.count("BEGIN:VEVENT")

    print(f"Exported {n} events to: {out_path}")
    return 0


def _cmd_links(args: argparse.Namespace) -> int:
    if not args.session:
        print("Please provide --session.")
        return 1
    links = _client(args).session_links(args.session)
    print(f"Session page: {links['session_url']}")
    print(f"Download:     {links['feed_url']}")
    print(f"Subscribe:    {links['subscribe_url']}")
    return 0


def _cmd_watch(args: argparse.Namespace) -> int:
    from duetrack.interactive import watch

    board = AssignmentBoard(_client(args), session_id=args.session)
    board.refresh()
    watch(board, interval=args.interval)
    return 0


def _cmd_interactive(args: argparse.Namespace) -> int:
    from duetrack.interactive import run_interactive

    client = _client(args)
    run_interactive(AssignmentBoard(client, session_id=args.session), client)
    return 0


COMMANDS = {
    "serve": _cmd_serve,
    "session": _cmd_session,
    "courses": _cmd_courses,
    "add-course": _cmd_add_course,
    "list": _cmd_list,
    "add": _cmd_add,
    "delete": _cmd_delete,
    "complete": _cmd_complete,
    "export": _cmd_export,
    "links": _cmd_links,
    "watch": _cmd_watch,
    "interactive": _cmd_interactive,
}


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="duetrack", description="duetrack CLI")
    parser.add_argument(
        "--api",
        type=str,
        default=os.getenv("DUETRACK_API_URL", DEFAULT_API_URL),
        help="Base URL of the duetrack service",
    )
    parser.add_argument(
        "--session",
        type=str,
        default=os.getenv("DUETRACK_SESSION") or None,
        help="Session id to scope assignments to",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_serve = sub.add_parser("serve", help="Run the HTTP service")
    p_serve.add_argument("--host", type=str, default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8000)
    p_serve.add_argument("--db", type=str, default=None, help="SQLAlchemy database URL")

    p_session = sub.add_parser("session", help="Create or show a session")
    p_session.add_argument("action", choices=["new", "show"])
    p_session.add_argument("session_id", nargs="?", default=None)

    sub.add_parser("courses", help="List courses")

    p_add_course = sub.add_parser("add-course", help="Add a course")
    p_add_course.add_argument("code", type=str, help="Course code (e.g. 3AC3)")
    p_add_course.add_argument("name", type=str, help="Course name")

    sub.add_parser("list", help="List assignments by due date")

    p_add = sub.add_parser("add", help="Add an assignment")
    p_add.add_argument("course_code", type=str)
    p_add.add_argument("title", type=str)
    p_add.add_argument("due", type=str, help="Due date 'YYYY-MM-DD HH:MM' (local time)")
    p_add.add_argument("--url", type=str, default=None, help="Link to the assignment")

    p_delete = sub.add_parser("delete", help="Delete an assignment")
    p_delete.add_argument("id", type=int)

    p_complete = sub.add_parser("complete", help="Mark an assignment complete")
    p_complete.add_argument("id", type=int)
    p_complete.add_argument("--undo", action="store_true", help="Mark as not completed")

    p_export = sub.add_parser("export", help="Export the calendar feed to .ics")
    p_export.add_argument("out", type=str, help="Output file path (e.g. out.ics)")
    p_export.add_argument("--local", action="store_true", help="Read the local database instead of the service")
    p_export.add_argument("--db", type=str, default=None, help="SQLAlchemy database URL (with --local)")

    sub.add_parser("links", help="Show download and subscription links")

    p_watch = sub.add_parser("watch", help="Live countdown view")
    p_watch.add_argument("--interval", type=float, default=1.0)

    sub.add_parser("interactive", help="Interactive menu mode")

    return parser


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    handler = COMMANDS.get(args.command)
    if handler is None:
        raise SystemExit(2)

    try:
        code = handler(args)
    except DuetrackError as e:
        print(f"Error: {e}")
        code = 1
    except requests.RequestException as e:
        print(f"Server not reachable at {args.api}: {e}")
        code = 1
    raise SystemExit(code)

from __future__ import annotations

import time
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import requests
from rich import box
from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.table import Table

from duetrack.board import DUE_FORMAT, AssignmentBoard, Ticker, format_countdown, parse_due, urgency
from duetrack.errors import DuetrackError
from duetrack.model import Assignment

console = Console()

_URGENCY_STYLE = {"overdue": "red", "soon": "yellow", "ok": "green"}


def _println(msg: str = "") -> None:
    console.print(msg)


def _prompt(msg: str) -> str:
    return console.input(msg)


def render_table(assignments: list[Assignment], now: Optional[datetime] = None, title: str = "Assignments") -> Table:
    """
    One row per assignment: id, course, title, due date, countdown.
    Completed rows are dimmed; countdown colour follows urgency.
    """
    now = now or datetime.now()
    table = Table(title=title, box=box.SIMPLE)
    table.add_column("#", justify="right")
    table.add_column("Course")
    table.add_column("Title")
    table.add_column("Due")
    table.add_column("Left")

    for a in assignments:
        left = format_countdown(a.due_date, now)
        style = _URGENCY_STYLE[urgency(a.due_date, now)]
        title_cell = f"[strike dim]{escape(a.title)}[/]" if a.completed else escape(a.title)
        if a.url:
            title_cell = f"[link={a.url}]{title_cell}[/link]"
        ident = "…" if a.id < 0 else str(a.id)
        table.add_row(
            ident,
            f"[bold cyan]{escape(a.course_code)}[/]",
            title_cell,
            a.due_date.strftime(DUE_FORMAT),
            "[dim]done[/]" if a.completed else f"[{style}]{left}[/]",
        )
    return table


def watch(board: AssignmentBoard, interval: float = 1.0) -> None:
    """
    Live countdown view. Re-renders every `interval` seconds from the local
    list (no re-fetch) until Ctrl+C; the ticker lives only as long as the view.
    """
    with Live(render_table(board.assignments), console=console, auto_refresh=False) as live:

        def _tick() -> None:
            live.update(render_table(board.assignments), refresh=True)

        with Ticker(interval, _tick):
            try:
                while True:
                    time.sleep(0.25)
            except KeyboardInterrupt:
                pass
    _println("Stopped live view.")


def run_interactive(board: AssignmentBoard, client: Any) -> None:
    """
    Interactive menu loop over one board.
    """
    try:
        board.refresh()
    except (DuetrackError, requests.RequestException) as e:
        _println(f"[red]Could not load assignments: {e}[/]")

    while True:
        _print_header(board)

        choice = _prompt(
            "\n[1] List assignments\n"
            "[2] Add assignment\n"
            "[3] Delete assignment\n"
            "[4] Mark complete\n"
            "[5] Add course\n"
            "[6] Live countdown\n"
            "[7] Export .ics\n"
            "[8] Calendar subscription links\n"
            "[0] Exit\n"
            "Select: "
        ).strip()

        if choice == "0":
            _println("Bye.")
            return

        try:
            if choice == "1":
                _flow_list(board)
            elif choice == "2":
                _flow_add(board, client)
            elif choice == "3":
                _flow_pick_and(board, "delete", board.delete)
            elif choice == "4":
                _flow_pick_and(board, "mark complete", board.complete)
            elif choice == "5":
                _flow_add_course(client)
            elif choice == "6":
                watch(board)
            elif choice == "7":
                _flow_export(board, client)
            elif choice == "8":
                _flow_links(board, client)
            else:
                _println("Invalid choice.")
        except DuetrackError as e:
            _println(f"[red]{e}[/]")
        except requests.RequestException as e:
            _println(f"[red]Server not reachable: {e}[/]")


def _print_header(board: AssignmentBoard) -> None:
    _println("\n=== duetrack (interactive) ===")
    scope = f"session {board.session_id}" if board.session_id else "all assignments"
    open_count = sum(1 for a in board.assignments if not a.completed)
    _println(f"Scope: {scope} | Assignments: {len(board.assignments)} | Open: {open_count}")


def _flow_list(board: AssignmentBoard) -> None:
    if not board.assignments:
        _println("No assignments yet.")
        return
    console.print(render_table(board.assignments))


def _flow_add(board: AssignmentBoard, client: Any) -> None:
    courses = client.list_courses()
    if not courses:
        _println("No courses yet. Add one first ([5]).")
        return

    table = Table(title="Courses", box=box.SIMPLE)
    table.add_column("Code")
    table.add_column("Name")
    for c in courses:
        table.add_row(c.code, c.name)
    console.print(table)

    code = _prompt("Course code: ").strip()
    title = _prompt("Title: ").strip()
    due = parse_due(_prompt("Due (YYYY-MM-DD HH:MM): "))
    url = _prompt("Link (optional): ").strip() or None

    created = board.add(title=title, due_date=due, course_code=code, url=url)
    _println(f"Added: {created.course_code} - {created.title} ({format_countdown(created.due_date)})")


def _flow_pick_and(board: AssignmentBoard, verb: str, action: Any) -> None:
    if not board.assignments:
        _println("No assignments yet.")
        return
    console.print(render_table(board.assignments))
    pick = _prompt(f"Enter # to {verb} (or blank to cancel): ").strip()
    if not pick:
        return
    if not pick.isdigit():
        _println("Not a number.")
        return
    ident = int(pick)
    if ident not in {a.id for a in board.assignments}:
        _println("No such assignment.")
        return
    action(ident)
    _println(f"Done: {verb} #{ident}")


def _flow_add_course(client: Any) -> None:
    code = _prompt("Course code (e.g., 3AC3): ").strip()
    name = _prompt("Course name: ").strip()
    course = client.create_course(code, name)
    _println(f"Added course: {course.code} | {course.name}")


def _flow_export(board: AssignmentBoard, client: Any) -> None:
    downloads = Path.home() / "Downloads"
    default_name = "duetrack.ics"

    out_in = _prompt(f"Please enter desired file name, default is [{default_name}]: ").strip()
    out_path = downloads / (out_in or default_name)
    if out_path.suffix.lower() != ".ics":
        out_path = out_path.with_suffix(".ics")

    text = client.calendar(board.session_id)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("w", encoding="utf-8", newline="") as fh:
        fh.write(text)

    _println(f"\nExported {text.count('BEGIN:VEVENT')} events.")
    _println(f"Saved to: {out_path.resolve()}")


def _flow_links(board: AssignmentBoard, client: Any) -> None:
    if not board.session_id:
        _println("Links are per session. Start with --session <id> or `duetrack session new`.")
        return
    links = client.session_links(board.session_id)
    _println(f"Session page: {links['session_url']}")
    _println(f"Download:     {links['feed_url']}")
    _println(f"Subscribe:    {links['subscribe_url']}")
    _println(
        "\nNext steps:\n"
        "- Google Calendar: Other calendars -> From URL -> paste the download link\n"
        "- Apple Calendar / Outlook: open the webcal:// link to subscribe\n"
    )

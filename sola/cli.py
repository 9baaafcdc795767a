"""Sola CLI -- record your day, let the service keep score."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import AsyncIterator, Awaitable, Callable, Optional

import typer
from rich.logging import RichHandler

from sola import config as cfg
from sola import display
from sola.clock import Clock
from sola.models import TaskStatus
from sola.sync import SyncOrchestrator
from sola.transport import Transport, TransportError

app = typer.Typer(
    name="sola",
    help="Daily mission, mood, habits and tasks, with XP and streaks kept by the Sola service.",
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every request"),
) -> None:
    """Sola daily progress tracker."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=display.console, show_path=False)],
        force=True,
    )


def _transport() -> Transport:
    """Build the transport from config (convenience wrapper)."""
    return Transport(cfg.get_base_url(), timeout=cfg.load_config().timeout_seconds)


@contextlib.asynccontextmanager
async def _session(start: bool = True) -> AsyncIterator[SyncOrchestrator]:
    config = cfg.load_config()
    async with _transport() as transport:
        orchestrator = SyncOrchestrator(
            transport, clock=Clock(interval=config.poll_interval_seconds)
        )
        if start:
            await orchestrator.start()
        yield orchestrator


def _run(action: Callable[[SyncOrchestrator], Awaitable[None]]) -> None:
    """Load every domain, run ``action``, and report failures."""

    async def _main() -> None:
        async with _session() as orchestrator:
            await action(orchestrator)

    try:
        asyncio.run(_main())
    except TransportError as exc:
        display.print_error(f"Service error: {exc}")
        raise typer.Exit(1)
    except KeyError as exc:
        display.print_warning(str(exc.args[0]) if exc.args else "Not found.")
        raise typer.Exit(1)
    except (ValueError, LookupError) as exc:
        display.print_error(str(exc))
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Today
# ---------------------------------------------------------------------------


@app.command()
def status() -> None:
    """See how your day is going."""

    async def show(orch: SyncOrchestrator) -> None:
        display.print_status(orch.store, orch.day)

    _run(show)


@app.command()
def mission(text: str = typer.Argument(..., help="Your mission for today")) -> None:
    """Save today's mission."""

    async def save(orch: SyncOrchestrator) -> None:
        await orch.save_mission(text)
        display.print_success(f"Mission saved: {text}")

    _run(save)


@app.command(name="mission-done")
def mission_done(
    draft: str = typer.Option("", "--text", "-t", help="Mission text to save first if none exists"),
) -> None:
    """Complete today's mission (or undo it)."""

    async def toggle(orch: SyncOrchestrator) -> None:
        done = await orch.toggle_mission_done(draft)
        if done is None:
            display.print_warning("No mission yet. Save one first or pass --text.")
        elif done:
            display.print_success("Mission complete.")
        else:
            display.print_info("Mission marked as not done.")

    _run(toggle)


@app.command()
def mood(rating: int = typer.Argument(..., help="How do you feel, 1-5?")) -> None:
    """Log today's mood."""

    async def log_mood(orch: SyncOrchestrator) -> None:
        await orch.log_mood(rating)
        display.print_success(f"Mood logged: {rating}")

    _run(log_mood)


@app.command(name="complete-day")
def complete_day() -> None:
    """Mark the day complete and let the service evaluate it."""

    async def complete(orch: SyncOrchestrator) -> None:
        await orch.complete_day()
        display.print_status(orch.store, orch.day)

    _run(complete)


# ---------------------------------------------------------------------------
# Habits
# ---------------------------------------------------------------------------


@app.command()
def habits() -> None:
    """List your habits."""

    async def show(orch: SyncOrchestrator) -> None:
        display.print_habit_list(orch.store.habits)

    _run(show)


@app.command(name="add-habit")
def add_habit(name: str = typer.Argument(..., help="Name of the habit")) -> None:
    """Add a new habit."""

    async def add(orch: SyncOrchestrator) -> None:
        await orch.add_habit(name)
        display.print_success(f"Added habit: {name.strip()}")

    _run(add)


@app.command(name="check-habit")
def check_habit(
    habit_id: str = typer.Argument(..., help="ID of the habit"),
    undo: bool = typer.Option(False, "--undo", help="Mark as not completed today"),
) -> None:
    """Mark a habit as done today."""

    async def check(orch: SyncOrchestrator) -> None:
        await orch.check_habit(habit_id, completed=not undo)
        if undo:
            display.print_info(f"Habit #{habit_id} unchecked for {orch.day}.")
        else:
            display.print_success(f"Habit #{habit_id} done for {orch.day}.")

    _run(check)


@app.command(name="delete-habit")
def delete_habit(habit_id: str = typer.Argument(..., help="ID of the habit")) -> None:
    """Delete a habit."""

    async def delete(orch: SyncOrchestrator) -> None:
        await orch.delete_habit(habit_id)
        display.print_success(f"Deleted habit #{habit_id}.")

    _run(delete)


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


@app.command()
def tasks() -> None:
    """List today's tasks."""

    async def show(orch: SyncOrchestrator) -> None:
        display.print_task_list(orch.store.tasks, title="Tasks (Today)")

    _run(show)


@app.command(name="add-task")
def add_task(title: str = typer.Argument(..., help="What do you need to do today?")) -> None:
    """Add a task for today."""

    async def add(orch: SyncOrchestrator) -> None:
        await orch.add_task(title)
        display.print_success(f"Added task: {title.strip()}")

    _run(add)


@app.command(name="task-status")
def task_status(
    task_id: str = typer.Argument(..., help="ID of the task"),
    new_status: TaskStatus = typer.Argument(..., help="pending, completed, deferred or archived"),
) -> None:
    """Change a task's status."""

    async def update(orch: SyncOrchestrator) -> None:
        await orch.set_task_status(task_id, new_status)
        display.print_success(f"Task #{task_id} is now {new_status.value}.")

    _run(update)


@app.command(name="delete-task")
def delete_task(task_id: str = typer.Argument(..., help="ID of the task")) -> None:
    """Delete a task."""

    async def delete(orch: SyncOrchestrator) -> None:
        await orch.delete_task(task_id)
        display.print_success(f"Deleted task #{task_id}.")

    _run(delete)


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------


@app.command()
def notes() -> None:
    """List your notes."""

    async def show(orch: SyncOrchestrator) -> None:
        display.print_note_list(orch.store.notes)

    _run(show)


@app.command(name="add-note")
def add_note(
    title: str = typer.Argument("", help="Note title"),
    text: str = typer.Option("", "--text", "-t", help="Note body"),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Free-text category"),
) -> None:
    """Add a note to the vault."""

    async def add(orch: SyncOrchestrator) -> None:
        await orch.add_note(title, text, category)
        display.print_success("Note added.")

    _run(add)


@app.command(name="edit-note")
def edit_note(
    note_id: str = typer.Argument(..., help="ID of the note"),
    title: Optional[str] = typer.Option(None, "--title", help="New title"),
    text: Optional[str] = typer.Option(None, "--text", "-t", help="New body"),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="New category ('' to clear)"),
) -> None:
    """Edit a note. Fields you leave out keep their current value."""

    async def edit(orch: SyncOrchestrator) -> None:
        note = next((n for n in orch.store.notes if n.id == note_id), None)
        if note is None:
            raise KeyError(f"Note #{note_id} not found.")
        await orch.update_note(
            note_id,
            title if title is not None else note.title,
            text if text is not None else note.text,
            category if category is not None else note.category,
        )
        display.print_success(f"Updated note #{note_id}.")

    _run(edit)


@app.command(name="delete-note")
def delete_note(note_id: str = typer.Argument(..., help="ID of the note")) -> None:
    """Delete a note."""

    async def delete(orch: SyncOrchestrator) -> None:
        await orch.delete_note(note_id)
        display.print_success(f"Deleted note #{note_id}.")

    _run(delete)


# ---------------------------------------------------------------------------
# Weekly & achievements
# ---------------------------------------------------------------------------


@app.command()
def weekly(
    claim: bool = typer.Option(False, "--claim", help="Claim this week's bonus"),
) -> None:
    """Generate the weekly overview."""

    async def show(orch: SyncOrchestrator) -> None:
        report = await orch.generate_weekly()
        if report is None:
            display.print_info("No weekly report available yet.")
            return
        if claim:
            await orch.claim_weekly_bonus()
            display.print_success("Weekly bonus claimed.")
            report = orch.store.weekly or report
        display.print_weekly(report)

    _run(show)


@app.command()
def achievements() -> None:
    """Show unlocked achievements."""

    async def show(orch: SyncOrchestrator) -> None:
        display.print_achievements(orch.store.achievements)

    _run(show)


# ---------------------------------------------------------------------------
# Watch mode
# ---------------------------------------------------------------------------


@app.command()
def watch() -> None:
    """Keep the dashboard open and reload it whenever the day changes."""

    async def _main() -> None:
        async with _session(start=False) as orch:
            async with orch.running(
                on_refresh=lambda day: display.print_status(orch.store, day),
                on_error=lambda exc: display.print_error(f"Refresh failed: {exc}"),
            ):
                display.print_status(orch.store, orch.day)
                await asyncio.Event().wait()

    try:
        asyncio.run(_main())
    except TransportError as exc:
        display.print_error(f"Service error: {exc}")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        display.print_info("Stopped watching.")


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@app.command()
def config(
    url: Optional[str] = typer.Option(None, "--url", help="Base URL of the Sola service"),
    interval: Optional[float] = typer.Option(
        None, "--interval", help="Seconds between day-change checks in watch mode"
    ),
    reset: bool = typer.Option(False, "--reset", help="Reset to defaults"),
    show: bool = typer.Option(False, "--show", help="Show current config"),
) -> None:
    """Configure where the Sola service lives."""
    if url:
        try:
            result = cfg.set_base_url(url)
        except ValueError as exc:
            display.print_warning(str(exc))
            raise typer.Exit(1)
        display.print_success(f"Service URL set to: {result.base_url}")
    elif interval is not None:
        try:
            result = cfg.set_poll_interval(interval)
        except ValueError:
            display.print_warning("Interval must be a positive number of seconds.")
            raise typer.Exit(1)
        display.print_success(f"Day check interval set to {result.poll_interval_seconds:g}s.")
    elif reset:
        cfg.reset_config()
        display.print_success("Reset to default configuration.")
    elif show:
        current = cfg.load_config()
        display.print_info(f"Service: {current.base_url}")
        display.print_info(f"Day check interval: {current.poll_interval_seconds:g}s")
        display.print_info(f"Request timeout: {current.timeout_seconds:g}s")
    else:
        display.print_info("Use --url, --interval, --reset, or --show.")

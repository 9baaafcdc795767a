"""Rich terminal formatting helpers."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from sola.models import Achievement, Habit, Note, Task, TaskStatus, WeeklyReport
from sola.store import ALL_DOMAINS, Domain, DomainStore, SlotState

console = Console()

_STATUS_STYLE: dict[TaskStatus, str] = {
    TaskStatus.PENDING: "bold cyan",
    TaskStatus.COMPLETED: "green",
    TaskStatus.DEFERRED: "yellow",
    TaskStatus.ARCHIVED: "dim",
}

_STATUS_ICON: dict[TaskStatus, str] = {
    TaskStatus.PENDING: "[ ]",
    TaskStatus.COMPLETED: "[x]",
    TaskStatus.DEFERRED: "[>]",
    TaskStatus.ARCHIVED: "[-]",
}


def _flag(value: bool) -> str:
    return "[green]yes[/green]" if value else "[dim]no[/dim]"


def print_task_list(tasks: list[Task], title: str = "Tasks") -> None:
    """Print a list of tasks in a panel."""
    if not tasks:
        console.print(Panel("No tasks.", title=title, border_style="dim"))
        return

    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column("status", width=3)
    table.add_column("id", no_wrap=True)
    table.add_column("title")

    for task in tasks:
        style = _STATUS_STYLE[task.status]
        table.add_row(
            escape(_STATUS_ICON[task.status]), f"#{task.id}", escape(task.title), style=style
        )

    console.print(Panel(table, title=title, border_style="blue"))


def print_habit_list(habits: list[Habit]) -> None:
    if not habits:
        console.print(Panel("No habits.", title="Habits", border_style="dim"))
        return
    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column("id", no_wrap=True)
    table.add_column("name")
    for habit in habits:
        table.add_row(f"#{habit.id}", escape(habit.name), style="" if habit.active else "dim")
    console.print(Panel(table, title="Habits", border_style="blue"))


def print_note_list(notes: list[Note]) -> None:
    if not notes:
        console.print(Panel("No notes.", title="Notes", border_style="dim"))
        return
    table = Table(box=None, pad_edge=False)
    table.add_column("id", no_wrap=True)
    table.add_column("title")
    table.add_column("category")
    table.add_column("text")
    for note in notes:
        table.add_row(
            f"#{note.id}", escape(note.title), escape(note.category or "-"), escape(note.text)
        )
    console.print(Panel(table, title="Notes", border_style="blue"))


def print_achievements(achievements: list[Achievement]) -> None:
    if not achievements:
        console.print(Panel("Nothing unlocked yet.", title="Achievements", border_style="dim"))
        return
    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column("name")
    table.add_column("key", style="dim")
    table.add_column("unlocked", style="dim")
    # one row per ident
    for a in {a.ident: a for a in achievements}.values():
        unlocked = f"{a.unlocked_at:%Y-%m-%d %H:%M}" if a.unlocked_at is not None else "-"
        table.add_row(escape(a.name), escape(a.ident), unlocked)
    console.print(Panel(table, title="Achievements", border_style="magenta"))


def print_weekly(report: WeeklyReport) -> None:
    """Print the weekly overview."""
    mood = f"{report.mood_avg:.1f}" if report.mood_avg is not None else "N/A"
    highlights = report.highlights
    lines: list[str] = [
        f"Week: {report.week_start} to {report.week_end}",
        f"Habit completion: {report.habit_completion_pct:.1f}%",
        f"Mood average: {mood}",
        f"Task completion: {report.task_completion_pct:.1f}%",
        f"XP earned: {report.xp_earned}",
        f"Streak: {report.streak_start} -> {report.streak_end}",
        f"Best mood day: {highlights.best_mood_day or 'N/A'}",
        f"Most tasks done: {highlights.most_tasks_done_day or 'N/A'}",
        f"Bonus claimed: {_flag(report.bonus_awarded)}",
    ]
    console.print(Panel("\n".join(lines), title="Weekly Overview", border_style="green"))


def print_status(store: DomainStore, day: str) -> None:
    """Print the full day dashboard from the current snapshot."""
    xp = store.xp
    if xp is None:
        xp_lines = ["XP: ...", "Streak: ..."]
    else:
        xp_lines = [
            f"XP: {xp.total_xp} (Level {xp.level}, {xp.xp_in_level}/{xp.xp_for_next})",
            f"Streak: {xp.streak} day{'s' if xp.streak != 1 else ''}",
        ]

    status = store.day_status
    if status is None:
        eval_lines = ["Daily status: ..."]
    else:
        ev = status.evaluation
        eval_lines = [
            f"Habits done: {_flag(ev.habits_done)}",
            f"Mood logged: {_flag(ev.mood_logged)}",
            f"Tasks updated: {_flag(ev.tasks_updated)}",
        ]

    mission = store.mission
    mission_line = (
        f"Mission: {escape(mission.text)}  {escape('[x]' if mission.done else '[ ]')}"
        if mission is not None
        else "Mission: none"
    )

    slots = store.snapshot()
    mood_slot = slots[Domain.MOOD]
    if mood_slot.state is SlotState.UNKNOWN:
        mood_line = "Mood: ..."
    elif mood_slot.value is None:
        mood_line = "Mood: none"
    else:
        mood_line = f"Mood: rating {mood_slot.value.rating}"

    lines = [f"Date: {day}", "", *xp_lines, "", *eval_lines, "", mission_line, mood_line]
    loading = [d.value for d in Domain if d in ALL_DOMAINS and not slots[d].is_known]
    if loading:
        lines += ["", f"[dim]Still loading: {', '.join(loading)}[/dim]"]
    console.print(Panel("\n".join(lines), title="Today", border_style="green"))

    print_habit_list(store.habits)
    print_task_list(store.tasks, title="Tasks (Today)")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{escape(message)}[/green]")


def print_info(message: str) -> None:
    """Print an informational message."""
    console.print(f"[blue]{escape(message)}[/blue]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]{escape(message)}[/yellow]")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(Text(message, style="bold red"))

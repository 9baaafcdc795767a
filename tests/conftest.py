"""Shared fixtures: an in-memory stand-in for the Sola service."""

from __future__ import annotations

import asyncio
import itertools
from collections import defaultdict, deque
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import pytest

from sola.clock import Clock
from sola.store import Domain, DomainStore
from sola.sync import SyncOrchestrator
from sola.transport import TransportError

DAY = "2024-05-01"


def object_id(n: int) -> str:
    """A 24-hex-digit id shaped like the ones the service hands out."""
    return f"6630a1f2c4e5d6071829{n:04x}"


HABIT_ID = object_id(1)
TASK_ID = object_id(7)

# GET path -> domain it refreshes (mood is keyed by day in the path)
PATH_DOMAINS: dict[str, Domain] = {
    "/api/xpstate": Domain.XP,
    "/api/day/status": Domain.DAY_STATUS,
    "/api/mission": Domain.MISSION,
    "/api/habits": Domain.HABITS,
    "/api/tasks": Domain.TASKS,
    "/api/notes": Domain.NOTES,
    "/api/achievements": Domain.ACHIEVEMENTS,
    "/api/weekly": Domain.WEEKLY,
}

XP = {"total_xp": 120, "level": 2, "xp_in_level": 20, "xp_for_next": 100, "streak": 3}
WEEKLY = {
    "week_start": "2024-04-29",
    "week_end": "2024-05-05",
    "habit_completion_pct": 50.0,
    "mood_avg": 3.5,
    "task_completion_pct": 40.0,
    "xp_earned": 90,
    "streak_start": 1,
    "streak_end": 3,
    "highlights": {"best_mood_day": "2024-04-30", "most_tasks_done_day": None},
    "bonus_awarded": False,
}


class Gate:
    """A reply that is only delivered once ``open`` is called."""

    def __init__(self, value: Any) -> None:
        self.value = value
        self.event = asyncio.Event()

    def open(self) -> None:
        self.event.set()


class FakeTransport:
    """Records every request and answers from a small stateful service model.

    ``queue`` lets a test script the next replies for a route; a queued
    ``TransportError`` is raised and a queued ``Gate`` delays its reply.
    """

    def __init__(self, day: str = DAY) -> None:
        self.calls: list[tuple[str, str, Any, Optional[dict[str, str]]]] = []
        self._queued: dict[tuple[str, str], deque[Any]] = defaultdict(deque)
        self.mission: Optional[dict[str, Any]] = None
        self.mood: Optional[dict[str, Any]] = None
        self.habits: list[dict[str, Any]] = [{"id": HABIT_ID, "name": "Read", "active": True}]
        self.tasks: list[dict[str, Any]] = [
            {"id": TASK_ID, "title": "Write report", "date": day, "status": "open"}
        ]
        self.notes: list[dict[str, Any]] = []
        self.weekly: dict[str, Any] = dict(WEEKLY)
        self.day = day
        self._ids = itertools.count(0x100)

    def new_id(self) -> str:
        return object_id(next(self._ids))

    def queue(self, method: str, path: str, *replies: Any) -> None:
        self._queued[(method, path)].extend(replies)

    # -- inspection helpers -------------------------------------------------

    def gets(self) -> list[str]:
        return [path for method, path, _, _ in self.calls if method == "GET"]

    def refreshed(self) -> list[Domain]:
        return [
            Domain.MOOD if p.startswith("/api/mood/") else PATH_DOMAINS[p] for p in self.gets()
        ]

    def writes(self) -> list[tuple[str, str, Any]]:
        return [(m, p, b) for m, p, b, _ in self.calls if m != "GET"]

    def reset(self) -> None:
        self.calls.clear()

    # -- transport interface ------------------------------------------------

    async def __aenter__(self) -> FakeTransport:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        return None

    async def request(
        self, method: str, path: str, body: Any = None, params: Optional[dict[str, str]] = None
    ) -> Any:
        self.calls.append((method, path, body, params))
        queued = self._queued.get((method, path))
        if queued:
            reply = queued.popleft()
            if isinstance(reply, Gate):
                await reply.event.wait()
                reply = reply.value
            if isinstance(reply, BaseException):
                raise reply
            return reply
        await asyncio.sleep(0)
        return self._answer(method, path, body)

    async def get(self, path: str, params: Optional[dict[str, str]] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, body: Any = None) -> Any:
        return await self.request("POST", path, body=body)

    async def put(self, path: str, body: Any = None) -> Any:
        return await self.request("PUT", path, body=body)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)

    def _answer(self, method: str, path: str, body: Any) -> Any:
        handler: Optional[Callable[[Any], Any]] = getattr(
            self, "_" + method.lower() + path.replace("/", "_").replace("-", "_"), None
        )
        if handler is not None:
            return handler(body)
        if method == "GET" and path.startswith("/api/mood/"):
            if self.mood is None:
                raise TransportError(404, method, path)
            return self.mood
        if method == "DELETE":
            return None
        if method == "POST" and path.startswith("/api/habits/"):
            return {"ok": True}
        if method == "PUT" and path.startswith("/api/tasks/"):
            return {"id": path.rsplit("/", 1)[1], **body}
        if method == "PUT" and path.startswith("/api/notes/"):
            return {"id": path.rsplit("/", 1)[1], **body}
        raise TransportError(404, method, path)

    # GET handlers

    def _get_api_xpstate(self, _: Any) -> Any:
        return XP

    def _get_api_day_status(self, _: Any) -> Any:
        return {"date": self.day, "evaluation": {"habits_done": False, "mood_logged": self.mood is not None}}

    def _get_api_mission(self, _: Any) -> Any:
        return self.mission

    def _get_api_habits(self, _: Any) -> Any:
        return self.habits

    def _get_api_tasks(self, _: Any) -> Any:
        return self.tasks

    def _get_api_notes(self, _: Any) -> Any:
        return self.notes

    def _get_api_achievements(self, _: Any) -> Any:
        return [{"key": "first_mood", "name": "First mood", "unlocked_at": "2024-05-01T08:00:00"}]

    def _get_api_weekly(self, _: Any) -> Any:
        return self.weekly

    # write handlers

    def _post_api_mission(self, body: Any) -> Any:
        self.mission = dict(body)
        return self.mission

    def _post_api_mission_done(self, body: Any) -> Any:
        if self.mission is None:
            raise TransportError(404, "POST", "/api/mission/done")
        self.mission["done"] = body["done"]
        return self.mission

    def _post_api_mood(self, body: Any) -> Any:
        self.mood = dict(body)
        return self.mood

    def _post_api_habits(self, body: Any) -> Any:
        habit = {"id": self.new_id(), **body}
        self.habits.append(habit)
        return habit

    def _post_api_tasks(self, body: Any) -> Any:
        task = {"id": self.new_id(), **body}
        self.tasks.append(task)
        return task

    def _post_api_notes(self, body: Any) -> Any:
        note = {"id": self.new_id(), **body}
        self.notes.append(note)
        return note

    def _post_api_day_complete(self, body: Any) -> Any:
        return {"date": body["date"], "completed": True}

    def _post_api_weekly_bonus(self, body: Any) -> Any:
        if self.weekly["bonus_awarded"]:
            raise TransportError(400, "POST", "/api/weekly/bonus")
        self.weekly = {**self.weekly, "bonus_awarded": True}
        return {"awarded": 50}


@pytest.fixture()
def fake() -> FakeTransport:
    return FakeTransport()


class FakeNow:
    """Wall clock pinned to noon UTC of ``day``; tests move ``day`` forward."""

    def __init__(self, day: str = DAY) -> None:
        self.day = day
        self._ids = itertools.count(0x100)

    def __call__(self) -> datetime:
        return _at(self.day)


@pytest.fixture()
def now() -> FakeNow:
    return FakeNow()


@pytest.fixture()
def clock(now: FakeNow) -> Clock:
    return Clock(interval=0, now=now)


@pytest.fixture()
def orch(fake: FakeTransport, clock: Clock) -> SyncOrchestrator:
    return SyncOrchestrator(fake, DomainStore(), clock)  # type: ignore[arg-type]


def _at(day: str) -> datetime:
    return datetime.fromisoformat(day).replace(hour=12, tzinfo=timezone.utc)

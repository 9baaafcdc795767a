"""Synchronisation between user actions and the cached domain snapshots.

Every mutation is a write followed by a fixed set of domain refreshes
(``REFRESH_SETS``). XP, streak, day evaluation and achievements are derived
by the service, so any action that could move one of them re-fetches all
of the affected domains instead of guessing the new values.
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
import itertools
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Iterable, Optional

from pydantic import BaseModel, TypeAdapter

from sola.clock import Clock
from sola.models import (
    Achievement,
    BonusClaim,
    DayComplete,
    DayStatus,
    Habit,
    HabitCheck,
    HabitCreate,
    Mission,
    MissionDone,
    MissionUpsert,
    Mood,
    MoodCreate,
    Note,
    NoteCreate,
    Task,
    TaskCreate,
    TaskStatus,
    TaskUpdate,
    WeeklyReport,
    XPState,
)
from sola.store import ALL_DOMAINS, Domain, DomainStore
from sola.transport import Transport, TransportError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Endpoint:
    """Where a domain is fetched from and how its payload is decoded."""

    path: str
    adapter: TypeAdapter[Any]
    query_day: bool = False  # pass the active day as ?d=

    def locate(self, day: str) -> tuple[str, Optional[dict[str, str]]]:
        path = self.path.format(day=day)
        return path, ({"d": day} if self.query_day else None)


ENDPOINTS: dict[Domain, Endpoint] = {
    Domain.XP: Endpoint("/api/xpstate", TypeAdapter(XPState)),
    Domain.DAY_STATUS: Endpoint("/api/day/status", TypeAdapter(Optional[DayStatus]), query_day=True),
    Domain.MISSION: Endpoint("/api/mission", TypeAdapter(Optional[Mission]), query_day=True),
    Domain.MOOD: Endpoint("/api/mood/{day}", TypeAdapter(Optional[Mood])),
    Domain.HABITS: Endpoint("/api/habits", TypeAdapter(Optional[list[Habit]])),
    Domain.TASKS: Endpoint("/api/tasks", TypeAdapter(Optional[list[Task]]), query_day=True),
    Domain.NOTES: Endpoint("/api/notes", TypeAdapter(Optional[list[Note]])),
    Domain.ACHIEVEMENTS: Endpoint("/api/achievements", TypeAdapter(Optional[list[Achievement]])),
    Domain.WEEKLY: Endpoint("/api/weekly", TypeAdapter(Optional[WeeklyReport])),
}

# The service reports "no mood logged" as an error response
TOLERANT_DOMAINS: frozenset[Domain] = frozenset({Domain.MOOD})


class Action(str, enum.Enum):
    """User actions that write to the service."""

    SAVE_MISSION = "save_mission"
    TOGGLE_MISSION_DONE = "toggle_mission_done"
    ADD_HABIT = "add_habit"
    CHECK_HABIT = "check_habit"
    DELETE_HABIT = "delete_habit"
    ADD_TASK = "add_task"
    SET_TASK_STATUS = "set_task_status"
    DELETE_TASK = "delete_task"
    LOG_MOOD = "log_mood"
    COMPLETE_DAY = "complete_day"
    CLAIM_WEEKLY_BONUS = "claim_weekly_bonus"
    ADD_NOTE = "add_note"
    UPDATE_NOTE = "update_note"
    DELETE_NOTE = "delete_note"


_TASK_REFRESH = frozenset({Domain.TASKS, Domain.DAY_STATUS})
_GAMIFICATION = frozenset({Domain.XP, Domain.DAY_STATUS, Domain.ACHIEVEMENTS})

REFRESH_SETS: dict[Action, frozenset[Domain]] = {
    Action.SAVE_MISSION: frozenset({Domain.DAY_STATUS}),
    Action.TOGGLE_MISSION_DONE: _GAMIFICATION | {Domain.MISSION},
    Action.ADD_HABIT: frozenset({Domain.HABITS}),
    Action.CHECK_HABIT: _GAMIFICATION,
    Action.DELETE_HABIT: frozenset({Domain.HABITS, Domain.DAY_STATUS}),
    Action.ADD_TASK: _TASK_REFRESH,
    Action.SET_TASK_STATUS: _TASK_REFRESH,
    Action.DELETE_TASK: _TASK_REFRESH,
    Action.LOG_MOOD: _GAMIFICATION | {Domain.MOOD},
    Action.COMPLETE_DAY: _GAMIFICATION,
    Action.CLAIM_WEEKLY_BONUS: frozenset({Domain.XP, Domain.WEEKLY}),
    Action.ADD_NOTE: frozenset({Domain.NOTES}),
    Action.UPDATE_NOTE: frozenset({Domain.NOTES}),
    Action.DELETE_NOTE: frozenset({Domain.NOTES}),
}


class ActionPhase(str, enum.Enum):
    WRITING = "writing"
    REFRESHING = "refreshing"


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json")


class SyncOrchestrator:
    """Keeps a ``DomainStore`` consistent with the service.

    Actions are not serialised against each other: two actions in flight may
    interleave their writes and refreshes, and whichever refresh of a domain
    completes last decides what the store shows.
    """

    def __init__(
        self,
        transport: Transport,
        store: Optional[DomainStore] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.transport = transport
        self.store = store if store is not None else DomainStore()
        self.clock = clock or Clock()
        self.day = self.clock.current
        self._tokens = itertools.count()
        self._in_flight: dict[int, tuple[Action, ActionPhase]] = {}

    @property
    def in_flight(self) -> list[tuple[Action, ActionPhase]]:
        return list(self._in_flight.values())

    # ------------------------------------------------------------------
    # Refreshing
    # ------------------------------------------------------------------

    async def refresh(self, domain: Domain) -> None:
        """Fetch one domain and replace its slot."""
        endpoint = ENDPOINTS[domain]
        path, params = endpoint.locate(self.day)
        try:
            data = await self.transport.get(path, params=params)
        except TransportError as exc:
            if domain not in TOLERANT_DOMAINS:
                raise
            log.debug("No %s for %s (status %s)", domain.value, self.day, exc.status_code)
            self.store.mark_absent(domain)
            return
        self.store.put(domain, endpoint.adapter.validate_python(data))

    async def refresh_many(self, domains: Iterable[Domain]) -> None:
        """Refresh all ``domains`` concurrently and wait for every one.

        A failing refresh does not cancel its siblings; once all have
        finished, the first failure is re-raised.
        """
        wanted = set(domains)
        ordered = [d for d in Domain if d in wanted]
        results = await asyncio.gather(
            *(self.refresh(d) for d in ordered), return_exceptions=True
        )
        failures = [(d, r) for d, r in zip(ordered, results) if isinstance(r, BaseException)]
        if not failures:
            return
        for domain, exc in failures[1:]:
            log.error("Refresh of %s also failed: %s", domain.value, exc)
        raise failures[0][1]

    async def refresh_all(self) -> None:
        await self.refresh_many(ALL_DOMAINS)

    # ------------------------------------------------------------------
    # Day boundary
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Adopt the current day and load every domain."""
        self.clock.poll()
        self.day = self.clock.current
        log.info("Loading all domains for %s", self.day)
        await self.refresh_all()

    async def check_day(self) -> bool:
        """Full refresh if the clock moved to a new day. Returns True if so."""
        day = self.clock.poll()
        if day is None:
            return False
        await self._change_day(day)
        return True

    async def _change_day(self, day: str) -> None:
        self.day = day
        self.store.clear(Domain.WEEKLY)
        await self.refresh_all()

    @contextlib.asynccontextmanager
    async def running(
        self,
        on_refresh: Optional[Callable[[str], Any]] = None,
        on_error: Optional[Callable[[Exception], Any]] = None,
    ) -> AsyncIterator[SyncOrchestrator]:
        """Start, then follow day changes until the block exits.

        Failures of a day-change refresh are logged and handed to
        ``on_error`` so the watcher keeps running.
        """
        await self.start()

        async def _on_change(day: str) -> None:
            try:
                await self._change_day(day)
            except (TransportError, ValueError) as exc:
                log.error("Refresh for new day %s failed: %s", day, exc)
                if on_error is not None:
                    on_error(exc)
                return
            if on_refresh is not None:
                on_refresh(day)

        async with self.clock.watching(_on_change):
            yield self

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def _perform(self, action: Action, write: Callable[[], Awaitable[Any]]) -> Any:
        """Run ``write``, then the action's refresh set. Returns the write result."""
        token = next(self._tokens)
        self._in_flight[token] = (action, ActionPhase.WRITING)
        try:
            result = await write()
            self._in_flight[token] = (action, ActionPhase.REFRESHING)
            await self.refresh_many(REFRESH_SETS[action])
            return result
        finally:
            del self._in_flight[token]

    async def _upsert_mission(self, text: str, done: bool) -> Optional[Mission]:
        payload = MissionUpsert(date=self.day, text=text, done=done)
        saved = await self.transport.post("/api/mission", _dump(payload))
        if saved is None:
            return None
        mission = Mission.model_validate(saved)
        self.store.put(Domain.MISSION, mission)
        return mission

    async def save_mission(self, text: str) -> Optional[Mission]:
        """Save the mission text for the active day, keeping its done flag."""
        current = self.store.mission
        done = current.done if current is not None else False
        return await self._perform(
            Action.SAVE_MISSION, lambda: self._upsert_mission(text, done)
        )

    async def toggle_mission_done(self, draft_text: str = "") -> Optional[bool]:
        """Flip the mission's done flag. Returns the requested flag.

        Without a saved mission the draft text is saved first; with neither
        there is nothing to toggle and ``None`` is returned.
        """
        mission = self.store.mission
        if mission is None and not draft_text.strip():
            log.info("No mission for %s, nothing to toggle", self.day)
            return None

        async def write() -> bool:
            current = mission
            if current is None:
                current = await self._upsert_mission(draft_text, False)
            done = not (current.done if current is not None else False)
            await self.transport.post(
                "/api/mission/done", _dump(MissionDone(date=self.day, done=done))
            )
            return done

        return await self._perform(Action.TOGGLE_MISSION_DONE, write)

    async def add_habit(self, name: str) -> Any:
        payload = HabitCreate(name=name)
        return await self._perform(
            Action.ADD_HABIT, lambda: self.transport.post("/api/habits", _dump(payload))
        )

    async def check_habit(self, habit_id: str, completed: bool = True) -> Any:
        """Record the habit as (not) completed on the active day."""
        payload = HabitCheck(date=self.day, completed=completed)
        return await self._perform(
            Action.CHECK_HABIT,
            lambda: self.transport.post(f"/api/habits/{habit_id}/check", _dump(payload)),
        )

    async def delete_habit(self, habit_id: str) -> Any:
        return await self._perform(
            Action.DELETE_HABIT, lambda: self.transport.delete(f"/api/habits/{habit_id}")
        )

    async def add_task(self, title: str) -> Any:
        payload = TaskCreate(title=title, date=self.day)
        return await self._perform(
            Action.ADD_TASK, lambda: self.transport.post("/api/tasks", _dump(payload))
        )

    async def set_task_status(self, task_id: str, status: TaskStatus | str) -> Any:
        """Send a full update of a cached task with a new status."""
        task = next((t for t in self.store.tasks if t.id == task_id), None)
        if task is None:
            raise KeyError(f"Task #{task_id} is not in today's list")
        payload = TaskUpdate(title=task.title, date=task.date, status=TaskStatus(status))
        return await self._perform(
            Action.SET_TASK_STATUS,
            lambda: self.transport.put(f"/api/tasks/{task_id}", _dump(payload)),
        )

    async def delete_task(self, task_id: str) -> Any:
        return await self._perform(
            Action.DELETE_TASK, lambda: self.transport.delete(f"/api/tasks/{task_id}")
        )

    async def log_mood(self, rating: int) -> Any:
        payload = MoodCreate(date=self.day, rating=rating)
        return await self._perform(
            Action.LOG_MOOD, lambda: self.transport.post("/api/mood", _dump(payload))
        )

    async def complete_day(self) -> Any:
        """Ask the service to evaluate the active day."""
        payload = DayComplete(date=self.day)
        return await self._perform(
            Action.COMPLETE_DAY, lambda: self.transport.post("/api/day/complete", _dump(payload))
        )

    async def generate_weekly(self) -> Optional[WeeklyReport]:
        await self.refresh(Domain.WEEKLY)
        return self.store.weekly

    async def claim_weekly_bonus(self) -> Any:
        """Claim the bonus for the loaded weekly report's week."""
        weekly = self.store.weekly
        if weekly is None:
            raise LookupError("No weekly report loaded; generate it first")
        payload = BonusClaim(week_start=weekly.week_start)
        return await self._perform(
            Action.CLAIM_WEEKLY_BONUS,
            lambda: self.transport.post("/api/weekly/bonus", _dump(payload)),
        )

    async def add_note(self, title: str, text: str, category: Optional[str] = None) -> Any:
        payload = NoteCreate(title=title, text=text, category=category)
        return await self._perform(
            Action.ADD_NOTE, lambda: self.transport.post("/api/notes", _dump(payload))
        )

    async def update_note(
        self, note_id: str, title: str, text: str, category: Optional[str] = None
    ) -> Any:
        payload = NoteCreate(title=title, text=text, category=category)
        return await self._perform(
            Action.UPDATE_NOTE, lambda: self.transport.put(f"/api/notes/{note_id}", _dump(payload))
        )

    async def delete_note(self, note_id: str) -> Any:
        return await self._perform(
            Action.DELETE_NOTE, lambda: self.transport.delete(f"/api/notes/{note_id}")
        )

"""In-memory snapshots of the server-owned domains."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from sola.models import (
    Achievement,
    DayStatus,
    Habit,
    Mission,
    Mood,
    Note,
    Task,
    WeeklyReport,
    XPState,
)

T = TypeVar("T")


class Domain(str, enum.Enum):
    """Independently fetchable server-owned domains."""

    XP = "xp"
    DAY_STATUS = "day_status"
    MISSION = "mission"
    MOOD = "mood"
    HABITS = "habits"
    TASKS = "tasks"
    NOTES = "notes"
    ACHIEVEMENTS = "achievements"
    WEEKLY = "weekly"  # on demand only


# Refreshed together on start and on every day change
ALL_DOMAINS: frozenset[Domain] = frozenset(d for d in Domain if d is not Domain.WEEKLY)


class SlotState(str, enum.Enum):
    UNKNOWN = "unknown"  # never fetched
    LOADED = "loaded"
    ABSENT = "absent"  # the service confirmed there is nothing


@dataclass(frozen=True)
class Slot(Generic[T]):
    """Tagged value held for one domain."""

    state: SlotState = SlotState.UNKNOWN
    value: Optional[T] = None

    @classmethod
    def unknown(cls) -> Slot[Any]:
        return cls()

    @classmethod
    def loaded(cls, value: T) -> Slot[T]:
        return cls(SlotState.LOADED, value)

    @classmethod
    def absent(cls) -> Slot[Any]:
        return cls(SlotState.ABSENT)

    @property
    def is_known(self) -> bool:
        return self.state is not SlotState.UNKNOWN

    @property
    def is_loaded(self) -> bool:
        return self.state is SlotState.LOADED


class DomainStore:
    """One slot per domain, replaced wholesale and read synchronously.

    Slots are never patched: a refresh swaps in a new ``Slot`` object, so
    readers always see either the previous or the next snapshot.
    """

    def __init__(self) -> None:
        self._slots: dict[Domain, Slot[Any]] = {d: Slot.unknown() for d in Domain}

    def slot(self, domain: Domain) -> Slot[Any]:
        return self._slots[domain]

    def value(self, domain: Domain) -> Any:
        """The loaded value, or ``None`` if unknown or absent."""
        return self._slots[domain].value

    def put(self, domain: Domain, value: Any) -> None:
        """Replace a slot. ``None`` records a confirmed absence."""
        self._slots[domain] = Slot.absent() if value is None else Slot.loaded(value)

    def mark_absent(self, domain: Domain) -> None:
        self._slots[domain] = Slot.absent()

    def clear(self, domain: Domain) -> None:
        """Forget a slot, returning it to the unknown state."""
        self._slots[domain] = Slot.unknown()

    def snapshot(self) -> dict[Domain, Slot[Any]]:
        return dict(self._slots)

    # Typed accessors for the view layer

    @property
    def xp(self) -> Optional[XPState]:
        return self.value(Domain.XP)

    @property
    def day_status(self) -> Optional[DayStatus]:
        return self.value(Domain.DAY_STATUS)

    @property
    def mission(self) -> Optional[Mission]:
        return self.value(Domain.MISSION)

    @property
    def mood(self) -> Optional[Mood]:
        return self.value(Domain.MOOD)

    @property
    def habits(self) -> list[Habit]:
        return self.value(Domain.HABITS) or []

    @property
    def tasks(self) -> list[Task]:
        return self.value(Domain.TASKS) or []

    @property
    def notes(self) -> list[Note]:
        return self.value(Domain.NOTES) or []

    @property
    def achievements(self) -> list[Achievement]:
        return self.value(Domain.ACHIEVEMENTS) or []

    @property
    def weekly(self) -> Optional[WeeklyReport]:
        return self.value(Domain.WEEKLY)

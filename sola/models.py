"""Pydantic models — single source of truth for all data types.

Every entity here is owned by the remote service. The client only decodes
what the service returns and encodes what it sends; XP, streaks, day
evaluation, achievements and weekly figures are never computed locally.
"""

from __future__ import annotations

import enum
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class XPState(BaseModel):
    """Experience points, level and streak as computed by the service."""

    total_xp: int = Field(ge=0)
    level: int = Field(ge=1)
    xp_in_level: int = Field(ge=0)
    xp_for_next: int = Field(gt=0)
    streak: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _check_level_progress(self) -> XPState:
        if self.xp_in_level >= self.xp_for_next:
            raise ValueError("xp_in_level must be below xp_for_next")
        return self


class DayEvaluation(BaseModel):
    """Which daily criteria the service considers met."""

    habits_done: bool = False
    mood_logged: bool = False
    tasks_updated: bool = False


class DayStatus(BaseModel):
    """Evaluation of a single day."""

    date: date
    evaluation: DayEvaluation = Field(default_factory=DayEvaluation)


class Mission(BaseModel):
    """The mission of the day. At most one per date."""

    date: date
    text: str = ""
    done: bool = False


class Mood(BaseModel):
    """A mood rating for one day."""

    date: date
    rating: int = Field(ge=1, le=5)


class Habit(BaseModel):
    id: str
    name: str
    active: bool = True


class TaskStatus(str, enum.Enum):
    """Task lifecycle states. Any state may follow any other."""

    PENDING = "pending"
    COMPLETED = "completed"
    DEFERRED = "deferred"
    ARCHIVED = "archived"


class Task(BaseModel):
    """A task scheduled for a given day.

    The service calls a fresh task ``open``; that is read as ``pending``.
    """

    id: str
    title: str
    date: date
    status: TaskStatus = TaskStatus.PENDING

    @field_validator("status", mode="before")
    @classmethod
    def _open_is_pending(cls, value: object) -> object:
        if value == "open":
            return TaskStatus.PENDING
        return value


class Note(BaseModel):
    """A free-form note. Notes are not scoped to a day."""

    id: str
    title: str = ""
    text: str = ""
    category: Optional[str] = None


class Achievement(BaseModel):
    """An unlocked achievement, identified by ``id`` or ``key``."""

    id: Optional[str] = None
    key: Optional[str] = None
    name: str
    unlocked_at: Optional[datetime] = None

    @property
    def ident(self) -> str:
        return self.id if self.id is not None else str(self.key)


class WeeklyHighlights(BaseModel):
    best_mood_day: Optional[date] = None
    most_tasks_done_day: Optional[date] = None


class WeeklyReport(BaseModel):
    """On-demand weekly aggregate. Not carried across days."""

    week_start: date
    week_end: date
    habit_completion_pct: float = Field(ge=0)
    mood_avg: Optional[float] = None
    task_completion_pct: float = Field(ge=0)
    xp_earned: int = 0
    streak_start: int = Field(default=0, ge=0)
    streak_end: int = Field(default=0, ge=0)
    highlights: WeeklyHighlights = Field(default_factory=WeeklyHighlights)
    bonus_awarded: bool = False

    @field_validator("highlights", mode="before")
    @classmethod
    def _null_highlights(cls, value: object) -> object:
        return WeeklyHighlights() if value is None else value


# ---------------------------------------------------------------------------
# Write payloads
# ---------------------------------------------------------------------------


class MissionUpsert(BaseModel):
    """Input model for saving the mission text of a day."""

    date: date
    text: str = Field(max_length=500)
    done: bool = False


class MissionDone(BaseModel):
    date: date
    done: bool


class MoodCreate(BaseModel):
    """Input model for logging a mood."""

    date: date
    rating: int = Field(ge=1, le=5)


class HabitCreate(BaseModel):
    """Input model for creating a habit."""

    name: str = Field(min_length=1, max_length=200)
    active: bool = True

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("habit name must not be blank")
        return value


class HabitCheck(BaseModel):
    date: date
    completed: bool


class TaskCreate(BaseModel):
    """Input model for creating a task on a given day."""

    title: str = Field(min_length=1, max_length=500)
    date: date
    status: TaskStatus = TaskStatus.PENDING

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("task title must not be blank")
        return value


class TaskUpdate(BaseModel):
    """Full replacement of a task (title, date and status)."""

    title: str = Field(min_length=1, max_length=500)
    date: date
    status: TaskStatus


class NoteCreate(BaseModel):
    """Input model for creating or fully updating a note."""

    title: str = ""
    text: str = ""
    category: Optional[str] = None

    @field_validator("category")
    @classmethod
    def _blank_category_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def _require_content(self) -> NoteCreate:
        if not self.title.strip() and not self.text.strip():
            raise ValueError("a note needs a title or some text")
        return self


class DayComplete(BaseModel):
    date: date


class BonusClaim(BaseModel):
    week_start: date


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class AppConfig(BaseModel):
    """Application configuration (persisted to ~/.config/sola/config.json)."""

    base_url: str = "http://localhost:8000"
    poll_interval_seconds: float = Field(default=60.0, gt=0)
    timeout_seconds: float = Field(default=10.0, gt=0)

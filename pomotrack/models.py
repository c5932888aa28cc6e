"""Data models for Pomotrack."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

MAX_PRIORITY = 3


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class SessionPhase(Enum):
    """What the timer is counting down."""
    WORK = "work"
    BREAK = "break"


class SessionType(Enum):
    """Kind of a logged session."""
    WORK = "work"
    SHORT_BREAK = "short_break"
    LONG_BREAK = "long_break"


class TimerStatus(Enum):
    """Timer state enumeration."""
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


@dataclass
class Task:
    """A task on the user's list."""
    id: str = ""
    text: str = ""
    completed: bool = False
    created_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None
    priority: int = 0
    estimated_pomodoros: int = 1
    actual_pomodoros: int = 0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "text": self.text,
            "completed": self.completed,
            "created_at": self.created_at.isoformat(),
            "completed_at": _iso(self.completed_at),
            "priority": self.priority,
            "estimated_pomodoros": self.estimated_pomodoros,
            "actual_pomodoros": self.actual_pomodoros,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Task":
        """Create Task from dictionary.

        Out-of-range numbers are clamped and ``completed_at`` is made to agree
        with ``completed``, so a hand-edited or stale file still loads as a
        valid task.
        """
        completed = bool(data.get("completed", False))
        created_at = _parse(data.get("created_at")) or datetime.now()
        completed_at = _parse(data.get("completed_at")) if completed else None
        if completed and completed_at is None:
            completed_at = created_at
        return cls(
            id=data["id"],
            text=data["text"],
            completed=completed,
            created_at=created_at,
            completed_at=completed_at,
            priority=min(max(int(data.get("priority", 0)), 0), MAX_PRIORITY),
            estimated_pomodoros=max(int(data.get("estimated_pomodoros", 1)), 0),
            actual_pomodoros=int(data.get("actual_pomodoros", 0)),
        )

    @classmethod
    def from_row(cls, row: tuple) -> "Task":
        """Create Task from database row."""
        return cls(
            id=row[0],
            text=row[1],
            completed=bool(row[2]),
            created_at=datetime.fromisoformat(row[3]),
            completed_at=_parse(row[4]),
            priority=row[5] if row[5] is not None else 0,
            estimated_pomodoros=row[6] if row[6] is not None else 1,
            actual_pomodoros=row[7] if row[7] is not None else 0,
        )


@dataclass(frozen=True)
class SessionRecord:
    """One finished or abandoned interval in the daily log. Never edited."""
    id: str
    type: SessionType
    duration_minutes: int
    completed: bool
    started_at: datetime
    completed_at: Optional[datetime] = None

    @property
    def is_work(self) -> bool:
        return self.type == SessionType.WORK

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "duration": self.duration_minutes,
            "completed": self.completed,
            "started_at": self.started_at.isoformat(),
            "completed_at": _iso(self.completed_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SessionRecord":
        return cls(
            id=data["id"],
            type=SessionType(data["type"]),
            duration_minutes=int(data["duration"]),
            completed=bool(data["completed"]),
            started_at=datetime.fromisoformat(data["started_at"]),
            completed_at=_parse(data.get("completed_at")),
        )

    @classmethod
    def from_row(cls, row: tuple) -> "SessionRecord":
        """Create SessionRecord from a session_records row (without the date column)."""
        return cls(
            id=row[0],
            type=SessionType(row[1]),
            duration_minutes=row[2],
            completed=bool(row[3]),
            started_at=datetime.fromisoformat(row[4]),
            completed_at=_parse(row[5]),
        )


@dataclass(frozen=True)
class DailySessionHistory:
    """All session records of one calendar day plus their rollups.

    The rollup fields are derived from ``sessions`` by ``from_sessions``;
    build a new history instead of editing one.
    """
    date: str
    sessions: tuple = ()
    total_work_sessions: int = 0
    total_break_sessions: int = 0
    total_work_time: int = 0
    completion_rate: float = 0.0

    @classmethod
    def from_sessions(cls, date: str, sessions) -> "DailySessionHistory":
        """Build a history and compute every rollup from ``sessions``."""
        sessions = tuple(sessions)
        done = [s for s in sessions if s.completed]
        work = [s for s in done if s.is_work]
        rate = (len(done) / len(sessions)) * 100 if sessions else 0.0
        return cls(
            date=date,
            sessions=sessions,
            total_work_sessions=len(work),
            total_break_sessions=len(done) - len(work),
            total_work_time=sum(s.duration_minutes for s in work),
            completion_rate=rate,
        )

    @classmethod
    def empty(cls, date: str) -> "DailySessionHistory":
        return cls(date=date)

    def appended(self, record: SessionRecord) -> "DailySessionHistory":
        """Return a new history with ``record`` appended."""
        return DailySessionHistory.from_sessions(self.date, self.sessions + (record,))

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "sessions": [s.to_dict() for s in self.sessions],
            "total_work_sessions": self.total_work_sessions,
            "total_break_sessions": self.total_break_sessions,
            "total_work_time": self.total_work_time,
            "completion_rate": self.completion_rate,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DailySessionHistory":
        """Load a stored bucket. Stored rollups are ignored and recomputed."""
        records = [SessionRecord.from_dict(s) for s in data.get("sessions", [])]
        return cls.from_sessions(data["date"], records)


@dataclass
class DailyStats:
    """Per-day totals kept by the remote store."""
    date: str = ""
    pomodoros_completed: int = 0
    total_work_time: int = 0
    tasks_completed: int = 0

    @classmethod
    def empty(cls, date: str) -> "DailyStats":
        return cls(date=date)

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "pomodoros_completed": self.pomodoros_completed,
            "total_work_time": self.total_work_time,
            "tasks_completed": self.tasks_completed,
        }

    @classmethod
    def from_row(cls, row: tuple) -> "DailyStats":
        return cls(
            date=row[0],
            pomodoros_completed=row[1] or 0,
            total_work_time=row[2] or 0,
            tasks_completed=row[3] or 0,
        )


@dataclass
class PomodoroSession:
    """A timer session as logged by the remote store."""
    id: str = ""
    task_id: Optional[str] = None
    session_type: SessionType = SessionType.WORK
    duration_minutes: int = 25
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    interrupted: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "session_type": self.session_type.value,
            "duration_minutes": self.duration_minutes,
            "started_at": _iso(self.started_at),
            "completed_at": _iso(self.completed_at),
            "interrupted": self.interrupted,
        }

    @classmethod
    def from_row(cls, row: tuple) -> "PomodoroSession":
        """Create PomodoroSession from database row."""
        return cls(
            id=row[0],
            task_id=row[1],
            session_type=SessionType(row[2]),
            duration_minutes=row[3],
            started_at=_parse(row[4]),
            completed_at=_parse(row[5]),
            interrupted=bool(row[6]),
        )


@dataclass
class TaskWithStats:
    """A task together with the pomodoros spent on it."""
    task: Task
    pomodoro_sessions: list[PomodoroSession] = field(default_factory=list)
    total_time_spent: int = 0


@dataclass
class HeatmapPoint:
    """Completed work sessions on one day, bucketed into a 0-4 level."""
    date: str
    count: int
    level: int = 0

    @staticmethod
    def level_for(count: int) -> int:
        if count <= 0:
            return 0
        if count <= 2:
            return 1
        if count <= 5:
            return 2
        if count <= 9:
            return 3
        return 4

    @classmethod
    def for_count(cls, date: str, count: int) -> "HeatmapPoint":
        return cls(date=date, count=count, level=cls.level_for(count))


@dataclass
class TimerSession:
    """The interval the timer is set up for."""
    type: SessionPhase = SessionPhase.WORK
    duration_minutes: int = 25
    long_break: bool = False

    @property
    def record_type(self) -> SessionType:
        """Session type used when logging this interval."""
        if self.type == SessionPhase.WORK:
            return SessionType.WORK
        return SessionType.LONG_BREAK if self.long_break else SessionType.SHORT_BREAK


@dataclass
class TimerState:
    """Live state of the timer."""
    is_running: bool = False
    is_paused: bool = False
    current_session: TimerSession = field(default_factory=TimerSession)
    time_remaining: int = 25 * 60
    sessions_completed: int = 0  # completed work sessions (pomodoros); breaks are not counted
    current_task_id: Optional[str] = None
    current_session_id: Optional[str] = None
    session_number: int = 1
    daily_session_count: int = 0
    session_start_time: Optional[datetime] = None

    @classmethod
    def initial(cls, focus_minutes: int = 25) -> "TimerState":
        """Startup defaults for a timer with the given work length."""
        return cls(
            current_session=TimerSession(SessionPhase.WORK, focus_minutes),
            time_remaining=focus_minutes * 60,
        )

    @property
    def status(self) -> TimerStatus:
        if not self.is_running:
            return TimerStatus.IDLE
        return TimerStatus.PAUSED if self.is_paused else TimerStatus.RUNNING

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "status": self.status.value,
            "session_type": self.current_session.record_type.value,
            "duration_minutes": self.current_session.duration_minutes,
            "time_remaining": self.time_remaining,
            "sessions_completed": self.sessions_completed,
            "current_task_id": self.current_task_id,
            "current_session_id": self.current_session_id,
            "session_number": self.session_number,
            "daily_session_count": self.daily_session_count,
            "session_start_time": _iso(self.session_start_time),
        }

"""Authoritative session store for Pomotrack.

``SqliteRemote`` is the store every service tries first. Any failure is
raised as ``RemoteError`` so callers can fall back to local storage.
"""

import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

from .clock import SystemClock
from .models import (
    DailyStats,
    HeatmapPoint,
    PomodoroSession,
    SessionRecord,
    SessionType,
    Task,
    TaskWithStats,
)

logger = logging.getLogger(__name__)

DB_VERSION = 3

MIGRATIONS = {
    1: """
    CREATE TABLE IF NOT EXISTS tasks (
        id TEXT PRIMARY KEY,
        text TEXT NOT NULL,
        completed INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        completed_at TEXT
    );
    """,
    2: """
    ALTER TABLE tasks ADD COLUMN priority INTEGER DEFAULT 0;
    ALTER TABLE tasks ADD COLUMN estimated_pomodoros INTEGER DEFAULT 1;
    ALTER TABLE tasks ADD COLUMN actual_pomodoros INTEGER DEFAULT 0;

    CREATE TABLE IF NOT EXISTS pomodoro_sessions (
        id TEXT PRIMARY KEY,
        task_id TEXT REFERENCES tasks(id) ON DELETE SET NULL,
        session_type TEXT NOT NULL CHECK(session_type IN ('work', 'short_break', 'long_break')),
        duration_minutes INTEGER NOT NULL,
        started_at TEXT NOT NULL,
        completed_at TEXT,
        interrupted INTEGER DEFAULT 0
    );

    CREATE TABLE IF NOT EXISTS daily_stats (
        date TEXT PRIMARY KEY,
        pomodoros_completed INTEGER DEFAULT 0,
        total_work_time INTEGER DEFAULT 0,
        tasks_completed INTEGER DEFAULT 0,
        created_at TEXT NOT NULL
    );
    """,
    3: """
    -- Daily session log (append only)
    CREATE TABLE IF NOT EXISTS session_records (
        id TEXT PRIMARY KEY,
        date TEXT NOT NULL,
        type TEXT NOT NULL CHECK(type IN ('work', 'short_break', 'long_break')),
        duration_minutes INTEGER NOT NULL,
        completed INTEGER NOT NULL,
        started_at TEXT NOT NULL,
        completed_at TEXT
    );

    CREATE INDEX IF NOT EXISTS idx_session_records_date ON session_records(date);
    CREATE INDEX IF NOT EXISTS idx_pomodoro_sessions_task ON pomodoro_sessions(task_id);
    """,
}

_TASK_COLUMNS = """
    id, text, completed, created_at, completed_at,
    COALESCE(priority, 0), COALESCE(estimated_pomodoros, 1), COALESCE(actual_pomodoros, 0)
"""

_SESSION_COLUMNS = (
    "id, task_id, session_type, duration_minutes, started_at, completed_at, interrupted"
)


class RemoteError(Exception):
    """The authoritative store could not serve a request."""


class SqliteRemote:
    """SQLite database operations."""

    def __init__(self, db_path: Path, clock=None):
        """Initialize storage with database path.

        Args:
            db_path: Path to SQLite database file
            clock: Time source for stored timestamps
        """
        self.db_path = db_path
        self.clock = clock or SystemClock()
        self._init_db()

    def _init_db(self) -> None:
        """Initialize database schema, applying pending migrations."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise RemoteError(f"Cannot create database directory: {e}") from e

        with self._connection() as conn:
            conn.execute("CREATE TABLE IF NOT EXISTS db_version (version INTEGER PRIMARY KEY)")
            row = conn.execute("SELECT MAX(version) FROM db_version").fetchone()
            current = row[0] or 0
            for version in range(current + 1, DB_VERSION + 1):
                logger.info(f"Migrating {self.db_path.name} to version {version}")
                conn.executescript(MIGRATIONS[version])
            if current < DB_VERSION:
                conn.execute("INSERT OR REPLACE INTO db_version (version) VALUES (?)", (DB_VERSION,))

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Get database connection context manager."""
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise RemoteError(f"Cannot open {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise RemoteError(f"Database error: {e}") from e
        finally:
            conn.close()

    def _now(self) -> str:
        return self.clock.now().isoformat()

    def close(self) -> None:
        """Connections are per call; nothing to release."""

    # Session operations

    def start_session(
        self,
        task_id: Optional[str],
        session_type: SessionType,
        duration_minutes: int,
    ) -> PomodoroSession:
        """Open a new timer session.

        Args:
            task_id: Task worked on, if any
            session_type: Kind of interval
            duration_minutes: Planned length

        Returns:
            The stored session with its new ID
        """
        session = PomodoroSession(
            id=str(uuid.uuid4()),
            task_id=task_id,
            session_type=session_type,
            duration_minutes=duration_minutes,
            started_at=self.clock.now(),
        )
        with self._connection() as conn:
            conn.execute(
                """
                INSERT INTO pomodoro_sessions
                    (id, task_id, session_type, duration_minutes, started_at, interrupted)
                VALUES (?, ?, ?, ?, ?, 0)
                """,
                (
                    session.id,
                    task_id,
                    session_type.value,
                    duration_minutes,
                    session.started_at.isoformat(),
                ),
            )
        return session

    def complete_session(self, session_id: str, interrupted: bool) -> None:
        """Close a timer session.

        A completed work session also bumps the task's pomodoro count and the
        day's totals.

        Args:
            session_id: Session to close
            interrupted: Whether the session was cut short
        """
        completed_at = None if interrupted else self._now()
        with self._connection() as conn:
            conn.execute(
                "UPDATE pomodoro_sessions SET completed_at = ?, interrupted = ? WHERE id = ?",
                (completed_at, int(interrupted), session_id),
            )
            row = conn.execute(
                "SELECT session_type, task_id, duration_minutes FROM pomodoro_sessions WHERE id = ?",
                (session_id,),
            ).fetchone()
            if row is None:
                raise RemoteError(f"Unknown session {session_id}")

            if row["session_type"] == SessionType.WORK.value and not interrupted:
                if row["task_id"]:
                    conn.execute(
                        "UPDATE tasks SET actual_pomodoros = actual_pomodoros + 1 WHERE id = ?",
                        (row["task_id"],),
                    )
                conn.execute(
                    """
                    INSERT INTO daily_stats (date, pomodoros_completed, total_work_time, created_at)
                    VALUES (?, 1, ?, ?)
                    ON CONFLICT(date) DO UPDATE SET
                        pomodoros_completed = pomodoros_completed + 1,
                        total_work_time = total_work_time + excluded.total_work_time
                    """,
                    (self.clock.today(), row["duration_minutes"], self._now()),
                )

    # Task operations

    def get_tasks(self) -> list[Task]:
        """Get all tasks, most recent first."""
        with self._connection() as conn:
            cursor = conn.execute(
                f"SELECT {_TASK_COLUMNS} FROM tasks ORDER BY created_at DESC, rowid DESC"
            )
            return [Task.from_row(tuple(row)) for row in cursor.fetchall()]

    def get_task(self, task_id: str) -> Optional[Task]:
        with self._connection() as conn:
            row = conn.execute(
                f"SELECT {_TASK_COLUMNS} FROM tasks WHERE id = ?", (task_id,)
            ).fetchone()
            return Task.from_row(tuple(row)) if row else None

    def add_task(self, text: str, priority: int = 0, estimated_pomodoros: int = 1) -> Task:
        """Create a new task.

        Returns:
            Task with assigned ID and creation time
        """
        task = Task(
            id=str(uuid.uuid4()),
            text=text,
            created_at=self.clock.now(),
            priority=priority,
            estimated_pomodoros=estimated_pomodoros,
        )
        with self._connection() as conn:
            conn.execute(
                """
                INSERT INTO tasks (id, text, completed, created_at, priority,
                                   estimated_pomodoros, actual_pomodoros)
                VALUES (?, ?, 0, ?, ?, ?, 0)
                """,
                (task.id, task.text, task.created_at.isoformat(), priority, estimated_pomodoros),
            )
        return task

    def complete_task(self, task_id: str, completed: bool) -> None:
        """Set or clear a task's completion; completing counts toward today's stats."""
        completed_at = self._now() if completed else None
        with self._connection() as conn:
            conn.execute(
                "UPDATE tasks SET completed = ?, completed_at = ? WHERE id = ?",
                (int(completed), completed_at, task_id),
            )
            if completed:
                conn.execute(
                    """
                    INSERT INTO daily_stats (date, tasks_completed, created_at)
                    VALUES (?, 1, ?)
                    ON CONFLICT(date) DO UPDATE SET tasks_completed = tasks_completed + 1
                    """,
                    (self.clock.today(), self._now()),
                )

    def update_task(self, task: Task) -> None:
        """Store a task's editable fields (text, priority, estimate)."""
        with self._connection() as conn:
            conn.execute(
                "UPDATE tasks SET text = ?, priority = ?, estimated_pomodoros = ? WHERE id = ?",
                (task.text, task.priority, task.estimated_pomodoros, task.id),
            )

    def delete_task(self, task_id: str) -> None:
        with self._connection() as conn:
            conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))

    # Statistics

    def get_daily_stats(self, date_str: str) -> Optional[DailyStats]:
        """Get totals for a day.

        Args:
            date_str: Date in YYYY-MM-DD format

        Returns:
            DailyStats if the day has any, None otherwise
        """
        with self._connection() as conn:
            row = conn.execute(
                """
                SELECT date, pomodoros_completed, total_work_time, tasks_completed
                FROM daily_stats WHERE date = ?
                """,
                (date_str,),
            ).fetchone()
            return DailyStats.from_row(tuple(row)) if row else None

    def get_focus_heatmap(self, since: str) -> list[HeatmapPoint]:
        """Count completed work sessions per day.

        Args:
            since: First date (YYYY-MM-DD) to include

        Returns:
            One point per day with at least one session, oldest first
        """
        with self._connection() as conn:
            cursor = conn.execute(
                """
                SELECT DATE(started_at) AS day, COUNT(*) AS count
                FROM pomodoro_sessions
                WHERE session_type = 'work'
                  AND interrupted = 0
                  AND completed_at IS NOT NULL
                  AND DATE(started_at) >= ?
                GROUP BY DATE(started_at)
                ORDER BY day ASC
                """,
                (since,),
            )
            return [HeatmapPoint.for_count(row["day"], row["count"]) for row in cursor.fetchall()]

    def get_task_with_stats(self, task_id: str) -> TaskWithStats:
        """Get a task with its sessions and total uninterrupted work minutes."""
        task = self.get_task(task_id)
        if task is None:
            raise RemoteError(f"Unknown task {task_id}")

        with self._connection() as conn:
            cursor = conn.execute(
                f"""
                SELECT {_SESSION_COLUMNS} FROM pomodoro_sessions
                WHERE task_id = ? ORDER BY started_at DESC
                """,
                (task_id,),
            )
            sessions = [PomodoroSession.from_row(tuple(row)) for row in cursor.fetchall()]

        total = sum(
            s.duration_minutes
            for s in sessions
            if s.session_type == SessionType.WORK and not s.interrupted
        )
        return TaskWithStats(task=task, pomodoro_sessions=sessions, total_time_spent=total)

    # Session history

    def get_daily_sessions(self, date_str: str) -> list[SessionRecord]:
        """Get a day's session log in append order."""
        with self._connection() as conn:
            cursor = conn.execute(
                """
                SELECT id, type, duration_minutes, completed, started_at, completed_at
                FROM session_records WHERE date = ? ORDER BY rowid
                """,
                (date_str,),
            )
            return [SessionRecord.from_row(tuple(row)) for row in cursor.fetchall()]

    def add_session_record(self, record: SessionRecord, date_str: str) -> None:
        """Append a record to a day's session log.

        Re-sending the same record is ignored.
        """
        with self._connection() as conn:
            conn.execute(
                """
                INSERT OR IGNORE INTO session_records
                    (id, date, type, duration_minutes, completed, started_at, completed_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    date_str,
                    record.type.value,
                    record.duration_minutes,
                    int(record.completed),
                    record.started_at.isoformat(),
                    record.completed_at.isoformat() if record.completed_at else None,
                ),
            )

    # Export

    def export_data(self) -> dict:
        """Dump tasks, sessions and daily stats."""
        with self._connection() as conn:
            tasks = [
                Task.from_row(tuple(row)).to_dict()
                for row in conn.execute(
                    f"SELECT {_TASK_COLUMNS} FROM tasks ORDER BY created_at DESC"
                ).fetchall()
            ]
            sessions = [
                PomodoroSession.from_row(tuple(row)).to_dict()
                for row in conn.execute(
                    f"SELECT {_SESSION_COLUMNS} FROM pomodoro_sessions ORDER BY started_at DESC"
                ).fetchall()
            ]
            daily_stats = [
                DailyStats.from_row(tuple(row)).to_dict()
                for row in conn.execute(
                    """
                    SELECT date, pomodoros_completed, total_work_time, tasks_completed
                    FROM daily_stats ORDER BY date DESC
                    """
                ).fetchall()
            ]
        return {
            "tasks": tasks,
            "pomodoro_sessions": sessions,
            "daily_stats": daily_stats,
            "exported_at": self._now(),
        }


class OfflineRemote:
    """Stand-in used when the remote store is disabled; every call fails."""

    def __getattr__(self, name: str):
        if name.startswith("_"):
            raise AttributeError(name)

        def unavailable(*args, **kwargs):
            raise RemoteError(f"Remote store disabled ({name})")

        return unavailable

    def close(self) -> None:
        pass


def open_remote(db_path: Path, enabled: bool = True, clock=None):
    """Open the authoritative store, or an offline stand-in if it can't be used.

    Args:
        db_path: SQLite database path
        enabled: False to skip the remote store entirely
        clock: Time source for stored timestamps

    Returns:
        SqliteRemote or OfflineRemote
    """
    if not enabled:
        logger.info("Remote store disabled by configuration")
        return OfflineRemote()
    try:
        return SqliteRemote(db_path, clock=clock)
    except RemoteError as e:
        logger.warning(f"Remote store unavailable, working offline: {e}")
        return OfflineRemote()

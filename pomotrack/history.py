"""Daily session log and its rollups."""

import logging
import uuid
from datetime import date, datetime, timedelta
from typing import Optional

from .local_store import sessions_key
from .models import DailySessionHistory, SessionRecord, SessionType

logger = logging.getLogger(__name__)

WEEK_DAYS = 7


def _merged(first: DailySessionHistory, second: DailySessionHistory) -> DailySessionHistory:
    """Union of two views of the same day, by record id, in start order."""
    known = {s.id for s in first.sessions}
    sessions = list(first.sessions) + [s for s in second.sessions if s.id not in known]
    sessions.sort(key=lambda s: s.started_at)
    return DailySessionHistory.from_sessions(first.date, sessions)


class SessionHistory:
    """Append-only log of sessions, bucketed per calendar day.

    The local bucket for today is written on every append, whatever happens to
    the remote copy, so today's history always survives a dead remote.
    """

    def __init__(self, remote, local, gateway, effects, clock):
        self.remote = remote
        self.local = local
        self.gateway = gateway
        self.effects = effects
        self.clock = clock
        self.history: Optional[DailySessionHistory] = None

    def load_daily(self, date_str: str) -> DailySessionHistory:
        """Load one day's history.

        Args:
            date_str: Date in YYYY-MM-DD format

        Returns:
            The day's history, empty if nothing was logged
        """

        def from_remote() -> DailySessionHistory:
            remote = DailySessionHistory.from_sessions(date_str, self.remote.get_daily_sessions(date_str))
            return _merged(remote, self.local_bucket(date_str))

        history = self.gateway.perform(
            from_remote,
            lambda: self.local_bucket(date_str),
            description="get_daily_sessions",
        )
        self.history = history
        return history

    def load_today(self) -> DailySessionHistory:
        return self.load_daily(self.clock.today())

    def add_session(
        self,
        session_type: SessionType,
        duration: int,
        completed: bool,
        start_time: Optional[datetime] = None,
    ) -> SessionRecord:
        """Append a session to today's log and recompute the rollups.

        Args:
            session_type: Work, short break or long break
            duration: Length in minutes
            completed: Whether the interval ran to the end
            start_time: When it started; defaults to now

        Returns:
            The new record
        """
        if duration <= 0:
            raise ValueError(f"Session duration must be positive, got {duration}")

        now = self.clock.now()
        today = self.clock.today()
        record = SessionRecord(
            id=str(uuid.uuid4()),
            type=session_type,
            duration_minutes=duration,
            completed=completed,
            started_at=start_time or now,
            completed_at=now if completed else None,
        )

        self.effects.submit(self._push_remote, record, today)

        # The local bucket is the base even when a remote view is loaded: it may
        # hold sessions that never reached the remote.
        bucket = self.local_bucket(today).appended(record)
        self.local.set(sessions_key(today), bucket.to_dict())

        if self.history is not None and self.history.date == today:
            self.history = _merged(self.history, bucket)
        else:
            self.history = bucket
        logger.debug(f"Logged {session_type.value} session ({duration} min) for {today}")
        return record

    def get_weekly_stats(self) -> list[DailySessionHistory]:
        """Local history for the last seven days, oldest first."""
        today = date.fromisoformat(self.clock.today())
        return [
            self.local_bucket((today - timedelta(days=offset)).isoformat())
            for offset in range(WEEK_DAYS - 1, -1, -1)
        ]

    def local_bucket(self, date_str: str) -> DailySessionHistory:
        """Read a day's bucket from local storage, empty if missing or malformed."""
        data = self.local.get(sessions_key(date_str))
        if data is None:
            return DailySessionHistory.empty(date_str)
        try:
            return DailySessionHistory.from_dict(data)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring malformed session bucket for {date_str}: {e}")
            return DailySessionHistory.empty(date_str)

    def _push_remote(self, record: SessionRecord, date_str: str) -> None:
        try:
            self.remote.add_session_record(record, date_str)
        except Exception as e:
            logger.error(f"Failed to send session {record.id} to remote store: {e}")

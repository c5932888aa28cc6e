"""Daily totals, weekly trend and focus heatmap."""

import logging
from datetime import date, timedelta
from typing import Optional

from .models import DailySessionHistory, DailyStats, HeatmapPoint, TaskWithStats

logger = logging.getLogger(__name__)


class Statistics:
    """Read-only summaries for the dashboard.

    Daily totals come from the remote store; when it can't answer, a zeroed
    record is returned so callers never have to handle a missing value.
    """

    def __init__(self, remote, gateway, history, clock):
        self.remote = remote
        self.gateway = gateway
        self.history = history
        self.clock = clock
        self.daily_stats: Optional[DailyStats] = None

    def load_daily(self, date_str: str) -> DailyStats:
        """Totals for one day.

        Args:
            date_str: Date in YYYY-MM-DD format

        Returns:
            The day's totals, zeroed if unknown or unavailable
        """

        def from_remote() -> DailyStats:
            stats = self.remote.get_daily_stats(date_str)
            if stats is None:
                logger.debug(f"No stats recorded for {date_str}")
                return DailyStats.empty(date_str)
            return stats

        stats = self.gateway.perform(
            from_remote,
            lambda: DailyStats.empty(date_str),
            description="get_daily_stats",
        )
        self.daily_stats = stats
        return stats

    def load_today(self) -> DailyStats:
        return self.load_daily(self.clock.today())

    def weekly_trend(self) -> list[DailySessionHistory]:
        """The last seven days of session history, oldest first."""
        return self.history.get_weekly_stats()

    def load_heatmap(self, days: int = 365) -> list[HeatmapPoint]:
        """Completed pomodoros per day over the last ``days`` days.

        The window ends today and is ``days`` days long. Only days with at least
        one pomodoro are returned, oldest first.
        """
        today = date.fromisoformat(self.clock.today())
        since = today - timedelta(days=days - 1)

        def from_local() -> list[HeatmapPoint]:
            points = []
            for offset in range(days - 1, -1, -1):
                day = (today - timedelta(days=offset)).isoformat()
                bucket = self.history.local_bucket(day)
                if bucket.total_work_sessions:
                    points.append(HeatmapPoint.for_count(day, bucket.total_work_sessions))
            return points

        return self.gateway.perform(
            lambda: self.remote.get_focus_heatmap(since.isoformat()),
            from_local,
            description="get_focus_heatmap",
        )

    def load_task_stats(self, task_id: str) -> Optional[TaskWithStats]:
        """Sessions spent on a task; None when the remote store can't say."""
        try:
            return self.remote.get_task_with_stats(task_id)
        except Exception as e:
            logger.error(f"Failed to load task stats for {task_id}: {e}")
            return None

"""Tests for session history and statistics."""

from datetime import datetime

import pytest

from pomotrack.local_store import sessions_key
from pomotrack.models import DailyStats, SessionType
from pomotrack.remote import RemoteError


class FlakyRemote:
    """Wraps a real remote; every call fails while ``down`` is set."""

    def __init__(self, remote):
        self.remote = remote
        self.down = False

    def __getattr__(self, name):
        target = getattr(self.remote, name)

        def call(*args, **kwargs):
            if self.down:
                raise RemoteError(f"{name}: connection refused")
            return target(*args, **kwargs)

        return call


class TestSessionHistory:
    def test_add_session_writes_local_bucket(self, services):
        history = services.history
        history.add_session(SessionType.WORK, 25, True, datetime(2026, 3, 2, 8, 35))
        history.add_session(SessionType.SHORT_BREAK, 5, True)

        bucket = services.local.get(sessions_key("2026-03-02"))
        assert [s["type"] for s in bucket["sessions"]] == ["work", "short_break"]
        assert bucket["sessions"][0]["started_at"] == "2026-03-02T08:35:00"
        assert bucket["total_work_sessions"] == 1
        assert bucket["total_break_sessions"] == 1
        assert bucket["total_work_time"] == 25
        assert history.history.completion_rate == 100.0

    def test_remote_copy_is_sent_on_drain(self, services):
        record = services.history.add_session(SessionType.WORK, 25, True)
        assert services.remote.get_daily_sessions("2026-03-02") == []

        services.effects.drain()
        assert services.remote.get_daily_sessions("2026-03-02") == [record]

    def test_remote_down_still_logs_locally(self, offline_services):
        offline_services.history.add_session(SessionType.WORK, 25, True)
        offline_services.effects.drain()

        bucket = offline_services.local.get(sessions_key("2026-03-02"))
        assert len(bucket["sessions"]) == 1

    def test_rejects_non_positive_duration(self, services):
        with pytest.raises(ValueError):
            services.history.add_session(SessionType.WORK, 0, True)

    def test_load_daily_prefers_remote(self, services):
        services.history.add_session(SessionType.WORK, 25, True)
        services.effects.drain()
        services.local.delete(sessions_key("2026-03-02"))

        loaded = services.history.load_daily("2026-03-02")
        assert loaded.total_work_sessions == 1

    def test_load_daily_falls_back_to_local(self, offline_services):
        offline_services.history.add_session(SessionType.WORK, 25, True)
        offline_services.history.history = None

        loaded = offline_services.history.load_today()
        assert loaded.total_work_sessions == 1

    def test_offline_session_survives_remote_reload(self, make_services, sqlite_remote, clock):
        remote = FlakyRemote(sqlite_remote)
        services = make_services(remote=remote)
        history = services.history

        remote.down = True
        offline = history.add_session(SessionType.WORK, 25, True)
        services.effects.drain()

        remote.down = False
        clock.advance(minutes=30)
        assert offline in history.load_today().sessions

        online = history.add_session(SessionType.WORK, 25, True)
        services.effects.drain()

        stored = [s["id"] for s in services.local.get(sessions_key("2026-03-02"))["sessions"]]
        assert stored == [offline.id, online.id]
        assert [s.id for s in history.history.sessions] == [offline.id, online.id]
        assert history.history.total_work_sessions == 2

    def test_remote_view_keeps_records_missing_locally(self, services):
        pushed = services.history.add_session(SessionType.WORK, 25, True)
        services.effects.drain()
        services.local.delete(sessions_key("2026-03-02"))
        services.history.load_today()

        services.history.add_session(SessionType.SHORT_BREAK, 5, True)
        assert [s.id for s in services.history.history.sessions][0] == pushed.id
        assert len(services.history.history.sessions) == 2

    def test_new_day_starts_a_new_bucket(self, services, clock):
        services.history.add_session(SessionType.WORK, 25, True)
        clock.advance(days=1)
        services.history.add_session(SessionType.WORK, 50, True)

        assert services.history.history.date == "2026-03-03"
        assert services.history.history.total_work_time == 50
        assert services.history.local_bucket("2026-03-02").total_work_time == 25

    def test_malformed_bucket_reads_empty(self, services):
        services.local.set(sessions_key("2026-03-01"), {"date": "2026-03-01", "sessions": [{"id": 1}]})
        assert services.history.local_bucket("2026-03-01").sessions == ()

    def test_weekly_stats_oldest_first(self, services, clock):
        services.history.add_session(SessionType.WORK, 25, True)
        clock.advance(days=3)
        services.history.add_session(SessionType.WORK, 25, True)
        services.history.add_session(SessionType.WORK, 25, True)

        week = services.history.get_weekly_stats()
        assert [d.date for d in week] == [
            "2026-02-27", "2026-02-28", "2026-03-01", "2026-03-02",
            "2026-03-03", "2026-03-04", "2026-03-05",
        ]
        assert [d.total_work_sessions for d in week] == [0, 0, 0, 1, 0, 0, 2]


class TestStatistics:
    def test_unknown_day_is_zeroed(self, services):
        assert services.stats.load_daily("2025-01-01") == DailyStats.empty("2025-01-01")

    def test_remote_down_is_zeroed(self, offline_services):
        stats = offline_services.stats.load_today()
        assert stats == DailyStats.empty("2026-03-02")
        assert offline_services.stats.daily_stats == stats

    def test_heatmap_from_remote(self, services):
        session = services.remote.start_session(None, SessionType.WORK, 25)
        services.remote.complete_session(session.id, False)

        points = services.stats.load_heatmap(30)
        assert [(p.date, p.count) for p in points] == [("2026-03-02", 1)]

    def test_heatmap_from_local_buckets(self, offline_services, clock):
        for _ in range(3):
            offline_services.history.add_session(SessionType.WORK, 25, True)
        offline_services.history.add_session(SessionType.SHORT_BREAK, 5, True)
        clock.advance(days=2)
        offline_services.history.add_session(SessionType.WORK, 25, True)

        points = offline_services.stats.load_heatmap(30)
        assert [(p.date, p.count, p.level) for p in points] == [
            ("2026-03-02", 3, 2),
            ("2026-03-04", 1, 1),
        ]

    def test_task_stats_unavailable(self, offline_services):
        assert offline_services.stats.load_task_stats("any") is None

    def test_weekly_trend(self, services):
        assert len(services.stats.weekly_trend()) == 7

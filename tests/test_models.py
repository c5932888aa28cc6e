"""Tests for data models."""

from datetime import datetime

from pomotrack.models import (
    DailySessionHistory,
    HeatmapPoint,
    SessionPhase,
    SessionRecord,
    SessionType,
    Task,
    TimerSession,
    TimerState,
    TimerStatus,
)

START = datetime(2026, 3, 2, 9, 0)


def record(id, type=SessionType.WORK, minutes=25, completed=True):
    return SessionRecord(
        id=id,
        type=type,
        duration_minutes=minutes,
        completed=completed,
        started_at=START,
        completed_at=START if completed else None,
    )


class TestDailySessionHistory:
    def test_rollups(self):
        history = DailySessionHistory.from_sessions(
            "2026-03-02",
            [
                record("a"),
                record("b", SessionType.SHORT_BREAK, 5),
                record("c"),
                record("d", completed=False),
            ],
        )
        assert history.total_work_sessions == 2
        assert history.total_break_sessions == 1
        assert history.total_work_time == 50
        assert history.completion_rate == 75.0

    def test_empty_day(self):
        history = DailySessionHistory.empty("2026-03-02")
        assert history.sessions == ()
        assert history.completion_rate == 0.0

    def test_rollups_are_idempotent(self):
        history = DailySessionHistory.from_sessions("2026-03-02", [record("a"), record("b")])
        again = DailySessionHistory.from_sessions(history.date, history.sessions)
        assert again == history
        assert DailySessionHistory.from_dict(history.to_dict()) == history

    def test_stored_rollups_are_recomputed(self):
        data = DailySessionHistory.from_sessions("2026-03-02", [record("a")]).to_dict()
        data["total_work_sessions"] = 99
        data["completion_rate"] = 1.0
        loaded = DailySessionHistory.from_dict(data)
        assert loaded.total_work_sessions == 1
        assert loaded.completion_rate == 100.0

    def test_appended_returns_new_history(self):
        history = DailySessionHistory.empty("2026-03-02")
        grown = history.appended(record("a"))
        assert history.sessions == ()
        assert grown.total_work_sessions == 1


class TestTask:
    def test_dict_uses_iso_timestamps(self):
        task = Task(id="1", text="Write report", created_at=START, priority=2, estimated_pomodoros=3)
        data = task.to_dict()
        assert data["created_at"] == "2026-03-02T09:00:00"
        assert data["completed_at"] is None
        assert Task.from_dict(data) == task

    def test_from_dict_clamps_numbers(self):
        data = Task(id="1", text="x", created_at=START).to_dict()
        data.update(priority=9, estimated_pomodoros=-2)
        task = Task.from_dict(data)
        assert (task.priority, task.estimated_pomodoros) == (3, 0)

        data["priority"] = -1
        assert Task.from_dict(data).priority == 0

    def test_from_dict_aligns_completion_fields(self):
        data = Task(id="1", text="x", created_at=START).to_dict()

        data.update(completed=True, completed_at=None)
        assert Task.from_dict(data).completed_at == START

        data.update(completed=False, completed_at="2026-03-02T10:00:00")
        assert Task.from_dict(data).completed_at is None


class TestHeatmapPoint:
    def test_levels(self):
        assert [HeatmapPoint.level_for(n) for n in (0, 1, 2, 3, 5, 6, 9, 10, 30)] == [
            0, 1, 1, 2, 2, 3, 3, 4, 4,
        ]


class TestTimerModels:
    def test_record_type(self):
        assert TimerSession(SessionPhase.WORK, 25).record_type == SessionType.WORK
        assert TimerSession(SessionPhase.BREAK, 5).record_type == SessionType.SHORT_BREAK
        assert TimerSession(SessionPhase.BREAK, 15, True).record_type == SessionType.LONG_BREAK

    def test_initial_state(self):
        state = TimerState.initial(50)
        assert state.status == TimerStatus.IDLE
        assert state.time_remaining == 3000
        assert state.session_number == 1
        assert state.to_dict()["session_type"] == "work"

    def test_status(self):
        state = TimerState(is_running=True)
        assert state.status == TimerStatus.RUNNING
        state.is_paused = True
        assert state.status == TimerStatus.PAUSED

"""Pomodoro timer state machine.

The timer has no clock of its own: whoever owns the one-second loop calls
``tick()`` and, once ``time_remaining`` reaches zero, ``complete_session()``.
Remote calls are best-effort and never stop a transition; the slow ones are
put on the effect queue.
"""

import logging
from dataclasses import replace
from typing import Optional

from .config import TimerConfig
from .models import SessionPhase, TimerSession, TimerState
from .notify import (
    CUE_BREAK_COMPLETE,
    CUE_BREAK_START,
    CUE_COMPLETE,
    CUE_DELETE,
    CUE_START,
    CUE_STOP,
)

logger = logging.getLogger(__name__)


class PomodoroTimer:
    """Work/break cycle with task auto-completion and session logging.

    Only this class writes the live ``TimerState``; ``state`` hands out copies.

    Transitions:
        idle -> running (start) <-> paused (pause/resume)
        running|paused -> idle (stop, complete_session)
    """

    def __init__(self, config: TimerConfig, remote, tasks, history, stats, effects, cues, clock):
        self.config = config
        self.remote = remote
        self.tasks = tasks
        self.history = history
        self.stats = stats
        self.effects = effects
        self.cues = cues
        self.clock = clock
        self._state = TimerState.initial(config.focus_minutes)

    @property
    def state(self) -> TimerState:
        """Snapshot of the live state."""
        return replace(self._state, current_session=replace(self._state.current_session))

    def start(self, task_id: Optional[str] = None) -> None:
        """Start the configured session.

        Callers must only start an idle timer.

        Args:
            task_id: Task to auto-complete when this work session finishes
        """
        s = self._state
        session = s.current_session
        try:
            handle = self.remote.start_session(task_id, session.record_type, session.duration_minutes)
            s.current_session_id = handle.id
        except Exception as e:
            logger.warning(f"Failed to start remote session, timing locally: {e}")
            s.current_session_id = None

        s.is_running = True
        s.is_paused = False
        s.current_task_id = task_id
        s.session_start_time = self.clock.now()
        logger.info(f"Started {session.record_type.value} session #{s.session_number}")

        cue = CUE_START if session.type == SessionPhase.WORK else CUE_BREAK_START
        self.effects.submit(self.cues.play, cue)

    def pause(self) -> None:
        if self._state.is_running:
            self._state.is_paused = True

    def resume(self) -> None:
        self._state.is_paused = False

    def tick(self) -> None:
        """Count down one second, never below zero."""
        self._state.time_remaining = max(0, self._state.time_remaining - 1)

    def stop(self) -> None:
        """Abandon the running session.

        The session is logged remotely as interrupted. Counters, history and
        the scheduled session type stay as they are.
        """
        s = self._state
        if s.current_session_id:
            self.effects.submit(self._close_remote, s.current_session_id, True)
        if s.is_running:
            self.effects.submit(self.cues.play, CUE_STOP)

        s.is_running = False
        s.is_paused = False
        s.current_task_id = None
        s.current_session_id = None
        logger.info("Timer stopped")

    def complete_session(self, interrupted: bool = False) -> None:
        """Finish the current session and set up the next one.

        A normal completion auto-completes the attached task (work sessions
        only), logs the session to history, bumps the counters and refreshes
        today's stats. An interrupted completion skips all of that but still
        moves on to the next session type.

        Args:
            interrupted: True when the session didn't run to the end
        """
        s = self._state
        finished = s.current_session
        was_work = finished.type == SessionPhase.WORK

        # 1. close the remote session
        if s.current_session_id:
            self.effects.submit(self._close_remote, s.current_session_id, interrupted)

        if not interrupted:
            # 2. auto-complete the task worked on
            if was_work and s.current_task_id:
                try:
                    self.tasks.complete(s.current_task_id)
                except Exception as e:
                    logger.error(f"Failed to auto-complete task {s.current_task_id}: {e}")

            # 3. log the session
            try:
                self.history.add_session(
                    finished.record_type,
                    finished.duration_minutes,
                    True,
                    s.session_start_time,
                )
            except Exception as e:
                logger.error(f"Failed to record session in history: {e}")

        # 4. schedule the next session
        next_session = self._next_session(finished)

        # 5. counters and field resets
        if not interrupted:
            if was_work:
                s.sessions_completed += 1
            s.daily_session_count += 1
        s.current_session = next_session
        s.time_remaining = next_session.duration_minutes * 60
        s.is_running = False
        s.is_paused = False
        s.current_session_id = None
        s.current_task_id = None
        if next_session.type == SessionPhase.WORK:
            s.session_number += 1

        logger.info(
            f"{'Interrupted' if interrupted else 'Completed'} {finished.record_type.value} session; "
            f"next: {next_session.record_type.value} ({next_session.duration_minutes} min)"
        )

        # 6. refresh stats
        if not interrupted:
            self.effects.submit(self.cues.play, CUE_COMPLETE if was_work else CUE_BREAK_COMPLETE)
            self.effects.submit(self.stats.load_today)

    def set_session(self, session_type: SessionPhase, duration: int, long_break: Optional[bool] = None) -> None:
        """Set up the next session explicitly (presets, custom lengths).

        A running session is stopped first.

        Args:
            session_type: Work or break
            duration: Length in minutes
            long_break: For breaks, whether to log it as a long break; by
                default a break at least as long as the configured long
                break counts as one
        """
        if duration <= 0:
            raise ValueError(f"Session duration must be positive, got {duration}")
        if self._state.is_running:
            self.stop()

        if session_type == SessionPhase.WORK:
            long_break = False
        elif long_break is None:
            long_break = duration >= self.config.long_break_minutes

        s = self._state
        s.current_session = TimerSession(session_type, duration, long_break)
        s.time_remaining = duration * 60
        s.is_running = False
        s.is_paused = False

    def reset(self) -> None:
        """Back to startup defaults."""
        if self._state.current_session_id:
            self.effects.submit(self._close_remote, self._state.current_session_id, True)
        self.effects.submit(self.cues.play, CUE_DELETE)
        self._state = TimerState.initial(self.config.focus_minutes)
        logger.info("Timer reset")

    # Internals

    def _next_session(self, finished: TimerSession) -> TimerSession:
        if finished.type == SessionPhase.BREAK:
            return TimerSession(SessionPhase.WORK, self.config.focus_minutes)

        # Decided before the counter moves, so the break logged later keeps this kind.
        long_break = (self._state.sessions_completed + 1) % self.config.long_break_after == 0
        minutes = self.config.long_break_minutes if long_break else self.config.short_break_minutes
        return TimerSession(SessionPhase.BREAK, minutes, long_break)

    def _close_remote(self, session_id: str, interrupted: bool) -> None:
        try:
            self.remote.complete_session(session_id, interrupted)
        except Exception as e:
            logger.error(f"Failed to close remote session {session_id}: {e}")

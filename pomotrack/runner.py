"""Foreground one-second loop driving a PomodoroTimer."""

import logging
import signal
import time
from typing import Callable, Optional

from .models import SessionPhase, TimerState

logger = logging.getLogger(__name__)


class TimerRunner:
    """Ticks the timer once a second and completes sessions when they run out.

    Signal handlers only raise flags; the loop applies them between ticks so
    the timer is only ever touched from one place.
    """

    def __init__(
        self,
        timer,
        effects,
        on_tick: Optional[Callable[[TimerState], None]] = None,
        on_complete: Optional[Callable[[TimerState], None]] = None,
        sleep: Callable[[float], None] = time.sleep,
        handle_signals: bool = True,
    ):
        """Initialize runner.

        Args:
            timer: PomodoroTimer to drive
            effects: EffectQueue drained after every transition
            on_tick: Called with a state snapshot once a second
            on_complete: Called with the state after each finished session
            sleep: Sleep function (replaced in tests)
            handle_signals: Install SIGINT/SIGTERM/SIGUSR1/SIGUSR2 handlers
        """
        self.timer = timer
        self.effects = effects
        self.on_tick = on_tick
        self.on_complete = on_complete
        self.sleep = sleep
        self.handle_signals = handle_signals

        self._stop_requested = False
        self._pause_requested = False
        self._resume_requested = False

    def _signal_handler(self, signum, frame):
        """Handle termination signals."""
        logger.info(f"Received signal {signum}, stopping timer")
        self._stop_requested = True

    def _pause_signal_handler(self, signum, frame):
        self._pause_requested = True

    def _resume_signal_handler(self, signum, frame):
        self._resume_requested = True

    def request_stop(self) -> None:
        self._stop_requested = True

    def _install_signals(self) -> dict:
        previous = {}
        handlers = {
            "SIGINT": self._signal_handler,
            "SIGTERM": self._signal_handler,
            "SIGUSR1": self._pause_signal_handler,
            "SIGUSR2": self._resume_signal_handler,
        }
        for name, handler in handlers.items():
            if hasattr(signal, name):
                signum = getattr(signal, name)
                previous[signum] = signal.signal(signum, handler)
        return previous

    def _restore_signals(self, previous: dict) -> None:
        for signum, handler in previous.items():
            signal.signal(signum, handler)

    def _apply_requests(self) -> None:
        if self._pause_requested:
            self._pause_requested = False
            self.timer.pause()
            logger.info("Timer paused")
        if self._resume_requested:
            self._resume_requested = False
            self.timer.resume()
            logger.info("Timer resumed")

    def run(self, task_id: Optional[str] = None, sessions: int = 1) -> int:
        """Run sessions back to back until ``sessions`` work sessions finish.

        Args:
            task_id: Task attached to the first work session
            sessions: Number of work sessions to run
        Returns:
            Number of work sessions completed
        """
        previous = self._install_signals() if self.handle_signals else {}
        completed_work = 0
        attach = task_id
        try:
            while completed_work < sessions and not self._stop_requested:
                is_work = self.timer.state.current_session.type == SessionPhase.WORK
                self.timer.start(attach if is_work else None)
                if is_work:
                    attach = None
                self.effects.drain()

                if not self._count_down():
                    break

                self.timer.complete_session()
                self.effects.drain()
                if is_work:
                    completed_work += 1
                if self.on_complete:
                    self.on_complete(self.timer.state)

            if self._stop_requested and self.timer.state.is_running:
                self.timer.stop()
        finally:
            self.effects.drain()
            self._restore_signals(previous)
        return completed_work

    def _count_down(self) -> bool:
        """Tick until the session runs out; False when a stop was requested."""
        while self.timer.state.time_remaining > 0:
            self._apply_requests()
            if self._stop_requested:
                return False
            self.sleep(1)
            if not self.timer.state.is_paused:
                self.timer.tick()
            if self.on_tick:
                self.on_tick(self.timer.state)
        return not self._stop_requested

"""Pomotrack - pomodoro timer with task tracking and session statistics."""

__version__ = "0.3.0"

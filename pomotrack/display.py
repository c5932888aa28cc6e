"""Display formatting for Pomotrack CLI - progress bars, task lists and charts."""

import click
from datetime import date, timedelta
from typing import Optional

from .models import (
    DailySessionHistory,
    DailyStats,
    HeatmapPoint,
    SessionPhase,
    SessionType,
    Task,
    TaskWithStats,
    TimerState,
    TimerStatus,
)

PRIORITY_MARKS = {0: " ", 1: "!", 2: "!!", 3: "!!!"}
HEATMAP_CELLS = ["·", "░", "▒", "▓", "█"]
SESSION_ICONS = {
    SessionType.WORK: "🍅",
    SessionType.SHORT_BREAK: "🧘",
    SessionType.LONG_BREAK: "☕",
}


def format_time(seconds: int) -> str:
    """Format seconds as MM:SS.

    Args:
        seconds: Number of seconds

    Returns:
        Formatted time string
    """
    minutes = seconds // 60
    secs = seconds % 60
    return f"{minutes:02d}:{secs:02d}"


def progress_bar(current: int, total: int, width: int = 20, filled: str = "█", empty: str = "░") -> str:
    """Create an ASCII progress bar.

    Args:
        current: Current value
        total: Total value
        width: Width of the bar in characters
        filled: Character for filled portion
        empty: Character for empty portion

    Returns:
        Progress bar string
    """
    if total == 0:
        return empty * width

    ratio = min(current / total, 1.0)
    filled_width = int(width * ratio)
    return filled * filled_width + empty * (width - filled_width)


def pomodoro_icons(done: int, estimated: int) -> str:
    """Dots for pomodoros spent against the estimate."""
    filled = "●" * done
    empty = "○" * max(0, estimated - done)
    return filled + empty


def print_header(text: str) -> None:
    width = 50
    click.echo()
    click.echo("═" * width)
    click.echo(f" {text}")
    click.echo("═" * width)


def print_subheader(text: str) -> None:
    click.echo()
    click.echo(f"── {text} ──")


def timer_line(state: TimerState) -> str:
    """One-line timer readout, rewritten in place every tick."""
    session = state.current_session
    total = session.duration_minutes * 60
    bar = progress_bar(total - state.time_remaining, total, width=30)
    label = "FOCUS" if session.type == SessionPhase.WORK else session.record_type.value.replace("_", " ").upper()
    paused = " (paused)" if state.status == TimerStatus.PAUSED else ""
    return f"{SESSION_ICONS[session.record_type]} {label} {format_time(state.time_remaining)} [{bar}]{paused}"


def print_timer_status(state: TimerState) -> None:
    """Print the timer state between sessions.

    Args:
        state: Current timer state
    """
    session = state.current_session
    click.echo(f"\nNext: {session.record_type.value.replace('_', ' ')} ({session.duration_minutes} min)")
    click.echo(f"Pomodoros completed: {state.sessions_completed}")
    click.echo(f"Sessions today: {state.daily_session_count}")


def print_tasks(tasks: list[Task]) -> None:
    """Print task list, numbered in display order.

    Args:
        tasks: List of tasks to display
    """
    if not tasks:
        click.echo("No tasks yet. Add one with 'pomotrack task add'.")
        return

    click.echo("\nTasks:")
    for i, task in enumerate(tasks, 1):
        status = click.style("✓", fg="green") if task.completed else click.style("○", fg="yellow")
        mark = click.style(f"{PRIORITY_MARKS.get(task.priority, ' '):<3}", fg="red")
        text = click.style(task.text, dim=task.completed)
        icons = pomodoro_icons(task.actual_pomodoros, task.estimated_pomodoros)
        click.echo(f"  {status} {i:>2}. {mark} {text}  {icons}")


def print_task_stats(stats: Optional[TaskWithStats]) -> None:
    if stats is None:
        return
    click.echo(
        f"  {len(stats.pomodoro_sessions)} sessions, {stats.total_time_spent} min spent"
    )


def print_daily_stats(stats: DailyStats, history: DailySessionHistory) -> None:
    """Print today's totals and session log.

    Args:
        stats: Totals from the remote store
        history: Today's session log
    """
    print_header(f"Today - {stats.date}")

    click.echo(f"\nPomodoros: {stats.pomodoros_completed}")
    click.echo(f"Focus time: {stats.total_work_time} min")
    click.echo(f"Tasks completed: {stats.tasks_completed}")

    if history.sessions:
        print_subheader("Sessions")
        for record in history.sessions:
            icon = SESSION_ICONS[record.type]
            status = "✓" if record.completed else "✗"
            click.echo(
                f"  {status} {record.started_at.strftime('%H:%M')} {icon} "
                f"{record.type.value.replace('_', ' ')} ({record.duration_minutes} min)"
            )
        click.echo(f"\nCompletion rate: {history.completion_rate:.0f}%")


def print_week(days: list[DailySessionHistory]) -> None:
    """Print a bar per day of work sessions.

    Args:
        days: Seven days of history, oldest first
    """
    print_header("Last 7 Days")
    most = max((d.total_work_sessions for d in days), default=0)
    click.echo()
    for day in days:
        bar = progress_bar(day.total_work_sessions, most, width=20)
        click.echo(
            f"  {day.date} [{bar}] {day.total_work_sessions:>2} pomodoros, {day.total_work_time} min"
        )
    total = sum(d.total_work_sessions for d in days)
    click.echo(f"\nTotal: {total} pomodoros")


def print_heatmap(points: list[HeatmapPoint], days: int, today: str) -> None:
    """Print the focus heatmap as a strip of shaded cells, one per day.

    Args:
        points: Days with at least one pomodoro
        days: How far back the strip goes
        today: Last day of the strip (YYYY-MM-DD)
    """
    print_header(f"Focus Heatmap - last {days} days")
    if not points:
        click.echo("\nNo pomodoros yet.")
        return

    levels = {p.date: p.level for p in points}
    end = date.fromisoformat(today)
    cells = "".join(
        HEATMAP_CELLS[levels.get((end - timedelta(days=offset)).isoformat(), 0)]
        for offset in range(days - 1, -1, -1)
    )
    click.echo()
    for start in range(0, len(cells), 50):
        click.echo(f"  {cells[start:start + 50]}")

    busiest = max(points, key=lambda p: p.count)
    click.echo(f"\nActive days: {len(points)}")
    click.echo(f"Best day: {busiest.date} ({busiest.count} pomodoros)")
    click.echo("Legend: " + " ".join(HEATMAP_CELLS) + " (none → 10+)")


def print_setup_complete() -> None:
    """Print setup completion message."""
    click.echo()
    click.secho("✓ Setup complete!", fg="green", bold=True)
    click.echo()
    click.echo("Get started:")
    click.echo("  pomotrack task add  - Add a task")
    click.echo("  pomotrack timer     - Start a pomodoro")
    click.echo("  pomotrack stats     - See today's progress")
    click.echo("  pomotrack --help    - See all commands")

"""Main CLI entry point for Pomotrack - pomodoro timer with a task list and stats."""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import click

from . import __version__
from .app import Services, build_services
from .config import get_config_manager
from .display import (
    print_daily_stats,
    print_header,
    print_heatmap,
    print_setup_complete,
    print_subheader,
    print_task_stats,
    print_tasks,
    print_timer_status,
    print_week,
    timer_line,
)
from .models import Task
from .notify import test_connection_sync
from .runner import TimerRunner

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(log_file: Path, verbose: bool) -> None:
    """Log to the data directory, and to the terminal with --verbose."""
    handlers: list[logging.Handler] = [logging.FileHandler(log_file, encoding="utf-8", delay=True)]
    if verbose:
        handlers.append(logging.StreamHandler())
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers,
    )


@contextmanager
def open_services() -> Iterator[Services]:
    """Services with tasks loaded; pending side effects run on exit."""
    services = build_services(get_config_manager())
    try:
        services.tasks.load()
        yield services
    finally:
        services.close()


def require_setup(ctx: click.Context) -> None:
    """Ensure setup has been completed."""
    cm = get_config_manager()
    if not cm.is_configured():
        click.echo("Pomotrack is not configured. Run 'pomotrack setup' first.")
        ctx.exit(1)


def resolve_task(services: Services, number: int) -> Task:
    """Task by its 1-based position in 'pomotrack task list'."""
    tasks = services.tasks.tasks
    if number <= 0 or number > len(tasks):
        raise click.ClickException(f"Invalid task number. You have {len(tasks)} tasks.")
    return tasks[number - 1]


@contextmanager
def user_errors() -> Iterator[None]:
    """Report bad arguments as click errors instead of tracebacks."""
    try:
        yield
    except ValueError as e:
        raise click.ClickException(str(e))


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version")
@click.option("--verbose", "-v", is_flag=True, help="Log to the terminal")
@click.pass_context
def main(ctx: click.Context, version: bool, verbose: bool) -> None:
    """Pomotrack - Command-line pomodoro timer with tasks and focus stats.

    Use 'pomotrack task add' to plan and 'pomotrack timer' to begin.
    """
    if version:
        click.echo(f"pomotrack {__version__}")
        return

    cm = get_config_manager()
    cm.ensure_dirs()
    setup_logging(cm.log_file, verbose)

    if ctx.invoked_subcommand is None:
        if not cm.is_configured():
            click.echo("Welcome to Pomotrack!")
            click.echo("Run 'pomotrack setup' to configure.")
            return
        ctx.invoke(stats)


# ============================================================================
# Setup Command
# ============================================================================

@main.command()
@click.option("--telegram-token", prompt=False, help="Telegram bot token")
@click.option("--telegram-chat-id", prompt=False, help="Telegram chat ID")
def setup(telegram_token: Optional[str], telegram_chat_id: Optional[str]) -> None:
    """Configure Pomotrack settings interactively."""
    cm = get_config_manager()
    config = cm.load()

    print_header("Pomotrack Setup")

    click.echo("\nTelegram notifications (optional)")
    click.echo("To get a bot token, message @BotFather on Telegram")
    click.echo("To get your chat ID, message @userinfobot")

    if telegram_token is None:
        telegram_token = click.prompt(
            "Bot token",
            default=config.telegram.bot_token or "",
            show_default=False,
        )

    if telegram_chat_id is None:
        telegram_chat_id = click.prompt(
            "Chat ID",
            default=config.telegram.chat_id or "",
            show_default=False,
        )

    config.telegram.bot_token = telegram_token.strip()
    config.telegram.chat_id = telegram_chat_id.strip()
    config.telegram.enabled = bool(config.telegram.bot_token and config.telegram.chat_id)

    if config.telegram.enabled:
        click.echo("\nTesting Telegram connection...")
        success, message = test_connection_sync(config.telegram)
        if success:
            click.secho(f"✓ {message}", fg="green")
        else:
            click.secho(f"✗ {message}", fg="red")
            if not click.confirm("Save anyway?", default=True):
                config.telegram.enabled = False

    print_subheader("Timer Settings")
    click.echo(f"Focus duration: {config.timer.focus_minutes} minutes")
    click.echo(f"Short break: {config.timer.short_break_minutes} minutes")
    click.echo(f"Long break: {config.timer.long_break_minutes} minutes")
    click.echo(f"Long break after: {config.timer.long_break_after} pomodoros")

    if click.confirm("Customize timer durations?", default=False):
        config.timer.focus_minutes = click.prompt(
            "Focus duration (minutes)", default=config.timer.focus_minutes, type=click.IntRange(min=1)
        )
        config.timer.short_break_minutes = click.prompt(
            "Short break (minutes)", default=config.timer.short_break_minutes, type=click.IntRange(min=1)
        )
        config.timer.long_break_minutes = click.prompt(
            "Long break (minutes)", default=config.timer.long_break_minutes, type=click.IntRange(min=1)
        )
        config.timer.long_break_after = click.prompt(
            "Long break after (pomodoros)", default=config.timer.long_break_after, type=click.IntRange(min=1)
        )

    config.sound.bell = click.confirm("Ring the terminal bell when a session ends?", default=config.sound.bell)

    cm.save(config)
    print_setup_complete()


# ============================================================================
# Timer Command
# ============================================================================

@main.command()
@click.option("--task", "-t", type=int, help="Task number to work on")
@click.option("--sessions", "-n", type=click.IntRange(min=1), default=1, show_default=True,
              help="Pomodoros to run back to back")
@click.pass_context
def timer(ctx: click.Context, task: Optional[int], sessions: int) -> None:
    """Run the pomodoro timer in the foreground.

    Ctrl+C stops the current session without counting it. SIGUSR1 pauses,
    SIGUSR2 resumes.
    """
    require_setup(ctx)

    with open_services() as services:
        task_id = None
        if task is not None:
            chosen = resolve_task(services, task)
            task_id = chosen.id
            click.echo(f"Working on: {chosen.text}")

        def on_tick(state) -> None:
            click.echo(f"\r{timer_line(state)}", nl=False)

        def on_complete(state) -> None:
            click.echo()
            print_timer_status(state)

        runner = TimerRunner(services.timer, services.effects, on_tick=on_tick, on_complete=on_complete)
        completed = runner.run(task_id=task_id, sessions=sessions)

        click.echo()
        if completed < sessions:
            click.echo("Timer stopped.")
        else:
            click.secho(f"✓ {completed} pomodoro{'s' if completed != 1 else ''} done", fg="green")


# ============================================================================
# Task Commands
# ============================================================================

@main.group()
def task() -> None:
    """Manage tasks."""
    pass


@task.command(name="add")
@click.argument("text")
@click.option("--priority", "-p", type=click.IntRange(0, 3), default=0, help="0 (none) to 3 (highest)")
@click.option("--estimate", "-e", type=click.IntRange(min=0), default=1, help="Expected pomodoros")
@click.pass_context
def task_add(ctx: click.Context, text: str, priority: int, estimate: int) -> None:
    """Add a new task."""
    require_setup(ctx)

    with open_services() as services, user_errors():
        added = services.tasks.add(text, priority=priority, estimate=estimate)
        click.echo(f"Added task: {added.text}")


@task.command(name="list")
@click.pass_context
def task_list(ctx: click.Context) -> None:
    """List tasks, newest first."""
    require_setup(ctx)

    with open_services() as services:
        print_tasks(services.tasks.tasks)


@task.command(name="show")
@click.argument("number", type=int)
@click.pass_context
def task_show(ctx: click.Context, number: int) -> None:
    """Show a task and the pomodoros spent on it."""
    require_setup(ctx)

    with open_services() as services:
        chosen = resolve_task(services, number)
        print_tasks([chosen])
        print_task_stats(services.stats.load_task_stats(chosen.id))


@task.command(name="done")
@click.argument("number", type=int)
@click.pass_context
def task_done(ctx: click.Context, number: int) -> None:
    """Mark a task as completed."""
    require_setup(ctx)

    with open_services() as services:
        chosen = resolve_task(services, number)
        if chosen.completed:
            click.echo(f"Task already completed: {chosen.text}")
            return
        services.tasks.complete(chosen.id)
        click.secho(f"✓ Completed: {chosen.text}", fg="green")


@task.command(name="undo")
@click.argument("number", type=int)
@click.pass_context
def task_undo(ctx: click.Context, number: int) -> None:
    """Mark a completed task as not done."""
    require_setup(ctx)

    with open_services() as services:
        chosen = resolve_task(services, number)
        services.tasks.uncomplete(chosen.id)
        click.echo(f"Reopened: {chosen.text}")


@task.command(name="edit")
@click.argument("number", type=int)
@click.argument("text")
@click.pass_context
def task_edit(ctx: click.Context, number: int, text: str) -> None:
    """Change a task's text."""
    require_setup(ctx)

    with open_services() as services, user_errors():
        chosen = resolve_task(services, number)
        services.tasks.update_text(chosen.id, text)
        click.echo(f"Updated task {number}")


@task.command(name="priority")
@click.argument("number", type=int)
@click.argument("priority", type=click.IntRange(0, 3))
@click.pass_context
def task_priority(ctx: click.Context, number: int, priority: int) -> None:
    """Set a task's priority (0-3)."""
    require_setup(ctx)

    with open_services() as services, user_errors():
        chosen = resolve_task(services, number)
        services.tasks.update_priority(chosen.id, priority)
        click.echo(f"Priority of task {number} set to {priority}")


@task.command(name="estimate")
@click.argument("number", type=int)
@click.argument("estimate", type=click.IntRange(min=0))
@click.pass_context
def task_estimate(ctx: click.Context, number: int, estimate: int) -> None:
    """Set how many pomodoros a task should take."""
    require_setup(ctx)

    with open_services() as services, user_errors():
        chosen = resolve_task(services, number)
        services.tasks.update_estimate(chosen.id, estimate)
        click.echo(f"Estimate of task {number} set to {estimate}")


@task.command(name="rm")
@click.argument("number", type=int)
@click.option("--yes", "-y", is_flag=True, help="Don't ask for confirmation")
@click.pass_context
def task_rm(ctx: click.Context, number: int, yes: bool) -> None:
    """Delete a task."""
    require_setup(ctx)

    with open_services() as services:
        chosen = resolve_task(services, number)
        if not yes and not click.confirm(f"Delete '{chosen.text}'?", default=False):
            return
        services.tasks.remove(chosen.id)
        click.echo(f"Deleted: {chosen.text}")


# ============================================================================
# Statistics
# ============================================================================

@main.command()
@click.pass_context
def stats(ctx: click.Context) -> None:
    """Show today's pomodoros, focus time and sessions."""
    require_setup(ctx)

    with open_services() as services:
        daily = services.stats.load_today()
        history = services.history.load_today()
        print_daily_stats(daily, history)


@main.command()
@click.pass_context
def week(ctx: click.Context) -> None:
    """Show pomodoros per day for the last week."""
    require_setup(ctx)

    with open_services() as services:
        print_week(services.stats.weekly_trend())


@main.command()
@click.option("--days", "-d", type=click.IntRange(min=1), default=365, show_default=True,
              help="Number of days to show")
@click.pass_context
def heatmap(ctx: click.Context, days: int) -> None:
    """Show a focus heatmap."""
    require_setup(ctx)

    with open_services() as services:
        print_heatmap(services.stats.load_heatmap(days), days, services.stats.clock.today())


@main.command()
@click.option("--output", "-o", type=click.Path(dir_okay=False, writable=True), help="Write to a file")
@click.pass_context
def export(ctx: click.Context, output: Optional[str]) -> None:
    """Export all data as JSON."""
    require_setup(ctx)

    with open_services() as services:
        data = services.exporter.export()

    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(data)
        click.echo(f"Exported to {output}")
    else:
        click.echo(data)


if __name__ == "__main__":
    main()

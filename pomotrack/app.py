"""Wiring of the Pomotrack services."""

import logging
from dataclasses import dataclass

from .clock import SystemClock
from .config import Config, ConfigManager
from .effects import EffectQueue
from .export import DataExporter
from .gateway import PersistenceGateway
from .history import SessionHistory
from .local_store import LocalStore
from .notify import build_cue_sink
from .remote import open_remote
from .stats import Statistics
from .tasks import TaskLedger
from .timer import PomodoroTimer

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Every service of one running instance."""
    config: Config
    remote: object
    local: LocalStore
    effects: EffectQueue
    tasks: TaskLedger
    history: SessionHistory
    stats: Statistics
    timer: PomodoroTimer
    exporter: DataExporter

    def close(self) -> None:
        """Run pending side effects and release the remote store."""
        self.effects.drain()
        self.remote.close()


def build_services(cm: ConfigManager, clock=None, remote=None, cues=None) -> Services:
    """Build the services for a config directory.

    Args:
        cm: Config manager pointing at the data directory
        clock: Time source; defaults to the system clock
        remote: Remote store to use instead of opening the configured one
        cues: Cue sink to use instead of the configured one

    Returns:
        Wired services, tasks not yet loaded
    """
    cm.ensure_dirs()
    config = cm.load()
    clock = clock or SystemClock()
    if remote is None:
        remote = open_remote(cm.db_file(config), config.storage.remote_enabled, clock)
    if cues is None:
        cues = build_cue_sink(config)

    local = LocalStore(cm.local_dir)
    gateway = PersistenceGateway()
    effects = EffectQueue()

    history = SessionHistory(remote, local, gateway, effects, clock)
    stats = Statistics(remote, gateway, history, clock)
    tasks = TaskLedger(remote, local, gateway, effects, cues, clock, stats)
    timer = PomodoroTimer(config.timer, remote, tasks, history, stats, effects, cues, clock)
    exporter = DataExporter(remote, local, gateway, clock)

    logger.debug(f"Services built for {cm.config_dir}")
    return Services(
        config=config,
        remote=remote,
        local=local,
        effects=effects,
        tasks=tasks,
        history=history,
        stats=stats,
        timer=timer,
        exporter=exporter,
    )

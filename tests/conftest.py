"""Pytest fixtures: fake clock, isolated data directory, wired services."""

from datetime import datetime, timedelta

import pytest

from pomotrack.app import build_services
from pomotrack.config import Config, ConfigManager
from pomotrack.effects import EffectQueue
from pomotrack.gateway import PersistenceGateway
from pomotrack.local_store import LocalStore
from pomotrack.remote import RemoteError, SqliteRemote


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start=datetime(2026, 3, 2, 9, 0, 0)):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def today(self) -> str:
        return self.current.date().isoformat()

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class FailingRemote:
    """Remote store that is always down; records which calls were tried."""

    def __init__(self):
        self.calls = []

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)

        def fail(*args, **kwargs):
            self.calls.append(name)
            raise RemoteError(f"{name}: connection refused")

        return fail

    def close(self) -> None:
        pass


class RecordingCues:
    """Cue sink that remembers what it was asked to play."""

    def __init__(self):
        self.played = []

    def play(self, name: str) -> None:
        self.played.append(name)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cues():
    return RecordingCues()


@pytest.fixture
def local(tmp_path):
    return LocalStore(tmp_path / "local")


@pytest.fixture
def effects():
    return EffectQueue()


@pytest.fixture
def gateway():
    return PersistenceGateway()


@pytest.fixture
def sqlite_remote(tmp_path, clock):
    return SqliteRemote(tmp_path / "pomotrack.db", clock=clock)


@pytest.fixture
def failing_remote():
    return FailingRemote()


@pytest.fixture
def config_manager(tmp_path):
    cm = ConfigManager(tmp_path / "home")
    config = Config()
    config.sound.bell = False
    cm.save(config)
    return cm


@pytest.fixture
def make_services(config_manager, clock, cues):
    """Build services against a given remote (the SQLite one by default)."""

    def make(remote=None, **timer_settings):
        if timer_settings:
            config = config_manager.load()
            for key, value in timer_settings.items():
                setattr(config.timer, key, value)
            config_manager.save(config)
        return build_services(config_manager, clock=clock, remote=remote, cues=cues)

    return make


@pytest.fixture
def services(make_services):
    return make_services()


@pytest.fixture
def offline_services(make_services, failing_remote):
    return make_services(remote=failing_remote)

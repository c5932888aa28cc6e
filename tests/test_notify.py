"""Tests for cue sinks."""

import logging

import pytest
import telegram

from pomotrack.config import Config, TelegramConfig
from pomotrack.notify import (
    CUE_BREAK_COMPLETE,
    CUE_COMPLETE,
    CUE_START,
    CUE_TASK_ADD,
    BellCueSink,
    CompositeCueSink,
    NullCueSink,
    TelegramCueSink,
    build_cue_sink,
)


class FakeBot:
    """Stands in for telegram.Bot; remembers what it was asked to send."""

    sent = []

    def __init__(self, token):
        self.token = token

    async def send_message(self, chat_id, text, parse_mode=None):
        FakeBot.sent.append((chat_id, text))


class BrokenBot(FakeBot):
    async def send_message(self, chat_id, text, parse_mode=None):
        raise RuntimeError("network unreachable")


class ExplodingSink:
    def play(self, name):
        raise RuntimeError("speaker on fire")


@pytest.fixture
def telegram_config():
    return TelegramConfig(bot_token="123:abc", chat_id="42", enabled=True)


@pytest.fixture(autouse=True)
def clear_sent():
    FakeBot.sent = []


class TestBellCueSink:
    def test_rings_on_session_boundaries(self, capsys):
        sink = BellCueSink()
        sink.play(CUE_COMPLETE)
        sink.play(CUE_BREAK_COMPLETE)
        assert capsys.readouterr().out == "\a\a"

    def test_silent_on_other_cues(self, capsys):
        sink = BellCueSink()
        sink.play(CUE_START)
        sink.play(CUE_TASK_ADD)
        assert capsys.readouterr().out == ""


class TestCompositeCueSink:
    def test_keeps_going_past_failing_sink(self, caplog):
        first, last = RecordingSink(), RecordingSink()
        sink = CompositeCueSink([first, ExplodingSink(), last])

        with caplog.at_level(logging.ERROR):
            sink.play(CUE_START)

        assert first.played == [CUE_START]
        assert last.played == [CUE_START]
        assert "speaker on fire" in caplog.text


class RecordingSink:
    def __init__(self):
        self.played = []

    def play(self, name):
        self.played.append(name)


class TestTelegramCueSink:
    def test_sends_boundary_cues(self, monkeypatch, telegram_config):
        monkeypatch.setattr(telegram, "Bot", FakeBot)
        sink = TelegramCueSink(telegram_config)

        sink.play(CUE_COMPLETE)
        sink.play(CUE_TASK_ADD)

        assert len(FakeBot.sent) == 1
        chat_id, text = FakeBot.sent[0]
        assert chat_id == "42"
        assert "Pomodoro Complete" in text

    def test_disabled_sends_nothing(self, monkeypatch, telegram_config):
        monkeypatch.setattr(telegram, "Bot", FakeBot)
        telegram_config.enabled = False
        sink = TelegramCueSink(telegram_config)

        assert not sink.enabled
        assert sink.send_sync("hello") is False
        sink.play(CUE_COMPLETE)
        assert FakeBot.sent == []

    def test_missing_chat_id_counts_as_disabled(self, telegram_config):
        telegram_config.chat_id = ""
        assert not TelegramCueSink(telegram_config).enabled

    def test_send_failure_is_logged_not_raised(self, monkeypatch, telegram_config, caplog):
        monkeypatch.setattr(telegram, "Bot", BrokenBot)
        sink = TelegramCueSink(telegram_config)

        with caplog.at_level(logging.ERROR):
            assert sink.send_sync("hello") is False
            sink.play(CUE_START)

        assert "network unreachable" in caplog.text


class TestBuildCueSink:
    def test_nothing_enabled(self):
        config = Config()
        config.sound.bell = False
        assert isinstance(build_cue_sink(config), NullCueSink)

    def test_bell_only(self):
        sink = build_cue_sink(Config())
        assert isinstance(sink, CompositeCueSink)
        assert [type(s) for s in sink.sinks] == [BellCueSink]

    def test_bell_and_telegram(self, telegram_config):
        config = Config(telegram=telegram_config)
        sink = build_cue_sink(config)
        assert [type(s) for s in sink.sinks] == [BellCueSink, TelegramCueSink]

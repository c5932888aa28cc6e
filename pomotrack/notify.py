"""Cue sinks: where Pomotrack announces timer and task events."""

import asyncio
import logging

import click

from .config import Config, TelegramConfig

logger = logging.getLogger(__name__)

CUE_START = "timer-start"
CUE_COMPLETE = "timer-complete"
CUE_STOP = "timer-stop"
CUE_DELETE = "task-delete-timer-reset"
CUE_TASK_ADD = "task-add"
CUE_BREAK_START = "5min-break-start"
CUE_BREAK_COMPLETE = "5min-break-complete"


class NullCueSink:
    """Ignores every cue."""

    def play(self, name: str) -> None:
        pass


class BellCueSink:
    """Rings the terminal bell at session boundaries."""

    RINGS_ON = {CUE_COMPLETE, CUE_BREAK_COMPLETE}

    def play(self, name: str) -> None:
        if name in self.RINGS_ON:
            click.echo("\a", nl=False)


class CompositeCueSink:
    """Forwards each cue to several sinks; one failing sink doesn't stop the rest."""

    def __init__(self, sinks: list):
        self.sinks = list(sinks)

    def play(self, name: str) -> None:
        for sink in self.sinks:
            try:
                sink.play(name)
            except Exception as e:
                logger.error(f"Cue sink {type(sink).__name__} failed on {name}: {e}")


class TelegramCueSink:
    """Sends session-boundary cues to a Telegram chat."""

    MESSAGES = {
        CUE_START: "🍅 <b>Focus Time</b>\n\nPomodoro started.",
        CUE_COMPLETE: "✅ <b>Pomodoro Complete!</b>\n\nGreat work! Time for a break.",
        CUE_STOP: "⏹ <b>Timer Stopped</b>\n\nThis session won't count.",
        CUE_BREAK_START: "🧘 <b>Break</b>\n\nStep away from the screen. Stretch. Breathe.",
        CUE_BREAK_COMPLETE: "⏰ <b>Break Over</b>\n\nReady for the next pomodoro?",
    }

    def __init__(self, config: TelegramConfig):
        """Initialize notifier with config.

        Args:
            config: Telegram configuration
        """
        self.config = config
        self._bot = None

    @property
    def enabled(self) -> bool:
        """Check if Telegram notifications are enabled and configured."""
        return (
            self.config.enabled
            and bool(self.config.bot_token)
            and bool(self.config.chat_id)
        )

    async def _get_bot(self):
        """Get or create bot instance."""
        if self._bot is None:
            try:
                from telegram import Bot
                self._bot = Bot(token=self.config.bot_token)
            except Exception as e:
                logger.error(f"Failed to create bot: {e}")
                return None
        return self._bot

    async def send_message(self, text: str) -> bool:
        """Send a message to the configured chat.

        Args:
            text: Message text to send

        Returns:
            True if sent successfully, False otherwise
        """
        if not self.enabled:
            return False

        try:
            bot = await self._get_bot()
            if bot is None:
                return False

            await bot.send_message(
                chat_id=self.config.chat_id,
                text=text,
                parse_mode="HTML",
            )
            return True
        except Exception as e:
            logger.error(f"Failed to send message: {e}")
            return False

    def send_sync(self, text: str) -> bool:
        """Synchronous wrapper for send_message."""
        if not self.enabled:
            return False

        try:
            return asyncio.run(self.send_message(text))
        except Exception as e:
            logger.error(f"Failed to send message synchronously: {e}")
            return False

    def play(self, name: str) -> None:
        message = self.MESSAGES.get(name)
        if message:
            self.send_sync(message)


async def test_telegram_connection(config: TelegramConfig) -> tuple[bool, str]:
    """Test Telegram bot connection and send test message.

    Args:
        config: Telegram configuration to test

    Returns:
        Tuple of (success, message)
    """
    if not config.bot_token:
        return False, "Bot token not configured"

    if not config.chat_id:
        return False, "Chat ID not configured"

    try:
        from telegram import Bot
        bot = Bot(token=config.bot_token)

        me = await bot.get_me()

        await bot.send_message(
            chat_id=config.chat_id,
            text="🔔 <b>Pomotrack</b>\n\nConnection test successful!",
            parse_mode="HTML",
        )

        return True, f"Connected as @{me.username}"

    except Exception as e:
        return False, f"Connection failed: {e}"


def test_connection_sync(config: TelegramConfig) -> tuple[bool, str]:
    """Synchronous wrapper for test_telegram_connection."""
    return asyncio.run(test_telegram_connection(config))


def build_cue_sink(config: Config):
    """Cue sink for a configuration: terminal bell and/or Telegram."""
    sinks = []
    if config.sound.bell:
        sinks.append(BellCueSink())
    if config.telegram.enabled:
        sinks.append(TelegramCueSink(config.telegram))
    if not sinks:
        return NullCueSink()
    return CompositeCueSink(sinks)

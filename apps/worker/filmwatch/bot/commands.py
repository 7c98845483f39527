"""
Telegram bot command handling (/start, /help, /latest, /status)
"""
from typing import Any, Dict, Optional

from ..exceptions import PublishError, RunInProgressError
from ..logging_config import setup_logging
from ..pipeline import FilmPipeline
from ..publisher import TelegramPublisher
from ..publisher.formatting import (
    format_error_message,
    format_info_message,
    format_success_message,
)

logger = setup_logging(__name__)

WELCOME_TEXT = (
    "👋 <b>Welcome!</b>\n\n"
    "New films are posted here automatically as soon as they show up.\n"
    "Send /help to see what else I can do."
)

HELP_TEXT = (
    "<b>Available commands</b>\n\n"
    "/latest - Check for new films right now\n"
    "/status - Show tracking and last run details\n"
    "/help - Show this message"
)


def parse_command(update: Dict[str, Any]) -> Optional[tuple]:
    """Return (command, chat_id) for a command message, else None"""
    message = update.get("message") or update.get("channel_post") or {}
    text = (message.get("text") or "").strip()
    chat_id = (message.get("chat") or {}).get("id")
    if not text.startswith("/") or chat_id is None:
        return None
    # "/latest@SomeBot arg" -> "latest"
    command = text.split()[0][1:].split("@")[0].lower()
    return command, str(chat_id)


class CommandHandler:
    """Answers bot commands in the chat they came from"""

    def __init__(self, pipeline: FilmPipeline, replier: TelegramPublisher):
        self.pipeline = pipeline
        self.replier = replier
        self.commands = {
            "start": self.start,
            "help": self.help,
            "latest": self.latest,
            "status": self.status,
        }

    async def handle_update(self, update: Dict[str, Any]) -> Optional[str]:
        """Dispatch one webhook update; returns the command handled, if any"""
        parsed = parse_command(update)
        if parsed is None:
            return None
        command, chat_id = parsed

        handler = self.commands.get(command)
        if handler is None:
            logger.debug(f"Ignoring unknown command /{command}")
            return None

        try:
            await handler(chat_id)
        except PublishError as e:
            logger.error(f"Could not reply to /{command}: {e}")
        return command

    async def start(self, chat_id: str):
        await self.replier.send_text(WELCOME_TEXT, chat_id=chat_id)

    async def help(self, chat_id: str):
        await self.replier.send_text(HELP_TEXT, chat_id=chat_id)

    async def latest(self, chat_id: str):
        logger.info("Manual check triggered via /latest command")
        await self.replier.send_text("🔍 Checking for new films...", chat_id=chat_id)

        try:
            result = await self.pipeline.run("manual")
        except RunInProgressError:
            await self.replier.send_text(
                format_info_message("A check is already running, results will be posted shortly."),
                chat_id=chat_id,
            )
            return
        except Exception as e:
            logger.error(f"Error in /latest command: {e}", exc_info=True)
            await self.replier.send_text(
                format_error_message("An error occurred while checking for updates."),
                chat_id=chat_id,
            )
            return

        if not result.success:
            reply = format_error_message(f"Error checking for updates: {result.error or 'Unknown error'}")
        elif result.counters.published:
            n = result.counters.published
            reply = format_success_message(f"Found and sent {n} new film{'' if n == 1 else 's'}!")
        else:
            reply = format_info_message("No new films found. All caught up!")
        await self.replier.send_text(reply, chat_id=chat_id)

    async def status(self, chat_id: str):
        stats = self.pipeline.store.stats()
        lines = [
            "<b>Status</b>\n",
            f"Tracked films: {stats['total_films']} / {stats['max_films']}",
            f"Run in progress: {'yes' if self.pipeline.is_running else 'no'}",
        ]
        last = self.pipeline.last_result
        if last is not None:
            lines.append(
                f"Last run: {last.status} at {last.started_at:%Y-%m-%d %H:%M} UTC "
                f"({last.counters.published} sent, {last.counters.failed} failed)"
            )
        await self.replier.send_text("\n".join(lines), chat_id=chat_id)

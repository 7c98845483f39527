"""
Telegram Bot API publisher
"""
import asyncio
from typing import Any, Dict, Optional, Protocol

import aiohttp

from ..config import settings
from ..exceptions import ConfigurationError, PublishError
from ..logging_config import setup_logging
from ..models import FilmRecord
from .formatting import build_full_caption, format_download_links, format_film_caption

logger = setup_logging(__name__)


class Publisher(Protocol):
    """Downstream channel a film is announced on; raises PublishError on failure"""

    async def publish(self, film: FilmRecord) -> None:
        ...


class TelegramPublisher:
    """Sends film announcements to one Telegram chat"""

    def __init__(
        self,
        bot_token: Optional[str] = None,
        chat_id: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: float = 30.0,
    ):
        self.bot_token = bot_token or settings.TELEGRAM_BOT_TOKEN
        self.chat_id = chat_id or settings.TELEGRAM_CHAT_ID
        self.api_url = (api_url or settings.TELEGRAM_API_URL).rstrip("/")
        self.timeout = timeout
        self.session: Optional[aiohttp.ClientSession] = None

        if not self.bot_token:
            raise ConfigurationError("Missing required setting: TELEGRAM_BOT_TOKEN")
        if not self.chat_id:
            raise ConfigurationError("Missing required setting: TELEGRAM_CHAT_ID")

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def connect(self):
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )

    async def close(self):
        if self.session:
            await self.session.close()
            self.session = None

    async def _call(self, method: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        await self.connect()
        url = f"{self.api_url}/bot{self.bot_token}/{method}"
        try:
            async with self.session.post(url, json=payload) as response:
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise PublishError(f"Telegram {method} failed: {e}") from e

        if not isinstance(data, dict) or not data.get("ok"):
            description = data.get("description") if isinstance(data, dict) else data
            raise PublishError(f"Telegram {method} rejected: {description}")
        return data.get("result") or {}

    async def send_text(self, text: str, chat_id: Optional[str] = None) -> Dict[str, Any]:
        return await self._call("sendMessage", {
            "chat_id": chat_id or self.chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        })

    async def send_photo(self, photo_url: str, caption: str, chat_id: Optional[str] = None) -> Dict[str, Any]:
        return await self._call("sendPhoto", {
            "chat_id": chat_id or self.chat_id,
            "photo": photo_url,
            "caption": caption,
            "parse_mode": "HTML",
        })

    async def publish(self, film: FilmRecord) -> None:
        """
        Announce one film

        The announcement counts as published once its main message is accepted;
        a failed follow-up with the full link list is only logged.
        """
        caption = format_film_caption(film)
        truncated = caption != build_full_caption(film)

        if film.poster_url:
            try:
                await self.send_photo(film.poster_url, caption)
            except PublishError as e:
                logger.warning(
                    f"Poster rejected for {film.title}, sending text only: {e}",
                    extra={"film_id": film.id},
                )
                await self.send_text(caption)
        else:
            await self.send_text(caption)

        if truncated:
            for message in format_download_links(film):
                try:
                    await self.send_text(message)
                except PublishError as e:
                    logger.warning(
                        f"Download links follow-up failed for {film.title}: {e}",
                        extra={"film_id": film.id},
                    )
                    break

        logger.info(f"Published {film.display_title}", extra={"film_id": film.id})

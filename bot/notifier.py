"""Telegram notification to the parent when a child's daily limit is reached."""

import logging
from typing import Optional

import telegramify_markdown
from telegram import Bot

from utils import get_today_str

logger = logging.getLogger(__name__)

MD2 = "MarkdownV2"


def _md(text: str) -> str:
    """Convert markdown to Telegram MarkdownV2 format."""
    try:
        return telegramify_markdown.markdownify(text)
    except Exception:
        return text


class LimitNotifier:
    """Sends at most one limit-reached message per child per day."""

    def __init__(self, bot_token: str = "", admin_chat_id: str = "",
                 tz_name: str = "", bot: Optional[Bot] = None):
        self.admin_chat_id = admin_chat_id
        self._tz = tz_name
        self._bot = bot or (Bot(token=bot_token) if bot_token and admin_chat_id else None)
        self._initialized = bot is not None
        self._notified: dict[str, str] = {}

    @property
    def enabled(self) -> bool:
        return self._bot is not None and bool(self.admin_chat_id)

    async def notify_time_limit_reached(self, profile_id: str, child_name: str,
                                        used_seconds: int, limit_minutes: int) -> bool:
        """Returns True if a message was sent."""
        if not self.enabled:
            return False
        today = get_today_str(self._tz)
        if self._notified.get(profile_id) == today:
            return False
        self._notified[profile_id] = today

        who = f": {child_name}" if child_name else ""
        text = _md(
            f"**Daily watch limit reached{who}**\n\n"
            f"**Used:** {used_seconds // 60} min / {limit_minutes} min limit\n"
            "Videos are locked until tomorrow."
        )
        try:
            if not self._initialized:
                await self._bot.initialize()
                self._initialized = True
            await self._bot.send_message(chat_id=self.admin_chat_id, text=text, parse_mode=MD2)
        except Exception as e:
            logger.error(f"Failed to send time limit notification: {e}")
            return False
        return True

    async def aclose(self) -> None:
        if self._bot is not None and self._initialized:
            try:
                await self._bot.shutdown()
            except Exception as e:
                logger.debug("Telegram bot shutdown failed: %s", e)

"""Tests for bot/notifier.py: parent alert when a child's daily limit is reached."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from bot.notifier import MD2, LimitNotifier


@pytest.fixture
def bot():
    return AsyncMock()


@pytest.fixture
def notifier(bot, monkeypatch):
    monkeypatch.setattr("bot.notifier.get_today_str", lambda tz="": "2025-01-15")
    return LimitNotifier(admin_chat_id="12345", bot=bot)


def test_disabled_without_token():
    n = LimitNotifier()
    assert n.enabled is False
    assert asyncio.run(n.notify_time_limit_reached("kid", "Kid", 3600, 60)) is False


def test_disabled_without_chat_id(bot):
    assert LimitNotifier(bot=bot).enabled is False


def test_sends_markdown_message(notifier, bot):
    assert asyncio.run(notifier.notify_time_limit_reached("kid", "Kid", 3600, 60)) is True
    bot.send_message.assert_awaited_once()
    kwargs = bot.send_message.call_args.kwargs
    assert kwargs["chat_id"] == "12345"
    assert kwargs["parse_mode"] == MD2
    assert "Kid" in kwargs["text"]
    assert "60 min" in kwargs["text"]


def test_once_per_child_per_day(notifier, bot):
    async def scenario():
        first = await notifier.notify_time_limit_reached("kid", "Kid", 3600, 60)
        again = await notifier.notify_time_limit_reached("kid", "Kid", 3601, 60)
        sister = await notifier.notify_time_limit_reached("sis", "Sis", 3600, 60)
        return first, again, sister

    assert asyncio.run(scenario()) == (True, False, True)
    assert bot.send_message.await_count == 2


def test_notifies_again_next_day(notifier, bot, monkeypatch):
    asyncio.run(notifier.notify_time_limit_reached("kid", "Kid", 3600, 60))
    monkeypatch.setattr("bot.notifier.get_today_str", lambda tz="": "2025-01-16")
    assert asyncio.run(notifier.notify_time_limit_reached("kid", "Kid", 3600, 60)) is True


def test_send_failure_returns_false(notifier, bot):
    bot.send_message.side_effect = RuntimeError("network down")
    assert asyncio.run(notifier.notify_time_limit_reached("kid", "Kid", 3600, 60)) is False


def test_aclose_shuts_down_bot(notifier, bot):
    asyncio.run(notifier.aclose())
    bot.shutdown.assert_awaited_once()

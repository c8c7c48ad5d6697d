"""Shared test fixtures for the homelab bot."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from homelab_bot.commands import Responder
from homelab_bot.config import BotConfig


def make_config(**overrides) -> BotConfig:
    """Create a BotConfig with test defaults.

    Usage::

        config = make_config(allowed_channel_id=100, allowed_user_id=200)
    """
    values = {"token": "test-token"}
    values.update(overrides)
    return BotConfig(**values)


class RecordingResponder(Responder):
    """Collects replies instead of talking to Discord."""

    def __init__(self, events: list | None = None) -> None:
        self.acknowledged = False
        self.sent: list[str] = []
        self.events = events if events is not None else []

    async def acknowledge(self) -> None:
        self.acknowledged = True

    async def send(self, text: str) -> None:
        self.sent.append(text)
        self.events.append(("reply", text))


@pytest.fixture
def responder() -> RecordingResponder:
    return RecordingResponder()


@pytest.fixture
def docker_client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def delivery() -> MagicMock:
    fake = MagicMock()
    fake.send = AsyncMock(return_value=True)
    return fake

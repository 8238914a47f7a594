from __future__ import annotations

import asyncio
import itertools
from typing import Any

import pytest
import pytest_asyncio

from bot.config import BotConfig
from db.repository import Repository
from db.schema_guard import ensure_required_schema
from db.session import SessionManager


_message_ids = itertools.count(9_000)


class NotFound(Exception):
    pass


class FakeMessage:
    def __init__(self, channel: "FakeChannel", **kwargs: Any) -> None:
        self.id = next(_message_ids)
        self.channel = channel
        self.kwargs = kwargs
        self.deleted = False

    async def delete(self) -> None:
        if self.channel.fail_delete:
            raise NotFound("message already gone")
        self.deleted = True
        self.channel.messages.pop(self.id, None)


class FakeChannel:
    def __init__(self, channel_id: int = 500) -> None:
        self.id = channel_id
        self.messages: dict[int, FakeMessage] = {}
        self.sent: list[FakeMessage] = []
        self.fail_send = False
        self.fail_delete = False

    async def send(self, **kwargs: Any) -> FakeMessage:
        if self.fail_send:
            raise RuntimeError("send failed")
        message = FakeMessage(self, **kwargs)
        self.messages[message.id] = message
        self.sent.append(message)
        return message

    async def fetch_message(self, message_id: int) -> FakeMessage:
        message = self.messages.get(int(message_id))
        if message is None:
            raise NotFound(f"unknown message {message_id}")
        return message

    def upload(self) -> FakeMessage:
        """A user message sitting in the channel, e.g. an image upload."""
        message = FakeMessage(self)
        self.messages[message.id] = message
        return message


class FakeUser:
    def __init__(self, user_id: int, display_name: str = "Mechaniker") -> None:
        self.id = user_id
        self.display_name = display_name

    def __str__(self) -> str:
        return self.display_name


class RecordingPresenter:
    def __init__(self) -> None:
        self.choice_prompted = asyncio.Event()
        self.upload_prompted = asyncio.Event()
        self.documents: list[Any] = []
        self.notices: list[str] = []

    async def prompt_image_choice(self, flow) -> None:
        self.choice_prompted.set()

    async def prompt_upload(self, flow) -> None:
        self.upload_prompted.set()

    async def send_document(self, flow, record) -> None:
        self.documents.append(record)

    async def notify(self, flow, content: str) -> None:
        self.notices.append(content)


def make_config(tmp_path, **overrides: Any) -> BotConfig:
    values: dict[str, Any] = {
        "discord_token": "token",
        "database_url": f"sqlite+aiosqlite:///{(tmp_path / 'bot.db').as_posix()}",
        "db_echo": False,
        "enable_message_content_intent": True,
        "guild_id": 0,
        "absence_channel_id": 100,
        "sanction_channel_id": 200,
        "tuningchip_channel_id": 300,
        "stance_channel_id": 301,
        "xenon_channel_id": 302,
        "logo_path": (tmp_path / "missing_logo.png").as_posix(),
        "submission_window_seconds": 0.2,
        "lock_file": (tmp_path / "bot.lock").as_posix(),
        "discord_log_level": "DEBUG",
    }
    values.update(overrides)
    return BotConfig(**values)


@pytest.fixture
def config(tmp_path) -> BotConfig:
    return make_config(tmp_path)


@pytest_asyncio.fixture
async def repo(config: BotConfig):
    manager = SessionManager(config)
    async with manager.engine.begin() as connection:
        await ensure_required_schema(connection)
    yield Repository(manager)
    await manager.dispose()


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def presenter() -> RecordingPresenter:
    return RecordingPresenter()

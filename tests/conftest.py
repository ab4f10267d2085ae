"""
Pytest configuration and fixtures for Bulwark tests.
"""

import os
import sys
import tempfile
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock

# Keep test runs from writing into the repository's logs directory
os.environ.setdefault("BULWARK_LOG_DIR", tempfile.mkdtemp(prefix="bulwark-logs-"))

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

import pytest

from bulwark.app_context import AppContext
from bulwark.configuration.app_configuration import AppConfig
from bulwark.database.document_store import DocumentStore

START_MS = 1_700_000_000_000

CONFIG_TEXT = """
bot:
  prefix: "?!"
  bot_masters: ["900"]
  usage_limits:
    commands: {}
database:
  path: "./unused.db"
maintenance:
  clean_interval_seconds: 60
  settings_refresh_interval_seconds: 300
sessions:
  default_expiration_seconds: 60
"""


class FakeClock:
    """Epoch-milliseconds clock that only moves when told to."""

    def __init__(self, now: int = START_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, milliseconds: int) -> int:
        self.now += milliseconds
        return self.now


def make_message(
    content="",
    *,
    author_id=1,
    guild_id=10,
    channel_id=100,
    message_id=5000,
    admin=False,
    role_ids=(),
    bot=False,
    dm=False,
):
    """Build a discord-like message. ``dm=True`` gives a plain user and no guild."""
    if dm:
        author = SimpleNamespace(id=author_id, bot=bot)
        guild = None
    else:
        author = SimpleNamespace(
            id=author_id,
            bot=bot,
            roles=[SimpleNamespace(id=role_id) for role_id in role_ids],
            guild_permissions=SimpleNamespace(administrator=admin),
        )
        guild = SimpleNamespace(id=guild_id, name="Test Guild")

    return SimpleNamespace(
        id=message_id,
        content=content,
        author=author,
        guild=guild,
        channel=SimpleNamespace(id=channel_id, send=AsyncMock()),
        reply=AsyncMock(),
        delete=AsyncMock(),
    )


def sent_texts(message):
    """Positional text arguments of every ``channel.send`` call."""
    return [call.args[0] for call in message.channel.send.await_args_list if call.args]


@pytest.fixture
def message_factory():
    return make_message


@pytest.fixture
def sent():
    return sent_texts


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "app_config.yml"
    path.write_text(CONFIG_TEXT, encoding="utf-8")
    return path


@pytest.fixture
def app_config(config_file):
    return AppConfig(config_file)


@pytest.fixture
async def store(tmp_path):
    document_store = DocumentStore()
    await document_store.initialize(tmp_path / "store.db")
    yield document_store
    await document_store.close()


@pytest.fixture
async def context(app_config, clock, tmp_path):
    app_context = AppContext(app_config, clock=clock)
    await app_context.initialize(tmp_path / "bulwark.db")
    yield app_context
    await app_context.shutdown()

import logging

import pytest

from turnbot.bot.handler import TurnContext, TurnHandler
from turnbot.bot.state import BotAccessors, ConversationState
from turnbot.errors import StorageUnavailable
from turnbot.schemas import Activity, ActivityTypes
from turnbot.storage import MemoryStorage, Storage


class FailingStorage(Storage):
    """Storage whose reads and/or writes always fail."""

    def __init__(self, fail_read: bool = True, fail_write: bool = True):
        self.fail_read = fail_read
        self.fail_write = fail_write
        self.inner = MemoryStorage()

    async def read(self, key):
        if self.fail_read:
            raise StorageUnavailable(details={"op": "read", "key": key})
        return await self.inner.read(key)

    async def write(self, key, data):
        if self.fail_write:
            raise StorageUnavailable(details={"op": "write", "key": key})
        await self.inner.write(key, data)

    async def delete(self, key):
        await self.inner.delete(key)


def make_activity(text=None, type=ActivityTypes.MESSAGE, label=None, conversation_id="conv-1"):
    return Activity(type=type, text=text, label=label, conversation={"id": conversation_id})


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def conversation_state(storage):
    return ConversationState(storage)


@pytest.fixture
def accessors(conversation_state):
    return BotAccessors(conversation_state)


@pytest.fixture
def handler(accessors):
    return TurnHandler(accessors, logging.getLogger("tests.bot"))


@pytest.fixture
def run_turn(handler):
    """Run one turn and return the replies it sent."""

    async def _run(text=None, **kwargs):
        ctx = TurnContext(make_activity(text, **kwargs))
        await handler.on_turn(ctx)
        return ctx.responses

    return _run

# turnbot/bot/state.py
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional, Type

from pydantic import BaseModel, Field, ValidationError

from ..errors import ConfigurationError, StateError
from ..storage import Storage

logger = logging.getLogger(__name__)

COUNTER_STATE_NAME = "CounterState"


class CounterState(BaseModel):
    # Tracked but not used for any reply decision yet.
    turn_count: int = Field(default=0, ge=0)


def _dump_value(v: Any) -> Any:
    if isinstance(v, BaseModel):
        return v.model_dump()
    return v


class ConversationState:
    """Property bags per conversation, cached between load and save.

    Reads and writes go through the cache; only ``save_changes`` touches
    durable storage. Saving evicts the cache so the next turn reloads.
    """

    def __init__(self, storage: Optional[Storage]):
        if storage is None:
            raise ConfigurationError("ConversationState requires a storage backend")
        self.storage = storage
        self._bags: Dict[str, Dict[str, Any]] = {}

    def create_property(self, name: str, model: Optional[Type[BaseModel]] = None) -> "StatePropertyAccessor":
        return StatePropertyAccessor(self, name, model)

    async def load(self, conversation_id: str) -> Dict[str, Any]:
        cid = (conversation_id or "").strip()
        if not cid:
            raise StateError("Missing conversation id")
        if cid not in self._bags:
            self._bags[cid] = await self.storage.read(cid) or {}
        return self._bags[cid]

    async def save_changes(self, conversation_id: str) -> None:
        cid = (conversation_id or "").strip()
        bag = await self.load(cid)
        data = {k: _dump_value(v) for k, v in bag.items()}
        try:
            await self.storage.write(cid, data)
        finally:
            # a failed write must not leave unsaved changes for the next turn
            self._bags.pop(cid, None)

    def discard(self, conversation_id: str) -> None:
        """Drop unsaved changes; the next load reads durable storage again."""
        self._bags.pop((conversation_id or "").strip(), None)

    async def clear(self, conversation_id: str) -> None:
        self._bags.pop(conversation_id, None)
        await self.storage.delete(conversation_id)


class StatePropertyAccessor:
    """Read/write/commit access to one named property of conversation state."""

    def __init__(self, state: ConversationState, name: str, model: Optional[Type[BaseModel]] = None):
        self.state = state
        self.name = name
        self.model = model

    async def get(self, conversation_id: str, default_factory: Optional[Callable[[], Any]] = None) -> Any:
        """Return the stored value, or associate a fresh default (not persisted)."""
        bag = await self.state.load(conversation_id)

        if self.name in bag:
            v = bag[self.name]
            if self.model is not None and not isinstance(v, self.model):
                try:
                    v = self.parse(v)
                except StateError:
                    self.state.discard(conversation_id)
                    raise
                bag[self.name] = v
            return v

        if default_factory is None:
            return None

        v = default_factory()
        bag[self.name] = v
        return v

    def parse(self, raw: Any) -> Any:
        """Build the property model from its stored form."""
        if self.model is None:
            return raw
        if not isinstance(raw, dict):
            raise StateError(
                f"Stored {self.name} is not an object",
                details={"property": self.name, "type": type(raw).__name__},
            )
        try:
            return self.model.model_validate(raw)
        except (ValidationError, TypeError) as e:
            raise StateError(f"Stored {self.name} is invalid", details={"property": self.name}) from e

    async def set(self, conversation_id: str, value: Any) -> None:
        bag = await self.state.load(conversation_id)
        bag[self.name] = value

    async def save(self, conversation_id: str) -> None:
        await self.state.save_changes(conversation_id)


class BotAccessors:
    """State objects the turn handler works with."""

    def __init__(self, conversation_state: Optional[ConversationState]):
        if conversation_state is None:
            raise ConfigurationError("BotAccessors requires conversation state")
        self.conversation_state = conversation_state
        self.counter_state = conversation_state.create_property(COUNTER_STATE_NAME, CounterState)

# turnbot/bot/handler.py
from __future__ import annotations

import logging
from typing import List, Optional

from ..errors import ConfigurationError
from ..schemas import Activity, ActivityTypes
from . import commands
from .state import BotAccessors, CounterState


class TurnContext:
    """One inbound activity plus the outbound send capability for its turn."""

    def __init__(self, activity: Activity):
        self.activity = activity
        self.responses: List[str] = []

    @property
    def conversation_id(self) -> str:
        return self.activity.conversation.id

    async def send_activity(self, text: str) -> None:
        self.responses.append(text)


class TurnHandler:
    """Single-turn bot: bumps the turn counter and answers fixed keywords.

    A new handler may be built per activity; anything that must outlive the
    turn (storage, conversation state) is passed in through ``accessors``.
    """

    def __init__(self, accessors: Optional[BotAccessors], logger: Optional[logging.Logger]):
        if accessors is None:
            raise ConfigurationError("TurnHandler requires state accessors")
        if logger is None:
            raise ConfigurationError("TurnHandler requires a logger")

        self._accessors = accessors
        self._logger = logger
        self._logger.debug("Turn start.")

    async def on_turn(self, turn_context: TurnContext) -> None:
        activity = turn_context.activity

        if activity.type != ActivityTypes.MESSAGE:
            await turn_context.send_activity(commands.GREETING)
            return

        cid = turn_context.conversation_id
        counter = self._accessors.counter_state

        try:
            state = await counter.get(cid, CounterState)
            state.turn_count += 1
            await counter.set(cid, state)
            await counter.save(cid)
        except BaseException:
            # no half-applied counter may outlive an aborted turn
            self._accessors.conversation_state.discard(cid)
            raise
        self._logger.info(f"Conversation {cid} at turn {state.turn_count}")

        for rule in commands.match(activity.text):
            self._logger.debug(f"Rule {rule.command.value} fired for {cid}")
            await turn_context.send_activity(rule.reply)

            # TODO: send the confirmation once orders are persisted per conversation.
            added = commands.confirm_selection(rule, activity.label)
            if added:
                self._logger.debug(f"Selection {activity.label!r} in {rule.command.value} not added: no cart")

# turnbot/schemas.py
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ActivityTypes:
    MESSAGE = "message"
    CONVERSATION_UPDATE = "conversationUpdate"
    TYPING = "typing"
    EVENT = "event"
    END_OF_CONVERSATION = "endOfConversation"


class ConversationAccount(BaseModel):
    id: str


class ChannelAccount(BaseModel):
    id: str
    name: Optional[str] = None


class Activity(BaseModel):
    """Inbound activity. Accepts camelCase wire names and field names."""

    model_config = ConfigDict(populate_by_name=True)

    type: str  # ActivityTypes value; always sent by channels
    id: Optional[str] = None
    text: Optional[str] = None
    label: Optional[str] = None  # selection id on structured replies
    channel_id: Optional[str] = Field(default=None, alias="channelId")
    from_: Optional[ChannelAccount] = Field(default=None, alias="from")
    conversation: ConversationAccount


class TurnResult(BaseModel):
    conversation_id: str
    replies: List[str] = []


class ConversationStateOut(BaseModel):
    conversation_id: str
    turn_count: int

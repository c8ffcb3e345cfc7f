# turnbot/models.py
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text

from .db import Base


class ConversationRecord(Base):
    __tablename__ = "conversation_states"
    conversation_id = Column(String, primary_key=True)
    state_json = Column(Text, default="{}")  # property bag, keyed by property name
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

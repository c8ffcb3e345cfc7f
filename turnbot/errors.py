# turnbot/errors.py
from __future__ import annotations

from typing import Any, Dict, Optional


class BotError(Exception):
    """Base exception for bot failures."""

    def __init__(self, message: str, code: str = "BOT_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class ConfigurationError(BotError):
    """A required collaborator was not supplied at construction time."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONFIGURATION_ERROR", details=details)


class StateError(BotError):
    """Conversation state could not be loaded or saved."""

    def __init__(self, message: str, code: str = "STATE_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=code, details=details)


class StorageUnavailable(StateError):
    """The durable backend behind conversation state cannot be reached."""

    def __init__(self, message: str = "Conversation storage is unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="STORAGE_UNAVAILABLE", details=details)


class ChannelAuthError(BotError):
    """The calling channel did not present a valid bearer token."""

    def __init__(self, message: str = "Channel is not authorised", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="UNAUTHORIZED", details=details)

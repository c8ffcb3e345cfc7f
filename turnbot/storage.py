# turnbot/storage.py
from __future__ import annotations

import copy
import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .db import Base, make_engine, make_session_factory
from .errors import StorageUnavailable
from .models import ConversationRecord

logger = logging.getLogger(__name__)


class Storage(ABC):
    """Key-value store for conversation property bags.

    Implementations must make read/write/delete atomic per key.
    """

    @abstractmethod
    async def read(self, key: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def write(self, key: str, data: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...


class MemoryStorage(Storage):
    """Process-wide in-memory storage. Contents are lost on restart."""

    def __init__(self) -> None:
        self._data: Dict[str, Dict[str, Any]] = {}

    async def read(self, key: str) -> Optional[Dict[str, Any]]:
        v = self._data.get(key)
        return copy.deepcopy(v) if v is not None else None

    async def write(self, key: str, data: Dict[str, Any]) -> None:
        self._data[key] = copy.deepcopy(data)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)


def _load_bag(raw: str | None) -> Dict[str, Any]:
    try:
        v = json.loads(raw or "{}")
        return v if isinstance(v, dict) else {}
    except Exception:
        logger.warning("Discarding unreadable conversation state")
        return {}


def _dump_bag(data: Dict[str, Any]) -> str:
    return json.dumps(data, ensure_ascii=False)


class SqlStorage(Storage):
    """SQLAlchemy-backed storage; one row per conversation."""

    def __init__(self, engine: Engine | None = None, url: str | None = None) -> None:
        self.engine = engine or make_engine(url)
        self._session_factory = make_session_factory(self.engine)
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            raise StorageUnavailable(
                "Could not initialise conversation storage",
                details={"url": str(self.engine.url)},
            ) from e

    def _read(self, key: str) -> Optional[Dict[str, Any]]:
        with self._session_factory() as db:
            row = db.get(ConversationRecord, key)
            if row is None:
                return None
            return _load_bag(row.state_json)

    def _write(self, key: str, data: Dict[str, Any]) -> None:
        with self._session_factory() as db, db.begin():
            row = db.get(ConversationRecord, key)
            if row is None:
                row = ConversationRecord(conversation_id=key)
                db.add(row)
            row.state_json = _dump_bag(data)
            row.updated_at = datetime.now(timezone.utc)

    def _delete(self, key: str) -> None:
        with self._session_factory() as db, db.begin():
            row = db.get(ConversationRecord, key)
            if row is not None:
                db.delete(row)

    async def _call(self, op: str, fn, *args):
        try:
            return await run_in_threadpool(fn, *args)
        except SQLAlchemyError as e:
            logger.error(f"Storage {op} failed for {args[0]}: {e}")
            raise StorageUnavailable(details={"op": op, "key": args[0]}) from e

    async def read(self, key: str) -> Optional[Dict[str, Any]]:
        return await self._call("read", self._read, key)

    async def write(self, key: str, data: Dict[str, Any]) -> None:
        await self._call("write", self._write, key, data)

    async def delete(self, key: str) -> None:
        await self._call("delete", self._delete, key)

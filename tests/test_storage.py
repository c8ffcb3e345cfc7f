import pytest
from sqlalchemy.pool import StaticPool

from turnbot.db import Base, make_engine
from turnbot.errors import StorageUnavailable
from turnbot.models import ConversationRecord
from turnbot.storage import MemoryStorage, SqlStorage


@pytest.fixture
def sql_storage():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    return SqlStorage(engine=engine)


@pytest.mark.asyncio
async def test_memory_storage_returns_copies():
    storage = MemoryStorage()
    data = {"CounterState": {"turn_count": 1}}
    await storage.write("c1", data)

    data["CounterState"]["turn_count"] = 99
    got = await storage.read("c1")
    assert got == {"CounterState": {"turn_count": 1}}

    got["CounterState"]["turn_count"] = 42
    assert (await storage.read("c1"))["CounterState"]["turn_count"] == 1


@pytest.mark.asyncio
async def test_memory_storage_delete_unknown_key_is_noop():
    storage = MemoryStorage()
    await storage.delete("missing")
    assert await storage.read("missing") is None


@pytest.mark.asyncio
async def test_sql_storage_read_unknown_key(sql_storage):
    assert await sql_storage.read("missing") is None


@pytest.mark.asyncio
async def test_sql_storage_write_then_overwrite(sql_storage):
    await sql_storage.write("c1", {"CounterState": {"turn_count": 1}})
    await sql_storage.write("c1", {"CounterState": {"turn_count": 2}})

    assert await sql_storage.read("c1") == {"CounterState": {"turn_count": 2}}


@pytest.mark.asyncio
async def test_sql_storage_keeps_non_ascii_text(sql_storage):
    await sql_storage.write("c1", {"Note": "Заказ"})
    assert await sql_storage.read("c1") == {"Note": "Заказ"}


@pytest.mark.asyncio
async def test_sql_storage_delete(sql_storage):
    await sql_storage.write("c1", {"CounterState": {"turn_count": 1}})
    await sql_storage.delete("c1")
    assert await sql_storage.read("c1") is None


@pytest.mark.asyncio
async def test_sql_storage_treats_corrupt_row_as_empty(sql_storage):
    with sql_storage._session_factory() as db, db.begin():
        db.add(ConversationRecord(conversation_id="c1", state_json="not json"))

    assert await sql_storage.read("c1") == {}


@pytest.mark.asyncio
async def test_sql_storage_errors_become_storage_unavailable(sql_storage):
    Base.metadata.drop_all(bind=sql_storage.engine)

    with pytest.raises(StorageUnavailable) as excinfo:
        await sql_storage.read("c1")
    assert excinfo.value.details == {"op": "read", "key": "c1"}

    with pytest.raises(StorageUnavailable):
        await sql_storage.write("c1", {})


@pytest.mark.asyncio
async def test_sql_storage_stamps_updated_at(sql_storage):
    await sql_storage.write("c1", {"CounterState": {"turn_count": 1}})

    with sql_storage._session_factory() as db:
        row = db.get(ConversationRecord, "c1")
        assert row.updated_at is not None

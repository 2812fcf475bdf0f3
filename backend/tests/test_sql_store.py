"""
Recuerdos Backend — SQL Store Tests
====================================

What:  SqlRecordStore against a real SQLite database (aiosqlite) per test.

What we test:
    ✅ Row ↔ Memory translation (storage column names never leak)
    ✅ Ownership filtering on every operation
    ✅ AUTOINCREMENT ids are never reused
    ✅ ILIKE search on title or location, with LIKE wildcards escaped
    ✅ Unreachable database → StoreUnavailableError, health check False
"""

import datetime as dt

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from recuerdos.exceptions import NotFoundError, StoreUnavailableError
from recuerdos.stores.sql_store import SqlRecordStore

NOW = dt.datetime(2024, 6, 15, 10, 30, tzinfo=dt.timezone.utc)


def _fields(title="Paseo", location="Sevilla", date=dt.date(2024, 1, 1), **extra):
    return {
        "title": title,
        "location": location,
        "date": date,
        "created_at": NOW,
        "updated_at": NOW,
        **extra,
    }


@pytest_asyncio.fixture
async def sql_store(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'recuerdos.db'}")
    store = SqlRecordStore(engine=engine, create_tables=True)
    await store.initialize()
    yield store
    await store.close()


class TestSqlRecordStore:

    @pytest.mark.asyncio
    async def test_create_and_get(self, sql_store):
        created = await sql_store.create(
            "user-ana", _fields(description="Con amigos", latitude=37.38, longitude=-5.98)
        )
        fetched = await sql_store.get(created.id, "user-ana")

        assert isinstance(fetched.id, int)
        assert fetched.owner_id == "user-ana"
        assert fetched.title == "Paseo"
        assert fetched.description == "Con amigos"
        assert fetched.date == dt.date(2024, 1, 1)
        assert (fetched.latitude, fetched.longitude) == (37.38, -5.98)
        assert fetched.created_at == NOW
        assert fetched.created_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_string_id_accepted(self, sql_store):
        created = await sql_store.create("user-ana", _fields())
        fetched = await sql_store.get(str(created.id), "user-ana")
        assert fetched.id == created.id

    @pytest.mark.asyncio
    async def test_non_numeric_id_is_not_found(self, sql_store):
        with pytest.raises(NotFoundError):
            await sql_store.get("abc", "user-ana")

    @pytest.mark.asyncio
    async def test_ownership(self, sql_store):
        created = await sql_store.create("user-ana", _fields())

        assert await sql_store.list("user-bruno") == []
        with pytest.raises(NotFoundError):
            await sql_store.get(created.id, "user-bruno")
        with pytest.raises(NotFoundError):
            await sql_store.update(created.id, "user-bruno", {"title": "x"})
        with pytest.raises(NotFoundError):
            await sql_store.delete(created.id, "user-bruno")

        assert (await sql_store.get(created.id, "user-ana")).title == "Paseo"

    @pytest.mark.asyncio
    async def test_update_partial(self, sql_store):
        created = await sql_store.create("user-ana", _fields(latitude=1.0, longitude=2.0))
        later = NOW + dt.timedelta(seconds=1)

        updated = await sql_store.update(
            created.id, "user-ana", {"location": "Triana", "updated_at": later}
        )

        assert updated.location == "Triana"
        assert updated.title == "Paseo"
        assert (updated.latitude, updated.longitude) == (1.0, 2.0)
        assert updated.updated_at == later
        assert updated.created_at == NOW

    @pytest.mark.asyncio
    async def test_delete_and_ids_not_reused(self, sql_store):
        await sql_store.create("user-ana", _fields("uno"))
        second = await sql_store.create("user-ana", _fields("dos"))

        await sql_store.delete(second.id, "user-ana")
        with pytest.raises(NotFoundError):
            await sql_store.get(second.id, "user-ana")

        third = await sql_store.create("user-ana", _fields("tres"))
        assert third.id > second.id

    @pytest.mark.asyncio
    async def test_search_title_or_location_case_insensitive(self, sql_store):
        await sql_store.create("user-ana", _fields(title="Feria de Abril", location="Sevilla"))
        await sql_store.create("user-ana", _fields(title="Cena", location="FERIA bar"))
        await sql_store.create("user-ana", _fields(title="Playa", location="Huelva"))
        await sql_store.create("user-bruno", _fields(title="Feria", location="Jerez"))

        found = await sql_store.search("user-ana", "feria")
        assert sorted(m.title for m in found) == ["Cena", "Feria de Abril"]

    @pytest.mark.asyncio
    async def test_search_folds_accented_capitals(self, sql_store):
        await sql_store.create("user-ana", _fields(title="Murallas", location="ÁVILA"))
        await sql_store.create("user-ana", _fields(title="ÉPOCA DORADA", location="León"))

        assert [m.location for m in await sql_store.search("user-ana", "ávila")] == ["ÁVILA"]
        assert [m.title for m in await sql_store.search("user-ana", "época")] == ["ÉPOCA DORADA"]
        assert await sql_store.search("user-bruno", "ávila") == []

    @pytest.mark.asyncio
    async def test_search_escapes_wildcards(self, sql_store):
        await sql_store.create("user-ana", _fields(title="100% feliz"))
        await sql_store.create("user-ana", _fields(title="1000 km"))

        found = await sql_store.search("user-ana", "100%")
        assert [m.title for m in found] == ["100% feliz"]

    @pytest.mark.asyncio
    async def test_health_check(self, sql_store):
        assert await sql_store.health_check() is True


class TestSqlStoreUnavailable:

    @pytest.mark.asyncio
    async def test_unreachable_database(self, tmp_path):
        missing_dir = tmp_path / "does-not-exist" / "recuerdos.db"
        store = SqlRecordStore(engine=create_async_engine(f"sqlite+aiosqlite:///{missing_dir}"))
        try:
            with pytest.raises(StoreUnavailableError):
                await store.list("user-ana")
            assert await store.health_check() is False
        finally:
            await store.close()

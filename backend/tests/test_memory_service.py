"""
Recuerdos Backend — Memory Service Unit Tests
==============================================

What:  Business rules of the CRUD boundary, run against the in-memory store.

What we test:
    ✅ Ownership isolation (foreign records look exactly like missing ones)
    ✅ Create round-trip, required fields, date and coordinate validation
    ✅ Partial update with strictly increasing updated_at
    ✅ Delete finality
    ✅ Search union without duplicates
    ✅ List ordering by calendar date
    ✅ Unexpected store failures wrapped, store errors propagated
    ✅ Stats and calendar aggregates
"""

import datetime as dt
from unittest.mock import AsyncMock

import pytest

from recuerdos.exceptions import (
    NotFoundError,
    StoreUnavailableError,
    UnknownError,
    ValidationError,
)
from recuerdos.schemas.memory import MemoryCreate, MemoryUpdate
from recuerdos.services.memory_service import MemoryService


def _fields(title="Paseo", location="Sevilla", date="2024-01-01", **extra):
    return MemoryCreate(title=title, location=location, date=date, **extra)


class TestCreate:

    @pytest.mark.asyncio
    async def test_create_round_trip(self, service, owner, memory_fields):
        """Reading a created memory returns the submitted fields plus server-assigned ones."""
        created = await service.create_memory(owner, memory_fields)
        fetched = await service.get_memory(created.id, owner)

        assert fetched.title == "Atardecer en la playa"
        assert fetched.description == "Primer viaje del verano"
        assert fetched.location == "Cádiz"
        assert fetched.date == dt.date(2024, 6, 15)
        assert fetched.image_url == "https://images.example.com/playa.jpg"
        assert (fetched.latitude, fetched.longitude) == (36.5271, -6.2886)
        assert fetched.owner_id == owner
        assert fetched.created_at is not None
        assert fetched.updated_at == fetched.created_at

    @pytest.mark.asyncio
    async def test_ids_are_unique(self, service, owner):
        first = await service.create_memory(owner, _fields())
        second = await service.create_memory(owner, _fields())
        assert first.id != second.id

    @pytest.mark.asyncio
    async def test_missing_title_names_the_field(self, service, owner):
        with pytest.raises(ValidationError) as exc_info:
            await service.create_memory(owner, MemoryCreate(location="Sevilla", date="2024-01-01"))
        assert "titulo" in exc_info.value.message
        assert exc_info.value.field == "titulo"

    @pytest.mark.asyncio
    async def test_all_missing_fields_reported(self, service):
        with pytest.raises(ValidationError) as exc_info:
            await service.create_memory(None, MemoryCreate(title="  "))
        assert exc_info.value.context["fields"] == ["userId", "titulo", "ubicacion", "fecha"]

    @pytest.mark.asyncio
    async def test_owner_may_come_from_body(self, service, owner):
        created = await service.create_memory(None, _fields(owner_id=owner))
        assert created.owner_id == owner

    @pytest.mark.asyncio
    async def test_invalid_date_rejected(self, service, owner):
        with pytest.raises(ValidationError) as exc_info:
            await service.create_memory(owner, _fields(date="2023-02-30"))
        assert exc_info.value.field == "fecha"

    @pytest.mark.asyncio
    async def test_half_coordinate_pair_rejected(self, service, owner):
        with pytest.raises(ValidationError) as exc_info:
            await service.create_memory(owner, _fields(latitude=40.4))
        assert exc_info.value.field == "longitud"

    @pytest.mark.asyncio
    async def test_nothing_persisted_on_validation_failure(self, service, owner):
        with pytest.raises(ValidationError):
            await service.create_memory(owner, MemoryCreate(location="Sevilla", date="2024-01-01"))
        result = await service.list_memories(owner)
        assert result.total == 0


class TestOwnership:

    @pytest.mark.asyncio
    async def test_foreign_record_is_not_found_everywhere(self, service, owner, other_owner):
        created = await service.create_memory(owner, _fields())

        with pytest.raises(NotFoundError):
            await service.get_memory(created.id, other_owner)
        with pytest.raises(NotFoundError):
            await service.update_memory(created.id, other_owner, MemoryUpdate(title="Mío"))
        with pytest.raises(NotFoundError):
            await service.delete_memory(created.id, other_owner)

        assert (await service.list_memories(other_owner)).recuerdos == []
        assert await service.search_memories(other_owner, "Paseo") == []

        unchanged = await service.get_memory(created.id, owner)
        assert unchanged.title == "Paseo"

    @pytest.mark.asyncio
    async def test_blank_owner_is_validation_error(self, service):
        with pytest.raises(ValidationError) as exc_info:
            await service.list_memories("  ")
        assert exc_info.value.field == "userId"


class TestUpdate:

    @pytest.mark.asyncio
    async def test_only_provided_fields_change(self, service, owner, memory_fields):
        created = await service.create_memory(owner, memory_fields)
        updated = await service.update_memory(created.id, owner, MemoryUpdate(title="Nuevo título"))

        assert updated.title == "Nuevo título"
        assert updated.location == created.location
        assert updated.description == created.description
        assert updated.date == created.date
        assert updated.image_url == created.image_url
        assert (updated.latitude, updated.longitude) == (created.latitude, created.longitude)
        assert updated.created_at == created.created_at
        assert updated.updated_at > created.updated_at

    @pytest.mark.asyncio
    async def test_updated_at_strictly_increases(self, service, owner):
        created = await service.create_memory(owner, _fields())
        first = await service.update_memory(created.id, owner, MemoryUpdate(title="a"))
        second = await service.update_memory(created.id, owner, MemoryUpdate(title="b"))
        assert created.updated_at < first.updated_at < second.updated_at

    @pytest.mark.asyncio
    async def test_location_edit_keeps_coordinates(self, service, owner, memory_fields):
        created = await service.create_memory(owner, memory_fields)
        updated = await service.update_memory(created.id, owner, MemoryUpdate(location="Jerez"))
        assert (updated.latitude, updated.longitude) == (created.latitude, created.longitude)

    @pytest.mark.asyncio
    async def test_explicit_null_pair_clears_coordinates(self, service, owner, memory_fields):
        created = await service.create_memory(owner, memory_fields)
        updated = await service.update_memory(
            created.id, owner, MemoryUpdate(latitude=None, longitude=None)
        )
        assert updated.latitude is None and updated.longitude is None

    @pytest.mark.asyncio
    async def test_half_pair_after_merge_rejected(self, service, owner, memory_fields):
        created = await service.create_memory(owner, memory_fields)
        with pytest.raises(ValidationError):
            await service.update_memory(created.id, owner, MemoryUpdate(latitude=None))

    @pytest.mark.asyncio
    async def test_blank_required_field_rejected(self, service, owner):
        created = await service.create_memory(owner, _fields())
        with pytest.raises(ValidationError) as exc_info:
            await service.update_memory(created.id, owner, MemoryUpdate(location=""))
        assert exc_info.value.field == "ubicacion"

    @pytest.mark.asyncio
    async def test_missing_record_checked_before_body(self, service, owner):
        with pytest.raises(NotFoundError):
            await service.update_memory(999, owner, MemoryUpdate(title=""))


class TestDelete:

    @pytest.mark.asyncio
    async def test_delete_is_final(self, service, owner):
        created = await service.create_memory(owner, _fields())
        result = await service.delete_memory(created.id, owner)
        assert result.success is True

        with pytest.raises(NotFoundError):
            await service.get_memory(created.id, owner)
        with pytest.raises(NotFoundError):
            await service.delete_memory(created.id, owner)

    @pytest.mark.asyncio
    async def test_deleted_id_not_reused(self, service, owner):
        created = await service.create_memory(owner, _fields())
        await service.delete_memory(created.id, owner)
        again = await service.create_memory(owner, _fields())
        assert again.id != created.id


class TestListAndSearch:

    @pytest.mark.asyncio
    async def test_list_orders_by_date_descending(self, service, owner):
        for day in ("2024-01-01", "2023-12-31", "2024-06-15"):
            await service.create_memory(owner, _fields(date=day))

        result = await service.list_memories(owner)
        assert [m.date.isoformat() for m in result.recuerdos] == [
            "2024-06-15", "2024-01-01", "2023-12-31",
        ]
        assert result.total == 3

    @pytest.mark.asyncio
    async def test_empty_list(self, service, owner):
        result = await service.list_memories(owner)
        assert result.recuerdos == []
        assert result.total == 0

    @pytest.mark.asyncio
    async def test_search_union_without_duplicates(self, service, owner):
        both = await service.create_memory(owner, _fields(title="Playa de Cádiz", location="Cádiz"))
        by_title = await service.create_memory(owner, _fields(title="CÁDIZ de noche", location="Bar"))
        by_location = await service.create_memory(owner, _fields(title="Cena", location="cádiz centro"))
        await service.create_memory(owner, _fields(title="Montaña", location="Granada"))

        results = await service.search_memories(owner, "cádiz")
        ids = [m.id for m in results]
        assert sorted(ids) == sorted([both.id, by_title.id, by_location.id])
        assert len(ids) == len(set(ids))

    @pytest.mark.asyncio
    async def test_blank_search_term_lists_everything(self, service, owner):
        await service.create_memory(owner, _fields())
        await service.create_memory(owner, _fields(title="Otro"))
        assert len(await service.search_memories(owner, "   ")) == 2


class TestErrorWrapping:

    @pytest.mark.asyncio
    async def test_store_errors_propagate_unchanged(self, owner):
        store = AsyncMock()
        store.list = AsyncMock(side_effect=StoreUnavailableError())
        with pytest.raises(StoreUnavailableError):
            await MemoryService(store).list_memories(owner)

    @pytest.mark.asyncio
    async def test_unexpected_errors_become_unknown_error(self, owner):
        store = AsyncMock()
        store.list = AsyncMock(side_effect=RuntimeError("driver exploded"))
        with pytest.raises(UnknownError) as exc_info:
            await MemoryService(store).list_memories(owner)
        assert exc_info.value.context["error_type"] == "RuntimeError"
        assert "driver exploded" not in exc_info.value.message


class TestStats:

    @pytest.mark.asyncio
    async def test_stats_counts(self, service, owner):
        for day, place in [
            ("2024-06-15", "Cádiz"),
            ("2024-06-01", "Cádiz"),
            ("2024-02-10", "Madrid"),
            ("2023-12-31", "Cádiz"),
        ]:
            await service.create_memory(owner, _fields(date=day, location=place))

        stats = await service.stats(owner, today=dt.date(2024, 6, 20))

        assert stats.total == 4
        assert stats.this_year == 3
        assert stats.this_month == 2
        assert [(l.location, l.count) for l in stats.favorite_locations] == [("Cádiz", 3), ("Madrid", 1)]
        assert [(m.month, m.count) for m in stats.by_month] == [
            ("2023-12", 1), ("2024-02", 1), ("2024-06", 2),
        ]

    @pytest.mark.asyncio
    async def test_favorite_locations_limited_to_five(self, service, owner):
        for index in range(7):
            await service.create_memory(owner, _fields(location=f"Lugar {index}"))
        stats = await service.stats(owner, today=dt.date(2024, 1, 1))
        assert len(stats.favorite_locations) == 5

    @pytest.mark.asyncio
    async def test_stats_wire_names(self, service, owner):
        await service.create_memory(owner, _fields())
        wire = (await service.stats(owner, today=dt.date(2024, 1, 1))).model_dump(by_alias=True)
        assert set(wire) == {
            "totalRecuerdos", "recuerdosEsteAnio", "recuerdosEsteMes",
            "ubicacionesFavoritas", "recuerdosPorMes",
        }
        assert wire["ubicacionesFavoritas"] == [{"ubicacion": "Sevilla", "cantidad": 1}]


class TestCalendar:

    @pytest.mark.asyncio
    async def test_month_groups_by_day_ascending(self, service, owner):
        a = await service.create_memory(owner, _fields(title="A", date="2024-06-15"))
        b = await service.create_memory(owner, _fields(title="B", date="2024-06-02"))
        c = await service.create_memory(owner, _fields(title="C", date="2024-06-15"))
        await service.create_memory(owner, _fields(title="Julio", date="2024-07-01"))

        calendar = await service.calendar_month(owner, 2024, 6)

        assert [d.day for d in calendar.days] == [2, 15]
        assert [m.id for m in calendar.days[0].memories] == [b.id]
        assert sorted(m.id for m in calendar.days[1].memories) == sorted([a.id, c.id])

    @pytest.mark.asyncio
    async def test_invalid_month_rejected(self, service, owner):
        with pytest.raises(ValidationError):
            await service.calendar_month(owner, 2024, 13)

    @pytest.mark.asyncio
    async def test_year_has_twelve_months_with_earliest_first(self, service, owner):
        await service.create_memory(owner, _fields(title="Tarde", date="2024-03-20"))
        early = await service.create_memory(owner, _fields(title="Pronto", date="2024-03-02"))
        await service.create_memory(owner, _fields(title="Otro año", date="2023-03-01"))

        calendar = await service.calendar_year(owner, 2024)

        assert len(calendar.months) == 12
        march = calendar.months[2]
        assert march.month == 3
        assert march.month_name == "marzo"
        assert march.total == 2
        assert march.first_memory.id == early.id
        assert march.first_memory.date == "2024-03-02"
        assert calendar.months[0].total == 0
        assert calendar.months[0].first_memory is None

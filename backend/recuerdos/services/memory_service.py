"""
Recuerdos Backend — Memory Service (CRUD Service Boundary)
===========================================================

What:  Business rules for memories, independent of HTTP and of the backend.
How:   Validates input, stamps timestamps, delegates persistence to a
       RecordStore and orders results with recuerdos.dates.
Who:   Called by route handlers (routes/memories.py, routes/insights.py).
When:  Once per API request; the service holds no per-request state.

Operation flow (POST /api/recuerdos):
    ┌──────────┐    ┌──────────────┐    ┌───────────────┐    ┌─────────────┐
    │  Route   │───▶│  Validate    │───▶│  Stamp        │───▶│ RecordStore │
    │ (JSON)   │    │  (400 early) │    │  created/upd  │    │  .create()  │
    └──────────┘    └──────────────┘    └───────────────┘    └─────────────┘

Error Handling Strategy:
    RecuerdosError subclasses raised by the store (NotFoundError,
    StoreUnavailableError, ...) propagate unchanged. Anything else is logged
    with its traceback and re-raised as UnknownError, so no driver or library
    exception ever reaches the HTTP layer.
"""

import logging
from collections import Counter, defaultdict
from contextlib import asynccontextmanager
from datetime import date, datetime, timedelta, timezone
from typing import Any, AsyncGenerator, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from recuerdos import dates
from recuerdos.exceptions import RecuerdosError, UnknownError, ValidationError
from recuerdos.schemas.insights import (
    CalendarDay,
    CalendarMemory,
    CalendarMonthSummary,
    FirstMemory,
    LocationCount,
    MonthCount,
    MonthlyCalendarResponse,
    StatsResponse,
    YearlyCalendarResponse,
)
from recuerdos.schemas.memory import (
    DeleteResponse,
    Memory,
    MemoryCreate,
    MemoryId,
    MemoryListResponse,
    MemoryUpdate,
)
from recuerdos.stores.base import RecordStore

logger = logging.getLogger(__name__)

# Attribute → wire name, in the order missing fields are reported
REQUIRED_FIELDS = (
    ("title", "titulo"),
    ("location", "ubicacion"),
    ("date", "fecha"),
)

FAVORITE_LOCATIONS_LIMIT = 5


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class MemoryService:
    """
    Owner-scoped CRUD plus the aggregate views built on top of it.

    Responsibilities:
        - list/get/create/update/delete/search: the CRUD boundary
        - stats(), calendar_month(), calendar_year(): profile and calendar pages

    Every method takes the owner explicitly; a blank owner is a
    ValidationError on `userId`.
    """

    def __init__(self, store: RecordStore):
        self.store = store

    @asynccontextmanager
    async def _guarded(self, operation: str) -> AsyncGenerator[None, None]:
        try:
            yield
        except RecuerdosError:
            raise
        except PydanticValidationError as e:
            first = e.errors()[0] if e.error_count() else {}
            raise ValidationError(
                message=f"Invalid memory data: {first.get('msg', 'validation failed')}",
                context={"operation": operation, "errors": e.error_count()},
            )
        except Exception as e:
            logger.error("Unexpected error in %s: %s", operation, e, exc_info=True)
            raise UnknownError(context={"operation": operation, "error_type": type(e).__name__})

    @staticmethod
    def _require_owner(owner_id: Optional[str]) -> str:
        if _blank(owner_id):
            raise ValidationError(
                message="Missing required field: userId",
                field="userId",
                context={"fields": ["userId"]},
            )
        return owner_id.strip()

    @staticmethod
    def _parse_date(value: Any) -> date:
        try:
            return dates.parse_local_date(value)
        except ValueError as e:
            raise ValidationError(message=str(e), field="fecha")

    @staticmethod
    def _check_coordinates(latitude: Optional[float], longitude: Optional[float]) -> None:
        if (latitude is None) != (longitude is None):
            missing = "longitud" if longitude is None else "latitud"
            raise ValidationError(
                message="latitud and longitud must be provided together",
                field=missing,
            )

    # ══════════════════════════════════════════════════════════════════════
    # CRUD
    # ══════════════════════════════════════════════════════════════════════

    async def list_memories(self, owner_id: str) -> MemoryListResponse:
        """
        All memories of the owner, most recent date first.

        An owner with no memories gets an empty list, not an error.
        """
        owner = self._require_owner(owner_id)
        async with self._guarded("list"):
            memories = dates.newest_first(await self.store.list(owner))
        return MemoryListResponse(recuerdos=memories, total=len(memories))

    async def get_memory(self, memory_id: MemoryId, owner_id: str) -> Memory:
        owner = self._require_owner(owner_id)
        async with self._guarded("get"):
            return await self.store.get(memory_id, owner)

    async def create_memory(self, owner_id: Optional[str], data: MemoryCreate) -> Memory:
        """
        Validate and persist a new memory.

        Validation (all problems in one error):
            - userId, titulo, ubicacion, fecha must be present and non-blank
            - fecha must be a real YYYY-MM-DD calendar date
            - latitud/longitud both or neither

        Raises:
            ValidationError: naming the offending field(s) by wire name.
        """
        fields = data.provided()
        owner = owner_id if not _blank(owner_id) else fields.get("owner_id")

        missing = [] if not _blank(owner) else ["userId"]
        missing += [wire for attr, wire in REQUIRED_FIELDS if _blank(fields.get(attr))]
        if missing:
            label = "field" if len(missing) == 1 else "field(s)"
            raise ValidationError(
                message=f"Missing required {label}: {', '.join(missing)}",
                field=missing[0],
                context={"fields": missing},
            )

        fields.pop("owner_id", None)
        fields["title"] = fields["title"].strip()
        fields["location"] = fields["location"].strip()
        fields["date"] = self._parse_date(fields["date"])
        self._check_coordinates(fields.get("latitude"), fields.get("longitude"))

        now = _utcnow()
        fields["created_at"] = now
        fields["updated_at"] = now

        async with self._guarded("create"):
            memory = await self.store.create(owner.strip(), fields)
        logger.info("Created memory %s for owner %s", memory.id, memory.owner_id)
        return memory

    async def update_memory(self, memory_id: MemoryId, owner_id: str, data: MemoryUpdate) -> Memory:
        """
        Apply a partial update to an owned memory.

        Only fields present in the body change. The record is fetched first,
        so an unknown or foreign id is a NotFoundError even when the body is
        also invalid. `updated_at` always moves strictly forward.
        """
        owner = self._require_owner(owner_id)
        async with self._guarded("update"):
            existing = await self.store.get(memory_id, owner)

        changes = data.provided()
        changes.pop("owner_id", None)

        for attr, wire in REQUIRED_FIELDS:
            if attr in changes and _blank(changes[attr]):
                raise ValidationError(message=f"{wire} cannot be empty", field=wire)
        for attr in ("title", "location"):
            if attr in changes:
                changes[attr] = changes[attr].strip()
        if "date" in changes:
            changes["date"] = self._parse_date(changes["date"])

        self._check_coordinates(
            changes.get("latitude", existing.latitude),
            changes.get("longitude", existing.longitude),
        )

        now = _utcnow()
        if existing.updated_at is not None:
            now = max(now, _as_utc(existing.updated_at) + timedelta(microseconds=1))
        if existing.created_at is not None:
            now = max(now, _as_utc(existing.created_at))
        changes["updated_at"] = now

        async with self._guarded("update"):
            memory = await self.store.update(memory_id, owner, changes)
        logger.info("Updated memory %s (%s)", memory.id, ", ".join(sorted(changes)))
        return memory

    async def delete_memory(self, memory_id: MemoryId, owner_id: str) -> DeleteResponse:
        owner = self._require_owner(owner_id)
        async with self._guarded("delete"):
            await self.store.delete(memory_id, owner)
        logger.info("Deleted memory %s for owner %s", memory_id, owner)
        return DeleteResponse(success=True)

    async def search_memories(self, owner_id: str, term: Optional[str]) -> List[Memory]:
        """
        Memories whose title or location contains `term` (case-insensitive).

        A blank term returns the same result as list_memories().
        """
        owner = self._require_owner(owner_id)
        async with self._guarded("search"):
            if _blank(term):
                found = await self.store.list(owner)
            else:
                found = await self.store.search(owner, term.strip())

        unique: Dict[str, Memory] = {}
        for memory in found:
            unique.setdefault(str(memory.id), memory)
        return dates.newest_first(unique.values())

    # ══════════════════════════════════════════════════════════════════════
    # Aggregate views
    # ══════════════════════════════════════════════════════════════════════

    async def stats(self, owner_id: str, today: Optional[date] = None) -> StatsResponse:
        """
        Counters for the profile page.

        `today` defaults to the host's local calendar day and decides what
        "this year" and "this month" mean.
        """
        owner = self._require_owner(owner_id)
        today = today or dates.today_local()
        async with self._guarded("stats"):
            memories = dates.newest_first(await self.store.list(owner))

        locations = Counter(m.location.strip() for m in memories if m.location.strip())
        months = Counter(dates.month_key(m.date) for m in memories)

        return StatsResponse(
            total=len(memories),
            this_year=sum(1 for m in memories if dates.in_year(m.date, today.year)),
            this_month=sum(1 for m in memories if dates.in_month(m.date, today.year, today.month)),
            favorite_locations=[
                LocationCount(location=name, count=count)
                for name, count in locations.most_common(FAVORITE_LOCATIONS_LIMIT)
            ],
            by_month=[MonthCount(month=key, count=months[key]) for key in sorted(months)],
        )

    @staticmethod
    def _check_period(year: int, month: Optional[int] = None) -> None:
        if not 1 <= year <= 9999:
            raise ValidationError(message=f"Invalid year {year}", field="year")
        if month is not None and not 1 <= month <= 12:
            raise ValidationError(message=f"Invalid month {month}: expected 1-12", field="month")

    async def calendar_month(self, owner_id: str, year: int, month: int) -> MonthlyCalendarResponse:
        """Days of the month that have memories, ascending, with their entries."""
        owner = self._require_owner(owner_id)
        self._check_period(year, month)
        async with self._guarded("calendar_month"):
            memories = await self.store.list(owner)

        by_day: Dict[int, List[Memory]] = defaultdict(list)
        for memory in dates.newest_first(memories):
            if dates.in_month(memory.date, year, month):
                by_day[memory.date.day].append(memory)

        return MonthlyCalendarResponse(
            year=year,
            month=month,
            days=[
                CalendarDay(
                    day=day,
                    memories=[
                        CalendarMemory(id=m.id, title=m.title, location=m.location)
                        for m in by_day[day]
                    ],
                )
                for day in sorted(by_day)
            ],
        )

    async def calendar_year(self, owner_id: str, year: int) -> YearlyCalendarResponse:
        """Twelve monthly summaries; `first_memory` is the earliest-dated entry."""
        owner = self._require_owner(owner_id)
        self._check_period(year)
        async with self._guarded("calendar_year"):
            memories = await self.store.list(owner)

        # Oldest first, so the first entry of each bucket is the month's earliest
        by_month: Dict[int, List[Memory]] = defaultdict(list)
        for memory in reversed(dates.newest_first(memories)):
            if dates.in_year(memory.date, year):
                by_month[memory.date.month].append(memory)

        summaries = []
        for month in range(1, 13):
            entries = by_month.get(month, [])
            first = entries[0] if entries else None
            summaries.append(
                CalendarMonthSummary(
                    month=month,
                    month_name=dates.month_name(month),
                    total=len(entries),
                    first_memory=(
                        FirstMemory(id=first.id, title=first.title, date=dates.to_date_string(first.date))
                        if first
                        else None
                    ),
                )
            )
        return YearlyCalendarResponse(year=year, months=summaries)

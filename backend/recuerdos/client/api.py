"""
Recuerdos Client — API Wrapper
===============================

What:  Typed async client for the Recuerdos HTTP API.
How:   httpx.AsyncClient underneath. Requests are built from `Memory` /
       `MemoryCreate` / `MemoryUpdate` (wire names handled by their aliases)
       and responses are validated back into the same models.
Who:   Presentation layers and scripts; the backend itself never imports it.

Guarantees:
    - The owner is an explicit argument of every call; the client keeps no
      notion of a "current user".
    - `timeout` bounds the whole call (connect + send + read + decode).
    - Every failure raises ClientApiError; no httpx exception escapes.
    - No automatic retries. ClientApiError.kind tells the caller whether a
      retry makes sense (timeout, server_error, unknown).
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

import httpx
from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from recuerdos.client.errors import ClientApiError, ErrorKind, kind_for_status, message_for_status
from recuerdos.config import settings
from recuerdos.schemas.insights import MonthlyCalendarResponse, StatsResponse, YearlyCalendarResponse
from recuerdos.schemas.memory import (
    HealthResponse,
    Memory,
    MemoryCreate,
    MemoryId,
    MemoryListResponse,
    MemoryUpdate,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_memory_list = TypeAdapter(List[Memory])


class RecuerdosClient:
    """
    Async client for /api/recuerdos and the stats/calendar endpoints.

    Args:
        base_url: API root including the /api prefix.
        timeout: Seconds allowed for a whole call. Defaults to CLIENT_TIMEOUT.
        transport: Optional httpx transport (ASGITransport or MockTransport in tests).

    Use as an async context manager, or call `aclose()` when done.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout or settings.client_timeout
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=transport,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )

    async def __aenter__(self) -> "RecuerdosClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ── Transport ─────────────────────────────────────────────────────────

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.TimeoutException:
            raise ClientApiError(ErrorKind.TIMEOUT)
        except httpx.HTTPError as e:
            logger.warning("Request %s %s failed: %s", method, url, e)
            raise ClientApiError(ErrorKind.UNKNOWN)

        if response.is_success:
            return response

        kind = kind_for_status(response.status_code)
        message = message_for_status(response.status_code)
        if kind is ErrorKind.INVALID_INPUT:
            message = _server_message(response)
        logger.info("Request %s %s returned %d (%s)", method, url, response.status_code, kind.value)
        raise ClientApiError(kind, message, status_code=response.status_code)

    async def _call(self, method: str, url: str, **kwargs: Any) -> Any:
        """One request bounded by the client timeout; returns the decoded JSON body."""
        try:
            response = await asyncio.wait_for(self._send(method, url, **kwargs), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise ClientApiError(ErrorKind.TIMEOUT)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            raise ClientApiError(
                ErrorKind.UNKNOWN,
                "The server sent a response that could not be read.",
                status_code=response.status_code,
            )

    @staticmethod
    def _parse(model: Type[M], payload: Any) -> M:
        try:
            return model.model_validate(payload)
        except PydanticValidationError as e:
            logger.warning("Unexpected %s payload: %s", model.__name__, e)
            raise ClientApiError(ErrorKind.UNKNOWN, "The server sent data in an unexpected format.")

    @staticmethod
    def _parse_memories(payload: Any) -> List[Memory]:
        try:
            return _memory_list.validate_python(payload or [])
        except PydanticValidationError as e:
            logger.warning("Unexpected memory list payload: %s", e)
            raise ClientApiError(ErrorKind.UNKNOWN, "The server sent data in an unexpected format.")

    @staticmethod
    def _fields(model: Type[M], data: Any) -> M:
        if isinstance(data, model):
            return data
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            first = e.errors()[0] if e.error_count() else {}
            raise ClientApiError(
                ErrorKind.INVALID_INPUT,
                f"Invalid memory data: {first.get('msg', 'validation failed')}",
            )

    @staticmethod
    def _require_owner(owner_id: str) -> None:
        if not owner_id or not str(owner_id).strip():
            raise ClientApiError(ErrorKind.INVALID_INPUT, "Missing required field: userId")

    # ══════════════════════════════════════════════════════════════════════
    # CRUD
    # ══════════════════════════════════════════════════════════════════════

    async def list(self, owner_id: str) -> List[Memory]:
        """All memories of the owner, most recent date first; [] when none."""
        self._require_owner(owner_id)
        payload = await self._call("GET", "/recuerdos", params={"userId": owner_id})
        return self._parse(MemoryListResponse, payload).recuerdos

    async def get(self, memory_id: MemoryId, owner_id: str) -> Memory:
        self._require_owner(owner_id)
        payload = await self._call("GET", f"/recuerdos/{memory_id}", params={"userId": owner_id})
        return self._parse(Memory, payload)

    async def create(self, owner_id: str, data: Union[MemoryCreate, Dict[str, Any]]) -> Memory:
        """
        Create a memory.

        `data` is a MemoryCreate or a dict keyed by attribute names
        (`title`, `location`, `date`, ...) or wire names (`titulo`, ...).
        """
        self._require_owner(owner_id)
        fields = self._fields(MemoryCreate, data)
        body = {**fields.to_wire(), "userId": owner_id}
        payload = await self._call("POST", "/recuerdos", json=body)
        return self._parse(Memory, payload)

    async def update(
        self,
        memory_id: MemoryId,
        owner_id: str,
        changes: Union[MemoryUpdate, Dict[str, Any]],
    ) -> Memory:
        """Send only the given fields; everything else keeps its stored value."""
        self._require_owner(owner_id)
        fields = self._fields(MemoryUpdate, changes)
        body = {**fields.to_wire(), "userId": owner_id}
        payload = await self._call("PUT", f"/recuerdos/{memory_id}", json=body)
        return self._parse(Memory, payload)

    async def delete(self, memory_id: MemoryId, owner_id: str) -> None:
        self._require_owner(owner_id)
        await self._call("DELETE", f"/recuerdos/{memory_id}", params={"userId": owner_id})

    async def search(self, owner_id: str, term: str) -> List[Memory]:
        """Memories whose title or location contains `term`; [] when none."""
        self._require_owner(owner_id)
        payload = await self._call(
            "GET", "/recuerdos/search", params={"userId": owner_id, "q": term or ""}
        )
        return self._parse_memories(payload)

    # ══════════════════════════════════════════════════════════════════════
    # Stats, calendar, health
    # ══════════════════════════════════════════════════════════════════════

    async def stats(self, owner_id: str) -> StatsResponse:
        self._require_owner(owner_id)
        return self._parse(StatsResponse, await self._call("GET", f"/stats/{owner_id}"))

    async def calendar_month(self, owner_id: str, year: int, month: int) -> MonthlyCalendarResponse:
        self._require_owner(owner_id)
        payload = await self._call(
            "GET", f"/calendar/{owner_id}", params={"year": year, "month": month}
        )
        return self._parse(MonthlyCalendarResponse, payload)

    async def calendar_year(self, owner_id: str, year: int) -> YearlyCalendarResponse:
        self._require_owner(owner_id)
        payload = await self._call("GET", f"/calendar/{owner_id}/year", params={"year": year})
        return self._parse(YearlyCalendarResponse, payload)

    async def memories_in_month(self, owner_id: str, year: int, month: int) -> List[Memory]:
        """Full records for every memory of one month, fetched concurrently."""
        calendar = await self.calendar_month(owner_id, year, month)
        ids = [entry.id for day in calendar.days for entry in day.memories]
        return list(await asyncio.gather(*(self.get(memory_id, owner_id) for memory_id in ids)))

    async def check_health(self) -> bool:
        """
        True when the API answers /health with status "healthy".

        Never raises: an unreachable or unhealthy server is simply False.
        """
        health_url = str(httpx.URL(self.base_url).copy_with(path="/health"))
        try:
            payload = await self._call("GET", health_url)
        except ClientApiError as e:
            logger.info("Health check failed: %s", e.kind.value)
            return False
        try:
            return HealthResponse.model_validate(payload).status == "healthy"
        except PydanticValidationError:
            return False


def _server_message(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return None

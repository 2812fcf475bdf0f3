"""
Recuerdos Backend — Remote Record Store
========================================

What:  RecordStore that delegates persistence to an external recuerdos REST
       service (the Spring Boot deployment) over HTTP.
How:   One shared httpx.AsyncClient with a per-request timeout. Every response
       is re-validated into `Memory` and every HTTP failure is translated into
       a store error before leaving this module.
Who:   STORE_BACKEND=remote, REMOTE_STORE_URL=<base url ending in /api>.

Remote contract:
    GET    /recuerdos?userId=..                  → [record, ...]
    GET    /recuerdos/{id}                       → record
    POST   /recuerdos                            → record
    PUT    /recuerdos/{id}                       → record
    DELETE /recuerdos/{id}                       → 204 / 200
    GET    /recuerdos/search?userId=..&titulo=.. → [record, ...]
    GET    /recuerdos/search?userId=..&ubicacion=..
    GET    /health                               → {"status": "OK"}

    Records may carry `imagenes: [url, ...]` instead of `imagen`; the first
    entry becomes `image_url`. Outgoing payloads carry both.

Ownership:
    The remote service does not scope by owner on id routes, so get/update/
    delete fetch the record first and compare `userId` locally. A record owned
    by someone else is reported as NotFoundError.

Error translation:
    httpx.TimeoutException  → StoreTimeoutError
    httpx.TransportError    → StoreUnavailableError
    404                     → NotFoundError
    400 / 422               → ValidationError
    5xx                     → StoreUnavailableError
    anything else           → UnknownError
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from recuerdos.config import settings
from recuerdos.exceptions import (
    NotFoundError,
    StoreTimeoutError,
    StoreUnavailableError,
    UnknownError,
    ValidationError,
)
from recuerdos.schemas.memory import Memory, MemoryId
from recuerdos.stores.base import RecordStore

logger = logging.getLogger(__name__)


def _from_remote(record: Dict[str, Any], owner_id: str) -> Memory:
    data = dict(record)
    images = data.pop("imagenes", None)
    if not data.get("imagen") and images:
        data["imagen"] = images[0]
    data.setdefault("userId", owner_id)
    return Memory.model_validate(data)


def _to_remote(memory_fields: Dict[str, Any]) -> Dict[str, Any]:
    payload = Memory.model_validate({"id": 0, **memory_fields}).to_wire()
    for key in ("id", "fechaCreacion", "fechaActualizacion"):
        payload.pop(key, None)
    payload["imagenes"] = [payload["imagen"]] if payload.get("imagen") else []
    return payload


class RemoteRecordStore(RecordStore):
    """
    RecordStore backed by an external HTTP service.

    Args:
        base_url: Service root, e.g. "http://localhost:8080/api".
        timeout: Seconds per HTTP request.
        transport: Optional httpx transport (tests use httpx.MockTransport).
    """

    name = "remote"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.remote_store_url).rstrip("/")
        self.timeout = timeout or settings.remote_store_timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={"Content-Type": "application/json", "Accept": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        resource_id: Optional[str] = None,
        **kwargs: Any,
    ) -> Any:
        """Send one request and return the decoded JSON body (None when empty)."""
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.error("Remote store timeout: %s %s (%s)", method, path, type(e).__name__)
            raise StoreTimeoutError(context={"method": method, "path": path})
        except httpx.TransportError as e:
            logger.error("Remote store unreachable: %s %s (%s)", method, path, e)
            raise StoreUnavailableError(
                context={"method": method, "path": path, "error_type": type(e).__name__}
            )

        status = response.status_code
        if status == 404:
            raise NotFoundError(resource_id=resource_id)
        if status in (400, 422):
            raise ValidationError(
                message=_remote_message(response) or "The memories service rejected the request",
                context={"status_code": status},
            )
        if status >= 500:
            logger.error("Remote store error %d on %s %s", status, method, path)
            raise StoreUnavailableError(context={"status_code": status, "path": path})
        if status >= 300:
            logger.error("Unexpected remote status %d on %s %s", status, method, path)
            raise UnknownError(context={"status_code": status, "path": path})

        if status == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            logger.error("Remote store returned non-JSON body for %s %s", method, path)
            raise UnknownError(context={"path": path, "reason": "invalid_json"})

    def _memories(self, payload: Any, owner_id: str) -> List[Memory]:
        if not isinstance(payload, list):
            raise UnknownError(context={"reason": "expected a list of records"})
        memories = [self._memory(item, owner_id) for item in payload]
        return [m for m in memories if m.owner_id == owner_id]

    @staticmethod
    def _memory(payload: Any, owner_id: str) -> Memory:
        if not isinstance(payload, dict):
            raise UnknownError(context={"reason": "expected a record object"})
        try:
            return _from_remote(payload, owner_id)
        except PydanticValidationError as e:
            logger.error("Remote store returned an invalid record: %s", e)
            raise UnknownError(context={"reason": "invalid_record", "errors": e.error_count()})

    # ── RecordStore API ───────────────────────────────────────────────────

    async def list(self, owner_id: str) -> List[Memory]:
        payload = await self._request("GET", "/recuerdos", params={"userId": owner_id})
        return self._memories(payload or [], owner_id)

    async def get(self, memory_id: MemoryId, owner_id: str) -> Memory:
        payload = await self._request("GET", f"/recuerdos/{memory_id}", resource_id=str(memory_id))
        memory = self._memory(payload, owner_id)
        if memory.owner_id != owner_id:
            raise NotFoundError(resource_id=str(memory_id))
        return memory

    async def create(self, owner_id: str, fields: Dict[str, Any]) -> Memory:
        body = _to_remote({**fields, "owner_id": owner_id})
        payload = await self._request("POST", "/recuerdos", json=body)
        memory = self._memory(payload, owner_id)
        logger.info("Memory %s created on remote store", memory.id)
        return memory

    async def update(self, memory_id: MemoryId, owner_id: str, changes: Dict[str, Any]) -> Memory:
        existing = await self.get(memory_id, owner_id)
        merged = {**existing.model_dump(), **changes, "owner_id": owner_id}
        merged.pop("id", None)
        body = _to_remote(merged)
        payload = await self._request(
            "PUT", f"/recuerdos/{memory_id}", resource_id=str(memory_id), json=body
        )
        if payload is None:
            return Memory.model_validate({**merged, "id": existing.id})
        return self._memory(payload, owner_id)

    async def delete(self, memory_id: MemoryId, owner_id: str) -> None:
        await self.get(memory_id, owner_id)
        await self._request("DELETE", f"/recuerdos/{memory_id}", resource_id=str(memory_id))
        logger.info("Memory %s deleted on remote store", memory_id)

    async def search(self, owner_id: str, term: str) -> List[Memory]:
        if not term.strip():
            return await self.list(owner_id)
        by_title, by_location = await asyncio.gather(
            self._request("GET", "/recuerdos/search", params={"userId": owner_id, "titulo": term}),
            self._request("GET", "/recuerdos/search", params={"userId": owner_id, "ubicacion": term}),
        )
        seen = set()
        results: List[Memory] = []
        for memory in self._memories(by_title or [], owner_id) + self._memories(by_location or [], owner_id):
            if memory.id in seen:
                continue
            seen.add(memory.id)
            results.append(memory)
        return results

    async def health_check(self) -> bool:
        try:
            payload = await self._request("GET", "/health")
        except (StoreUnavailableError, UnknownError, NotFoundError, ValidationError) as e:
            logger.warning("Remote store health check failed: %s", e.message)
            return False
        return isinstance(payload, dict) and str(payload.get("status", "")).upper() in ("OK", "UP")


def _remote_message(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        message = body.get("message")
        return str(message) if message else None
    return None

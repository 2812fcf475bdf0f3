"""
Recuerdos Backend — In-Memory Record Store
===========================================

What:  Process-local store backed by a dict; nothing survives a restart.
Who:   STORE_BACKEND=memory (demos, the browser-storage style deployment) and tests.
"""

import logging
from typing import Any, Dict, List

from recuerdos.exceptions import NotFoundError
from recuerdos.schemas.memory import Memory, MemoryId
from recuerdos.stores.base import RecordStore, coerce_int_id

logger = logging.getLogger(__name__)


class InMemoryRecordStore(RecordStore):
    """
    Dict-backed RecordStore.

    Ids come from a monotonic counter, so a deleted id is never reused.
    Returned objects are copies; mutating them does not touch the store.
    """

    name = "memory"

    def __init__(self):
        self._records: Dict[int, Memory] = {}
        self._last_id = 0

    def _owned(self, memory_id: MemoryId, owner_id: str) -> Memory:
        key = coerce_int_id(memory_id)
        memory = self._records.get(key)
        if memory is None or memory.owner_id != owner_id:
            raise NotFoundError(resource_id=str(memory_id))
        return memory

    async def list(self, owner_id: str) -> List[Memory]:
        return [m.model_copy() for m in self._records.values() if m.owner_id == owner_id]

    async def get(self, memory_id: MemoryId, owner_id: str) -> Memory:
        return self._owned(memory_id, owner_id).model_copy()

    async def create(self, owner_id: str, fields: Dict[str, Any]) -> Memory:
        self._last_id += 1
        memory = Memory.model_validate({**fields, "id": self._last_id, "owner_id": owner_id})
        self._records[memory.id] = memory
        logger.debug("Stored memory %s for owner %s", memory.id, owner_id)
        return memory.model_copy()

    async def update(self, memory_id: MemoryId, owner_id: str, changes: Dict[str, Any]) -> Memory:
        existing = self._owned(memory_id, owner_id)
        merged = {**existing.model_dump(), **changes, "id": existing.id, "owner_id": owner_id}
        updated = Memory.model_validate(merged)
        self._records[existing.id] = updated
        return updated.model_copy()

    async def delete(self, memory_id: MemoryId, owner_id: str) -> None:
        existing = self._owned(memory_id, owner_id)
        del self._records[existing.id]

    async def health_check(self) -> bool:
        return True

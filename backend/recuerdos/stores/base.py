"""
Recuerdos Backend — Abstract Record Store Interface
====================================================

What:  The contract every persistence backend implements.
How:   Concrete adapters (SQL, JSON file, remote service, in-memory) inherit from
       RecordStore. MemoryService only ever talks to this interface, so
       validation, ordering and naming rules exist once regardless of backend.
Who:   Called by MemoryService; selected by `build_store()` from STORE_BACKEND.

Contract shared by all adapters:
    - Every read/write/delete is filtered by owner. A record belonging to
      someone else raises NotFoundError, exactly like a missing one.
    - `create` assigns the id; ids are unique and never reused.
    - `update` applies only the given attributes; the store does not validate
      business rules (MemoryService already did).
    - Infrastructure failures raise StoreUnavailableError / StoreTimeoutError;
      raw driver exceptions never escape.
    - Field dicts passed in are keyed by Memory attribute names
      (`title`, `location`, `date`, ...), never by wire or column names.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from recuerdos.exceptions import NotFoundError
from recuerdos.schemas.memory import Memory, MemoryId


class RecordStore(ABC):
    """
    Owner-scoped persistence for Memory records.

    Implementations:
        - SqlRecordStore:      async SQLAlchemy (PostgreSQL / SQLite)
        - JsonFileRecordStore: one JSON document on disk
        - RemoteRecordStore:   an external REST service over httpx
        - InMemoryRecordStore: process-local dict
    """

    #: Backend name reported by the health endpoint
    name: str = "abstract"

    async def initialize(self) -> None:
        """Prepare resources (tables, directories). Called once at startup."""

    async def close(self) -> None:
        """Release resources (pools, HTTP clients). Called once at shutdown."""

    @abstractmethod
    async def list(self, owner_id: str) -> List[Memory]:
        """All memories of `owner_id`, in any order. Empty list when there are none."""
        ...

    @abstractmethod
    async def get(self, memory_id: MemoryId, owner_id: str) -> Memory:
        """
        One memory by id.

        Raises:
            NotFoundError: no such id, or it belongs to another owner.
        """
        ...

    @abstractmethod
    async def create(self, owner_id: str, fields: Dict[str, Any]) -> Memory:
        """
        Persist a new memory and return it with its assigned id.

        `fields` already carries `created_at` and `updated_at`.
        """
        ...

    @abstractmethod
    async def update(self, memory_id: MemoryId, owner_id: str, changes: Dict[str, Any]) -> Memory:
        """
        Overwrite the given attributes of an owned memory and return the result.

        Raises:
            NotFoundError: no such id, or it belongs to another owner.
        """
        ...

    @abstractmethod
    async def delete(self, memory_id: MemoryId, owner_id: str) -> None:
        """
        Permanently remove an owned memory.

        Raises:
            NotFoundError: no such id, it belongs to another owner, or it was
                already deleted.
        """
        ...

    async def search(self, owner_id: str, term: str) -> List[Memory]:
        """
        Memories whose title OR location contains `term`, case-insensitively.

        Each memory appears at most once even when both fields match. Adapters
        with a native query language override this.
        """
        return [memory for memory in await self.list(owner_id) if matches_term(memory, term)]

    @abstractmethod
    async def health_check(self) -> bool:
        """True if the backend is reachable. Never raises."""
        ...


def matches_term(memory: Memory, term: str) -> bool:
    """Case-insensitive substring match against title or location."""
    needle = term.casefold()
    return needle in memory.title.casefold() or needle in memory.location.casefold()


def coerce_int_id(memory_id: MemoryId) -> int:
    """
    Integer id for stores that allocate integers.

    An id that is not an integer cannot exist in such a store, so it is
    reported as not found rather than as a validation problem.
    """
    if isinstance(memory_id, bool):
        raise NotFoundError(resource_id=str(memory_id))
    try:
        return int(str(memory_id).strip())
    except ValueError:
        raise NotFoundError(resource_id=str(memory_id))

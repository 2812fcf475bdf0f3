"""
Recuerdos Backend — JSON File Record Store
===========================================

What:  Persists all memories in a single JSON document on disk.
How:   Read-modify-write of the whole document under an asyncio.Lock, using
       aiofiles for non-blocking I/O and an atomic temp-file + rename on write.
Who:   STORE_BACKEND=file, DATA_FILE=<path>.

Document layout:
    {
        "recuerdos": [ {"id": 1, "userId": "...", "titulo": "...", ...}, ... ],
        "lastUpdated": "2024-06-15T10:30:00+00:00",
        "lastId": 3
    }

    Records use the API's wire naming. `lastId` is a high-water mark: the next
    id is max(existing ids, lastId) + 1, so deleting the newest record never
    frees its id for reuse. Documents written without `lastId` still load.

Failure handling:
    - Missing file → empty document (first run)
    - Unreadable file, invalid JSON, invalid record → StoreUnavailableError;
      the file is left untouched so no data is overwritten
    - Write failure → StoreUnavailableError; the previous document stays intact
"""

import asyncio
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiofiles
from pydantic import ValidationError as PydanticValidationError

from recuerdos.config import settings
from recuerdos.exceptions import NotFoundError, StoreUnavailableError
from recuerdos.schemas.memory import Memory, MemoryId
from recuerdos.stores.base import RecordStore, coerce_int_id

logger = logging.getLogger(__name__)


class JsonFileRecordStore(RecordStore):
    """
    RecordStore backed by one JSON file.

    Only safe for a single process: the lock serializes writers inside the
    process, not across processes.
    """

    name = "file"

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path or settings.data_file).resolve()
        self._lock = asyncio.Lock()

    # ── Document I/O ──────────────────────────────────────────────────────

    async def _read_document(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {"recuerdos": [], "lastUpdated": _now_iso(), "lastId": 0}

        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                raw = await f.read()
        except OSError as e:
            logger.error("Failed to read data file %s: %s", self.path, e)
            raise StoreUnavailableError(
                message="Could not read the memories file. Please try again.",
                context={"path": str(self.path), "os_error": str(e)},
            )

        try:
            document = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError as e:
            logger.error("Data file %s is not valid JSON: %s", self.path, e)
            raise StoreUnavailableError(
                message="The memories file could not be read.",
                retry_after=None,
                context={"path": str(self.path), "json_error": str(e)},
            )

        if not isinstance(document, dict) or not isinstance(document.get("recuerdos", []), list):
            logger.error("Data file %s does not hold a memories document", self.path)
            raise StoreUnavailableError(
                message="The memories file could not be read.",
                retry_after=None,
                context={"path": str(self.path), "document_type": type(document).__name__},
            )

        document.setdefault("recuerdos", [])
        document.setdefault("lastUpdated", _now_iso())
        document.setdefault("lastId", 0)
        return document

    async def _write_document(self, document: Dict[str, Any]) -> None:
        document["lastUpdated"] = _now_iso()
        payload = json.dumps(document, indent=2, ensure_ascii=False)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(payload)
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error("Failed to write data file %s: %s", self.path, e)
            raise StoreUnavailableError(
                message="Could not save your memories. Please try again.",
                context={"path": str(self.path), "os_error": str(e)},
            )

    def _load_records(self, document: Dict[str, Any]) -> List[Memory]:
        try:
            return [Memory.model_validate(item) for item in document["recuerdos"]]
        except PydanticValidationError as e:
            logger.error("Data file %s contains an invalid record: %s", self.path, e)
            raise StoreUnavailableError(
                message="The memories file could not be read.",
                retry_after=None,
                context={"path": str(self.path), "errors": e.error_count()},
            )

    @staticmethod
    def _next_id(document: Dict[str, Any], records: List[Memory]) -> int:
        int_ids = [r.id for r in records if isinstance(r.id, int)]
        high_water = max(int_ids, default=0)
        return max(high_water, int(document.get("lastId") or 0)) + 1

    @staticmethod
    def _find(records: List[Memory], memory_id: MemoryId, owner_id: str) -> int:
        key = coerce_int_id(memory_id)
        for index, record in enumerate(records):
            if record.id == key and record.owner_id == owner_id:
                return index
        raise NotFoundError(resource_id=str(memory_id))

    # ── RecordStore API ───────────────────────────────────────────────────

    async def initialize(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("JSON file store at %s", self.path)

    async def list(self, owner_id: str) -> List[Memory]:
        document = await self._read_document()
        return [m for m in self._load_records(document) if m.owner_id == owner_id]

    async def get(self, memory_id: MemoryId, owner_id: str) -> Memory:
        records = self._load_records(await self._read_document())
        return records[self._find(records, memory_id, owner_id)]

    async def create(self, owner_id: str, fields: Dict[str, Any]) -> Memory:
        async with self._lock:
            document = await self._read_document()
            records = self._load_records(document)
            new_id = self._next_id(document, records)
            memory = Memory.model_validate({**fields, "id": new_id, "owner_id": owner_id})

            document["recuerdos"].append(memory.to_wire())
            document["lastId"] = new_id
            await self._write_document(document)

        logger.info("Memory %s created in %s", new_id, self.path.name)
        return memory

    async def update(self, memory_id: MemoryId, owner_id: str, changes: Dict[str, Any]) -> Memory:
        async with self._lock:
            document = await self._read_document()
            records = self._load_records(document)
            index = self._find(records, memory_id, owner_id)
            existing = records[index]

            updated = Memory.model_validate(
                {**existing.model_dump(), **changes, "id": existing.id, "owner_id": owner_id}
            )
            document["recuerdos"][index] = updated.to_wire()
            await self._write_document(document)

        return updated

    async def delete(self, memory_id: MemoryId, owner_id: str) -> None:
        async with self._lock:
            document = await self._read_document()
            records = self._load_records(document)
            index = self._find(records, memory_id, owner_id)

            del document["recuerdos"][index]
            document["lastId"] = max(
                int(document.get("lastId") or 0),
                max((r.id for r in records if isinstance(r.id, int)), default=0),
            )
            await self._write_document(document)

        logger.info("Memory %s deleted from %s", memory_id, self.path.name)

    async def health_check(self) -> bool:
        try:
            await self._read_document()
            return os.access(self.path.parent, os.W_OK) or not self.path.parent.exists()
        except StoreUnavailableError:
            return False


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

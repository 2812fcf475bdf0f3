"""
Recuerdos Backend — Memories Route Handlers
============================================

What:  CRUD and search endpoints for memories under /api/recuerdos.
How:   Extracts `userId` and the body, delegates to MemoryService, returns JSON.
Who:   Called by the client library (recuerdos.client) and the frontend.

Identity:
    `userId` comes from the authentication collaborator in front of this API.
    It is a query parameter on GET/DELETE and a body field on POST/PUT. A
    missing `userId` is a 400, never an empty result.

Route order:
    /recuerdos/search is registered before /recuerdos/{memory_id} so that
    "search" is never captured as an id.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from recuerdos.routes import get_memory_service
from recuerdos.schemas.memory import (
    DeleteResponse,
    ErrorResponse,
    Memory,
    MemoryCreate,
    MemoryListResponse,
    MemoryUpdate,
)
from recuerdos.services.memory_service import MemoryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Recuerdos"])

_ERRORS = {
    400: {"description": "Invalid input", "model": ErrorResponse},
    503: {"description": "Store unavailable", "model": ErrorResponse},
}
_NOT_FOUND = {404: {"description": "Memory not found", "model": ErrorResponse}}


@router.get(
    "/recuerdos",
    response_model=MemoryListResponse,
    responses=_ERRORS,
    summary="List the owner's memories, most recent date first",
)
async def list_memories(
    response: Response,
    user_id: Optional[str] = Query(default=None, alias="userId"),
    service: MemoryService = Depends(get_memory_service),
) -> MemoryListResponse:
    result = await service.list_memories(user_id)
    response.headers["X-Total-Count"] = str(result.total)
    return result


@router.get(
    "/recuerdos/search",
    response_model=List[Memory],
    responses=_ERRORS,
    summary="Search by title or location",
)
async def search_memories(
    user_id: Optional[str] = Query(default=None, alias="userId"),
    q: Optional[str] = Query(default=None, description="Case-insensitive substring"),
    service: MemoryService = Depends(get_memory_service),
) -> List[Memory]:
    """
    Union of title matches and location matches, each memory at most once.

    An empty `q` returns every memory of the owner.
    """
    return await service.search_memories(user_id, q)


@router.get(
    "/recuerdos/{memory_id}",
    response_model=Memory,
    responses={**_ERRORS, **_NOT_FOUND},
    summary="Get one memory",
)
async def get_memory(
    memory_id: str,
    user_id: Optional[str] = Query(default=None, alias="userId"),
    service: MemoryService = Depends(get_memory_service),
) -> Memory:
    return await service.get_memory(memory_id, user_id)


@router.post(
    "/recuerdos",
    response_model=Memory,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
    summary="Create a memory",
)
async def create_memory(
    body: MemoryCreate,
    service: MemoryService = Depends(get_memory_service),
) -> Memory:
    """
    Body: `{userId, titulo, descripcion?, ubicacion, fecha, imagen?, latitud?, longitud?}`.

    The server assigns `id`, `fechaCreacion` and `fechaActualizacion`.
    """
    return await service.create_memory(body.owner_id, body)


@router.put(
    "/recuerdos/{memory_id}",
    response_model=Memory,
    responses={**_ERRORS, **_NOT_FOUND},
    summary="Partially update a memory",
)
async def update_memory(
    memory_id: str,
    body: MemoryUpdate,
    user_id: Optional[str] = Query(default=None, alias="userId"),
    service: MemoryService = Depends(get_memory_service),
) -> Memory:
    """
    Only the fields present in the body change. `userId` is read from the
    body, falling back to the query string.
    """
    return await service.update_memory(memory_id, body.owner_id or user_id, body)


@router.delete(
    "/recuerdos/{memory_id}",
    response_model=DeleteResponse,
    responses={**_ERRORS, **_NOT_FOUND},
    summary="Delete a memory permanently",
)
async def delete_memory(
    memory_id: str,
    user_id: Optional[str] = Query(default=None, alias="userId"),
    service: MemoryService = Depends(get_memory_service),
) -> DeleteResponse:
    return await service.delete_memory(memory_id, user_id)

# Routes package init
"""
Recuerdos Backend — API Routes Package
=======================================

What:  HTTP route handlers that accept requests and return responses.
How:   Each route module handles one resource; all of them resolve the
       MemoryService through the `get_memory_service` dependency.

Route Inventory:
    - memories.py:  GET/POST       /api/recuerdos
                    GET            /api/recuerdos/search
                    GET/PUT/DELETE /api/recuerdos/{id}
    - insights.py:  GET            /api/stats/{userId}
                    GET            /api/calendar/{userId}
                    GET            /api/calendar/{userId}/year
    - health.py:    GET            /health
"""

from fastapi import Request

from recuerdos.services.memory_service import MemoryService


def get_memory_service(request: Request) -> MemoryService:
    """Dependency: a MemoryService bound to the store configured on the app."""
    return MemoryService(request.app.state.store)

"""
Recuerdos Client — Python API Wrapper
======================================

What:  Async wrapper around the Recuerdos HTTP API for presentation layers
       and scripts.

Example:
    async with RecuerdosClient("http://localhost:8000/api") as client:
        memory = await client.create("user-1", {"title": "Playa", "location": "Cádiz", "date": "2024-06-15"})
        memories = await client.list("user-1")
"""

from recuerdos.client.api import RecuerdosClient
from recuerdos.client.errors import ClientApiError, ErrorKind

__all__ = ["RecuerdosClient", "ClientApiError", "ErrorKind"]

# Middleware package init
"""
Recuerdos Backend — Middleware Package
=======================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route

    1. Rate Limit first: reject abusive clients before touching the store
    2. Request ID: correlation id for logs and error bodies
    3. Logging: one access line per request, tagged with the request id

    Responses travel back through the same chain in reverse, which is where
    X-Request-ID is attached and the duration is measured.
"""

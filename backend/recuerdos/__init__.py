"""
Recuerdos Backend — Application Package Initializer
====================================================

What: Marks the `recuerdos` directory as a Python package.
Who:  Used by uvicorn (`recuerdos.main:app`), Alembic, pytest and the client library.

Architecture Note:
    The backend is layered; each layer only talks to the one below it.

    ┌─────────────────────────────────────┐
    │      Client API Wrapper (client/)   │  ← used by presentation code
    ├─────────────────────────────────────┤
    │        Routes (HTTP boundary)       │  ← status codes, query params
    ├─────────────────────────────────────┤
    │     Services (business rules)       │  ← validation, ordering, stats
    ├─────────────────────────────────────┤
    │   Record Stores (stores/)           │  ← sql | file | remote | memory
    └─────────────────────────────────────┘

    Calendar dates cross every layer and are handled only by `recuerdos.dates`.
"""

__version__ = "1.0.0"

# Services package init
"""
Recuerdos Backend — Services Layer
===================================

What:  Business rules sitting between routes (HTTP) and record stores (persistence).
How:   Services take request schemas, enforce validation and ownership rules,
       call a RecordStore and return response schemas.

Service Inventory:
    - MemoryService: CRUD boundary for memories plus stats and calendar views

Routes stay thin: they extract parameters, call the service and set status
codes. The service never sees a Request object.
"""

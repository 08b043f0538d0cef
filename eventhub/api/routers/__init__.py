"""
FastAPI routers for organizing API endpoints.

Each module owns one URL prefix: ``/api/auth``, ``/api/admin/users`` and
``/api/ai``.
"""

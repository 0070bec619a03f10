"""
LECRM Backend — Application Package Initializer
================================================

What: Marks the `lecrm` directory as a Python package.
Who:  Imported by uvicorn (`lecrm.main:app`), the console scripts, and pytest.

Architecture Note:
    The backend is a thin layer over a hosted Supabase project:

    ┌─────────────────────────────────────┐
    │   Routes / Views (HTTP layer)       │  ← status codes, CORS, JSON shape
    ├─────────────────────────────────────┤
    │   Services (upstream calls)         │  ← signed-URL issuance, client factory
    ├─────────────────────────────────────┤
    │   Supabase (Postgres + Storage)     │  ← owned by the hosted service
    └─────────────────────────────────────┘

    Operator scripts (lecrm.scripts) share the client factory and the
    credential loader but never talk to the HTTP layer.
"""

__version__ = "1.0.0"

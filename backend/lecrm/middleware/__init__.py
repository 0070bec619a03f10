# Middleware package init
"""
LECRM Backend — Middleware Package
===================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Request ID] → [Logging] → [CORS] → [Errors] → Route Handler

    1. Request ID first so every later log line can carry it
    2. Logging sees the final status, including answered preflights
    3. CORS answers OPTIONS itself and decorates every other response
    4. Errors innermost: an exception escaping a route becomes a 500 body
       that still passes back through CORS, logging and request ID
"""

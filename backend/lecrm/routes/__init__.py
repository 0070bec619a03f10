# Routes package init
"""
LECRM Backend — API Routes Package
===================================

Route Inventory:
    - storage.py:  GET  /api/storage/getSignedUrl   (signed URL for an attachment)
    - health.py:   GET  /health                     (configuration health check)

The static loading screen lives in lecrm.views.loading (GET /loading).

Routes stay thin: read the request, call a service, shape the JSON body.
"""

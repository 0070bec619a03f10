# Services package init
"""
LECRM Backend — Services Layer
===============================

What:  Everything that talks to Supabase, kept out of the HTTP layer.

Service Inventory:
    - supabase_client: create_supabase_client() factory (no network I/O)
    - storage_service: StorageService.create_signed_url() → IssuedUrl | StorageFailure
"""

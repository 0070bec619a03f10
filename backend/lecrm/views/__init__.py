"""Server-rendered pages (no API contract)."""

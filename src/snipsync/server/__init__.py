"""Server module - Sync state store, engine, scheduler and admin API."""

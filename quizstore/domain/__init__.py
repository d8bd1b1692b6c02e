"""Plain records and pure domain logic (no storage, no I/O)."""

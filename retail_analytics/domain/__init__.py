"""Pure domain records and value objects (no I/O)."""

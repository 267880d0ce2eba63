"""Domain layer: enumerations and exceptions (no I/O)."""

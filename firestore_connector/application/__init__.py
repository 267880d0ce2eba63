"""Application layer: DTOs exchanged with connector callers."""

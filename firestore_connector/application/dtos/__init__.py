"""DTOs for connector operations (plain dataclasses, no HTTP types)."""

from firestore_connector.application.dtos.batch import (
    BatchOperation,
    BatchWriteResult,
    UpdateOptions,
)

__all__ = ["BatchOperation", "BatchWriteResult", "UpdateOptions"]

"""DTOs for batched writes (documents:batchWrite)."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from firestore_connector.domain.enums import WriteKind


@dataclass(frozen=True)
class UpdateOptions:
    """How an update write chooses its field mask.

    merge=False replaces every field of the document. Otherwise update_mask,
    when given, is used verbatim; when omitted the mask is the keys of the
    update data, so fields not mentioned are left untouched.
    """

    merge: bool = True
    update_mask: list[str] | None = None


@dataclass(frozen=True)
class BatchOperation:
    """One write in a batch: create, update or delete a document.

    kind may be a WriteKind or its string value ("create", "update",
    "delete"); unknown kinds are rejected when the batch is composed.
    """

    kind: WriteKind | str
    collection: str
    document_id: str | None = None
    data: dict[str, Any] | None = None
    update_options: UpdateOptions | None = None


@dataclass(frozen=True)
class BatchWriteResult:
    """Outcome of one operation in a batchWrite response (matched by position)."""

    operation: BatchOperation
    document_path: str
    success: bool
    update_time: datetime | None = None
    error_code: int | None = None
    error_message: str | None = None

    @property
    def document_id(self) -> str:
        return self.document_path.rsplit("/", 1)[-1]

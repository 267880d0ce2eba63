"""ID generators for client-assigned Firestore document IDs."""

from cuid2 import cuid_wrapper

cuid_generator = cuid_wrapper()


def generate_document_id() -> str:
    """Generate a collision-resistant document ID (CUID2).

    Used when a batched create does not name its document; documents:batchWrite
    requires a full resource name for every write.

    Returns:
        A new CUID string (URL-safe, never contains '/').
    """
    result = cuid_generator()
    if not isinstance(result, str):
        raise TypeError(
            f"Expected str from cuid_generator, got {type(result).__name__}"
        )
    return result

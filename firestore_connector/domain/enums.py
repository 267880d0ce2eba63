"""Domain enumerations for the Firestore connector.

Enums represent fixed sets of protocol values (query operators, write kinds).
"""

from enum import Enum


class FieldOperator(str, Enum):
    """Firestore structured-query field filter operator."""

    EQUAL = "EQUAL"
    NOT_EQUAL = "NOT_EQUAL"
    GREATER_THAN = "GREATER_THAN"
    GREATER_THAN_OR_EQUAL = "GREATER_THAN_OR_EQUAL"
    LESS_THAN = "LESS_THAN"
    LESS_THAN_OR_EQUAL = "LESS_THAN_OR_EQUAL"
    ARRAY_CONTAINS = "ARRAY_CONTAINS"
    ARRAY_CONTAINS_ANY = "ARRAY_CONTAINS_ANY"
    IN = "IN"
    NOT_IN = "NOT_IN"

    @classmethod
    def values(cls) -> list[str]:
        """Return all operator names as strings.

        Returns:
            List of enum value strings (e.g. for validation or serialization).
        """
        return [op.value for op in cls]


class OrderDirection(str, Enum):
    """Sort direction for structured-query orderBy."""

    ASCENDING = "ASCENDING"
    DESCENDING = "DESCENDING"


class WriteKind(str, Enum):
    """Kind of write in a documents:batchWrite request."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"

    @classmethod
    def values(cls) -> list[str]:
        return [kind.value for kind in cls]

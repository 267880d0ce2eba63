"""Exceptions for the Firestore connector.

Every failure is raised to the caller of the one operation that triggered
it. Nothing in the connector retries; callers may retry the whole operation.
"""

from typing import Any


class FirestoreConnectorException(Exception):
    """Base exception for all connector errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, status_code).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class DecodeException(FirestoreConnectorException):
    """Raised when a Firestore wire value or document envelope is malformed."""

    def __init__(self, message: str, tag: str | None = None) -> None:
        """Initialize with message and optional wire tag (e.g. 'integerValue').

        Args:
            message: Description of the decode failure.
            tag: Optional wire value tag whose payload was malformed.
        """
        details = {"tag": tag} if tag else {}
        super().__init__(message, "DECODE_ERROR", details)


class ValidationException(FirestoreConnectorException):
    """Raised when caller input is invalid (batch size, missing data or id)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or attribute that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class ResourceNotFoundException(FirestoreConnectorException):
    """Raised when a requested document does not exist."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and identifier.

        Args:
            resource_type: Kind of resource (e.g. 'document').
            resource_id: Identifier or path that was not found.
        """
        super().__init__(
            f"{resource_type.capitalize()} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class DocumentExistsException(FirestoreConnectorException):
    """Raised when creating a document whose ID already exists (HTTP 409)."""

    def __init__(self, document_path: str) -> None:
        super().__init__(
            f"Document already exists: {document_path}",
            "DOCUMENT_EXISTS",
            {"document_path": document_path},
        )


class AuthenticationException(FirestoreConnectorException):
    """Raised when credentials are missing, signing fails or token exchange fails."""

    def __init__(
        self,
        message: str = "Authentication failed",
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with optional message and context.

        Args:
            message: Description of the authentication failure.
            details: Optional context (e.g. status_code of the token endpoint).
        """
        super().__init__(message, "AUTHENTICATION_ERROR", details)


class TransportException(FirestoreConnectorException):
    """Raised for non-2xx responses not otherwise classified, and network errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: Any = None,
    ) -> None:
        """Initialize with message and the response status/body as context.

        Args:
            message: Description of the failure.
            status_code: HTTP status code, or None for network errors.
            body: Parsed (or raw text) response body, when available.
        """
        details: dict[str, Any] = {}
        if status_code is not None:
            details["status_code"] = status_code
        if body is not None:
            details["body"] = body
        super().__init__(message, "TRANSPORT_ERROR", details)
        self.status_code = status_code

"""Folio error hierarchy.

Provides a structured error hierarchy for storage and editor operations:
- FolioError: Base exception for all application errors
- ValidationError: Input validation failures
- NotFoundError: Referenced page/block/table does not exist
- DatabaseError: sqlite operation failures
- PersistenceError: A debounced page write failed
- ExternalCallError: A collaborator call (e.g. record table creation) failed
- ConfigurationError: Configuration/setup issues

The pure block engine never raises these for soft failures (unknown ids,
invalid structural requests); they are for the storage, RPC and editor
layers.

Usage:
    from folio.errors import NotFoundError

    if page is None:
        raise NotFoundError(f"Page not found: {page_id}", resource_type="page", resource_id=page_id)
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)


def _truncate(value: str, limit: int) -> str:
    if len(value) <= limit:
        return value
    return value[: limit - 3] + "..."


# =============================================================================
# Error Base Class
# =============================================================================


class FolioError(Exception):
    """Base exception for all folio errors.

    Attributes:
        message: Human-readable error description
        recoverable: Whether the operation can be retried
        context: Additional context for debugging
    """

    def __init__(
        self,
        message: str,
        *,
        recoverable: bool = False,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to structured dictionary for RPC responses."""
        return {
            "type": type(self).__name__.lower().replace("error", ""),
            "message": self.message,
            "recoverable": self.recoverable,
            **{k: v for k, v in self.context.items() if v is not None},
        }


# =============================================================================
# Input Errors
# =============================================================================


class ValidationError(FolioError):
    """Input validation failed.

    Example:
        raise ValidationError("Unknown block type", field="type", value="banner")
    """

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        constraint: str | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", {})
        if field:
            context["field"] = field
        if constraint:
            context["constraint"] = constraint
        if value is not None:
            context["value"] = _truncate(str(value), 100)
        super().__init__(message, recoverable=False, context=context)
        self.field = field
        self.constraint = constraint


class NotFoundError(FolioError):
    """Resource not found."""

    def __init__(
        self,
        message: str,
        *,
        resource_type: str | None = None,
        resource_id: str | None = None,
    ) -> None:
        super().__init__(
            message,
            recoverable=False,
            context={"resource_type": resource_type, "resource_id": resource_id},
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


# =============================================================================
# Storage Errors
# =============================================================================


class DatabaseError(FolioError):
    """Database operation failed."""

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        table: str | None = None,
        recoverable: bool = False,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", {})
        if operation:
            context["operation"] = operation
        if table:
            context["table"] = table
        super().__init__(message, recoverable=recoverable, context=context)


class PersistenceError(DatabaseError):
    """A page snapshot could not be written.

    The in-memory working set is kept; the next save resends the latest
    snapshot, so this is recoverable.
    """

    def __init__(self, message: str, *, page_id: str | None = None) -> None:
        super().__init__(
            message,
            operation="replace_page_blocks",
            table="blocks",
            recoverable=True,
            context={"page_id": page_id},
        )
        self.page_id = page_id


class ExternalCallError(FolioError):
    """A call to an external collaborator failed."""

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", {})
        if operation:
            context["operation"] = operation
        super().__init__(message, recoverable=True, context=context)
        self.operation = operation


class ConfigurationError(FolioError):
    """Configuration or setup issue."""

    def __init__(
        self,
        message: str,
        *,
        setting: str | None = None,
        suggestion: str | None = None,
    ) -> None:
        super().__init__(
            message,
            recoverable=False,
            context={"setting": setting, "suggestion": suggestion},
        )


# =============================================================================
# RPC Mapping
# =============================================================================

# Application-specific JSON-RPC codes (see folio.rpc.types)
_ERROR_CODES: list[tuple[type[FolioError], int]] = [
    (ValidationError, -32000),
    (NotFoundError, -32003),
    (ExternalCallError, -32005),
    (DatabaseError, -32006),
    (ConfigurationError, -32007),
]


def error_code_for(error_type: type[FolioError]) -> int:
    """JSON-RPC code for an error class (first matching table entry)."""
    for known_type, code in _ERROR_CODES:
        if issubclass(error_type, known_type):
            return code
    return -32603


def get_error_code(error: FolioError) -> int:
    """Map a folio error to its JSON-RPC error code."""
    return error_code_for(type(error))

"""Domain exceptions for the data repository layer.

Collaborators (connections, the data-access methods, SQL generators) catch
driver exceptions and re-raise them as one of these.  Repositories never
catch or wrap them again, so callers see exactly what the collaborator raised.
"""

from __future__ import annotations


class DataRepositoryError(Exception):
    """Base exception for all data-repository errors.

    Attributes:
        operation: The step that failed (e.g. ``"open"``, ``"insert"``, ``"get_select"``).
        detail: A sanitised description of what went wrong.
        entity_name: The entity involved, when the raiser knows it.
    """

    def __init__(
        self,
        *,
        operation: str,
        detail: str,
        entity_name: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.entity_name = entity_name
        self.operation = operation
        self.detail = detail
        prefix = f"[{entity_name}] " if entity_name else ""
        super().__init__(f"{prefix}{operation} failed: {detail}")
        if cause is not None:
            self.__cause__ = cause


class ConnectivityError(DataRepositoryError):
    """Raised when a connection cannot be opened or is no longer usable."""


class GenerationError(DataRepositoryError):
    """Raised when SQL cannot be generated for a schema, filter or dialect."""


class ExecutionError(DataRepositoryError):
    """Raised when the driver fails to execute a statement."""


class CardinalityError(DataRepositoryError):
    """Raised when an identity insert does not return exactly one row."""


class IdentityConversionError(DataRepositoryError):
    """Raised when a generated key does not fit the identity field's type."""

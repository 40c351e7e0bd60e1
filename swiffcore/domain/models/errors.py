"""Error types for the persistence and auto-save contexts.

Network failures have their own closed taxonomy in ``network.py``.
"""

from typing import Any, Optional


class ValidationError(Exception):
    """Raised when an entity fails domain rules before reaching the store."""

    def __init__(self, reason: str, entity: Optional[Any] = None):
        self.reason = reason
        self.entity = entity
        super().__init__(f"Validation failed: {reason}")


class PersistenceError(Exception):
    """Raised when the persistence store rejects a read or write."""

    def __init__(self, operation: str, underlying: Optional[BaseException] = None):
        self.operation = operation
        self.underlying = underlying
        detail = f": {underlying}" if underlying is not None else ""
        super().__init__(f"Failed to {operation} data{detail}")


class EntityNotFoundError(PersistenceError):
    """Raised when an update or delete targets an entity the store does not hold."""

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        self.operation = "find"
        self.underlying = None
        Exception.__init__(self, f"Entity {kind} with ID {entity_id} not found")


class BulkImportError(Exception):
    """Raised when one item of a bulk import fails.

    Items persisted before the failure stay in the store; there is no
    rollback. ``imported`` tells the caller how many made it.
    """

    def __init__(self, imported: int, total: int, entity: Any, cause: BaseException):
        self.imported = imported
        self.total = total
        self.entity = entity
        self.cause = cause
        super().__init__(
            f"Import failed after {imported} of {total} item(s): {cause}"
        )

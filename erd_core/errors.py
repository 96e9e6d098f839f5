"""
Error taxonomy for diagram loading.

Only data-source failures are exceptions. An empty scope or a missing anchor
table are ordinary outcomes and are reported by `erd_core.validation`.
"""

from typing import Optional


class ErdError(Exception):
    """Base class for all diagram engine errors."""


class DataSourceError(ErdError):
    """An enumeration, property or relationship fetch failed."""

    def __init__(self, operation: str, message: str, table_id: Optional[str] = None):
        self.operation = operation
        self.table_id = table_id
        self.message = message
        target = f" for {table_id}" if table_id else ""
        super().__init__(f"{operation}{target} failed: {message}")


class LoadError(ErdError):
    """
    A diagram load was aborted.

    Carries a single user-facing message; the caller decides whether to retry
    by invoking the load again from scratch.
    """
    retryable = True

    def __init__(self, scope_label: str, cause: Optional[Exception] = None):
        self.scope_label = scope_label
        self.cause = cause
        detail = str(cause) if cause else "unknown error"
        self.user_message = f"Failed to load diagram for {scope_label}: {detail}"
        super().__init__(self.user_message)

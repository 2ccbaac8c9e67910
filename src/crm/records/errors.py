"""Record store exception hierarchy.

Every backend raises these instead of its own driver/transport errors, so
callers (the pipeline board, the HTTP API) handle one taxonomy regardless of
where records live.
"""

from __future__ import annotations

from typing import Any


class RecordStoreError(Exception):
    """Base class for all record store failures."""


class RecordNotFoundError(RecordStoreError, LookupError):
    """Raised when a record id does not exist for the given entity kind."""

    def __init__(self, kind: str, record_id: int) -> None:
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} not found: {record_id}")


class RecordValidationError(RecordStoreError, ValueError):
    """Raised when supplied fields violate an entity's invariants."""

    def __init__(self, kind: str, errors: list[dict[str, Any]] | str) -> None:
        self.kind = kind
        if isinstance(errors, str):
            errors = [{"msg": errors}]
        self.errors = errors
        details = "; ".join(_format_error(e) for e in errors)
        super().__init__(f"Invalid {kind}: {details}")


class RecordStoreUnavailableError(RecordStoreError):
    """Raised when the backing store cannot be reached (after retries)."""


def _format_error(error: dict[str, Any]) -> str:
    """Render one pydantic-style error dict as 'field: message'."""
    loc = ".".join(str(part) for part in error.get("loc", ()))
    msg = str(error.get("msg", ""))
    return f"{loc}: {msg}" if loc else msg


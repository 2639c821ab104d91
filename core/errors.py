"""
Typed exceptions for the hotspot tracker core.

Every error carries a machine-readable ``code`` so the web layer can map it
to a response without parsing messages:

    TrackerError (base)
    |
    +-- ValidationError      VALIDATION_FAILED   malformed or inconsistent input
    +-- AuthorizationError   NOT_AUTHORIZED      actor lacks the capability
    +-- NotFoundError        NOT_FOUND           missing or not visible to the actor
    +-- InvalidStateError    INVALID_STATE       operation not allowed in current state

None of these are retried inside the core.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional


class TrackerError(Exception):
    """Base class for all core errors."""

    code: str = "TRACKER_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a response-safe dictionary."""
        return {"code": self.code, "detail": self.message}


class ValidationError(TrackerError):
    """Input is malformed or structurally invalid."""

    code = "VALIDATION_FAILED"

    def __init__(self, message: str, errors: Optional[Iterable[str]] = None):
        self.errors: tuple[str, ...] = tuple(errors) if errors else (message,)
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["errors"] = list(self.errors)
        return data


class AuthorizationError(TrackerError):
    """Actor lacks the capability for the requested operation."""

    code = "NOT_AUTHORIZED"


class NotFoundError(TrackerError):
    """Resource does not exist or is not visible to the actor."""

    code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id: Any):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} {resource_id} not found")

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["resource"] = self.resource
        return data


class InvalidStateError(TrackerError):
    """Operation is not permitted from the resource's current state."""

    code = "INVALID_STATE"

    def __init__(self, message: str, current_status: Optional[str] = None):
        self.current_status = current_status
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.current_status is not None:
            data["current_status"] = self.current_status
        return data

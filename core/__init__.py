"""
Plastic Hotspot Tracker - Core Business Logic

This package provides the collection submission workflow:
1. Access control (actor context, role x operation policy)
2. Submission lifecycle (create, list, moderate, delete)
3. Zone registry and actor directory
4. Read-side aggregation for dashboards
"""

from .errors import (
    TrackerError,
    ValidationError,
    AuthorizationError,
    NotFoundError,
    InvalidStateError,
)
from .access import (
    AccountStatus,
    ActorContext,
    Role,
    Operation,
    authorize,
    is_authorized,
)
from .submission import (
    Submission,
    SubmissionItem,
    SubmissionStatus,
    SubmissionLifecycle,
    SubmissionRepository,
    TransitionResult,
    aggregate_submissions,
)
from .zones import Zone, ZoneStatus, ZoneRepository, ZoneService
from .actors import Actor, ActorDirectory

__all__ = [
    # Errors
    "TrackerError",
    "ValidationError",
    "AuthorizationError",
    "NotFoundError",
    "InvalidStateError",
    # Access control
    "AccountStatus",
    "ActorContext",
    "Role",
    "Operation",
    "authorize",
    "is_authorized",
    # Submissions
    "Submission",
    "SubmissionItem",
    "SubmissionStatus",
    "SubmissionLifecycle",
    "SubmissionRepository",
    "TransitionResult",
    "aggregate_submissions",
    # Zones & actors
    "Zone",
    "ZoneStatus",
    "ZoneRepository",
    "ZoneService",
    "Actor",
    "ActorDirectory",
]

"""
Collection Submission Module

Field officers report collected plastic as submissions; admins moderate
them from pending to verified or rejected.

Principles:
1. Owner is the authenticated actor, never the client payload
2. Submission and items are written as one unit
3. Moderation is one-directional (pending -> verified | rejected)
4. Verified submissions are permanent
"""

from core.submission.schema import (
    Submission,
    SubmissionItem,
    SubmissionStatus,
    TERMINAL_STATUSES,
    DELETABLE_STATUSES,
    COMMON_MATERIAL_TYPES,
)
from core.submission.validation import (
    SubmissionValidationResult,
    validate_submission_data,
    build_submission,
)
from core.submission.repository import (
    ConditionalWrite,
    SubmissionRepository,
)
from core.submission.lifecycle import (
    ALLOWED_TRANSITIONS,
    SubmissionLifecycle,
    TransitionResult,
    can_transition,
    is_reachable,
)
from core.submission.aggregation import (
    SubmissionAggregate,
    aggregate_submissions,
    zones_ready_for_pickup,
)
from core.submission.storage import (
    EvidenceStorage,
)

__all__ = [
    # Schema
    "Submission",
    "SubmissionItem",
    "SubmissionStatus",
    "TERMINAL_STATUSES",
    "DELETABLE_STATUSES",
    "COMMON_MATERIAL_TYPES",
    # Validation
    "SubmissionValidationResult",
    "validate_submission_data",
    "build_submission",
    # Repository
    "ConditionalWrite",
    "SubmissionRepository",
    # Lifecycle
    "ALLOWED_TRANSITIONS",
    "SubmissionLifecycle",
    "TransitionResult",
    "can_transition",
    "is_reachable",
    # Aggregation
    "SubmissionAggregate",
    "aggregate_submissions",
    "zones_ready_for_pickup",
    # Evidence storage
    "EvidenceStorage",
]

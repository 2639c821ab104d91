"""
Access control: actor context and the role x operation policy.
"""

from core.access.context import (
    AccountStatus,
    ActorContext,
    Role,
)
from core.access.policy import (
    AccessDecision,
    MUTATING_OPERATIONS,
    Operation,
    POLICY,
    Scope,
    authorize,
    is_authorized,
    require,
    scope_for,
)

__all__ = [
    "AccountStatus",
    "ActorContext",
    "Role",
    "AccessDecision",
    "MUTATING_OPERATIONS",
    "Operation",
    "POLICY",
    "Scope",
    "authorize",
    "is_authorized",
    "require",
    "scope_for",
]

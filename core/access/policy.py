"""
Access Control Gate - Role x Operation Policy

Single source of truth for who may do what. Every lifecycle, zone and
directory operation consults ``authorize`` before touching a repository.

Evaluation order:
1. Suspended actors are denied every mutating operation
2. The role table decides the scope (ALL / OWN / NONE)
3. OWN scope requires the actor to own the resource when an owner is given
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Final, Optional

from core.access.context import ActorContext, Role
from core.errors import AuthorizationError


logger = logging.getLogger(__name__)


# =============================================================================
# Enums
# =============================================================================


class Operation(Enum):
    """Operations guarded by the gate."""

    LIST_SUBMISSIONS = "list_submissions"
    CREATE_SUBMISSION = "create_submission"
    TRANSITION_SUBMISSION = "transition_submission"
    DELETE_SUBMISSION = "delete_submission"
    READ_ZONES = "read_zones"
    WRITE_ZONES = "write_zones"
    LIST_ACTORS = "list_actors"
    UPDATE_ACTOR = "update_actor"


class Scope(Enum):
    """How much of a resource class a role may touch."""

    NONE = "none"
    OWN = "own"
    ALL = "all"


# =============================================================================
# Policy Table
# =============================================================================

MUTATING_OPERATIONS: Final[frozenset[Operation]] = frozenset({
    Operation.CREATE_SUBMISSION,
    Operation.TRANSITION_SUBMISSION,
    Operation.DELETE_SUBMISSION,
    Operation.WRITE_ZONES,
    Operation.UPDATE_ACTOR,
})

_ADMIN_SCOPES: Final[dict[Operation, Scope]] = {
    Operation.LIST_SUBMISSIONS: Scope.ALL,
    Operation.CREATE_SUBMISSION: Scope.NONE,
    Operation.TRANSITION_SUBMISSION: Scope.ALL,
    Operation.DELETE_SUBMISSION: Scope.NONE,
    Operation.READ_ZONES: Scope.ALL,
    Operation.WRITE_ZONES: Scope.ALL,
    Operation.LIST_ACTORS: Scope.ALL,
    Operation.UPDATE_ACTOR: Scope.ALL,
}

# Adding a role means adding one row here
POLICY: Final[dict[Role, dict[Operation, Scope]]] = {
    Role.FIELD_OFFICER: {
        Operation.LIST_SUBMISSIONS: Scope.OWN,
        Operation.CREATE_SUBMISSION: Scope.OWN,
        Operation.TRANSITION_SUBMISSION: Scope.NONE,
        Operation.DELETE_SUBMISSION: Scope.OWN,
        Operation.READ_ZONES: Scope.ALL,
        Operation.WRITE_ZONES: Scope.NONE,
        Operation.LIST_ACTORS: Scope.NONE,
        Operation.UPDATE_ACTOR: Scope.NONE,
    },
    Role.ADMIN: dict(_ADMIN_SCOPES),
    Role.SUPER_ADMIN: dict(_ADMIN_SCOPES),
    Role.PARTNER: {
        Operation.LIST_SUBMISSIONS: Scope.ALL,
        Operation.CREATE_SUBMISSION: Scope.NONE,
        Operation.TRANSITION_SUBMISSION: Scope.NONE,
        Operation.DELETE_SUBMISSION: Scope.NONE,
        Operation.READ_ZONES: Scope.ALL,
        Operation.WRITE_ZONES: Scope.NONE,
        Operation.LIST_ACTORS: Scope.NONE,
        Operation.UPDATE_ACTOR: Scope.NONE,
    },
}


# =============================================================================
# Decision
# =============================================================================


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of an authorization check."""

    allowed: bool
    scope: Scope
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.allowed

    @classmethod
    def allow(cls, scope: Scope) -> "AccessDecision":
        return cls(allowed=True, scope=scope)

    @classmethod
    def deny(cls, reason: str) -> "AccessDecision":
        return cls(allowed=False, scope=Scope.NONE, reason=reason)


def scope_for(role: Role, operation: Operation) -> Scope:
    """Look up the scope a role has for an operation."""
    return POLICY.get(role, {}).get(operation, Scope.NONE)


def authorize(
    actor: Optional[ActorContext],
    operation: Operation,
    resource_owner_id: Optional[str] = None,
) -> AccessDecision:
    """
    Decide whether an actor may perform an operation.

    Args:
        actor: Authenticated actor, or None for an anonymous caller
        operation: Operation being attempted
        resource_owner_id: Owner of the target resource, when there is one

    Returns:
        AccessDecision (truthy when allowed)
    """
    if actor is None:
        return AccessDecision.deny("Authentication required")

    if actor.is_suspended and operation in MUTATING_OPERATIONS:
        return AccessDecision.deny("Account is suspended")

    scope = scope_for(actor.role, operation)
    if scope == Scope.NONE:
        return AccessDecision.deny(
            f"Role {actor.role.value} may not {operation.value.replace('_', ' ')}"
        )

    if (
        scope == Scope.OWN
        and resource_owner_id is not None
        and resource_owner_id != actor.actor_id
    ):
        return AccessDecision.deny("Resource belongs to another actor")

    return AccessDecision.allow(scope)


def is_authorized(
    actor: Optional[ActorContext],
    operation: Operation,
    resource_owner_id: Optional[str] = None,
) -> bool:
    """Boolean form of ``authorize`` for callers that only need yes/no."""
    return authorize(actor, operation, resource_owner_id).allowed


def require(
    actor: Optional[ActorContext],
    operation: Operation,
    resource_owner_id: Optional[str] = None,
) -> Scope:
    """
    Authorize or raise.

    Returns:
        Granted scope

    Raises:
        AuthorizationError: If the decision is a denial
    """
    decision = authorize(actor, operation, resource_owner_id)
    if not decision.allowed:
        logger.info(
            "Denied %s for actor %s: %s",
            operation.value,
            actor.actor_id if actor else "anonymous",
            decision.reason,
        )
        raise AuthorizationError(decision.reason or "Not authorized")
    return decision.scope

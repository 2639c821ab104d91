"""
Actor Context - Explicit Identity for Every Core Operation

The authenticated actor is passed into every lifecycle, zone and directory
call as an immutable value. Nothing in the core reads a "current user"
from ambient state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


# =============================================================================
# Enums
# =============================================================================


class Role(Enum):
    """Closed set of actor roles."""

    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    FIELD_OFFICER = "field_officer"
    PARTNER = "partner"


class AccountStatus(Enum):
    """Account status of an actor."""

    ACTIVE = "active"
    SUSPENDED = "suspended"


# =============================================================================
# Actor Context
# =============================================================================


@dataclass(frozen=True)
class ActorContext:
    """Authenticated actor as seen by the core."""

    actor_id: str
    role: Role
    status: AccountStatus = AccountStatus.ACTIVE
    assigned_zone_id: Optional[str] = None

    @property
    def is_suspended(self) -> bool:
        return self.status == AccountStatus.SUSPENDED

    @property
    def is_moderator(self) -> bool:
        """Admins and super admins moderate submissions."""
        return self.role in (Role.ADMIN, Role.SUPER_ADMIN)

    def to_dict(self) -> dict:
        return {
            "actor_id": self.actor_id,
            "role": self.role.value,
            "status": self.status.value,
            "assigned_zone_id": self.assigned_zone_id,
        }

"""
Actor Directory - Registered Users and Their Roles

Holds the actors the session resolver authenticates against. Credential
checks belong to the external identity provider; this directory only
knows who exists, what role they have and whether they are suspended.

Admins and super admins may list actors and change their account status
or assigned zone. Actors are never hard-deleted.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from core.access import AccountStatus, ActorContext, Operation, Role, require
from core.errors import NotFoundError, ValidationError
from core.zones import ZoneRepository


logger = logging.getLogger(__name__)


_UNSET: Any = object()


def generate_actor_id() -> str:
    """Generate a unique actor ID."""
    return f"USR-{uuid.uuid4().hex[:12].upper()}"


# =============================================================================
# Data Model
# =============================================================================


@dataclass(frozen=True)
class Actor:
    """A registered user."""

    actor_id: str
    username: str
    name: str
    role: Role
    status: AccountStatus = AccountStatus.ACTIVE
    assigned_zone_id: Optional[str] = None
    email: Optional[str] = None
    organization: Optional[str] = None
    registered_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_context(self) -> ActorContext:
        """Build the context value passed into core operations."""
        return ActorContext(
            actor_id=self.actor_id,
            role=self.role,
            status=self.status,
            assigned_zone_id=self.assigned_zone_id,
        )

    def to_dict(self) -> dict:
        return {
            "actor_id": self.actor_id,
            "username": self.username,
            "name": self.name,
            "role": self.role.value,
            "status": self.status.value,
            "assigned_zone_id": self.assigned_zone_id,
            "email": self.email,
            "organization": self.organization,
            "registered_at": self.registered_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Actor":
        return cls(
            actor_id=data["actor_id"],
            username=data["username"],
            name=data["name"],
            role=Role(data["role"]),
            status=AccountStatus(data.get("status", AccountStatus.ACTIVE.value)),
            assigned_zone_id=data.get("assigned_zone_id"),
            email=data.get("email"),
            organization=data.get("organization"),
            registered_at=datetime.fromisoformat(data["registered_at"]),
        )


# =============================================================================
# Directory
# =============================================================================


class ActorDirectory:
    """
    Repository and service for actors.

    Uses JSON file persistence, swappable for database later.
    """

    def __init__(
        self,
        persist_path: Optional[str] = None,
        zones: Optional[ZoneRepository] = None,
    ):
        self._actors: dict[str, Actor] = {}
        self._username_index: dict[str, str] = {}  # username -> actor_id
        self._lock = threading.Lock()
        self._zones = zones
        self._persist_path = Path(persist_path) if persist_path else None

        if self._persist_path and self._persist_path.exists():
            self._load_from_file()

    def _save_to_file(self) -> None:
        if not self._persist_path:
            return

        data = {
            "actors": {aid: a.to_dict() for aid, a in self._actors.items()},
            "saved_at": datetime.now(timezone.utc).isoformat(),
        }
        self._persist_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._persist_path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(data, indent=2))
        tmp_path.replace(self._persist_path)

    def _load_from_file(self) -> None:
        try:
            data = json.loads(self._persist_path.read_text())
            for aid, actor_data in data.get("actors", {}).items():
                actor = Actor.from_dict(actor_data)
                self._actors[aid] = actor
                self._username_index[actor.username.lower()] = aid
        except (json.JSONDecodeError, KeyError, ValueError) as e:
            logger.warning("Could not load actor data from %s: %s", self._persist_path, e)

    # =========================================================================
    # Registration & Lookup
    # =========================================================================

    def register(
        self,
        username: str,
        name: str,
        role: Role = Role.FIELD_OFFICER,
        email: Optional[str] = None,
        organization: Optional[str] = None,
    ) -> Actor:
        """
        Register a new actor.

        Raises:
            ValidationError: Missing username/name or username already taken
        """
        username = (username or "").strip()
        name = (name or "").strip()
        errors = []
        if not username:
            errors.append("Username is required")
        if not name:
            errors.append("Name is required")
        if errors:
            raise ValidationError("Registration is invalid", errors=errors)

        with self._lock:
            if username.lower() in self._username_index:
                raise ValidationError(f"Username {username} is already registered")

            actor = Actor(
                actor_id=generate_actor_id(),
                username=username,
                name=name,
                role=role,
                email=email,
                organization=organization,
            )
            self._actors[actor.actor_id] = actor
            self._username_index[username.lower()] = actor.actor_id
            try:
                self._save_to_file()
            except OSError:
                self._actors.pop(actor.actor_id, None)
                self._username_index.pop(username.lower(), None)
                raise

        logger.info("Registered %s as %s", actor.actor_id, role.value)
        return actor

    def get(self, actor_id: str) -> Optional[Actor]:
        with self._lock:
            return self._actors.get(actor_id)

    def get_by_username(self, username: str) -> Optional[Actor]:
        with self._lock:
            actor_id = self._username_index.get((username or "").strip().lower())
            return self._actors.get(actor_id) if actor_id else None

    def context_for(self, actor_id: str) -> Optional[ActorContext]:
        """Current context for an actor, reflecting any suspension."""
        actor = self.get(actor_id)
        return actor.to_context() if actor else None

    # =========================================================================
    # Admin Operations
    # =========================================================================

    def list_actors(self, actor: ActorContext) -> list[Actor]:
        """All actors in registration order."""
        require(actor, Operation.LIST_ACTORS)
        with self._lock:
            actors = list(self._actors.values())
        return sorted(actors, key=lambda a: a.registered_at)

    def update_actor(
        self,
        actor: ActorContext,
        actor_id: str,
        status: Optional[AccountStatus] = None,
        assigned_zone_id: Optional[str] = _UNSET,
    ) -> Actor:
        """
        Change an actor's account status and/or assigned zone.

        Passing ``assigned_zone_id=None`` clears the assignment; leaving it
        out keeps the current one.

        Raises:
            AuthorizationError: Caller may not manage actors
            NotFoundError: Target actor or zone does not exist
        """
        require(actor, Operation.UPDATE_ACTOR)

        with self._lock:
            target = self._actors.get(actor_id)
            if target is None:
                raise NotFoundError("Actor", actor_id)

            changes: dict[str, Any] = {}
            if status is not None:
                changes["status"] = status
            if assigned_zone_id is not _UNSET:
                if (
                    assigned_zone_id is not None
                    and self._zones is not None
                    and not self._zones.exists(assigned_zone_id)
                ):
                    raise NotFoundError("Zone", assigned_zone_id)
                changes["assigned_zone_id"] = assigned_zone_id

            updated = replace(target, **changes)
            self._actors[actor_id] = updated
            try:
                self._save_to_file()
            except OSError:
                self._actors[actor_id] = target
                raise

        logger.info("Actor %s updated by %s: %s", actor_id, actor.actor_id, sorted(changes))
        return updated

"""
Zone Registry - Waste Accumulation Hotspots

Named geographic areas where plastic accumulates. Admins and super admins
maintain them; field officers and partners read them.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Final, Optional

from core.access import ActorContext, Operation, require
from core.errors import InvalidStateError, NotFoundError, ValidationError
from core.submission.repository import SubmissionRepository
from core.submission.validation import parse_decimal


logger = logging.getLogger(__name__)


# =============================================================================
# Enums & Constants
# =============================================================================


class ZoneStatus(Enum):
    """Status of a hotspot."""

    ACTIVE = "active"
    CRITICAL = "critical"
    CLEARED = "cleared"


# Fields an admin may change after creation
UPDATABLE_FIELDS: Final[tuple[str, ...]] = (
    "name",
    "description",
    "latitude",
    "longitude",
    "status",
    "estimated_volume",
    "accessibility",
    "partner_info",
)


def generate_zone_id() -> str:
    """Generate a unique zone ID."""
    return f"ZONE-{uuid.uuid4().hex[:12].upper()}"


# =============================================================================
# Data Model
# =============================================================================


@dataclass(frozen=True)
class Zone:
    """A named waste-accumulation area."""

    zone_id: str
    name: str
    latitude: Decimal
    longitude: Decimal
    status: ZoneStatus = ZoneStatus.ACTIVE
    estimated_volume: Decimal = Decimal("0")  # kg
    description: Optional[str] = None
    accessibility: Optional[str] = None  # Truck, Motorbike, On foot...
    partner_info: Optional[str] = None  # Instructions for recyclers
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "zone_id": self.zone_id,
            "name": self.name,
            "description": self.description,
            "latitude": str(self.latitude),
            "longitude": str(self.longitude),
            "status": self.status.value,
            "estimated_volume": str(self.estimated_volume),
            "accessibility": self.accessibility,
            "partner_info": self.partner_info,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Zone":
        return cls(
            zone_id=data["zone_id"],
            name=data["name"],
            description=data.get("description"),
            latitude=Decimal(data["latitude"]),
            longitude=Decimal(data["longitude"]),
            status=ZoneStatus(data.get("status", ZoneStatus.ACTIVE.value)),
            estimated_volume=Decimal(data.get("estimated_volume", "0")),
            accessibility=data.get("accessibility"),
            partner_info=data.get("partner_info"),
            created_at=datetime.fromisoformat(data["created_at"]),
        )


# =============================================================================
# Validation
# =============================================================================


def _validate_zone_fields(data: dict[str, Any], partial: bool) -> dict[str, Any]:
    """Parse zone fields, raising ValidationError with every problem found."""
    errors: list[str] = []
    clean: dict[str, Any] = {}

    unknown = sorted(set(data) - set(UPDATABLE_FIELDS))
    if unknown:
        errors.append(f"Unknown zone fields: {', '.join(unknown)}")

    if "name" in data or not partial:
        name = str(data.get("name") or "").strip()
        if not name:
            errors.append("Zone name is required")
        clean["name"] = name

    for key, limit in (("latitude", 90), ("longitude", 180)):
        if key in data or not partial:
            value = parse_decimal(data.get(key))
            if value is None or not Decimal(-limit) <= value <= Decimal(limit):
                errors.append(f"{key.capitalize()} must be a number between -{limit} and {limit}")
            clean[key] = value

    if "status" in data:
        try:
            clean["status"] = ZoneStatus(data["status"])
        except ValueError:
            errors.append(f"Invalid zone status: {data['status']}")

    if "estimated_volume" in data:
        volume = parse_decimal(data["estimated_volume"])
        if volume is None or volume < 0:
            errors.append("Estimated volume must be a non-negative number")
        clean["estimated_volume"] = volume

    for key in ("description", "accessibility", "partner_info"):
        if key in data:
            value = data[key]
            clean[key] = str(value).strip() or None if value is not None else None

    if errors:
        raise ValidationError("Zone is invalid", errors=errors)
    return clean


# =============================================================================
# Repository
# =============================================================================


class ZoneRepository:
    """
    Repository for zones.

    Uses JSON file persistence, swappable for database later.
    """

    def __init__(self, persist_path: Optional[str] = None):
        self._zones: dict[str, Zone] = {}
        self._lock = threading.Lock()
        self._persist_path = Path(persist_path) if persist_path else None

        if self._persist_path and self._persist_path.exists():
            self._load_from_file()

    def _save_to_file(self) -> None:
        if not self._persist_path:
            return

        data = {
            "zones": {zid: z.to_dict() for zid, z in self._zones.items()},
            "saved_at": datetime.now(timezone.utc).isoformat(),
        }
        self._persist_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._persist_path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(data, indent=2))
        tmp_path.replace(self._persist_path)

    def _load_from_file(self) -> None:
        try:
            data = json.loads(self._persist_path.read_text())
            for zid, zone_data in data.get("zones", {}).items():
                self._zones[zid] = Zone.from_dict(zone_data)
        except (json.JSONDecodeError, KeyError, ValueError) as e:
            logger.warning("Could not load zone data from %s: %s", self._persist_path, e)

    def save(self, zone: Zone) -> Zone:
        """Insert or replace a zone."""
        with self._lock:
            previous = self._zones.get(zone.zone_id)
            self._zones[zone.zone_id] = zone
            try:
                self._save_to_file()
            except OSError:
                if previous is None:
                    self._zones.pop(zone.zone_id, None)
                else:
                    self._zones[zone.zone_id] = previous
                raise
            return zone

    def get(self, zone_id: str) -> Optional[Zone]:
        with self._lock:
            return self._zones.get(zone_id)

    def exists(self, zone_id: str) -> bool:
        with self._lock:
            return zone_id in self._zones

    def remove(self, zone_id: str) -> bool:
        """Delete a zone. Returns False if it did not exist."""
        with self._lock:
            zone = self._zones.pop(zone_id, None)
            if zone is None:
                return False
            try:
                self._save_to_file()
            except OSError:
                self._zones[zone_id] = zone
                raise
            return True

    def list_all(self) -> list[Zone]:
        """All zones ordered by name."""
        with self._lock:
            zones = list(self._zones.values())
        return sorted(zones, key=lambda z: z.name.lower())


# =============================================================================
# Service
# =============================================================================


class ZoneService:
    """Authorization-gated zone operations."""

    def __init__(
        self,
        zones: ZoneRepository,
        submissions: Optional[SubmissionRepository] = None,
    ):
        self._zones = zones
        self._submissions = submissions

    def list_zones(self, actor: ActorContext) -> list[Zone]:
        require(actor, Operation.READ_ZONES)
        return self._zones.list_all()

    def get_zone(self, actor: ActorContext, zone_id: str) -> Zone:
        require(actor, Operation.READ_ZONES)
        zone = self._zones.get(zone_id)
        if zone is None:
            raise NotFoundError("Zone", zone_id)
        return zone

    def create_zone(self, actor: ActorContext, data: dict[str, Any]) -> Zone:
        """
        Create a zone.

        Raises:
            AuthorizationError: Actor may not write zones
            ValidationError: Name, coordinates, status or volume invalid
        """
        require(actor, Operation.WRITE_ZONES)
        fields = _validate_zone_fields(data, partial=False)
        zone = self._zones.save(Zone(zone_id=generate_zone_id(), **fields))
        logger.info("Zone %s (%s) created by %s", zone.zone_id, zone.name, actor.actor_id)
        return zone

    def update_zone(self, actor: ActorContext, zone_id: str, changes: dict[str, Any]) -> Zone:
        require(actor, Operation.WRITE_ZONES)
        zone = self._zones.get(zone_id)
        if zone is None:
            raise NotFoundError("Zone", zone_id)
        fields = _validate_zone_fields(changes, partial=True)
        updated = self._zones.save(replace(zone, **fields))
        logger.info("Zone %s updated by %s: %s", zone_id, actor.actor_id, sorted(fields))
        return updated

    def delete_zone(self, actor: ActorContext, zone_id: str) -> None:
        """
        Delete a zone that no submission references.

        Raises:
            InvalidStateError: Submissions still point at the zone
        """
        require(actor, Operation.WRITE_ZONES)
        if not self._zones.exists(zone_id):
            raise NotFoundError("Zone", zone_id)
        if self._submissions is not None and self._submissions.references_zone(zone_id):
            raise InvalidStateError("Cannot delete a zone that has submissions")
        self._zones.remove(zone_id)
        logger.info("Zone %s deleted by %s", zone_id, actor.actor_id)

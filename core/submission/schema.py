"""
Collection Submission Schema - Field Officer Submissions and Their Items

Defines the canonical shape of a collection submission: one field-collected
batch of plastic waste reported for moderation, plus its material/weight
line items.

Principles:
- Owner is always the authenticated actor, never client-supplied
- Exactly one of {existing zone, proposed new zone} per submission
- Creation-time fields are immutable; status changes produce a new value
- Total weight is derived from items, never stored
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Final, Optional


# =============================================================================
# Enums
# =============================================================================


class SubmissionStatus(Enum):
    """Moderation status of a submission."""

    # Initial state
    PENDING = "pending"

    # Terminal states
    VERIFIED = "verified"
    REJECTED = "rejected"


# =============================================================================
# Constants
# =============================================================================

TERMINAL_STATUSES: Final[frozenset[SubmissionStatus]] = frozenset({
    SubmissionStatus.VERIFIED,
    SubmissionStatus.REJECTED,
})

# Owner may still delete in these states
DELETABLE_STATUSES: Final[frozenset[SubmissionStatus]] = frozenset({
    SubmissionStatus.PENDING,
    SubmissionStatus.REJECTED,
})

# Common material codes offered by the collection form (not enforced)
COMMON_MATERIAL_TYPES: Final[tuple[str, ...]] = (
    "PET",
    "HDPE",
    "PP",
    "LDPE",
    "PS",
    "PVC",
    "OTHER",
)


# =============================================================================
# Helpers
# =============================================================================


def utc_now() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


def generate_submission_id() -> str:
    """Generate a unique submission ID."""
    return f"SUB-{uuid.uuid4().hex[:12].upper()}"


def generate_item_id() -> str:
    """Generate a unique submission item ID."""
    return f"ITEM-{uuid.uuid4().hex[:12].upper()}"


def _decimal_or_none(value: Optional[str]) -> Optional[Decimal]:
    return Decimal(value) if value is not None else None


# =============================================================================
# Submission Item
# =============================================================================


@dataclass(frozen=True)
class SubmissionItem:
    """One material-type/weight line within a submission."""

    item_id: str
    submission_id: str
    material_type: str
    weight: Decimal  # kg, >= 0
    bag_count: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "submission_id": self.submission_id,
            "material_type": self.material_type,
            "weight": str(self.weight),
            "bag_count": self.bag_count,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SubmissionItem":
        return cls(
            item_id=data["item_id"],
            submission_id=data["submission_id"],
            material_type=data["material_type"],
            weight=Decimal(data["weight"]),
            bag_count=data.get("bag_count"),
        )


# =============================================================================
# Submission
# =============================================================================


@dataclass(frozen=True)
class Submission:
    """
    A field-collected batch of waste reported for moderation.

    Instances are immutable. The repository swaps in a new value on
    status changes via ``with_status``.
    """

    # === IDENTITY ===
    submission_id: str
    owner_id: str

    # === LOCATION (exactly one of zone_id / new_zone_name) ===
    zone_id: Optional[str] = None
    new_zone_name: Optional[str] = None
    latitude: Optional[Decimal] = None
    longitude: Optional[Decimal] = None

    # === REPORT ===
    notes: Optional[str] = None
    evidence_ref: Optional[str] = None  # Opaque locator from evidence storage
    items: tuple[SubmissionItem, ...] = field(default_factory=tuple)

    # === METADATA (set by system) ===
    status: SubmissionStatus = SubmissionStatus.PENDING
    collected_at: datetime = field(default_factory=utc_now)

    @property
    def is_new_zone(self) -> bool:
        """True when the submission proposes a zone that does not exist yet."""
        return self.new_zone_name is not None

    @property
    def total_weight(self) -> Decimal:
        """Sum of item weights."""
        return sum((item.weight for item in self.items), Decimal("0"))

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_deletable(self) -> bool:
        return self.status in DELETABLE_STATUSES

    def with_status(self, status: SubmissionStatus) -> "Submission":
        """Copy of this submission with a different status."""
        return replace(self, status=status)

    def to_dict(self) -> dict:
        """Convert submission to dictionary for serialisation."""
        return {
            "submission_id": self.submission_id,
            "owner_id": self.owner_id,
            "zone_id": self.zone_id,
            "is_new_zone": self.is_new_zone,
            "new_zone_name": self.new_zone_name,
            "latitude": str(self.latitude) if self.latitude is not None else None,
            "longitude": str(self.longitude) if self.longitude is not None else None,
            "status": self.status.value,
            "notes": self.notes,
            "evidence_ref": self.evidence_ref,
            "collected_at": self.collected_at.isoformat(),
            "items": [item.to_dict() for item in self.items],
            "total_weight": str(self.total_weight),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Submission":
        """Create submission from dictionary."""
        return cls(
            submission_id=data["submission_id"],
            owner_id=data["owner_id"],
            zone_id=data.get("zone_id"),
            new_zone_name=data.get("new_zone_name"),
            latitude=_decimal_or_none(data.get("latitude")),
            longitude=_decimal_or_none(data.get("longitude")),
            notes=data.get("notes"),
            evidence_ref=data.get("evidence_ref"),
            items=tuple(SubmissionItem.from_dict(i) for i in data.get("items", [])),
            status=SubmissionStatus(data.get("status", SubmissionStatus.PENDING.value)),
            collected_at=datetime.fromisoformat(data["collected_at"]),
        )

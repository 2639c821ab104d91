"""
Submission Aggregation - Read-Side Totals for Dashboards

One pure function derives every collection total the dashboards show:
weights, material composition, per-zone volume, per-officer totals and
monthly volume. Nothing here reads or writes a repository.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from decimal import Decimal
from typing import Final, Iterable

from core.submission.schema import Submission, SubmissionStatus


# Zones above this estimated volume (kg) are worth a pickup run
DEFAULT_PICKUP_THRESHOLD: Final[Decimal] = Decimal("100")

UNKNOWN_ZONE: Final[str] = "Unknown"


def _ranked(totals: dict[str, Decimal]) -> dict[str, Decimal]:
    """Order a totals mapping heaviest first, then by key."""
    return dict(sorted(totals.items(), key=lambda kv: (-kv[1], kv[0])))


@dataclass(frozen=True)
class SubmissionAggregate:
    """Derived totals over a set of submissions."""

    submission_count: int
    status_counts: dict[str, int]
    total_weight: Decimal
    material_weights: dict[str, Decimal]
    zone_weights: dict[str, Decimal]
    officer_weights: dict[str, Decimal]
    monthly_weights: dict[str, Decimal]

    def to_dict(self) -> dict:
        return {
            "submission_count": self.submission_count,
            "status_counts": dict(self.status_counts),
            "total_weight": str(self.total_weight),
            "material_weights": {k: str(v) for k, v in self.material_weights.items()},
            "zone_weights": {k: str(v) for k, v in self.zone_weights.items()},
            "officer_weights": {k: str(v) for k, v in self.officer_weights.items()},
            "monthly_weights": {k: str(v) for k, v in self.monthly_weights.items()},
        }


def aggregate_submissions(
    submissions: Iterable[Submission],
    zones: Iterable = (),
    statuses: Iterable[SubmissionStatus] = (SubmissionStatus.VERIFIED,),
) -> SubmissionAggregate:
    """
    Aggregate submissions into dashboard totals.

    Status counts cover every submission passed in. Weight totals only
    include submissions whose status is in ``statuses`` (verified only by
    default, matching what the reports count as collected).

    Args:
        submissions: Submissions with items attached
        zones: Zones used to resolve zone names (anything with zone_id/name)
        statuses: Statuses whose weights are counted

    Returns:
        SubmissionAggregate
    """
    zone_names = {zone.zone_id: zone.name for zone in zones}
    counted = frozenset(statuses)

    status_counts: Counter = Counter({status.value: 0 for status in SubmissionStatus})
    material: dict[str, Decimal] = {}
    by_zone: dict[str, Decimal] = {}
    by_officer: dict[str, Decimal] = {}
    by_month: dict[str, Decimal] = {}
    total = Decimal("0")
    count = 0

    for submission in submissions:
        count += 1
        status_counts[submission.status.value] += 1
        if submission.status not in counted:
            continue

        weight = submission.total_weight
        total += weight

        for item in submission.items:
            key = item.material_type.upper()
            material[key] = material.get(key, Decimal("0")) + item.weight

        zone_key = (
            zone_names.get(submission.zone_id)
            if submission.zone_id
            else submission.new_zone_name
        ) or UNKNOWN_ZONE
        by_zone[zone_key] = by_zone.get(zone_key, Decimal("0")) + weight

        by_officer[submission.owner_id] = by_officer.get(submission.owner_id, Decimal("0")) + weight

        month = submission.collected_at.strftime("%Y-%m")
        by_month[month] = by_month.get(month, Decimal("0")) + weight

    return SubmissionAggregate(
        submission_count=count,
        status_counts=dict(status_counts),
        total_weight=total,
        material_weights=_ranked(material),
        zone_weights=_ranked(by_zone),
        officer_weights=_ranked(by_officer),
        monthly_weights=dict(sorted(by_month.items())),
    )


def zones_ready_for_pickup(zones: Iterable, threshold: Decimal = DEFAULT_PICKUP_THRESHOLD) -> list:
    """Critical zones and zones whose estimated volume exceeds the threshold."""
    ready = [
        zone for zone in zones
        if zone.status.value == "critical" or zone.estimated_volume > threshold
    ]
    return sorted(ready, key=lambda z: z.estimated_volume, reverse=True)

"""
Submission Validation - Validation Logic for Collection Submissions

Implements strict validation for collection submissions.
Nothing is created unless the whole payload (submission and every item)
is valid. No fallback or inferred values are inserted.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Final, Optional

from core.errors import ValidationError
from core.submission.schema import (
    Submission,
    SubmissionItem,
    SubmissionStatus,
    generate_item_id,
    generate_submission_id,
    utc_now,
)


# Heaviest single line item accepted (kg)
MAX_ITEM_WEIGHT_KG: Final[Decimal] = Decimal("100000")


# =============================================================================
# Validation Result
# =============================================================================


@dataclass(frozen=True)
class SubmissionValidationResult:
    """
    Result of submission validation.

    Contains validation outcome, missing items, and error messages.
    """

    valid: bool
    missing_fields: tuple[str, ...]
    errors: tuple[str, ...]

    @property
    def is_blocked(self) -> bool:
        """Check if submission is blocked due to validation errors."""
        return not self.valid

    def to_dict(self) -> dict:
        """Convert result to dictionary."""
        return {
            "valid": self.valid,
            "is_blocked": self.is_blocked,
            "missing_fields": list(self.missing_fields),
            "errors": list(self.errors),
        }


# =============================================================================
# Field Parsers
# =============================================================================


def _clean_text(value: Any) -> Optional[str]:
    """Strip strings; treat blank as absent."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_decimal(value: Any) -> Optional[Decimal]:
    """
    Parse a finite decimal from user input.

    Returns None when the value is not a finite number.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


def _parse_items(raw_items: Any, errors: list[str]) -> list[dict[str, Any]]:
    """Validate the items array; append errors and return parsed rows."""
    if raw_items is None:
        return []
    if not isinstance(raw_items, (list, tuple)):
        errors.append("Items must be a list")
        return []

    parsed: list[dict[str, Any]] = []
    for index, raw in enumerate(raw_items, start=1):
        if not isinstance(raw, dict):
            errors.append(f"Item {index} must be an object")
            continue

        material_type = _clean_text(raw.get("material_type"))
        if not material_type:
            errors.append(f"Item {index}: please select a material type")

        weight = parse_decimal(raw.get("weight"))
        if weight is None:
            errors.append(f"Item {index}: weight must be a number")
        elif weight < 0:
            errors.append(f"Item {index}: weight cannot be negative")
        elif weight > MAX_ITEM_WEIGHT_KG:
            errors.append(f"Item {index}: weight cannot exceed {MAX_ITEM_WEIGHT_KG} kg")

        bag_count = raw.get("bag_count")
        if bag_count is not None:
            if isinstance(bag_count, bool) or not isinstance(bag_count, int):
                try:
                    bag_count = int(str(bag_count).strip())
                except ValueError:
                    errors.append(f"Item {index}: bag count must be a whole number")
                    bag_count = None
            if bag_count is not None and bag_count < 0:
                errors.append(f"Item {index}: bag count cannot be negative")

        parsed.append({
            "material_type": material_type,
            "weight": weight,
            "bag_count": bag_count,
        })
    return parsed


# =============================================================================
# Validation Functions
# =============================================================================


def _check_submission_data(
    data: dict[str, Any],
) -> tuple[SubmissionValidationResult, list[dict[str, Any]], tuple]:
    errors: list[str] = []
    missing_fields: list[str] = []

    # === Zone: exactly one of existing zone / new zone name ===
    zone_id = _clean_text(data.get("zone_id"))
    new_zone_name = _clean_text(data.get("new_zone_name"))

    if zone_id and new_zone_name:
        errors.append("Choose an existing zone or name a new one, not both")
    elif not zone_id and not new_zone_name:
        missing_fields.append("zone_id")
        errors.append("Please select a zone or name a new one")

    is_new_zone = data.get("is_new_zone")
    if is_new_zone is not None and not (zone_id and new_zone_name):
        if bool(is_new_zone) and not new_zone_name:
            errors.append("A new zone needs a name")
        elif not bool(is_new_zone) and new_zone_name:
            errors.append("A new zone name was given but the zone is not marked as new")

    # === Geolocation: both or neither ===
    raw_lat = data.get("latitude")
    raw_lng = data.get("longitude")
    latitude = longitude = None
    if (raw_lat is None) != (raw_lng is None):
        errors.append("Latitude and longitude must be provided together")
    elif raw_lat is not None:
        latitude = parse_decimal(raw_lat)
        longitude = parse_decimal(raw_lng)
        if latitude is None or not Decimal(-90) <= latitude <= Decimal(90):
            errors.append("Latitude must be a number between -90 and 90")
        if longitude is None or not Decimal(-180) <= longitude <= Decimal(180):
            errors.append("Longitude must be a number between -180 and 180")

    # === Items ===
    items = _parse_items(data.get("items"), errors)

    result = SubmissionValidationResult(
        valid=not errors,
        missing_fields=tuple(missing_fields),
        errors=tuple(errors),
    )
    return result, items, (zone_id, new_zone_name, latitude, longitude)


def validate_submission_data(data: dict[str, Any]) -> SubmissionValidationResult:
    """
    Validate raw submission data before creating a Submission.

    Args:
        data: Raw submission data dictionary

    Returns:
        SubmissionValidationResult with validation outcome
    """
    result, _, _ = _check_submission_data(data)
    return result


# =============================================================================
# Submission Construction
# =============================================================================


def build_submission(owner_id: str, data: dict[str, Any]) -> Submission:
    """
    Build a pending Submission (with items) from raw data.

    Args:
        owner_id: Authenticated actor ID. Any owner in ``data`` is ignored.
        data: Raw submission data dictionary

    Returns:
        New Submission in PENDING status

    Raises:
        ValidationError: If any field or item is invalid
    """
    result, items, location = _check_submission_data(data)
    if result.is_blocked:
        raise ValidationError("Submission is invalid", errors=result.errors)

    zone_id, new_zone_name, latitude, longitude = location
    submission_id = generate_submission_id()

    return Submission(
        submission_id=submission_id,
        owner_id=owner_id,
        zone_id=zone_id,
        new_zone_name=new_zone_name,
        latitude=latitude,
        longitude=longitude,
        notes=_clean_text(data.get("notes")),
        evidence_ref=_clean_text(data.get("evidence_ref")),
        items=tuple(
            SubmissionItem(
                item_id=generate_item_id(),
                submission_id=submission_id,
                material_type=item["material_type"],
                weight=item["weight"],
                bag_count=item["bag_count"],
            )
            for item in items
        ),
        status=SubmissionStatus.PENDING,
        collected_at=utc_now(),
    )

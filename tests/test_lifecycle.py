"""
Tests for the Submission Lifecycle

Tests covering:
1. Create: owner is the actor, items persisted, nothing stored on failure
2. List: field officers see only their own submissions
3. Transition: one-directional, idempotent, admin-only
4. Delete: owner only, never verified, items cascade
5. End-to-end collection scenarios
"""

from __future__ import annotations

import tempfile
from decimal import Decimal
from pathlib import Path

import pytest

from core.access import AccountStatus, ActorContext, Role
from core.errors import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from core.submission import (
    ALLOWED_TRANSITIONS,
    SubmissionLifecycle,
    SubmissionRepository,
    SubmissionStatus,
    can_transition,
    is_reachable,
)
from core.submission import lifecycle as lifecycle_module
from core.zones import Zone, ZoneRepository


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def temp_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def repository(temp_dir):
    return SubmissionRepository(persist_path=str(temp_dir / "submissions.json"))


@pytest.fixture
def zones(temp_dir):
    repo = ZoneRepository(persist_path=str(temp_dir / "zones.json"))
    repo.save(Zone(zone_id="ZONE-BEACH", name="Beach", latitude=Decimal("-6.8"), longitude=Decimal("39.2")))
    return repo


@pytest.fixture
def lifecycle(repository, zones):
    return SubmissionLifecycle(repository, zones=zones)


@pytest.fixture
def officer():
    return ActorContext(actor_id="USR-F1", role=Role.FIELD_OFFICER)


@pytest.fixture
def other_officer():
    return ActorContext(actor_id="USR-F2", role=Role.FIELD_OFFICER)


@pytest.fixture
def admin():
    return ActorContext(actor_id="USR-ADMIN", role=Role.ADMIN)


@pytest.fixture
def partner():
    return ActorContext(actor_id="USR-PARTNER", role=Role.PARTNER)


@pytest.fixture
def payload():
    return {
        "zone_id": "ZONE-BEACH",
        "items": [
            {"material_type": "PET", "weight": "10.5"},
            {"material_type": "HDPE", "weight": "4.0"},
        ],
    }


@pytest.fixture
def pending(lifecycle, officer, payload):
    return lifecycle.create_submission(officer, payload)


# =============================================================================
# Transition Table Tests
# =============================================================================


class TestTransitionTable:
    """Transitions only ever leave pending."""

    def test_pending_moves_to_terminal_states(self):
        assert can_transition(SubmissionStatus.PENDING, SubmissionStatus.VERIFIED)
        assert can_transition(SubmissionStatus.PENDING, SubmissionStatus.REJECTED)

    @pytest.mark.parametrize("current", [SubmissionStatus.VERIFIED, SubmissionStatus.REJECTED])
    def test_terminal_states_are_final(self, current):
        assert ALLOWED_TRANSITIONS[current] == frozenset()
        for target in SubmissionStatus:
            assert not can_transition(current, target)

    def test_nothing_returns_to_pending(self):
        for current in SubmissionStatus:
            assert not can_transition(current, SubmissionStatus.PENDING)

    def test_reachable_targets(self):
        assert is_reachable(SubmissionStatus.VERIFIED)
        assert is_reachable(SubmissionStatus.REJECTED)
        assert not is_reachable(SubmissionStatus.PENDING)


# =============================================================================
# Create Tests
# =============================================================================


class TestCreate:
    """Tests for create_submission."""

    def test_creates_pending_owned_by_actor(self, lifecycle, officer, payload):
        payload["owner_id"] = "USR-F2"
        submission = lifecycle.create_submission(officer, payload)
        assert submission.status == SubmissionStatus.PENDING
        assert submission.owner_id == officer.actor_id

    def test_new_zone_proposal(self, lifecycle, officer, repository):
        submission = lifecycle.create_submission(officer, {"new_zone_name": "Mangrove edge"})
        assert submission.is_new_zone
        assert submission.zone_id is None
        assert repository.count_items(submission.submission_id) == 0

    @pytest.mark.parametrize("zone_fields", [
        {},
        {"zone_id": "ZONE-BEACH", "new_zone_name": "Mangrove edge"},
    ])
    def test_zone_exclusivity_stores_nothing(self, lifecycle, officer, repository, payload, zone_fields):
        payload.pop("zone_id")
        payload.update(zone_fields)
        with pytest.raises(ValidationError):
            lifecycle.create_submission(officer, payload)
        assert repository.count() == 0
        assert repository.count_items() == 0

    def test_bad_item_stores_nothing(self, lifecycle, officer, repository, payload):
        payload["items"].append({"material_type": "PP", "weight": "-2"})
        with pytest.raises(ValidationError):
            lifecycle.create_submission(officer, payload)
        assert repository.count() == 0
        assert repository.count_items() == 0

    def test_oversized_weight_stores_nothing(self, lifecycle, officer, admin, repository):
        """A weight too large to total is refused before the write."""
        data = {"new_zone_name": "X", "items": [{"material_type": "PET", "weight": "1e1000000"}]}
        with pytest.raises(ValidationError):
            lifecycle.create_submission(officer, data)
        assert repository.count() == 0
        assert repository.count_items() == 0
        assert lifecycle.list_submissions(admin) == []

    def test_unknown_zone(self, lifecycle, officer, repository, payload):
        payload["zone_id"] = "ZONE-NOWHERE"
        with pytest.raises(NotFoundError):
            lifecycle.create_submission(officer, payload)
        assert repository.count() == 0

    def test_suspended_denied_before_any_write(self, lifecycle, repository, payload):
        suspended = ActorContext(
            actor_id="USR-F1",
            role=Role.FIELD_OFFICER,
            status=AccountStatus.SUSPENDED,
        )
        with pytest.raises(AuthorizationError):
            lifecycle.create_submission(suspended, payload)
        assert repository.count() == 0
        assert repository.count_items() == 0

    @pytest.mark.parametrize("role", [Role.ADMIN, Role.SUPER_ADMIN, Role.PARTNER])
    def test_only_field_officers_create(self, lifecycle, payload, role):
        with pytest.raises(AuthorizationError):
            lifecycle.create_submission(ActorContext(actor_id="USR-X", role=role), payload)

    def test_authorization_checked_before_validation(self, lifecycle, partner):
        """A denied actor learns nothing about payload problems."""
        with pytest.raises(AuthorizationError):
            lifecycle.create_submission(partner, {})


# =============================================================================
# List & Get Tests
# =============================================================================


class TestListAndGet:
    """Tests for read visibility."""

    def test_round_trip_with_exact_weights(self, lifecycle, officer, pending):
        listed = lifecycle.list_submissions(officer)
        assert len(listed) == 1
        assert listed[0].submission_id == pending.submission_id
        weights = sorted(item.weight for item in listed[0].items)
        assert weights == [Decimal("4.0"), Decimal("10.5")]
        assert listed[0].total_weight == Decimal("14.5")

    def test_officer_sees_only_own(self, lifecycle, officer, other_officer, payload, pending):
        lifecycle.create_submission(other_officer, payload)
        assert [s.owner_id for s in lifecycle.list_submissions(officer)] == [officer.actor_id]
        assert [s.owner_id for s in lifecycle.list_submissions(other_officer)] == [other_officer.actor_id]

    @pytest.mark.parametrize("role", [Role.ADMIN, Role.SUPER_ADMIN, Role.PARTNER])
    def test_other_roles_see_all(self, lifecycle, other_officer, payload, pending, role):
        lifecycle.create_submission(other_officer, payload)
        viewer = ActorContext(actor_id="USR-VIEWER", role=role)
        assert len(lifecycle.list_submissions(viewer)) == 2

    def test_get_other_officers_submission_is_not_found(self, lifecycle, other_officer, pending):
        with pytest.raises(NotFoundError):
            lifecycle.get_submission(other_officer, pending.submission_id)

    def test_admin_gets_any_submission(self, lifecycle, admin, pending):
        assert lifecycle.get_submission(admin, pending.submission_id).submission_id == pending.submission_id


# =============================================================================
# Transition Tests
# =============================================================================


class TestTransition:
    """Tests for transition_submission_status."""

    def test_admin_verifies(self, lifecycle, admin, pending):
        result = lifecycle.transition_submission_status(admin, pending.submission_id, "verified")
        assert result.submission.status == SubmissionStatus.VERIFIED
        assert not result.already_in_target
        assert result.note is None

    def test_repeat_is_idempotent(self, lifecycle, admin, pending, repository):
        lifecycle.transition_submission_status(admin, pending.submission_id, SubmissionStatus.VERIFIED)
        result = lifecycle.transition_submission_status(admin, pending.submission_id, SubmissionStatus.VERIFIED)
        assert result.already_in_target
        assert result.note == "Submission already verified"
        assert repository.get(pending.submission_id).status == SubmissionStatus.VERIFIED

    def test_verified_cannot_be_rejected(self, lifecycle, admin, pending):
        lifecycle.transition_submission_status(admin, pending.submission_id, "verified")
        with pytest.raises(InvalidStateError) as exc_info:
            lifecycle.transition_submission_status(admin, pending.submission_id, "rejected")
        assert exc_info.value.current_status == "verified"

    def test_rejected_cannot_be_verified(self, lifecycle, admin, pending):
        lifecycle.transition_submission_status(admin, pending.submission_id, "rejected")
        with pytest.raises(InvalidStateError):
            lifecycle.transition_submission_status(admin, pending.submission_id, "verified")

    def test_decisions_follow_the_transition_table(self, lifecycle, admin, pending, monkeypatch):
        """Widening the table is enough to allow a new move."""
        lifecycle.transition_submission_status(admin, pending.submission_id, "rejected")
        monkeypatch.setitem(
            lifecycle_module.ALLOWED_TRANSITIONS,
            SubmissionStatus.REJECTED,
            frozenset({SubmissionStatus.VERIFIED}),
        )
        result = lifecycle.transition_submission_status(admin, pending.submission_id, "verified")
        assert result.submission.status == SubmissionStatus.VERIFIED
        assert not result.already_in_target

    def test_concurrent_moderation_is_decided_on_fresh_state(self, lifecycle, admin, pending, repository, monkeypatch):
        """A stale read still cannot overwrite another moderator's decision."""
        stale = repository.get(pending.submission_id)
        repository.update_status_if(pending.submission_id, SubmissionStatus.PENDING, SubmissionStatus.VERIFIED)
        monkeypatch.setattr(repository, "get", lambda submission_id: stale)

        with pytest.raises(InvalidStateError) as exc_info:
            lifecycle.transition_submission_status(admin, pending.submission_id, "rejected")
        assert exc_info.value.current_status == "verified"

        result = lifecycle.transition_submission_status(admin, pending.submission_id, "verified")
        assert result.already_in_target

    def test_pending_target_is_invalid_state(self, lifecycle, admin, pending):
        with pytest.raises(InvalidStateError):
            lifecycle.transition_submission_status(admin, pending.submission_id, "pending")

    def test_unknown_target_is_validation_error(self, lifecycle, admin, pending):
        with pytest.raises(ValidationError):
            lifecycle.transition_submission_status(admin, pending.submission_id, "approved")

    def test_missing_submission(self, lifecycle, admin):
        with pytest.raises(NotFoundError):
            lifecycle.transition_submission_status(admin, "SUB-MISSING", "verified")

    @pytest.mark.parametrize("status", ["pending", "verified", "rejected"])
    def test_partner_denied_regardless_of_state(self, lifecycle, admin, partner, pending, repository, status):
        if status != "pending":
            lifecycle.transition_submission_status(admin, pending.submission_id, status)
        with pytest.raises(AuthorizationError):
            lifecycle.transition_submission_status(partner, pending.submission_id, "verified")
        assert repository.get(pending.submission_id).status.value == status

    def test_field_officer_cannot_moderate_own(self, lifecycle, officer, pending):
        with pytest.raises(AuthorizationError):
            lifecycle.transition_submission_status(officer, pending.submission_id, "verified")

    def test_authorization_before_existence(self, lifecycle, partner):
        with pytest.raises(AuthorizationError):
            lifecycle.transition_submission_status(partner, "SUB-MISSING", "verified")

    def test_suspended_admin_denied(self, lifecycle, pending):
        suspended = ActorContext(actor_id="USR-ADMIN", role=Role.ADMIN, status=AccountStatus.SUSPENDED)
        with pytest.raises(AuthorizationError):
            lifecycle.transition_submission_status(suspended, pending.submission_id, "verified")


# =============================================================================
# Delete Tests
# =============================================================================


class TestDelete:
    """Tests for delete_submission."""

    def test_owner_deletes_pending(self, lifecycle, officer, pending, repository):
        lifecycle.delete_submission(officer, pending.submission_id)
        assert repository.get(pending.submission_id) is None
        assert repository.count_items(pending.submission_id) == 0

    def test_verified_never_deletable(self, lifecycle, officer, admin, pending, repository):
        lifecycle.transition_submission_status(admin, pending.submission_id, "verified")
        with pytest.raises(InvalidStateError) as exc_info:
            lifecycle.delete_submission(officer, pending.submission_id)
        assert "verified" in str(exc_info.value)
        assert repository.count_items(pending.submission_id) == 2

    def test_non_owner_gets_not_found(self, lifecycle, other_officer, pending, repository):
        with pytest.raises(NotFoundError):
            lifecycle.delete_submission(other_officer, pending.submission_id)
        assert repository.get(pending.submission_id) is not None

    @pytest.mark.parametrize("role", [Role.ADMIN, Role.SUPER_ADMIN, Role.PARTNER])
    def test_other_roles_cannot_delete(self, lifecycle, pending, role):
        with pytest.raises(AuthorizationError):
            lifecycle.delete_submission(ActorContext(actor_id="USR-X", role=role), pending.submission_id)

    def test_suspended_owner_cannot_delete(self, lifecycle, pending):
        suspended = ActorContext(actor_id="USR-F1", role=Role.FIELD_OFFICER, status=AccountStatus.SUSPENDED)
        with pytest.raises(AuthorizationError):
            lifecycle.delete_submission(suspended, pending.submission_id)

    def test_missing_submission(self, lifecycle, officer):
        with pytest.raises(NotFoundError):
            lifecycle.delete_submission(officer, "SUB-MISSING")


# =============================================================================
# Scenario Tests
# =============================================================================


class TestScenarios:
    """End-to-end flows through the lifecycle."""

    def test_reject_then_delete(self, lifecycle, officer, admin, payload, repository):
        submission = lifecycle.create_submission(officer, payload)
        assert submission.total_weight == Decimal("14.5")

        result = lifecycle.transition_submission_status(admin, submission.submission_id, "rejected")
        assert result.submission.status == SubmissionStatus.REJECTED

        lifecycle.delete_submission(officer, submission.submission_id)
        assert lifecycle.list_submissions(officer) == []
        assert repository.count_items() == 0

    def test_verified_stays_after_failed_delete(self, lifecycle, officer, admin, payload):
        submission = lifecycle.create_submission(officer, payload)
        lifecycle.transition_submission_status(admin, submission.submission_id, "verified")

        with pytest.raises(InvalidStateError):
            lifecycle.delete_submission(officer, submission.submission_id)

        listed = lifecycle.list_submissions(officer)
        assert [s.status for s in listed] == [SubmissionStatus.VERIFIED]

"""
Submission Lifecycle - Moderation State Machine for Collection Submissions

Transition table:

    (none)   -> pending    field officer (creator), items attached atomically
    pending  -> verified   admin, super admin
    pending  -> rejected   admin, super admin
    pending  -> (deleted)  owning field officer, items cascade-deleted
    rejected -> (deleted)  owning field officer, items cascade-deleted

Nothing leaves ``verified`` and nothing re-enters ``pending``.

Every operation takes an explicit ActorContext and is authorized by the
access gate before any repository write.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final, Optional, Union

from core.access import ActorContext, Operation, Role, Scope, require
from core.errors import InvalidStateError, NotFoundError, ValidationError
from core.submission.repository import SubmissionRepository
from core.submission.schema import (
    DELETABLE_STATUSES,
    Submission,
    SubmissionStatus,
)
from core.submission.validation import build_submission

if TYPE_CHECKING:
    from core.zones import ZoneRepository


logger = logging.getLogger(__name__)


# =============================================================================
# Transition Table
# =============================================================================

ALLOWED_TRANSITIONS: Final[dict[SubmissionStatus, frozenset[SubmissionStatus]]] = {
    SubmissionStatus.PENDING: frozenset({SubmissionStatus.VERIFIED, SubmissionStatus.REJECTED}),
    SubmissionStatus.VERIFIED: frozenset(),
    SubmissionStatus.REJECTED: frozenset(),
}


def can_transition(current: SubmissionStatus, target: SubmissionStatus) -> bool:
    """Definitive transition check."""
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def is_reachable(target: SubmissionStatus) -> bool:
    """True when some transition leads into ``target``."""
    return any(target in allowed for allowed in ALLOWED_TRANSITIONS.values())


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class TransitionResult:
    """
    Outcome of a status transition.

    ``already_in_target`` is True when the submission was already in the
    requested state and nothing was written.
    """

    submission: Submission
    already_in_target: bool = False

    @property
    def note(self) -> Optional[str]:
        if self.already_in_target:
            return f"Submission already {self.submission.status.value}"
        return None

    def to_dict(self) -> dict:
        return {
            "submission": self.submission.to_dict(),
            "already_in_target": self.already_in_target,
            "note": self.note,
        }


# =============================================================================
# Lifecycle Manager
# =============================================================================


class SubmissionLifecycle:
    """
    Create, read, moderate and delete collection submissions.

    Args:
        repository: Submission store with conditional writes
        zones: Optional zone store used to check referenced zones exist
    """

    def __init__(
        self,
        repository: SubmissionRepository,
        zones: Optional["ZoneRepository"] = None,
    ):
        self._repository = repository
        self._zones = zones

    # =========================================================================
    # Create
    # =========================================================================

    def create_submission(self, actor: ActorContext, data: dict[str, Any]) -> Submission:
        """
        Create a pending submission owned by the actor.

        Args:
            actor: Authenticated field officer
            data: Raw payload (zone_id | new_zone_name, items, latitude,
                  longitude, notes, evidence_ref). Any owner field is ignored.

        Returns:
            Stored Submission in PENDING status

        Raises:
            AuthorizationError: Actor is suspended or not a field officer
            ValidationError: Payload or any item is invalid
            NotFoundError: Referenced zone does not exist
        """
        require(actor, Operation.CREATE_SUBMISSION, resource_owner_id=actor.actor_id)

        submission = build_submission(actor.actor_id, data)

        if (
            submission.zone_id is not None
            and self._zones is not None
            and not self._zones.exists(submission.zone_id)
        ):
            raise NotFoundError("Zone", submission.zone_id)

        stored = self._repository.add(submission)
        logger.info(
            "Submission %s created by %s with %d items (%s kg)",
            stored.submission_id,
            actor.actor_id,
            len(stored.items),
            stored.total_weight,
        )
        return stored

    # =========================================================================
    # Read
    # =========================================================================

    def list_submissions(self, actor: ActorContext) -> list[Submission]:
        """
        List submissions visible to the actor.

        Field officers see their own; every other role sees all.
        Most recently collected first.
        """
        scope = require(actor, Operation.LIST_SUBMISSIONS)
        if scope == Scope.OWN:
            return self._repository.list_by_owner(actor.actor_id)
        return self._repository.list_all()

    def _get_visible(self, actor: ActorContext, submission_id: str) -> Submission:
        """Fetch a submission, hiding ones the actor could not list."""
        submission = self._repository.get(submission_id)
        if submission is None:
            raise NotFoundError("Submission", submission_id)
        if actor.role == Role.FIELD_OFFICER and submission.owner_id != actor.actor_id:
            raise NotFoundError("Submission", submission_id)
        return submission

    def get_submission(self, actor: ActorContext, submission_id: str) -> Submission:
        """Get one submission under the list visibility rule."""
        require(actor, Operation.LIST_SUBMISSIONS)
        return self._get_visible(actor, submission_id)

    # =========================================================================
    # Moderate
    # =========================================================================

    def transition_submission_status(
        self,
        actor: ActorContext,
        submission_id: str,
        target: Union[SubmissionStatus, str],
    ) -> TransitionResult:
        """
        Move a pending submission to verified or rejected.

        Repeating the same transition is a no-op reported through
        ``TransitionResult.already_in_target``.

        Raises:
            AuthorizationError: Actor is not an active admin or super admin
            ValidationError: Target is not a known status
            InvalidStateError: Target is pending, or submission already
                moderated to the other terminal state
            NotFoundError: Submission does not exist
        """
        require(actor, Operation.TRANSITION_SUBMISSION)

        if not isinstance(target, SubmissionStatus):
            try:
                target = SubmissionStatus(str(target).strip().lower())
            except ValueError:
                raise ValidationError(f"Invalid status: {target}")

        if not is_reachable(target):
            raise InvalidStateError(f"Submissions cannot be moved to {target.value}")

        submission = self._repository.get(submission_id)
        if submission is None:
            raise NotFoundError("Submission", submission_id)

        while True:
            current = submission.status
            if current == target:
                logger.info("Submission %s already %s", submission_id, target.value)
                return TransitionResult(submission=submission, already_in_target=True)

            if not can_transition(current, target):
                raise InvalidStateError(
                    f"Cannot change a {current.value} submission to {target.value}",
                    current_status=current.value,
                )

            outcome = self._repository.update_status_if(
                submission_id,
                expected=current,
                new_status=target,
            )
            if outcome.current is None:
                raise NotFoundError("Submission", submission_id)

            if outcome.applied:
                logger.info(
                    "Submission %s moved %s -> %s by %s",
                    submission_id,
                    current.value,
                    target.value,
                    actor.actor_id,
                )
                return TransitionResult(submission=outcome.current)

            # Moved by someone else since the read; decide again from its new state
            submission = outcome.current

    # =========================================================================
    # Delete
    # =========================================================================

    def delete_submission(self, actor: ActorContext, submission_id: str) -> None:
        """
        Delete the actor's own pending or rejected submission and its items.

        Raises:
            AuthorizationError: Actor is suspended or lacks delete rights
            NotFoundError: Submission missing or owned by someone else
            InvalidStateError: Submission is verified
        """
        require(actor, Operation.DELETE_SUBMISSION)

        submission = self._get_visible(actor, submission_id)
        require(actor, Operation.DELETE_SUBMISSION, resource_owner_id=submission.owner_id)

        if not submission.is_deletable:
            raise InvalidStateError(
                f"Cannot delete a {submission.status.value} submission",
                current_status=submission.status.value,
            )

        outcome = self._repository.delete_if(submission_id, DELETABLE_STATUSES)
        if outcome.current is None:
            raise NotFoundError("Submission", submission_id)
        if not outcome.applied:
            # Moderated between the read and the delete
            raise InvalidStateError(
                f"Cannot delete a {outcome.current.status.value} submission",
                current_status=outcome.current.status.value,
            )

        logger.info(
            "Submission %s (%s) deleted by %s with %d items",
            submission_id,
            submission.status.value,
            actor.actor_id,
            len(outcome.current.items),
        )

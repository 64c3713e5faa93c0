"""
Fixture Result Workflow

State machine per fixture:

    scheduled -> submitted -> confirmed -> finalized
    scheduled | submitted | confirmed -> disputed
    any non-terminal -> cancelled

finalized and cancelled are terminal. Every command validates all of its
preconditions first, then applies its writes and commits once.

Submissions by organizers (owner/admin) are accepted on the spot. A
participant submission stays pending until the other side (or an organizer)
confirms it; a reject vote disputes the fixture and waits for an organizer to
resolve it.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Set

from sqlmodel import Session, select

from matup.models.fixture import (
    FIXTURE_CANCELLED,
    FIXTURE_CONFIRMED,
    FIXTURE_DISPUTED,
    FIXTURE_FINALIZED,
    FIXTURE_SCHEDULED,
    FIXTURE_SUBMITTED,
    FIXTURE_TERMINAL_STATUSES,
    SIDE_A,
    SIDE_B,
    Fixture,
    FixtureParticipant,
)
from matup.models.result_submission import (
    CONFIRMING_SIDE_ORGANIZER,
    DECISION_CONFIRM,
    DECISION_REJECT,
    SOURCE_ORGANIZER,
    SOURCE_PARTICIPANT,
    SUBMISSION_ACCEPTED,
    SUBMISSION_PENDING,
    SUBMISSION_REJECTED,
    SUBMISSION_SUPERSEDED,
    ResultConfirmation,
    ResultSubmission,
)
from matup.services.errors import AuthorizationError, NotFoundError, StateConflictError, ValidationError
from matup.utils.league_access import is_league_admin_role, require_admin, require_member
from matup.utils.league_dates import utc_now

logger = logging.getLogger(__name__)

CONFIRMABLE_FIXTURE_STATUSES = frozenset({FIXTURE_SUBMITTED, FIXTURE_CONFIRMED})


@dataclass
class ResultCommandOutcome:
    success: bool
    finalized: bool
    disputed: Optional[bool] = None
    submission_id: Optional[int] = None
    submission: Optional[ResultSubmission] = None


def as_object(value: Any) -> Dict[str, Any]:
    if isinstance(value, Mapping):
        return dict(value)
    return {}


def get_fixture_or_404(session: Session, fixture_id: int) -> Fixture:
    fixture = session.get(Fixture, fixture_id)
    if not fixture:
        raise NotFoundError("Fixture not found")
    return fixture


def get_fixture_side(session: Session, fixture_id: int, user_id: str) -> Optional[str]:
    participant = session.exec(
        select(FixtureParticipant).where(
            FixtureParticipant.fixture_id == fixture_id,
            FixtureParticipant.user_id == user_id,
        )
    ).first()
    return participant.side if participant else None


def _get_submission_or_404(session: Session, fixture_id: int, submission_id: int) -> ResultSubmission:
    submission = session.get(ResultSubmission, submission_id)
    if not submission or submission.fixture_id != fixture_id:
        raise NotFoundError("Submission not found for this fixture")
    return submission


def _require_open_fixture(fixture: Fixture, action: str) -> None:
    if fixture.status in FIXTURE_TERMINAL_STATUSES:
        raise StateConflictError(f"Cannot {action} for {fixture.status} fixture")


def _finalize_fixture(fixture: Fixture, submission_id: int, payload: Dict[str, Any], **extra: Any) -> None:
    # JSON columns only track reassignment; always write a new dict
    fixture.metadata_json = {
        **as_object(fixture.metadata_json),
        "finalized_submission_id": submission_id,
        "final_result": payload,
        **extra,
    }
    fixture.status = FIXTURE_FINALIZED


def _supersede_others(
    session: Session,
    fixture_id: int,
    keep_submission_id: Optional[int],
    statuses: Set[str],
    reviewer_id: Optional[str] = None,
) -> int:
    others = session.exec(
        select(ResultSubmission).where(
            ResultSubmission.fixture_id == fixture_id,
            ResultSubmission.status.in_(sorted(statuses)),
        )
    ).all()
    count = 0
    now = utc_now()
    for other in others:
        if other.id == keep_submission_id:
            continue
        other.status = SUBMISSION_SUPERSEDED
        if reviewer_id:
            other.reviewed_by = reviewer_id
            other.reviewed_at = now
        session.add(other)
        count += 1
    return count


def submit_result(session: Session, fixture_id: int, user_id: str, payload: Any) -> ResultCommandOutcome:
    """
    Submit a result payload for a fixture.

    - organizer: submission accepted, fixture finalized in the same call
    - participant/member: submission pending, fixture scheduled -> submitted
    The caller's own earlier pending submission is superseded first.
    """
    result_payload = as_object(payload)
    if not result_payload:
        raise ValidationError("Result payload is required")

    fixture = get_fixture_or_404(session, fixture_id)
    _require_open_fixture(fixture, "submit results")
    role = require_member(session, fixture.league_id, user_id, "submit results")

    is_organizer = is_league_admin_role(role)
    now = utc_now()

    previous = session.exec(
        select(ResultSubmission).where(
            ResultSubmission.fixture_id == fixture_id,
            ResultSubmission.submitted_by == user_id,
            ResultSubmission.status == SUBMISSION_PENDING,
        )
    ).all()
    for prior in previous:
        prior.status = SUBMISSION_SUPERSEDED
        session.add(prior)

    submission = ResultSubmission(
        fixture_id=fixture_id,
        submitted_by=user_id,
        source=SOURCE_ORGANIZER if is_organizer else SOURCE_PARTICIPANT,
        payload=result_payload,
        status=SUBMISSION_ACCEPTED if is_organizer else SUBMISSION_PENDING,
        submitted_at=now,
        reviewed_by=user_id if is_organizer else None,
        reviewed_at=now if is_organizer else None,
    )
    session.add(submission)
    session.flush()

    if is_organizer:
        _supersede_others(session, fixture_id, submission.id, {SUBMISSION_PENDING})
        _finalize_fixture(fixture, submission.id, result_payload)
    elif fixture.status == FIXTURE_SCHEDULED:
        fixture.status = FIXTURE_SUBMITTED
    session.add(fixture)

    session.commit()
    session.refresh(submission)

    if is_organizer:
        logger.info("Fixture %s finalized by organizer submission %s", fixture_id, submission.id)

    return ResultCommandOutcome(
        success=True,
        finalized=is_organizer,
        submission_id=submission.id,
        submission=submission,
    )


def _should_finalize(confirmed_sides: Set[str], submitter_side: Optional[str]) -> bool:
    if CONFIRMING_SIDE_ORGANIZER in confirmed_sides:
        return True
    if submitter_side == SIDE_A:
        return SIDE_B in confirmed_sides
    if submitter_side == SIDE_B:
        return SIDE_A in confirmed_sides
    # Submitter's side unknown: both sides must agree
    return SIDE_A in confirmed_sides and SIDE_B in confirmed_sides


def confirm_result(
    session: Session,
    fixture_id: int,
    user_id: str,
    submission_id: Optional[int],
    decision: str = DECISION_CONFIRM,
    reason: Optional[str] = None,
) -> ResultCommandOutcome:
    """
    Vote on a pending submission authored by someone else.

    A reject vote marks the submission rejected and disputes the fixture.
    A confirm vote finalizes when an organizer confirms, when the side
    opposite the submitter confirms, or (submitter side unknown) when both
    sides have confirmed. Otherwise the fixture moves to confirmed.
    """
    if not submission_id:
        raise ValidationError("submissionId is required")
    if decision not in (DECISION_CONFIRM, DECISION_REJECT):
        raise ValidationError("decision must be 'confirm' or 'reject'")

    fixture = get_fixture_or_404(session, fixture_id)
    role = require_member(session, fixture.league_id, user_id, "confirm results")
    submission = _get_submission_or_404(session, fixture_id, submission_id)

    if submission.submitted_by == user_id:
        raise ValidationError("Submitter cannot confirm their own submission")
    if submission.status != SUBMISSION_PENDING:
        raise StateConflictError(f"Submission is already {submission.status}")
    _require_open_fixture(fixture, "confirm results")

    if is_league_admin_role(role):
        confirming_side: Optional[str] = CONFIRMING_SIDE_ORGANIZER
    else:
        confirming_side = get_fixture_side(session, fixture_id, user_id)
    if not confirming_side:
        raise AuthorizationError("Only fixture participants or organizers can confirm")

    now = utc_now()
    session.add(
        ResultConfirmation(
            submission_id=submission.id,
            fixture_id=fixture_id,
            confirmed_by=user_id,
            confirming_side=confirming_side,
            decision=decision,
            reason=reason,
            created_at=now,
        )
    )

    if decision == DECISION_REJECT:
        submission.status = SUBMISSION_REJECTED
        submission.reviewed_by = user_id
        submission.reviewed_at = now
        submission.review_note = reason
        fixture.status = FIXTURE_DISPUTED
        session.add(submission)
        session.add(fixture)
        session.commit()
        logger.warning(
            "Fixture %s disputed: submission %s rejected by %s (%s)",
            fixture_id,
            submission.id,
            user_id,
            confirming_side,
        )
        return ResultCommandOutcome(success=True, finalized=False, disputed=True, submission_id=submission.id)

    session.flush()
    confirmations = session.exec(
        select(ResultConfirmation).where(
            ResultConfirmation.submission_id == submission.id,
            ResultConfirmation.decision == DECISION_CONFIRM,
        )
    ).all()
    confirmed_sides = {c.confirming_side for c in confirmations}

    submitter_side = (
        get_fixture_side(session, fixture_id, submission.submitted_by)
        if submission.source == SOURCE_PARTICIPANT
        else None
    )
    finalize = _should_finalize(confirmed_sides, submitter_side)

    if finalize:
        submission.status = SUBMISSION_ACCEPTED
        submission.reviewed_by = user_id
        submission.reviewed_at = now
        session.add(submission)
        _supersede_others(session, fixture_id, submission.id, {SUBMISSION_PENDING})
        _finalize_fixture(fixture, submission.id, as_object(submission.payload))
        session.add(fixture)
    elif fixture.status in CONFIRMABLE_FIXTURE_STATUSES:
        fixture.status = FIXTURE_CONFIRMED
        session.add(fixture)

    session.commit()

    if finalize:
        logger.info("Fixture %s finalized by confirmation of submission %s", fixture_id, submission.id)

    return ResultCommandOutcome(success=True, finalized=finalize, disputed=False, submission_id=submission.id)


def resolve_result(
    session: Session,
    fixture_id: int,
    user_id: str,
    submission_id: Optional[int] = None,
    payload: Any = None,
    reason: Optional[str] = None,
) -> ResultCommandOutcome:
    """
    Organizer override: force-accept a named submission or an inline payload.

    Every other pending or rejected submission on the fixture is superseded
    and the fixture is finalized with the resolution recorded in metadata.
    """
    fixture = get_fixture_or_404(session, fixture_id)
    require_admin(session, fixture.league_id, user_id, "resolve disputed results")
    _require_open_fixture(fixture, "resolve results")

    note = (reason or "").strip() or None
    now = utc_now()

    if submission_id:
        submission = _get_submission_or_404(session, fixture_id, submission_id)
        final_payload = as_object(submission.payload)
        submission.status = SUBMISSION_ACCEPTED
        submission.reviewed_by = user_id
        submission.reviewed_at = now
        submission.review_note = note
        session.add(submission)
    else:
        final_payload = as_object(payload)
        if not final_payload:
            raise ValidationError("payload or submissionId is required")
        submission = ResultSubmission(
            fixture_id=fixture_id,
            submitted_by=user_id,
            source=SOURCE_ORGANIZER,
            payload=final_payload,
            status=SUBMISSION_ACCEPTED,
            submitted_at=now,
            reviewed_by=user_id,
            reviewed_at=now,
            review_note=note,
        )
        session.add(submission)
    session.flush()

    superseded = _supersede_others(
        session,
        fixture_id,
        submission.id,
        {SUBMISSION_PENDING, SUBMISSION_REJECTED},
        reviewer_id=user_id,
    )
    _finalize_fixture(
        fixture,
        submission.id,
        final_payload,
        resolved_by=user_id,
        resolved_at=now.isoformat(),
        resolution_reason=note,
    )
    session.add(fixture)
    session.commit()
    session.refresh(submission)

    logger.info(
        "Fixture %s resolved by %s with submission %s (%d superseded)",
        fixture_id,
        user_id,
        submission.id,
        superseded,
    )
    return ResultCommandOutcome(
        success=True,
        finalized=True,
        submission_id=submission.id,
        submission=submission,
    )


def cancel_fixture(
    session: Session,
    fixture_id: int,
    user_id: str,
    reason: Optional[str] = None,
) -> ResultCommandOutcome:
    """Organizer-only: move a non-terminal fixture to cancelled and retire its pending submissions."""
    fixture = get_fixture_or_404(session, fixture_id)
    require_admin(session, fixture.league_id, user_id, "cancel fixtures")
    _require_open_fixture(fixture, "cancel")

    _supersede_others(session, fixture_id, None, {SUBMISSION_PENDING}, reviewer_id=user_id)
    fixture.metadata_json = {
        **as_object(fixture.metadata_json),
        "cancelled_by": user_id,
        "cancelled_at": utc_now().isoformat(),
        "cancellation_reason": (reason or "").strip() or None,
    }
    fixture.status = FIXTURE_CANCELLED
    session.add(fixture)
    session.commit()

    logger.info("Fixture %s cancelled by %s", fixture_id, user_id)
    return ResultCommandOutcome(success=True, finalized=False)


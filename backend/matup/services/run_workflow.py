"""
Running Session Workflow

Time-trial leagues replace the head-to-head result workflow with per-user
runs against a weekly session:

    submit (upsert per user) -> review (optional, organizer) -> finalize (organizer)

Each session is paired with one time_trial_session fixture for the same
league and week; session transitions are mirrored onto that fixture.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional

from sqlmodel import Session, select

from matup.models.fixture import (
    FIXTURE_CONFIRMED,
    FIXTURE_FINALIZED,
    FIXTURE_SCHEDULED,
    FIXTURE_SUBMITTED,
    FIXTURE_TERMINAL_STATUSES,
    FIXTURE_TYPE_TIME_TRIAL,
    Fixture,
)
from matup.models.league import League
from matup.models.running_session import (
    RUN_APPROVED,
    RUN_FINALIZED,
    RUN_REJECTED,
    RUN_SUBMITTED,
    SESSION_CLOSED,
    SESSION_FINALIZED,
    SESSION_OPEN,
    SESSION_SCHEDULED,
    SESSION_TYPES,
    RunningSession,
    SessionRun,
)
from matup.services.errors import NotFoundError, StateConflictError, ValidationError
from matup.utils.league_access import get_league_or_404, require_admin, require_member
from matup.utils.league_dates import to_datetime_or_none, utc_now, week_end
from matup.utils.rules import DEFAULT_SESSION_TYPE, LeagueRules, normalize_comparison_mode

logger = logging.getLogger(__name__)

SESSION_STATUSES = (SESSION_SCHEDULED, SESSION_OPEN, SESSION_CLOSED, SESSION_FINALIZED)
SESSION_LOCKED_STATUSES = frozenset({SESSION_CLOSED, SESSION_FINALIZED})

REVIEW_APPROVE = "approve"
REVIEW_REJECT = "reject"


@dataclass
class RunCommandOutcome:
    success: bool
    requires_review: bool = False
    run: Optional[SessionRun] = None
    finalized_runs: Optional[int] = None


def get_running_session_or_404(session: Session, session_id: int) -> RunningSession:
    running = session.get(RunningSession, session_id)
    if not running:
        raise NotFoundError("Session not found")
    return running


def requires_organizer_approval(session: Session, league_id: int) -> bool:
    league = session.get(League, league_id)
    if not league:
        return False
    return LeagueRules.from_league(league).require_organizer_approval


def get_paired_fixtures(session: Session, league_id: int, week_number: int) -> List[Fixture]:
    return session.exec(
        select(Fixture)
        .where(
            Fixture.league_id == league_id,
            Fixture.week_number == week_number,
            Fixture.fixture_type == FIXTURE_TYPE_TIME_TRIAL,
        )
        .order_by(Fixture.id)
    ).all()


def _positive_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)) or not math.isfinite(value) or value <= 0:
        return None
    return float(value)


def upsert_session(
    session: Session,
    league_id: int,
    user_id: str,
    week_number: Any,
    session_type: Optional[str] = None,
    distance_meters: Any = None,
    route_name: Optional[str] = None,
    starts_at: Any = None,
    submission_deadline: Any = None,
    comparison_mode: Optional[str] = None,
    status: Optional[str] = None,
) -> RunningSession:
    """
    Create or update the running session for (league, week) and its paired fixture.

    Unknown session types fall back to time_trial. A missing or unknown
    status keeps the existing session's status (scheduled for a new one);
    statuses only move forward and a finalized session can no longer be
    edited. A finalized session finalizes the paired fixture; otherwise the
    fixture keeps its status. Terminal fixtures are never reopened.
    """
    if isinstance(week_number, bool) or not isinstance(week_number, int) or week_number < 1:
        raise ValidationError("weekNumber must be a positive integer")

    require_admin(session, league_id, user_id, "manage sessions")
    league = get_league_or_404(session, league_id)
    if league.sport_type != "running":
        raise ValidationError("Session management is only supported for running leagues")

    distance = _positive_number(distance_meters)
    route = route_name.strip() if isinstance(route_name, str) and route_name.strip() else None
    session_starts_at = to_datetime_or_none(starts_at)
    deadline = to_datetime_or_none(submission_deadline)

    running = session.exec(
        select(RunningSession).where(
            RunningSession.league_id == league_id,
            RunningSession.week_number == week_number,
        )
    ).first()
    if running:
        if running.status == SESSION_FINALIZED:
            raise StateConflictError("Cannot update finalized session")
        current_status = running.status if running.status in SESSION_STATUSES else SESSION_SCHEDULED
    else:
        running = RunningSession(league_id=league_id, week_number=week_number, created_by=user_id)
        current_status = SESSION_SCHEDULED

    session_status = status if status in SESSION_STATUSES else current_status
    if SESSION_STATUSES.index(session_status) < SESSION_STATUSES.index(current_status):
        raise StateConflictError(f"Cannot move session from {current_status} back to {session_status}")

    running.session_type = session_type if session_type in SESSION_TYPES else DEFAULT_SESSION_TYPE
    running.distance_meters = round(distance) if distance else None
    running.route_name = route
    running.starts_at = session_starts_at
    running.submission_deadline = deadline
    running.comparison_mode = normalize_comparison_mode(comparison_mode)
    running.status = session_status
    session.add(running)

    fixture_status = FIXTURE_FINALIZED if session_status == SESSION_FINALIZED else FIXTURE_SCHEDULED
    fixture_ends_at = deadline or week_end(session_starts_at)
    paired = get_paired_fixtures(session, league_id, week_number)
    if paired:
        fixture = paired[0]
        fixture.starts_at = session_starts_at
        fixture.ends_at = fixture_ends_at
        if session_status == SESSION_FINALIZED and fixture.status not in FIXTURE_TERMINAL_STATUSES:
            fixture.status = FIXTURE_FINALIZED
    else:
        fixture = Fixture(
            league_id=league_id,
            week_number=week_number,
            starts_at=session_starts_at,
            ends_at=fixture_ends_at,
            fixture_type=FIXTURE_TYPE_TIME_TRIAL,
            status=fixture_status,
            metadata_json={"generated": False, "sport": "running", "source": "manual_session"},
            created_by=user_id,
        )
    session.add(fixture)

    session.commit()
    session.refresh(running)
    logger.info("Saved running session %s for league %s week %s", running.id, league_id, week_number)
    return running


def submit_run(
    session: Session,
    session_id: int,
    user_id: str,
    elapsed_seconds: Any,
    distance_meters: Any = None,
    proof_url: Optional[str] = None,
    now: Optional[datetime] = None,
) -> RunCommandOutcome:
    """
    Record (or replace) the caller's run for a session.

    The run is approved immediately unless the league requires organizer
    approval. A scheduled session opens on its first run and the paired
    fixture moves to submitted.
    """
    running = get_running_session_or_404(session, session_id)
    require_member(session, running.league_id, user_id, "submit runs")

    if running.status in SESSION_LOCKED_STATUSES:
        raise StateConflictError(f"Cannot submit runs for {running.status} sessions")

    current_time = now or utc_now()
    if running.submission_deadline and running.submission_deadline < current_time:
        raise StateConflictError("Submission deadline has passed")

    elapsed = _positive_number(elapsed_seconds)
    if elapsed is None:
        raise ValidationError("elapsedSeconds must be a positive number")

    body_distance = _positive_number(distance_meters)
    distance = round(body_distance) if body_distance else running.distance_meters
    if not distance or distance <= 0:
        raise ValidationError("distanceMeters must be provided for this session")

    proof = proof_url.strip() if isinstance(proof_url, str) and proof_url.strip() else None
    need_review = requires_organizer_approval(session, running.league_id)

    run = session.exec(
        select(SessionRun).where(SessionRun.session_id == session_id, SessionRun.user_id == user_id)
    ).first()
    if not run:
        run = SessionRun(session_id=session_id, user_id=user_id, elapsed_seconds=elapsed)

    run.elapsed_seconds = elapsed
    run.distance_meters = distance
    run.proof_url = proof
    run.status = RUN_SUBMITTED if need_review else RUN_APPROVED
    run.submitted_at = current_time
    run.reviewed_by = None
    run.reviewed_at = None
    run.review_note = None
    session.add(run)

    if running.status == SESSION_SCHEDULED:
        running.status = SESSION_OPEN
        session.add(running)

    for fixture in get_paired_fixtures(session, running.league_id, running.week_number):
        if fixture.status in (FIXTURE_SCHEDULED, FIXTURE_CONFIRMED):
            fixture.status = FIXTURE_SUBMITTED
            session.add(fixture)

    session.commit()
    session.refresh(run)
    return RunCommandOutcome(success=True, run=run, requires_review=need_review)


def review_run(
    session: Session,
    session_id: int,
    run_id: int,
    user_id: str,
    decision: str = REVIEW_APPROVE,
    note: Optional[str] = None,
) -> RunCommandOutcome:
    running = get_running_session_or_404(session, session_id)
    require_admin(session, running.league_id, user_id, "review runs")

    if decision not in (REVIEW_APPROVE, REVIEW_REJECT):
        raise ValidationError("decision must be 'approve' or 'reject'")

    run = session.get(SessionRun, run_id)
    if not run or run.session_id != session_id:
        raise NotFoundError("Run not found in this session")
    if run.status == RUN_FINALIZED:
        raise StateConflictError("Run is already finalized")

    run.status = RUN_APPROVED if decision == REVIEW_APPROVE else RUN_REJECTED
    run.reviewed_by = user_id
    run.reviewed_at = utc_now()
    run.review_note = note.strip() if isinstance(note, str) and note.strip() else None
    session.add(run)
    session.commit()
    session.refresh(run)

    logger.info("Run %s in session %s marked %s by %s", run_id, session_id, run.status, user_id)
    return RunCommandOutcome(success=True, run=run, requires_review=False)


def finalize_session(session: Session, session_id: int, user_id: str) -> RunCommandOutcome:
    """
    Lock a session and promote its eligible runs to finalized.

    Eligible runs: approved, plus submitted when the league does not require
    organizer approval. The paired fixture is finalized with the run count
    and best elapsed time merged into its metadata. A session that is already
    finalized is rejected so no run is counted into a second batch.
    """
    running = get_running_session_or_404(session, session_id)
    require_admin(session, running.league_id, user_id, "finalize sessions")

    if running.status == SESSION_FINALIZED:
        raise StateConflictError("Session is already finalized")

    need_review = requires_organizer_approval(session, running.league_id)
    promotable_statuses = [RUN_APPROVED] if need_review else [RUN_APPROVED, RUN_SUBMITTED]

    runs = session.exec(
        select(SessionRun).where(
            SessionRun.session_id == session_id,
            SessionRun.status.in_(promotable_statuses),
        )
    ).all()

    now = utc_now()
    best_elapsed: Optional[float] = None
    for run in runs:
        run.status = RUN_FINALIZED
        run.reviewed_by = user_id
        run.reviewed_at = now
        session.add(run)
        if run.elapsed_seconds is not None and (best_elapsed is None or run.elapsed_seconds < best_elapsed):
            best_elapsed = run.elapsed_seconds

    running.status = SESSION_FINALIZED
    session.add(running)

    for fixture in get_paired_fixtures(session, running.league_id, running.week_number):
        if fixture.status in FIXTURE_TERMINAL_STATUSES:
            logger.warning("Session %s finalized; paired fixture %s left %s", session_id, fixture.id, fixture.status)
            continue
        fixture.metadata_json = {
            **(fixture.metadata_json or {}),
            "finalized_session_id": running.id,
            "finalized_runs": len(runs),
            "best_elapsed_seconds": best_elapsed,
        }
        fixture.status = FIXTURE_FINALIZED
        session.add(fixture)

    session.commit()

    logger.info(
        "Session %s finalized by %s: %d runs, best %s s",
        session_id,
        user_id,
        len(runs),
        best_elapsed,
    )
    return RunCommandOutcome(success=True, finalized_runs=len(runs), requires_review=need_review)

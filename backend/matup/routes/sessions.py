"""
Running Session API Routes
Session listing/upsert for running leagues and the run workflow
(submit, review, finalize).
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from matup.database import get_session
from matup.services.errors import LeagueError
from matup.services.league_service import list_sessions
from matup.services.run_workflow import (
    RunCommandOutcome,
    finalize_session,
    review_run,
    submit_run,
    upsert_session,
)
from matup.utils.api_models import CamelModel, raise_http_error
from matup.utils.auth import get_current_user_id

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class RunResponse(CamelModel):
    id: int
    session_id: int
    user_id: str
    elapsed_seconds: float
    distance_meters: Optional[int] = None
    proof_url: Optional[str] = None
    status: str
    submitted_at: datetime
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    review_note: Optional[str] = None
    name: Optional[str] = None
    avatar_url: Optional[str] = None


class RunningSessionResponse(CamelModel):
    id: int
    league_id: int
    week_number: int
    session_type: str
    distance_meters: Optional[int] = None
    route_name: Optional[str] = None
    starts_at: Optional[datetime] = None
    submission_deadline: Optional[datetime] = None
    comparison_mode: str
    status: str
    created_at: datetime
    updated_at: datetime


class RunningSessionDetail(RunningSessionResponse):
    runs: List[RunResponse] = []
    my_run: Optional[RunResponse] = None


class SessionListResponse(CamelModel):
    sessions: List[RunningSessionDetail]


class SessionUpsertRequest(CamelModel):
    week_number: int
    session_type: Optional[str] = None
    distance_meters: Optional[float] = None
    route_name: Optional[str] = None
    starts_at: Optional[str] = None
    submission_deadline: Optional[str] = None
    comparison_mode: Optional[str] = None
    status: Optional[str] = None


class SessionUpsertResponse(CamelModel):
    success: bool
    session: RunningSessionResponse


class RunSubmitRequest(CamelModel):
    elapsed_seconds: Optional[float] = None
    distance_meters: Optional[float] = None
    proof_url: Optional[str] = None


class RunReviewRequest(CamelModel):
    decision: str = "approve"
    note: Optional[str] = None


class RunCommandResponse(CamelModel):
    success: bool
    requires_review: bool
    run: Optional[RunResponse] = None
    finalized_runs: Optional[int] = None


def _run_command_response(outcome: RunCommandOutcome) -> RunCommandResponse:
    return RunCommandResponse(
        success=outcome.success,
        requires_review=outcome.requires_review,
        run=RunResponse.model_validate(outcome.run) if outcome.run else None,
        finalized_runs=outcome.finalized_runs,
    )


# ============================================================================
# Session Endpoints
# ============================================================================


@router.get("/leagues/{league_id}/sessions", response_model=SessionListResponse)
def list_sessions_endpoint(
    league_id: int,
    week: Optional[int] = Query(None, description="Only the session of this week number"),
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
):
    try:
        views = list_sessions(session, league_id, user_id, week=week)
    except LeagueError as e:
        raise_http_error(e)

    sessions = []
    for view in views:
        runs = []
        my_run = None
        for run, profile in view.runs:
            item = RunResponse.model_validate(run).model_copy(
                update={
                    "name": profile.name if profile else None,
                    "avatar_url": profile.avatar_url if profile else None,
                }
            )
            runs.append(item)
            if run is view.my_run:
                my_run = item
        detail = RunningSessionDetail.model_validate(view.running_session).model_copy(
            update={"runs": runs, "my_run": my_run}
        )
        sessions.append(detail)
    return SessionListResponse(sessions=sessions)


@router.post("/leagues/{league_id}/sessions", response_model=SessionUpsertResponse)
def upsert_session_endpoint(
    league_id: int,
    request: SessionUpsertRequest,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
):
    """Organizer-only: create or update the session of a week (running leagues)."""
    try:
        running = upsert_session(
            session,
            league_id,
            user_id,
            week_number=request.week_number,
            session_type=request.session_type,
            distance_meters=request.distance_meters,
            route_name=request.route_name,
            starts_at=request.starts_at,
            submission_deadline=request.submission_deadline,
            comparison_mode=request.comparison_mode,
            status=request.status,
        )
    except LeagueError as e:
        raise_http_error(e)
    return SessionUpsertResponse(success=True, session=RunningSessionResponse.model_validate(running))


@router.post("/sessions/{session_id}/runs/submit", response_model=RunCommandResponse)
def submit_run_endpoint(
    session_id: int,
    request: RunSubmitRequest,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
):
    """Submit (or replace) the caller's run. Approved at once unless the league requires review."""
    try:
        outcome = submit_run(
            session,
            session_id,
            user_id,
            elapsed_seconds=request.elapsed_seconds,
            distance_meters=request.distance_meters,
            proof_url=request.proof_url,
        )
    except LeagueError as e:
        raise_http_error(e)
    return _run_command_response(outcome)


@router.post("/sessions/{session_id}/runs/{run_id}/review", response_model=RunCommandResponse)
def review_run_endpoint(
    session_id: int,
    run_id: int,
    request: RunReviewRequest,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
):
    try:
        outcome = review_run(session, session_id, run_id, user_id, decision=request.decision, note=request.note)
    except LeagueError as e:
        raise_http_error(e)
    return _run_command_response(outcome)


@router.post("/sessions/{session_id}/finalize", response_model=RunCommandResponse)
def finalize_session_endpoint(
    session_id: int,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
):
    """Organizer-only: lock the session and promote eligible runs into standings."""
    try:
        outcome = finalize_session(session, session_id, user_id)
    except LeagueError as e:
        raise_http_error(e)
    return _run_command_response(outcome)

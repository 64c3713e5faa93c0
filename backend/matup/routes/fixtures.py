"""
Fixture API Routes
Weekly fixture listing and the result workflow commands
(submit, confirm/reject, organizer resolve, cancel).
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from matup.database import get_session
from matup.services.errors import LeagueError
from matup.services.league_service import list_fixtures
from matup.services.result_workflow import (
    ResultCommandOutcome,
    cancel_fixture,
    confirm_result,
    resolve_result,
    submit_result,
)
from matup.utils.api_models import CamelModel, raise_http_error
from matup.utils.auth import get_current_user_id

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class SubmissionResponse(CamelModel):
    id: int
    fixture_id: int
    submitted_by: str
    source: str
    status: str
    payload: Dict[str, Any]
    submitted_at: datetime


class ParticipantResponse(CamelModel):
    user_id: str
    side: str
    role: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None


class FixtureResponse(CamelModel):
    id: int
    league_id: int
    week_number: int
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    fixture_type: str
    status: str
    metadata: Optional[Dict[str, Any]] = None
    participants: List[ParticipantResponse]
    latest_submission: Optional[SubmissionResponse] = None


class FixtureListResponse(CamelModel):
    fixtures: List[FixtureResponse]


class ResultSubmitRequest(CamelModel):
    payload: Optional[Dict[str, Any]] = None


class ResultConfirmRequest(CamelModel):
    submission_id: Optional[int] = None
    decision: str = "confirm"
    reason: Optional[str] = None


class ResultResolveRequest(CamelModel):
    submission_id: Optional[int] = None
    payload: Optional[Dict[str, Any]] = None
    reason: Optional[str] = None


class FixtureCancelRequest(CamelModel):
    reason: Optional[str] = None


class ResultCommandResponse(CamelModel):
    success: bool
    finalized: bool
    disputed: Optional[bool] = None
    submission_id: Optional[int] = None
    submission: Optional[SubmissionResponse] = None


def _command_response(outcome: ResultCommandOutcome) -> ResultCommandResponse:
    return ResultCommandResponse(
        success=outcome.success,
        finalized=outcome.finalized,
        disputed=outcome.disputed,
        submission_id=outcome.submission_id,
        submission=SubmissionResponse.model_validate(outcome.submission) if outcome.submission else None,
    )


# ============================================================================
# Fixture Endpoints
# ============================================================================


@router.get("/leagues/{league_id}/fixtures", response_model=FixtureListResponse)
def list_fixtures_endpoint(
    league_id: int,
    week: Optional[int] = Query(None, description="Only fixtures of this week number"),
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
):
    try:
        views = list_fixtures(session, league_id, user_id, week=week)
    except LeagueError as e:
        raise_http_error(e)

    fixtures = []
    for view in views:
        fixture = view.fixture
        fixtures.append(
            FixtureResponse(
                id=fixture.id,
                league_id=fixture.league_id,
                week_number=fixture.week_number,
                starts_at=fixture.starts_at,
                ends_at=fixture.ends_at,
                fixture_type=fixture.fixture_type,
                status=fixture.status,
                metadata=fixture.metadata_json,
                participants=[
                    ParticipantResponse(
                        user_id=participant.user_id,
                        side=participant.side,
                        role=participant.role,
                        name=profile.name if profile else None,
                        avatar_url=profile.avatar_url if profile else None,
                    )
                    for participant, profile in view.participants
                ],
                latest_submission=(
                    SubmissionResponse.model_validate(view.latest_submission) if view.latest_submission else None
                ),
            )
        )
    return FixtureListResponse(fixtures=fixtures)


@router.post("/fixtures/{fixture_id}/results/submit", response_model=ResultCommandResponse)
def submit_result_endpoint(
    fixture_id: int,
    request: ResultSubmitRequest,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
):
    """
    Submit a result. Organizer submissions finalize the fixture immediately;
    participant submissions wait for the other side to confirm.
    """
    try:
        outcome = submit_result(session, fixture_id, user_id, request.payload)
    except LeagueError as e:
        raise_http_error(e)
    return _command_response(outcome)


@router.post("/fixtures/{fixture_id}/results/confirm", response_model=ResultCommandResponse)
def confirm_result_endpoint(
    fixture_id: int,
    request: ResultConfirmRequest,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
):
    """Confirm or reject a pending submission (reject disputes the fixture)."""
    try:
        outcome = confirm_result(
            session,
            fixture_id,
            user_id,
            request.submission_id,
            decision=request.decision,
            reason=request.reason,
        )
    except LeagueError as e:
        raise_http_error(e)
    return _command_response(outcome)


@router.post("/fixtures/{fixture_id}/results/resolve", response_model=ResultCommandResponse)
def resolve_result_endpoint(
    fixture_id: int,
    request: ResultResolveRequest,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
):
    """Organizer-only: accept a named submission or an inline payload and finalize."""
    try:
        outcome = resolve_result(
            session,
            fixture_id,
            user_id,
            submission_id=request.submission_id,
            payload=request.payload,
            reason=request.reason,
        )
    except LeagueError as e:
        raise_http_error(e)
    return _command_response(outcome)


@router.post("/fixtures/{fixture_id}/cancel", response_model=ResultCommandResponse)
def cancel_fixture_endpoint(
    fixture_id: int,
    request: Optional[FixtureCancelRequest] = None,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
):
    try:
        outcome = cancel_fixture(session, fixture_id, user_id, reason=request.reason if request else None)
    except LeagueError as e:
        raise_http_error(e)
    return _command_response(outcome)

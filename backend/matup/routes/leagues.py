"""
League API Routes
League creation, roster management and invite-code joins.
"""

from datetime import date, datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from matup.database import get_session
from matup.services.errors import LeagueError
from matup.services.league_service import (
    add_member,
    create_league,
    ensure_league_invite_code,
    get_league,
    join_league,
)
from matup.utils.api_models import CamelModel, raise_http_error
from matup.utils.auth import get_current_user_id
from matup.utils.league_access import require_admin

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class LeagueCreateRequest(CamelModel):
    name: str
    sport_type: str
    scoring_format: str
    rotation_type: Optional[str] = None
    season_weeks: Optional[int] = None
    start_date: Optional[date] = None
    rules: Optional[Dict[str, Any]] = None


class LeagueResponse(CamelModel):
    id: int
    name: str
    sport_type: str
    scoring_format: str
    rotation_type: Optional[str] = None
    season_weeks: Optional[int] = None
    start_date: Optional[date] = None
    rules_json: Optional[Dict[str, Any]] = None
    created_by: Optional[str] = None
    created_at: datetime


class MemberAddRequest(CamelModel):
    user_id: str
    role: str = "member"


class MemberResponse(CamelModel):
    id: int
    league_id: int
    user_id: str
    role: str
    joined_at: datetime


class JoinRequest(CamelModel):
    invite_code: Optional[str] = None


class JoinResponse(CamelModel):
    success: bool
    already_member: bool


class InviteCodeResponse(CamelModel):
    invite_code: str


# ============================================================================
# League Endpoints
# ============================================================================


@router.post("/leagues", response_model=LeagueResponse, status_code=201)
def create_league_endpoint(
    request: LeagueCreateRequest,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
):
    """Create a league. The caller becomes its owner."""
    try:
        return create_league(
            session,
            user_id,
            name=request.name,
            sport_type=request.sport_type,
            scoring_format=request.scoring_format,
            rotation_type=request.rotation_type,
            season_weeks=request.season_weeks,
            start_date=request.start_date,
            rules=request.rules,
        )
    except LeagueError as e:
        raise_http_error(e)


@router.get("/leagues/{league_id}", response_model=LeagueResponse)
def get_league_endpoint(
    league_id: int,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
):
    try:
        return get_league(session, league_id, user_id)
    except LeagueError as e:
        raise_http_error(e)


@router.post("/leagues/{league_id}/members", response_model=MemberResponse, status_code=201)
def add_member_endpoint(
    league_id: int,
    request: MemberAddRequest,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
):
    """Organizer adds a user to the roster."""
    try:
        return add_member(session, league_id, user_id, request.user_id, role=request.role)
    except LeagueError as e:
        raise_http_error(e)


@router.post("/leagues/{league_id}/join", response_model=JoinResponse)
def join_league_endpoint(
    league_id: int,
    request: JoinRequest,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
):
    """
    Join a league with its invite code (case-insensitive).

    Existing members get alreadyMember=true and nothing changes.
    """
    try:
        outcome = join_league(session, league_id, user_id, request.invite_code)
    except LeagueError as e:
        raise_http_error(e)
    return JoinResponse(success=outcome.success, already_member=outcome.already_member)


@router.get("/leagues/{league_id}/invite-code", response_model=InviteCodeResponse)
def get_invite_code_endpoint(
    league_id: int,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
):
    """Organizer-only: the league invite code, assigned on first request."""
    try:
        require_admin(session, league_id, user_id, "view the invite code")
        code = ensure_league_invite_code(session, league_id)
    except LeagueError as e:
        raise_http_error(e)
    return InviteCodeResponse(invite_code=code)

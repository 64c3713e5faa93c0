"""
Assigned Doubles Teams API Routes
Read and replace the fixed pairs stored in the league rules.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from matup.database import get_session
from matup.services.errors import LeagueError
from matup.services.league_service import AssignedTeams, get_assigned_teams, save_assigned_teams
from matup.utils.api_models import CamelModel, raise_http_error
from matup.utils.auth import get_current_user_id

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class PairInput(CamelModel):
    player_a_id: Optional[str] = None
    player_b_id: Optional[str] = None


class AssignedTeamsUpdateRequest(CamelModel):
    pairs: List[PairInput]


class PairResponse(CamelModel):
    player_a_id: str
    player_a_name: Optional[str] = None
    player_b_id: str
    player_b_name: Optional[str] = None


class AssignedTeamsResponse(CamelModel):
    success: bool = True
    pairs: List[PairResponse]
    unpaired_member_ids: List[str]


def _to_response(teams: AssignedTeams) -> AssignedTeamsResponse:
    return AssignedTeamsResponse(
        pairs=[
            PairResponse(
                player_a_id=a,
                player_a_name=teams.names.get(a),
                player_b_id=b,
                player_b_name=teams.names.get(b),
            )
            for a, b in teams.pairs
        ],
        unpaired_member_ids=teams.unpaired_member_ids,
    )


# ============================================================================
# Assigned Teams Endpoints
# ============================================================================


@router.get("/leagues/{league_id}/teams/assigned", response_model=AssignedTeamsResponse)
def get_assigned_teams_endpoint(
    league_id: int,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
):
    try:
        return _to_response(get_assigned_teams(session, league_id, user_id))
    except LeagueError as e:
        raise_http_error(e)


@router.put("/leagues/{league_id}/teams/assigned", response_model=AssignedTeamsResponse)
def update_assigned_teams_endpoint(
    league_id: int,
    request: AssignedTeamsUpdateRequest,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
):
    """
    Replace the league's fixed pairs.

    Every pair needs two distinct current members and no member may appear
    in two pairs; the first violation is reported with its own message.
    """
    raw_pairs = [[pair.player_a_id or "", pair.player_b_id or ""] for pair in request.pairs]
    try:
        return _to_response(save_assigned_teams(session, league_id, user_id, raw_pairs))
    except LeagueError as e:
        raise_http_error(e)

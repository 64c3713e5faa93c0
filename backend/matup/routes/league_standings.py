"""
League Standings API Routes
Read-only standings computed on demand from every result source.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from matup.database import get_session
from matup.services.errors import LeagueError
from matup.services.standings_read import load_league_standings
from matup.utils.api_models import CamelModel, raise_http_error
from matup.utils.auth import get_current_user_id
from matup.utils.league_access import require_member

router = APIRouter()


# ============================================================================
# Response Models
# ============================================================================


class StandingResponse(CamelModel):
    user_id: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    rank: int
    played: int
    wins: int
    draws: int
    losses: int
    points: float
    goal_difference: float
    total_time: float
    total_points: float


class TeamStandingResponse(CamelModel):
    team_key: str
    player_ids: List[str]
    player_names: List[str]
    rank: int
    played: int
    wins: int
    losses: int
    win_pct: int


class StandingsSourcesResponse(CamelModel):
    legacy_completed_matches: int
    workflow_finalized_fixtures: int
    workflow_finalized_sessions: int


class LeagueStandingsResponse(CamelModel):
    standings: List[StandingResponse]
    team_standings: List[TeamStandingResponse]
    running_mode: Optional[str] = None
    sources: StandingsSourcesResponse


# ============================================================================
# Standings Endpoint
# ============================================================================


@router.get("/leagues/{league_id}/standings", response_model=LeagueStandingsResponse)
def get_standings_endpoint(
    league_id: int,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
):
    """
    Standings for a league member.

    Combines completed legacy matches, finalized workflow fixtures and, for
    running leagues, finalized sessions. teamStandings is only filled for
    doubles leagues.
    """
    try:
        require_member(session, league_id, user_id, "view standings")
        result = load_league_standings(session, league_id)
    except LeagueError as e:
        raise_http_error(e)

    return LeagueStandingsResponse(
        standings=[StandingResponse.model_validate(s) for s in result.standings],
        team_standings=[TeamStandingResponse.model_validate(t) for t in result.team_standings],
        running_mode=result.running_mode,
        sources=StandingsSourcesResponse.model_validate(result.sources),
    )

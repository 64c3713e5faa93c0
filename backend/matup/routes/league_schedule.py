"""
League Schedule API Routes
One-shot season schedule generation.
"""

from fastapi import APIRouter, Depends
from sqlmodel import Session

from matup.database import get_session
from matup.services.errors import LeagueError
from matup.services.schedule_service import generate_league_schedule
from matup.utils.api_models import CamelModel, raise_http_error
from matup.utils.auth import get_current_user_id

router = APIRouter()


class ScheduleGenerateResponse(CamelModel):
    success: bool
    sport: str
    scoring_format: str
    season_weeks: int
    created_fixtures: int
    created_participants: int
    created_sessions: int


@router.post("/leagues/{league_id}/schedule/generate", response_model=ScheduleGenerateResponse)
def generate_schedule(
    league_id: int,
    session: Session = Depends(get_session),
    user_id: str = Depends(get_current_user_id),
):
    """
    Generate the whole season for a league.

    - singles: circle-method round robin
    - doubles: fixed pairs round robin (assigned) or weekly random fours
    - running: one time-trial session per week

    Returns 409 if a non-cancelled fixture already exists.
    """
    try:
        summary = generate_league_schedule(session, league_id, user_id)
    except LeagueError as e:
        raise_http_error(e)

    return ScheduleGenerateResponse(
        success=True,
        sport=summary.sport,
        scoring_format=summary.scoring_format,
        season_weeks=summary.season_weeks,
        created_fixtures=summary.created_fixtures,
        created_participants=summary.created_participants,
        created_sessions=summary.created_sessions,
    )

"""
League Schedule Orchestrator

Resolves the league's rules, picks the generator for its format and persists
the produced fixtures (or running sessions) in a single transaction. Nothing
is committed unless every row is written.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from sqlmodel import Session, select

from matup.models.fixture import (
    FIXTURE_CANCELLED,
    FIXTURE_SCHEDULED,
    FIXTURE_TYPE_MATCH,
    FIXTURE_TYPE_TIME_TRIAL,
    SIDE_A,
    SIDE_B,
    Fixture,
    FixtureParticipant,
)
from matup.models.league import League
from matup.models.running_session import SESSION_SCHEDULED, RunningSession
from matup.services.errors import StateConflictError, ValidationError
from matup.services.fixture_schedule import (
    ScheduledFixture,
    generate_doubles_assigned_schedule,
    generate_doubles_random_schedule,
    generate_session_weeks,
    generate_singles_schedule,
)
from matup.services.league_rules import get_configured_fixed_pairs, is_assigned_doubles_league
from matup.utils.league_access import get_league_or_404, get_member_ids, require_admin
from matup.utils.league_dates import week_end, week_start
from matup.utils.rules import LeagueRules

logger = logging.getLogger(__name__)

SESSION_SUBMISSION_WINDOW = timedelta(days=6)


@dataclass
class ScheduleSummary:
    sport: str
    scoring_format: str
    season_weeks: int
    created_fixtures: int = 0
    created_participants: int = 0
    created_sessions: int = 0


def has_active_schedule(session: Session, league_id: int) -> bool:
    existing = session.exec(
        select(Fixture.id).where(Fixture.league_id == league_id, Fixture.status != FIXTURE_CANCELLED)
    ).first()
    return existing is not None


def generate_league_schedule(session: Session, league_id: int, user_id: str) -> ScheduleSummary:
    """
    Generate and persist the full season schedule for a league.

    Preconditions (checked before any write):
    - caller is owner/admin
    - no non-cancelled fixture exists yet
    - roster is large enough for the league format

    Raises:
        AuthorizationError, NotFoundError, StateConflictError, ValidationError
    """
    require_admin(session, league_id, user_id, "generate schedule")
    league = get_league_or_404(session, league_id)
    rules = LeagueRules.from_league(league)

    if has_active_schedule(session, league_id):
        raise StateConflictError("Schedule already exists. Clear existing fixtures before generating again.")

    member_ids = get_member_ids(session, league_id)
    if not member_ids:
        raise ValidationError("League has no members")

    summary = ScheduleSummary(
        sport=league.sport_type,
        scoring_format=league.scoring_format,
        season_weeks=rules.season_weeks,
    )

    if league.sport_type == "running":
        weeks = generate_session_weeks(rules.season_weeks)
    else:
        schedule = _select_match_schedule(league, rules, member_ids)

    try:
        if league.sport_type == "running":
            _write_running_sessions(session, league, rules, user_id, weeks, summary)
        else:
            _write_match_fixtures(session, league, rules, user_id, schedule, summary)
        session.commit()
    except Exception:
        session.rollback()
        logger.exception("Schedule generation failed for league %s", league_id)
        raise

    logger.info(
        "Generated schedule for league %s: %d fixtures, %d participants, %d sessions over %d weeks",
        league_id,
        summary.created_fixtures,
        summary.created_participants,
        summary.created_sessions,
        summary.season_weeks,
    )
    return summary


def _select_match_schedule(league: League, rules: LeagueRules, member_ids: List[str]) -> Iterable[ScheduledFixture]:
    if league.scoring_format == "singles":
        if len(member_ids) < 2:
            raise ValidationError("Singles schedule needs at least 2 members")
        return generate_singles_schedule(member_ids, rules.season_weeks)

    if league.scoring_format == "doubles":
        if len(member_ids) < 4:
            raise ValidationError("Doubles schedule needs at least 4 members")
        if is_assigned_doubles_league(league, rules):
            pairs = get_configured_fixed_pairs(rules.fixed_pairs_raw, member_ids)
            if len(pairs) < 2:
                raise ValidationError("Assigned doubles requires at least 2 fixed teams. Configure teams first.")
            return generate_doubles_assigned_schedule(member_ids, rules.season_weeks, pairs)
        return generate_doubles_random_schedule(member_ids, rules.season_weeks)

    raise ValidationError(f"Scheduling is not supported for {league.scoring_format}")


def _write_match_fixtures(
    session: Session,
    league: League,
    rules: LeagueRules,
    user_id: str,
    schedule: Iterable[ScheduledFixture],
    summary: ScheduleSummary,
) -> None:
    for entry in schedule:
        starts_at = week_start(rules.starts_on, entry.week_number, rules.starts_at_local)
        fixture = Fixture(
            league_id=league.id,
            week_number=entry.week_number,
            starts_at=starts_at,
            ends_at=week_end(starts_at),
            fixture_type=FIXTURE_TYPE_MATCH,
            status=FIXTURE_SCHEDULED,
            metadata_json={
                "generated": True,
                "sport": league.sport_type,
                "scoring_format": league.scoring_format,
            },
            created_by=user_id,
        )
        session.add(fixture)
        session.flush()

        participants = [
            FixtureParticipant(fixture_id=fixture.id, user_id=player_id, side=SIDE_A, role="player")
            for player_id in entry.side_a
        ] + [
            FixtureParticipant(fixture_id=fixture.id, user_id=player_id, side=SIDE_B, role="player")
            for player_id in entry.side_b
        ]
        session.add_all(participants)

        summary.created_fixtures += 1
        summary.created_participants += len(participants)

    session.flush()


def _write_running_sessions(
    session: Session,
    league: League,
    rules: LeagueRules,
    user_id: str,
    weeks: Iterable[int],
    summary: ScheduleSummary,
) -> None:
    for week in weeks:
        starts_at = week_start(rules.starts_on, week, rules.starts_at_local)
        deadline: Optional[datetime] = starts_at + SESSION_SUBMISSION_WINDOW if starts_at else None

        session.add(
            Fixture(
                league_id=league.id,
                week_number=week,
                starts_at=starts_at,
                ends_at=week_end(starts_at),
                fixture_type=FIXTURE_TYPE_TIME_TRIAL,
                status=FIXTURE_SCHEDULED,
                metadata_json={"generated": True, "sport": "running"},
                created_by=user_id,
            )
        )
        session.add(
            RunningSession(
                league_id=league.id,
                week_number=week,
                session_type=rules.default_session_type,
                starts_at=starts_at,
                submission_deadline=deadline,
                comparison_mode=rules.comparison_mode,
                status=SESSION_SCHEDULED,
                created_by=user_id,
            )
        )
        summary.created_fixtures += 1
        summary.created_sessions += 1

    session.flush()

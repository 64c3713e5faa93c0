"""
League Standings Loader

Collects the three result sources of a league and feeds them to the
standings calculator:

- LEGACY:   LegacyMatch rows with status "completed"
- WORKFLOW: Fixture rows in "finalized" status, winner decoded from
            metadata.final_result
- RUNNING:  RunningSession rows in "finalized" status with their finalized
            runs (running leagues only)

Each source has its own normalizer producing RankingMatch/RankingParticipant
records whose ids are (ResultSource, record_id) tuples, so ids from different
tables never collide.
"""

from dataclasses import dataclass, field
from enum import Enum
from numbers import Real
from typing import Any, Dict, List, Optional, Tuple

from sqlmodel import Session, select

from matup.models.fixture import FIXTURE_FINALIZED, Fixture, FixtureParticipant
from matup.models.league import League, LeagueMember
from matup.models.legacy_match import LegacyMatch, MatchParticipant
from matup.models.profile import Profile
from matup.models.running_session import RUN_FINALIZED, SESSION_FINALIZED, RunningSession, SessionRun
from matup.services.standings import (
    RankingMatch,
    RankingMember,
    RankingParticipant,
    Standing,
    TeamStanding,
    calculate_standings,
    calculate_team_standings,
)
from matup.utils.league_access import get_league_or_404
from matup.utils.rules import LeagueRules

LEGACY_COMPLETED = "completed"


class ResultSource(str, Enum):
    LEGACY = "legacy"
    WORKFLOW = "workflow"
    RUNNING = "running"


@dataclass
class FinalResult:
    winner: Optional[str] = None
    sets: List[List[float]] = field(default_factory=list)


@dataclass
class NormalizedSource:
    matches: List[RankingMatch] = field(default_factory=list)
    participants: List[RankingParticipant] = field(default_factory=list)


@dataclass
class StandingsSources:
    legacy_completed_matches: int = 0
    workflow_finalized_fixtures: int = 0
    workflow_finalized_sessions: int = 0


@dataclass
class LeagueStandings:
    standings: List[Standing]
    team_standings: List[TeamStanding]
    running_mode: Optional[str]
    sources: StandingsSources


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def decode_final_result(metadata: Any) -> Optional[FinalResult]:
    """
    Decode metadata.final_result.

    winner is kept only when it is "A" or "B"; sets keeps only two-element
    numeric entries. Missing or non-mapping payloads decode to None.
    """
    if not isinstance(metadata, dict):
        return None
    candidate = metadata.get("final_result")
    if not isinstance(candidate, dict):
        return None

    winner = candidate.get("winner")
    raw_sets = candidate.get("sets")
    sets = []
    if isinstance(raw_sets, list):
        sets = [
            list(entry)
            for entry in raw_sets
            if isinstance(entry, list) and len(entry) == 2 and all(_is_number(v) for v in entry)
        ]
    return FinalResult(winner=winner if winner in ("A", "B") else None, sets=sets)


def normalize_legacy(session: Session, league_id: int) -> NormalizedSource:
    normalized = NormalizedSource()
    matches = session.exec(
        select(LegacyMatch)
        .where(LegacyMatch.league_id == league_id, LegacyMatch.status == LEGACY_COMPLETED)
        .order_by(LegacyMatch.id)
    ).all()
    if not matches:
        return normalized

    for match in matches:
        normalized.matches.append(
            RankingMatch(
                id=(ResultSource.LEGACY, match.id),
                completed=True,
                week_number=match.week_number,
                winner=match.winner,
            )
        )

    rows = session.exec(
        select(MatchParticipant)
        .where(MatchParticipant.match_id.in_([m.id for m in matches]))
        .order_by(MatchParticipant.id)
    ).all()
    for row in rows:
        set_scores = row.set_scores.get("sets") if isinstance(row.set_scores, dict) else None
        normalized.participants.append(
            RankingParticipant(
                match_id=(ResultSource.LEGACY, row.match_id),
                user_id=row.user_id,
                team=row.team,
                score=row.score,
                time_seconds=row.time_seconds,
                points=row.points,
                set_scores=set_scores if isinstance(set_scores, list) else None,
            )
        )
    return normalized


def normalize_workflow(session: Session, league_id: int) -> NormalizedSource:
    normalized = NormalizedSource()
    fixtures = session.exec(
        select(Fixture)
        .where(Fixture.league_id == league_id, Fixture.status == FIXTURE_FINALIZED)
        .order_by(Fixture.id)
    ).all()
    if not fixtures:
        return normalized

    results: Dict[int, Optional[FinalResult]] = {}
    for fixture in fixtures:
        result = decode_final_result(fixture.metadata_json)
        results[fixture.id] = result
        normalized.matches.append(
            RankingMatch(
                id=(ResultSource.WORKFLOW, fixture.id),
                completed=True,
                week_number=fixture.week_number,
                winner=result.winner if result else None,
            )
        )

    rows = session.exec(
        select(FixtureParticipant)
        .where(FixtureParticipant.fixture_id.in_(list(results)))
        .order_by(FixtureParticipant.id)
    ).all()
    for row in rows:
        result = results.get(row.fixture_id)
        normalized.participants.append(
            RankingParticipant(
                match_id=(ResultSource.WORKFLOW, row.fixture_id),
                user_id=row.user_id,
                team=row.side,
                set_scores=result.sets if result and result.sets else None,
            )
        )
    return normalized


def normalize_running(session: Session, league_id: int) -> Tuple[NormalizedSource, int]:
    """Finalized sessions and their finalized runs; also returns the session count."""
    normalized = NormalizedSource()
    sessions = session.exec(
        select(RunningSession)
        .where(RunningSession.league_id == league_id, RunningSession.status == SESSION_FINALIZED)
        .order_by(RunningSession.week_number, RunningSession.id)
    ).all()
    if not sessions:
        return normalized, 0

    for running in sessions:
        normalized.matches.append(
            RankingMatch(
                id=(ResultSource.RUNNING, running.id),
                completed=True,
                week_number=running.week_number,
            )
        )

    runs = session.exec(
        select(SessionRun)
        .where(
            SessionRun.session_id.in_([s.id for s in sessions]),
            SessionRun.status == RUN_FINALIZED,
        )
        .order_by(SessionRun.id)
    ).all()
    for run in runs:
        normalized.participants.append(
            RankingParticipant(
                match_id=(ResultSource.RUNNING, run.session_id),
                user_id=run.user_id,
                time_seconds=run.elapsed_seconds,
                distance_meters=run.distance_meters,
            )
        )
    return normalized, len(sessions)


def load_ranking_members(session: Session, league_id: int) -> List[RankingMember]:
    members = session.exec(
        select(LeagueMember).where(LeagueMember.league_id == league_id).order_by(LeagueMember.id)
    ).all()
    user_ids = [m.user_id for m in members]
    profiles = session.exec(select(Profile).where(Profile.id.in_(user_ids))).all() if user_ids else []
    profile_by_id = {p.id: p for p in profiles}

    ranking_members = []
    for user_id in user_ids:
        profile = profile_by_id.get(user_id)
        ranking_members.append(
            RankingMember(
                user_id=user_id,
                name=profile.name if profile and profile.name else None,
                avatar_url=profile.avatar_url if profile and profile.avatar_url else None,
            )
        )
    return ranking_members


def load_league_standings(session: Session, league_id: int) -> LeagueStandings:
    """
    Compute standings for a league on demand.

    The running comparison mode only applies to running leagues; other
    individual_time leagues rank by absolute performance.
    """
    league: League = get_league_or_404(session, league_id)
    rules = LeagueRules.from_league(league)
    is_running = league.sport_type == "running"

    members = load_ranking_members(session, league_id)
    legacy = normalize_legacy(session, league_id)
    workflow = normalize_workflow(session, league_id)
    if is_running:
        running, finalized_sessions = normalize_running(session, league_id)
    else:
        running, finalized_sessions = NormalizedSource(), 0

    matches = legacy.matches + workflow.matches + running.matches
    participants = legacy.participants + workflow.participants + running.participants
    running_mode = rules.comparison_mode if is_running else None

    standings = calculate_standings(
        league.scoring_format,
        matches,
        participants,
        members,
        running_comparison_mode=running_mode,
    )
    team_standings = (
        calculate_team_standings(matches, participants, members) if league.scoring_format == "doubles" else []
    )

    return LeagueStandings(
        standings=standings,
        team_standings=team_standings,
        running_mode=running_mode,
        sources=StandingsSources(
            legacy_completed_matches=len(legacy.matches),
            workflow_finalized_fixtures=len(workflow.matches),
            workflow_finalized_sessions=finalized_sessions,
        ),
    )

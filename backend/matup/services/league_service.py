"""
League service: league lifecycle, membership, invite codes, assigned doubles
teams and the fixture/session read models.
"""

import logging
import secrets
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from matup.models.fixture import Fixture, FixtureParticipant
from matup.models.league import ROLE_MEMBER, ROLE_OWNER, SCORING_FORMATS, League, LeagueMember
from matup.models.profile import Profile
from matup.models.result_submission import ResultSubmission
from matup.models.running_session import RunningSession, SessionRun
from matup.services.errors import AuthorizationError, LeagueError, StateConflictError, ValidationError
from matup.services.league_rules import (
    Pair,
    get_configured_fixed_pairs,
    get_unpaired_member_ids,
    is_assigned_doubles_league,
    validate_fixed_pairs,
)
from matup.utils.league_access import (
    get_league_or_404,
    get_league_role,
    get_member_ids,
    require_admin,
    require_member,
)
from matup.utils.rules import LeagueRules, to_rules_object, with_fixed_pairs

logger = logging.getLogger(__name__)

INVITE_CODE_ATTEMPTS = 6
ROTATION_TYPES = ("random", "assigned")
MEMBER_ROLES = ("owner", "admin", "member")


class InviteCodeError(LeagueError):
    """Raised when no invite code could be assigned"""

    status_code = 500


@dataclass
class JoinOutcome:
    success: bool
    already_member: bool


@dataclass
class AssignedTeams:
    pairs: List[Pair]
    unpaired_member_ids: List[str]
    names: Dict[str, Optional[str]] = field(default_factory=dict)


@dataclass
class FixtureView:
    fixture: Fixture
    participants: List[Tuple[FixtureParticipant, Optional[Profile]]]
    latest_submission: Optional[ResultSubmission]


@dataclass
class SessionView:
    running_session: RunningSession
    runs: List[Tuple[SessionRun, Optional[Profile]]]
    my_run: Optional[SessionRun]


def create_league(
    session: Session,
    user_id: str,
    name: str,
    sport_type: str,
    scoring_format: str,
    rotation_type: Optional[str] = None,
    season_weeks: Optional[int] = None,
    start_date: Optional[date] = None,
    rules: Any = None,
) -> League:
    """Create a league; the creator becomes its owner."""
    if not name or not name.strip():
        raise ValidationError("League name is required")
    if not sport_type or not sport_type.strip():
        raise ValidationError("sport_type is required")
    if scoring_format not in SCORING_FORMATS:
        raise ValidationError(f"Unknown scoring format: {scoring_format}")
    if rotation_type is not None and rotation_type not in ROTATION_TYPES:
        raise ValidationError(f"Unknown rotation type: {rotation_type}")
    if season_weeks is not None and season_weeks < 1:
        raise ValidationError("season_weeks must be a positive integer")

    league = League(
        name=name.strip(),
        sport_type=sport_type.strip(),
        scoring_format=scoring_format,
        rotation_type=rotation_type,
        season_weeks=season_weeks,
        start_date=start_date,
        rules_json=to_rules_object(rules),
        created_by=user_id,
    )
    session.add(league)
    session.flush()
    session.add(LeagueMember(league_id=league.id, user_id=user_id, role=ROLE_OWNER))
    session.commit()
    session.refresh(league)

    logger.info("League %s created by %s (%s/%s)", league.id, user_id, sport_type, scoring_format)
    return league


def get_league(session: Session, league_id: int, user_id: str) -> League:
    require_member(session, league_id, user_id, "view this league")
    return get_league_or_404(session, league_id)


def add_member(session: Session, league_id: int, user_id: str, member_user_id: str, role: str = ROLE_MEMBER) -> LeagueMember:
    """Organizer adds a user to the league roster."""
    require_admin(session, league_id, user_id, "add members")
    get_league_or_404(session, league_id)

    if not member_user_id or not member_user_id.strip():
        raise ValidationError("user_id is required")
    if role not in MEMBER_ROLES:
        raise ValidationError(f"Unknown role: {role}")
    if role == ROLE_OWNER and get_league_role(session, league_id, user_id) != ROLE_OWNER:
        raise AuthorizationError("Only the league owner can add another owner")
    if get_league_role(session, league_id, member_user_id.strip()):
        raise StateConflictError("User is already a league member")

    member = LeagueMember(league_id=league_id, user_id=member_user_id.strip(), role=role)
    session.add(member)
    session.commit()
    session.refresh(member)
    return member


def generate_invite_code() -> str:
    return secrets.token_hex(4).upper()


def ensure_league_invite_code(session: Session, league_id: int) -> str:
    """
    Return the league's invite code, assigning one if it has none.

    Bounded optimistic write: up to INVITE_CODE_ATTEMPTS conditional updates
    (only while invite_code IS NULL), then a re-read in case a concurrent
    writer won. Only collisions with another league's code are retried; an
    update that matches no row means the code is already set.
    """
    league = get_league_or_404(session, league_id)
    if league.invite_code:
        return league.invite_code

    for attempt in range(INVITE_CODE_ATTEMPTS):
        candidate = generate_invite_code()
        try:
            result = session.execute(
                update(League)
                .where(League.id == league_id, League.invite_code.is_(None))
                .values(invite_code=candidate)
            )
            session.commit()
        except IntegrityError:
            session.rollback()
            logger.warning("Invite code collision for league %s on attempt %d", league_id, attempt + 1)
            continue
        if result.rowcount:
            session.refresh(league)
            return league.invite_code or candidate
        break

    session.refresh(league)
    if league.invite_code:
        return league.invite_code

    raise InviteCodeError("Failed to assign invite code")


def join_league(session: Session, league_id: int, user_id: str, invite_code: Optional[str]) -> JoinOutcome:
    code = (invite_code or "").strip()
    if not code:
        raise ValidationError("inviteCode is required")

    get_league_or_404(session, league_id)
    if get_league_role(session, league_id, user_id):
        return JoinOutcome(success=True, already_member=True)

    league_code = ensure_league_invite_code(session, league_id)
    if code.upper() != league_code.upper():
        raise AuthorizationError("Invite code is invalid")

    session.add(LeagueMember(league_id=league_id, user_id=user_id, role=ROLE_MEMBER))
    try:
        session.commit()
    except IntegrityError:
        # Joined concurrently; membership exists either way
        session.rollback()
        return JoinOutcome(success=True, already_member=True)

    logger.info("User %s joined league %s by invite code", user_id, league_id)
    return JoinOutcome(success=True, already_member=False)


def _profile_names(session: Session, user_ids: Sequence[str]) -> Dict[str, Optional[str]]:
    if not user_ids:
        return {}
    profiles = session.exec(select(Profile).where(Profile.id.in_(list(user_ids)))).all()
    return {p.id: p.name or None for p in profiles}


def _require_assigned_doubles(league: League) -> LeagueRules:
    rules = LeagueRules.from_league(league)
    if not is_assigned_doubles_league(league, rules):
        raise ValidationError("Assigned teams are only available for doubles assigned leagues")
    return rules


def get_assigned_teams(session: Session, league_id: int, user_id: str) -> AssignedTeams:
    require_member(session, league_id, user_id, "view assigned teams")
    league = get_league_or_404(session, league_id)
    rules = _require_assigned_doubles(league)

    member_ids = get_member_ids(session, league_id)
    pairs = get_configured_fixed_pairs(rules.fixed_pairs_raw, member_ids)
    return AssignedTeams(
        pairs=pairs,
        unpaired_member_ids=get_unpaired_member_ids(pairs, member_ids),
        names=_profile_names(session, member_ids),
    )


def save_assigned_teams(session: Session, league_id: int, user_id: str, raw_pairs: Sequence[Any]) -> AssignedTeams:
    """Replace match.fixed_pairs after strict validation against the current roster."""
    require_admin(session, league_id, user_id, "edit assigned teams")
    league = get_league_or_404(session, league_id)
    _require_assigned_doubles(league)

    member_ids = get_member_ids(session, league_id)
    pairs = validate_fixed_pairs(raw_pairs, member_ids)

    league.rules_json = with_fixed_pairs(league.rules_json, [list(pair) for pair in pairs])
    session.add(league)
    session.commit()

    logger.info("League %s assigned teams updated by %s: %d pairs", league_id, user_id, len(pairs))
    return AssignedTeams(
        pairs=pairs,
        unpaired_member_ids=get_unpaired_member_ids(pairs, member_ids),
        names=_profile_names(session, member_ids),
    )


def list_fixtures(session: Session, league_id: int, user_id: str, week: Optional[int] = None) -> List[FixtureView]:
    """Fixtures by week with participants (and profiles) and the latest submission."""
    require_member(session, league_id, user_id, "view fixtures")

    query = select(Fixture).where(Fixture.league_id == league_id)
    if week:
        query = query.where(Fixture.week_number == week)
    fixtures = session.exec(query.order_by(Fixture.week_number, Fixture.created_at, Fixture.id)).all()
    if not fixtures:
        return []

    fixture_ids = [f.id for f in fixtures]
    participants = session.exec(
        select(FixtureParticipant)
        .where(FixtureParticipant.fixture_id.in_(fixture_ids))
        .order_by(FixtureParticipant.id)
    ).all()
    user_ids = list({p.user_id for p in participants})
    profiles = session.exec(select(Profile).where(Profile.id.in_(user_ids))).all() if user_ids else []
    profile_by_id = {p.id: p for p in profiles}

    submissions = session.exec(
        select(ResultSubmission)
        .where(ResultSubmission.fixture_id.in_(fixture_ids))
        .order_by(ResultSubmission.submitted_at.desc(), ResultSubmission.id.desc())
    ).all()
    latest: Dict[int, ResultSubmission] = {}
    for submission in submissions:
        latest.setdefault(submission.fixture_id, submission)

    by_fixture: Dict[int, List[Tuple[FixtureParticipant, Optional[Profile]]]] = {}
    for participant in participants:
        by_fixture.setdefault(participant.fixture_id, []).append(
            (participant, profile_by_id.get(participant.user_id))
        )

    return [
        FixtureView(
            fixture=fixture,
            participants=by_fixture.get(fixture.id, []),
            latest_submission=latest.get(fixture.id),
        )
        for fixture in fixtures
    ]


def list_sessions(session: Session, league_id: int, user_id: str, week: Optional[int] = None) -> List[SessionView]:
    """Running sessions by week with their runs and the caller's own run."""
    require_member(session, league_id, user_id, "view sessions")

    query = select(RunningSession).where(RunningSession.league_id == league_id)
    if week:
        query = query.where(RunningSession.week_number == week)
    sessions = session.exec(query.order_by(RunningSession.week_number, RunningSession.created_at)).all()
    if not sessions:
        return []

    runs = session.exec(
        select(SessionRun)
        .where(SessionRun.session_id.in_([s.id for s in sessions]))
        .order_by(SessionRun.submitted_at, SessionRun.id)
    ).all()
    user_ids = list({r.user_id for r in runs})
    profiles = session.exec(select(Profile).where(Profile.id.in_(user_ids))).all() if user_ids else []
    profile_by_id = {p.id: p for p in profiles}

    runs_by_session: Dict[int, List[Tuple[SessionRun, Optional[Profile]]]] = {}
    for run in runs:
        runs_by_session.setdefault(run.session_id, []).append((run, profile_by_id.get(run.user_id)))

    views = []
    for running in sessions:
        session_runs = runs_by_session.get(running.id, [])
        my_run = next((run for run, _ in session_runs if run.user_id == user_id), None)
        views.append(SessionView(running_session=running, runs=session_runs, my_run=my_run))
    return views

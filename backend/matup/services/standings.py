"""
Standings Calculator

Pure ranking math over a unified list of matches and participants. The
loader in standings_read converts legacy matches, finalized workflow
fixtures and finalized running sessions into RankingMatch/RankingParticipant
before calling in here; nothing in this module touches the database.

Ranks are 1-based sort positions. Ties are not grouped: the tie-break chain
of each format fully decides the order, and Python's stable sort keeps
roster order for exact ties.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, Hashable, List, Optional, Sequence

from matup.utils.rules import COMPARISON_ABSOLUTE_PERFORMANCE, COMPARISON_PERSONAL_PROGRESS

DEFAULT_RUN_DISTANCE_METERS = 1000
# Runs with no known week sort after every dated run
UNKNOWN_WEEK = 2**53 - 1


@dataclass
class RankingMatch:
    id: Hashable
    completed: bool
    week_number: Optional[int] = None
    winner: Optional[str] = None  # "A" | "B" | None


@dataclass
class RankingParticipant:
    match_id: Hashable
    user_id: str
    team: Optional[str] = None  # "A" | "B" | None
    score: Optional[float] = None
    time_seconds: Optional[float] = None
    distance_meters: Optional[float] = None
    points: Optional[float] = None
    set_scores: Optional[List[List[float]]] = None


@dataclass
class RankingMember:
    user_id: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None


@dataclass
class Standing:
    user_id: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    rank: int = 0
    played: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    points: float = 0
    goal_difference: float = 0
    total_time: float = 0
    total_points: float = 0


@dataclass
class TeamStanding:
    team_key: str
    player_ids: List[str] = field(default_factory=list)
    player_names: List[str] = field(default_factory=list)
    rank: int = 0
    played: int = 0
    wins: int = 0
    losses: int = 0
    win_pct: int = 0


@dataclass
class _Tally:
    played: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    points: float = 0
    goals_for: float = 0
    goals_against: float = 0
    total_time: float = 0
    total_points: float = 0


def _assign_ranks(standings: List) -> List:
    for index, standing in enumerate(standings):
        standing.rank = index + 1
    return standings


def _completed(matches: Sequence[RankingMatch], participants: Sequence[RankingParticipant]):
    completed_matches = [m for m in matches if m.completed]
    completed_ids = {m.id for m in completed_matches}
    relevant = [p for p in participants if p.match_id in completed_ids]
    return completed_matches, relevant


def _group_by_match(participants: Sequence[RankingParticipant]) -> Dict[Hashable, List[RankingParticipant]]:
    grouped: Dict[Hashable, List[RankingParticipant]] = {}
    for participant in participants:
        grouped.setdefault(participant.match_id, []).append(participant)
    return grouped


def _seed_tallies(members: Sequence[RankingMember]) -> Dict[str, _Tally]:
    return {member.user_id: _Tally() for member in members}


def _to_standings(tallies: Dict[str, _Tally], members: Sequence[RankingMember], **overrides) -> List[Standing]:
    by_id = {member.user_id: member for member in members}
    standings = []
    for user_id, tally in tallies.items():
        member = by_id.get(user_id)
        values = {
            "played": tally.played,
            "wins": tally.wins,
            "draws": tally.draws,
            "losses": tally.losses,
            "points": tally.points,
            "goal_difference": tally.goals_for - tally.goals_against,
            "total_time": tally.total_time,
            "total_points": tally.total_points,
        }
        for key, pick in overrides.items():
            values[key] = pick(tally)
        standings.append(
            Standing(
                user_id=user_id,
                name=member.name if member else None,
                avatar_url=member.avatar_url if member else None,
                **values,
            )
        )
    return standings


def _team_vs_team(matches, participants, members) -> List[Standing]:
    tallies = _seed_tallies(members)
    by_match = _group_by_match(participants)

    for match in matches:
        entries = by_match.get(match.id, [])
        team_a = [p for p in entries if p.team == "A"]
        team_b = [p for p in entries if p.team == "B"]
        if not team_a or not team_b:
            continue

        # One aggregate score per side, carried on the side's first participant
        score_a = team_a[0].score or 0
        score_b = team_b[0].score or 0

        for side, scored, conceded in ((team_a, score_a, score_b), (team_b, score_b, score_a)):
            for participant in side:
                tally = tallies.setdefault(participant.user_id, _Tally())
                tally.played += 1
                tally.goals_for += scored
                tally.goals_against += conceded
                if scored > conceded:
                    tally.wins += 1
                    tally.points += 3
                elif scored == conceded:
                    tally.draws += 1
                    tally.points += 1
                else:
                    tally.losses += 1

    standings = _to_standings(tallies, members, total_time=lambda t: 0, total_points=lambda t: 0)
    standings.sort(key=lambda s: (-s.points, -s.goal_difference, -s.wins, -s.played))
    return _assign_ranks(standings)


def _absolute_performance(participants, members) -> List[Standing]:
    tallies = _seed_tallies(members)
    for participant in participants:
        if participant.time_seconds is None:
            continue
        tally = tallies.setdefault(participant.user_id, _Tally())
        tally.played += 1
        tally.total_time += participant.time_seconds

    standings = _to_standings(tallies, members, points=lambda t: t.played, total_points=lambda t: 0)
    # Members without a run go last; everyone else by total time ascending
    standings.sort(key=lambda s: (s.played == 0, s.total_time if s.played else 0))
    return _assign_ranks(standings)


def _personal_progress(matches, participants, members) -> List[Standing]:
    week_by_match = {
        match.id: match.week_number if match.week_number is not None else UNKNOWN_WEEK for match in matches
    }
    runs_by_user: Dict[str, List[tuple]] = {}

    for participant in participants:
        if participant.time_seconds is None:
            continue
        distance = participant.distance_meters
        if not distance or distance <= 0:
            distance = DEFAULT_RUN_DISTANCE_METERS
        pace = participant.time_seconds / (distance / 1000)
        if not math.isfinite(pace) or pace <= 0:
            continue
        week = week_by_match.get(participant.match_id, UNKNOWN_WEEK)
        runs_by_user.setdefault(participant.user_id, []).append((week, participant.time_seconds, pace))

    standings = []
    for member in members:
        runs = sorted(runs_by_user.get(member.user_id, []), key=lambda run: (run[0], run[1]))

        total_improvement = 0.0
        improving = 0
        regressing = 0
        for previous, current in zip(runs, runs[1:]):
            improvement = (previous[2] - current[2]) / previous[2] * 100
            total_improvement += improvement
            if improvement > 0:
                improving += 1
            elif improvement < 0:
                regressing += 1

        score = round(total_improvement, 2) if len(runs) > 1 else 0
        standings.append(
            Standing(
                user_id=member.user_id,
                name=member.name,
                avatar_url=member.avatar_url,
                played=len(runs),
                wins=improving,
                losses=regressing,
                points=score,
                total_time=sum(run[1] for run in runs),
                total_points=score,
            )
        )

    standings.sort(key=lambda s: (-s.points, -s.wins, -s.played, s.total_time))
    return _assign_ranks(standings)


def _individual_points(participants, members) -> List[Standing]:
    tallies = _seed_tallies(members)
    for participant in participants:
        if participant.points is None:
            continue
        tally = tallies.setdefault(participant.user_id, _Tally())
        tally.played += 1
        tally.total_points += participant.points

    standings = _to_standings(tallies, members, points=lambda t: t.total_points, total_time=lambda t: 0)
    standings.sort(key=lambda s: (-s.total_points, -s.played))
    return _assign_ranks(standings)


def _win_loss(matches, participants, members) -> List[Standing]:
    tallies = _seed_tallies(members)
    by_match = _group_by_match(participants)

    for match in matches:
        if match.winner not in ("A", "B"):
            continue
        entries = by_match.get(match.id, [])
        team_a = [p for p in entries if p.team == "A"]
        team_b = [p for p in entries if p.team == "B"]
        winners, losers = (team_a, team_b) if match.winner == "A" else (team_b, team_a)

        for participant in winners:
            tally = tallies.setdefault(participant.user_id, _Tally())
            tally.played += 1
            tally.wins += 1
        for participant in losers:
            tally = tallies.setdefault(participant.user_id, _Tally())
            tally.played += 1
            tally.losses += 1

    standings = _to_standings(
        tallies,
        members,
        points=lambda t: t.wins,
        goal_difference=lambda t: 0,
        total_time=lambda t: 0,
        total_points=lambda t: 0,
    )
    standings.sort(key=lambda s: (-s.wins, s.losses, -s.played))
    return _assign_ranks(standings)


def calculate_standings(
    scoring_format: str,
    matches: Sequence[RankingMatch],
    participants: Sequence[RankingParticipant],
    members: Sequence[RankingMember],
    running_comparison_mode: Optional[str] = None,
) -> List[Standing]:
    """
    Rank league members for a scoring format.

    Only completed matches count. Participants who are not on the roster but
    appear in completed matches are ranked too (except in personal progress,
    which ranks the roster only). Unknown formats return the roster in order
    with zeroed stats.
    """
    completed_matches, relevant = _completed(matches, participants)

    if scoring_format == "team_vs_team":
        return _team_vs_team(completed_matches, relevant, members)

    if scoring_format == "individual_time":
        mode = running_comparison_mode or COMPARISON_ABSOLUTE_PERFORMANCE
        if mode == COMPARISON_PERSONAL_PROGRESS:
            return _personal_progress(completed_matches, relevant, members)
        return _absolute_performance(relevant, members)

    if scoring_format == "individual_points":
        return _individual_points(relevant, members)

    if scoring_format in ("singles", "doubles"):
        return _win_loss(completed_matches, relevant, members)

    return [
        Standing(user_id=member.user_id, name=member.name, avatar_url=member.avatar_url, rank=index + 1)
        for index, member in enumerate(members)
    ]


def calculate_team_standings(
    matches: Sequence[RankingMatch],
    participants: Sequence[RankingParticipant],
    members: Sequence[RankingMember],
) -> List[TeamStanding]:
    """Doubles pair table keyed by the pair's sorted user ids joined with '+'."""
    completed_matches, relevant = _completed(matches, participants)
    by_match = _group_by_match(relevant)
    names = {member.user_id: member.name for member in members}
    teams: Dict[str, TeamStanding] = {}

    for match in completed_matches:
        if match.winner not in ("A", "B"):
            continue
        entries = by_match.get(match.id, [])
        side_a = sorted(p.user_id for p in entries if p.team == "A")
        side_b = sorted(p.user_id for p in entries if p.team == "B")
        if len(side_a) < 2 or len(side_b) < 2:
            continue

        team_a = teams.setdefault("+".join(side_a), TeamStanding(team_key="+".join(side_a), player_ids=side_a))
        team_b = teams.setdefault("+".join(side_b), TeamStanding(team_key="+".join(side_b), player_ids=side_b))
        team_a.played += 1
        team_b.played += 1
        winner, loser = (team_a, team_b) if match.winner == "A" else (team_b, team_a)
        winner.wins += 1
        loser.losses += 1

    standings = list(teams.values())
    for team in standings:
        team.player_names = [names.get(player_id) or "Unknown" for player_id in team.player_ids]
        team.win_pct = _round_half_up(team.wins / team.played * 100) if team.played else 0

    standings.sort(key=lambda t: (-t.wins, t.losses, -t.win_pct))
    return _assign_ranks(standings)


def _round_half_up(value: float) -> int:
    return int(value + 0.5)

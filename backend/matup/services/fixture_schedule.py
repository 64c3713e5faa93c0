"""
Fixture Schedule Generation

Pure functions turning a roster and a week count into weekly fixture intents.
Each generator yields ScheduledFixture entries lazily; the production is
finite and not restartable, so call the function again to regenerate (for
example after a roster change).

Singles / assigned doubles: circle method. Position 0 stays fixed, the other
n-1 positions rotate by the round index, position i meets position n-1-i.
Odd rosters get a BYE slot and pairings touching it are dropped. Weeks past
n-1 repeat the rotation cycle.

Random doubles: every week the roster is shuffled independently and chunked
into groups of four; count % 4 players sit out that week.

Running leagues have no pairing; one session per week.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Sequence, Tuple, TypeVar

from matup.services.errors import ValidationError

BYE = "BYE"

Pair = Tuple[str, str]
_Node = TypeVar("_Node")


class ScheduleValidationError(ValidationError):
    """Raised when a schedule cannot be generated for the given roster"""

    pass


@dataclass(frozen=True)
class ScheduledFixture:
    week_number: int
    side_a: Tuple[str, ...]
    side_b: Tuple[str, ...]


def _require_positive_weeks(weeks: int) -> None:
    if not isinstance(weeks, int) or isinstance(weeks, bool) or weeks < 1:
        raise ScheduleValidationError(f"Season weeks must be a positive integer, got {weeks!r}")


def _circle_pairings(
    nodes: Sequence[_Node],
    weeks: int,
    is_bye: Callable[[_Node], bool],
) -> Iterator[Tuple[int, _Node, _Node]]:
    """Yield (week, node_a, node_b) using the circle method over `nodes` (even length)."""
    count = len(nodes)
    total_rounds = count - 1

    for week in range(1, weeks + 1):
        round_index = (week - 1) % total_rounds
        rotated = [nodes[0]]
        for i in range(1, count):
            pos = ((i - 1 + round_index) % (count - 1)) + 1
            rotated.append(nodes[pos])

        for i in range(count // 2):
            a = rotated[i]
            b = rotated[count - 1 - i]
            if is_bye(a) or is_bye(b):
                continue
            yield week, a, b


def generate_singles_schedule(member_ids: Sequence[str], weeks: int) -> Iterator[ScheduledFixture]:
    """
    Singles round robin over the roster order.

    Even n: n-1 consecutive weeks contain every unordered pair exactly once.
    Odd n: every week has (n-1)/2 fixtures and one player sits out.
    """
    _require_positive_weeks(weeks)
    ids = list(member_ids)
    if len(ids) < 2:
        raise ScheduleValidationError("Singles schedule needs at least 2 members")
    if len(ids) % 2 != 0:
        ids.append(BYE)
    return _iter_singles(ids, weeks)


def _iter_singles(ids: List[str], weeks: int) -> Iterator[ScheduledFixture]:
    for week, a, b in _circle_pairings(ids, weeks, lambda node: node == BYE):
        yield ScheduledFixture(week_number=week, side_a=(a,), side_b=(b,))


def generate_doubles_assigned_schedule(
    member_ids: Sequence[str],
    weeks: int,
    fixed_pairs: Optional[Sequence[Pair]] = None,
) -> Iterator[ScheduledFixture]:
    """
    Doubles round robin where each fixed pair acts as one circle-method node.

    Without configured pairs, consecutive roster entries are paired. Fewer
    than two pairs produces no fixtures.
    """
    _require_positive_weeks(weeks)
    if fixed_pairs:
        teams: List[Pair] = [(pair[0], pair[1]) for pair in fixed_pairs]
    else:
        ids = list(member_ids)
        teams = [(ids[i], ids[i + 1]) for i in range(0, len(ids) - 1, 2)]
    return _iter_assigned(teams, weeks)


def _iter_assigned(teams: List[Pair], weeks: int) -> Iterator[ScheduledFixture]:
    if len(teams) < 2:
        return
    team_list = list(teams)
    if len(team_list) % 2 != 0:
        team_list.append((BYE, BYE))
    for week, a, b in _circle_pairings(team_list, weeks, lambda node: node[0] == BYE):
        yield ScheduledFixture(week_number=week, side_a=tuple(a), side_b=tuple(b))


def generate_doubles_random_schedule(
    member_ids: Sequence[str],
    weeks: int,
    rng: Optional[random.Random] = None,
) -> Iterator[ScheduledFixture]:
    """
    Random doubles: an independent uniform shuffle per week, chunked into fours.

    The remainder (count % 4) sits out that week. No bench rotation is kept
    across weeks.
    """
    _require_positive_weeks(weeks)
    if len(member_ids) < 4:
        raise ScheduleValidationError("Doubles schedule needs at least 4 members")
    return _iter_random(list(member_ids), weeks, rng or random.Random())


def _iter_random(ids: List[str], weeks: int, rng: random.Random) -> Iterator[ScheduledFixture]:
    for week in range(1, weeks + 1):
        shuffled = list(ids)
        rng.shuffle(shuffled)
        playable = len(shuffled) - (len(shuffled) % 4)
        for i in range(0, playable, 4):
            yield ScheduledFixture(
                week_number=week,
                side_a=(shuffled[i], shuffled[i + 1]),
                side_b=(shuffled[i + 2], shuffled[i + 3]),
            )


def generate_session_weeks(weeks: int) -> Iterator[int]:
    """Time-trial leagues: one session per week, no pairing."""
    _require_positive_weeks(weeks)
    return iter(range(1, weeks + 1))

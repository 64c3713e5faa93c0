"""
League rule helpers built on the rules resolver.

Fixed doubles pairs live in rules_json under match.fixed_pairs as a list of
two-element user id lists. Reading is lenient (bad entries are skipped) so a
stale blob never blocks scheduling; saving is strict.
"""

from typing import Any, Iterable, List, Optional, Sequence, Set, Tuple

from matup.models.league import League
from matup.services.errors import ValidationError
from matup.utils.rules import PARTNER_MODE_FIXED_PAIRS, LeagueRules

Pair = Tuple[str, str]


def is_assigned_doubles_league(league: League, rules: Optional[LeagueRules] = None) -> bool:
    if league.scoring_format != "doubles":
        return False
    rules = rules or LeagueRules.from_league(league)
    return rules.doubles_partner_mode == PARTNER_MODE_FIXED_PAIRS or league.rotation_type == "assigned"


def _as_pair(entry: Any) -> Optional[Pair]:
    if not isinstance(entry, (list, tuple)) or len(entry) != 2:
        return None
    a, b = entry
    if not isinstance(a, str) or not isinstance(b, str):
        return None
    a, b = a.strip(), b.strip()
    if not a or not b:
        return None
    return a, b


def get_configured_fixed_pairs(raw_pairs: Optional[Sequence[Any]], member_ids: Iterable[str]) -> List[Pair]:
    """
    Return the usable fixed pairs in configured order.

    Skips malformed entries, self-pairs, non-members and any pair reusing a
    player already placed in an earlier pair.
    """
    if not raw_pairs:
        return []
    members: Set[str] = set(member_ids)
    used: Set[str] = set()
    pairs: List[Pair] = []

    for entry in raw_pairs:
        pair = _as_pair(entry)
        if pair is None:
            continue
        a, b = pair
        if a == b:
            continue
        if a not in members or b not in members:
            continue
        if a in used or b in used:
            continue
        used.update(pair)
        pairs.append(pair)

    return pairs


def validate_fixed_pairs(raw_pairs: Sequence[Any], member_ids: Iterable[str]) -> List[Pair]:
    """Strict counterpart of get_configured_fixed_pairs used when an admin saves pairs."""
    members: Set[str] = set(member_ids)
    used: Set[str] = set()
    pairs: List[Pair] = []

    for entry in raw_pairs:
        pair = _as_pair(entry)
        if pair is None:
            raise ValidationError("Each pair must include playerAId and playerBId")
        a, b = pair
        if a == b:
            raise ValidationError("A team cannot contain the same player twice")
        if a not in members or b not in members:
            raise ValidationError("All assigned players must be current league members")
        if a in used or b in used:
            raise ValidationError("Each player can only appear in one team")
        used.update(pair)
        pairs.append(pair)

    return pairs


def get_unpaired_member_ids(pairs: Sequence[Pair], member_ids: Sequence[str]) -> List[str]:
    paired = {user_id for pair in pairs for user_id in pair}
    return [user_id for user_id in member_ids if user_id not in paired]

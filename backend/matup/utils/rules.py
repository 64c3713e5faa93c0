"""
League Rules Resolver

Every league carries a schema-free rules blob (League.rules_json). This module
offers two views of it:

1. Strict path accessors (get_nested_*) that return a value only when it has
   exactly the requested type, otherwise None.
2. LeagueRules, a typed snapshot with explicit optional fields and documented
   defaults. Services read rules through LeagueRules; the accessors are the
   building blocks.

Recognised keys:
    schedule.season_weeks            number   season length override
    schedule.starts_on               string   ISO date override for league.start_date
    schedule.starts_at_local         string   "HH:MM" local start time
    sessions.default_session_type    string   default "time_trial"
    sessions.comparison_mode         string   "absolute_performance" | "personal_progress"
    standings.mode                   string   fallback for sessions.comparison_mode
    submissions.require_organizer_approval   boolean
    match.doubles_partner_mode       string   "fixed_pairs" forces assigned doubles
    match.fixed_pairs                array    [[user_a, user_b], ...]
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Sequence

if TYPE_CHECKING:
    from matup.models.league import League

RulesObject = Dict[str, Any]

DEFAULT_SEASON_WEEKS = 10
DEFAULT_SESSION_TYPE = "time_trial"

COMPARISON_PERSONAL_PROGRESS = "personal_progress"
COMPARISON_ABSOLUTE_PERFORMANCE = "absolute_performance"

PARTNER_MODE_FIXED_PAIRS = "fixed_pairs"

_MISSING = object()


def to_rules_object(value: Any) -> RulesObject:
    """Return value when it is a mapping, otherwise an empty rules object."""
    if isinstance(value, Mapping):
        return dict(value)
    return {}


def _get_nested_value(obj: Mapping[str, Any], path: Sequence[str]) -> Any:
    current: Any = obj
    for key in path:
        if not isinstance(current, Mapping):
            return _MISSING
        if key not in current:
            return _MISSING
        current = current[key]
    return current


def get_nested_bool(obj: Mapping[str, Any], path: Sequence[str]) -> Optional[bool]:
    value = _get_nested_value(obj, path)
    return value if isinstance(value, bool) else None


def get_nested_number(obj: Mapping[str, Any], path: Sequence[str]) -> Optional[float]:
    value = _get_nested_value(obj, path)
    # bool is an int subclass; a flag is never a number here
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return value


def get_nested_string(obj: Mapping[str, Any], path: Sequence[str]) -> Optional[str]:
    value = _get_nested_value(obj, path)
    return value if isinstance(value, str) else None


def get_nested_array(obj: Mapping[str, Any], path: Sequence[str]) -> Optional[List[Any]]:
    value = _get_nested_value(obj, path)
    return value if isinstance(value, list) else None


def normalize_comparison_mode(raw: Optional[str]) -> str:
    if raw == COMPARISON_ABSOLUTE_PERFORMANCE:
        return COMPARISON_ABSOLUTE_PERFORMANCE
    return COMPARISON_PERSONAL_PROGRESS


@dataclass(frozen=True)
class LeagueRules:
    """Typed view of a league's rules blob with league-column fallbacks applied."""

    season_weeks: int = DEFAULT_SEASON_WEEKS
    starts_on: Optional[str] = None
    starts_at_local: Optional[str] = None
    default_session_type: str = DEFAULT_SESSION_TYPE
    comparison_mode: str = COMPARISON_PERSONAL_PROGRESS
    require_organizer_approval: bool = False
    doubles_partner_mode: Optional[str] = None
    fixed_pairs_raw: Optional[List[Any]] = None

    @classmethod
    def from_blob(
        cls,
        blob: Any,
        season_weeks: Optional[int] = None,
        start_date: Optional[str] = None,
    ) -> "LeagueRules":
        rules = to_rules_object(blob)

        rule_weeks = get_nested_number(rules, ["schedule", "season_weeks"])
        weeks: Optional[int] = int(rule_weeks) if rule_weeks else None
        if not weeks:
            weeks = season_weeks or DEFAULT_SEASON_WEEKS

        comparison_raw = get_nested_string(rules, ["sessions", "comparison_mode"]) or get_nested_string(
            rules, ["standings", "mode"]
        )

        return cls(
            season_weeks=weeks,
            starts_on=get_nested_string(rules, ["schedule", "starts_on"]) or start_date,
            starts_at_local=get_nested_string(rules, ["schedule", "starts_at_local"]),
            default_session_type=get_nested_string(rules, ["sessions", "default_session_type"])
            or DEFAULT_SESSION_TYPE,
            comparison_mode=normalize_comparison_mode(comparison_raw),
            require_organizer_approval=get_nested_bool(rules, ["submissions", "require_organizer_approval"]) is True,
            doubles_partner_mode=get_nested_string(rules, ["match", "doubles_partner_mode"]),
            fixed_pairs_raw=get_nested_array(rules, ["match", "fixed_pairs"]),
        )

    @classmethod
    def from_league(cls, league: "League") -> "LeagueRules":
        start_date = league.start_date.isoformat() if league.start_date else None
        return cls.from_blob(league.rules_json, season_weeks=league.season_weeks, start_date=start_date)


def with_fixed_pairs(blob: Any, pairs: List[List[str]]) -> RulesObject:
    """Return a copy of the rules blob with match.fixed_pairs replaced."""
    rules = to_rules_object(blob)
    match_rules = to_rules_object(rules.get("match"))
    match_rules["fixed_pairs"] = [list(pair) for pair in pairs]
    rules["match"] = match_rules
    return rules

"""
League rules tests: typed rules snapshot, nested accessors, fixed pairs.

Validates:
- Accessors return a value only when it has exactly the requested type
- LeagueRules defaults and league-column fallbacks
- Comparison mode normalization (sessions.comparison_mode, then standings.mode)
- Lenient fixed-pair reading vs strict fixed-pair validation
"""

from datetime import date

import pytest

from matup.models.league import League
from matup.services.errors import ValidationError
from matup.services.league_rules import (
    get_configured_fixed_pairs,
    get_unpaired_member_ids,
    is_assigned_doubles_league,
    validate_fixed_pairs,
)
from matup.utils.rules import (
    COMPARISON_ABSOLUTE_PERFORMANCE,
    COMPARISON_PERSONAL_PROGRESS,
    DEFAULT_SEASON_WEEKS,
    LeagueRules,
    get_nested_array,
    get_nested_bool,
    get_nested_number,
    get_nested_string,
    to_rules_object,
    with_fixed_pairs,
)

MEMBERS = ["u1", "u2", "u3", "u4", "u5"]


def test_to_rules_object_only_accepts_mappings():
    assert to_rules_object({"a": 1}) == {"a": 1}
    assert to_rules_object(None) == {}
    assert to_rules_object([1, 2]) == {}
    assert to_rules_object("rules") == {}


def test_nested_accessors_are_type_strict():
    blob = {"a": {"flag": True, "n": 3, "s": "x", "list": [1], "inf": float("inf")}}

    assert get_nested_bool(blob, ["a", "flag"]) is True
    assert get_nested_bool(blob, ["a", "n"]) is None
    assert get_nested_number(blob, ["a", "n"]) == 3
    assert get_nested_number(blob, ["a", "flag"]) is None
    assert get_nested_number(blob, ["a", "inf"]) is None
    assert get_nested_string(blob, ["a", "s"]) == "x"
    assert get_nested_string(blob, ["a", "missing"]) is None
    assert get_nested_array(blob, ["a", "list"]) == [1]
    assert get_nested_array(blob, ["a", "s", "deeper"]) is None


def test_rules_defaults():
    rules = LeagueRules.from_blob(None)
    assert rules.season_weeks == DEFAULT_SEASON_WEEKS
    assert rules.default_session_type == "time_trial"
    assert rules.comparison_mode == COMPARISON_PERSONAL_PROGRESS
    assert rules.require_organizer_approval is False
    assert rules.fixed_pairs_raw is None


def test_rules_blob_overrides_league_columns():
    league = League(
        name="L",
        sport_type="tennis",
        scoring_format="singles",
        season_weeks=8,
        start_date=date(2026, 3, 2),
        rules_json={"schedule": {"season_weeks": 5, "starts_at_local": "18:30"}},
    )
    rules = LeagueRules.from_league(league)
    assert rules.season_weeks == 5
    assert rules.starts_on == "2026-03-02"
    assert rules.starts_at_local == "18:30"


def test_rules_fall_back_to_league_season_weeks():
    rules = LeagueRules.from_blob({"schedule": {"season_weeks": "6"}}, season_weeks=8)
    assert rules.season_weeks == 8


@pytest.mark.parametrize(
    "blob, expected",
    [
        ({"sessions": {"comparison_mode": "absolute_performance"}}, COMPARISON_ABSOLUTE_PERFORMANCE),
        ({"standings": {"mode": "absolute_performance"}}, COMPARISON_ABSOLUTE_PERFORMANCE),
        ({"sessions": {"comparison_mode": "fastest"}}, COMPARISON_PERSONAL_PROGRESS),
        ({}, COMPARISON_PERSONAL_PROGRESS),
    ],
)
def test_comparison_mode_normalized(blob, expected):
    assert LeagueRules.from_blob(blob).comparison_mode == expected


def test_organizer_approval_requires_literal_true():
    assert LeagueRules.from_blob({"submissions": {"require_organizer_approval": True}}).require_organizer_approval
    assert not LeagueRules.from_blob({"submissions": {"require_organizer_approval": "yes"}}).require_organizer_approval


def test_with_fixed_pairs_returns_new_blob():
    blob = {"match": {"doubles_partner_mode": "fixed_pairs"}, "other": 1}
    updated = with_fixed_pairs(blob, [["u1", "u2"]])

    assert updated == {"match": {"doubles_partner_mode": "fixed_pairs", "fixed_pairs": [["u1", "u2"]]}, "other": 1}
    assert "fixed_pairs" not in blob["match"]


def test_assigned_doubles_detection():
    by_rotation = League(name="L", sport_type="tennis", scoring_format="doubles", rotation_type="assigned")
    by_rules = League(
        name="L",
        sport_type="tennis",
        scoring_format="doubles",
        rules_json={"match": {"doubles_partner_mode": "fixed_pairs"}},
    )
    random_doubles = League(name="L", sport_type="tennis", scoring_format="doubles", rotation_type="random")
    singles = League(name="L", sport_type="tennis", scoring_format="singles", rotation_type="assigned")

    assert is_assigned_doubles_league(by_rotation)
    assert is_assigned_doubles_league(by_rules)
    assert not is_assigned_doubles_league(random_doubles)
    assert not is_assigned_doubles_league(singles)


def test_configured_pairs_skip_bad_entries():
    raw = [
        ["u1", "u2"],
        ["u3", "u3"],  # self pair
        ["u2", "u4"],  # u2 already used
        ["u4", "stranger"],  # not a member
        "u4,u5",  # malformed
        [" u4 ", "u5"],
    ]
    assert get_configured_fixed_pairs(raw, MEMBERS) == [("u1", "u2"), ("u4", "u5")]
    assert get_configured_fixed_pairs(None, MEMBERS) == []


@pytest.mark.parametrize(
    "raw, message",
    [
        ([["u1"]], "playerAId and playerBId"),
        ([["u1", ""]], "playerAId and playerBId"),
        ([["u1", "u1"]], "same player twice"),
        ([["u1", "stranger"]], "current league members"),
        ([["u1", "u2"], ["u2", "u3"]], "only appear in one team"),
    ],
)
def test_validate_fixed_pairs_rejects(raw, message):
    with pytest.raises(ValidationError, match=message):
        validate_fixed_pairs(raw, MEMBERS)


def test_validate_fixed_pairs_accepts_and_reports_unpaired():
    pairs = validate_fixed_pairs([["u1", "u3"], ["u2", "u4"]], MEMBERS)
    assert pairs == [("u1", "u3"), ("u2", "u4")]
    assert get_unpaired_member_ids(pairs, MEMBERS) == ["u5"]

"""
Running session workflow tests.

Validates:
- upsert_session creates/updates one session per week plus its paired fixture
- submit_run upserts per user, opens the session, respects deadline and approval rules
- review_run approve/reject
- finalize_session promotes eligible runs once; a second finalize is rejected
- Session and paired fixture statuses never move backward; terminal fixtures stay terminal
"""

from datetime import datetime

import pytest
from sqlmodel import Session, select

from matup.models.fixture import Fixture
from matup.models.league import League, LeagueMember
from matup.models.running_session import RunningSession, SessionRun
from matup.services.errors import AuthorizationError, NotFoundError, StateConflictError, ValidationError
from matup.services.result_workflow import cancel_fixture
from matup.services.run_workflow import finalize_session, review_run, submit_run, upsert_session


def _make_running_league(session: Session, rules=None) -> League:
    league = League(
        name="Parkrun Club",
        sport_type="running",
        scoring_format="individual_time",
        rules_json=rules,
        created_by="coach",
    )
    session.add(league)
    session.flush()
    session.add(LeagueMember(league_id=league.id, user_id="coach", role="owner"))
    for user_id in ("r1", "r2", "r3"):
        session.add(LeagueMember(league_id=league.id, user_id=user_id, role="member"))
    session.commit()
    return league


def _paired_fixtures(session: Session, league_id: int, week: int):
    return session.exec(
        select(Fixture).where(
            Fixture.league_id == league_id,
            Fixture.week_number == week,
            Fixture.fixture_type == "time_trial_session",
        )
    ).all()


def test_upsert_session_creates_session_and_paired_fixture(session):
    league = _make_running_league(session)

    running = upsert_session(
        session,
        league.id,
        "coach",
        week_number=1,
        distance_meters="5000",
        route_name="  River loop ",
        starts_at="2026-03-02T18:00:00Z",
        submission_deadline="2026-03-08T23:59:00Z",
        comparison_mode="absolute_performance",
    )

    assert running.session_type == "time_trial"
    assert running.distance_meters == 5000
    assert running.route_name == "River loop"
    assert running.comparison_mode == "absolute_performance"
    assert running.status == "scheduled"

    fixtures = _paired_fixtures(session, league.id, 1)
    assert len(fixtures) == 1
    assert fixtures[0].ends_at == datetime(2026, 3, 8, 23, 59)
    assert fixtures[0].metadata_json["source"] == "manual_session"


def test_upsert_session_updates_existing_week(session):
    league = _make_running_league(session)
    first = upsert_session(session, league.id, "coach", week_number=2, distance_meters=3000)
    second = upsert_session(
        session,
        league.id,
        "coach",
        week_number=2,
        session_type="interval",
        distance_meters=4000,
        comparison_mode="bogus",
        status="finalized",
    )

    assert second.id == first.id
    assert second.session_type == "interval"
    assert second.distance_meters == 4000
    assert second.comparison_mode == "personal_progress"
    assert len(session.exec(select(RunningSession).where(RunningSession.league_id == league.id)).all()) == 1

    fixtures = _paired_fixtures(session, league.id, 2)
    assert len(fixtures) == 1
    assert fixtures[0].status == "finalized"


def test_upsert_session_preconditions(session):
    league = _make_running_league(session)

    with pytest.raises(ValidationError, match="weekNumber"):
        upsert_session(session, league.id, "coach", week_number=0)
    with pytest.raises(AuthorizationError):
        upsert_session(session, league.id, "r1", week_number=1)

    tennis = League(name="Tennis", sport_type="tennis", scoring_format="singles")
    session.add(tennis)
    session.flush()
    session.add(LeagueMember(league_id=tennis.id, user_id="coach", role="owner"))
    session.commit()
    with pytest.raises(ValidationError, match="only supported for running leagues"):
        upsert_session(session, tennis.id, "coach", week_number=1)


def test_submit_run_is_approved_and_opens_session(session):
    league = _make_running_league(session)
    running = upsert_session(session, league.id, "coach", week_number=1, distance_meters=5000)

    outcome = submit_run(session, running.id, "r1", elapsed_seconds=1500, proof_url=" https://strava.example/1 ")

    assert outcome.success is True
    assert outcome.requires_review is False
    assert outcome.run.status == "approved"
    assert outcome.run.distance_meters == 5000
    assert outcome.run.proof_url == "https://strava.example/1"
    assert session.get(RunningSession, running.id).status == "open"
    assert _paired_fixtures(session, league.id, 1)[0].status == "submitted"


def test_submit_run_replaces_previous_run(session):
    league = _make_running_league(session)
    running = upsert_session(session, league.id, "coach", week_number=1, distance_meters=5000)

    first = submit_run(session, running.id, "r1", elapsed_seconds=1500)
    second = submit_run(session, running.id, "r1", elapsed_seconds="1450", distance_meters=5100)

    assert second.run.id == first.run.id
    assert second.run.elapsed_seconds == 1450
    assert second.run.distance_meters == 5100
    assert len(session.exec(select(SessionRun).where(SessionRun.session_id == running.id)).all()) == 1


def test_submit_run_validation(session):
    league = _make_running_league(session)
    running = upsert_session(session, league.id, "coach", week_number=1)

    with pytest.raises(ValidationError, match="elapsedSeconds"):
        submit_run(session, running.id, "r1", elapsed_seconds=0)
    with pytest.raises(ValidationError, match="elapsedSeconds"):
        submit_run(session, running.id, "r1", elapsed_seconds=True)
    with pytest.raises(ValidationError, match="distanceMeters"):
        submit_run(session, running.id, "r1", elapsed_seconds=1500)
    with pytest.raises(AuthorizationError):
        submit_run(session, running.id, "stranger", elapsed_seconds=1500, distance_meters=5000)
    with pytest.raises(NotFoundError, match="Session not found"):
        submit_run(session, running.id + 100, "r1", elapsed_seconds=1500, distance_meters=5000)


def test_submit_run_after_deadline(session):
    league = _make_running_league(session)
    running = upsert_session(
        session,
        league.id,
        "coach",
        week_number=1,
        distance_meters=5000,
        submission_deadline="2026-03-08T23:59:00Z",
    )

    submit_run(session, running.id, "r1", elapsed_seconds=1500, now=datetime(2026, 3, 8, 12, 0))
    with pytest.raises(StateConflictError, match="deadline has passed"):
        submit_run(session, running.id, "r2", elapsed_seconds=1500, now=datetime(2026, 3, 9, 0, 0))


def test_runs_need_review_when_required(session):
    league = _make_running_league(session, rules={"submissions": {"require_organizer_approval": True}})
    running = upsert_session(session, league.id, "coach", week_number=1, distance_meters=5000)

    r1 = submit_run(session, running.id, "r1", elapsed_seconds=1500)
    r2 = submit_run(session, running.id, "r2", elapsed_seconds=1400)
    assert r1.requires_review is True
    assert r1.run.status == "submitted"

    with pytest.raises(AuthorizationError):
        review_run(session, running.id, r1.run.id, "r2")

    approved = review_run(session, running.id, r1.run.id, "coach", decision="approve", note=" ok ")
    assert approved.run.status == "approved"
    assert approved.run.reviewed_by == "coach"
    assert approved.run.review_note == "ok"

    outcome = finalize_session(session, running.id, "coach")

    assert outcome.finalized_runs == 1
    assert session.get(SessionRun, r1.run.id).status == "finalized"
    assert session.get(SessionRun, r2.run.id).status == "submitted"


def test_review_run_errors(session):
    league = _make_running_league(session)
    week1 = upsert_session(session, league.id, "coach", week_number=1, distance_meters=5000)
    week2 = upsert_session(session, league.id, "coach", week_number=2, distance_meters=5000)
    run = submit_run(session, week1.id, "r1", elapsed_seconds=1500).run

    with pytest.raises(ValidationError, match="decision"):
        review_run(session, week1.id, run.id, "coach", decision="maybe")
    with pytest.raises(NotFoundError, match="Run not found"):
        review_run(session, week2.id, run.id, "coach")

    finalize_session(session, week1.id, "coach")
    with pytest.raises(StateConflictError, match="already finalized"):
        review_run(session, week1.id, run.id, "coach", decision="reject")


def test_finalize_session_promotes_runs_once(session):
    league = _make_running_league(session)
    running = upsert_session(session, league.id, "coach", week_number=1, distance_meters=5000)
    submit_run(session, running.id, "r1", elapsed_seconds=1500)
    r2 = submit_run(session, running.id, "r2", elapsed_seconds=1380)
    rejected = submit_run(session, running.id, "r3", elapsed_seconds=900)
    review_run(session, running.id, rejected.run.id, "coach", decision="reject", note="Shortcut")

    with pytest.raises(AuthorizationError):
        finalize_session(session, running.id, "r1")

    outcome = finalize_session(session, running.id, "coach")

    assert outcome.finalized_runs == 2
    assert session.get(RunningSession, running.id).status == "finalized"
    fixture = _paired_fixtures(session, league.id, 1)[0]
    assert fixture.status == "finalized"
    assert fixture.metadata_json["finalized_runs"] == 2
    assert fixture.metadata_json["best_elapsed_seconds"] == 1380
    assert fixture.metadata_json["source"] == "manual_session"
    assert session.get(SessionRun, r2.run.id).status == "finalized"
    assert session.get(SessionRun, rejected.run.id).status == "rejected"

    with pytest.raises(StateConflictError, match="already finalized"):
        finalize_session(session, running.id, "coach")

    finalized = session.exec(
        select(SessionRun).where(SessionRun.session_id == running.id, SessionRun.status == "finalized")
    ).all()
    assert len(finalized) == 2

    with pytest.raises(StateConflictError):
        submit_run(session, running.id, "r3", elapsed_seconds=1600)


def test_upsert_session_keeps_status_and_rejects_moving_back(session):
    league = _make_running_league(session)
    running = upsert_session(session, league.id, "coach", week_number=1, distance_meters=5000)
    submit_run(session, running.id, "r1", elapsed_seconds=1500)

    resaved = upsert_session(session, league.id, "coach", week_number=1, distance_meters=5000, route_name="Park loop")

    assert resaved.status == "open"
    assert resaved.route_name == "Park loop"
    assert _paired_fixtures(session, league.id, 1)[0].status == "submitted"

    with pytest.raises(StateConflictError, match="from open back to scheduled"):
        upsert_session(session, league.id, "coach", week_number=1, status="scheduled")


def test_upsert_session_rejects_finalized_session(session):
    league = _make_running_league(session, rules={"sessions": {"comparison_mode": "absolute_performance"}})
    running = upsert_session(session, league.id, "coach", week_number=1, distance_meters=5000)
    submit_run(session, running.id, "r1", elapsed_seconds=1500)
    finalize_session(session, running.id, "coach")

    with pytest.raises(StateConflictError, match="Cannot update finalized session"):
        upsert_session(session, league.id, "coach", week_number=1, distance_meters=5000, route_name="Park loop")

    session.expire_all()
    assert session.get(RunningSession, running.id).status == "finalized"
    assert session.get(RunningSession, running.id).route_name is None
    fixture = _paired_fixtures(session, league.id, 1)[0]
    assert fixture.status == "finalized"
    assert fixture.metadata_json["finalized_runs"] == 1


def test_finalize_session_leaves_cancelled_fixture_cancelled(session):
    league = _make_running_league(session)
    running = upsert_session(session, league.id, "coach", week_number=1, distance_meters=5000)
    r1 = submit_run(session, running.id, "r1", elapsed_seconds=1500)
    fixture = _paired_fixtures(session, league.id, 1)[0]
    cancel_fixture(session, fixture.id, "coach", reason="Track closed")

    submit_run(session, running.id, "r2", elapsed_seconds=1450)
    assert _paired_fixtures(session, league.id, 1)[0].status == "cancelled"

    outcome = finalize_session(session, running.id, "coach")

    assert outcome.finalized_runs == 2
    assert session.get(RunningSession, running.id).status == "finalized"
    assert session.get(SessionRun, r1.run.id).status == "finalized"
    fixture = _paired_fixtures(session, league.id, 1)[0]
    assert fixture.status == "cancelled"
    assert "finalized_runs" not in fixture.metadata_json
    assert fixture.metadata_json["cancellation_reason"] == "Track closed"

"""
Fixture and session endpoint tests (HTTP surface of both workflows).

Validates:
- submit/confirm/resolve/cancel return {success, finalized, disputed, submissionId}
- Error statuses: 400 validation, 403 role, 404 unknown id, 409 terminal state
- Session upsert, run submit/review and finalize over HTTP
- Finalized results show up in the standings endpoint
"""

from sqlmodel import Session

from matup.models.fixture import Fixture, FixtureParticipant
from matup.models.league import League, LeagueMember


def _headers(user_id: str = "owner"):
    return {"X-User-Id": user_id}


def _make_league(session: Session, members, **fields) -> League:
    values = {"name": "League", "sport_type": "tennis", "scoring_format": "singles"}
    values.update(fields)
    league = League(**values)
    session.add(league)
    session.flush()
    session.add(LeagueMember(league_id=league.id, user_id="owner", role="owner"))
    for user_id in members:
        session.add(LeagueMember(league_id=league.id, user_id=user_id, role="member"))
    session.commit()
    return league


def _make_fixture(session: Session, league: League, a: str = "u1", b: str = "u2") -> Fixture:
    fixture = Fixture(league_id=league.id, week_number=1)
    session.add(fixture)
    session.flush()
    session.add(FixtureParticipant(fixture_id=fixture.id, user_id=a, side="A"))
    session.add(FixtureParticipant(fixture_id=fixture.id, user_id=b, side="B"))
    session.commit()
    return fixture


def test_submit_and_confirm_over_http(client, session):
    league = _make_league(session, ["u1", "u2"])
    fixture = _make_fixture(session, league)
    base = f"/api/fixtures/{fixture.id}"

    resp = client.post(f"{base}/results/submit", json={"payload": {"winner": "A"}}, headers=_headers("u1"))
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["finalized"] is False
    assert body["submission"]["status"] == "pending"
    submission_id = body["submissionId"]

    listed = client.get(f"/api/leagues/{league.id}/fixtures", headers=_headers("u2")).json()["fixtures"]
    assert listed[0]["status"] == "submitted"
    assert listed[0]["latestSubmission"]["id"] == submission_id
    assert listed[0]["latestSubmission"]["submittedBy"] == "u1"

    resp = client.post(f"{base}/results/confirm", json={"submissionId": submission_id}, headers=_headers("u1"))
    assert resp.status_code == 400

    resp = client.post(f"{base}/results/confirm", json={"submissionId": submission_id}, headers=_headers("u2"))
    assert resp.status_code == 200
    assert resp.json()["finalized"] is True
    assert resp.json()["disputed"] is False

    resp = client.post(f"{base}/results/submit", json={"payload": {"winner": "B"}}, headers=_headers("u2"))
    assert resp.status_code == 409

    standings = client.get(f"/api/leagues/{league.id}/standings", headers=_headers("u2")).json()
    assert standings["standings"][0]["userId"] == "u1"
    assert standings["sources"]["workflowFinalizedFixtures"] == 1


def test_dispute_and_resolve_over_http(client, session):
    league = _make_league(session, ["u1", "u2"])
    fixture = _make_fixture(session, league)
    base = f"/api/fixtures/{fixture.id}"

    submission_id = client.post(
        f"{base}/results/submit", json={"payload": {"winner": "A"}}, headers=_headers("u1")
    ).json()["submissionId"]

    resp = client.post(
        f"{base}/results/confirm",
        json={"submissionId": submission_id, "decision": "reject", "reason": "Score was 6-4 4-6 8-10"},
        headers=_headers("u2"),
    )
    assert resp.json() == {
        "success": True,
        "finalized": False,
        "disputed": True,
        "submissionId": submission_id,
        "submission": None,
    }

    resp = client.post(f"{base}/results/resolve", json={"payload": {"winner": "B"}}, headers=_headers("u1"))
    assert resp.status_code == 403

    resp = client.post(
        f"{base}/results/resolve",
        json={"payload": {"winner": "B", "sets": [[4, 6], [6, 4], [8, 10]]}, "reason": "Both agreed"},
        headers=_headers(),
    )
    assert resp.status_code == 200
    assert resp.json()["finalized"] is True
    assert resp.json()["submission"]["source"] == "organizer"

    listed = client.get(f"/api/leagues/{league.id}/fixtures?week=1", headers=_headers()).json()["fixtures"]
    assert listed[0]["status"] == "finalized"
    assert listed[0]["metadata"]["final_result"]["winner"] == "B"
    assert listed[0]["metadata"]["resolution_reason"] == "Both agreed"


def test_cancel_over_http(client, session):
    league = _make_league(session, ["u1", "u2"])
    fixture = _make_fixture(session, league)

    resp = client.post(f"/api/fixtures/{fixture.id}/cancel", json={"reason": "Court closed"}, headers=_headers())
    assert resp.status_code == 200
    assert resp.json()["finalized"] is False

    resp = client.post(f"/api/fixtures/{fixture.id}/cancel", headers=_headers())
    assert resp.status_code == 409

    assert client.post("/api/fixtures/9999/cancel", headers=_headers()).status_code == 404


def test_running_session_flow_over_http(client, session):
    league = _make_league(
        session,
        ["r1", "r2"],
        sport_type="running",
        scoring_format="individual_time",
        rules_json={"sessions": {"comparison_mode": "absolute_performance"}},
    )

    resp = client.post(
        f"/api/leagues/{league.id}/sessions",
        json={"weekNumber": 1, "distanceMeters": 5000, "routeName": "Harbour 5k"},
        headers=_headers(),
    )
    assert resp.status_code == 200, resp.text
    session_id = resp.json()["session"]["id"]
    assert resp.json()["session"]["routeName"] == "Harbour 5k"

    resp = client.post(f"/api/leagues/{league.id}/sessions", json={"weekNumber": 1}, headers=_headers("r1"))
    assert resp.status_code == 403

    r1 = client.post(f"/api/sessions/{session_id}/runs/submit", json={"elapsedSeconds": 1510}, headers=_headers("r1"))
    assert r1.status_code == 200
    assert r1.json()["requiresReview"] is False
    assert r1.json()["run"]["status"] == "approved"

    r2 = client.post(f"/api/sessions/{session_id}/runs/submit", json={"elapsedSeconds": 1490}, headers=_headers("r2"))
    run_id = r2.json()["run"]["id"]

    resp = client.post(
        f"/api/sessions/{session_id}/runs/{run_id}/review",
        json={"decision": "approve", "note": "GPS checked"},
        headers=_headers(),
    )
    assert resp.status_code == 200
    assert resp.json()["run"]["reviewNote"] == "GPS checked"

    listed = client.get(f"/api/leagues/{league.id}/sessions?week=1", headers=_headers("r1")).json()["sessions"]
    assert listed[0]["status"] == "open"
    assert len(listed[0]["runs"]) == 2
    assert listed[0]["myRun"]["elapsedSeconds"] == 1510

    resp = client.post(f"/api/sessions/{session_id}/finalize", headers=_headers())
    assert resp.status_code == 200
    assert resp.json()["finalizedRuns"] == 2

    resp = client.post(f"/api/sessions/{session_id}/finalize", headers=_headers())
    assert resp.status_code == 409

    standings = client.get(f"/api/leagues/{league.id}/standings", headers=_headers("r1")).json()
    assert standings["runningMode"] == "absolute_performance"
    assert [s["userId"] for s in standings["standings"][:2]] == ["r2", "r1"]
    assert standings["sources"]["workflowFinalizedSessions"] == 1


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"

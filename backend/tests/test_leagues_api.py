"""
League API tests: creation, roster, invite codes and joining.

Validates:
- Creating a league makes the caller its owner
- Every endpoint requires the X-User-Id header
- Only organizers add members or read the invite code
- Invite codes are assigned once and matched case-insensitively
- Invite code assignment retries on collisions and gives up after a fixed bound
- A code written by a concurrent writer is returned without further attempts
"""

import pytest
from sqlalchemy import update
from sqlmodel import select

from matup.models.league import League, LeagueMember
from matup.services import league_service
from matup.services.league_service import INVITE_CODE_ATTEMPTS, InviteCodeError, ensure_league_invite_code


def _headers(user_id: str = "owner"):
    return {"X-User-Id": user_id}


def _create_league(client, user_id: str = "owner", **overrides):
    body = {"name": "Thursday Singles", "sportType": "tennis", "scoringFormat": "singles", "seasonWeeks": 6}
    body.update(overrides)
    resp = client.post("/api/leagues", json=body, headers=_headers(user_id))
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_create_league_makes_caller_owner(client, session):
    league = _create_league(client, startDate="2026-03-02", rules={"schedule": {"starts_at_local": "19:00"}})

    assert league["name"] == "Thursday Singles"
    assert league["sportType"] == "tennis"
    assert league["scoringFormat"] == "singles"
    assert league["seasonWeeks"] == 6
    assert league["startDate"] == "2026-03-02"
    assert league["createdBy"] == "owner"

    member = session.exec(select(LeagueMember).where(LeagueMember.league_id == league["id"])).one()
    assert (member.user_id, member.role) == ("owner", "owner")


def test_create_league_validation(client):
    resp = client.post(
        "/api/leagues",
        json={"name": "  ", "sportType": "tennis", "scoringFormat": "singles"},
        headers=_headers(),
    )
    assert resp.status_code == 400
    assert "name is required" in resp.json()["detail"]

    resp = client.post(
        "/api/leagues",
        json={"name": "X", "sportType": "tennis", "scoringFormat": "relay"},
        headers=_headers(),
    )
    assert resp.status_code == 400
    assert "Unknown scoring format" in resp.json()["detail"]


def test_missing_identity_header_is_401(client):
    resp = client.post("/api/leagues", json={"name": "X", "sportType": "tennis", "scoringFormat": "singles"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Missing X-User-Id header"


def test_get_league_requires_membership(client):
    league = _create_league(client)

    assert client.get(f"/api/leagues/{league['id']}", headers=_headers()).status_code == 200

    resp = client.get(f"/api/leagues/{league['id']}", headers=_headers("stranger"))
    assert resp.status_code == 403
    assert resp.json()["detail"] == "You must be a league member to view this league"

    assert client.get("/api/leagues/9999", headers=_headers()).status_code == 403


def test_add_member(client):
    league = _create_league(client)
    url = f"/api/leagues/{league['id']}/members"

    resp = client.post(url, json={"userId": "u1"}, headers=_headers())
    assert resp.status_code == 201
    assert resp.json()["userId"] == "u1"
    assert resp.json()["role"] == "member"

    assert client.post(url, json={"userId": "u1"}, headers=_headers()).status_code == 409
    assert client.post(url, json={"userId": "u2"}, headers=_headers("u1")).status_code == 403
    assert client.post(url, json={"userId": "u2", "role": "captain"}, headers=_headers()).status_code == 400


def test_only_owner_adds_owners(client):
    league = _create_league(client)
    url = f"/api/leagues/{league['id']}/members"
    client.post(url, json={"userId": "helper", "role": "admin"}, headers=_headers())

    resp = client.post(url, json={"userId": "u1", "role": "owner"}, headers=_headers("helper"))
    assert resp.status_code == 403

    resp = client.post(url, json={"userId": "u1"}, headers=_headers("helper"))
    assert resp.status_code == 201


def test_invite_code_is_stable_and_organizer_only(client):
    league = _create_league(client)
    url = f"/api/leagues/{league['id']}/invite-code"

    first = client.get(url, headers=_headers())
    assert first.status_code == 200
    code = first.json()["inviteCode"]
    assert len(code) == 8
    assert code == code.upper()

    assert client.get(url, headers=_headers()).json()["inviteCode"] == code

    client.post(f"/api/leagues/{league['id']}/members", json={"userId": "u1"}, headers=_headers())
    assert client.get(url, headers=_headers("u1")).status_code == 403


def test_join_with_invite_code(client):
    league = _create_league(client)
    code = client.get(f"/api/leagues/{league['id']}/invite-code", headers=_headers()).json()["inviteCode"]
    url = f"/api/leagues/{league['id']}/join"

    resp = client.post(url, json={"inviteCode": "WRONG123"}, headers=_headers("newbie"))
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Invite code is invalid"

    resp = client.post(url, json={}, headers=_headers("newbie"))
    assert resp.status_code == 400
    assert resp.json()["detail"] == "inviteCode is required"

    resp = client.post(url, json={"inviteCode": f" {code.lower()} "}, headers=_headers("newbie"))
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "alreadyMember": False}

    resp = client.post(url, json={"inviteCode": code}, headers=_headers("newbie"))
    assert resp.json() == {"success": True, "alreadyMember": True}

    assert client.get(f"/api/leagues/{league['id']}", headers=_headers("newbie")).status_code == 200


def _make_league(session, invite_code=None):
    league = League(name="L", sport_type="tennis", scoring_format="singles", invite_code=invite_code)
    session.add(league)
    session.commit()
    return league


def test_invite_code_retries_after_collision(session, monkeypatch):
    _make_league(session, invite_code="TAKEN001")
    league = _make_league(session)
    candidates = iter(["TAKEN001", "FRESH002"])
    monkeypatch.setattr(league_service, "generate_invite_code", lambda: next(candidates))

    assert ensure_league_invite_code(session, league.id) == "FRESH002"
    assert session.get(League, league.id).invite_code == "FRESH002"


def test_invite_code_gives_up_after_bounded_attempts(session, monkeypatch):
    _make_league(session, invite_code="TAKEN001")
    league = _make_league(session)
    calls = []

    def always_taken():
        calls.append(1)
        return "TAKEN001"

    monkeypatch.setattr(league_service, "generate_invite_code", always_taken)

    with pytest.raises(InviteCodeError, match="Failed to assign invite code"):
        ensure_league_invite_code(session, league.id)
    assert len(calls) == INVITE_CODE_ATTEMPTS


def test_invite_code_set_by_concurrent_writer_is_returned(session, monkeypatch):
    league = _make_league(session)
    calls = []

    def concurrent_writer_wins():
        calls.append(1)
        session.execute(update(League).where(League.id == league.id).values(invite_code="OTHER123"))
        return "MINE0001"

    monkeypatch.setattr(league_service, "generate_invite_code", concurrent_writer_wins)

    assert ensure_league_invite_code(session, league.id) == "OTHER123"
    assert len(calls) == 1

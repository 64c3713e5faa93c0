"""
League access guards.

League membership role is the only authorization primitive: owners and
admins are organizers, everyone else with a membership row is a member.
"""

from typing import List, Optional

from sqlmodel import Session, select

from matup.models.league import ADMIN_ROLES, League, LeagueMember
from matup.services.errors import AuthorizationError, NotFoundError


def get_league_role(session: Session, league_id: int, user_id: str) -> Optional[str]:
    member = session.exec(
        select(LeagueMember).where(LeagueMember.league_id == league_id, LeagueMember.user_id == user_id)
    ).first()
    return member.role if member else None


def is_league_admin_role(role: Optional[str]) -> bool:
    return role in ADMIN_ROLES


def get_league_or_404(session: Session, league_id: int) -> League:
    league = session.get(League, league_id)
    if not league:
        raise NotFoundError("League not found")
    return league


def require_member(session: Session, league_id: int, user_id: str, action: str) -> str:
    """Return the caller's role or raise AuthorizationError naming the action."""
    role = get_league_role(session, league_id, user_id)
    if not role:
        raise AuthorizationError(f"You must be a league member to {action}")
    return role


def require_admin(session: Session, league_id: int, user_id: str, action: str) -> str:
    role = get_league_role(session, league_id, user_id)
    if not is_league_admin_role(role):
        raise AuthorizationError(f"Only league owner/admin can {action}")
    return role


def get_member_ids(session: Session, league_id: int) -> List[str]:
    """Roster in join order."""
    members = session.exec(
        select(LeagueMember).where(LeagueMember.league_id == league_id).order_by(LeagueMember.id)
    ).all()
    return [m.user_id for m in members if m.user_id]

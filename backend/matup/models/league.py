from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import JSON
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, Relationship, SQLModel

from matup.utils.league_dates import utc_now

if TYPE_CHECKING:
    from matup.models.fixture import Fixture

ROLE_OWNER = "owner"
ROLE_ADMIN = "admin"
ROLE_MEMBER = "member"

ADMIN_ROLES = frozenset({ROLE_OWNER, ROLE_ADMIN})

SCORING_FORMATS = frozenset({"team_vs_team", "individual_time", "individual_points", "singles", "doubles"})


class League(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    sport_type: str  # "tennis" | "running" | "football" | ...
    scoring_format: str  # "team_vs_team" | "individual_time" | "individual_points" | "singles" | "doubles"
    rotation_type: Optional[str] = Field(default=None)  # "random" | "assigned"
    season_weeks: Optional[int] = Field(default=None)
    start_date: Optional[date] = Field(default=None)
    invite_code: Optional[str] = Field(default=None, unique=True, index=True)
    rules_json: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    created_by: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})

    # Relationships
    members: List["LeagueMember"] = Relationship(back_populates="league")
    fixtures: List["Fixture"] = Relationship(back_populates="league")


class LeagueMember(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("league_id", "user_id", name="uq_league_member"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    league_id: int = Field(foreign_key="league.id", index=True)
    user_id: str = Field(index=True)
    role: str = Field(default=ROLE_MEMBER)  # "owner" | "admin" | "member"
    joined_at: datetime = Field(default_factory=utc_now)

    league: "League" = Relationship(back_populates="members")

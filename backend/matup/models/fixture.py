from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import JSON
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, Relationship, SQLModel

from matup.utils.league_dates import utc_now

if TYPE_CHECKING:
    from matup.models.league import League

FIXTURE_TYPE_MATCH = "league_match"
FIXTURE_TYPE_TIME_TRIAL = "time_trial_session"

FIXTURE_SCHEDULED = "scheduled"
FIXTURE_SUBMITTED = "submitted"
FIXTURE_CONFIRMED = "confirmed"
FIXTURE_DISPUTED = "disputed"
FIXTURE_FINALIZED = "finalized"
FIXTURE_CANCELLED = "cancelled"

FIXTURE_TERMINAL_STATUSES = frozenset({FIXTURE_FINALIZED, FIXTURE_CANCELLED})

SIDE_A = "A"
SIDE_B = "B"


class Fixture(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    league_id: int = Field(foreign_key="league.id", index=True)
    week_number: int
    starts_at: Optional[datetime] = Field(default=None)
    ends_at: Optional[datetime] = Field(default=None)
    fixture_type: str = Field(default=FIXTURE_TYPE_MATCH)  # "league_match" | "time_trial_session"
    # "scheduled" | "submitted" | "confirmed" | "disputed" | "finalized" | "cancelled"
    status: str = Field(default=FIXTURE_SCHEDULED, index=True)
    # Generation provenance; final_result once resolved
    metadata_json: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    created_by: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})

    # Relationships
    league: "League" = Relationship(back_populates="fixtures")
    participants: List["FixtureParticipant"] = Relationship(back_populates="fixture")


class FixtureParticipant(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("fixture_id", "user_id", name="uq_fixture_participant"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    fixture_id: int = Field(foreign_key="fixture.id", index=True)
    user_id: str = Field(index=True)
    side: str  # "A" | "B"
    role: str = Field(default="player")

    fixture: "Fixture" = Relationship(back_populates="participants")

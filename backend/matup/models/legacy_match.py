from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel

from matup.utils.league_dates import utc_now


class LegacyMatch(SQLModel, table=True):
    """Matches recorded before the fixture workflow existed. Read-only for standings."""

    id: Optional[int] = Field(default=None, primary_key=True)
    league_id: int = Field(foreign_key="league.id", index=True)
    week_number: Optional[int] = Field(default=None)
    status: str = Field(default="completed")  # "scheduled" | "completed" | ...
    winner: Optional[str] = Field(default=None)  # "A" | "B" | null
    created_at: datetime = Field(default_factory=utc_now)


class MatchParticipant(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    match_id: int = Field(foreign_key="legacymatch.id", index=True)
    user_id: str = Field(index=True)
    team: Optional[str] = Field(default=None)  # "A" | "B" | null
    score: Optional[float] = Field(default=None)
    time_seconds: Optional[float] = Field(default=None)
    points: Optional[float] = Field(default=None)
    # {"sets": [[6, 3], [4, 6]]}
    set_scores: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))

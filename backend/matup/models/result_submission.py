from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel

from matup.utils.league_dates import utc_now

SOURCE_PARTICIPANT = "participant"
SOURCE_ORGANIZER = "organizer"

SUBMISSION_PENDING = "pending"
SUBMISSION_ACCEPTED = "accepted"
SUBMISSION_REJECTED = "rejected"
SUBMISSION_SUPERSEDED = "superseded"

CONFIRMING_SIDE_ORGANIZER = "organizer"

DECISION_CONFIRM = "confirm"
DECISION_REJECT = "reject"


class ResultSubmission(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    fixture_id: int = Field(foreign_key="fixture.id", index=True)
    submitted_by: str = Field(index=True)
    source: str  # "participant" | "organizer"
    payload: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    status: str = Field(default=SUBMISSION_PENDING, index=True)  # "pending" | "accepted" | "rejected" | "superseded"
    submitted_at: datetime = Field(default_factory=utc_now)
    reviewed_by: Optional[str] = Field(default=None)
    reviewed_at: Optional[datetime] = Field(default=None)
    review_note: Optional[str] = Field(default=None)


class ResultConfirmation(SQLModel, table=True):
    """Append-only vote ledger for a submission."""

    id: Optional[int] = Field(default=None, primary_key=True)
    submission_id: int = Field(foreign_key="resultsubmission.id", index=True)
    fixture_id: int = Field(foreign_key="fixture.id", index=True)
    confirmed_by: str
    confirming_side: str  # "A" | "B" | "organizer"
    decision: str  # "confirm" | "reject"
    reason: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)

from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel

from matup.utils.league_dates import utc_now

SESSION_SCHEDULED = "scheduled"
SESSION_OPEN = "open"
SESSION_CLOSED = "closed"
SESSION_FINALIZED = "finalized"

SESSION_TYPES = ("time_trial", "group_run", "interval")

RUN_SUBMITTED = "submitted"
RUN_APPROVED = "approved"
RUN_REJECTED = "rejected"
RUN_FINALIZED = "finalized"


class RunningSession(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("league_id", "week_number", name="uq_league_session_week"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    league_id: int = Field(foreign_key="league.id", index=True)
    week_number: int
    session_type: str = Field(default="time_trial")  # "time_trial" | "group_run" | "interval"
    distance_meters: Optional[int] = Field(default=None)
    route_name: Optional[str] = Field(default=None)
    starts_at: Optional[datetime] = Field(default=None)
    submission_deadline: Optional[datetime] = Field(default=None)
    comparison_mode: str = Field(default="personal_progress")  # "personal_progress" | "absolute_performance"
    status: str = Field(default=SESSION_SCHEDULED)  # "scheduled" | "open" | "closed" | "finalized"
    created_by: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})


class SessionRun(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("session_id", "user_id", name="uq_session_run_user"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    session_id: int = Field(foreign_key="runningsession.id", index=True)
    user_id: str = Field(index=True)
    elapsed_seconds: float
    distance_meters: Optional[int] = Field(default=None)
    proof_url: Optional[str] = Field(default=None)
    status: str = Field(default=RUN_SUBMITTED)  # "submitted" | "approved" | "rejected" | "finalized"
    submitted_at: datetime = Field(default_factory=utc_now)
    reviewed_by: Optional[str] = Field(default=None)
    reviewed_at: Optional[datetime] = Field(default=None)
    review_note: Optional[str] = Field(default=None)

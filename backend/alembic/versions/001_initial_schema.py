"""Initial schema: leagues, members, profiles, fixtures, result workflow,
running sessions and legacy matches

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "profile",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("avatar_url", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "league",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("sport_type", sa.String(), nullable=False),
        sa.Column("scoring_format", sa.String(), nullable=False),
        sa.Column("rotation_type", sa.String(), nullable=True),
        sa.Column("season_weeks", sa.Integer(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("invite_code", sa.String(), nullable=True),
        sa.Column("rules_json", sa.JSON(), nullable=True),
        sa.Column("created_by", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_league_invite_code", "league", ["invite_code"], unique=True)

    op.create_table(
        "leaguemember",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("league_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False),
        sa.Column("joined_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["league_id"], ["league.id"]),
        sa.UniqueConstraint("league_id", "user_id", name="uq_league_member"),
    )
    op.create_index("ix_leaguemember_league_id", "leaguemember", ["league_id"])
    op.create_index("ix_leaguemember_user_id", "leaguemember", ["user_id"])

    # Workflow fixtures
    op.create_table(
        "fixture",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("league_id", sa.Integer(), nullable=False),
        sa.Column("week_number", sa.Integer(), nullable=False),
        sa.Column("starts_at", sa.DateTime(), nullable=True),
        sa.Column("ends_at", sa.DateTime(), nullable=True),
        sa.Column("fixture_type", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("metadata_json", sa.JSON(), nullable=True),
        sa.Column("created_by", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["league_id"], ["league.id"]),
    )
    op.create_index("ix_fixture_league_id", "fixture", ["league_id"])
    op.create_index("ix_fixture_status", "fixture", ["status"])

    op.create_table(
        "fixtureparticipant",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("fixture_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("side", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["fixture_id"], ["fixture.id"]),
        sa.UniqueConstraint("fixture_id", "user_id", name="uq_fixture_participant"),
    )
    op.create_index("ix_fixtureparticipant_fixture_id", "fixtureparticipant", ["fixture_id"])
    op.create_index("ix_fixtureparticipant_user_id", "fixtureparticipant", ["user_id"])

    op.create_table(
        "resultsubmission",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("fixture_id", sa.Integer(), nullable=False),
        sa.Column("submitted_by", sa.String(), nullable=False),
        sa.Column("source", sa.String(), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("submitted_at", sa.DateTime(), nullable=False),
        sa.Column("reviewed_by", sa.String(), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(), nullable=True),
        sa.Column("review_note", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["fixture_id"], ["fixture.id"]),
    )
    op.create_index("ix_resultsubmission_fixture_id", "resultsubmission", ["fixture_id"])
    op.create_index("ix_resultsubmission_submitted_by", "resultsubmission", ["submitted_by"])
    op.create_index("ix_resultsubmission_status", "resultsubmission", ["status"])

    op.create_table(
        "resultconfirmation",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("submission_id", sa.Integer(), nullable=False),
        sa.Column("fixture_id", sa.Integer(), nullable=False),
        sa.Column("confirmed_by", sa.String(), nullable=False),
        sa.Column("confirming_side", sa.String(), nullable=False),
        sa.Column("decision", sa.String(), nullable=False),
        sa.Column("reason", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["submission_id"], ["resultsubmission.id"]),
        sa.ForeignKeyConstraint(["fixture_id"], ["fixture.id"]),
    )
    op.create_index("ix_resultconfirmation_submission_id", "resultconfirmation", ["submission_id"])
    op.create_index("ix_resultconfirmation_fixture_id", "resultconfirmation", ["fixture_id"])

    # Running leagues
    op.create_table(
        "runningsession",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("league_id", sa.Integer(), nullable=False),
        sa.Column("week_number", sa.Integer(), nullable=False),
        sa.Column("session_type", sa.String(), nullable=False),
        sa.Column("distance_meters", sa.Integer(), nullable=True),
        sa.Column("route_name", sa.String(), nullable=True),
        sa.Column("starts_at", sa.DateTime(), nullable=True),
        sa.Column("submission_deadline", sa.DateTime(), nullable=True),
        sa.Column("comparison_mode", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("created_by", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["league_id"], ["league.id"]),
        sa.UniqueConstraint("league_id", "week_number", name="uq_league_session_week"),
    )
    op.create_index("ix_runningsession_league_id", "runningsession", ["league_id"])

    op.create_table(
        "sessionrun",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("session_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("elapsed_seconds", sa.Float(), nullable=False),
        sa.Column("distance_meters", sa.Integer(), nullable=True),
        sa.Column("proof_url", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("submitted_at", sa.DateTime(), nullable=False),
        sa.Column("reviewed_by", sa.String(), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(), nullable=True),
        sa.Column("review_note", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["session_id"], ["runningsession.id"]),
        sa.UniqueConstraint("session_id", "user_id", name="uq_session_run_user"),
    )
    op.create_index("ix_sessionrun_session_id", "sessionrun", ["session_id"])
    op.create_index("ix_sessionrun_user_id", "sessionrun", ["user_id"])

    # Pre-workflow match records (read-only source for standings)
    op.create_table(
        "legacymatch",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("league_id", sa.Integer(), nullable=False),
        sa.Column("week_number", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("winner", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["league_id"], ["league.id"]),
    )
    op.create_index("ix_legacymatch_league_id", "legacymatch", ["league_id"])

    op.create_table(
        "matchparticipant",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("match_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("team", sa.String(), nullable=True),
        sa.Column("score", sa.Float(), nullable=True),
        sa.Column("time_seconds", sa.Float(), nullable=True),
        sa.Column("points", sa.Float(), nullable=True),
        sa.Column("set_scores", sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["match_id"], ["legacymatch.id"]),
    )
    op.create_index("ix_matchparticipant_match_id", "matchparticipant", ["match_id"])
    op.create_index("ix_matchparticipant_user_id", "matchparticipant", ["user_id"])


def downgrade() -> None:
    op.drop_table("matchparticipant")
    op.drop_table("legacymatch")
    op.drop_table("sessionrun")
    op.drop_table("runningsession")
    op.drop_table("resultconfirmation")
    op.drop_table("resultsubmission")
    op.drop_table("fixtureparticipant")
    op.drop_table("fixture")
    op.drop_table("leaguemember")
    op.drop_table("league")
    op.drop_table("profile")

"""001_initial_schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

Creates the padel statistics schema from scratch:
- users, tournaments
- matches and their four match_players slots
- match_events (append-only event log)
- player_stats (per-match cache derived from match_events)
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

match_type = sa.Enum("TOURNAMENT", "FRIENDLY", name="matchtype")
tournament_phase = sa.Enum("ROUND_OF_16", "QUARTERFINAL", "SEMIFINAL", "FINAL", name="tournamentphase")
match_status = sa.Enum("IN_PROGRESS", "COMPLETED", name="matchstatus")
tournament_status = sa.Enum("UPCOMING", "IN_PROGRESS", "COMPLETED", "CANCELLED", name="tournamentstatus")

STATS_COUNTERS = (
    "first_serves_in",
    "first_serves_out",
    "points_won_first_serve",
    "points_won_second_serve",
    "points_won_exit34",
    "points_lost_exit34",
    "points_won_return",
    "unforced_errors",
    "forced_errors",
    "net_errors",
    "return_errors",
    "smash_errors",
    "lob_errors",
)


def upgrade() -> None:
    """Create all tables."""
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(30), nullable=False, unique=True),
        sa.Column("email", sa.String(), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("last_name", sa.String(50), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("idx_users_email", "users", ["email"])
    op.create_index("idx_users_username", "users", ["username"])

    op.create_table(
        "tournaments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("status", tournament_status, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "matches",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("type", match_type, nullable=False),
        sa.Column("phase", tournament_phase, nullable=True),
        sa.Column("status", match_status, nullable=False),
        sa.Column("tournament_id", sa.Integer(), sa.ForeignKey("tournaments.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_matches_status", "matches", ["status"])
    op.create_index("idx_matches_type", "matches", ["type"])
    op.create_index("idx_matches_tournament", "matches", ["tournament_id"])

    op.create_table(
        "match_players",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("match_id", sa.Integer(), sa.ForeignKey("matches.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("team", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.UniqueConstraint("match_id", "team", "position", name="uq_match_players_slot"),
        sa.UniqueConstraint("match_id", "user_id", name="uq_match_players_user"),
        sa.CheckConstraint("team IN (1, 2)", name="ck_match_players_team"),
        sa.CheckConstraint("position IN (1, 2)", name="ck_match_players_position"),
    )
    op.create_index("idx_match_players_user", "match_players", ["user_id"])

    op.create_table(
        "match_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("match_id", sa.Integer(), sa.ForeignKey("matches.id", ondelete="CASCADE"), nullable=False),
        sa.Column("player_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("event_type", sa.String(50), nullable=False),
        sa.Column("observer_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("additional_data", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    )
    op.create_index("idx_match_events_match_timestamp", "match_events", ["match_id", "timestamp"])
    op.create_index("idx_match_events_player", "match_events", ["player_id"])

    op.create_table(
        "player_stats",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("match_id", sa.Integer(), sa.ForeignKey("matches.id", ondelete="CASCADE"), nullable=False),
        *[
            sa.Column(name, sa.Integer(), nullable=False, server_default="0")
            for name in STATS_COUNTERS
        ],
        sa.Column("first_serve_percentage", sa.Float(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "match_id", name="uq_player_stats_user_match"),
    )
    op.create_index("idx_player_stats_match", "player_stats", ["match_id"])


def downgrade() -> None:
    """Drop all tables and enum types."""
    op.drop_table("player_stats")
    op.drop_table("match_events")
    op.drop_table("match_players")
    op.drop_table("matches")
    op.drop_table("tournaments")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in (match_type, tournament_phase, match_status, tournament_status):
        enum_type.drop(bind, checkfirst=True)

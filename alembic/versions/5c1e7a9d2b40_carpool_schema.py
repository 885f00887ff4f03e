"""carpool_schema

Revision ID: 5c1e7a9d2b40
Revises:
Create Date: 2026-10-19 09:12:31.518204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5c1e7a9d2b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create member, ride, booking, waitlist, balance and notification tables."""
    op.create_table(
        "member",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("is_driver", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_passenger", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("driver_has_ride", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("passenger_has_ride", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "ride",
        sa.Column("id", sa.Integer(), nullable=False, autoincrement=False),
        sa.Column("driver", sa.String(), nullable=False),
        sa.Column("departure_time", sa.Integer(), nullable=False),
        sa.Column("seats_total", sa.Integer(), nullable=False),
        sa.Column("seats_consumed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("price_per_seat", sa.Integer(), nullable=False),
        sa.Column("origin", sa.Integer(), nullable=False),
        sa.Column("destination", sa.Integer(), nullable=False),
        sa.Column("revenue_escrowed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(), nullable=False, server_default="booking_open"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_ride_driver", "ride", ["driver"])
    op.create_index("ix_ride_origin", "ride", ["origin"])
    op.create_index("ix_ride_destination", "ride", ["destination"])
    op.create_index("ix_ride_status", "ride", ["status"])
    op.create_table(
        "booking",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("ride_id", sa.Integer(), nullable=False),
        sa.Column("passenger", sa.String(), nullable=False),
        sa.Column("amount_paid", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["ride_id"], ["ride.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_booking_ride_id", "booking", ["ride_id"])
    op.create_index("ix_booking_passenger", "booking", ["passenger"])
    op.create_table(
        "waitlistentry",
        sa.Column("id", sa.Integer(), nullable=False, autoincrement=False),
        sa.Column("passenger", sa.String(), nullable=False),
        sa.Column("origin", sa.Integer(), nullable=False),
        sa.Column("destination", sa.Integer(), nullable=False),
        sa.Column("requested_time", sa.Integer(), nullable=False),
        sa.Column("deposit", sa.Integer(), nullable=False),
        sa.Column("resolved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("ride_id", sa.Integer(), nullable=True),
        sa.Column("refund", sa.Integer(), nullable=True),
        sa.Column("cost", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("resolved_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["ride_id"], ["ride.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_waitlistentry_passenger", "waitlistentry", ["passenger"])
    op.create_index("ix_waitlistentry_origin", "waitlistentry", ["origin"])
    op.create_index("ix_waitlistentry_destination", "waitlistentry", ["destination"])
    op.create_index("ix_waitlistentry_resolved", "waitlistentry", ["resolved"])
    op.create_table(
        "balance",
        sa.Column("member_id", sa.String(), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_withdrawn", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("member_id"),
    )
    op.create_table(
        "notification",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(), nullable=False),
        sa.Column("ride_id", sa.Integer(), nullable=True),
        sa.Column("waitlist_index", sa.Integer(), nullable=True),
        sa.Column("member_id", sa.String(), nullable=True),
        sa.Column("amount", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notification_kind", "notification", ["kind"])


def downgrade() -> None:
    """Drop every carpool table."""
    op.drop_index("ix_notification_kind", table_name="notification")
    op.drop_table("notification")
    op.drop_table("balance")
    for column in ("resolved", "destination", "origin", "passenger"):
        op.drop_index(f"ix_waitlistentry_{column}", table_name="waitlistentry")
    op.drop_table("waitlistentry")
    op.drop_index("ix_booking_passenger", table_name="booking")
    op.drop_index("ix_booking_ride_id", table_name="booking")
    op.drop_table("booking")
    for column in ("status", "destination", "origin", "driver"):
        op.drop_index(f"ix_ride_{column}", table_name="ride")
    op.drop_table("ride")
    op.drop_table("member")

"""Initial schema: ride charges and ride settlements.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── ride_charges ──────────────────────────────────────────────────
    op.create_table(
        "ride_charges",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("ride_id", sa.Integer, nullable=False),
        sa.Column(
            "kind",
            sa.Enum("WAIT_TIME", "TIP", name="chargekind"),
            nullable=False,
        ),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("wait_minutes", sa.Integer, nullable=True),
        sa.Column("idempotency_key", sa.String(64), unique=True, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_ride_charges_ride", "ride_charges", ["ride_id"])
    op.create_index("idx_ride_charges_kind", "ride_charges", ["kind"])

    # ── ride_settlements ──────────────────────────────────────────────
    op.create_table(
        "ride_settlements",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("ride_id", sa.Integer, unique=True, nullable=False),
        sa.Column(
            "vehicle_type",
            sa.Enum("SEDAN", "SUV", "VAN", name="vehicletype"),
            nullable=True,
        ),
        sa.Column("base_fare", sa.Float, nullable=False, server_default="0"),
        sa.Column("wait_minutes", sa.Integer, nullable=False, server_default="0"),
        sa.Column("wait_charge", sa.Float, nullable=False, server_default="0"),
        sa.Column("tip", sa.Float, nullable=False, server_default="0"),
        sa.Column("total", sa.Float, nullable=False),
        sa.Column("driver_compensation", sa.Float, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_ride_settlements_ride", "ride_settlements", ["ride_id"])


def downgrade() -> None:
    op.drop_table("ride_settlements")
    op.drop_table("ride_charges")
    bind = op.get_bind()
    sa.Enum(name="chargekind").drop(bind, checkfirst=True)
    sa.Enum(name="vehicletype").drop(bind, checkfirst=True)

"""Create routes, stops, vans and drivers tables.

Revision ID: 001
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "routes",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_table(
        "stops",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("route_id", sa.String(64), sa.ForeignKey("routes.id"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("lat", sa.Float, nullable=False),
        sa.Column("lng", sa.Float, nullable=False),
        sa.Column("order", sa.Integer, nullable=False),
        sa.UniqueConstraint("route_id", "order", name="uq_stop_route_order"),
    )
    op.create_table(
        "vans",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("van_number", sa.String(20), nullable=False),
        sa.Column("capacity", sa.Integer, nullable=True),
        sa.Column("route_id", sa.String(64), sa.ForeignKey("routes.id"), nullable=True),
    )
    op.create_table(
        "drivers",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, server_default=""),
        sa.Column("van_id", sa.String(64), sa.ForeignKey("vans.id"), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("drivers")
    op.drop_table("vans")
    op.drop_table("stops")
    op.drop_table("routes")

"""create shipments table

Revision ID: 002
Revises: 001
Create Date: 2026-09-14 10:05:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "shipments",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("tracking_number", sa.String(length=16), nullable=True),
        sa.Column("client_id", sa.String(length=36), nullable=True),
        sa.Column("client_email", sa.String(length=320), nullable=True),
        sa.Column("quote_ref", sa.String(length=36), nullable=True),
        sa.Column("origin_port", sa.String(length=120), nullable=True),
        sa.Column("destination_port", sa.String(length=120), nullable=True),
        sa.Column("cargo_type", sa.String(length=80), nullable=True),
        sa.Column("cargo_description", sa.Text(), nullable=True),
        sa.Column("last_update", sa.DateTime(timezone=True), nullable=True),
        sa.Column("internal_notes", sa.Text(), nullable=True),
        sa.Column("client_visible_notes", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        # Second line of defence against a quote producing two shipments
        sa.UniqueConstraint("quote_ref", name="uq_shipments_quote_ref"),
    )
    op.create_index("ix_shipments_id", "shipments", ["id"], unique=False)
    op.create_index("ix_shipments_status", "shipments", ["status"], unique=False)
    op.create_index("ix_shipments_client_id", "shipments", ["client_id"], unique=False)
    op.create_index("ix_shipments_tracking_number", "shipments", ["tracking_number"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_shipments_tracking_number", table_name="shipments")
    op.drop_index("ix_shipments_client_id", table_name="shipments")
    op.drop_index("ix_shipments_status", table_name="shipments")
    op.drop_index("ix_shipments_id", table_name="shipments")
    op.drop_table("shipments")

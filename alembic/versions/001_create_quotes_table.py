"""create quotes table

Revision ID: 001
Revises:
Create Date: 2026-09-14 10:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "quotes",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("client_id", sa.String(length=36), nullable=True),
        sa.Column("client_email", sa.String(length=320), nullable=True),
        sa.Column("origin_port", sa.String(length=120), nullable=True),
        sa.Column("destination_port", sa.String(length=120), nullable=True),
        sa.Column("cargo_type", sa.String(length=80), nullable=True),
        sa.Column("cargo_description", sa.Text(), nullable=True),
        sa.Column("client_decision", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("payment_status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("quote_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("currency", sa.String(length=3), nullable=True),
        sa.Column("shipment_ref", sa.String(length=36), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        # A quote converts into at most one shipment
        sa.UniqueConstraint("shipment_ref", name="uq_quotes_shipment_ref"),
        sa.CheckConstraint(
            "quote_amount IS NULL OR quote_amount > 0",
            name="ck_quotes_quote_amount_positive",
        ),
    )
    op.create_index("ix_quotes_id", "quotes", ["id"], unique=False)
    op.create_index("ix_quotes_status", "quotes", ["status"], unique=False)
    op.create_index("ix_quotes_client_id", "quotes", ["client_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_quotes_client_id", table_name="quotes")
    op.drop_index("ix_quotes_status", table_name="quotes")
    op.drop_index("ix_quotes_id", table_name="quotes")
    op.drop_table("quotes")

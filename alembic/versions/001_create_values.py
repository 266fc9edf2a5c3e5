"""create values ledger

Revision ID: 001_create_values
Revises: 
Create Date: 2026-10-17

"""

from alembic import op
import sqlalchemy as sa


revision = "001_create_values"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "values",
        sa.Column("id", sa.BigInteger(), sa.Identity(always=True), primary_key=True, nullable=False),
        sa.Column("number", sa.Integer(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("values")

"""app config

Revision ID: 0002_app_config
Revises: 0001_ledger_init
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "0002_app_config"
down_revision = "0001_ledger_init"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "app_config",
        sa.Column("key", sa.String(), primary_key=True),
        sa.Column("value", sa.JSON(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("app_config")

"""add schedule.restored activity action

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op

revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    if op.get_bind().dialect.name == "postgresql":
        op.execute("ALTER TYPE schedule_action ADD VALUE IF NOT EXISTS 'schedule.restored'")


def downgrade() -> None:
    # Postgres cannot drop a single enum value; rows using it are left in place.
    pass

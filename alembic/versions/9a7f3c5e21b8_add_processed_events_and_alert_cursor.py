"""add_processed_events_and_alert_cursor

Revision ID: 9a7f3c5e21b8
Revises: 4c1e9b2a7d10
Create Date: 2026-09-16 17:42:05.611942

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '9a7f3c5e21b8'
down_revision: Union[str, None] = '4c1e9b2a7d10'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Persist the Stripe webhook idempotency set and the proximity alert
    high-water mark so neither is lost on restart.
    """
    bind = op.get_bind()
    tables = inspect(bind).get_table_names()

    if 'processed_stripe_events' not in tables:
        op.create_table('processed_stripe_events',
            sa.Column('event_id', sa.String(), nullable=False),
            sa.Column('event_type', sa.String(), nullable=False),
            sa.Column('processed_at', sa.DateTime(), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.PrimaryKeyConstraint('event_id')
        )

    if 'job_alert_cursors' not in tables:
        op.create_table('job_alert_cursors',
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('last_processed_at', sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint('name')
        )


def downgrade() -> None:
    op.drop_table('job_alert_cursors')
    op.drop_table('processed_stripe_events')

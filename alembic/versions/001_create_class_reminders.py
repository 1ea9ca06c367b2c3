"""create class_reminders ledger

Revision ID: 001
Revises:
Create Date: 2026-10-17 00:00:00.000000

Append-only delivery ledger for the reminder engine. One row per
delivery attempt; the dedup gate reads it by (class_session_id, reminder_type).
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


def upgrade() -> None:
    op.create_table(
        'class_reminders',
        sa.Column(
            'id',
            postgresql.UUID(as_uuid=False),
            server_default=sa.text('gen_random_uuid()'),
            nullable=False,
        ),
        sa.Column('class_session_id', postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column('reminder_type', sa.Text(), nullable=False),
        sa.Column('recipient_email', sa.Text(), nullable=True),
        sa.Column('recipient_telegram_id', sa.Text(), nullable=True),
        sa.Column('status', sa.Text(), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column(
            'created_at',
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text('now()'),
            nullable=True,
        ),
        sa.CheckConstraint(
            "status IN ('sent', 'failed')",
            name=op.f('ck_class_reminders_status_valid'),
        ),
        sa.ForeignKeyConstraint(
            ['class_session_id'],
            ['class_sessions.id'],
            name=op.f('fk_class_reminders_class_session_id_class_sessions'),
            ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_class_reminders')),
    )
    op.create_index(
        'idx_class_reminders_dedup',
        'class_reminders',
        ['class_session_id', 'reminder_type'],
    )


def downgrade() -> None:
    op.drop_index('idx_class_reminders_dedup', table_name='class_reminders')
    op.drop_table('class_reminders')

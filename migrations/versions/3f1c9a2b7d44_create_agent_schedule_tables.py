"""Create agent, record and schedule tables

Revision ID: 3f1c9a2b7d44
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9a2b7d44'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'agents',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('user_id', sa.String(), nullable=False, index=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True)),
    )
    op.create_table(
        'agent_models',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('agent_id', sa.String(), sa.ForeignKey('agents.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('fields', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True)),
    )
    op.create_table(
        'agent_actions',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('agent_id', sa.String(), sa.ForeignKey('agents.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('model_id', sa.String(), sa.ForeignKey('agent_models.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('input_fields', sa.JSON(), nullable=False),
        sa.Column('output_fields', sa.JSON(), nullable=False),
        sa.Column('steps', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True)),
    )
    op.create_table(
        'agent_records',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('model_id', sa.String(), sa.ForeignKey('agent_models.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('data', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True)),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_table(
        'agent_schedules',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('agent_id', sa.String(), sa.ForeignKey('agents.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('mode', sa.String(), nullable=False),
        sa.Column('interval_hours', sa.String(length=10), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='active'),
        sa.Column('next_run_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_run_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True)),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
    )
    op.create_index('ix_agent_schedules_status_mode', 'agent_schedules', ['status', 'mode'])
    op.create_table(
        'agent_schedule_steps',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('schedule_id', sa.String(), sa.ForeignKey('agent_schedules.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('model_id', sa.String(), nullable=True),
        sa.Column('model_name', sa.String(), nullable=True),
        sa.Column('action_id', sa.String(), nullable=True),
        sa.Column('action_name', sa.String(), nullable=True),
        sa.Column('query', sa.JSON(), nullable=True),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True)),
        sa.Column('updated_at', sa.DateTime(timezone=True)),
    )


def downgrade() -> None:
    op.drop_table('agent_schedule_steps')
    op.drop_index('ix_agent_schedules_status_mode', table_name='agent_schedules')
    op.drop_table('agent_schedules')
    op.drop_table('agent_records')
    op.drop_table('agent_actions')
    op.drop_table('agent_models')
    op.drop_table('agents')

"""add held hours (one row per booked court/coach hour)

Revision ID: 1b2c3d4e5f6a
Revises: 0a1b2c3d4e5f
Create Date: 2026-05-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '1b2c3d4e5f6a'
down_revision = '0a1b2c3d4e5f'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'held_hours',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('court_id', sa.Integer(), nullable=True),
        sa.Column('coach_id', sa.Integer(), nullable=True),
        sa.Column('starts_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ),
        sa.ForeignKeyConstraint(['court_id'], ['courts.id'], ),
        sa.ForeignKeyConstraint(['coach_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('court_id', 'starts_at', name='uq_held_hour_court'),
        sa.UniqueConstraint('coach_id', 'starts_at', name='uq_held_hour_coach')
    )
    with op.batch_alter_table('held_hours', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_held_hours_event_id'), ['event_id'], unique=False)


def downgrade():
    with op.batch_alter_table('held_hours', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_held_hours_event_id'))

    op.drop_table('held_hours')

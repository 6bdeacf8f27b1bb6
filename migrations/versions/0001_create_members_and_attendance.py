"""create members and attendance

Revision ID: 0001_create_members_and_attendance
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_create_members_and_attendance'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'members',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('instrument', sa.String(length=100), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_members_created_at', 'members', ['created_at'])

    op.create_table(
        'attendance',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('member_id', sa.String(length=32), nullable=False),
        sa.Column('date', sa.String(length=10), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['member_id'], ['members.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('member_id', 'date', name='unique_member_date'),
    )
    op.create_index('ix_attendance_member_id', 'attendance', ['member_id'])
    op.create_index('ix_attendance_date', 'attendance', ['date'])


def downgrade():
    op.drop_index('ix_attendance_date', table_name='attendance')
    op.drop_index('ix_attendance_member_id', table_name='attendance')
    op.drop_table('attendance')
    op.drop_index('ix_members_created_at', table_name='members')
    op.drop_table('members')

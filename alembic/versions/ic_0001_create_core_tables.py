"""create users, mock_interviews and question_answers tables

Revision ID: ic_0001
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'ic_0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('hashed_password', sa.String(length=1024), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('is_superuser', sa.Boolean(), nullable=False),
        sa.Column('is_verified', sa.Boolean(), nullable=False),
        sa.Column('first_name', sa.String(length=255), nullable=True),
        sa.Column('last_name', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='user'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    op.create_table(
        'mock_interviews',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('mock_id', sa.String(length=64), nullable=False),
        sa.Column('job_position', sa.String(length=255), nullable=False),
        sa.Column('job_desc', sa.Text(), nullable=False),
        sa.Column('job_experience', sa.Integer(), nullable=False),
        sa.Column('json_mock_resp', sa.Text(), nullable=False),
        sa.Column('created_by', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(op.f('ix_mock_interviews_mock_id'), 'mock_interviews', ['mock_id'], unique=True)
    op.create_index(op.f('ix_mock_interviews_created_by'), 'mock_interviews', ['created_by'])

    op.create_table(
        'question_answers',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('mock_id', sa.String(length=64), nullable=False),
        sa.Column('question', sa.Text(), nullable=False),
        sa.Column('answer', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(op.f('ix_question_answers_mock_id'), 'question_answers', ['mock_id'])


def downgrade() -> None:
    op.drop_index(op.f('ix_question_answers_mock_id'), table_name='question_answers')
    op.drop_table('question_answers')
    op.drop_index(op.f('ix_mock_interviews_created_by'), table_name='mock_interviews')
    op.drop_index(op.f('ix_mock_interviews_mock_id'), table_name='mock_interviews')
    op.drop_table('mock_interviews')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')

"""initial_schema

Revision ID: 3f1c2a9d7b40
Revises:
Create Date: 2026-10-19

Creates the three procedure tracker tables:
- profiles: principals with a role (admin, staff)
- procedures: recorded procedures with a free-form status label
- acknowledgments: one row per (procedure, profile) that has read it
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '3f1c2a9d7b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


profile_role = postgresql.ENUM('admin', 'staff', name='profile_role', create_type=False)
procedure_status = postgresql.ENUM('active', 'archived', 'replaced', name='procedure_status', create_type=False)


def upgrade() -> None:
    bind = op.get_bind()
    profile_role.create(bind, checkfirst=True)
    procedure_status.create(bind, checkfirst=True)

    op.create_table(
        'profiles',
        sa.Column('id', sa.UUID(), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False, server_default=''),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('role', profile_role, nullable=False, server_default='staff'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_profiles_email', 'profiles', ['email'], unique=True)
    op.create_index('ix_profiles_created_at', 'profiles', ['created_at'])

    op.create_table(
        'procedures',
        sa.Column('id', sa.UUID(), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),

        # Content
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('source', sa.String(255), nullable=False, server_default=''),
        sa.Column('source_link', sa.String(2000), nullable=False, server_default=''),
        sa.Column('effective_date', sa.Date(), nullable=False),

        # Lifecycle
        sa.Column('status', procedure_status, nullable=False, server_default='active'),
        sa.Column('created_by', sa.UUID(), nullable=True),

        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['created_by'], ['profiles.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_procedures_status', 'procedures', ['status'])
    op.create_index('ix_procedures_created_by', 'procedures', ['created_by'])
    op.create_index(
        'ix_procedures_created_at',
        'procedures',
        ['created_at'],
        postgresql_ops={'created_at': 'DESC'}
    )

    op.create_table(
        'acknowledgments',
        sa.Column('id', sa.UUID(), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('procedure_id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('acknowledged_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['procedure_id'], ['procedures.id']),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.id']),
        # Concurrent double submissions are stopped here, not in the application
        sa.UniqueConstraint('procedure_id', 'user_id', name='uq_acknowledgments_procedure_user'),
    )
    op.create_index('ix_acknowledgments_procedure_id', 'acknowledgments', ['procedure_id'])
    op.create_index('ix_acknowledgments_user_id', 'acknowledgments', ['user_id'])


def downgrade() -> None:
    op.drop_index('ix_acknowledgments_user_id', table_name='acknowledgments')
    op.drop_index('ix_acknowledgments_procedure_id', table_name='acknowledgments')
    op.drop_table('acknowledgments')
    op.drop_index('ix_procedures_created_at', table_name='procedures')
    op.drop_index('ix_procedures_created_by', table_name='procedures')
    op.drop_index('ix_procedures_status', table_name='procedures')
    op.drop_table('procedures')
    op.drop_index('ix_profiles_created_at', table_name='profiles')
    op.drop_index('ix_profiles_email', table_name='profiles')
    op.drop_table('profiles')

    bind = op.get_bind()
    procedure_status.drop(bind, checkfirst=True)
    profile_role.drop(bind, checkfirst=True)

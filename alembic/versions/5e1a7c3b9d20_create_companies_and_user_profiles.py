"""Create companies and user_profiles.

Revision ID: 5e1a7c3b9d20
Revises:
Create Date: 2026-10-18

Companies are rebuilt by the sync sweep from task titles; user profiles
share their id with the identity provider's user.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '5e1a7c3b9d20'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create companies and user_profiles tables."""
    op.create_table(
        'companies',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False, unique=True,
                  comment='Uppercased company name as parsed from titles'),
        sa.Column('display_name', sa.String(150), nullable=False),
        sa.Column('slug', sa.String(120), nullable=False, unique=True,
                  comment='base, base-2, base-3, ...'),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False,
                  server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True),
                  server_default=sa.text('NOW()')),
    )
    op.create_index('idx_companies_active', 'companies', ['active'])

    op.create_table(
        'user_profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True,
                  comment='Identity provider user id'),
        sa.Column('email', sa.String(255), nullable=False, unique=True,
                  comment='Stored lowercased'),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('role', sa.String(20), nullable=False, server_default='viewer',
                  comment='admin, manager, operator or viewer'),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('company_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('companies.id'), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False,
                  server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True),
                  server_default=sa.text('NOW()')),
    )
    op.create_index('idx_user_profiles_company_id', 'user_profiles', ['company_id'])
    op.create_index('idx_user_profiles_role_active', 'user_profiles', ['role', 'active'])


def downgrade() -> None:
    """Drop user_profiles and companies tables."""
    op.drop_index('idx_user_profiles_role_active', table_name='user_profiles')
    op.drop_index('idx_user_profiles_company_id', table_name='user_profiles')
    op.drop_table('user_profiles')
    op.drop_index('idx_companies_active', table_name='companies')
    op.drop_table('companies')

"""Create integration_credentials table

Revision ID: create_integration_credentials_table
Revises:
Create Date: 2026-01-27 00:00:04.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'create_integration_credentials_table'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create integration_credentials with its lookup indexes."""
    op.create_table('integration_credentials',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('tenant_id', sa.Uuid(), nullable=False),
        sa.Column('provider', sa.String(length=50), nullable=False),
        sa.Column('credential_type', sa.String(length=20), nullable=False, server_default='basic'),
        sa.Column('credentials_encrypted', sa.Text(), nullable=True),
        sa.Column('access_token_encrypted', sa.Text(), nullable=True),
        sa.Column('refresh_token_encrypted', sa.Text(), nullable=True),
        sa.Column('token_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('refresh_token_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_refreshed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('refresh_error_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_refresh_error', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('config', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'provider', name='uq_integration_credentials_tenant_provider')
    )
    op.create_index(op.f('ix_integration_credentials_tenant_id'), 'integration_credentials', ['tenant_id'], unique=False)
    op.create_index('ix_integration_credentials_provider', 'integration_credentials', ['provider'], unique=False)
    op.create_index('ix_integration_credentials_is_active', 'integration_credentials', ['is_active'], unique=False)
    op.create_index('ix_integration_credentials_token_expires_at', 'integration_credentials', ['token_expires_at'], unique=False)


def downgrade() -> None:
    """Drop integration_credentials."""
    op.drop_index('ix_integration_credentials_token_expires_at', table_name='integration_credentials')
    op.drop_index('ix_integration_credentials_is_active', table_name='integration_credentials')
    op.drop_index('ix_integration_credentials_provider', table_name='integration_credentials')
    op.drop_index(op.f('ix_integration_credentials_tenant_id'), table_name='integration_credentials')
    op.drop_table('integration_credentials')

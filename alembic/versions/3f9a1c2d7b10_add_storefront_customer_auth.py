"""add_storefront_customer_auth

Revision ID: 3f9a1c2d7b10
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9a1c2d7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create stores, customers, verification codes, customer sessions and email logs.
    """
    op.create_table(
        'stores',
        sa.Column('id', sa.String(length=21), nullable=False),
        sa.Column('slug', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('logo_url', sa.Text(), nullable=True),
        sa.Column('primary_color', sa.String(length=20), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_stores_slug', 'stores', ['slug'], unique=True)

    op.create_table(
        'customers',
        sa.Column('id', sa.String(length=21), nullable=False),
        sa.Column('store_id', sa.String(length=21), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=255), nullable=False),
        sa.Column('last_name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('store_id', 'email', name='uq_customers_store_email'),
    )
    op.create_index('ix_customers_store_id', 'customers', ['store_id'])

    op.create_table(
        'verification_codes',
        sa.Column('id', sa.String(length=21), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('store_id', sa.String(length=21), nullable=False),
        sa.Column('code', sa.String(length=6), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('token', sa.String(length=255), nullable=True),
        sa.Column('reservation_id', sa.String(length=21), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('used_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token'),
    )
    op.create_index('ix_verification_codes_lookup', 'verification_codes', ['store_id', 'email', 'code'])
    op.create_index('ix_verification_codes_created_at', 'verification_codes', ['created_at'])

    op.create_table(
        'customer_sessions',
        sa.Column('id', sa.String(length=21), nullable=False),
        sa.Column('customer_id', sa.String(length=21), nullable=False),
        sa.Column('token', sa.String(length=255), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_customer_sessions_token', 'customer_sessions', ['token'], unique=True)
    op.create_index('ix_customer_sessions_customer_id', 'customer_sessions', ['customer_id'])
    op.create_index('ix_customer_sessions_expires_at', 'customer_sessions', ['expires_at'])

    op.create_table(
        'email_logs',
        sa.Column('id', sa.String(length=21), nullable=False),
        sa.Column('store_id', sa.String(length=21), nullable=False),
        sa.Column('customer_id', sa.String(length=21), nullable=True),
        sa.Column('to', sa.String(length=255), nullable=False),
        sa.Column('subject', sa.String(length=500), nullable=False),
        sa.Column('template_type', sa.String(length=50), nullable=False),
        sa.Column('message_id', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('sent_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_email_logs_store_id', 'email_logs', ['store_id'])


def downgrade() -> None:
    """
    Drop the storefront customer auth tables.
    """
    op.drop_index('ix_email_logs_store_id', table_name='email_logs')
    op.drop_table('email_logs')
    op.drop_index('ix_customer_sessions_expires_at', table_name='customer_sessions')
    op.drop_index('ix_customer_sessions_customer_id', table_name='customer_sessions')
    op.drop_index('ix_customer_sessions_token', table_name='customer_sessions')
    op.drop_table('customer_sessions')
    op.drop_index('ix_verification_codes_created_at', table_name='verification_codes')
    op.drop_index('ix_verification_codes_lookup', table_name='verification_codes')
    op.drop_table('verification_codes')
    op.drop_index('ix_customers_store_id', table_name='customers')
    op.drop_table('customers')
    op.drop_index('ix_stores_slug', table_name='stores')
    op.drop_table('stores')

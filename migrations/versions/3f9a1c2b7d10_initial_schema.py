"""initial schema: users, accounts, categories, transactions, reminders, pipelines

Revision ID: 3f9a1c2b7d10
Revises:
Create Date: 2025-10-01 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9a1c2b7d10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


MONEY = sa.Numeric(precision=19, scale=2)


def _timestamps():
    return [
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    # 1. users
    op.create_table(
        'users',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('surname', sa.String(length=255), nullable=False),
        sa.Column('birthday', sa.Date(), nullable=True),
        sa.Column('photo_url', sa.String(length=1024), nullable=True),
        sa.Column('provider', sa.String(length=50), nullable=True),
        sa.Column('provider_id', sa.String(length=255), nullable=True),
        sa.Column('is_premium', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )
    op.create_index('ix_users_provider_identity', 'users', ['provider', 'provider_id'])

    # 2. accounts
    op.create_table(
        'accounts',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.BigInteger(), nullable=False),
        sa.Column('account_type', sa.String(length=20), nullable=False),
        sa.Column('currency', sa.String(length=20), nullable=False),
        sa.Column('balance', MONEY, nullable=False, server_default='0'),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('icon_url', sa.String(length=1024), nullable=True),
        sa.Column('credit_limit', MONEY, nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('include_in_total', sa.Boolean(), nullable=False, server_default='true'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_accounts_user_id', 'accounts', ['user_id'])

    # 3. categories (user_id NULL = системная)
    op.create_table(
        'categories',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.BigInteger(), nullable=True),
        sa.Column('category_type', sa.String(length=20), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('icon', sa.String(length=255), nullable=True),
        sa.Column('color', sa.String(length=32), nullable=True),
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default='false'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_categories_user_id', 'categories', ['user_id'])

    # 4. transactions
    op.create_table(
        'transactions',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.BigInteger(), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('category_id', sa.BigInteger(), nullable=True),
        sa.Column('account_id', sa.BigInteger(), nullable=False),
        sa.Column('transfer_account_id', sa.BigInteger(), nullable=True),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['transfer_account_id'], ['accounts.id'], ondelete='CASCADE'),
        sa.CheckConstraint('amount > 0', name='ck_transactions_amount_positive'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_transactions_user_id', 'transactions', ['user_id'])
    op.create_index('ix_transactions_type', 'transactions', ['type'])
    op.create_index('ix_transactions_category_id', 'transactions', ['category_id'])
    op.create_index('ix_transactions_account_id', 'transactions', ['account_id'])
    op.create_index('ix_transactions_transfer_account_id', 'transactions', ['transfer_account_id'])
    op.create_index('ix_transactions_user_date', 'transactions', ['user_id', 'date'])

    # 5. reminders
    op.create_table(
        'reminders',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.BigInteger(), nullable=False),
        sa.Column('account_id', sa.BigInteger(), nullable=True),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.String(length=1000), nullable=True),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('recurrence_type', sa.String(length=20), nullable=False),
        sa.Column('weekly_day_of_week', sa.String(length=20), nullable=True),
        sa.Column('monthly_day_of_month', sa.Integer(), nullable=True),
        sa.Column('monthly_use_last_day', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_reminders_user_id', 'reminders', ['user_id'])

    # 6. ocr_tasks
    op.create_table(
        'ocr_tasks',
        sa.Column('task_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.BigInteger(), nullable=False),
        sa.Column('account_id', sa.BigInteger(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('task_id'),
    )
    op.create_index('ix_ocr_tasks_user_id', 'ocr_tasks', ['user_id'])

    # 7. advice_tasks
    op.create_table(
        'advice_tasks',
        sa.Column('task_id', sa.String(length=255), nullable=False),
        sa.Column('user_id', sa.BigInteger(), nullable=False),
        sa.Column('goal', sa.String(length=500), nullable=False),
        sa.Column('target_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('task_id'),
    )
    op.create_index('ix_advice_tasks_user_id', 'advice_tasks', ['user_id'])

    # 8. advices + advice_items
    op.create_table(
        'advices',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.BigInteger(), nullable=False),
        sa.Column('task_id', sa.String(length=255), nullable=False),
        sa.Column('goal', sa.String(length=500), nullable=False),
        sa.Column('target_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('task_id'),
    )
    op.create_index('ix_advices_user_id', 'advices', ['user_id'])
    op.create_index('ix_advices_created_at', 'advices', ['created_at'])

    op.create_table(
        'advice_items',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('advice_id', sa.BigInteger(), nullable=False),
        sa.Column('item_order', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('priority', sa.String(length=20), nullable=False),
        sa.Column('description', sa.String(length=2000), nullable=False),
        sa.ForeignKeyConstraint(['advice_id'], ['advices.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_advice_items_advice_id', 'advice_items', ['advice_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('advice_items')
    op.drop_table('advices')
    op.drop_table('advice_tasks')
    op.drop_table('ocr_tasks')
    op.drop_table('reminders')
    op.drop_table('transactions')
    op.drop_table('categories')
    op.drop_table('accounts')
    op.drop_table('users')

"""Initial schema

This migration creates the complete database schema for the Portfolio Ledger.

Tables:
    - portfolios: Named containers owned by a user
    - portfolio_transactions: Immutable ledger entries (signed cash deltas)
    - portfolio_holdings: Holdings cache derived from BUY/SELL history
    - portfolio_daily_performance: One equity snapshot per portfolio per day

Revision ID: 001
Revises: None
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ==========================================================================
    # PORTFOLIOS
    # ==========================================================================
    op.create_table(
        'portfolios',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('owner_id', sa.Integer(), nullable=False, index=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('currency', sa.String(3), nullable=False, server_default='USD'),
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_portfolios_owner_default', 'portfolios', ['owner_id', 'is_default'])

    # ==========================================================================
    # TRANSACTIONS
    # ==========================================================================
    op.create_table(
        'portfolio_transactions',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column(
            'portfolio_id', sa.Integer(),
            sa.ForeignKey('portfolios.id', ondelete='CASCADE'),
            nullable=False, index=True,
        ),
        sa.Column('symbol', sa.String(20), nullable=True),
        sa.Column(
            'transaction_type',
            sa.Enum('BUY', 'SELL', 'DEPOSIT', 'WITHDRAW', 'DIVIDEND', name='portfolio_transaction_type'),
            nullable=False,
        ),
        sa.Column('quantity', sa.Numeric(18, 8), nullable=True),
        sa.Column('price_per_share', sa.Numeric(18, 8), nullable=True),
        sa.Column('fees', sa.Numeric(18, 8), nullable=False, server_default='0'),
        sa.Column('total_amount', sa.Numeric(18, 8), nullable=False),
        sa.Column('transaction_date', sa.Date(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('prediction_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_ptx_portfolio_symbol', 'portfolio_transactions', ['portfolio_id', 'symbol'])
    op.create_index('ix_ptx_portfolio_date', 'portfolio_transactions', ['portfolio_id', 'transaction_date'])

    # ==========================================================================
    # HOLDINGS
    # ==========================================================================
    op.create_table(
        'portfolio_holdings',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column(
            'portfolio_id', sa.Integer(),
            sa.ForeignKey('portfolios.id', ondelete='CASCADE'),
            nullable=False, index=True,
        ),
        sa.Column('symbol', sa.String(20), nullable=False),
        sa.Column('quantity', sa.Numeric(18, 8), nullable=False),
        sa.Column('average_cost_basis', sa.Numeric(18, 8), nullable=False),
        sa.Column('total_cost_basis', sa.Numeric(18, 8), nullable=False),
        sa.Column('target_allocation_percent', sa.Numeric(5, 2), nullable=True),
        sa.Column('sector', sa.String(100), nullable=True),
        sa.Column('first_purchase_date', sa.Date(), nullable=True),
        sa.Column('last_transaction_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('portfolio_id', 'symbol', name='uq_holding_portfolio_symbol'),
    )

    # ==========================================================================
    # DAILY PERFORMANCE
    # ==========================================================================
    op.create_table(
        'portfolio_daily_performance',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column(
            'portfolio_id', sa.Integer(),
            sa.ForeignKey('portfolios.id', ondelete='CASCADE'),
            nullable=False, index=True,
        ),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('total_equity', sa.Numeric(18, 8), nullable=False),
        sa.Column('cash_balance', sa.Numeric(18, 8), nullable=False),
        sa.Column('holdings_value', sa.Numeric(18, 8), nullable=False),
        sa.Column('daily_return_percent', sa.Numeric(12, 6), nullable=True),
        sa.Column('total_return_percent', sa.Numeric(12, 6), nullable=True),
        sa.Column('net_deposits', sa.Numeric(18, 8), nullable=False, server_default='0'),
        sa.Column('benchmark_primary_close', sa.Numeric(18, 8), nullable=True),
        sa.Column('benchmark_secondary_close', sa.Numeric(18, 8), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('portfolio_id', 'date', name='uq_performance_portfolio_date'),
    )


def downgrade() -> None:
    op.drop_table('portfolio_daily_performance')
    op.drop_table('portfolio_holdings')
    op.drop_index('ix_ptx_portfolio_date', table_name='portfolio_transactions')
    op.drop_index('ix_ptx_portfolio_symbol', table_name='portfolio_transactions')
    op.drop_table('portfolio_transactions')
    op.drop_index('ix_portfolios_owner_default', table_name='portfolios')
    op.drop_table('portfolios')
    sa.Enum(name='portfolio_transaction_type').drop(op.get_bind(), checkfirst=True)

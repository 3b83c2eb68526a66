"""create marketplace tables

Revision ID: 3b7e1c2d9a40
Revises:
Create Date: 2026-10-19 10:12:44.318204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3b7e1c2d9a40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_role = postgresql.ENUM('ATTENDEE', 'SPONSOR', 'ORGANIZER', 'ADMIN', name='user_role', create_type=False)
order_type = postgresql.ENUM('TICKET', 'PACKAGE', name='order_type', create_type=False)
order_status = postgresql.ENUM('RESERVED', 'COMPLETED', 'FAILED', 'EXPIRED', name='order_status', create_type=False)


def _pool_table(name: str, prefix: str) -> None:
    op.create_table(
        name,
        sa.Column('id', sa.Integer(), sa.Identity(always=True), primary_key=True),
        sa.Column('event_id', sa.Integer(), sa.ForeignKey('events.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('sold', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('reserved', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.CheckConstraint('price >= 0', name=f'chk_{prefix}_price_nonneg'),
        sa.CheckConstraint('quantity >= 0', name=f'chk_{prefix}_quantity_nonneg'),
        sa.CheckConstraint('sold >= 0', name=f'chk_{prefix}_sold_nonneg'),
        sa.CheckConstraint('reserved >= 0', name=f'chk_{prefix}_reserved_nonneg'),
        sa.CheckConstraint('sold + reserved <= quantity', name=f'chk_{prefix}_no_oversell'),
    )
    op.create_index(f'ix_{name}_event_id', name, ['event_id'])


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    for enum in (user_role, order_type, order_status):
        enum.create(bind, checkfirst=True)

    op.create_table(
        'users',
        sa.Column('id', sa.Text(), primary_key=True),
        sa.Column('email', sa.Text(), nullable=False, unique=True),
        sa.Column('first_name', sa.Text(), nullable=True),
        sa.Column('last_name', sa.Text(), nullable=True),
        sa.Column('role', user_role, nullable=False, server_default='ATTENDEE'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False,
                  server_default=sa.text("timezone('utc', now())")),
    )

    op.create_table(
        'events',
        sa.Column('id', sa.Integer(), sa.Identity(always=True), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('location', sa.Text(), nullable=True),
        sa.Column('organizer_id', sa.Text(), sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('event_start', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('event_end', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('event_end > event_start', name='chk_event_time_range'),
    )
    op.create_index('ix_events_organizer_id', 'events', ['organizer_id'])

    _pool_table('tickets', 'ticket')
    _pool_table('packages', 'package')

    op.create_table(
        'sponsors',
        sa.Column('id', sa.Integer(), sa.Identity(always=True), primary_key=True),
        sa.Column('event_id', sa.Integer(), sa.ForeignKey('events.id', ondelete='CASCADE'), nullable=False),
        sa.Column('sponsor_id', sa.Text(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('event_id', 'sponsor_id', name='uq_sponsors_event_sponsor'),
    )
    op.create_index('ix_sponsors_event_id', 'sponsors', ['event_id'])
    op.create_index('ix_sponsors_sponsor_id', 'sponsors', ['sponsor_id'])

    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), sa.Identity(always=True), primary_key=True),
        sa.Column('gateway_order_id', sa.Text(), nullable=False, unique=True),
        sa.Column('user_id', sa.Text(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('event_id', sa.Integer(), sa.ForeignKey('events.id'), nullable=False),
        sa.Column('type', order_type, nullable=False),
        sa.Column('status', order_status, nullable=False, server_default='RESERVED'),
        sa.Column('total_amount_cents', sa.BigInteger(), nullable=False),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('total_amount_cents >= 0', name='chk_order_total_nonneg'),
    )
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])
    op.create_index('ix_orders_event_id', 'orders', ['event_id'])
    op.create_index('ix_orders_sweep', 'orders', ['event_id', 'type', 'status', 'expires_at'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer(), sa.Identity(always=True), primary_key=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('ticket_id', sa.Integer(), sa.ForeignKey('tickets.id', ondelete='RESTRICT'), nullable=True),
        sa.Column('package_id', sa.Integer(), sa.ForeignKey('packages.id', ondelete='RESTRICT'), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.CheckConstraint('quantity > 0', name='chk_order_item_quantity_pos'),
        sa.CheckConstraint('(ticket_id IS NULL) <> (package_id IS NULL)', name='chk_order_item_one_pool'),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])

    op.create_table(
        'event_revenues',
        sa.Column('id', sa.Integer(), sa.Identity(always=True), primary_key=True),
        sa.Column('event_id', sa.Integer(), sa.ForeignKey('events.id', ondelete='CASCADE'),
                  nullable=False, unique=True),
        sa.Column('ticket_revenue_cents', sa.BigInteger(), nullable=False, server_default=sa.text('0')),
        sa.Column('package_revenue_cents', sa.BigInteger(), nullable=False, server_default=sa.text('0')),
        sa.Column('paid_cents', sa.BigInteger(), nullable=False, server_default=sa.text('0')),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('ticket_revenue_cents >= 0', name='chk_revenue_ticket_nonneg'),
        sa.CheckConstraint('package_revenue_cents >= 0', name='chk_revenue_package_nonneg'),
        sa.CheckConstraint('paid_cents >= 0', name='chk_revenue_paid_nonneg'),
    )


def downgrade() -> None:
    """Downgrade schema."""
    for table in ('event_revenues', 'order_items', 'orders', 'sponsors', 'packages', 'tickets', 'events', 'users'):
        op.drop_table(table)
    bind = op.get_bind()
    for enum in (order_status, order_type, user_role):
        enum.drop(bind, checkfirst=True)

"""initial marketplace schema

Revision ID: a1c4e2b7d901
Revises:
Create Date: 2026-03-01 00:00:00.000000

Creates the complete ShareWardrobe schema:
- users / session_tokens: phone-login accounts and hashed bearer sessions
- categories / items: the garment catalog
- cart_lines / negotiations: pre-checkout state
- orders / order_lines / rentals / deliveries: checkout and fulfilment
- transactions / withdrawal_requests: the append-only money ledger
- notifications / admin_configs: in-app messages and business settings

Soft-deletable tables carry an indexed deleted_at column.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1c4e2b7d901'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(updated=False):
    columns = [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
    ]
    if updated:
        columns.append(
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                      server_default=sa.text('CURRENT_TIMESTAMP'))
        )
    return columns


def _deleted_at():
    return sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True)


def upgrade():
    # ============================================================================
    # users / session_tokens
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=False),
        sa.Column('phone_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False, server_default='user'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('balance', sa.Numeric(14, 2), nullable=False, server_default='0.00'),
        sa.Column('nid_front_url', sa.String(length=512), nullable=True),
        sa.Column('nid_back_url', sa.String(length=512), nullable=True),
        sa.Column('verification_status', sa.String(length=16), nullable=False, server_default='pending'),
        *_timestamps(updated=True),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        _deleted_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('balance >= 0', name='ck_users_balance_non_negative'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_users_phone', 'users', ['phone'], unique=True)
    op.create_index('ix_users_status', 'users', ['status'])
    op.create_index('ix_users_deleted_at', 'users', ['deleted_at'])

    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'])
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'])
    op.create_index('ix_session_tokens_user_active', 'session_tokens', ['user_id', 'is_revoked'])

    # ============================================================================
    # categories / items
    # ============================================================================
    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('slug', sa.String(length=120), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        *_timestamps(),
        _deleted_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_categories_deleted_at', 'categories', ['deleted_at'])

    op.create_table(
        'items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('seller_id', sa.Integer(), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('type', sa.String(length=64), nullable=False),
        sa.Column('color', sa.String(length=64), nullable=True),
        sa.Column('size', sa.String(length=32), nullable=True),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('purchase_price', sa.Numeric(14, 2), nullable=True),
        sa.Column('sell_price', sa.Numeric(14, 2), nullable=True),
        sa.Column('rent_price', sa.Numeric(14, 2), nullable=True),
        sa.Column('availability', sa.String(length=16), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('status', sa.String(length=24), nullable=False, server_default='pending_approval'),
        *_timestamps(updated=True),
        _deleted_at(),
        sa.ForeignKeyConstraint(['seller_id'], ['users.id']),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quantity >= 0', name='ck_items_quantity_non_negative'),
        sa.CheckConstraint('sell_price IS NULL OR sell_price >= 0', name='ck_items_sell_price'),
        sa.CheckConstraint('rent_price IS NULL OR rent_price >= 0', name='ck_items_rent_price'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_items_seller_id', 'items', ['seller_id'])
    op.create_index('ix_items_category_id', 'items', ['category_id'])
    op.create_index('ix_items_status_availability', 'items', ['status', 'availability'])
    op.create_index('ix_items_deleted_at', 'items', ['deleted_at'])

    # ============================================================================
    # negotiations / cart_lines
    # ============================================================================
    op.create_table(
        'negotiations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('buyer_id', sa.Integer(), nullable=False),
        sa.Column('offer_price', sa.Numeric(14, 2), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(updated=True),
        _deleted_at(),
        sa.ForeignKeyConstraint(['item_id'], ['items.id']),
        sa.ForeignKeyConstraint(['buyer_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('offer_price >= 0', name='ck_negotiations_offer_price'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_negotiations_item_id', 'negotiations', ['item_id'])
    op.create_index('ix_negotiations_buyer_id', 'negotiations', ['buyer_id'])
    op.create_index('ix_negotiations_deleted_at', 'negotiations', ['deleted_at'])

    op.create_table(
        'cart_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('type', sa.String(length=8), nullable=False),
        sa.Column('negotiated_price', sa.Numeric(14, 2), nullable=True),
        sa.Column('negotiated_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('negotiation_id', sa.Integer(), nullable=True),
        sa.Column('added_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['item_id'], ['items.id']),
        sa.ForeignKeyConstraint(['negotiation_id'], ['negotiations.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'item_id', 'type', name='uq_cart_lines_user_item_type'),
        sa.CheckConstraint('quantity >= 1', name='ck_cart_lines_quantity'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_cart_lines_user_id', 'cart_lines', ['user_id'])
    op.create_index('ix_cart_lines_negotiated_expires_at', 'cart_lines', ['negotiated_expires_at'])

    # ============================================================================
    # orders / order_lines / rentals / deliveries
    # ============================================================================
    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('buyer_id', sa.Integer(), nullable=False),
        sa.Column('total_amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('delivery_charge', sa.Numeric(14, 2), nullable=False),
        sa.Column('safety_deposit', sa.Numeric(14, 2), nullable=False, server_default='0.00'),
        sa.Column('payment_method', sa.String(length=8), nullable=False),
        sa.Column('delivery_address', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=24), nullable=False, server_default='pending'),
        sa.Column('payment_due_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivery_charge_paid', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('payment_reference', sa.String(length=128), nullable=True),
        *_timestamps(updated=True),
        _deleted_at(),
        sa.ForeignKeyConstraint(['buyer_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('total_amount >= 0', name='ck_orders_total'),
        sa.CheckConstraint('delivery_charge >= 0', name='ck_orders_delivery_charge'),
        sa.CheckConstraint('safety_deposit >= 0', name='ck_orders_safety_deposit'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_orders_buyer_id', 'orders', ['buyer_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_status_payment_due', 'orders', ['status', 'payment_due_at'])
    op.create_index('ix_orders_deleted_at', 'orders', ['deleted_at'])

    op.create_table(
        'order_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(14, 2), nullable=False),
        sa.Column('type', sa.String(length=8), nullable=False),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['item_id'], ['items.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quantity >= 1', name='ck_order_lines_quantity'),
        sa.CheckConstraint('price >= 0', name='ck_order_lines_price'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_order_lines_order_id', 'order_lines', ['order_id'])
    op.create_index('ix_order_lines_item_id', 'order_lines', ['item_id'])

    op.create_table(
        'rentals',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_line_id', sa.Integer(), nullable=False),
        sa.Column('rental_start', sa.DateTime(timezone=True), nullable=False),
        sa.Column('rental_end', sa.DateTime(timezone=True), nullable=False),
        sa.Column('return_status', sa.String(length=24), nullable=False, server_default='pending'),
        sa.Column('return_initiated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('inspection_result', sa.Text(), nullable=True),
        sa.Column('refund_amount', sa.Numeric(14, 2), nullable=True),
        sa.Column('late_fee', sa.Numeric(14, 2), nullable=False, server_default='0.00'),
        sa.Column('inspected_by_user_id', sa.Integer(), nullable=True),
        sa.Column('inspected_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(updated=True),
        _deleted_at(),
        sa.ForeignKeyConstraint(['order_line_id'], ['order_lines.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['inspected_by_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_line_id'),
        sa.CheckConstraint('late_fee >= 0', name='ck_rentals_late_fee'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_rentals_return_status', 'rentals', ['return_status'])
    op.create_index('ix_rentals_deleted_at', 'rentals', ['deleted_at'])

    op.create_table(
        'deliveries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('rental_id', sa.Integer(), nullable=True),
        sa.Column('from_address', sa.Text(), nullable=False),
        sa.Column('to_address', sa.Text(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('tracking_id', sa.String(length=128), nullable=True),
        sa.Column('is_return', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        _deleted_at(),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['rental_id'], ['rentals.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_deliveries_order_id', 'deliveries', ['order_id'])
    op.create_index('ix_deliveries_rental_id', 'deliveries', ['rental_id'])
    op.create_index('ix_deliveries_tracking_id', 'deliveries', ['tracking_id'])
    op.create_index('ix_deliveries_deleted_at', 'deliveries', ['deleted_at'])

    # ============================================================================
    # withdrawal_requests / transactions
    # ============================================================================
    op.create_table(
        'withdrawal_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('processed_by_user_id', sa.Integer(), nullable=True),
        *_timestamps(),
        _deleted_at(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['processed_by_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('amount > 0', name='ck_withdrawal_requests_amount'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_withdrawal_requests_user_id', 'withdrawal_requests', ['user_id'])
    op.create_index('ix_withdrawal_requests_status', 'withdrawal_requests', ['status'])
    op.create_index('ix_withdrawal_requests_deleted_at', 'withdrawal_requests', ['deleted_at'])

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('order_id', sa.Integer(), nullable=True),
        sa.Column('withdrawal_request_id', sa.Integer(), nullable=True),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('description', sa.Text(), nullable=True),
        *_timestamps(),
        _deleted_at(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id']),
        sa.ForeignKeyConstraint(['withdrawal_request_id'], ['withdrawal_requests.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_transactions_user_id', 'transactions', ['user_id'])
    op.create_index('ix_transactions_order_id', 'transactions', ['order_id'])
    op.create_index('ix_transactions_withdrawal_request_id', 'transactions', ['withdrawal_request_id'])
    op.create_index('ix_transactions_type_created', 'transactions', ['type', 'created_at'])
    op.create_index('ix_transactions_deleted_at', 'transactions', ['deleted_at'])

    # ============================================================================
    # notifications / admin_configs
    # ============================================================================
    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        _deleted_at(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('ix_notifications_user_read', 'notifications', ['user_id', 'is_read'])
    op.create_index('ix_notifications_deleted_at', 'notifications', ['deleted_at'])

    op.create_table(
        'admin_configs',
        sa.Column('key', sa.String(length=128), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('updated_by_user_id', sa.Integer(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['updated_by_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('key')
    )


def downgrade():
    for table in (
        'admin_configs',
        'notifications',
        'transactions',
        'withdrawal_requests',
        'deliveries',
        'rentals',
        'order_lines',
        'orders',
        'cart_lines',
        'negotiations',
        'items',
        'categories',
        'session_tokens',
        'users',
    ):
        op.drop_table(table)

"""Initial schema - users, products, orders and the sales ledger

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def _timestamps():
    return [
        sa.Column('created_at', sa.TIMESTAMP(timezone=False), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=False), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        *_timestamps(),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('is_admin', sa.Boolean(), nullable=False),
        sa.Column('is_seller', sa.Boolean(), nullable=False),
        sa.Column('seller_info', JSONType, nullable=True),
        sa.Column('cart', JSONType, nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), primary_key=True),
        *_timestamps(),
        sa.Column('seller_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('image', sa.String(), nullable=True),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('count_in_stock', sa.Integer(), nullable=False),
        sa.Column('sales', sa.Integer(), nullable=False),
    )
    op.create_index('ix_products_seller_id', 'products', ['seller_id'])

    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), primary_key=True),
        *_timestamps(),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('shipping_address', JSONType, nullable=True),
        sa.Column('payment_method', sa.String(), nullable=True),
        sa.Column('payment_result', JSONType, nullable=True),
        sa.Column('items_price', sa.Float(), nullable=False),
        sa.Column('tax_price', sa.Float(), nullable=False),
        sa.Column('shipping_price', sa.Float(), nullable=False),
        sa.Column('total_price', sa.Float(), nullable=False),
        sa.Column('is_paid', sa.Boolean(), nullable=False),
        sa.Column('paid_at', sa.TIMESTAMP(timezone=False), nullable=True),
        sa.Column('is_delivered', sa.Boolean(), nullable=False),
        sa.Column('delivered_at', sa.TIMESTAMP(timezone=False), nullable=True),
    )
    op.create_index('ix_orders_id', 'orders', ['id'])
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('seller_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('image', sa.String(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
    op.create_index('ix_order_items_product_id', 'order_items', ['product_id'])
    op.create_index('ix_order_items_seller_id', 'order_items', ['seller_id'])

    op.create_table(
        'sales_records',
        sa.Column('id', sa.Integer(), primary_key=True),
        *_timestamps(),
        sa.Column('seller_id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id'), nullable=True),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_name', sa.String(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('total_amount', sa.Float(), nullable=False),
        sa.Column('customer_name', sa.String(), nullable=False),
        sa.Column('customer_email', sa.String(), nullable=False),
        sa.Column('order_date', sa.TIMESTAMP(timezone=False), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.UniqueConstraint('order_id', 'product_id', name='uq_sales_records_order_product'),
    )
    op.create_index('ix_sales_records_order_id', 'sales_records', ['order_id'])
    op.create_index('ix_sales_records_product_id', 'sales_records', ['product_id'])
    op.create_index('ix_sales_records_seller_order_date', 'sales_records', ['seller_id', 'order_date'])


def downgrade() -> None:
    op.drop_table('sales_records')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('products')
    op.drop_table('users')

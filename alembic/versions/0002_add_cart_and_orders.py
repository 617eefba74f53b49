"""add cart and orders

Revision ID: 0002
Revises: 0001_init
Create Date: 2026-10-18 10:00:00

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0002'
down_revision = '0001_init'
branch_labels = None
depends_on = None

order_status = sa.Enum('pending', 'confirmed', 'cancelled', name='order_status')

def upgrade():
    op.create_table(
        'cart',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('buyer_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('product_id', sa.Uuid(), sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('added_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_cart_buyer_id', 'cart', ['buyer_id'])

    op.create_table(
        'orders',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('order_number', sa.String(length=50), nullable=False),
        sa.Column('buyer_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('total_amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('status', order_status, nullable=False, server_default='pending'),
        sa.Column('buyer_name', sa.Text(), nullable=False),
        sa.Column('buyer_email', sa.Text(), nullable=False),
        sa.Column('buyer_phone', sa.Text(), nullable=False),
        sa.Column('shipping_address', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_orders_order_number', 'orders', ['order_number'], unique=True)
    op.create_index('ix_orders_buyer_id', 'orders', ['buyer_id'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('order_id', sa.Uuid(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', sa.Uuid(), sa.ForeignKey('products.id', ondelete='SET NULL'), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('product_name', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])

def downgrade():
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('cart')
    order_status.drop(op.get_bind(), checkfirst=True)

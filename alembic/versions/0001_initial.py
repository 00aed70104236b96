"""Create credit ledger, purchase and promo code tables

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MONEY = sa.Numeric(18, 2)
JSON = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def upgrade() -> None:
    """创建额度、采购、退款、优惠码表"""

    op.create_table('credit_balances',
        sa.Column('id', sa.String(length=36), nullable=False, comment='余额ID'),
        sa.Column('customer_id', sa.String(length=36), nullable=False, comment='客户ID'),
        sa.Column('current_balance', MONEY, nullable=False, server_default='0', comment='当前余额'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='0', comment='乐观锁版本号'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='创建时间'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='更新时间'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('customer_id'),
        sa.CheckConstraint('current_balance >= 0', name='ck_credit_balances_non_negative'),
    )

    op.create_table('credit_transactions',
        sa.Column('id', sa.String(length=36), nullable=False, comment='流水ID'),
        sa.Column('customer_id', sa.String(length=36), nullable=False, comment='客户ID'),
        sa.Column('type', sa.String(length=20), nullable=False, comment='流水类型：GRANT/DEDUCT/REFUND'),
        sa.Column('amount', MONEY, nullable=False, comment='变动金额'),
        sa.Column('balance_before', MONEY, nullable=False, comment='变动前余额'),
        sa.Column('balance_after', MONEY, nullable=False, comment='变动后余额'),
        sa.Column('reason', sa.Text(), nullable=False, comment='变动原因'),
        sa.Column('related_purchase_id', sa.String(length=36), nullable=True, comment='关联采购单ID'),
        sa.Column('metadata', JSON, nullable=True, comment='附加信息'),
        sa.Column('created_by', sa.String(length=100), nullable=True, comment='操作人'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='创建时间'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_credit_tx_customer_time', 'credit_transactions', ['customer_id', 'created_at'])
    op.create_index('idx_credit_tx_purchase', 'credit_transactions', ['related_purchase_id'])

    op.create_table('purchases',
        sa.Column('id', sa.String(length=36), nullable=False, comment='采购单ID'),
        sa.Column('customer_id', sa.String(length=36), nullable=False, comment='客户ID'),
        sa.Column('product_id', sa.String(length=36), nullable=False, comment='商品ID'),
        sa.Column('quantity', sa.Integer(), nullable=False, comment='数量'),
        sa.Column('unit_price', MONEY, nullable=False, comment='单价'),
        sa.Column('total_amount', MONEY, nullable=False, comment='总额'),
        sa.Column('refunded_amount', MONEY, nullable=False, server_default='0', comment='已退款金额'),
        sa.Column('status', sa.String(length=30), nullable=False, comment='状态'),
        sa.Column('shipment_id', sa.String(length=100), nullable=True, comment='发货单ID'),
        sa.Column('product_snapshot', JSON, nullable=False, comment='商品快照'),
        sa.Column('customer_snapshot', JSON, nullable=False, comment='客户快照'),
        sa.Column('created_by', sa.String(length=100), nullable=True, comment='创建人'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='创建时间'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='更新时间'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quantity > 0', name='ck_purchases_quantity_positive'),
        sa.CheckConstraint('refunded_amount <= total_amount', name='ck_purchases_refund_within_total'),
    )
    op.create_index('idx_purchases_customer_time', 'purchases', ['customer_id', 'created_at'])
    op.create_index('idx_purchases_status', 'purchases', ['status'])

    op.create_table('refunds',
        sa.Column('id', sa.String(length=36), nullable=False, comment='退款ID'),
        sa.Column('purchase_id', sa.String(length=36), nullable=False, comment='采购单ID'),
        sa.Column('amount', MONEY, nullable=False, comment='退款金额'),
        sa.Column('reason', sa.Text(), nullable=True, comment='退款原因'),
        sa.Column('refunded_by', sa.String(length=100), nullable=True, comment='操作人'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='创建时间'),
        sa.ForeignKeyConstraint(['purchase_id'], ['purchases.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_refunds_purchase', 'refunds', ['purchase_id', 'created_at'])

    op.create_table('promo_codes',
        sa.Column('id', sa.String(length=36), nullable=False, comment='优惠码ID'),
        sa.Column('code', sa.String(length=50), nullable=False, comment='优惠码'),
        sa.Column('type', sa.String(length=20), nullable=False, comment='折扣类型'),
        sa.Column('value', MONEY, nullable=False, comment='折扣值（百分比或金额）'),
        sa.Column('min_purchase_amount', MONEY, nullable=True, comment='最低消费'),
        sa.Column('max_discount_amount', MONEY, nullable=True, comment='折扣上限'),
        sa.Column('max_usage_count', sa.Integer(), nullable=True, comment='最大使用次数'),
        sa.Column('current_usage_count', sa.Integer(), nullable=False, server_default='0', comment='已使用次数'),
        sa.Column('valid_from', sa.DateTime(timezone=True), nullable=False, comment='生效时间'),
        sa.Column('valid_until', sa.DateTime(timezone=True), nullable=False, comment='失效时间'),
        sa.Column('status', sa.String(length=20), nullable=False, comment='状态'),
        sa.Column('applicable_product_ids', JSON, nullable=True, comment='适用商品ID列表'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='创建时间'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='更新时间'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code'),
    )


def downgrade() -> None:
    """删除全部表"""
    op.drop_table('promo_codes')
    op.drop_index('idx_refunds_purchase', table_name='refunds')
    op.drop_table('refunds')
    op.drop_index('idx_purchases_status', table_name='purchases')
    op.drop_index('idx_purchases_customer_time', table_name='purchases')
    op.drop_table('purchases')
    op.drop_index('idx_credit_tx_purchase', table_name='credit_transactions')
    op.drop_index('idx_credit_tx_customer_time', table_name='credit_transactions')
    op.drop_table('credit_transactions')
    op.drop_table('credit_balances')

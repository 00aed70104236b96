"""
采购与退款数据模型
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, JSONColumn, MoneyType


class PurchaseRecord(Base):
    """采购单表"""
    __tablename__ = "purchases"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, comment="采购单ID")
    customer_id: Mapped[str] = mapped_column(String(36), nullable=False, comment="客户ID")
    product_id: Mapped[str] = mapped_column(String(36), nullable=False, comment="商品ID")
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, comment="数量")

    unit_price: Mapped[Decimal] = mapped_column(MoneyType(), nullable=False, comment="单价")
    total_amount: Mapped[Decimal] = mapped_column(MoneyType(), nullable=False, comment="总额")
    refunded_amount: Mapped[Decimal] = mapped_column(
        MoneyType(),
        default=Decimal("0.00"),
        nullable=False,
        comment="已退款金额"
    )

    # 状态：PENDING/COMPLETED/PARTIALLY_REFUNDED/FULLY_REFUNDED/CANCELLED
    status: Mapped[str] = mapped_column(String(30), nullable=False, comment="状态")
    shipment_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, comment="发货单ID")

    # 下单时刻快照
    product_snapshot: Mapped[dict] = mapped_column(JSONColumn, nullable=False, comment="商品快照")
    customer_snapshot: Mapped[dict] = mapped_column(JSONColumn, nullable=False, comment="客户快照")

    created_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, comment="创建人")
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False, comment="创建时间")
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False, comment="更新时间")

    __table_args__ = (
        Index("idx_purchases_customer_time", "customer_id", "created_at"),
        Index("idx_purchases_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<PurchaseRecord(id={self.id}, status={self.status}, total={self.total_amount})>"


class RefundRecord(Base):
    """退款记录表"""
    __tablename__ = "refunds"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, comment="退款ID")
    purchase_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("purchases.id", ondelete="CASCADE"),
        nullable=False,
        comment="采购单ID"
    )
    amount: Mapped[Decimal] = mapped_column(MoneyType(), nullable=False, comment="退款金额")
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="退款原因")
    refunded_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, comment="操作人")
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False, comment="创建时间")

    __table_args__ = (
        Index("idx_refunds_purchase", "purchase_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<RefundRecord(id={self.id}, purchase_id={self.purchase_id}, amount={self.amount})>"

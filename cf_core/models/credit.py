"""
额度系统数据模型
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, JSONColumn, MoneyType


class CreditBalanceRecord(Base):
    """额度余额表 - 每个客户一行"""
    __tablename__ = "credit_balances"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        comment="余额ID"
    )

    customer_id: Mapped[str] = mapped_column(
        String(36),
        unique=True,
        nullable=False,
        comment="客户ID"
    )

    # 当前余额 - 使用 Decimal(18,2) 精确计算
    current_balance: Mapped[Decimal] = mapped_column(
        MoneyType(),
        default=Decimal("0.00"),
        nullable=False,
        comment="当前余额"
    )

    # 版本号（乐观锁）
    version: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="乐观锁版本号"
    )

    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        nullable=False,
        comment="创建时间"
    )
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        nullable=False,
        comment="更新时间"
    )

    def __repr__(self) -> str:
        return (
            f"<CreditBalanceRecord(customer_id={self.customer_id}, "
            f"balance={self.current_balance}, version={self.version})>"
        )


class CreditTransactionRecord(Base):
    """额度流水表（只追加）"""
    __tablename__ = "credit_transactions"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        comment="流水ID"
    )

    customer_id: Mapped[str] = mapped_column(
        String(36),
        nullable=False,
        comment="客户ID"
    )

    # 流水类型：GRANT / DEDUCT / REFUND
    type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="流水类型：GRANT/DEDUCT/REFUND"
    )

    # 金额（始终为正数，方向由类型决定）
    amount: Mapped[Decimal] = mapped_column(
        MoneyType(),
        nullable=False,
        comment="变动金额"
    )

    balance_before: Mapped[Decimal] = mapped_column(
        MoneyType(),
        nullable=False,
        comment="变动前余额"
    )

    balance_after: Mapped[Decimal] = mapped_column(
        MoneyType(),
        nullable=False,
        comment="变动后余额"
    )

    reason: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="变动原因"
    )

    # 关联采购单（扣费流水在采购完成时关联）
    related_purchase_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        nullable=True,
        comment="关联采购单ID"
    )

    # metadata 为 DeclarativeBase 保留属性
    details: Mapped[Optional[dict]] = mapped_column(
        "metadata",
        JSONColumn,
        nullable=True,
        comment="附加信息"
    )

    created_by: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="操作人"
    )

    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        nullable=False,
        comment="创建时间"
    )

    __table_args__ = (
        Index("idx_credit_tx_customer_time", "customer_id", "created_at"),
        Index("idx_credit_tx_purchase", "related_purchase_id"),
    )

    def __repr__(self) -> str:
        return f"<CreditTransactionRecord(id={self.id}, type={self.type}, amount={self.amount})>"

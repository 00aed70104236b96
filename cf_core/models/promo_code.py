"""
优惠码数据模型
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, JSONColumn, MoneyType


class PromoCodeRecord(Base):
    """优惠码表"""
    __tablename__ = "promo_codes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, comment="优惠码ID")

    # 统一大写存储，保证大小写不敏感的唯一性
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, comment="优惠码")

    # 类型：PERCENTAGE / FIXED_AMOUNT
    type: Mapped[str] = mapped_column(String(20), nullable=False, comment="折扣类型")

    # 百分比或固定金额，均以字符串精确保存
    value: Mapped[Decimal] = mapped_column(
        MoneyType(),
        nullable=False,
        comment="折扣值（百分比或金额）"
    )

    min_purchase_amount: Mapped[Optional[Decimal]] = mapped_column(MoneyType(), nullable=True, comment="最低消费")
    max_discount_amount: Mapped[Optional[Decimal]] = mapped_column(MoneyType(), nullable=True, comment="折扣上限")
    max_usage_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, comment="最大使用次数")
    current_usage_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False, comment="已使用次数")

    valid_from: Mapped[datetime] = mapped_column(nullable=False, comment="生效时间")
    valid_until: Mapped[datetime] = mapped_column(nullable=False, comment="失效时间")

    # 状态：ACTIVE / EXPIRED / DISABLED / USED_UP
    status: Mapped[str] = mapped_column(String(20), nullable=False, comment="状态")

    # 适用商品白名单，为空表示全部商品
    applicable_product_ids: Mapped[Optional[list]] = mapped_column(JSONColumn, nullable=True, comment="适用商品ID列表")

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False, comment="创建时间")
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False, comment="更新时间")

    def __repr__(self) -> str:
        return f"<PromoCodeRecord(code={self.code}, type={self.type}, status={self.status})>"

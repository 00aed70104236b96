"""
优惠码领域模型
独立能力：校验规则与折扣计算，当前不接入购买流程
"""
import re
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from cf_core.utils.errors import DomainRuleError
from .identifiers import new_id, utcnow
from .money import Money, quantize_money, to_decimal

CODE_PATTERN = re.compile(r"^[A-Z0-9_-]{3,50}$")


class PromoCodeType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"


class PromoCodeStatus(str, Enum):
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    DISABLED = "DISABLED"
    USED_UP = "USED_UP"


@dataclass
class PromoCode:
    """优惠码（构造时校验）"""
    code: str
    type: PromoCodeType
    value: Decimal
    valid_from: datetime
    valid_until: datetime
    status: PromoCodeStatus = PromoCodeStatus.ACTIVE
    min_purchase_amount: Optional[Money] = None
    max_discount_amount: Optional[Money] = None
    max_usage_count: Optional[int] = None
    current_usage_count: int = 0
    applicable_product_ids: Optional[List[str]] = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        self.code = (self.code or "").strip().upper()
        self.type = PromoCodeType(self.type)
        self.status = PromoCodeStatus(self.status)
        self.value = quantize_money(to_decimal(self.value))
        self._validate()

    @classmethod
    def create(
        cls,
        code: str,
        type: PromoCodeType,
        value: Decimal,
        valid_from: datetime,
        valid_until: datetime,
        min_purchase_amount: Optional[Money] = None,
        max_discount_amount: Optional[Money] = None,
        max_usage_count: Optional[int] = None,
        applicable_product_ids: Optional[List[str]] = None
    ) -> "PromoCode":
        return cls(
            code=code,
            type=type,
            value=value,
            valid_from=valid_from,
            valid_until=valid_until,
            status=PromoCodeStatus.ACTIVE,
            min_purchase_amount=min_purchase_amount,
            max_discount_amount=max_discount_amount,
            max_usage_count=max_usage_count,
            current_usage_count=0,
            applicable_product_ids=applicable_product_ids,
        )

    def _validate(self) -> None:
        if not self.code:
            raise DomainRuleError("Promo code cannot be empty")

        if len(self.code) < 3 or len(self.code) > 50:
            raise DomainRuleError("Promo code must be between 3 and 50 characters")

        if not CODE_PATTERN.match(self.code):
            raise DomainRuleError(
                "Promo code may only contain letters, digits, '-' and '_'"
            )

        if self.type == PromoCodeType.PERCENTAGE and (self.value <= 0 or self.value > 100):
            raise DomainRuleError("Percentage discount must be between 0 and 100")

        if self.type == PromoCodeType.FIXED_AMOUNT and self.value <= 0:
            raise DomainRuleError("Fixed amount discount must be greater than 0")

        # Money 本身保证非负
        if self.max_discount_amount is not None and self.max_discount_amount.is_zero():
            raise DomainRuleError("Maximum discount amount must be greater than 0")

        if self.max_usage_count is not None and self.max_usage_count <= 0:
            raise DomainRuleError("Maximum usage count must be greater than 0")

        if self.current_usage_count < 0:
            raise DomainRuleError("Current usage count cannot be negative")

        if self.valid_from >= self.valid_until:
            raise DomainRuleError("Valid from date must be before valid until date")

    def _usage_exhausted(self) -> bool:
        return (
            self.max_usage_count is not None
            and self.current_usage_count >= self.max_usage_count
        )

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        """当前是否可用"""
        now = now or utcnow()

        if self.status != PromoCodeStatus.ACTIVE:
            return False

        if now < self.valid_from or now > self.valid_until:
            return False

        return not self._usage_exhausted()

    def get_validation_message(self, now: Optional[datetime] = None) -> Optional[str]:
        """不可用原因（面向用户），可用时返回 None"""
        now = now or utcnow()

        if self.status == PromoCodeStatus.DISABLED:
            return "Promo code is disabled"

        if self.status == PromoCodeStatus.EXPIRED:
            return "Promo code has expired"

        if self.status == PromoCodeStatus.USED_UP:
            return "Promo code usage limit reached"

        if now < self.valid_from:
            return "Promo code is not yet valid"

        if now > self.valid_until:
            return "Promo code has expired"

        if self._usage_exhausted():
            return "Promo code usage limit reached"

        return None

    def can_apply_to_product(self, product_id: str) -> bool:
        if not self.applicable_product_ids:
            return True  # 适用于所有商品
        return str(product_id) in self.applicable_product_ids

    def meets_minimum_purchase(self, amount: Money) -> bool:
        if self.min_purchase_amount is None:
            return True
        return amount >= self.min_purchase_amount

    def calculate_discount(self, purchase_amount: Money, now: Optional[datetime] = None) -> Money:
        """
        计算折扣金额

        规则：
        1. 不可用或未达最低消费 -> 0
        2. 百分比：金额 × value / 100；固定金额：value
        3. 不超过 max_discount_amount
        4. 不超过订单金额
        5. 两位小数四舍五入
        """
        if not self.is_valid(now):
            return Money.zero()

        if not self.meets_minimum_purchase(purchase_amount):
            return Money.zero()

        if self.type == PromoCodeType.PERCENTAGE:
            discount = purchase_amount.amount * self.value / 100
        else:
            discount = self.value

        if self.max_discount_amount is not None and discount > self.max_discount_amount.amount:
            discount = self.max_discount_amount.amount

        if discount > purchase_amount.amount:
            discount = purchase_amount.amount

        return Money(quantize_money(discount))

    def increment_usage(self) -> None:
        """使用次数 +1，达到上限时自动变为 USED_UP"""
        self.current_usage_count += 1
        self.updated_at = utcnow()
        if self._usage_exhausted():
            self.status = PromoCodeStatus.USED_UP

    def disable(self) -> None:
        self.status = PromoCodeStatus.DISABLED
        self.updated_at = utcnow()

    def activate(self) -> None:
        if self.status in (PromoCodeStatus.EXPIRED, PromoCodeStatus.USED_UP):
            raise DomainRuleError("Cannot activate expired or used up promo code")
        self.status = PromoCodeStatus.ACTIVE
        self.updated_at = utcnow()

    def mark_as_expired(self) -> None:
        self.status = PromoCodeStatus.EXPIRED
        self.updated_at = utcnow()

"""
采购领域模型

状态机：
    PENDING -> COMPLETED | CANCELLED
    COMPLETED | PARTIALLY_REFUNDED -> PARTIALLY_REFUNDED | FULLY_REFUNDED
FULLY_REFUNDED 与 CANCELLED 为终态
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from cf_core.utils.errors import DomainRuleError
from .identifiers import CustomerId, ProductId, new_id, utcnow
from .money import Money


class PurchaseStatus(str, Enum):
    """采购单状态"""
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    PARTIALLY_REFUNDED = "PARTIALLY_REFUNDED"
    FULLY_REFUNDED = "FULLY_REFUNDED"
    CANCELLED = "CANCELLED"


REFUNDABLE_STATUSES = (PurchaseStatus.COMPLETED, PurchaseStatus.PARTIALLY_REFUNDED)


@dataclass
class Purchase:
    """采购单，快照为下单时刻的客户/商品副本，不再刷新"""
    id: str
    customer_id: CustomerId
    product_id: ProductId
    quantity: int
    unit_price: Money
    total_amount: Money
    refunded_amount: Money
    status: PurchaseStatus
    product_snapshot: Dict[str, Any]
    customer_snapshot: Dict[str, Any]
    shipment_id: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def create(
        cls,
        customer_id: CustomerId,
        product_id: ProductId,
        quantity: int,
        unit_price: Money,
        product_snapshot: Dict[str, Any],
        customer_snapshot: Dict[str, Any],
        created_by: Optional[str] = None,
        purchase_id: Optional[str] = None
    ) -> "Purchase":
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise DomainRuleError("Quantity must be greater than 0")

        return cls(
            id=purchase_id or new_id(),
            customer_id=customer_id,
            product_id=product_id,
            quantity=quantity,
            unit_price=unit_price,
            total_amount=unit_price.multiply(quantity),
            refunded_amount=Money.zero(),
            status=PurchaseStatus.PENDING,
            product_snapshot=dict(product_snapshot),
            customer_snapshot=dict(customer_snapshot),
            created_by=created_by,
        )

    def complete(self, shipment_id: str) -> None:
        """发货成功后完成"""
        if self.status != PurchaseStatus.PENDING:
            raise DomainRuleError("Only pending purchases can be completed")
        self.shipment_id = shipment_id
        self.status = PurchaseStatus.COMPLETED
        self.updated_at = utcnow()

    def cancel(self) -> None:
        if self.status != PurchaseStatus.PENDING:
            raise DomainRuleError("Only pending purchases can be cancelled")
        self.status = PurchaseStatus.CANCELLED
        self.updated_at = utcnow()

    def refund(self, amount: Money) -> None:
        """退款（全额或部分）"""
        if self.status not in REFUNDABLE_STATUSES:
            raise DomainRuleError("Can only refund completed or partially refunded purchases")

        if amount > self.get_remaining_amount():
            raise DomainRuleError("Refund amount cannot exceed remaining purchase amount")

        self.refunded_amount = self.refunded_amount.add(amount)
        if self.refunded_amount == self.total_amount:
            self.status = PurchaseStatus.FULLY_REFUNDED
        else:
            self.status = PurchaseStatus.PARTIALLY_REFUNDED
        self.updated_at = utcnow()

    def get_remaining_amount(self) -> Money:
        return self.total_amount.subtract(self.refunded_amount)

    def is_refundable(self) -> bool:
        return self.status in REFUNDABLE_STATUSES and not self.get_remaining_amount().is_zero()

    def is_fully_refunded(self) -> bool:
        return self.status == PurchaseStatus.FULLY_REFUNDED


@dataclass(frozen=True)
class Refund:
    """退款记录（不可变）"""
    id: str
    purchase_id: str
    amount: Money
    reason: Optional[str] = None
    refunded_by: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def create(
        cls,
        purchase_id: str,
        amount: Money,
        reason: Optional[str] = None,
        refunded_by: Optional[str] = None
    ) -> "Refund":
        if amount.is_zero():
            raise DomainRuleError("Refund amount must be greater than zero")
        return cls(
            id=new_id(),
            purchase_id=purchase_id,
            amount=amount,
            reason=reason,
            refunded_by=refunded_by,
        )


@dataclass(frozen=True)
class RefundCheck:
    """退款校验结果"""
    ok: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.ok


class PurchaseDomainService:
    """采购领域服务：退款规则"""

    DEFAULT_APPROVAL_THRESHOLD = Money("1000")

    @staticmethod
    def can_be_refunded(purchase: Purchase) -> RefundCheck:
        """检查采购单是否可退款"""
        if purchase.status == PurchaseStatus.PENDING:
            return RefundCheck(False, "Purchase is still pending")

        if purchase.status == PurchaseStatus.CANCELLED:
            return RefundCheck(False, "Purchase was cancelled")

        if purchase.status == PurchaseStatus.FULLY_REFUNDED:
            return RefundCheck(False, "Purchase is already fully refunded")

        if purchase.get_remaining_amount().is_zero():
            return RefundCheck(False, "No remaining amount to refund")

        return RefundCheck(True)

    @staticmethod
    def validate_refund_amount(purchase: Purchase, refund_amount: Money) -> RefundCheck:
        """校验退款金额"""
        remaining = purchase.get_remaining_amount()

        if refund_amount.is_zero():
            return RefundCheck(False, "Refund amount must be greater than zero")

        if refund_amount > remaining:
            return RefundCheck(
                False,
                f"Refund amount ({refund_amount.to_json()}) exceeds "
                f"remaining amount ({remaining.to_json()})"
            )

        return RefundCheck(True)

    @staticmethod
    def calculate_refund_percentage(purchase: Purchase, refund_amount: Money) -> Decimal:
        """退款金额占订单总额的百分比"""
        if purchase.total_amount.is_zero():
            return Decimal("0")
        return refund_amount.amount / purchase.total_amount.amount * 100

    @staticmethod
    def is_full_refund(purchase: Purchase, refund_amount: Money) -> bool:
        """本次退款后剩余金额是否为零"""
        return refund_amount == purchase.get_remaining_amount()

    @staticmethod
    def requires_approval(
        total_amount: Money,
        threshold: Optional[Money] = None
    ) -> bool:
        """大额订单是否需要审批（策略钩子，当前流程未接入）"""
        if threshold is None:
            threshold = PurchaseDomainService.DEFAULT_APPROVAL_THRESHOLD
        return total_amount > threshold

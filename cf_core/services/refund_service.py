"""
退款服务
遵循约束：退款记录、采购单状态、余额返还在同一事务内完成
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from cf_core.domain.credit import CreditDomainService, CreditTransactionType
from cf_core.domain.money import Money
from cf_core.domain.purchase import PurchaseDomainService, PurchaseStatus, Refund
from cf_core.repositories.credit_repository import CreditRepository
from cf_core.repositories.purchase_repository import PurchaseRepository
from cf_core.utils.errors import NotFoundError, ValidationError
from .base import BaseService, parse_positive_money


@dataclass(frozen=True)
class RefundResult:
    refund_id: str
    purchase_id: str
    amount: Money
    remaining_amount: Money
    new_status: PurchaseStatus
    credit_returned: Money
    timestamp: datetime


class RefundService(BaseService):
    """退款服务（全额或部分退款）"""

    async def refund_purchase(
        self,
        purchase_id: str,
        amount: Any,
        reason: Optional[str] = None,
        refunded_by: Optional[str] = None
    ) -> RefundResult:
        """
        退款

        Args:
            purchase_id: 采购单ID
            amount: 退款金额
            reason: 退款原因
            refunded_by: 操作人

        Returns:
            RefundResult

        Raises:
            ValidationError: 参数无效、采购单不可退款或金额超出剩余金额
            NotFoundError: 采购单或客户余额不存在
            ConcurrencyError: 余额被并发修改（已整体回滚）
        """
        errors: List[str] = []
        if not purchase_id or not purchase_id.strip():
            errors.append("Purchase ID is required")
        refund_amount = parse_positive_money(amount, "Refund amount", errors)
        if errors:
            raise ValidationError("Invalid refund purchase request", errors)

        self.logger.info("Processing refund", purchase_id=purchase_id, amount=refund_amount.to_json())

        result = await self.execute_with_transaction(
            self._execute_refund,
            purchase_id,
            refund_amount,
            reason,
            refunded_by,
            operation_name="refund_purchase",
        )

        self.logger.info(
            "Refund processed successfully",
            refund_id=result.refund_id,
            purchase_id=purchase_id,
            amount=result.amount.to_json(),
            new_status=result.new_status.value,
        )
        return result

    async def _execute_refund(
        self,
        session: AsyncSession,
        purchase_id: str,
        refund_amount: Money,
        reason: Optional[str],
        refunded_by: Optional[str]
    ) -> RefundResult:
        purchase = await PurchaseRepository.find_by_id(session, purchase_id)
        if purchase is None:
            raise NotFoundError("Purchase", purchase_id)

        check = PurchaseDomainService.can_be_refunded(purchase)
        if not check:
            self.logger.warning("Refund rejected", purchase_id=purchase_id, reason=check.reason)
            raise ValidationError("Purchase is not refundable", [check.reason])

        check = PurchaseDomainService.validate_refund_amount(purchase, refund_amount)
        if not check:
            self.logger.warning("Refund rejected", purchase_id=purchase_id, reason=check.reason)
            raise ValidationError("Invalid refund amount", [check.reason])

        refund = Refund.create(
            purchase_id=purchase.id,
            amount=refund_amount,
            reason=reason,
            refunded_by=refunded_by,
        )
        await PurchaseRepository.create_refund(session, refund)

        purchase.refund(refund_amount)
        await PurchaseRepository.update(session, purchase)

        balance = await CreditRepository.find_by_customer_id(session, purchase.customer_id)
        if balance is None:
            raise NotFoundError("CreditBalance", purchase.customer_id.value)

        balance, transaction = CreditDomainService.execute_operation(
            balance,
            CreditTransactionType.REFUND,
            refund_amount,
            f"Refund for purchase {purchase_id}" + (f": {reason}" if reason else ""),
            related_purchase_id=purchase_id,
            metadata={"refundId": refund.id, "refundedBy": refunded_by},
            created_by=refunded_by or "system",
        )
        await CreditRepository.update(session, balance)
        await CreditRepository.create_transaction(session, transaction)

        return RefundResult(
            refund_id=refund.id,
            purchase_id=purchase.id,
            amount=refund.amount,
            remaining_amount=purchase.get_remaining_amount(),
            new_status=purchase.status,
            credit_returned=transaction.amount,
            timestamp=refund.created_at,
        )

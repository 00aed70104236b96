"""
额度服务
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from cf_core.domain.credit import CreditDomainService, CreditTransaction, CreditTransactionType
from cf_core.domain.identifiers import CustomerId
from cf_core.domain.money import Money
from cf_core.repositories.credit_repository import CreditRepository
from cf_core.utils.errors import InsufficientCreditError, ValidationError
from cf_core.utils.logger import LogContext
from .base import BaseService, parse_identifier, parse_positive_money, validate_pagination


@dataclass(frozen=True)
class CreditOperationResult:
    """额度变更结果"""
    customer_id: str
    previous_balance: Money
    new_balance: Money
    transaction_id: str
    timestamp: datetime


@dataclass(frozen=True)
class BalanceView:
    customer_id: str
    current_balance: Money
    version: int
    last_updated: datetime


@dataclass(frozen=True)
class TransactionPage:
    customer_id: str
    items: List[CreditTransaction]
    total: int
    limit: int
    offset: int


class CreditService(BaseService):
    """
    额度服务

    功能：
    1. 发放额度（GRANT）
    2. 扣减额度（DEDUCT，先做余额预检）
    3. 余额查询（懒加载创建）
    4. 流水分页查询
    """

    def _validate_operation(
        self,
        operation: str,
        customer_id: str,
        amount: Any,
        reason: Optional[str]
    ):
        errors: List[str] = []
        parsed_customer_id = parse_identifier(CustomerId, customer_id, "Customer ID", errors)
        parsed_amount = parse_positive_money(amount, "Amount", errors)
        if not reason or not reason.strip():
            errors.append("Reason is required")

        if errors:
            raise ValidationError(f"Invalid {operation} credit request", errors)
        return parsed_customer_id, parsed_amount

    async def grant_credit(
        self,
        customer_id: str,
        amount: Any,
        reason: str,
        created_by: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> CreditOperationResult:
        """
        发放额度

        Raises:
            ValidationError: 参数无效
            ConcurrencyError: 余额被并发修改
        """
        cid, money = self._validate_operation("grant", customer_id, amount, reason)
        return await self._apply(
            cid, CreditTransactionType.GRANT, money, reason, created_by, metadata
        )

    async def deduct_credit(
        self,
        customer_id: str,
        amount: Any,
        reason: str,
        created_by: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> CreditOperationResult:
        """
        扣减额度

        Raises:
            ValidationError: 参数无效
            InsufficientCreditError: 余额不足
            ConcurrencyError: 余额被并发修改
        """
        cid, money = self._validate_operation("deduct", customer_id, amount, reason)
        return await self._apply(
            cid, CreditTransactionType.DEDUCT, money, reason, created_by, metadata
        )

    async def _apply(
        self,
        customer_id: CustomerId,
        type: CreditTransactionType,
        amount: Money,
        reason: str,
        created_by: Optional[str],
        metadata: Optional[Dict[str, Any]]
    ) -> CreditOperationResult:
        async def operation(session: AsyncSession) -> CreditOperationResult:
            balance = await CreditRepository.get_or_create(session, customer_id)
            previous_balance = balance.current_balance

            if type == CreditTransactionType.DEDUCT and not CreditDomainService.can_afford_purchase(balance, amount):
                self.logger.warning(
                    "Deduct rejected: insufficient credit",
                    required=amount.to_json(),
                    available=previous_balance.to_json(),
                )
                raise InsufficientCreditError(customer_id.value, str(amount), str(previous_balance))

            balance, transaction = CreditDomainService.execute_operation(
                balance,
                type,
                amount,
                reason,
                metadata=metadata,
                created_by=created_by,
            )
            await CreditRepository.update(session, balance)
            await CreditRepository.create_transaction(session, transaction)

            return CreditOperationResult(
                customer_id=customer_id.value,
                previous_balance=previous_balance,
                new_balance=balance.current_balance,
                transaction_id=transaction.id,
                timestamp=transaction.created_at,
            )

        with LogContext(customer_id=customer_id.value):
            result = await self.execute_with_transaction(operation, operation_name=f"credit_{type.value.lower()}")
            self.logger.info(
                "Credit operation applied",
                type=type.value,
                amount=amount.to_json(),
                previous_balance=result.previous_balance.to_json(),
                new_balance=result.new_balance.to_json(),
                transaction_id=result.transaction_id,
            )
            return result

    async def get_balance(self, customer_id: str) -> BalanceView:
        """查询余额（不存在时创建零余额）"""
        errors: List[str] = []
        cid = parse_identifier(CustomerId, customer_id, "Customer ID", errors)
        if errors:
            raise ValidationError("Invalid get balance request", errors)

        async def operation(session: AsyncSession) -> BalanceView:
            balance = await CreditRepository.get_or_create(session, cid)
            return BalanceView(
                customer_id=cid.value,
                current_balance=balance.current_balance,
                version=balance.version,
                last_updated=balance.updated_at,
            )

        return await self.execute_with_transaction(operation, operation_name="get_balance")

    async def get_transaction_history(
        self,
        customer_id: str,
        limit: int = 50,
        offset: int = 0
    ) -> TransactionPage:
        """流水分页查询，最新在前"""
        errors: List[str] = []
        cid = parse_identifier(CustomerId, customer_id, "Customer ID", errors)
        validate_pagination(limit, offset, errors)
        if errors:
            raise ValidationError("Invalid get transaction history request", errors)

        async def operation(session: AsyncSession) -> TransactionPage:
            items = await CreditRepository.get_transaction_history(session, cid, limit, offset)
            total = await CreditRepository.count_transactions(session, cid)
            return TransactionPage(
                customer_id=cid.value,
                items=items,
                total=total,
                limit=limit,
                offset=offset,
            )

        return await self.execute_with_session(operation, operation_name="get_transaction_history")

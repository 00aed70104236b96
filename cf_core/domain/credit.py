"""
额度领域模型

- CreditBalance：客户余额，version 为乐观锁版本号
- CreditTransaction：不可变的流水记录（审计账本）
- CreditDomainService：所有余额变更的唯一入口
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from cf_core.utils.errors import DomainRuleError, InsufficientCreditError
from .identifiers import CustomerId, new_id, utcnow
from .money import Money


class CreditTransactionType(str, Enum):
    """流水类型"""
    GRANT = "GRANT"
    DEDUCT = "DEDUCT"
    REFUND = "REFUND"


@dataclass
class CreditBalance:
    """客户额度余额（懒加载创建，永不删除）"""
    id: str
    customer_id: CustomerId
    current_balance: Money
    version: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def create(
        cls,
        customer_id: CustomerId,
        initial_balance: Optional[Money] = None,
        balance_id: Optional[str] = None
    ) -> "CreditBalance":
        return cls(
            id=balance_id or new_id(),
            customer_id=customer_id,
            current_balance=initial_balance or Money.zero(),
            version=0,
        )

    def credit(self, amount: Money) -> None:
        """增加余额"""
        self.current_balance = self.current_balance.add(amount)
        self._touch()

    def debit(self, amount: Money) -> None:
        """扣减余额，余额不足时不修改任何状态"""
        if self.current_balance < amount:
            raise InsufficientCreditError(
                self.customer_id.value,
                str(amount),
                str(self.current_balance)
            )
        self.current_balance = self.current_balance.subtract(amount)
        self._touch()

    def has_sufficient_balance(self, amount: Money) -> bool:
        return self.current_balance >= amount

    def _touch(self) -> None:
        self.version += 1
        self.updated_at = utcnow()


@dataclass(frozen=True)
class CreditTransaction:
    """
    额度流水（不可变）

    唯一例外：related_purchase_id 可在创建后关联一次
    """
    id: str
    customer_id: CustomerId
    type: CreditTransactionType
    amount: Money
    balance_before: Money
    balance_after: Money
    reason: str
    related_purchase_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    created_by: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def create(
        cls,
        customer_id: CustomerId,
        type: CreditTransactionType,
        amount: Money,
        balance_before: Money,
        balance_after: Money,
        reason: str,
        related_purchase_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        created_by: Optional[str] = None
    ) -> "CreditTransaction":
        if not reason or not reason.strip():
            raise DomainRuleError("Transaction reason is required")

        return cls(
            id=new_id(),
            customer_id=customer_id,
            type=type,
            amount=amount,
            balance_before=balance_before,
            balance_after=balance_after,
            reason=reason,
            related_purchase_id=related_purchase_id,
            metadata=metadata,
            created_by=created_by,
        )

    def link_to_purchase(self, purchase_id: str) -> None:
        """关联采购单（仅允许一次）"""
        if self.related_purchase_id is not None and self.related_purchase_id != purchase_id:
            raise DomainRuleError(
                f"Transaction {self.id} is already linked to purchase {self.related_purchase_id}"
            )
        object.__setattr__(self, "related_purchase_id", purchase_id)


class CreditDomainService:
    """
    额度领域服务

    功能：
    1. 执行额度变更并同步生成流水（唯一变更入口）
    2. 购买力检查
    3. 余额占用比例计算
    """

    @staticmethod
    def execute_operation(
        balance: CreditBalance,
        type: CreditTransactionType,
        amount: Money,
        reason: str,
        related_purchase_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        created_by: Optional[str] = None
    ) -> Tuple[CreditBalance, CreditTransaction]:
        """
        执行额度操作

        就地修改 balance，快照变更前后余额，生成对应流水。
        每一次余额变更都恰好对应一条流水。

        Args:
            balance: 余额实体（会被就地修改）
            type: 流水类型
            amount: 金额（正数）
            reason: 原因（必填）
            related_purchase_id: 关联采购单ID
            metadata: 附加信息
            created_by: 操作人

        Returns:
            (balance, transaction)

        Raises:
            InsufficientCreditError: 扣减时余额不足
            DomainRuleError: 原因为空
        """
        # 先校验原因，避免余额已变更而流水创建失败
        if not reason or not reason.strip():
            raise DomainRuleError("Transaction reason is required")

        balance_before = balance.current_balance

        if type in (CreditTransactionType.GRANT, CreditTransactionType.REFUND):
            balance.credit(amount)
        elif type == CreditTransactionType.DEDUCT:
            balance.debit(amount)
        else:
            raise DomainRuleError(f"Unknown transaction type: {type}")

        transaction = CreditTransaction.create(
            customer_id=balance.customer_id,
            type=type,
            amount=amount,
            balance_before=balance_before,
            balance_after=balance.current_balance,
            reason=reason,
            related_purchase_id=related_purchase_id,
            metadata=metadata,
            created_by=created_by,
        )
        return balance, transaction

    @staticmethod
    def can_afford_purchase(balance: CreditBalance, total_amount: Money) -> bool:
        """检查余额是否足够支付"""
        return balance.has_sufficient_balance(total_amount)

    @staticmethod
    def calculate_usage_percentage(balance: CreditBalance, amount: Money) -> Decimal:
        """计算该金额占当前余额的百分比"""
        if balance.current_balance.is_zero():
            return Decimal("0")
        return amount.amount / balance.current_balance.amount * 100

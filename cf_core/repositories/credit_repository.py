"""
额度仓储

所有方法的第一个参数都是当前工作单元的 AsyncSession，
同一段代码既可运行在普通会话上，也可运行在已开启的事务中
"""
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cf_core.domain.credit import CreditBalance, CreditTransaction, CreditTransactionType
from cf_core.domain.identifiers import CustomerId, ensure_utc
from cf_core.domain.money import Money
from cf_core.models.credit import CreditBalanceRecord, CreditTransactionRecord
from cf_core.utils.errors import ConcurrencyError
from cf_core.utils.logger import get_logger

logger = get_logger(__name__)


def _balance_to_domain(record: CreditBalanceRecord) -> CreditBalance:
    return CreditBalance(
        id=record.id,
        customer_id=CustomerId(record.customer_id),
        current_balance=Money(record.current_balance),
        version=record.version,
        created_at=ensure_utc(record.created_at),
        updated_at=ensure_utc(record.updated_at),
    )


def _transaction_to_domain(record: CreditTransactionRecord) -> CreditTransaction:
    return CreditTransaction(
        id=record.id,
        customer_id=CustomerId(record.customer_id),
        type=CreditTransactionType(record.type),
        amount=Money(record.amount),
        balance_before=Money(record.balance_before),
        balance_after=Money(record.balance_after),
        reason=record.reason,
        related_purchase_id=record.related_purchase_id,
        metadata=record.details,
        created_by=record.created_by,
        created_at=ensure_utc(record.created_at),
    )


class CreditRepository:
    """
    额度仓储

    功能：
    1. 余额读取与懒加载创建
    2. 乐观锁更新（版本号不匹配即失败，不重试）
    3. 流水追加、关联采购单、分页查询
    """

    @staticmethod
    async def find_by_customer_id(
        session: AsyncSession,
        customer_id: CustomerId
    ) -> Optional[CreditBalance]:
        """按客户ID读取余额，不存在返回 None"""
        result = await session.execute(
            select(CreditBalanceRecord)
            .where(CreditBalanceRecord.customer_id == customer_id.value)
            .execution_options(populate_existing=True)
        )
        record = result.scalar_one_or_none()
        return _balance_to_domain(record) if record else None

    @staticmethod
    async def create(session: AsyncSession, balance: CreditBalance) -> CreditBalance:
        """
        插入新余额行

        Raises:
            ConcurrencyError: 同一客户的余额已被并发创建
        """
        session.add(CreditBalanceRecord(
            id=balance.id,
            customer_id=balance.customer_id.value,
            current_balance=balance.current_balance.amount,
            version=balance.version,
            created_at=balance.created_at,
            updated_at=balance.updated_at,
        ))
        try:
            await session.flush()
        except IntegrityError:
            logger.warning("Credit balance created concurrently", customer_id=balance.customer_id.value)
            raise ConcurrencyError("CreditBalance", balance.customer_id.value)

        logger.info("Created credit balance", customer_id=balance.customer_id.value)
        return balance

    @staticmethod
    async def get_or_create(session: AsyncSession, customer_id: CustomerId) -> CreditBalance:
        """获取或创建余额（懒加载，初始为零）"""
        balance = await CreditRepository.find_by_customer_id(session, customer_id)
        if balance is not None:
            return balance
        return await CreditRepository.create(session, CreditBalance.create(customer_id))

    @staticmethod
    async def update(session: AsyncSession, balance: CreditBalance) -> CreditBalance:
        """
        乐观锁更新余额

        实体在变更时已将 version +1，因此数据库中的期望版本为 version - 1

        Raises:
            ConcurrencyError: 期望版本已被其他写入者修改
        """
        result = await session.execute(
            update(CreditBalanceRecord)
            .where(CreditBalanceRecord.customer_id == balance.customer_id.value)
            .where(CreditBalanceRecord.version == balance.version - 1)
            .values(
                current_balance=balance.current_balance.amount,
                version=balance.version,
                updated_at=balance.updated_at,
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount != 1:
            logger.warning(
                "Credit balance version conflict",
                customer_id=balance.customer_id.value,
                expected_version=balance.version - 1,
            )
            raise ConcurrencyError("CreditBalance", balance.customer_id.value)

        return balance

    @staticmethod
    async def create_transaction(
        session: AsyncSession,
        transaction: CreditTransaction
    ) -> CreditTransaction:
        """追加流水"""
        session.add(CreditTransactionRecord(
            id=transaction.id,
            customer_id=transaction.customer_id.value,
            type=transaction.type.value,
            amount=transaction.amount.amount,
            balance_before=transaction.balance_before.amount,
            balance_after=transaction.balance_after.amount,
            reason=transaction.reason,
            related_purchase_id=transaction.related_purchase_id,
            details=transaction.metadata,
            created_by=transaction.created_by,
            created_at=transaction.created_at,
        ))
        await session.flush()
        return transaction

    @staticmethod
    async def link_transaction_to_purchase(
        session: AsyncSession,
        transaction: CreditTransaction
    ) -> None:
        """持久化流水与采购单的关联（实体已通过 link_to_purchase 设置）"""
        await session.execute(
            update(CreditTransactionRecord)
            .where(CreditTransactionRecord.id == transaction.id)
            .values(related_purchase_id=transaction.related_purchase_id)
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    async def get_transaction_history(
        session: AsyncSession,
        customer_id: CustomerId,
        limit: int = 50,
        offset: int = 0
    ) -> List[CreditTransaction]:
        """分页查询流水，最新在前"""
        result = await session.execute(
            select(CreditTransactionRecord)
            .where(CreditTransactionRecord.customer_id == customer_id.value)
            .order_by(CreditTransactionRecord.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return [_transaction_to_domain(r) for r in result.scalars().all()]

    @staticmethod
    async def count_transactions(session: AsyncSession, customer_id: CustomerId) -> int:
        result = await session.execute(
            select(func.count())
            .select_from(CreditTransactionRecord)
            .where(CreditTransactionRecord.customer_id == customer_id.value)
        )
        return result.scalar_one()

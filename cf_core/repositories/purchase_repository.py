"""
采购与退款仓储
"""
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cf_core.domain.identifiers import CustomerId, ProductId, ensure_utc
from cf_core.domain.money import Money
from cf_core.domain.purchase import Purchase, PurchaseStatus, Refund
from cf_core.models.purchase import PurchaseRecord, RefundRecord
from cf_core.utils.errors import NotFoundError


def _purchase_to_domain(record: PurchaseRecord) -> Purchase:
    return Purchase(
        id=record.id,
        customer_id=CustomerId(record.customer_id),
        product_id=ProductId(record.product_id),
        quantity=record.quantity,
        unit_price=Money(record.unit_price),
        total_amount=Money(record.total_amount),
        refunded_amount=Money(record.refunded_amount),
        status=PurchaseStatus(record.status),
        product_snapshot=dict(record.product_snapshot or {}),
        customer_snapshot=dict(record.customer_snapshot or {}),
        shipment_id=record.shipment_id,
        created_by=record.created_by,
        created_at=ensure_utc(record.created_at),
        updated_at=ensure_utc(record.updated_at),
    )


def _refund_to_domain(record: RefundRecord) -> Refund:
    return Refund(
        id=record.id,
        purchase_id=record.purchase_id,
        amount=Money(record.amount),
        reason=record.reason,
        refunded_by=record.refunded_by,
        created_at=ensure_utc(record.created_at),
    )


class PurchaseRepository:
    """采购仓储（会话作为第一个参数）"""

    @staticmethod
    async def create(session: AsyncSession, purchase: Purchase) -> Purchase:
        session.add(PurchaseRecord(
            id=purchase.id,
            customer_id=purchase.customer_id.value,
            product_id=purchase.product_id.value,
            quantity=purchase.quantity,
            unit_price=purchase.unit_price.amount,
            total_amount=purchase.total_amount.amount,
            refunded_amount=purchase.refunded_amount.amount,
            status=purchase.status.value,
            shipment_id=purchase.shipment_id,
            product_snapshot=purchase.product_snapshot,
            customer_snapshot=purchase.customer_snapshot,
            created_by=purchase.created_by,
            created_at=purchase.created_at,
            updated_at=purchase.updated_at,
        ))
        await session.flush()
        return purchase

    @staticmethod
    async def find_by_id(session: AsyncSession, purchase_id: str) -> Optional[Purchase]:
        result = await session.execute(
            select(PurchaseRecord)
            .where(PurchaseRecord.id == purchase_id)
            .execution_options(populate_existing=True)
        )
        record = result.scalar_one_or_none()
        return _purchase_to_domain(record) if record else None

    @staticmethod
    async def update(session: AsyncSession, purchase: Purchase) -> Purchase:
        """
        持久化可变字段（状态、发货单、已退金额）

        Raises:
            NotFoundError: 采购单不存在
        """
        result = await session.execute(
            update(PurchaseRecord)
            .where(PurchaseRecord.id == purchase.id)
            .values(
                status=purchase.status.value,
                shipment_id=purchase.shipment_id,
                refunded_amount=purchase.refunded_amount.amount,
                updated_at=purchase.updated_at,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise NotFoundError("Purchase", purchase.id)
        return purchase

    @staticmethod
    def _filtered(stmt, customer_id: Optional[CustomerId], status: Optional[PurchaseStatus]):
        if customer_id is not None:
            stmt = stmt.where(PurchaseRecord.customer_id == customer_id.value)
        if status is not None:
            stmt = stmt.where(PurchaseRecord.status == status.value)
        return stmt

    @staticmethod
    async def find_all(
        session: AsyncSession,
        customer_id: Optional[CustomerId] = None,
        status: Optional[PurchaseStatus] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[Purchase]:
        """按条件分页查询，最新在前"""
        stmt = PurchaseRepository._filtered(select(PurchaseRecord), customer_id, status)
        result = await session.execute(
            stmt.order_by(PurchaseRecord.created_at.desc()).limit(limit).offset(offset)
        )
        return [_purchase_to_domain(r) for r in result.scalars().all()]

    @staticmethod
    async def count(
        session: AsyncSession,
        customer_id: Optional[CustomerId] = None,
        status: Optional[PurchaseStatus] = None
    ) -> int:
        stmt = PurchaseRepository._filtered(
            select(func.count()).select_from(PurchaseRecord), customer_id, status
        )
        result = await session.execute(stmt)
        return result.scalar_one()

    @staticmethod
    async def create_refund(session: AsyncSession, refund: Refund) -> Refund:
        session.add(RefundRecord(
            id=refund.id,
            purchase_id=refund.purchase_id,
            amount=refund.amount.amount,
            reason=refund.reason,
            refunded_by=refund.refunded_by,
            created_at=refund.created_at,
        ))
        await session.flush()
        return refund

    @staticmethod
    async def get_refunds(session: AsyncSession, purchase_id: str) -> List[Refund]:
        """采购单的全部退款记录，按时间先后"""
        result = await session.execute(
            select(RefundRecord)
            .where(RefundRecord.purchase_id == purchase_id)
            .order_by(RefundRecord.created_at.asc())
        )
        return [_refund_to_domain(r) for r in result.scalars().all()]

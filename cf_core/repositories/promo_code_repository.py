"""
优惠码仓储
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cf_core.domain.identifiers import ensure_utc, utcnow
from cf_core.domain.money import Money
from cf_core.domain.promo_code import PromoCode, PromoCodeStatus, PromoCodeType
from cf_core.models.promo_code import PromoCodeRecord
from cf_core.utils.errors import NotFoundError


def _optional_money(value) -> Optional[Money]:
    return Money(value) if value is not None else None


def _to_domain(record: PromoCodeRecord) -> PromoCode:
    return PromoCode(
        id=record.id,
        code=record.code,
        type=PromoCodeType(record.type),
        value=record.value,
        valid_from=ensure_utc(record.valid_from),
        valid_until=ensure_utc(record.valid_until),
        status=PromoCodeStatus(record.status),
        min_purchase_amount=_optional_money(record.min_purchase_amount),
        max_discount_amount=_optional_money(record.max_discount_amount),
        max_usage_count=record.max_usage_count,
        current_usage_count=record.current_usage_count,
        applicable_product_ids=record.applicable_product_ids,
        created_at=ensure_utc(record.created_at),
        updated_at=ensure_utc(record.updated_at),
    )


class PromoCodeRepository:
    """优惠码仓储（会话作为第一个参数）"""

    @staticmethod
    async def create(session: AsyncSession, promo_code: PromoCode) -> PromoCode:
        session.add(PromoCodeRecord(
            id=promo_code.id,
            code=promo_code.code,
            type=promo_code.type.value,
            value=promo_code.value,
            min_purchase_amount=promo_code.min_purchase_amount.amount if promo_code.min_purchase_amount else None,
            max_discount_amount=promo_code.max_discount_amount.amount if promo_code.max_discount_amount else None,
            max_usage_count=promo_code.max_usage_count,
            current_usage_count=promo_code.current_usage_count,
            valid_from=promo_code.valid_from,
            valid_until=promo_code.valid_until,
            status=promo_code.status.value,
            applicable_product_ids=promo_code.applicable_product_ids,
            created_at=promo_code.created_at,
            updated_at=promo_code.updated_at,
        ))
        await session.flush()
        return promo_code

    @staticmethod
    async def find_by_code(session: AsyncSession, code: str) -> Optional[PromoCode]:
        """按优惠码查询（大小写不敏感）"""
        result = await session.execute(
            select(PromoCodeRecord)
            .where(PromoCodeRecord.code == code.strip().upper())
            .execution_options(populate_existing=True)
        )
        record = result.scalar_one_or_none()
        return _to_domain(record) if record else None

    @staticmethod
    async def find_by_id(session: AsyncSession, promo_code_id: str) -> Optional[PromoCode]:
        result = await session.execute(
            select(PromoCodeRecord)
            .where(PromoCodeRecord.id == promo_code_id)
            .execution_options(populate_existing=True)
        )
        record = result.scalar_one_or_none()
        return _to_domain(record) if record else None

    @staticmethod
    async def find_all(
        session: AsyncSession,
        status: Optional[PromoCodeStatus] = None,
        type: Optional[PromoCodeType] = None,
        active_only: bool = False,
        now: Optional[datetime] = None
    ) -> List[PromoCode]:
        """
        条件查询

        active_only 仅返回状态为 ACTIVE 且在有效期内的优惠码
        """
        stmt = select(PromoCodeRecord)
        if status is not None:
            stmt = stmt.where(PromoCodeRecord.status == status.value)
        if type is not None:
            stmt = stmt.where(PromoCodeRecord.type == type.value)
        if active_only:
            now = now or utcnow()
            stmt = stmt.where(
                PromoCodeRecord.status == PromoCodeStatus.ACTIVE.value,
                PromoCodeRecord.valid_from <= now,
                PromoCodeRecord.valid_until >= now,
            )

        result = await session.execute(stmt.order_by(PromoCodeRecord.created_at.desc()))
        return [_to_domain(r) for r in result.scalars().all()]

    @staticmethod
    async def update(session: AsyncSession, promo_code: PromoCode) -> PromoCode:
        """持久化状态与使用次数"""
        result = await session.execute(
            update(PromoCodeRecord)
            .where(PromoCodeRecord.id == promo_code.id)
            .values(
                status=promo_code.status.value,
                current_usage_count=promo_code.current_usage_count,
                updated_at=promo_code.updated_at,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise NotFoundError("PromoCode", promo_code.id)
        return promo_code

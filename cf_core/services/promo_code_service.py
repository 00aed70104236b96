"""
优惠码服务
独立能力，不接入购买流程
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cf_core.domain.identifiers import ensure_utc
from cf_core.domain.money import Money
from cf_core.domain.promo_code import PromoCode, PromoCodeStatus, PromoCodeType
from cf_core.repositories.promo_code_repository import PromoCodeRepository
from cf_core.utils.errors import DomainRuleError, NotFoundError, ValidationError
from .base import BaseService


@dataclass(frozen=True)
class PromoCodeValidation:
    valid: bool
    code: Optional[str] = None
    discount_amount: Optional[Money] = None
    message: Optional[str] = None


def _parse_enum(enum_class, value, label: str, errors: List[str]):
    if value is None:
        return None
    try:
        return enum_class(value)
    except ValueError:
        errors.append(f"{label} must be one of " + ", ".join(e.value for e in enum_class))
        return None


def _parse_optional_money(value, label: str, errors: List[str]) -> Optional[Money]:
    if value is None:
        return None
    try:
        return Money.from_(value)
    except (DomainRuleError, TypeError):
        errors.append(f"{label} must be a non-negative decimal amount")
        return None


class PromoCodeService(BaseService):
    """
    优惠码服务

    功能：
    1. 创建（优惠码大小写不敏感唯一）
    2. 校验并计算折扣
    3. 条件查询
    4. 停用
    """

    async def create_promo_code(
        self,
        code: str,
        type: str,
        value: Any,
        valid_from: datetime,
        valid_until: datetime,
        min_purchase_amount: Any = None,
        max_discount_amount: Any = None,
        max_usage_count: Optional[int] = None,
        applicable_product_ids: Optional[List[str]] = None
    ) -> PromoCode:
        """
        创建优惠码

        Raises:
            ValidationError: 参数无效、实体规则不满足或优惠码已存在
        """
        errors: List[str] = []
        if not code or not code.strip():
            errors.append("Code is required")
        promo_type = _parse_enum(PromoCodeType, type, "Type", errors)
        if type is None:
            errors.append("Type is required")
        min_amount = _parse_optional_money(min_purchase_amount, "Minimum purchase amount", errors)
        max_amount = _parse_optional_money(max_discount_amount, "Maximum discount amount", errors)
        if valid_from is None or valid_until is None:
            errors.append("Validity period is required")
        if errors:
            raise ValidationError("Invalid create promo code request", errors)

        try:
            promo_code = PromoCode.create(
                code=code,
                type=promo_type,
                value=value,
                valid_from=ensure_utc(valid_from),
                valid_until=ensure_utc(valid_until),
                min_purchase_amount=min_amount,
                max_discount_amount=max_amount,
                max_usage_count=max_usage_count,
                applicable_product_ids=[str(p) for p in applicable_product_ids] if applicable_product_ids else None,
            )
        except (DomainRuleError, TypeError) as e:
            detail = getattr(e, "detail", None) or str(e)
            raise ValidationError("Invalid promo code", [detail])

        async def operation(session: AsyncSession) -> PromoCode:
            existing = await PromoCodeRepository.find_by_code(session, promo_code.code)
            if existing is not None:
                raise ValidationError("Promo code already exists", ["code"])
            try:
                return await PromoCodeRepository.create(session, promo_code)
            except IntegrityError:
                raise ValidationError("Promo code already exists", ["code"])

        created = await self.execute_with_transaction(operation, operation_name="create_promo_code")
        self.logger.info("Promo code created", code=created.code, type=created.type.value)
        return created

    async def validate_promo_code(
        self,
        code: str,
        purchase_amount: Any,
        product_id: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> PromoCodeValidation:
        """校验优惠码并计算折扣（不消耗使用次数）"""
        errors: List[str] = []
        if not code or not code.strip():
            errors.append("Code is required")
        amount = _parse_optional_money(purchase_amount, "Purchase amount", errors)
        if purchase_amount is None:
            errors.append("Purchase amount is required")
        if errors:
            raise ValidationError("Invalid validate promo code request", errors)

        promo_code = await self.execute_with_session(
            PromoCodeRepository.find_by_code, code, operation_name="validate_promo_code"
        )
        if promo_code is None:
            return PromoCodeValidation(valid=False, message="Promo code not found")

        message = promo_code.get_validation_message(now)
        if message:
            return PromoCodeValidation(valid=False, message=message)

        if not promo_code.meets_minimum_purchase(amount):
            return PromoCodeValidation(
                valid=False,
                message=f"Minimum purchase amount is {promo_code.min_purchase_amount}",
            )

        if product_id and not promo_code.can_apply_to_product(product_id):
            return PromoCodeValidation(
                valid=False,
                message="Promo code not applicable to this product",
            )

        return PromoCodeValidation(
            valid=True,
            code=promo_code.code,
            discount_amount=promo_code.calculate_discount(amount, now),
        )

    async def list_promo_codes(
        self,
        status: Optional[str] = None,
        type: Optional[str] = None,
        active_only: bool = False
    ) -> List[PromoCode]:
        errors: List[str] = []
        parsed_status = _parse_enum(PromoCodeStatus, status, "Status", errors)
        parsed_type = _parse_enum(PromoCodeType, type, "Type", errors)
        if errors:
            raise ValidationError("Invalid list promo codes request", errors)

        return await self.execute_with_session(
            PromoCodeRepository.find_all,
            parsed_status,
            parsed_type,
            active_only,
            operation_name="list_promo_codes",
        )

    async def disable_promo_code(self, promo_code_id: str) -> PromoCode:
        """
        停用优惠码

        Raises:
            NotFoundError: 优惠码不存在
        """
        async def operation(session: AsyncSession) -> PromoCode:
            promo_code = await PromoCodeRepository.find_by_id(session, promo_code_id)
            if promo_code is None:
                raise NotFoundError("PromoCode", promo_code_id)
            promo_code.disable()
            return await PromoCodeRepository.update(session, promo_code)

        disabled = await self.execute_with_transaction(operation, operation_name="disable_promo_code")
        self.logger.info("Promo code disabled", code=disabled.code)
        return disabled

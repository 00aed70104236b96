"""
优惠码 API
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from cf_core.services.promo_code_service import PromoCodeService
from .deps import get_promo_code_service
from .models import ApiResponse, PromoCodeResponse, PromoCodeValidationResponse

router = APIRouter(prefix="/promo-codes", tags=["Promo Codes"])


class CreatePromoCodeRequest(BaseModel):
    """创建优惠码请求"""
    code: str = Field(..., description="优惠码（3-50位，字母数字及 - _）")
    type: str = Field(..., description="PERCENTAGE 或 FIXED_AMOUNT")
    value: Decimal = Field(..., description="百分比或固定金额")
    valid_from: datetime
    valid_until: datetime
    min_purchase_amount: Optional[Decimal] = None
    max_discount_amount: Optional[Decimal] = None
    max_usage_count: Optional[int] = None
    applicable_product_ids: Optional[List[str]] = None


class ValidatePromoCodeRequest(BaseModel):
    """校验优惠码请求"""
    code: str
    purchase_amount: Decimal
    product_id: Optional[str] = None


@router.post("", response_model=ApiResponse[PromoCodeResponse], status_code=201)
async def create_promo_code(
    request: CreatePromoCodeRequest,
    service: PromoCodeService = Depends(get_promo_code_service)
):
    promo_code = await service.create_promo_code(**request.model_dump())
    return ApiResponse.success(PromoCodeResponse.from_domain(promo_code))


@router.post("/validate", response_model=ApiResponse[PromoCodeValidationResponse])
async def validate_promo_code(
    request: ValidatePromoCodeRequest,
    service: PromoCodeService = Depends(get_promo_code_service)
):
    """校验优惠码并返回折扣金额（不消耗使用次数）"""
    validation = await service.validate_promo_code(
        code=request.code,
        purchase_amount=request.purchase_amount,
        product_id=request.product_id,
    )
    return ApiResponse.success(PromoCodeValidationResponse.from_validation(validation))


@router.get("", response_model=ApiResponse[List[PromoCodeResponse]])
async def list_promo_codes(
    status: Optional[str] = Query(None, description="状态过滤"),
    type: Optional[str] = Query(None, description="类型过滤"),
    active_only: bool = Query(False, description="仅返回当前可用的优惠码"),
    service: PromoCodeService = Depends(get_promo_code_service)
):
    promo_codes = await service.list_promo_codes(status=status, type=type, active_only=active_only)
    return ApiResponse.success([PromoCodeResponse.from_domain(p) for p in promo_codes])


@router.patch("/{promo_code_id}/disable", response_model=ApiResponse[PromoCodeResponse])
async def disable_promo_code(
    promo_code_id: str,
    service: PromoCodeService = Depends(get_promo_code_service)
):
    promo_code = await service.disable_promo_code(promo_code_id)
    return ApiResponse.success(PromoCodeResponse.from_domain(promo_code))

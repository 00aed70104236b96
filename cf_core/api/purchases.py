"""
采购 API
"""
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from cf_core.services.purchase_service import PurchaseService
from cf_core.services.refund_service import RefundService
from .deps import get_purchase_service, get_refund_service
from .models import (
    ApiResponse,
    PurchaseDetailResponse,
    PurchaseListResponse,
    PurchaseResponse,
    RefundResultResponse,
)

router = APIRouter(prefix="/purchases", tags=["Purchases"])


class CreatePurchaseRequest(BaseModel):
    """创建采购单请求"""
    customer_id: str = Field(..., description="客户ID（UUID）")
    product_id: str = Field(..., description="商品ID（UUID）")
    quantity: int = Field(..., description="数量")
    created_by: Optional[str] = Field(default=None, description="操作人")


class RefundRequest(BaseModel):
    """退款请求"""
    amount: Decimal = Field(..., description="退款金额")
    reason: Optional[str] = Field(default=None, description="退款原因")
    refunded_by: Optional[str] = Field(default=None, description="操作人")


@router.post("", response_model=ApiResponse[PurchaseResponse], status_code=201)
async def create_purchase(
    request: CreatePurchaseRequest,
    service: PurchaseService = Depends(get_purchase_service)
):
    """
    创建采购单

    扣费、建单、发货在同一事务内完成；发货失败返回 502，余额保持不变
    """
    purchase = await service.create_purchase(
        customer_id=request.customer_id,
        product_id=request.product_id,
        quantity=request.quantity,
        created_by=request.created_by,
    )
    return ApiResponse.success(PurchaseResponse.from_domain(purchase))


@router.get("", response_model=ApiResponse[PurchaseListResponse])
async def list_purchases(
    customer_id: Optional[str] = Query(None, description="客户ID"),
    status: Optional[str] = Query(None, description="状态过滤"),
    limit: int = Query(50, ge=1, le=100, description="每页数量"),
    offset: int = Query(0, ge=0, description="偏移量"),
    service: PurchaseService = Depends(get_purchase_service)
):
    """采购单列表（客户、状态条件可组合）"""
    page = await service.list_purchases(customer_id=customer_id, status=status, limit=limit, offset=offset)
    return ApiResponse.success(PurchaseListResponse.from_page(page))


@router.get("/customer/{customer_id}", response_model=ApiResponse[PurchaseListResponse])
async def list_customer_purchases(
    customer_id: str,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: PurchaseService = Depends(get_purchase_service)
):
    """指定客户的采购单"""
    page = await service.list_purchases(customer_id=customer_id, limit=limit, offset=offset)
    return ApiResponse.success(PurchaseListResponse.from_page(page))


@router.get("/{purchase_id}", response_model=ApiResponse[PurchaseDetailResponse])
async def get_purchase(
    purchase_id: str,
    service: PurchaseService = Depends(get_purchase_service)
):
    """采购单详情（含退款记录）"""
    detail = await service.get_purchase(purchase_id)
    return ApiResponse.success(PurchaseDetailResponse.from_detail(detail))


@router.post("/{purchase_id}/refund", response_model=ApiResponse[RefundResultResponse])
async def refund_purchase(
    purchase_id: str,
    request: RefundRequest,
    service: RefundService = Depends(get_refund_service)
):
    """全额或部分退款，额度返还给客户"""
    result = await service.refund_purchase(
        purchase_id=purchase_id,
        amount=request.amount,
        reason=request.reason,
        refunded_by=request.refunded_by,
    )
    return ApiResponse.success(RefundResultResponse.from_result(result))

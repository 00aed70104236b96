"""
额度管理 API
"""
from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from cf_core.services.credit_service import CreditService
from .deps import get_credit_service
from .models import (
    ApiResponse,
    BalanceResponse,
    CreditOperationResponse,
    TransactionHistoryResponse,
)

router = APIRouter(prefix="/credits", tags=["Credit"])


# ============ Request Models ============

class CreditOperationRequest(BaseModel):
    """发放/扣减额度请求"""
    customer_id: str = Field(..., description="客户ID（UUID）")
    amount: Decimal = Field(..., description="金额，最多两位小数")
    reason: str = Field(..., description="变动原因")
    created_by: Optional[str] = Field(default=None, description="操作人")
    metadata: Optional[Dict[str, Any]] = Field(default=None, description="附加信息")


# ============ API Endpoints ============

@router.post("/grant", response_model=ApiResponse[CreditOperationResponse])
async def grant_credit(
    request: CreditOperationRequest,
    service: CreditService = Depends(get_credit_service)
):
    """发放额度（余额不存在时自动创建）"""
    result = await service.grant_credit(
        customer_id=request.customer_id,
        amount=request.amount,
        reason=request.reason,
        created_by=request.created_by,
        metadata=request.metadata,
    )
    return ApiResponse.success(CreditOperationResponse.from_result(result))


@router.post("/deduct", response_model=ApiResponse[CreditOperationResponse])
async def deduct_credit(
    request: CreditOperationRequest,
    service: CreditService = Depends(get_credit_service)
):
    """扣减额度，余额不足返回 400"""
    result = await service.deduct_credit(
        customer_id=request.customer_id,
        amount=request.amount,
        reason=request.reason,
        created_by=request.created_by,
        metadata=request.metadata,
    )
    return ApiResponse.success(CreditOperationResponse.from_result(result))


@router.get("/balance/{customer_id}", response_model=ApiResponse[BalanceResponse])
async def get_balance(
    customer_id: str,
    service: CreditService = Depends(get_credit_service)
):
    """查询客户余额"""
    view = await service.get_balance(customer_id)
    return ApiResponse.success(BalanceResponse.from_view(view))


@router.get("/transactions/{customer_id}", response_model=ApiResponse[TransactionHistoryResponse])
async def get_transaction_history(
    customer_id: str,
    limit: int = Query(50, ge=1, le=100, description="每页数量"),
    offset: int = Query(0, ge=0, description="偏移量"),
    service: CreditService = Depends(get_credit_service)
):
    """查询流水（最新在前）"""
    page = await service.get_transaction_history(customer_id, limit=limit, offset=offset)
    return ApiResponse.success(TransactionHistoryResponse.from_page(page))

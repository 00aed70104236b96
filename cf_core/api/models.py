"""
API 响应模型
金额统一序列化为两位小数字符串
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Generic, TypeVar

from pydantic import BaseModel, Field

from cf_core.domain.credit import CreditTransaction
from cf_core.domain.money import Money
from cf_core.domain.promo_code import PromoCode
from cf_core.domain.purchase import Purchase, Refund
from cf_core.services.credit_service import BalanceView, CreditOperationResult, TransactionPage
from cf_core.services.promo_code_service import PromoCodeValidation
from cf_core.services.purchase_service import PurchaseDetail, PurchasePage
from cf_core.services.refund_service import RefundResult

T = TypeVar('T')


def _money(value: Optional[Money]) -> Optional[str]:
    return value.to_json() if value is not None else None


class ApiResponse(BaseModel, Generic[T]):
    """统一 API 响应格式"""
    ok: bool = Field(description="操作是否成功")
    data: Optional[T] = Field(default=None, description="响应数据")
    error: Optional[Dict[str, Any]] = Field(default=None, description="错误信息（RFC7807 Problem Details）")
    metadata: Optional[Dict[str, Any]] = Field(default=None, description="元数据")

    @classmethod
    def success(cls, data: T, metadata: Optional[Dict[str, Any]] = None) -> "ApiResponse[T]":
        """创建成功响应"""
        return cls(ok=True, data=data, metadata=metadata)


# 额度相关模型
class CreditOperationResponse(BaseModel):
    """额度变更响应"""
    customer_id: str
    previous_balance: str
    new_balance: str
    transaction_id: str
    timestamp: datetime

    @classmethod
    def from_result(cls, result: CreditOperationResult) -> "CreditOperationResponse":
        return cls(
            customer_id=result.customer_id,
            previous_balance=result.previous_balance.to_json(),
            new_balance=result.new_balance.to_json(),
            transaction_id=result.transaction_id,
            timestamp=result.timestamp,
        )


class BalanceResponse(BaseModel):
    """余额响应"""
    customer_id: str
    current_balance: str
    version: int
    last_updated: datetime

    @classmethod
    def from_view(cls, view: BalanceView) -> "BalanceResponse":
        return cls(
            customer_id=view.customer_id,
            current_balance=view.current_balance.to_json(),
            version=view.version,
            last_updated=view.last_updated,
        )


class CreditTransactionResponse(BaseModel):
    """流水记录"""
    id: str
    customer_id: str
    type: str
    amount: str
    balance_before: str
    balance_after: str
    reason: str
    related_purchase_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    created_by: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_domain(cls, tx: CreditTransaction) -> "CreditTransactionResponse":
        return cls(
            id=tx.id,
            customer_id=tx.customer_id.value,
            type=tx.type.value,
            amount=tx.amount.to_json(),
            balance_before=tx.balance_before.to_json(),
            balance_after=tx.balance_after.to_json(),
            reason=tx.reason,
            related_purchase_id=tx.related_purchase_id,
            metadata=tx.metadata,
            created_by=tx.created_by,
            created_at=tx.created_at,
        )


class TransactionHistoryResponse(BaseModel):
    """流水分页响应"""
    customer_id: str
    items: List[CreditTransactionResponse]
    total: int
    limit: int
    offset: int

    @classmethod
    def from_page(cls, page: TransactionPage) -> "TransactionHistoryResponse":
        return cls(
            customer_id=page.customer_id,
            items=[CreditTransactionResponse.from_domain(tx) for tx in page.items],
            total=page.total,
            limit=page.limit,
            offset=page.offset,
        )


# 采购相关模型
class PurchaseResponse(BaseModel):
    """采购单响应"""
    id: str
    customer_id: str
    product_id: str
    quantity: int
    unit_price: str
    total_amount: str
    refunded_amount: str
    remaining_amount: str
    status: str
    shipment_id: Optional[str] = None
    product_snapshot: Dict[str, Any]
    customer_snapshot: Dict[str, Any]
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, purchase: Purchase) -> "PurchaseResponse":
        return cls(
            id=purchase.id,
            customer_id=purchase.customer_id.value,
            product_id=purchase.product_id.value,
            quantity=purchase.quantity,
            unit_price=purchase.unit_price.to_json(),
            total_amount=purchase.total_amount.to_json(),
            refunded_amount=purchase.refunded_amount.to_json(),
            remaining_amount=purchase.get_remaining_amount().to_json(),
            status=purchase.status.value,
            shipment_id=purchase.shipment_id,
            product_snapshot=purchase.product_snapshot,
            customer_snapshot=purchase.customer_snapshot,
            created_by=purchase.created_by,
            created_at=purchase.created_at,
            updated_at=purchase.updated_at,
        )


class RefundResponse(BaseModel):
    """退款记录"""
    id: str
    purchase_id: str
    amount: str
    reason: Optional[str] = None
    refunded_by: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_domain(cls, refund: Refund) -> "RefundResponse":
        return cls(
            id=refund.id,
            purchase_id=refund.purchase_id,
            amount=refund.amount.to_json(),
            reason=refund.reason,
            refunded_by=refund.refunded_by,
            created_at=refund.created_at,
        )


class PurchaseDetailResponse(BaseModel):
    purchase: PurchaseResponse
    refunds: List[RefundResponse]

    @classmethod
    def from_detail(cls, detail: PurchaseDetail) -> "PurchaseDetailResponse":
        return cls(
            purchase=PurchaseResponse.from_domain(detail.purchase),
            refunds=[RefundResponse.from_domain(r) for r in detail.refunds],
        )


class PurchaseListResponse(BaseModel):
    """采购单分页响应"""
    items: List[PurchaseResponse]
    total: int
    limit: int
    offset: int
    total_pages: int

    @classmethod
    def from_page(cls, page: PurchasePage) -> "PurchaseListResponse":
        return cls(
            items=[PurchaseResponse.from_domain(p) for p in page.items],
            total=page.total,
            limit=page.limit,
            offset=page.offset,
            total_pages=page.total_pages,
        )


class RefundResultResponse(BaseModel):
    """退款结果"""
    refund_id: str
    purchase_id: str
    amount: str
    remaining_amount: str
    new_status: str
    credit_returned: str
    timestamp: datetime

    @classmethod
    def from_result(cls, result: RefundResult) -> "RefundResultResponse":
        return cls(
            refund_id=result.refund_id,
            purchase_id=result.purchase_id,
            amount=result.amount.to_json(),
            remaining_amount=result.remaining_amount.to_json(),
            new_status=result.new_status.value,
            credit_returned=result.credit_returned.to_json(),
            timestamp=result.timestamp,
        )


# 优惠码相关模型
class PromoCodeResponse(BaseModel):
    """优惠码响应"""
    id: str
    code: str
    type: str
    value: str
    min_purchase_amount: Optional[str] = None
    max_discount_amount: Optional[str] = None
    max_usage_count: Optional[int] = None
    current_usage_count: int
    valid_from: datetime
    valid_until: datetime
    status: str
    applicable_product_ids: Optional[List[str]] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, promo_code: PromoCode) -> "PromoCodeResponse":
        return cls(
            id=promo_code.id,
            code=promo_code.code,
            type=promo_code.type.value,
            value=str(promo_code.value),
            min_purchase_amount=_money(promo_code.min_purchase_amount),
            max_discount_amount=_money(promo_code.max_discount_amount),
            max_usage_count=promo_code.max_usage_count,
            current_usage_count=promo_code.current_usage_count,
            valid_from=promo_code.valid_from,
            valid_until=promo_code.valid_until,
            status=promo_code.status.value,
            applicable_product_ids=promo_code.applicable_product_ids,
            created_at=promo_code.created_at,
            updated_at=promo_code.updated_at,
        )


class PromoCodeValidationResponse(BaseModel):
    valid: bool
    code: Optional[str] = None
    discount_amount: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def from_validation(cls, validation: PromoCodeValidation) -> "PromoCodeValidationResponse":
        return cls(
            valid=validation.valid,
            code=validation.code,
            discount_amount=_money(validation.discount_amount),
            message=validation.message,
        )

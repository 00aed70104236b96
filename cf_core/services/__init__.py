"""
CreditFlow 核心服务模块
"""
from .base import BaseService
from .credit_service import CreditService, CreditOperationResult, BalanceView, TransactionPage
from .purchase_service import PurchaseService, PurchasePage, PurchaseDetail
from .refund_service import RefundService, RefundResult
from .promo_code_service import PromoCodeService, PromoCodeValidation

__all__ = [
    "BaseService",
    "CreditService",
    "CreditOperationResult",
    "BalanceView",
    "TransactionPage",
    "PurchaseService",
    "PurchasePage",
    "PurchaseDetail",
    "RefundService",
    "RefundResult",
    "PromoCodeService",
    "PromoCodeValidation",
]

"""
CreditFlow 领域层
"""

from .money import Money, quantize_money
from .identifiers import CustomerId, ProductId
from .credit import (
    CreditBalance,
    CreditTransaction,
    CreditTransactionType,
    CreditDomainService,
)
from .purchase import (
    Purchase,
    PurchaseStatus,
    Refund,
    RefundCheck,
    PurchaseDomainService,
)
from .promo_code import PromoCode, PromoCodeType, PromoCodeStatus

__all__ = [
    "Money",
    "quantize_money",
    "CustomerId",
    "ProductId",
    "CreditBalance",
    "CreditTransaction",
    "CreditTransactionType",
    "CreditDomainService",
    "Purchase",
    "PurchaseStatus",
    "Refund",
    "RefundCheck",
    "PurchaseDomainService",
    "PromoCode",
    "PromoCodeType",
    "PromoCodeStatus",
]

"""
CreditFlow 数据模型包
"""
from .base import Base, MoneyType
from .credit import CreditBalanceRecord, CreditTransactionRecord
from .purchase import PurchaseRecord, RefundRecord
from .promo_code import PromoCodeRecord

__all__ = [
    "Base",
    "MoneyType",
    "CreditBalanceRecord",
    "CreditTransactionRecord",
    "PurchaseRecord",
    "RefundRecord",
    "PromoCodeRecord",
]

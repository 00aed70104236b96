"""
CreditFlow 仓储层
"""
from .credit_repository import CreditRepository
from .purchase_repository import PurchaseRepository
from .promo_code_repository import PromoCodeRepository

__all__ = [
    "CreditRepository",
    "PurchaseRepository",
    "PromoCodeRepository",
]

"""
API 依赖注入

服务实例由应用工厂显式构造并挂在 app.state 上
"""
from fastapi import Request

from cf_core.database import DatabaseManager
from cf_core.services.credit_service import CreditService
from cf_core.services.promo_code_service import PromoCodeService
from cf_core.services.purchase_service import PurchaseService
from cf_core.services.refund_service import RefundService


def get_db_manager(request: Request) -> DatabaseManager:
    return request.app.state.db_manager


def get_credit_service(request: Request) -> CreditService:
    return request.app.state.credit_service


def get_purchase_service(request: Request) -> PurchaseService:
    return request.app.state.purchase_service


def get_refund_service(request: Request) -> RefundService:
    return request.app.state.refund_service


def get_promo_code_service(request: Request) -> PromoCodeService:
    return request.app.state.promo_code_service

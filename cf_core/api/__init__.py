"""
CreditFlow API 路由模块
"""

from fastapi import APIRouter

from .credit import router as credit_router
from .purchases import router as purchases_router
from .promo_codes import router as promo_codes_router
from .system import router as system_router

# 创建主路由器
api_router = APIRouter()

# 注册核心路由
api_router.include_router(credit_router)
api_router.include_router(purchases_router)
api_router.include_router(promo_codes_router)
api_router.include_router(system_router, tags=["System"])

__all__ = ["api_router"]

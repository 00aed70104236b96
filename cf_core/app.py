"""
CreditFlow FastAPI 主应用
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from cf_core.clients.base import CustomerLookup, ProductLookup, ShipmentGateway
from cf_core.clients.http import HttpCustomerClient, HttpProductClient, HttpShipmentClient
from cf_core.config import Settings, get_settings
from cf_core.database import DatabaseManager
from cf_core.middleware.logging import LoggingMiddleware
from cf_core.services.credit_service import CreditService
from cf_core.services.promo_code_service import PromoCodeService
from cf_core.services.purchase_service import PurchaseService
from cf_core.services.refund_service import RefundService
from cf_core.utils.errors import CreditFlowException
from cf_core.utils.logger import setup_logging, get_logger
from cf_core.api import api_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    db_manager: DatabaseManager = app.state.db_manager

    logger.info("Starting CreditFlow application", version=app.version)

    if not await db_manager.check_connection():
        logger.error("Database connection check failed")
        raise RuntimeError("Database connection failed")

    logger.info("CreditFlow application started successfully")

    yield  # 应用运行期间

    logger.info("Shutting down CreditFlow application")
    await db_manager.close()
    logger.info("CreditFlow application shutdown complete")


def _format_validation_errors(exc: RequestValidationError) -> list:
    errors = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        errors.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    return errors


def create_app(
    settings: Optional[Settings] = None,
    db_manager: Optional[DatabaseManager] = None,
    customer_client: Optional[CustomerLookup] = None,
    product_client: Optional[ProductLookup] = None,
    shipment_client: Optional[ShipmentGateway] = None,
    configure_logging: bool = True
) -> FastAPI:
    """
    创建 FastAPI 应用

    所有协作者在这里显式构造；测试可传入替身（数据库、外部服务客户端）
    """
    settings = settings or get_settings()

    if configure_logging:
        setup_logging(
            log_level=settings.log_level,
            log_format=settings.log_format,
            enable_pii_masking=settings.log_pii_masking,
        )

    db_manager = db_manager or DatabaseManager(settings)
    timeout = settings.external_api_timeout
    customer_client = customer_client or HttpCustomerClient(settings.customer_api_url, timeout)
    product_client = product_client or HttpProductClient(settings.product_api_url, timeout)
    shipment_client = shipment_client or HttpShipmentClient(settings.shipment_api_url, timeout)

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="CreditFlow credit ledger and purchase API",
        docs_url="/docs" if settings.api_debug else None,
        redoc_url="/redoc" if settings.api_debug else None,
        openapi_url="/openapi.json" if settings.api_debug else None,
        lifespan=lifespan,
    )

    # 显式装配
    app.state.settings = settings
    app.state.db_manager = db_manager
    app.state.credit_service = CreditService(db_manager)
    app.state.purchase_service = PurchaseService(
        db_manager,
        customers=customer_client,
        products=product_client,
        shipments=shipment_client,
    )
    app.state.refund_service = RefundService(db_manager)
    app.state.promo_code_service = PromoCodeService(db_manager)

    # 添加中间件
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.api_debug else ["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)

    # 添加路由
    app.include_router(api_router, prefix=settings.api_prefix)

    # 异常处理器
    @app.exception_handler(CreditFlowException)
    async def creditflow_exception_handler(request: Request, exc: CreditFlowException):
        """处理 CreditFlow 业务异常"""
        if exc.status >= 500:
            logger.error("Request failed", code=exc.code, detail=exc.detail, path=request.url.path)
        else:
            logger.warning("Request rejected", code=exc.code, detail=exc.detail, path=request.url.path)
        return exc.to_response(request)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """处理请求体/参数校验异常"""
        errors = _format_validation_errors(exc)
        logger.warning("Request validation failed", path=request.url.path, errors=errors)
        return JSONResponse(
            status_code=422,
            content={
                "ok": False,
                "error": {
                    "type": "about:blank",
                    "title": "Validation Error",
                    "status": 422,
                    "detail": "Request validation failed",
                    "code": "VALIDATION_ERROR",
                    "errors": errors,
                }
            }
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """处理 FastAPI HTTP 异常（如 404 路由不存在）"""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "ok": False,
                "error": {
                    "type": "about:blank",
                    "title": str(exc.detail),
                    "status": exc.status_code,
                    "detail": str(exc.detail),
                    "code": f"HTTP_{exc.status_code}"
                }
            }
        )

    @app.exception_handler(Exception)
    async def internal_server_error_handler(request: Request, exc: Exception):
        """处理未捕获的服务器错误（不泄露异常信息）"""
        logger.error("Unhandled server error", path=request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={
                "ok": False,
                "error": {
                    "type": "about:blank",
                    "title": "Internal Server Error",
                    "status": 500,
                    "detail": "An internal server error occurred",
                    "code": "INTERNAL_ERROR"
                }
            }
        )

    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "cf_core.app:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_debug,
        log_level=settings.log_level.lower(),
        access_log=False,  # 使用自定义日志中间件
    )

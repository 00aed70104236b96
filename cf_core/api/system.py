"""
系统 API 路由
"""
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from cf_core.database import DatabaseManager
from cf_core.domain.identifiers import utcnow
from cf_core.utils.logger import get_logger
from .deps import get_db_manager
from .models import ApiResponse

router = APIRouter()
logger = get_logger(__name__)


@router.get("/health", response_model=ApiResponse[dict])
async def health_check(
    request: Request,
    db_manager: DatabaseManager = Depends(get_db_manager)
):
    """健康检查（数据库连通性）"""
    database_ok = await db_manager.check_connection()
    payload = {
        "status": "healthy" if database_ok else "unhealthy",
        "database": "ok" if database_ok else "unavailable",
        "timestamp": utcnow().isoformat(),
        "version": request.app.version,
    }

    if not database_ok:
        logger.warning("Health check failed: database unavailable")
        return JSONResponse(status_code=503, content={"ok": False, "data": payload})

    return ApiResponse.success(payload)

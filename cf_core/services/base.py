"""
基础服务类
"""
from typing import Awaitable, Callable, List, Optional, TypeVar

from cf_core.database import DatabaseManager
from cf_core.domain.money import Money
from cf_core.utils.errors import CreditFlowException, DomainRuleError, InternalServerError
from cf_core.utils.logger import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


class BaseService:
    """
    基础服务类

    工作单元边界：
    - execute_with_transaction: 操作在一个事务中执行，任何异常都会回滚整个单元
    - execute_with_session: 只读操作
    """

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager
        self.logger = get_logger(self.__class__.__name__)

    async def execute_with_transaction(
        self,
        operation: Callable[..., Awaitable[T]],
        *args,
        operation_name: Optional[str] = None,
        **kwargs
    ) -> T:
        """在事务中执行操作"""
        try:
            async with self.db_manager.get_transaction() as session:
                return await operation(session, *args, **kwargs)
        except CreditFlowException:
            raise
        except Exception:
            self.logger.error(
                "Transaction operation failed",
                operation=operation_name or getattr(operation, "__name__", "unknown"),
                exc_info=True,
            )
            raise InternalServerError(
                code="TRANSACTION_FAILED",
                detail="Database transaction failed"
            )

    async def execute_with_session(
        self,
        operation: Callable[..., Awaitable[T]],
        *args,
        operation_name: Optional[str] = None,
        **kwargs
    ) -> T:
        """使用数据库会话执行操作"""
        try:
            async with self.db_manager.get_session() as session:
                return await operation(session, *args, **kwargs)
        except CreditFlowException:
            raise
        except Exception:
            self.logger.error(
                "Session operation failed",
                operation=operation_name or getattr(operation, "__name__", "unknown"),
                exc_info=True,
            )
            raise InternalServerError(
                code="SESSION_OPERATION_FAILED",
                detail="Database operation failed"
            )


def total_pages(total: int, limit: int) -> int:
    """分页总页数"""
    if limit <= 0:
        return 0
    return (total + limit - 1) // limit


def parse_identifier(id_class, value, label: str, errors: List[str]):
    """解析 UUID 标识，失败时记录错误并返回 None"""
    if value is None or not str(value).strip():
        errors.append(f"{label} is required")
        return None
    try:
        return id_class.from_(str(value))
    except DomainRuleError:
        errors.append(f"{label} must be a valid UUID")
        return None


def parse_positive_money(value, label: str, errors: List[str]) -> Optional[Money]:
    """解析正金额，失败时记录错误并返回 None"""
    if value is None:
        errors.append(f"{label} is required")
        return None
    try:
        money = Money.from_(value)
    except (DomainRuleError, TypeError):
        errors.append(f"{label} must be a non-negative decimal amount")
        return None
    if money.is_zero():
        errors.append(f"{label} must be greater than 0")
        return None
    return money


def validate_pagination(limit: int, offset: int, errors: List[str]) -> None:
    if limit <= 0:
        errors.append("Limit must be greater than 0")
    if offset < 0:
        errors.append("Offset must be 0 or greater")

# mypy: disable-error-code="no-untyped-def, assignment, var-annotated"
"""
CreditFlow 日志系统
- JSON 格式输出
- 必需字段：ts, level, trace_id, customer_id, action, err
- PII 自动脱敏（客户快照中的邮箱与街道地址）
"""
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Optional

import structlog
from structlog.processors import JSONRenderer, TimeStamper, add_log_level

# Context variables for request tracking
trace_id_var: ContextVar[Optional[str]] = ContextVar("trace_id", default=None)
customer_id_var: ContextVar[Optional[str]] = ContextVar("customer_id", default=None)


class PIIMaskingProcessor:
    """客户快照脱敏：邮箱保留首字母和域名，地址行整体替换"""

    MASKED_KEYS = {"line1", "line2", "postalCode", "postal_code"}

    def __call__(self, logger, method_name, event_dict):
        return self._mask(event_dict)

    def _mask(self, value: Any) -> Any:
        if isinstance(value, dict):
            return {key: self._mask_field(key, item) for key, item in value.items()}
        if isinstance(value, list):
            return [self._mask(item) for item in value]
        return value

    def _mask_field(self, key: str, value: Any) -> Any:
        if key in self.MASKED_KEYS and value:
            return "[MASKED]"
        if key == "email" and isinstance(value, str):
            return _mask_email(value)
        return self._mask(value)


def _mask_email(email: str) -> str:
    local, sep, domain = email.partition("@")
    if not sep or not local:
        return "[MASKED]"
    return f"{local[0]}***@{domain}"


class CreditFlowProcessor:
    """添加 CreditFlow 必需字段"""

    def __call__(self, logger, method_name, event_dict):
        # 添加时间戳
        event_dict["ts"] = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

        # 添加上下文变量
        if trace_id := trace_id_var.get():
            event_dict.setdefault("trace_id", trace_id)

        if customer_id := customer_id_var.get():
            event_dict.setdefault("customer_id", customer_id)

        # 重命名标准字段
        if "event" in event_dict:
            event_dict["action"] = event_dict.pop("event")

        if "exception" in event_dict:
            event_dict["err"] = str(event_dict.pop("exception"))

        return event_dict


def setup_logging(log_level: str = "INFO", log_format: str = "json", enable_pii_masking: bool = True) -> None:
    """配置日志系统

    确保所有模块的日志都能正确输出到 stdout，包括：
    - structlog 的日志（JSON 格式）
    - 标准 logging 的日志（所有子模块）
    """
    level = getattr(logging, log_level.upper())

    # 配置 structlog 处理器链
    processors = [
        TimeStamper(fmt="iso"),
        add_log_level,
        structlog.processors.format_exc_info,
        CreditFlowProcessor(),
    ]

    if enable_pii_masking:
        processors.append(PIIMaskingProcessor())

    # 根据格式选择渲染器
    if log_format == "json":
        processors.append(JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # 配置标准库日志
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # 移除已有的 handlers，避免重复
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(level)

    # structlog 已渲染好消息，标准 logging 只输出消息本身
    stdout_handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(stdout_handler)

    module_logger = logging.getLogger("cf_core")
    module_logger.setLevel(level)
    module_logger.propagate = True

    # 降低第三方库的日志级别，避免噪音
    noisy_loggers = [
        "httpx",
        "httpcore",
        "asyncio",
        "uvicorn.access",
        "sqlalchemy.engine",
        "aiosqlite",
    ]
    for logger_name in noisy_loggers:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    """获取日志记录器"""
    return structlog.get_logger(name)


# 日志上下文管理器
class LogContext:
    """日志上下文管理器，用于设置请求/业务级别的上下文"""

    def __init__(self, trace_id: Optional[str] = None, customer_id: Optional[str] = None):
        self.trace_id = trace_id
        self.customer_id = customer_id
        self._tokens = []

    def __enter__(self):
        if self.trace_id:
            self._tokens.append(trace_id_var.set(self.trace_id))
        if self.customer_id:
            self._tokens.append(customer_id_var.set(self.customer_id))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        for token in reversed(self._tokens):
            token.var.reset(token)
        self._tokens = []

"""
标识符值对象与通用时间函数
"""
import uuid
from datetime import datetime, timezone

from cf_core.utils.errors import DomainRuleError


class _UuidIdentifier:
    """UUID 包装基类，按值比较"""

    __slots__ = ("_value",)
    label = "ID"

    def __init__(self, value: str):
        if value is None or not str(value).strip():
            raise DomainRuleError(f"{self.label} cannot be empty")
        try:
            parsed = uuid.UUID(str(value).strip())
        except ValueError:
            raise DomainRuleError(f"{self.label} must be a valid UUID")
        self._value = str(parsed)

    @classmethod
    def from_(cls, value):
        if isinstance(value, cls):
            return value
        return cls(str(value))

    @classmethod
    def is_valid(cls, value: str) -> bool:
        try:
            uuid.UUID(str(value))
            return True
        except (TypeError, ValueError):
            return False

    @property
    def value(self) -> str:
        return self._value

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._value == other._value

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._value))

    def __repr__(self) -> str:
        return f"{type(self).__name__}('{self._value}')"

    def __str__(self) -> str:
        return self._value


class CustomerId(_UuidIdentifier):
    label = "Customer ID"


class ProductId(_UuidIdentifier):
    label = "Product ID"


def new_id() -> str:
    """生成新的实体 ID"""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """返回UTC时区的当前时间"""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """数据库（如 SQLite）返回的无时区时间按 UTC 处理"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value

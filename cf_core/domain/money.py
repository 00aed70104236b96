"""
金额值对象
遵循约束：Decimal 精确计算、保留两位小数、禁止负数、禁止浮点
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from functools import total_ordering
from typing import Union

from cf_core.utils.errors import DomainRuleError

CENTS = Decimal("0.01")

AmountLike = Union["Money", Decimal, int, str]


def quantize_money(value: Decimal) -> Decimal:
    """统一的金额舍入规则：两位小数，四舍五入（远离零）"""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def to_decimal(value: AmountLike) -> Decimal:
    """转换为 Decimal，拒绝 float"""
    if isinstance(value, Money):
        return value.amount
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError("Monetary values must not be floats; pass Decimal, int or str")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise DomainRuleError(f"Invalid money amount: {value!r}")


@total_ordering
class Money:
    """不可变的非负金额"""

    __slots__ = ("_amount",)

    def __init__(self, amount: AmountLike = 0):
        decimal = to_decimal(amount)
        if not decimal.is_finite():
            raise DomainRuleError(f"Invalid money amount: {amount!r}")
        if decimal < 0:
            raise DomainRuleError("Money amount cannot be negative")
        # -0 归一为 0.00
        self._amount = quantize_money(decimal) if decimal else Decimal("0.00")

    @classmethod
    def from_(cls, amount: AmountLike) -> "Money":
        if isinstance(amount, Money):
            return amount
        return cls(amount)

    @classmethod
    def zero(cls) -> "Money":
        return cls(0)

    @property
    def amount(self) -> Decimal:
        return self._amount

    def add(self, other: "Money") -> "Money":
        return Money(self._amount + other._amount)

    def subtract(self, other: "Money") -> "Money":
        result = self._amount - other._amount
        if result < 0:
            raise DomainRuleError("Cannot subtract: result would be negative")
        return Money(result)

    def multiply(self, quantity: int) -> "Money":
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise TypeError("Money can only be multiplied by an integer quantity")
        return Money(self._amount * quantity)

    def is_zero(self) -> bool:
        return self._amount == 0

    def __add__(self, other: "Money") -> "Money":
        return self.add(other)

    def __sub__(self, other: "Money") -> "Money":
        return self.subtract(other)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        return self._amount == other._amount

    def __lt__(self, other: "Money") -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        return self._amount < other._amount

    def __hash__(self) -> int:
        return hash(self._amount)

    def __repr__(self) -> str:
        return f"Money('{self._amount}')"

    def __str__(self) -> str:
        return f"${self._amount:.2f}"

    def to_json(self) -> str:
        return f"{self._amount:.2f}"

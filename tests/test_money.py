"""
Money 值对象测试
"""
from decimal import Decimal

import pytest

from cf_core.domain.money import Money, quantize_money
from cf_core.utils.errors import DomainRuleError


class TestMoney:
    """金额值对象"""

    def test_rounds_half_up_to_cents(self):
        assert Money("10.005").amount == Decimal("10.01")
        assert Money("10.004").amount == Decimal("10.00")
        assert quantize_money(Decimal("2.675")) == Decimal("2.68")

    def test_accepts_int_str_and_decimal(self):
        assert Money(5) == Money("5.00") == Money(Decimal("5"))

    def test_rejects_float(self):
        with pytest.raises(TypeError):
            Money(0.1)

    def test_rejects_negative(self):
        with pytest.raises(DomainRuleError, match="cannot be negative"):
            Money("-0.01")

    def test_rejects_garbage(self):
        with pytest.raises(DomainRuleError):
            Money("ten dollars")

    def test_exact_addition(self):
        total = Money("0.10")
        for _ in range(9):
            total = total + Money("0.10")
        assert total == Money("1.00")

    def test_subtract_would_be_negative(self):
        with pytest.raises(DomainRuleError, match="would be negative"):
            Money("5.00").subtract(Money("5.01"))

    def test_subtract_to_zero(self):
        assert Money("5.00").subtract(Money("5.00")).is_zero()

    def test_multiply_by_quantity(self):
        assert Money("19.99").multiply(3) == Money("59.97")

    def test_multiply_requires_integer(self):
        with pytest.raises(TypeError):
            Money("1.00").multiply(1.5)

    def test_ordering(self):
        assert Money("1.00") < Money("1.01")
        assert Money("2.00") >= Money("2")
        assert max(Money("3"), Money("7"), Money("5")) == Money("7")

    def test_formatting(self):
        money = Money("1234.5")
        assert str(money) == "$1234.50"
        assert money.to_json() == "1234.50"

    def test_from_returns_same_instance_for_money(self):
        money = Money("3.00")
        assert Money.from_(money) is money

    def test_hashable_by_value(self):
        assert len({Money("1"), Money("1.00"), Money("2")}) == 2

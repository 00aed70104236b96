"""
额度领域模型测试
"""
from decimal import Decimal

import pytest

from cf_core.domain.credit import (
    CreditBalance,
    CreditDomainService,
    CreditTransaction,
    CreditTransactionType,
)
from cf_core.domain.identifiers import CustomerId
from cf_core.domain.money import Money
from cf_core.utils.errors import DomainRuleError, InsufficientCreditError

CUSTOMER = CustomerId("550e8400-e29b-41d4-a716-446655440001")


def make_balance(amount: str = "0") -> CreditBalance:
    return CreditBalance.create(CUSTOMER, Money(amount))


class TestIdentifiers:

    def test_equality_by_value(self):
        assert CustomerId("550E8400-E29B-41D4-A716-446655440001") == CUSTOMER

    @pytest.mark.parametrize("value", ["", "   ", "not-a-uuid"])
    def test_invalid_values(self, value):
        with pytest.raises(DomainRuleError):
            CustomerId(value)


class TestCreditBalance:

    def test_create_starts_at_zero_version_zero(self):
        balance = CreditBalance.create(CUSTOMER)
        assert balance.current_balance.is_zero()
        assert balance.version == 0

    def test_credit_increments_version(self):
        balance = make_balance()
        balance.credit(Money("10.00"))
        assert balance.current_balance == Money("10.00")
        assert balance.version == 1

    def test_debit_insufficient_leaves_state_untouched(self):
        balance = make_balance("5.00")
        with pytest.raises(InsufficientCreditError):
            balance.debit(Money("5.01"))
        assert balance.current_balance == Money("5.00")
        assert balance.version == 0

    def test_debit_exact_balance(self):
        balance = make_balance("5.00")
        balance.debit(Money("5.00"))
        assert balance.current_balance.is_zero()
        assert balance.version == 1


class TestCreditTransaction:

    def test_reason_required(self):
        with pytest.raises(DomainRuleError, match="reason is required"):
            CreditTransaction.create(
                customer_id=CUSTOMER,
                type=CreditTransactionType.GRANT,
                amount=Money("1"),
                balance_before=Money("0"),
                balance_after=Money("1"),
                reason="  ",
            )

    def test_link_to_purchase_once(self):
        _, tx = CreditDomainService.execute_operation(
            make_balance("10"), CreditTransactionType.DEDUCT, Money("1"), "Purchase"
        )
        tx.link_to_purchase("p-1")
        tx.link_to_purchase("p-1")
        assert tx.related_purchase_id == "p-1"

        with pytest.raises(DomainRuleError, match="already linked"):
            tx.link_to_purchase("p-2")


class TestCreditDomainService:

    @pytest.mark.parametrize("type,expected", [
        (CreditTransactionType.GRANT, "15.00"),
        (CreditTransactionType.REFUND, "15.00"),
        (CreditTransactionType.DEDUCT, "5.00"),
    ])
    def test_ledger_arithmetic(self, type, expected):
        balance, tx = CreditDomainService.execute_operation(
            make_balance("10.00"), type, Money("5.00"), "test"
        )
        assert balance.current_balance == Money(expected)
        assert tx.balance_before == Money("10.00")
        assert tx.balance_after == balance.current_balance
        assert tx.type == type
        assert tx.amount == Money("5.00")

    def test_empty_reason_fails_before_mutation(self):
        balance = make_balance("10.00")
        with pytest.raises(DomainRuleError):
            CreditDomainService.execute_operation(
                balance, CreditTransactionType.GRANT, Money("1"), ""
            )
        assert balance.current_balance == Money("10.00")
        assert balance.version == 0

    def test_deduct_insufficient(self):
        with pytest.raises(InsufficientCreditError):
            CreditDomainService.execute_operation(
                make_balance("1.00"), CreditTransactionType.DEDUCT, Money("2.00"), "x"
            )

    def test_metadata_and_creator_recorded(self):
        _, tx = CreditDomainService.execute_operation(
            make_balance(),
            CreditTransactionType.GRANT,
            Money("1"),
            "bonus",
            metadata={"campaign": "spring"},
            created_by="admin",
        )
        assert tx.metadata == {"campaign": "spring"}
        assert tx.created_by == "admin"

    def test_can_afford_purchase(self):
        balance = make_balance("10.00")
        assert CreditDomainService.can_afford_purchase(balance, Money("10.00"))
        assert not CreditDomainService.can_afford_purchase(balance, Money("10.01"))

    def test_usage_percentage(self):
        assert CreditDomainService.calculate_usage_percentage(
            make_balance("200.00"), Money("50.00")
        ) == Decimal("25")
        assert CreditDomainService.calculate_usage_percentage(
            make_balance(), Money("50.00")
        ) == Decimal("0")

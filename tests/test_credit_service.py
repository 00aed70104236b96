"""
额度服务测试
"""
from decimal import Decimal

import pytest

from cf_core.domain.credit import CreditTransactionType
from cf_core.domain.money import Money
from cf_core.utils.errors import InsufficientCreditError, ValidationError
from conftest import CUSTOMER_ID, OTHER_CUSTOMER_ID


class TestGrantCredit:
    """发放额度"""

    async def test_grant_creates_balance_lazily(self, credit_service):
        result = await credit_service.grant_credit(CUSTOMER_ID, Decimal("100.00"), "Initial grant")

        assert result.customer_id == CUSTOMER_ID
        assert result.previous_balance == Money.zero()
        assert result.new_balance == Money("100.00")
        assert result.transaction_id

        balance = await credit_service.get_balance(CUSTOMER_ID)
        assert balance.current_balance == Money("100.00")
        assert balance.version == 1

    async def test_grants_accumulate(self, credit_service):
        await credit_service.grant_credit(CUSTOMER_ID, "10.10", "first")
        result = await credit_service.grant_credit(CUSTOMER_ID, "0.20", "second")

        assert result.previous_balance == Money("10.10")
        assert result.new_balance == Money("10.30")

    async def test_grant_records_transaction(self, credit_service):
        await credit_service.grant_credit(
            CUSTOMER_ID,
            Decimal("25"),
            "Promotional credit",
            created_by="admin",
            metadata={"campaign": "launch"},
        )

        page = await credit_service.get_transaction_history(CUSTOMER_ID)
        assert page.total == 1
        tx = page.items[0]
        assert tx.type == CreditTransactionType.GRANT
        assert tx.amount == Money("25.00")
        assert tx.balance_before == Money.zero()
        assert tx.balance_after == Money("25.00")
        assert tx.reason == "Promotional credit"
        assert tx.created_by == "admin"
        assert tx.metadata == {"campaign": "launch"}
        assert tx.related_purchase_id is None

    @pytest.mark.parametrize("customer_id,amount,reason,expected", [
        ("not-a-uuid", "10", "ok", "Customer ID must be a valid UUID"),
        ("", "10", "ok", "Customer ID is required"),
        (CUSTOMER_ID, "0", "ok", "Amount must be greater than 0"),
        (CUSTOMER_ID, "-5", "ok", "Amount must be a non-negative decimal amount"),
        (CUSTOMER_ID, None, "ok", "Amount is required"),
        (CUSTOMER_ID, "10", "  ", "Reason is required"),
    ])
    async def test_validation(self, credit_service, customer_id, amount, reason, expected):
        with pytest.raises(ValidationError) as exc_info:
            await credit_service.grant_credit(customer_id, amount, reason)
        assert expected in exc_info.value.errors

    async def test_validation_collects_all_errors(self, credit_service):
        with pytest.raises(ValidationError) as exc_info:
            await credit_service.grant_credit("bad", "0", "")
        assert len(exc_info.value.errors) == 3

    async def test_float_amount_rejected(self, credit_service):
        with pytest.raises(ValidationError):
            await credit_service.grant_credit(CUSTOMER_ID, 10.5, "float")


class TestDeductCredit:
    """扣减额度"""

    async def test_deduct(self, credit_service):
        await credit_service.grant_credit(CUSTOMER_ID, "50.00", "grant")
        result = await credit_service.deduct_credit(CUSTOMER_ID, "20.00", "manual adjustment")

        assert result.previous_balance == Money("50.00")
        assert result.new_balance == Money("30.00")

    async def test_deduct_entire_balance(self, credit_service):
        await credit_service.grant_credit(CUSTOMER_ID, "50.00", "grant")
        result = await credit_service.deduct_credit(CUSTOMER_ID, "50.00", "all")
        assert result.new_balance.is_zero()

    async def test_insufficient_leaves_no_trace(self, credit_service):
        await credit_service.grant_credit(CUSTOMER_ID, "10.00", "grant")

        with pytest.raises(InsufficientCreditError) as exc_info:
            await credit_service.deduct_credit(CUSTOMER_ID, "10.01", "too much")
        assert exc_info.value.status == 400

        balance = await credit_service.get_balance(CUSTOMER_ID)
        assert balance.current_balance == Money("10.00")
        assert balance.version == 1

        page = await credit_service.get_transaction_history(CUSTOMER_ID)
        assert page.total == 1

    async def test_deduct_unknown_customer_is_insufficient(self, credit_service):
        with pytest.raises(InsufficientCreditError):
            await credit_service.deduct_credit(OTHER_CUSTOMER_ID, "1.00", "nothing there")


class TestBalanceAndHistory:

    async def test_get_balance_creates_zero_balance(self, credit_service):
        balance = await credit_service.get_balance(OTHER_CUSTOMER_ID)
        assert balance.customer_id == OTHER_CUSTOMER_ID
        assert balance.current_balance.is_zero()
        assert balance.version == 0

        # 再次查询返回同一余额
        again = await credit_service.get_balance(OTHER_CUSTOMER_ID)
        assert again.version == 0

    async def test_get_balance_invalid_id(self, credit_service):
        with pytest.raises(ValidationError):
            await credit_service.get_balance("nope")

    async def test_history_newest_first_with_pagination(self, credit_service):
        for i in range(1, 6):
            await credit_service.grant_credit(CUSTOMER_ID, str(i), f"grant {i}")

        first = await credit_service.get_transaction_history(CUSTOMER_ID, limit=2, offset=0)
        assert first.total == 5
        assert [tx.reason for tx in first.items] == ["grant 5", "grant 4"]

        last = await credit_service.get_transaction_history(CUSTOMER_ID, limit=2, offset=4)
        assert [tx.reason for tx in last.items] == ["grant 1"]

    async def test_history_is_scoped_to_customer(self, credit_service):
        await credit_service.grant_credit(CUSTOMER_ID, "1", "mine")
        page = await credit_service.get_transaction_history(OTHER_CUSTOMER_ID)
        assert page.total == 0
        assert page.items == []

    async def test_history_ledger_is_consistent(self, credit_service):
        await credit_service.grant_credit(CUSTOMER_ID, "30", "grant")
        await credit_service.deduct_credit(CUSTOMER_ID, "12.34", "deduct")
        await credit_service.grant_credit(CUSTOMER_ID, "0.34", "grant again")

        page = await credit_service.get_transaction_history(CUSTOMER_ID)
        chronological = list(reversed(page.items))
        for earlier, later in zip(chronological, chronological[1:]):
            assert earlier.balance_after == later.balance_before

        balance = await credit_service.get_balance(CUSTOMER_ID)
        assert chronological[-1].balance_after == balance.current_balance == Money("18.00")

    @pytest.mark.parametrize("limit,offset", [(0, 0), (10, -1)])
    async def test_history_pagination_validation(self, credit_service, limit, offset):
        with pytest.raises(ValidationError):
            await credit_service.get_transaction_history(CUSTOMER_ID, limit=limit, offset=offset)

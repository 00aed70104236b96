"""
退款服务测试
"""
import pytest
from sqlalchemy import delete, update

from cf_core.domain.credit import CreditTransactionType
from cf_core.domain.money import Money
from cf_core.domain.purchase import PurchaseStatus
from cf_core.models.credit import CreditBalanceRecord
from cf_core.repositories.credit_repository import CreditRepository
from cf_core.utils.errors import ConcurrencyError, NotFoundError, ValidationError
from conftest import CUSTOMER_ID, MISSING_ID, PRODUCT_ID


@pytest.fixture
async def purchase(credit_service, purchase_service):
    """余额 100，购买 3 × 20 = 60，剩余 40"""
    await credit_service.grant_credit(CUSTOMER_ID, "100.00", "Initial grant")
    return await purchase_service.create_purchase(CUSTOMER_ID, PRODUCT_ID, 3)


class TestRefundPurchase:

    async def test_partial_refund(self, refund_service, credit_service, purchase):
        result = await refund_service.refund_purchase(
            purchase.id, "20.00", reason="Damaged item", refunded_by="support"
        )

        assert result.purchase_id == purchase.id
        assert result.amount == Money("20.00")
        assert result.credit_returned == Money("20.00")
        assert result.remaining_amount == Money("40.00")
        assert result.new_status == PurchaseStatus.PARTIALLY_REFUNDED

        balance = await credit_service.get_balance(CUSTOMER_ID)
        assert balance.current_balance == Money("60.00")

    async def test_refund_transaction(self, refund_service, credit_service, purchase):
        result = await refund_service.refund_purchase(
            purchase.id, "20.00", reason="Damaged item", refunded_by="support"
        )

        history = await credit_service.get_transaction_history(CUSTOMER_ID)
        refund_tx = history.items[0]
        assert refund_tx.type == CreditTransactionType.REFUND
        assert refund_tx.related_purchase_id == purchase.id
        assert refund_tx.reason == f"Refund for purchase {purchase.id}: Damaged item"
        assert refund_tx.metadata == {"refundId": result.refund_id, "refundedBy": "support"}
        assert refund_tx.created_by == "support"
        assert refund_tx.balance_before == Money("40.00")
        assert refund_tx.balance_after == Money("60.00")

    async def test_refund_without_reason(self, refund_service, credit_service, purchase):
        await refund_service.refund_purchase(purchase.id, "5.00")

        history = await credit_service.get_transaction_history(CUSTOMER_ID)
        assert history.items[0].reason == f"Refund for purchase {purchase.id}"
        assert history.items[0].created_by == "system"

    async def test_refund_in_steps_to_full(self, refund_service, purchase_service, credit_service, purchase):
        await refund_service.refund_purchase(purchase.id, "20.00")
        result = await refund_service.refund_purchase(purchase.id, "40.00")

        assert result.new_status == PurchaseStatus.FULLY_REFUNDED
        assert result.remaining_amount.is_zero()

        detail = await purchase_service.get_purchase(purchase.id)
        assert detail.purchase.status == PurchaseStatus.FULLY_REFUNDED
        assert detail.purchase.refunded_amount == Money("60.00")
        assert [r.amount for r in detail.refunds] == [Money("20.00"), Money("40.00")]

        balance = await credit_service.get_balance(CUSTOMER_ID)
        assert balance.current_balance == Money("100.00")

    async def test_refund_fully_refunded_purchase(self, refund_service, purchase):
        await refund_service.refund_purchase(purchase.id, "60.00")

        with pytest.raises(ValidationError) as exc_info:
            await refund_service.refund_purchase(purchase.id, "0.01")
        assert exc_info.value.errors == ["Purchase is already fully refunded"]

    async def test_over_refund_is_rejected(self, refund_service, credit_service, purchase_service, purchase):
        await refund_service.refund_purchase(purchase.id, "50.00")

        with pytest.raises(ValidationError) as exc_info:
            await refund_service.refund_purchase(purchase.id, "10.01")
        assert exc_info.value.errors == [
            "Refund amount (10.01) exceeds remaining amount (10.00)"
        ]

        detail = await purchase_service.get_purchase(purchase.id)
        assert detail.purchase.refunded_amount == Money("50.00")
        assert len(detail.refunds) == 1

        balance = await credit_service.get_balance(CUSTOMER_ID)
        assert balance.current_balance == Money("90.00")

    async def test_purchase_not_found(self, refund_service):
        with pytest.raises(NotFoundError) as exc_info:
            await refund_service.refund_purchase(MISSING_ID, "1.00")
        assert exc_info.value.code == "PURCHASE_NOT_FOUND"

    @pytest.mark.parametrize("amount,expected", [
        ("0", "Refund amount must be greater than 0"),
        (None, "Refund amount is required"),
        ("-1", "Refund amount must be a non-negative decimal amount"),
    ])
    async def test_amount_validation(self, refund_service, purchase, amount, expected):
        with pytest.raises(ValidationError) as exc_info:
            await refund_service.refund_purchase(purchase.id, amount)
        assert expected in exc_info.value.errors

    async def test_purchase_id_required(self, refund_service):
        with pytest.raises(ValidationError) as exc_info:
            await refund_service.refund_purchase("  ", "1.00")
        assert "Purchase ID is required" in exc_info.value.errors



class TestRefundAtomicity:
    """退款记录、采购单更新与余额返还要么全部生效，要么全部回滚"""

    async def assert_untouched(self, credit_service, purchase_service, purchase):
        detail = await purchase_service.get_purchase(purchase.id)
        assert detail.purchase.status == PurchaseStatus.COMPLETED
        assert detail.purchase.refunded_amount.is_zero()
        assert detail.refunds == []

        history = await credit_service.get_transaction_history(CUSTOMER_ID)
        assert all(tx.type != CreditTransactionType.REFUND for tx in history.items)

    async def test_stale_balance_rolls_back_refund(
        self, monkeypatch, refund_service, credit_service, purchase_service, purchase
    ):
        read_balance = CreditRepository.find_by_customer_id

        async def read_then_bump_version(session, customer_id):
            balance = await read_balance(session, customer_id)
            await session.execute(
                update(CreditBalanceRecord)
                .where(CreditBalanceRecord.customer_id == customer_id.value)
                .values(version=CreditBalanceRecord.version + 1)
            )
            return balance

        monkeypatch.setattr(CreditRepository, "find_by_customer_id", staticmethod(read_then_bump_version))

        with pytest.raises(ConcurrencyError):
            await refund_service.refund_purchase(purchase.id, "20.00")

        monkeypatch.undo()
        await self.assert_untouched(credit_service, purchase_service, purchase)

        balance = await credit_service.get_balance(CUSTOMER_ID)
        assert balance.current_balance == Money("40.00")
        assert balance.version == 2

    async def test_missing_balance_rolls_back_refund(
        self, db_manager, refund_service, credit_service, purchase_service, purchase
    ):
        async with db_manager.get_transaction() as session:
            await session.execute(
                delete(CreditBalanceRecord).where(CreditBalanceRecord.customer_id == CUSTOMER_ID)
            )

        with pytest.raises(NotFoundError) as exc_info:
            await refund_service.refund_purchase(purchase.id, "20.00")
        assert exc_info.value.code == "CREDIT_BALANCE_NOT_FOUND"

        await self.assert_untouched(credit_service, purchase_service, purchase)

class TestPurchaseQueries:
    """采购单查询"""

    async def test_get_purchase_not_found(self, purchase_service):
        with pytest.raises(NotFoundError):
            await purchase_service.get_purchase(MISSING_ID)

    async def test_list_by_status(self, refund_service, purchase_service, purchase):
        await purchase_service.create_purchase(CUSTOMER_ID, PRODUCT_ID, 1)
        await refund_service.refund_purchase(purchase.id, "10.00")

        completed = await purchase_service.list_purchases(status="COMPLETED")
        assert completed.total == 1

        refunded = await purchase_service.list_purchases(
            customer_id=CUSTOMER_ID, status="PARTIALLY_REFUNDED"
        )
        assert [p.id for p in refunded.items] == [purchase.id]

    async def test_list_pagination(self, purchase_service, purchase):
        for _ in range(2):
            await purchase_service.create_purchase(CUSTOMER_ID, PRODUCT_ID, 1)

        page = await purchase_service.list_purchases(customer_id=CUSTOMER_ID, limit=2, offset=0)
        assert page.total == 3
        assert len(page.items) == 2
        assert page.total_pages == 2

    async def test_list_invalid_status(self, purchase_service):
        with pytest.raises(ValidationError):
            await purchase_service.list_purchases(status="SHIPPED")

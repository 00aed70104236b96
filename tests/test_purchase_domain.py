"""
采购领域模型测试（状态机与退款规则）
"""
from decimal import Decimal

import pytest

from cf_core.domain.identifiers import CustomerId, ProductId
from cf_core.domain.money import Money
from cf_core.domain.purchase import (
    Purchase,
    PurchaseDomainService,
    PurchaseStatus,
    Refund,
)
from cf_core.utils.errors import DomainRuleError


def make_purchase(quantity: int = 3, unit_price: str = "20.00") -> Purchase:
    return Purchase.create(
        customer_id=CustomerId("550e8400-e29b-41d4-a716-446655440001"),
        product_id=ProductId("660e8400-e29b-41d4-a716-446655440001"),
        quantity=quantity,
        unit_price=Money(unit_price),
        product_snapshot={"sku": "WIDGET-001"},
        customer_snapshot={"name": "John Doe"},
    )


def completed_purchase() -> Purchase:
    purchase = make_purchase()
    purchase.complete("SHIP-1")
    return purchase


class TestPurchase:

    def test_create_is_pending_with_total(self):
        purchase = make_purchase()
        assert purchase.status == PurchaseStatus.PENDING
        assert purchase.total_amount == Money("60.00")
        assert purchase.refunded_amount.is_zero()

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_quantity_must_be_positive(self, quantity):
        with pytest.raises(DomainRuleError, match="Quantity must be greater than 0"):
            make_purchase(quantity=quantity)

    def test_complete(self):
        purchase = completed_purchase()
        assert purchase.status == PurchaseStatus.COMPLETED
        assert purchase.shipment_id == "SHIP-1"

    def test_complete_twice_fails(self):
        purchase = completed_purchase()
        with pytest.raises(DomainRuleError, match="Only pending purchases can be completed"):
            purchase.complete("SHIP-2")

    def test_cancel_only_pending(self):
        purchase = make_purchase()
        purchase.cancel()
        assert purchase.status == PurchaseStatus.CANCELLED

        with pytest.raises(DomainRuleError):
            completed_purchase().cancel()

    def test_refund_pending_fails(self):
        with pytest.raises(DomainRuleError):
            make_purchase().refund(Money("1"))

    def test_partial_then_full_refund(self):
        purchase = completed_purchase()

        purchase.refund(Money("20.00"))
        assert purchase.status == PurchaseStatus.PARTIALLY_REFUNDED
        assert purchase.get_remaining_amount() == Money("40.00")
        assert purchase.is_refundable()

        purchase.refund(Money("40.00"))
        assert purchase.status == PurchaseStatus.FULLY_REFUNDED
        assert purchase.is_fully_refunded()
        assert not purchase.is_refundable()

        with pytest.raises(DomainRuleError):
            purchase.refund(Money("0.01"))

    def test_refund_exceeding_remaining(self):
        purchase = completed_purchase()
        with pytest.raises(DomainRuleError, match="cannot exceed"):
            purchase.refund(Money("60.01"))
        assert purchase.refunded_amount.is_zero()


class TestRefund:

    def test_zero_amount_rejected(self):
        with pytest.raises(DomainRuleError):
            Refund.create("p-1", Money.zero())

    def test_create(self):
        refund = Refund.create("p-1", Money("5"), reason="damaged", refunded_by="agent")
        assert refund.amount == Money("5.00")
        assert refund.reason == "damaged"


class TestPurchaseDomainService:

    def test_can_be_refunded_reasons(self):
        assert PurchaseDomainService.can_be_refunded(make_purchase()).reason == "Purchase is still pending"

        cancelled = make_purchase()
        cancelled.cancel()
        assert PurchaseDomainService.can_be_refunded(cancelled).reason == "Purchase was cancelled"

        refunded = completed_purchase()
        refunded.refund(Money("60.00"))
        assert PurchaseDomainService.can_be_refunded(refunded).reason == "Purchase is already fully refunded"

        check = PurchaseDomainService.can_be_refunded(completed_purchase())
        assert check
        assert check.reason is None

    def test_validate_refund_amount(self):
        purchase = completed_purchase()
        assert PurchaseDomainService.validate_refund_amount(purchase, Money("60.00"))

        check = PurchaseDomainService.validate_refund_amount(purchase, Money("60.01"))
        assert not check
        assert check.reason == "Refund amount (60.01) exceeds remaining amount (60.00)"

        check = PurchaseDomainService.validate_refund_amount(purchase, Money.zero())
        assert check.reason == "Refund amount must be greater than zero"

    def test_refund_percentage_and_full_refund(self):
        purchase = completed_purchase()
        assert PurchaseDomainService.calculate_refund_percentage(purchase, Money("15.00")) == Decimal("25")
        assert not PurchaseDomainService.is_full_refund(purchase, Money("15.00"))
        assert PurchaseDomainService.is_full_refund(purchase, Money("60.00"))

    def test_requires_approval(self):
        assert not PurchaseDomainService.requires_approval(Money("1000.00"))
        assert PurchaseDomainService.requires_approval(Money("1000.01"))
        assert PurchaseDomainService.requires_approval(Money("50.01"), threshold=Money("50"))

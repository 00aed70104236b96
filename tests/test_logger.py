"""
日志处理器测试
"""
from cf_core.utils.logger import (
    CreditFlowProcessor,
    LogContext,
    PIIMaskingProcessor,
    customer_id_var,
    trace_id_var,
)


class TestPIIMasking:

    def test_masks_email_and_address_lines(self):
        processor = PIIMaskingProcessor()
        event = processor(None, "info", {
            "event": "Purchase created",
            "customer_snapshot": {
                "email": "john.doe@example.com",
                "shippingAddress": {
                    "line1": "123 Main St",
                    "postalCode": "10001",
                    "city": "New York",
                },
            },
        })

        snapshot = event["customer_snapshot"]
        assert snapshot["email"] == "j***@example.com"
        assert snapshot["shippingAddress"]["line1"] == "[MASKED]"
        assert snapshot["shippingAddress"]["postalCode"] == "[MASKED]"
        assert snapshot["shippingAddress"]["city"] == "New York"

    def test_masks_snapshots_inside_lists(self):
        processor = PIIMaskingProcessor()
        event = processor(None, "info", {
            "event": "x",
            "quantity": 3,
            "customers": [{"email": "a@b.io"}, {"email": "not-an-email"}],
        })
        assert event["quantity"] == 3
        assert event["customers"] == [{"email": "a***@b.io"}, {"email": "[MASKED]"}]

    def test_free_text_is_not_rewritten(self):
        processor = PIIMaskingProcessor()
        event = processor(None, "info", {"event": "Purchase of Widget", "reason": "Damaged item"})
        assert event["event"] == "Purchase of Widget"
        assert event["reason"] == "Damaged item"


class TestLogContext:

    def test_context_fields_added_and_reset(self):
        processor = CreditFlowProcessor()

        with LogContext(trace_id="trace-1", customer_id="cust-1"):
            event = processor(None, "info", {"event": "Credit operation applied"})
            assert event["trace_id"] == "trace-1"
            assert event["customer_id"] == "cust-1"
            assert event["action"] == "Credit operation applied"
            assert event["ts"].endswith("Z")

        assert trace_id_var.get() is None
        assert customer_id_var.get() is None

    def test_nested_context_restores_outer(self):
        with LogContext(trace_id="outer"):
            with LogContext(customer_id="cust-2"):
                assert trace_id_var.get() == "outer"
                assert customer_id_var.get() == "cust-2"
            assert customer_id_var.get() is None
            assert trace_id_var.get() == "outer"

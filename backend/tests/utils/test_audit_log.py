import json
from datetime import date
from decimal import Decimal
from typing import Any, List

import pytest
from hotel_booking.models import BookingStatus
from hotel_booking.utils import audit_log
from hotel_booking.utils.request_id import set_request_id


def test_emit_audit_log_outputs_json(monkeypatch: pytest.MonkeyPatch) -> None:
    messages: List[str] = []

    class DummyLogger:
        def info(self, message: str) -> None:
            messages.append(message)

    monkeypatch.setattr(audit_log, "_audit_logger", DummyLogger())

    set_request_id("req-123")
    audit_log.emit_audit_log(
        action="booking.created",
        initiator="user",
        booking_id=1,
        room_id=2,
        hotel_id=3,
        user_id=4,
        start_date=date(2024, 1, 1),
        end_date=date(2024, 1, 4),
        total_price=Decimal("300"),
        status_to=BookingStatus.CONFIRMED,
    )
    set_request_id(None)

    assert len(messages) == 1
    payload = json.loads(messages[0])
    assert payload["action"] == "booking.created"
    assert payload["request_id"] == "req-123"
    assert payload["status_to"] == "confirmed"
    assert payload["start_date"] == "2024-01-01"
    assert payload["total_price"] == "300.00"
    assert "status_from" not in payload
    assert "timestamp" in payload


def test_emit_audit_log_raises_on_logger_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    class DummyLogger:
        def info(self, _: Any) -> None:
            raise ValueError("fail")

    monkeypatch.setattr(audit_log, "_audit_logger", DummyLogger())

    with pytest.raises(RuntimeError):
        audit_log.emit_audit_log(
            action="booking.cancelled",
            initiator="user",
            booking_id=1,
            room_id=2,
            status_from=BookingStatus.CONFIRMED,
            status_to=BookingStatus.CANCELLED,
        )

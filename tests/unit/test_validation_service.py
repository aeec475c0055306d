"""Tests for chat request validation."""

import pytest

from src.services.validation_service import ValidationService
from src.utils.retry import ChatValidationError


@pytest.fixture
def service():
    return ValidationService(message_max_length=40)


def test_valid_request_is_normalized(service):
    request = service.validate_chat_request(
        "  How did we do?  ", "code_reader_scanner", "2025-06-01", target_brand=" Topdon ", pathname="/brands"
    )

    assert request.message == "How did we do?"
    assert request.category_id == "code_reader_scanner"
    assert request.snapshot_date == "2025-06-01"
    assert request.target_brand == "Topdon"
    assert request.pathname == "/brands"


def test_blank_target_brand_is_dropped(service):
    request = service.validate_chat_request("Hi", "dmm", "2025-06-01", target_brand="   ")

    assert request.target_brand is None


@pytest.mark.parametrize("message,category,snapshot,expected,code", [
    (None, "dmm", "2025-06-01", "Missing message.", "MISSING_MESSAGE"),
    (123, "dmm", "2025-06-01", "Missing message.", "MISSING_MESSAGE"),
    ("   ", "dmm", "2025-06-01", "Message cannot be empty.", "EMPTY_MESSAGE"),
    ("x" * 41, "dmm", "2025-06-01", "Message too long. Limit is 40 characters.", "MESSAGE_TOO_LONG"),
    ("Hi", "", "2025-06-01", "Missing categoryId.", "MISSING_CATEGORY"),
    ("Hi", "dmm", None, "Missing snapshotDate.", "MISSING_SNAPSHOT"),
])
def test_first_failing_check_wins(service, message, category, snapshot, expected, code):
    with pytest.raises(ChatValidationError) as exc_info:
        service.validate_chat_request(message, category, snapshot)

    assert exc_info.value.message == expected
    assert exc_info.value.details["code"] == code


def test_long_message_wins_over_missing_category(service):
    with pytest.raises(ChatValidationError, match="Message too long"):
        service.validate_chat_request("x" * 50, None, None)

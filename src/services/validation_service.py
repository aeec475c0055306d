"""
Validation service for inbound chat requests.

Checks run in a fixed order and the first failure wins, so callers always
get one precise message.
"""

from typing import Any, Optional

from src.models.schemas import ChatRequest
from src.utils.logger import get_logger
from src.utils.retry import ChatValidationError

logger = get_logger(__name__)

DEFAULT_MESSAGE_MAX_LENGTH = 1200


class ValidationService:
    """Validates and normalizes chat requests before the core runs."""

    def __init__(self, message_max_length: int = DEFAULT_MESSAGE_MAX_LENGTH):
        self.message_max_length = message_max_length

    def _fail(self, code: str, message: str, **details: Any) -> ChatValidationError:
        logger.info("Chat request rejected", code=code, reason=message)
        return ChatValidationError(message, {"code": code, **details})

    def validate_chat_request(
        self,
        message: Any,
        category_id: Any,
        snapshot_date: Any,
        target_brand: Optional[Any] = None,
        pathname: Optional[str] = None,
    ) -> ChatRequest:
        """
        Validate raw request fields.

        Raises:
            ChatValidationError: With the first failing check's message.
        """
        if not message or not isinstance(message, str):
            raise self._fail("MISSING_MESSAGE", "Missing message.")
        if not message.strip():
            raise self._fail("EMPTY_MESSAGE", "Message cannot be empty.")
        if len(message) > self.message_max_length:
            raise self._fail(
                "MESSAGE_TOO_LONG",
                f"Message too long. Limit is {self.message_max_length} characters.",
                length=len(message),
            )
        if not category_id or not isinstance(category_id, str):
            raise self._fail("MISSING_CATEGORY", "Missing categoryId.")
        if not snapshot_date or not isinstance(snapshot_date, str):
            raise self._fail("MISSING_SNAPSHOT", "Missing snapshotDate.")

        brand = target_brand.strip() if isinstance(target_brand, str) and target_brand.strip() else None
        return ChatRequest(
            message=message.strip(),
            category_id=category_id,
            snapshot_date=snapshot_date,
            target_brand=brand,
            pathname=pathname,
        )


__all__ = [
    "DEFAULT_MESSAGE_MAX_LENGTH",
    "ValidationService",
]

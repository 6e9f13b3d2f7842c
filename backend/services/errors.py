# backend/services/errors.py
from enum import Enum
from typing import Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)

class ErrorCode(Enum):
    """Error codes surfaced by the cart and position stores."""

    INVALID_VALUE = "INVALID_VALUE"
    UNKNOWN_SECTION = "UNKNOWN_SECTION"
    MISSING_QUANTITY = "MISSING_QUANTITY"
    CART_LINE_NOT_FOUND = "CART_LINE_NOT_FOUND"
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    DELIVERY_FAILED = "DELIVERY_FAILED"

class StoreError(Exception):
    """Base exception for store and hub errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.code = code
        self.message = message
        self.context = context or {}
        super().__init__(self.message)

    def to_response(self) -> Dict[str, Any]:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "context": self.context,
            }
        }

class ValidationError(StoreError):
    """Caller supplied a structurally invalid value. The mutation is not applied."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.INVALID_VALUE, **context):
        super().__init__(code, message, context)

class NotFoundError(StoreError):
    """Referenced record does not exist."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.CART_LINE_NOT_FOUND, **context):
        super().__init__(code, message, context)

class TransportError(StoreError):
    """A send to a closed or broken channel. Never propagated out of the hub."""

    def __init__(self, session_id: str, reason: str):
        super().__init__(
            ErrorCode.DELIVERY_FAILED,
            f"Delivery to session {session_id} failed: {reason}",
            {"session_id": session_id},
        )

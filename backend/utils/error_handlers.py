# utils/error_handlers.py
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from services.errors import ErrorCode, StoreError

logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    ErrorCode.INVALID_VALUE: 400,
    ErrorCode.UNKNOWN_SECTION: 400,
    ErrorCode.MISSING_QUANTITY: 400,
    ErrorCode.CART_LINE_NOT_FOUND: 404,
    ErrorCode.PRODUCT_NOT_FOUND: 404,
    ErrorCode.DELIVERY_FAILED: 503,
}

def setup_error_handlers(app: FastAPI):
    """Translate store errors into JSON responses; the mutation was not applied."""

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        status_code = STATUS_BY_CODE.get(exc.code, 400)
        logger.info(
            "%s %s rejected: %s (%s)",
            request.method, request.url.path, exc.code.value, exc.message,
        )
        return JSONResponse(status_code=status_code, content=exc.to_response())

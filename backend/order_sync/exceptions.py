from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
import traceback
from typing import Optional
from .logger import logger


class OrderSyncBaseException(Exception):
    """Base exception for the order status sync service"""
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500):
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(self.message)


class StorageError(OrderSyncBaseException):
    """Raised when the key-value storage rejects a read or write"""
    def __init__(self, message: str = "Storage operation failed"):
        super().__init__(message, "STORAGE_ERROR", 502)


class OrderStatusNotFoundError(OrderSyncBaseException):
    """Raised when no synced status exists for an order, or for any order"""
    def __init__(self, order_id: Optional[str] = None):
        message = f"No synced status for order {order_id}" if order_id else "No order status has been synced yet"
        super().__init__(message, "ORDER_STATUS_NOT_FOUND", 404)


class UnmappedStatusError(OrderSyncBaseException):
    """Raised in strict mode for a status key outside the known vocabulary"""
    def __init__(self, status_key: str):
        super().__init__(
            f"Status '{status_key}' has no legacy mapping",
            "UNMAPPED_STATUS",
            422,
        )


class ConfigurationError(OrderSyncBaseException):
    """Raised when settings describe an unusable setup"""
    def __init__(self, message: str):
        super().__init__(message, "CONFIGURATION_ERROR", 500)


SERVICE_NAME = "order-sync"


def _request_context(request: Request) -> dict:
    return {
        "service": SERVICE_NAME,
        "request_method": request.method,
        "request_path": request.url.path,
        "order_id": request.path_params.get("orderId"),
    }


async def order_sync_exception_handler(request: Request, exc: OrderSyncBaseException):
    """Render order sync failures as {"error", "message", "status_code"}"""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        f"Order sync request failed: {exc.code} - {exc.message}",
        extra={
            **_request_context(request),
            "error_code": exc.code,
            "error_message": exc.message,
        }
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.code,
            "message": exc.message,
            "status_code": exc.status_code,
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    logger.warning(
        f"Order sync HTTP {exc.status_code}: {exc.detail}",
        extra={
            **_request_context(request),
            "http_status_code": exc.status_code,
            "http_detail": exc.detail,
        }
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "HTTP_ERROR",
            "message": exc.detail,
            "status_code": exc.status_code,
        }
    )


async def generic_exception_handler(request: Request, exc: Exception):
    """Last resort; storage backends should already raise StorageError"""
    logger.error(
        f"Unhandled order sync exception: {type(exc).__name__} - {str(exc)}",
        extra={
            **_request_context(request),
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
            "exc_traceback": traceback.format_exc(),
        }
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "INTERNAL_SERVER_ERROR",
            "message": "Order status service failed unexpectedly. Please try again later.",
        }
    )

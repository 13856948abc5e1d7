from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import SQLAlchemyError
import logging

from payment_ledger.utils.exceptions import (
    PaymentException,
    InvalidAmountError,
    IllegalTransitionError,
    UnknownPaymentTypeError,
    PaymentNotFoundError,
    DuplicatePaymentError,
    InvalidSignatureError
)

logger = logging.getLogger(__name__)


def _error_response(status_code: int, error: str, message: str, details: dict = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "details": details or {}
        }
    )

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors"""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "message": "Invalid request data",
            "details": jsonable_encoder(exc.errors())
        }
    )

async def invalid_amount_handler(request: Request, exc: InvalidAmountError):
    """Amount breaks the tariff or the withdrawal limits"""
    return _error_response(status.HTTP_400_BAD_REQUEST, "invalid_amount", str(exc))

async def unknown_type_handler(request: Request, exc: UnknownPaymentTypeError):
    return _error_response(
        status.HTTP_400_BAD_REQUEST, "unknown_type", str(exc),
        {"payment_type": str(exc.payment_type)}
    )

async def illegal_transition_handler(request: Request, exc: IllegalTransitionError):
    """Status change not allowed from the payment's current status"""
    return _error_response(
        status.HTTP_409_CONFLICT, "illegal_transition", str(exc),
        {"current": exc.current, "requested": exc.requested}
    )

async def payment_not_found_handler(request: Request, exc: PaymentNotFoundError):
    return _error_response(status.HTTP_404_NOT_FOUND, "payment_not_found", str(exc))

async def duplicate_payment_handler(request: Request, exc: DuplicatePaymentError):
    return _error_response(status.HTTP_409_CONFLICT, "duplicate_payment", str(exc))

async def invalid_signature_handler(request: Request, exc: InvalidSignatureError):
    return _error_response(status.HTTP_401_UNAUTHORIZED, "invalid_signature", str(exc))

async def payment_exception_handler(request: Request, exc: PaymentException):
    """Any other payment error"""
    return _error_response(status.HTTP_400_BAD_REQUEST, exc.code.lower(), str(exc))

async def value_error_handler(request: Request, exc: ValueError):
    return _error_response(status.HTTP_400_BAD_REQUEST, "bad_request", str(exc))

async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    """Handle database errors"""
    logger.exception("database error on %s %s", request.method, request.url.path)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "database_error", "A database error occurred"
    )

async def generic_exception_handler(request: Request, exc: Exception):
    """Handle all other exceptions"""
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_server_error", "An unexpected error occurred"
    )

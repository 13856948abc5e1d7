from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError

from payment_ledger.config import settings
from payment_ledger.database import init_db
from payment_ledger.logging_config import configure_logging
from payment_ledger.api.v1 import api_router
from payment_ledger.middleware.request_log import RequestLogMiddleware
from payment_ledger.middleware.error_handler import (
    validation_exception_handler,
    invalid_amount_handler,
    unknown_type_handler,
    illegal_transition_handler,
    payment_not_found_handler,
    duplicate_payment_handler,
    invalid_signature_handler,
    payment_exception_handler,
    value_error_handler,
    database_exception_handler,
    generic_exception_handler
)
from payment_ledger.utils.exceptions import (
    PaymentException,
    InvalidAmountError,
    IllegalTransitionError,
    UnknownPaymentTypeError,
    PaymentNotFoundError,
    DuplicatePaymentError,
    InvalidSignatureError
)

configure_logging(settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.APP_ENV == "development":
        init_db()
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(RequestLogMiddleware)

@app.get("/health")
def health_check():
    return {"status": "healthy"}

# Register exception handlers
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(InvalidAmountError, invalid_amount_handler)
app.add_exception_handler(UnknownPaymentTypeError, unknown_type_handler)
app.add_exception_handler(IllegalTransitionError, illegal_transition_handler)
app.add_exception_handler(PaymentNotFoundError, payment_not_found_handler)
app.add_exception_handler(DuplicatePaymentError, duplicate_payment_handler)
app.add_exception_handler(InvalidSignatureError, invalid_signature_handler)
app.add_exception_handler(PaymentException, payment_exception_handler)
app.add_exception_handler(ValueError, value_error_handler)
app.add_exception_handler(SQLAlchemyError, database_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Include API routes
app.include_router(api_router, prefix=settings.API_V1_PREFIX)

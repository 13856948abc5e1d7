class PaymentException(Exception):
    """Base exception for all payment-related errors"""
    def __init__(self, message: str, code: str = "PAYMENT_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)

class InvalidAmountError(PaymentException):
    def __init__(self, message: str = "Amount does not match the tariff for this payment type"):
        super().__init__(message, code="INVALID_AMOUNT")

class IllegalTransitionError(PaymentException):
    def __init__(self, current: str, requested: str, message: str = None):
        self.current = current
        self.requested = requested
        super().__init__(
            message or f"Cannot move payment from '{current}' to '{requested}'",
            code="ILLEGAL_TRANSITION",
        )

class UnknownPaymentTypeError(PaymentException):
    def __init__(self, payment_type):
        self.payment_type = payment_type
        super().__init__(f"Unknown payment type: {payment_type!r}", code="UNKNOWN_TYPE")

class PaymentNotFoundError(PaymentException):
    def __init__(self, message: str = "The requested payment was not found"):
        super().__init__(message, code="PAYMENT_NOT_FOUND")

class DuplicatePaymentError(PaymentException):
    def __init__(self, message: str = "Payment with this idempotency key already exists"):
        super().__init__(message, code="DUPLICATE_PAYMENT")

class InvalidSignatureError(PaymentException):
    def __init__(self, message: str = "Webhook signature verification failed"):
        super().__init__(message, code="INVALID_SIGNATURE")

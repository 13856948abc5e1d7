from enum import Enum


class PaymentType(str, Enum):
    BID_FEE = "bid_fee"
    BONUS_FUNDING = "bonus_funding"
    WITHDRAWAL_FEE = "withdrawal_fee"
    SUBSCRIPTION = "subscription"
    LISTING = "listing"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    CREATED = "created"


class PaymentProvider(str, Enum):
    RAZORPAY = "razorpay"
    CASHFREE = "cashfree"


# Whole INR amounts
PAYMENT_AMOUNTS = {
    "BID_FEE": 9,
    "BONUS_PER_CONTRIBUTOR": 200,
    "WITHDRAWAL_FEE": 20,
    "WITHDRAWAL_MAX": 10000,
    "WITHDRAWAL_MIN": 100,
    "SUBSCRIPTION": 299,
    "LISTING_FEE": 199,
}

MAX_BONUS_CONTRIBUTORS = 100

# Fixed-price types and the tariff key each one is charged at
FIXED_TARIFFS = {
    PaymentType.BID_FEE: "BID_FEE",
    PaymentType.WITHDRAWAL_FEE: "WITHDRAWAL_FEE",
    PaymentType.SUBSCRIPTION: "SUBSCRIPTION",
    PaymentType.LISTING: "LISTING_FEE",
}

ENTRY_STATUSES = frozenset({PaymentStatus.CREATED, PaymentStatus.PENDING})

TERMINAL_STATUSES = frozenset({
    PaymentStatus.PAID,
    PaymentStatus.FAILED,
    PaymentStatus.CANCELLED,
    PaymentStatus.REFUNDED,
})

STATUS_TRANSITIONS = {
    PaymentStatus.CREATED: frozenset({PaymentStatus.PENDING}),
    PaymentStatus.PENDING: frozenset({
        PaymentStatus.SUCCESS,
        PaymentStatus.FAILED,
        PaymentStatus.CANCELLED,
    }),
    PaymentStatus.SUCCESS: frozenset({PaymentStatus.PAID, PaymentStatus.REFUNDED}),
    PaymentStatus.PAID: frozenset(),
    PaymentStatus.FAILED: frozenset(),
    PaymentStatus.CANCELLED: frozenset(),
    PaymentStatus.REFUNDED: frozenset(),
}

# Statuses that count as money received
SETTLED_STATUSES = frozenset({PaymentStatus.SUCCESS, PaymentStatus.PAID})

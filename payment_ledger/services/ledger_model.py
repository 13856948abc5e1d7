"""
Payment ledger model.

Holds the fixed tariff rules and the status state machine for payment
records. Everything here is pure: no I/O, no database access. Callers that
persist records are responsible for reading the current status and writing
the new one atomically (see payment_service.update_payment_status).

    CREATED -> PENDING -> SUCCESS -> PAID
                       |          -> REFUNDED
                       -> FAILED
                       -> CANCELLED
"""
from typing import FrozenSet, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from payment_ledger.utils.constants import (
    ENTRY_STATUSES,
    FIXED_TARIFFS,
    MAX_BONUS_CONTRIBUTORS,
    PAYMENT_AMOUNTS,
    STATUS_TRANSITIONS,
    TERMINAL_STATUSES,
    PaymentStatus,
    PaymentType,
)
from payment_ledger.utils.exceptions import (
    IllegalTransitionError,
    InvalidAmountError,
    UnknownPaymentTypeError,
)


class PaymentRecord(BaseModel):
    payment_type: PaymentType
    subject_id: str = Field(..., min_length=1)
    amount: int = Field(..., gt=0)
    status: PaymentStatus = PaymentStatus.CREATED

    # Amount being withdrawn, for WITHDRAWAL_FEE records
    withdrawal_amount: Optional[int] = None
    # Number of contributors funded, for BONUS_FUNDING records
    contributors_count: Optional[int] = None

    model_config = ConfigDict(frozen=True)


def parse_payment_type(value: Union[str, PaymentType]) -> PaymentType:
    """Accept either the member name ("BID_FEE") or the wire value ("bid_fee")."""
    if isinstance(value, PaymentType):
        return value
    if isinstance(value, str):
        if value.upper() in PaymentType.__members__:
            return PaymentType[value.upper()]
        try:
            return PaymentType(value.lower())
        except ValueError:
            pass
    raise UnknownPaymentTypeError(value)


def parse_status(value: Union[str, PaymentStatus]) -> PaymentStatus:
    if isinstance(value, PaymentStatus):
        return value
    if isinstance(value, str):
        if value.upper() in PaymentStatus.__members__:
            return PaymentStatus[value.upper()]
        try:
            return PaymentStatus(value.lower())
        except ValueError:
            pass
    raise ValueError(f"Unknown payment status: {value!r}")


def tariff_for(payment_type: Union[str, PaymentType]) -> Optional[int]:
    """Fixed amount charged for a payment type, or None if it has no flat price."""
    key = FIXED_TARIFFS.get(parse_payment_type(payment_type))
    return PAYMENT_AMOUNTS[key] if key else None


def is_terminal(status: Union[str, PaymentStatus]) -> bool:
    return parse_status(status) in TERMINAL_STATUSES


def allowed_transitions(status: Union[str, PaymentStatus]) -> FrozenSet[PaymentStatus]:
    return STATUS_TRANSITIONS[parse_status(status)]


def validate_withdrawal_amount(amount: int) -> None:
    low = PAYMENT_AMOUNTS["WITHDRAWAL_MIN"]
    high = PAYMENT_AMOUNTS["WITHDRAWAL_MAX"]
    if not low <= amount <= high:
        raise InvalidAmountError(
            f"Withdrawal amount must be between {low} and {high}, got {amount}"
        )


def _check_whole_amount(amount) -> None:
    # bool is an int subclass but never a price
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmountError(f"Amount must be a whole number of rupees, got {amount!r}")


def bonus_amount(contributors: Optional[int]) -> int:
    if contributors is None or not 1 <= contributors <= MAX_BONUS_CONTRIBUTORS:
        raise InvalidAmountError(
            f"Bonus funding needs between 1 and {MAX_BONUS_CONTRIBUTORS} contributors"
        )
    return PAYMENT_AMOUNTS["BONUS_PER_CONTRIBUTOR"] * contributors


def create_record(
    payment_type: Union[str, PaymentType],
    subject_id: str,
    requested_amount: Optional[int] = None,
    *,
    contributors: Optional[int] = None,
    initial_status: Union[str, PaymentStatus] = PaymentStatus.CREATED,
) -> PaymentRecord:
    """
    Build a new payment record with its amount taken from the tariff table.

    For fixed-price types a supplied amount must equal the tariff. For
    WITHDRAWAL_FEE the supplied amount is the sum being withdrawn and is
    required and range-checked; the record itself is charged the withdrawal fee.
    BONUS_FUNDING is charged per contributor.

    Raises:
        UnknownPaymentTypeError: payment_type is not a known type
        InvalidAmountError: amount breaks the tariff or withdrawal limits
    """
    payment_type = parse_payment_type(payment_type)
    initial_status = parse_status(initial_status)
    if initial_status not in ENTRY_STATUSES:
        raise ValueError(f"A payment cannot start in status '{initial_status.value}'")
    if not subject_id:
        raise ValueError("subject_id is required")

    withdrawal_amount = None
    contributors_count = None
    if requested_amount is not None:
        _check_whole_amount(requested_amount)

    if payment_type == PaymentType.BONUS_FUNDING:
        amount = bonus_amount(contributors)
        contributors_count = contributors
        if requested_amount is not None and requested_amount != amount:
            raise InvalidAmountError(
                f"Bonus funding for {contributors} contributors is {amount}, got {requested_amount}"
            )
    elif payment_type == PaymentType.WITHDRAWAL_FEE:
        amount = tariff_for(payment_type)
        if requested_amount is None:
            raise InvalidAmountError("A withdrawal needs the amount being withdrawn")
        validate_withdrawal_amount(requested_amount)
        withdrawal_amount = requested_amount
    else:
        amount = tariff_for(payment_type)
        if requested_amount is not None and requested_amount != amount:
            raise InvalidAmountError(
                f"{payment_type.name} costs {amount}, got {requested_amount}"
            )

    return PaymentRecord(
        payment_type=payment_type,
        subject_id=subject_id,
        amount=amount,
        status=initial_status,
        withdrawal_amount=withdrawal_amount,
        contributors_count=contributors_count,
    )


def check_transition(current: Union[str, PaymentStatus], new_status: Union[str, PaymentStatus]) -> bool:
    """
    Validate a status change.

    Returns False when new_status equals current (nothing to do), True when
    the change is legal. Raises IllegalTransitionError otherwise.
    """
    current = parse_status(current)
    new_status = parse_status(new_status)
    if new_status == current:
        return False
    if new_status not in STATUS_TRANSITIONS[current]:
        raise IllegalTransitionError(current.value, new_status.value)
    return True


def transition(record: PaymentRecord, new_status: Union[str, PaymentStatus]) -> PaymentRecord:
    """Return a copy of record in new_status; a repeated status returns record itself."""
    if not check_transition(record.status, new_status):
        return record
    return record.model_copy(update={"status": parse_status(new_status)})

from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from datetime import datetime, timedelta
from typing import Optional
import logging
import math
import uuid

from payment_ledger.config import settings
from payment_ledger.logging_config import log_payment_event
from payment_ledger.models.payment import Payment
from payment_ledger.repositories import payment_repo
from payment_ledger.services import ledger_model
from payment_ledger.services.ledger_model import PaymentRecord
from payment_ledger.utils.constants import PaymentStatus, PaymentType, SETTLED_STATUSES
from payment_ledger.utils.exceptions import DuplicatePaymentError, PaymentNotFoundError
from payment_ledger.schemas.payment import PaymentCreateBase

logger = logging.getLogger(__name__)


def to_record(payment: Payment) -> PaymentRecord:
    """Load the ledger view of a stored payment."""
    return PaymentRecord(
        payment_type=payment.payment_type,
        subject_id=payment.subject_id,
        amount=payment.amount,
        status=payment.status,
        withdrawal_amount=payment.withdrawal_amount,
        contributors_count=payment.contributors_count,
    )


def create_payment(db: Session, payment_type, request: PaymentCreateBase) -> Payment:
    """
    Create a payment for a bid fee, listing, bonus, subscription or withdrawal.

    The amount always comes from the ledger tariff. Repeating a request with
    the same idempotency key returns the original payment.
    """
    # Step 1: Check idempotency
    existing = payment_repo.get_by_idempotency_key(db, request.idempotency_key)
    if existing:
        return existing

    # Step 2: Validate against the tariff (raises before anything is written)
    record = ledger_model.create_record(
        payment_type,
        request.subject_id,
        getattr(request, "amount", None),
        contributors=getattr(request, "contributors_count", None),
    )

    metadata = dict(request.metadata or {})
    if getattr(request, "bid_id", None):
        metadata["bid_id"] = request.bid_id
    if record.payment_type == PaymentType.SUBSCRIPTION:
        metadata["plan_type"] = request.plan_type

    # Step 3: Persist
    payment_id = str(uuid.uuid4())
    try:
        payment = payment_repo.create_payment(
            db=db,
            payment_id=payment_id,
            idempotency_key=request.idempotency_key,
            payment_type=record.payment_type.value,
            subject_id=record.subject_id,
            amount=record.amount,
            status=record.status.value,
            provider=request.provider.value,
            project_id=getattr(request, "project_id", None),
            withdrawal_amount=record.withdrawal_amount,
            contributors_count=record.contributors_count,
            metadata=metadata or None,
        )
    except IntegrityError:
        db.rollback()
        # Lost a race on the idempotency key
        existing = payment_repo.get_by_idempotency_key(db, request.idempotency_key)
        if existing:
            return existing
        raise DuplicatePaymentError(f"Payment with key {request.idempotency_key} already exists")

    log_payment_event(
        logger, f"{record.payment_type.value}_created",
        payment_id=payment.payment_id,
        subject_id=payment.subject_id,
        amount=payment.amount,
    )
    return payment


def get_payment(db: Session, payment_id: str) -> Payment:
    payment = payment_repo.get_by_payment_id(db, payment_id)
    if not payment:
        raise PaymentNotFoundError(f"Payment {payment_id} not found")
    return payment


def update_payment_status(
    db: Session,
    payment_id: str,
    new_status,
    provider_payment_id: Optional[str] = None,
    error_message: Optional[str] = None,
    commit: bool = True
) -> Payment:
    """
    Move a payment to a new status.

    The row is locked and its status re-read before the change is checked,
    so concurrent deliveries for the same payment are applied one at a time.
    Re-sending the current status is a no-op.

    With commit=False the caller owns the transaction (used by webhooks so
    the event record and the status change commit together).

    Raises:
        PaymentNotFoundError: no payment with this id
        IllegalTransitionError: the status graph forbids the change
    """
    payment = payment_repo.get_payment_with_lock(db, payment_id)
    if not payment:
        if commit:
            db.rollback()
        raise PaymentNotFoundError(f"Payment {payment_id} not found")

    try:
        record = to_record(payment)
        updated = ledger_model.transition(record, new_status)
    except Exception:
        if commit:
            db.rollback()
        raise

    if updated is record:
        log_payment_event(logger, "status_repeat_ignored", payment_id=payment_id, status=record.status.value)
        if commit:
            db.commit()
            db.refresh(payment)
        return payment

    payment_repo.update_payment_status(
        db,
        payment,
        status=updated.status.value,
        terminal=ledger_model.is_terminal(updated.status),
        provider_payment_id=provider_payment_id,
        error_message=error_message,
    )
    if commit:
        db.commit()
        db.refresh(payment)
    else:
        db.flush()

    log_payment_event(
        logger, "payment_status_changed",
        payment_id=payment_id,
        from_status=record.status.value,
        to_status=updated.status.value,
    )
    return payment


def attach_order(db: Session, payment_id: str, order_id: str, provider: str) -> Payment:
    """Record the gateway order for a payment and mark it as awaiting confirmation."""
    payment = payment_repo.get_payment_with_lock(db, payment_id)
    if not payment:
        db.rollback()
        raise PaymentNotFoundError(f"Payment {payment_id} not found")

    if payment.order_id == order_id:
        db.commit()
        db.refresh(payment)
        return payment

    try:
        move_to_pending = ledger_model.check_transition(payment.status, PaymentStatus.PENDING)
        payment_repo.set_order(db, payment, order_id, provider)
        if move_to_pending:
            payment_repo.update_payment_status(db, payment, PaymentStatus.PENDING.value)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicatePaymentError(f"Order {order_id} is already attached to another payment")
    except Exception:
        db.rollback()
        raise
    db.refresh(payment)

    log_payment_event(logger, "order_attached", payment_id=payment_id, order_id=order_id, provider=provider)
    return payment


def refund_payment(db: Session, payment_id: str, subject_id: str, reason: Optional[str] = None) -> Payment:
    """
    Refund a successful payment. Only the payment's owner may ask.
    """
    payment = payment_repo.get_by_payment_id(db, payment_id)
    if not payment or payment.subject_id != subject_id:
        raise PaymentNotFoundError(f"Payment {payment_id} not found")
    if payment.status == PaymentStatus.REFUNDED.value:
        return payment

    try:
        payment = update_payment_status(db, payment_id, PaymentStatus.REFUNDED, commit=False)
        payment_repo.merge_metadata(db, payment, {
            "refund_reason": reason or "User requested refund",
            "refunded_at": datetime.utcnow().isoformat(),
        })
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(payment)

    log_payment_event(logger, "payment_refunded", payment_id=payment_id, amount=payment.amount)
    return payment


def get_payment_history(
    db: Session,
    subject_id: str,
    status: Optional[str] = None,
    payment_type: Optional[str] = None,
    page: int = 1,
    limit: int = 10
) -> dict:
    """A page of a user's payments plus pagination details."""
    if status:
        status = ledger_model.parse_status(status).value
    if payment_type:
        payment_type = ledger_model.parse_payment_type(payment_type).value

    payments, total = payment_repo.list_by_subject(
        db, subject_id, status=status, payment_type=payment_type, page=page, limit=limit
    )
    return {
        "payments": payments,
        "pagination": {
            "current_page": page,
            "total_pages": math.ceil(total / limit) if total else 0,
            "total_items": total,
            "has_next": page * limit < total,
            "has_prev": page > 1,
        },
    }


def get_subscription_status(db: Session, subject_id: str, now: Optional[datetime] = None) -> dict:
    """
    Latest settled subscription for a user, and whether it still covers `now`.
    """
    subscription = payment_repo.get_latest_by_type(
        db,
        subject_id,
        PaymentType.SUBSCRIPTION.value,
        [status.value for status in SETTLED_STATUSES],
    )
    if not subscription:
        return {"is_active": False, "subscription": None, "expires_at": None}

    now = now or datetime.utcnow()
    expires_at = subscription.created_at + timedelta(days=settings.SUBSCRIPTION_PERIOD_DAYS)
    return {
        "is_active": now < expires_at,
        "subscription": subscription,
        "expires_at": expires_at,
    }

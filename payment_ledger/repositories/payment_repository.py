from sqlalchemy.orm import Session
from payment_ledger.models.payment import Payment
from typing import List, Optional, Tuple
from datetime import datetime

def create_payment(
    db: Session,
    payment_id: str,
    idempotency_key: str,
    payment_type: str,
    subject_id: str,
    amount: int,
    status: str = "created",
    provider: str = "razorpay",
    project_id: Optional[str] = None,
    withdrawal_amount: Optional[int] = None,
    contributors_count: Optional[int] = None,
    metadata: dict = None
) -> Payment:
    """
    Create a new payment record.

    Args:
        db: Database session
        payment_id: Unique payment identifier
        idempotency_key: Unique key to prevent duplicates
        payment_type: 'bid_fee', 'listing', 'bonus_funding', 'subscription' or 'withdrawal_fee'
        subject_id: User the payment belongs to
        amount: Amount charged, from the tariff
        status: Entry status, 'created' or 'pending'
        metadata: Optional additional data
    """
    payment = Payment(
        payment_id=payment_id,
        idempotency_key=idempotency_key,
        payment_type=payment_type,
        subject_id=subject_id,
        amount=amount,
        status=status,
        provider=provider,
        project_id=project_id,
        withdrawal_amount=withdrawal_amount,
        contributors_count=contributors_count,
        payment_metadata=metadata
        )
    db.add(payment)
    db.commit()
    db.refresh(payment)
    return payment


def get_by_idempotency_key(db: Session, idempotency_key: str) -> Optional[Payment]:
    """
    Find a payment by its idempotency key.
    """
    return db.query(Payment).filter(Payment.idempotency_key == idempotency_key).first()

def get_by_payment_id(db: Session, payment_id: str) -> Optional[Payment]:
    """Fetch a payment by its payment_id."""
    return db.query(Payment).filter(Payment.payment_id == payment_id).first()

def get_by_order_id(db: Session, order_id: str) -> Optional[Payment]:
    """Fetch a payment by the gateway order id."""
    return db.query(Payment).filter(Payment.order_id == order_id).first()


def get_payment_with_lock(db: Session, payment_id: str) -> Optional[Payment]:
    """
    Fetch payment and LOCK it for the current transaction.

    Uses SELECT ... FOR UPDATE so two webhook deliveries can't both read
    the same status and write over each other. The lock is held until
    db.commit() or db.rollback().
    """
    return (
        db.query(Payment)
        .filter(Payment.payment_id == payment_id)
        .populate_existing()
        .with_for_update()
        .first()
    )


def update_payment_status(
    db: Session,
    payment: Payment,
    status: str,
    terminal: bool = False,
    provider_payment_id: Optional[str] = None,
    error_message: Optional[str] = None
) -> None:
    """
    Write a new status onto a payment.

    NOTE: This assumes the payment is locked and the change was validated!
    Always call get_payment_with_lock() first.
    """
    payment.status = status
    if terminal:
        payment.completed_at = datetime.utcnow()
    if provider_payment_id:
        payment.provider_payment_id = provider_payment_id
    if error_message:
        payment.error_message = error_message


def set_order(db: Session, payment: Payment, order_id: str, provider: str) -> None:
    payment.order_id = order_id
    payment.provider = provider


def merge_metadata(db: Session, payment: Payment, extra: dict) -> None:
    # Reassign so the JSON column is flagged dirty
    payment.payment_metadata = {**(payment.payment_metadata or {}), **extra}


def list_by_subject(
    db: Session,
    subject_id: str,
    status: Optional[str] = None,
    payment_type: Optional[str] = None,
    page: int = 1,
    limit: int = 10
) -> Tuple[List[Payment], int]:
    """Page through a user's payments, newest first. Returns (items, total)."""
    query = db.query(Payment).filter(Payment.subject_id == subject_id)
    if status:
        query = query.filter(Payment.status == status)
    if payment_type:
        query = query.filter(Payment.payment_type == payment_type)
    total = query.count()
    items = (
        query.order_by(Payment.created_at.desc(), Payment.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def get_latest_by_type(
    db: Session,
    subject_id: str,
    payment_type: str,
    statuses: List[str]
) -> Optional[Payment]:
    """Most recent payment of a type in one of the given statuses."""
    return (
        db.query(Payment)
        .filter(
            Payment.subject_id == subject_id,
            Payment.payment_type == payment_type,
            Payment.status.in_(statuses),
        )
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .first()
    )

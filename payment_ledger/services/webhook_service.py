"""
Payment gateway webhooks.

Each delivery is checked against the gateway's shared secret, recorded by
event id so repeated deliveries are acknowledged without being applied
twice, and translated into a ledger status change for the payment that owns
the gateway order.
"""
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Optional
import hashlib
import hmac
import logging

from payment_ledger.config import settings
from payment_ledger.logging_config import log_payment_event
from payment_ledger.repositories import payment_repo, webhook_repo
from payment_ledger.services import payment_service
from payment_ledger.utils.constants import PaymentProvider, PaymentStatus
from payment_ledger.utils.exceptions import InvalidSignatureError

logger = logging.getLogger(__name__)

RAZORPAY_EVENT_STATUS = {
    "payment.authorized": PaymentStatus.PENDING,
    "payment.captured": PaymentStatus.SUCCESS,
    "order.paid": PaymentStatus.SUCCESS,
    "payment.failed": PaymentStatus.FAILED,
}

CASHFREE_STATUS = {
    "PENDING": PaymentStatus.PENDING,
    "SUCCESS": PaymentStatus.SUCCESS,
    "PAID": PaymentStatus.SUCCESS,
    "FAILED": PaymentStatus.FAILED,
    "USER_DROPPED": PaymentStatus.CANCELLED,
    "CANCELLED": PaymentStatus.CANCELLED,
}

PENDING_OR_EARLIER = (PaymentStatus.CREATED.value, PaymentStatus.PENDING.value)


def verify_signature(raw_body: bytes, signature: Optional[str], secret: str) -> bool:
    """HMAC-SHA256 hex digest of the raw body, compared in constant time."""
    if not signature:
        return False
    expected = hmac.new(secret.encode(), raw_body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)


def _check_signature(provider: str, raw_body: bytes, signature: Optional[str], secret: str, event_id: str) -> None:
    # No secret configured means verification is off (local development)
    if not secret:
        return
    if not verify_signature(raw_body, signature, secret):
        logger.warning(
            "webhook signature_verification_failed provider=%s event_id=%s signature=%s",
            provider, event_id, "present" if signature else "missing",
        )
        raise InvalidSignatureError()


def _apply_gateway_status(
    db: Session,
    order_id: Optional[str],
    status: PaymentStatus,
    provider_payment_id: Optional[str] = None,
    error_message: Optional[str] = None
):
    payment = payment_repo.get_by_order_id(db, order_id) if order_id else None
    if not payment:
        logger.warning("webhook for unknown order order_id=%s", order_id)
        return None

    # Gateways do not order their events; a late "authorized" after capture or failure is stale
    payment = payment_repo.get_payment_with_lock(db, payment.payment_id)
    if status == PaymentStatus.PENDING and payment.status not in PENDING_OR_EARLIER:
        log_payment_event(logger, "stale_event", payment_id=payment.payment_id, status=payment.status)
        return payment

    # Gateways report success straight after order creation; pass through PENDING first
    if payment.status == PaymentStatus.CREATED.value and status != PaymentStatus.CREATED:
        payment_service.update_payment_status(db, payment.payment_id, PaymentStatus.PENDING, commit=False)

    return payment_service.update_payment_status(
        db,
        payment.payment_id,
        status,
        provider_payment_id=provider_payment_id,
        error_message=error_message,
        commit=False,
    )


def _process(
    db: Session,
    provider: str,
    event_id: str,
    event_type: Optional[str],
    signature: Optional[str],
    order_id: Optional[str],
    status: Optional[PaymentStatus],
    provider_payment_id: Optional[str] = None,
    error_message: Optional[str] = None
) -> dict:
    if webhook_repo.get_by_event_id(db, event_id):
        log_payment_event(logger, "duplicate_webhook", provider=provider, event_id=event_id)
        return {"duplicate": True, "event_id": event_id}

    try:
        webhook_repo.create_event(
            db,
            provider=provider,
            event_id=event_id,
            event_type=event_type,
            signature=signature,
            processed=status is not None,
        )
        payment = None
        if status is None:
            log_payment_event(logger, "unhandled_event", provider=provider, event_type=event_type)
        else:
            payment = _apply_gateway_status(db, order_id, status, provider_payment_id, error_message)
        db.commit()
    except IntegrityError:
        # Another delivery of the same event got in first
        db.rollback()
        return {"duplicate": True, "event_id": event_id}
    except Exception:
        db.rollback()
        raise

    log_payment_event(logger, "webhook_processed", provider=provider, event_id=event_id, event_type=event_type)
    if payment is None:
        return {"event_id": event_id}
    db.refresh(payment)
    return {"event_id": event_id, "payment_id": payment.payment_id, "status": payment.status}


def handle_razorpay_event(db: Session, payload: dict, raw_body: bytes, signature: Optional[str] = None) -> dict:
    event_type = payload.get("event")
    entity = ((payload.get("payload") or {}).get("payment") or {}).get("entity") or {}
    order_id = entity.get("order_id")
    event_id = payload.get("id") or f"{order_id}:{event_type}"

    _check_signature(
        PaymentProvider.RAZORPAY.value, raw_body, signature, settings.RAZORPAY_WEBHOOK_SECRET, event_id
    )
    return _process(
        db,
        provider=PaymentProvider.RAZORPAY.value,
        event_id=event_id,
        event_type=event_type,
        signature=signature,
        order_id=order_id,
        status=RAZORPAY_EVENT_STATUS.get(event_type),
        provider_payment_id=entity.get("id"),
        error_message=entity.get("error_description"),
    )


def handle_cashfree_event(db: Session, payload: dict, raw_body: bytes, signature: Optional[str] = None) -> dict:
    event_type = payload.get("type")
    data = payload.get("data") or {}
    order = data.get("order") or {}
    payment = data.get("payment") or {}
    order_id = order.get("order_id")
    event_id = f"{order_id or ''}:{event_type or 'cf'}"

    _check_signature(
        PaymentProvider.CASHFREE.value, raw_body, signature, settings.CASHFREE_WEBHOOK_SECRET, event_id
    )
    gateway_status = payment.get("payment_status") or order.get("order_status")
    cf_payment_id = payment.get("cf_payment_id")
    return _process(
        db,
        provider=PaymentProvider.CASHFREE.value,
        event_id=event_id,
        event_type=event_type,
        signature=signature,
        order_id=order_id,
        status=CASHFREE_STATUS.get(str(gateway_status).upper()),
        provider_payment_id=str(cf_payment_id) if cf_payment_id else None,
        error_message=payment.get("payment_message"),
    )

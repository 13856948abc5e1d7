import pytest
from datetime import datetime, timedelta

from payment_ledger.models.payment import Payment
from payment_ledger.schemas.payment import (
    BidFeeRequest,
    BonusRequest,
    SubscriptionRequest,
    WithdrawalRequest,
)
from payment_ledger.services import payment_service
from payment_ledger.utils.constants import PaymentType
from payment_ledger.utils.exceptions import (
    IllegalTransitionError,
    InvalidAmountError,
    PaymentNotFoundError,
)


def _bid_request(key="bid-001", **overrides):
    fields = dict(idempotency_key=key, subject_id="user-42", project_id="project-1", bid_id="bid-7")
    fields.update(overrides)
    return BidFeeRequest(**fields)


def test_create_bid_fee_payment(db_session):
    """Test successful bid fee payment"""
    # Act
    payment = payment_service.create_payment(db_session, PaymentType.BID_FEE, _bid_request())

    # Assert
    assert payment.payment_type == "bid_fee"
    assert payment.amount == 9
    assert payment.status == "created"
    assert payment.subject_id == "user-42"
    assert payment.payment_metadata == {"bid_id": "bid-7"}


def test_create_payment_idempotency(db_session):
    """Test that duplicate idempotency key returns original payment"""
    first = payment_service.create_payment(db_session, PaymentType.BID_FEE, _bid_request("bid-same"))
    second = payment_service.create_payment(db_session, PaymentType.BID_FEE, _bid_request("bid-same"))

    assert first.payment_id == second.payment_id
    assert db_session.query(Payment).filter(Payment.idempotency_key == "bid-same").count() == 1


def test_create_payment_rejects_wrong_fee(db_session):
    with pytest.raises(InvalidAmountError):
        payment_service.create_payment(db_session, PaymentType.BID_FEE, _bid_request(amount=5))

    # Nothing persisted
    assert db_session.query(Payment).count() == 0


def test_create_withdrawal_payment(db_session):
    request = WithdrawalRequest(idempotency_key="wd-1", subject_id="user-7", amount=2500)

    payment = payment_service.create_payment(db_session, PaymentType.WITHDRAWAL_FEE, request)

    assert payment.amount == 20
    assert payment.withdrawal_amount == 2500


def test_create_withdrawal_below_minimum(db_session):
    request = WithdrawalRequest(idempotency_key="wd-2", subject_id="user-7", amount=50)

    with pytest.raises(InvalidAmountError):
        payment_service.create_payment(db_session, PaymentType.WITHDRAWAL_FEE, request)


def test_create_bonus_funding(db_session):
    request = BonusRequest(idempotency_key="bonus-1", subject_id="owner-1", project_id="p1", contributors_count=4)

    payment = payment_service.create_payment(db_session, PaymentType.BONUS_FUNDING, request)

    assert payment.amount == 800
    assert payment.contributors_count == 4


def test_create_subscription_records_plan(db_session):
    request = SubscriptionRequest(idempotency_key="sub-1", subject_id="user-1")

    payment = payment_service.create_payment(db_session, PaymentType.SUBSCRIPTION, request)

    assert payment.amount == 299
    assert payment.payment_metadata == {"plan_type": "monthly"}


def test_get_payment_not_found(db_session):
    with pytest.raises(PaymentNotFoundError):
        payment_service.get_payment(db_session, "missing")


def test_update_status_full_lifecycle(db_session, sample_payment):
    for status in ("PENDING", "SUCCESS", "PAID"):
        payment = payment_service.update_payment_status(db_session, "pay_test_123", status)

    assert payment.status == "paid"
    assert payment.completed_at is not None


def test_update_status_illegal(db_session, pending_payment):
    with pytest.raises(IllegalTransitionError):
        payment_service.update_payment_status(db_session, "pay_pending_1", "PAID")

    db_session.expire_all()
    assert payment_service.get_payment(db_session, "pay_pending_1").status == "pending"


def test_update_status_repeat_is_noop(db_session, pending_payment):
    failed = payment_service.update_payment_status(db_session, "pay_pending_1", "FAILED", error_message="declined")
    completed_at = failed.completed_at

    again = payment_service.update_payment_status(db_session, "pay_pending_1", "FAILED")

    assert again.status == "failed"
    assert again.completed_at == completed_at
    assert again.error_message == "declined"


def test_update_status_unknown_payment(db_session):
    with pytest.raises(PaymentNotFoundError):
        payment_service.update_payment_status(db_session, "missing", "PENDING")


def test_attach_order_moves_to_pending(db_session, sample_payment):
    payment = payment_service.attach_order(db_session, "pay_test_123", "order_xyz", "razorpay")

    assert payment.order_id == "order_xyz"
    assert payment.status == "pending"


def test_attach_order_after_success_rejected(db_session, make_payment):
    make_payment(payment_id="pay_done", idempotency_key="idem_done", status="success")

    with pytest.raises(IllegalTransitionError):
        payment_service.attach_order(db_session, "pay_done", "order_late", "razorpay")


def test_refund_successful_payment(db_session, make_payment):
    make_payment(payment_id="pay_ok", idempotency_key="idem_ok", status="success")

    payment = payment_service.refund_payment(db_session, "pay_ok", "user-42", "project cancelled")

    assert payment.status == "refunded"
    assert payment.payment_metadata["refund_reason"] == "project cancelled"
    assert payment.completed_at is not None


def test_refund_requires_owner(db_session, make_payment):
    make_payment(payment_id="pay_ok", idempotency_key="idem_ok", status="success")

    with pytest.raises(PaymentNotFoundError):
        payment_service.refund_payment(db_session, "pay_ok", "intruder")


def test_refund_pending_payment_rejected(db_session, pending_payment):
    with pytest.raises(IllegalTransitionError):
        payment_service.refund_payment(db_session, "pay_pending_1", "user-42")


def test_payment_history(db_session, make_payment):
    for i in range(3):
        make_payment(payment_id=f"pay_{i}", idempotency_key=f"idem_{i}")

    history = payment_service.get_payment_history(db_session, "user-42", page=1, limit=2)

    assert len(history["payments"]) == 2
    assert history["pagination"] == {
        "current_page": 1,
        "total_pages": 2,
        "total_items": 3,
        "has_next": True,
        "has_prev": False,
    }


def test_subscription_status_active_and_expired(db_session, make_payment):
    payment = make_payment(
        payment_id="sub_1", idempotency_key="sub_1", payment_type="subscription", amount=299, status="paid"
    )

    active = payment_service.get_subscription_status(db_session, "user-42")
    assert active["is_active"] is True
    assert active["subscription"].payment_id == "sub_1"

    later = payment.created_at + timedelta(days=31)
    expired = payment_service.get_subscription_status(db_session, "user-42", now=later)
    assert expired["is_active"] is False


def test_subscription_window_uses_utc(db_session, make_payment):
    payment = make_payment(
        payment_id="sub_1", idempotency_key="sub_1", payment_type="subscription", amount=299, status="paid"
    )
    assert abs(datetime.utcnow() - payment.created_at) < timedelta(minutes=1)

    # Bought 29 days and 23 hours ago, UTC
    payment.created_at = datetime.utcnow() - timedelta(days=29, hours=23)
    db_session.commit()

    status = payment_service.get_subscription_status(db_session, "user-42")
    assert status["is_active"] is True
    assert status["expires_at"] == payment.created_at + timedelta(days=30)


def test_subscription_status_none(db_session):
    status = payment_service.get_subscription_status(db_session, "nobody")
    assert status == {"is_active": False, "subscription": None, "expires_at": None}

import pytest
from pydantic import ValidationError

from payment_ledger.services import ledger_model
from payment_ledger.services.ledger_model import PaymentRecord, create_record, transition
from payment_ledger.utils.constants import (
    PAYMENT_AMOUNTS,
    TERMINAL_STATUSES,
    PaymentStatus,
    PaymentType,
)
from payment_ledger.utils.exceptions import (
    IllegalTransitionError,
    InvalidAmountError,
    UnknownPaymentTypeError,
)


def _walk(record, *statuses):
    for status in statuses:
        record = transition(record, status)
    return record


class TestCreateRecord:
    """Tariff enforcement when building records."""

    def test_bid_fee_scenario(self):
        """createRecord("BID_FEE", "user-42") gives the 9 tariff in CREATED."""
        record = create_record("BID_FEE", "user-42")

        assert record.payment_type == PaymentType.BID_FEE
        assert record.amount == 9
        assert record.status == PaymentStatus.CREATED
        assert record.subject_id == "user-42"

    @pytest.mark.parametrize("payment_type, tariff_key", [
        (PaymentType.BID_FEE, "BID_FEE"),
        (PaymentType.SUBSCRIPTION, "SUBSCRIPTION"),
        (PaymentType.LISTING, "LISTING_FEE"),
    ])
    def test_fee_types_use_tariff(self, payment_type, tariff_key):
        record = create_record(payment_type, "user-1")
        assert record.amount == PAYMENT_AMOUNTS[tariff_key]

    def test_wire_value_and_name_both_accepted(self):
        assert create_record("listing", "u").payment_type == PaymentType.LISTING
        assert create_record("LISTING", "u").payment_type == PaymentType.LISTING

    def test_matching_requested_amount_accepted(self):
        record = create_record(PaymentType.SUBSCRIPTION, "user-1", 299)
        assert record.amount == 299

    def test_mismatched_requested_amount_rejected(self):
        with pytest.raises(InvalidAmountError):
            create_record(PaymentType.BID_FEE, "user-1", 10)

    def test_unknown_type(self):
        with pytest.raises(UnknownPaymentTypeError) as exc_info:
            create_record("DONATION", "user-1")
        assert exc_info.value.code == "UNKNOWN_TYPE"

    def test_non_string_type_is_unknown(self):
        with pytest.raises(UnknownPaymentTypeError):
            create_record(42, "user-1")

    def test_empty_subject_rejected(self):
        with pytest.raises(ValueError):
            create_record(PaymentType.BID_FEE, "")

    def test_pending_entry_status_allowed(self):
        record = create_record(PaymentType.BID_FEE, "user-1", initial_status="PENDING")
        assert record.status == PaymentStatus.PENDING

    def test_terminal_entry_status_rejected(self):
        with pytest.raises(ValueError):
            create_record(PaymentType.BID_FEE, "user-1", initial_status=PaymentStatus.PAID)


class TestWithdrawal:
    """Withdrawal limits are inclusive: [100, 10000]."""

    @pytest.mark.parametrize("amount", [100, 10000, 5000])
    def test_amount_within_limits(self, amount):
        record = create_record("WITHDRAWAL_FEE", "user-7", amount)

        assert record.amount == PAYMENT_AMOUNTS["WITHDRAWAL_FEE"]
        assert record.withdrawal_amount == amount

    @pytest.mark.parametrize("amount", [99, 10001])
    def test_amount_just_outside_limits(self, amount):
        with pytest.raises(InvalidAmountError):
            create_record("WITHDRAWAL_FEE", "user-7", amount)

    def test_below_minimum_scenario(self):
        """createRecord("WITHDRAWAL_FEE", "user-7", 50) fails."""
        with pytest.raises(InvalidAmountError, match="between 100 and 10000"):
            create_record("WITHDRAWAL_FEE", "user-7", requested_amount=50)

    def test_amount_is_required(self):
        with pytest.raises(InvalidAmountError):
            create_record("WITHDRAWAL_FEE", "user-7")

    @pytest.mark.parametrize("amount", [100.5, "500", True])
    def test_amount_must_be_whole_number(self, amount):
        with pytest.raises(InvalidAmountError, match="whole number"):
            create_record("WITHDRAWAL_FEE", "user-7", amount)

    def test_fixed_fee_rejects_fractional_amount(self):
        with pytest.raises(InvalidAmountError):
            create_record(PaymentType.BID_FEE, "user-7", 9.0)


class TestBonusFunding:
    def test_amount_per_contributor(self):
        record = create_record(PaymentType.BONUS_FUNDING, "user-1", contributors=3)

        assert record.amount == 600
        assert record.contributors_count == 3

    def test_requested_amount_must_match(self):
        with pytest.raises(InvalidAmountError):
            create_record(PaymentType.BONUS_FUNDING, "user-1", 500, contributors=3)

    @pytest.mark.parametrize("contributors", [None, 0, 101])
    def test_contributor_count_bounds(self, contributors):
        with pytest.raises(InvalidAmountError):
            create_record(PaymentType.BONUS_FUNDING, "user-1", contributors=contributors)


class TestTransition:
    """Status state machine."""

    def test_happy_path_to_paid(self):
        record = _walk(create_record("BID_FEE", "u"), "PENDING", "SUCCESS", "PAID")
        assert record.status == PaymentStatus.PAID

    def test_pending_to_failed(self):
        record = _walk(create_record("BID_FEE", "u"), "PENDING", "FAILED")
        assert record.status == PaymentStatus.FAILED

    def test_success_to_refunded(self):
        record = _walk(create_record("LISTING", "u"), "PENDING", "SUCCESS", "REFUNDED")
        assert record.status == PaymentStatus.REFUNDED

    def test_pending_to_paid_skips_success(self):
        record = _walk(create_record("BID_FEE", "u"), "PENDING")

        with pytest.raises(IllegalTransitionError) as exc_info:
            transition(record, "PAID")
        assert exc_info.value.current == "pending"
        assert exc_info.value.requested == "paid"

    def test_created_cannot_jump_to_success(self):
        with pytest.raises(IllegalTransitionError):
            transition(create_record("BID_FEE", "u"), PaymentStatus.SUCCESS)

    def test_transition_returns_new_record(self):
        record = create_record("BID_FEE", "u")
        moved = transition(record, "PENDING")

        assert moved is not record
        assert record.status == PaymentStatus.CREATED

    def test_record_is_immutable(self):
        record = create_record("BID_FEE", "u")
        with pytest.raises(ValidationError):
            record.status = PaymentStatus.PAID

    @pytest.mark.parametrize("path", [
        ("PENDING", "SUCCESS", "PAID"),
        ("PENDING", "SUCCESS", "REFUNDED"),
        ("PENDING", "FAILED"),
        ("PENDING", "CANCELLED"),
    ])
    def test_terminal_rejects_other_status(self, path):
        record = _walk(create_record("BID_FEE", "u"), *path)
        assert record.status in TERMINAL_STATUSES

        for status in PaymentStatus:
            if status == record.status:
                continue
            with pytest.raises(IllegalTransitionError):
                transition(record, status)

    @pytest.mark.parametrize("path", [
        ("PENDING", "SUCCESS", "PAID"),
        ("PENDING", "FAILED"),
        ("PENDING", "CANCELLED"),
    ])
    def test_terminal_repeat_is_idempotent(self, path):
        record = _walk(create_record("BID_FEE", "u"), *path)
        assert transition(record, record.status) is record

    def test_unknown_status(self):
        with pytest.raises(ValueError):
            transition(create_record("BID_FEE", "u"), "SETTLED")


def test_helpers():
    assert ledger_model.is_terminal("paid")
    assert not ledger_model.is_terminal(PaymentStatus.SUCCESS)
    assert ledger_model.allowed_transitions("CREATED") == {PaymentStatus.PENDING}
    assert ledger_model.tariff_for("BONUS_FUNDING") is None
    assert ledger_model.tariff_for(PaymentType.LISTING) == 199


def test_record_rejects_non_positive_amount():
    with pytest.raises(ValidationError):
        PaymentRecord(payment_type=PaymentType.BID_FEE, subject_id="u", amount=0)

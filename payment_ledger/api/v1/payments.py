from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from payment_ledger.database import get_db
from payment_ledger.services import payment_service
from payment_ledger.schemas.payment import (
    AttachOrderRequest,
    BidFeeRequest,
    BonusRequest,
    ListingRequest,
    PaymentHistoryResponse,
    PaymentResponse,
    RefundRequest,
    StatusUpdateRequest,
    SubscriptionRequest,
    SubscriptionStatusResponse,
    WithdrawalRequest,
)
from payment_ledger.utils.constants import PaymentType

router = APIRouter()

@router.post("/bid-fee", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
def create_bid_fee(request: BidFeeRequest, db: Session = Depends(get_db)):
    """
    Bid fee (9) charged when a user places a bid on a project.
    """
    return payment_service.create_payment(db, PaymentType.BID_FEE, request)

@router.post("/listing", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
def create_listing_fee(request: ListingRequest, db: Session = Depends(get_db)):
    """Listing fee (199) for publishing a project."""
    return payment_service.create_payment(db, PaymentType.LISTING, request)

@router.post("/bonus", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
def create_bonus_funding(request: BonusRequest, db: Session = Depends(get_db)):
    """Bonus pool funding: 200 per contributor."""
    return payment_service.create_payment(db, PaymentType.BONUS_FUNDING, request)

@router.post("/subscription", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
def create_subscription(request: SubscriptionRequest, db: Session = Depends(get_db)):
    return payment_service.create_payment(db, PaymentType.SUBSCRIPTION, request)

@router.post("/withdrawal", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
def create_withdrawal(request: WithdrawalRequest, db: Session = Depends(get_db)):
    """
    Withdrawal request. The user pays the withdrawal fee; the requested
    amount must lie within the withdrawal limits.
    """
    return payment_service.create_payment(db, PaymentType.WITHDRAWAL_FEE, request)

@router.get("/history/{subject_id}", response_model=PaymentHistoryResponse)
def get_payment_history(
    subject_id: str,
    status_filter: Optional[str] = Query(None, alias="status"),
    payment_type: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    return payment_service.get_payment_history(
        db, subject_id, status=status_filter, payment_type=payment_type, page=page, limit=limit
    )

@router.get("/subscription/{subject_id}", response_model=SubscriptionStatusResponse)
def get_subscription_status(subject_id: str, db: Session = Depends(get_db)):
    return payment_service.get_subscription_status(db, subject_id)

@router.get("/{payment_id}", response_model=PaymentResponse)
def get_payment(payment_id: str, db: Session = Depends(get_db)):
    return payment_service.get_payment(db, payment_id)

@router.post("/{payment_id}/order", response_model=PaymentResponse)
def attach_order(payment_id: str, request: AttachOrderRequest, db: Session = Depends(get_db)):
    """Link the gateway order and mark the payment as awaiting confirmation."""
    return payment_service.attach_order(db, payment_id, request.order_id, request.provider.value)

@router.post("/{payment_id}/status", response_model=PaymentResponse)
def update_status(payment_id: str, request: StatusUpdateRequest, db: Session = Depends(get_db)):
    """
    Apply a status change. Repeating the current status returns the payment
    unchanged; a change the status graph forbids returns 409.
    """
    return payment_service.update_payment_status(
        db,
        payment_id,
        request.status,
        provider_payment_id=request.provider_payment_id,
        error_message=request.error_message,
    )

@router.post("/{payment_id}/refund", response_model=PaymentResponse)
def refund(payment_id: str, request: RefundRequest, db: Session = Depends(get_db)):
    return payment_service.refund_payment(db, payment_id, request.subject_id, request.reason)

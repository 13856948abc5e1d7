from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict, Any, List
from datetime import datetime

from payment_ledger.utils.constants import MAX_BONUS_CONTRIBUTORS, PaymentProvider

class PaymentCreateBase(BaseModel):
    idempotency_key: str = Field(..., min_length=1, max_length=100)
    subject_id: str = Field(..., min_length=1, max_length=128)
    provider: PaymentProvider = PaymentProvider.RAZORPAY
    metadata: Optional[Dict[str, Any]] = None

class BidFeeRequest(PaymentCreateBase):
    project_id: str = Field(..., min_length=1, max_length=100)
    bid_id: Optional[str] = None
    # Optional client-side echo of the fee; checked against the tariff
    amount: Optional[int] = Field(None, gt=0)

class ListingRequest(PaymentCreateBase):
    project_id: str = Field(..., min_length=1, max_length=100)
    amount: Optional[int] = Field(None, gt=0)

class BonusRequest(PaymentCreateBase):
    project_id: Optional[str] = Field(None, max_length=100)
    contributors_count: int = Field(..., ge=1, le=MAX_BONUS_CONTRIBUTORS)
    amount: Optional[int] = Field(None, gt=0)

class SubscriptionRequest(PaymentCreateBase):
    plan_type: str = Field("monthly", min_length=1, max_length=20)
    amount: Optional[int] = Field(None, gt=0)

class WithdrawalRequest(PaymentCreateBase):
    # Amount being withdrawn; the payment itself is the withdrawal fee
    amount: int = Field(..., gt=0)

class AttachOrderRequest(BaseModel):
    order_id: str = Field(..., min_length=1, max_length=100)
    provider: PaymentProvider = PaymentProvider.RAZORPAY

class StatusUpdateRequest(BaseModel):
    status: str = Field(..., min_length=1, max_length=20)
    provider_payment_id: Optional[str] = Field(None, max_length=100)
    error_message: Optional[str] = None

class RefundRequest(BaseModel):
    subject_id: str = Field(..., min_length=1, max_length=128)
    reason: Optional[str] = Field(None, max_length=255)

class PaymentResponse(BaseModel):
    payment_id: str
    idempotency_key: str
    payment_type: str
    subject_id: str
    project_id: Optional[str] = None
    amount: int
    withdrawal_amount: Optional[int] = None
    contributors_count: Optional[int] = None
    status: str
    provider: str
    order_id: Optional[str] = None
    provider_payment_id: Optional[str] = None
    payment_metadata: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    has_next: bool
    has_prev: bool

class PaymentHistoryResponse(BaseModel):
    payments: List[PaymentResponse]
    pagination: Pagination

class SubscriptionStatusResponse(BaseModel):
    is_active: bool
    subscription: Optional[PaymentResponse] = None
    expires_at: Optional[datetime] = None

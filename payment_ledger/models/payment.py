from sqlalchemy import (
    Column, Integer, String, DateTime, BigInteger,
    Index, Text, JSON, CheckConstraint
)
from datetime import datetime

from payment_ledger.database import Base

# SQLite only autoincrements INTEGER primary keys
PrimaryKey = BigInteger().with_variant(Integer, "sqlite")


class Payment(Base):
    __tablename__ = "payments"

    id = Column(PrimaryKey, primary_key=True, autoincrement=True)
    payment_id = Column(String(100), unique=True, nullable=False, index=True)
    idempotency_key = Column(String(100), unique=True, nullable=False, index=True)

    # bid_fee, bonus_funding, withdrawal_fee, subscription, listing
    payment_type = Column(String(50), nullable=False, index=True)

    # Authenticated user the payment belongs to (not a foreign key)
    subject_id = Column(String(128), nullable=False, index=True)
    project_id = Column(String(100), nullable=True, index=True)

    # Whole INR
    amount = Column(Integer, nullable=False)
    withdrawal_amount = Column(Integer, nullable=True)
    contributors_count = Column(Integer, nullable=True)

    status = Column(String(50), nullable=False, server_default="created", index=True)

    # Gateway bookkeeping
    provider = Column(String(50), nullable=False, server_default="razorpay")
    order_id = Column(String(100), unique=True, nullable=True, index=True)
    provider_payment_id = Column(String(100), nullable=True)

    payment_metadata = Column(JSON, nullable=True)
    error_message = Column(Text, nullable=True)

    # Naive UTC throughout
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    # Set once the payment reaches a terminal status
    completed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "payment_type IN ('bid_fee', 'bonus_funding', 'withdrawal_fee', 'subscription', 'listing')",
            name="chk_payment_type_valid",
        ),
        CheckConstraint(
            "status IN ('created', 'pending', 'success', 'paid', 'failed', 'cancelled', 'refunded')",
            name="chk_payment_status_valid",
        ),
        CheckConstraint("amount > 0", name="chk_payment_amount_positive"),
        Index("idx_subject_type_status", "subject_id", "payment_type", "status"),
        {"mysql_engine": "InnoDB"},
    )

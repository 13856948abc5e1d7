from sqlalchemy import Column, Integer, String, DateTime, Boolean, BigInteger
from datetime import datetime

from payment_ledger.database import Base


class WebhookEvent(Base):
    __tablename__ = "webhook_events"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    provider = Column(String(50), nullable=False)
    event_type = Column(String(100), nullable=True)

    # Gateway event id; a repeat delivery hits this unique key
    event_id = Column(String(200), unique=True, nullable=False, index=True)
    signature = Column(String(255), nullable=True)
    processed = Column(Boolean, nullable=False, server_default="0")

    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        {"mysql_engine": "InnoDB"},
    )


from payment_ledger.database import Base
from .payment import Payment
from .webhook_event import WebhookEvent

__all__ = ["Base", "Payment", "WebhookEvent"]

from sqlalchemy.orm import Session
from payment_ledger.models.webhook_event import WebhookEvent
from typing import List, Optional

def get_by_event_id(db: Session, event_id: str) -> Optional[WebhookEvent]:
    """Find a previously received webhook event."""
    return db.query(WebhookEvent).filter(WebhookEvent.event_id == event_id).first()

def create_event(
    db: Session,
    provider: str,
    event_id: str,
    event_type: Optional[str] = None,
    signature: Optional[str] = None,
    processed: bool = False
) -> WebhookEvent:
    """Record a webhook delivery. Flushes only; the caller commits."""
    event = WebhookEvent(
        provider=provider,
        event_type=event_type,
        event_id=event_id,
        signature=signature,
        processed=processed
    )
    db.add(event)
    db.flush()
    return event

def list_recent(db: Session, provider: Optional[str] = None, limit: int = 50) -> List[WebhookEvent]:
    query = db.query(WebhookEvent)
    if provider:
        query = query.filter(WebhookEvent.provider == provider)
    return query.order_by(WebhookEvent.id.desc()).limit(limit).all()

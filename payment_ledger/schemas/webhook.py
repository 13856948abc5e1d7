from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional

class WebhookAck(BaseModel):
    received: bool = True
    duplicate: bool = False
    event_id: str
    payment_id: Optional[str] = None
    status: Optional[str] = None

class WebhookEventResponse(BaseModel):
    provider: str
    event_type: Optional[str] = None
    event_id: str
    processed: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from typing import List, Optional
import json

from payment_ledger.database import get_db
from payment_ledger.repositories import webhook_repo
from payment_ledger.services import webhook_service
from payment_ledger.schemas.webhook import WebhookAck, WebhookEventResponse

router = APIRouter()


async def _read_json(request: Request):
    raw_body = await request.body()
    try:
        payload = json.loads(raw_body or b"{}")
    except ValueError:
        raise HTTPException(status_code=400, detail="Webhook body is not valid JSON")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Webhook body must be a JSON object")
    return raw_body, payload


@router.post("/razorpay", response_model=WebhookAck)
async def razorpay_webhook(
    request: Request,
    x_razorpay_signature: Optional[str] = Header(None),
    db: Session = Depends(get_db)
):
    """
    Razorpay event delivery. Duplicates are acknowledged with 200 so the
    gateway stops retrying.
    """
    raw_body, payload = await _read_json(request)
    return await run_in_threadpool(
        webhook_service.handle_razorpay_event, db, payload, raw_body, x_razorpay_signature
    )


@router.post("/cashfree", response_model=WebhookAck)
async def cashfree_webhook(
    request: Request,
    x_webhook_signature: Optional[str] = Header(None),
    db: Session = Depends(get_db)
):
    raw_body, payload = await _read_json(request)
    return await run_in_threadpool(
        webhook_service.handle_cashfree_event, db, payload, raw_body, x_webhook_signature
    )


@router.get("/events", response_model=List[WebhookEventResponse])
def list_webhook_events(
    provider: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db)
):
    """Recent webhook deliveries, newest first (for debugging)."""
    return webhook_repo.list_recent(db, provider=provider, limit=limit)

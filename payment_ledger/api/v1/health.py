from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session
from payment_ledger.database import get_db

router = APIRouter()

@router.get("/health")
def health(db: Session = Depends(get_db)):
    """Liveness plus a database round trip."""
    db.execute(text("SELECT 1"))
    return {"status": "healthy", "database": "ok"}

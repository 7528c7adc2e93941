from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.dependencies import require_staff
from app.models import User
from app.schemas.alerts import AlertOut
from app.services.wallet import acknowledge_alert, list_alerts

router = APIRouter()


@router.get("", response_model=list[AlertOut])
def get_alerts(
    unacknowledged: bool = False,
    student_id: Optional[str] = None,
    limit: int = Query(default=100, ge=1, le=500),
    user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return list_alerts(db, unacknowledged_only=unacknowledged, student_id=student_id, limit=limit)


@router.post("/{alert_id}/ack", response_model=AlertOut)
def ack_alert(alert_id: str, user: User = Depends(require_staff), db: Session = Depends(get_db)):
    return acknowledge_alert(db, alert_id)

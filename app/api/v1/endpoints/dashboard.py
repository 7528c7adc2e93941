from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.dependencies import require_staff
from app.models import User
from app.schemas.purchase import DashboardOut
from app.services.reports import dashboard_summary

router = APIRouter()


@router.get("", response_model=DashboardOut)
def get_dashboard(user: User = Depends(require_staff), db: Session = Depends(get_db)):
    return dashboard_summary(db)

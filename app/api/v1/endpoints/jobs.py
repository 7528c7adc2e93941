from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.dependencies import require_job_token
from app.services.jobs import run_dispatch_outbox, run_weekly_summary

router = APIRouter(dependencies=[Depends(require_job_token)])


@router.post("/dispatch-outbox")
def dispatch_outbox_job(db: Session = Depends(get_db)):
    result = run_dispatch_outbox(db)
    return JSONResponse(status_code=result.status_code, content=result.body)


@router.post("/weekly-summary")
def weekly_summary_job(db: Session = Depends(get_db)):
    result = run_weekly_summary(db)
    return JSONResponse(status_code=result.status_code, content=result.body)

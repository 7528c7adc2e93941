import logging

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.dependencies import get_current_user
from app.middlewares.rate_limit import limiter
from app.models import STAFF_ROLES, User, UserRole
from app.schemas.billing import PixChargeOut, PixChargeRequest
from app.services.billing import create_pix_charge, handle_pix_webhook, list_pix_charges
from app.services.pix import PagSeguroClient, verify_pix_signature

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/pix", response_model=PixChargeOut)
@limiter.limit("10/minute")
def create_pix(request: Request, payload: PixChargeRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    guardian_id = payload.guardian_id
    if user.role == UserRole.GUARDIAN:
        if not user.guardian_id or (guardian_id and guardian_id != user.guardian_id):
            raise HTTPException(status_code=403, detail="Not allowed to bill another guardian")
        guardian_id = user.guardian_id
    elif user.role not in STAFF_ROLES:
        raise HTTPException(status_code=403, detail="Not allowed")
    if not guardian_id:
        raise HTTPException(status_code=400, detail="guardian_id is required")
    return create_pix_charge(
        db,
        PagSeguroClient(),
        guardian_id=guardian_id,
        student_id=payload.student_id,
        amount=payload.amount,
        description=payload.description,
    )


@router.get("/pix", response_model=list[PixChargeOut])
def get_pix_charges(
    guardian_id: Optional[str] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if user.role not in STAFF_ROLES:
        if not user.guardian_id:
            raise HTTPException(status_code=403, detail="Not allowed")
        guardian_id = user.guardian_id
    return list_pix_charges(db, guardian_id=guardian_id)


@router.post("/pix/webhook")
async def pix_webhook(request: Request, db: Session = Depends(get_db)):
    if not verify_pix_signature(request.headers.get("x-pagseguro-signature")):
        raise HTTPException(status_code=401, detail="Invalid signature")
    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON body")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON body")
    charge = handle_pix_webhook(db, payload)
    logger.info("Pix webhook for %s processed (status=%s)", charge.txid, charge.status.value)
    return {"status": "ok", "txid": charge.txid, "charge_status": charge.status.value}

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.dependencies import actor_for, require_staff
from app.middlewares.rate_limit import limiter
from app.models import User
from app.schemas.purchase import AlertDraftOut, OrderOut, PurchaseRequestIn, PurchaseResponse
from app.schemas.wallet import WalletOut
from app.services.gateway import get_purchase_gateway
from app.services.purchases import CartLine, record_purchase

router = APIRouter()


@router.post("/purchase", response_model=PurchaseResponse)
@limiter.limit("60/minute")
def purchase(request: Request, payload: PurchaseRequestIn, user: User = Depends(require_staff), db: Session = Depends(get_db)):
    lines = [CartLine(product_id=i.product_id, quantity=i.quantity, unit_price=i.unit_price) for i in payload.items]
    outcome = record_purchase(
        db,
        get_purchase_gateway(db),
        student_id=payload.student_id,
        lines=lines,
        actor=actor_for(user),
    )
    return PurchaseResponse(
        order=OrderOut.model_validate(outcome.order),
        wallet=WalletOut.model_validate(outcome.wallet),
        alerts=[AlertDraftOut.model_validate(alert) for alert in outcome.alerts],
    )

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.dependencies import actor_for, get_current_user, require_admin
from app.models import STAFF_ROLES, Student, User
from app.schemas.wallet import AdjustWalletRequest, LedgerOut, UpdateWalletModelRequest, WalletOut
from app.services.wallet import adjust_wallet, get_wallet_for_student, list_ledger, update_wallet_model

router = APIRouter()


def _ensure_can_view(db: Session, user: User, student_id: str) -> None:
    if user.role in STAFF_ROLES:
        return
    student = db.query(Student).filter(Student.id == student_id).first()
    # Guardians only see their own children; unknown ids look the same as foreign ones.
    if not student or not user.guardian_id or student.guardian_id != user.guardian_id:
        raise HTTPException(status_code=404, detail="Student not found")


@router.get("/{student_id}", response_model=WalletOut)
def get_wallet(student_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    _ensure_can_view(db, user, student_id)
    return get_wallet_for_student(db, student_id)


@router.get("/{student_id}/ledger", response_model=list[LedgerOut])
def get_ledger(student_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    _ensure_can_view(db, user, student_id)
    wallet = get_wallet_for_student(db, student_id)
    return list_ledger(db, wallet, limit=50)


@router.post("/{student_id}/adjust", response_model=WalletOut)
def adjust(student_id: str, payload: AdjustWalletRequest, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return adjust_wallet(
        db,
        student_id=student_id,
        amount=payload.amount,
        description=payload.description,
        actor=actor_for(admin),
    )


@router.patch("/{student_id}/model", response_model=WalletOut)
def change_model(
    student_id: str,
    payload: UpdateWalletModelRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return update_wallet_model(
        db,
        student_id=student_id,
        model=payload.model,
        credit_limit=payload.credit_limit,
        blocked_reason=payload.blocked_reason,
        actor_id=admin.id,
    )

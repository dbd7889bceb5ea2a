from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.db.base import get_db
from app.core.audit import audit_user
from app.core.dependencies import get_current_user, require_admin
from app.core.exceptions import KuluError, http_status_for
from app.models.user import User
from app.schemas.savings import SavingsDepositCreate, SavingsDepositResponse, SavingsDeleteResponse, SavingsResponse
from app.services.savings import delete_savings_transaction, get_savings, list_savings, record_deposit
from typing import List
from uuid import UUID

router = APIRouter(prefix="/api/savings", tags=["savings"])


@router.get("", response_model=List[SavingsResponse])
def get_all_savings(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return list_savings(db)


@router.post("", response_model=SavingsDepositResponse, status_code=status.HTTP_201_CREATED)
def add_deposit(
    deposit: SavingsDepositCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Record a savings deposit for a member (admin only)."""
    try:
        transaction, savings = record_deposit(db, deposit.member_id, deposit.amount, deposit.date)
    except KuluError as e:
        raise HTTPException(status_code=http_status_for(e), detail=str(e))

    audit_user(current_user, "Savings Deposit", f"member_id={deposit.member_id}, amount={deposit.amount}")
    return {"transaction": transaction, "savings": savings}


@router.delete("/transactions/{transaction_id}", response_model=SavingsDeleteResponse)
def remove_savings_transaction(
    transaction_id: UUID,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Delete a savings transaction and recompute the member's total (admin only)."""
    try:
        savings = delete_savings_transaction(db, transaction_id)
    except KuluError as e:
        raise HTTPException(status_code=http_status_for(e), detail=str(e))

    audit_user(current_user, "Delete Savings Transaction", f"transaction_id={transaction_id}")
    return {"message": "Transaction deleted successfully", "savings": savings}


@router.get("/{savings_id}", response_model=SavingsResponse)
def get_savings_details(
    savings_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    try:
        return get_savings(db, savings_id)
    except KuluError as e:
        raise HTTPException(status_code=http_status_for(e), detail=str(e))

import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.db.base import get_db
from app.core.audit import audit_user
from app.core.dependencies import get_current_user, require_admin
from app.core.exceptions import KuluError, http_status_for
from app.models.user import User
from app.schemas.loan import (
    DisburseLoanRequest, GiveLoanRequest, GiveLoanResponse, RepayLoanRequest, RepayLoanResponse,
    LoanUpdate, LoanResponse, LoanDetailResponse, LoanMessageResponse
)
from app.services.loan import (
    delete_loan, delete_loan_transaction, disburse_sequence, get_loan, give_loan, list_loans, repay_loan, update_loan
)
from typing import List
from uuid import UUID

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/loans", tags=["loans"])


def _http_error(e: KuluError) -> HTTPException:
    return HTTPException(status_code=http_status_for(e), detail=str(e))


@router.get("", response_model=List[LoanResponse])
def get_loans(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List loans: all for admins, own loans for members."""
    return list_loans(db, current_user)


@router.post("/give", response_model=GiveLoanResponse, status_code=status.HTTP_201_CREATED)
def disburse_loan(
    loan_data: GiveLoanRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Disburse a loan funded from the members' pooled savings (admin only)."""
    try:
        loan = give_loan(db, **loan_data.model_dump())
    except KuluError as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Unexpected error giving loan to member {loan_data.member_id}: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to give loan")

    audit_user(current_user, "Give Loan", f"loan_id={loan.id}, member_id={loan.member_id}, principal={loan.principal}")
    return {"loan": loan, "message": "Loan disbursed successfully"}


@router.post("/disburse", response_model=GiveLoanResponse)
def disburse_cycle_slot(
    disbursal: DisburseLoanRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Pay out a cycle's rotation slot as a loan to the slot's member (admin only)."""
    try:
        loan = disburse_sequence(db, **disbursal.model_dump())
    except KuluError as e:
        raise _http_error(e)

    audit_user(current_user, "Disburse Cycle Loan", f"sequence_id={disbursal.sequence_id}, loan_id={loan.id}, principal={loan.principal}")
    return {"loan": loan, "message": "Loan disbursed successfully"}


@router.post("/repay", response_model=RepayLoanResponse)
def repay(
    repayment: RepayLoanRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Record the next monthly instalment of a loan (admin or the borrower)."""
    try:
        result = repay_loan(
            db,
            repayment.loan_id,
            current_user,
            payment_date=repayment.payment_date,
            is_late=repayment.is_late,
            overdue_months=repayment.overdue_months,
        )
    except KuluError as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Unexpected error repaying loan {repayment.loan_id}: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to process repayment")

    transaction = result["transaction"]
    audit_user(
        current_user,
        "Loan Repayment",
        f"loan_id={repayment.loan_id}, month={transaction.month}, amount={transaction.amount}, penalty={transaction.penalty}"
    )
    return result


@router.delete("/transactions/{transaction_id}", response_model=LoanMessageResponse)
def remove_loan_transaction(
    transaction_id: UUID,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Delete a loan transaction and recompute the loan's balance and status (admin only)."""
    try:
        loan = delete_loan_transaction(db, transaction_id)
    except KuluError as e:
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Unexpected error deleting loan transaction {transaction_id}: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to delete transaction")

    audit_user(current_user, "Delete Loan Transaction", f"transaction_id={transaction_id}, loan_id={loan.id}")
    return {"message": "Transaction deleted successfully", "loan": loan}


@router.get("/{loan_id}", response_model=LoanDetailResponse)
def get_loan_details(
    loan_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get a loan with its transactions, newest first."""
    try:
        return get_loan(db, loan_id, current_user)
    except KuluError as e:
        raise _http_error(e)


@router.put("/{loan_id}", response_model=LoanResponse)
def edit_loan(
    loan_id: UUID,
    loan_data: LoanUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    try:
        loan = update_loan(db, loan_id, reason=loan_data.reason)
    except KuluError as e:
        raise _http_error(e)

    audit_user(current_user, "Update Loan", f"loan_id={loan_id}")
    return loan


@router.delete("/{loan_id}", response_model=LoanMessageResponse)
def remove_loan(
    loan_id: UUID,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Delete a loan and all of its transactions (admin only)."""
    try:
        delete_loan(db, loan_id)
    except KuluError as e:
        raise _http_error(e)

    audit_user(current_user, "Delete Loan", f"loan_id={loan_id}")
    return {"message": "Loan deleted successfully"}

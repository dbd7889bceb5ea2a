import logging
from dataclasses import replace
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from app.core.exceptions import InvalidOperationError, NotFoundError, PermissionDeniedError, PersistenceError
from app.models.cycle import LoanSequence, SequenceStatus
from app.models.loan import Loan, LoanTransaction, LoanStatus, DisbursementMethod
from app.models.user import User
from app.services.cycle import get_cycle
from app.services.loan_ledger import apply_derived_state, reconcile_loan
from app.services.member import get_member, get_member_by_user_id
from app.services.savings import deduct_for_loan
from uuid import UUID
from decimal import Decimal
from datetime import datetime, timedelta, timezone
from typing import List, Optional

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
# Repayment periods are counted in 30-day months from disbursement
BILLING_MONTH = timedelta(days=30)
# Late penalty per overdue month, as a fraction of the outstanding balance
LATE_PENALTY_RATE = Decimal("0.005")
# Repayment term of a loan paid out from a cycle's rotation slot
CYCLE_LOAN_MONTHS = 10


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _naive_utc(value: datetime) -> datetime:
    """Stored timestamps are naive UTC."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _check_guarantors(db: Session, guarantor1_id: Optional[UUID], guarantor2_id: Optional[UUID]) -> None:
    for label, guarantor_id in (("Guarantor 1", guarantor1_id), ("Guarantor 2", guarantor2_id)):
        if guarantor_id is not None:
            try:
                get_member(db, guarantor_id)
            except NotFoundError:
                raise NotFoundError(f"{label} not found")


def _new_loan(db: Session, principal: Decimal, disbursed_at: datetime, **fields) -> Loan:
    """Deduct the principal from the savings pool and add a PENDING loan. Does not commit."""
    deduct_for_loan(db, principal, disbursed_at)
    loan = Loan(
        principal=principal,
        remaining=principal,
        current_month=0,
        total_principal_paid=Decimal("0.00"),
        late_payment_penalty=Decimal("0.00"),
        status=LoanStatus.PENDING,
        disbursed_at=disbursed_at,
        **fields,
    )
    db.add(loan)
    return loan


def get_loan_record(db: Session, loan_id: UUID) -> Loan:
    loan = db.query(Loan).filter(Loan.id == loan_id).first()
    if not loan:
        raise NotFoundError("Loan not found")
    return loan


def list_loan_transactions(db: Session, loan_id: UUID) -> List[LoanTransaction]:
    """All transactions of a loan, ordered by month ascending."""
    return db.query(LoanTransaction).filter(
        LoanTransaction.loan_id == loan_id
    ).order_by(LoanTransaction.month.asc(), LoanTransaction.date.asc()).all()


def _ensure_can_access(db: Session, loan: Loan, user: User, action: str) -> None:
    """Non-admin users may only touch loans of their own member record."""
    if user.is_admin:
        return
    member = get_member_by_user_id(db, user.id)
    if not member or loan.member_id != member.id:
        raise PermissionDeniedError(f"You can only {action} your own loans")


def list_loans(db: Session, user: User) -> List[Loan]:
    """Admins see every loan; members see their own."""
    query = db.query(Loan)
    if not user.is_admin:
        member = get_member_by_user_id(db, user.id)
        if not member:
            return []
        query = query.filter(Loan.member_id == member.id)
    return query.order_by(Loan.created_at.desc()).all()


def get_loan(db: Session, loan_id: UUID, user: User) -> Loan:
    loan = get_loan_record(db, loan_id)
    _ensure_can_access(db, loan, user, "view")
    return loan


def give_loan(
    db: Session,
    member_id: UUID,
    principal: Decimal,
    months: int,
    reason: Optional[str] = None,
    guarantor1_id: Optional[UUID] = None,
    guarantor2_id: Optional[UUID] = None,
    disbursement_method: Optional[DisbursementMethod] = None,
    cycle_id: Optional[UUID] = None,
) -> Loan:
    """Disburse a loan out of the pooled savings.

    The principal is deducted from every member's savings in proportion to
    their balance and the loan is created with no transactions, all in one
    database transaction.
    """
    get_member(db, member_id)
    _check_guarantors(db, guarantor1_id, guarantor2_id)
    if cycle_id is not None:
        get_cycle(db, cycle_id)

    disbursed_at = _utcnow()
    try:
        loan = _new_loan(
            db,
            member_id=member_id,
            cycle_id=cycle_id,
            principal=principal,
            months=months,
            reason=reason,
            guarantor1_id=guarantor1_id,
            guarantor2_id=guarantor2_id,
            disbursement_method=disbursement_method,
            disbursed_at=disbursed_at,
        )
        db.commit()
    except InvalidOperationError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to give loan to member {member_id}: {e}", exc_info=True)
        raise PersistenceError("Failed to give loan") from e

    db.refresh(loan)
    logger.info(f"Disbursed loan {loan.id} of {principal} over {months} months to member {member_id}")
    return loan


def disburse_sequence(
    db: Session,
    sequence_id: UUID,
    disbursed_at: Optional[datetime] = None,
    guarantor1_id: Optional[UUID] = None,
    guarantor2_id: Optional[UUID] = None,
    disbursement_method: Optional[DisbursementMethod] = None,
) -> Loan:
    """Pay out a cycle's rotation slot as a loan to the slot's member.

    The pooled amount is deducted from savings, the loan is created against
    the cycle and the slot is marked DISBURSED in one database transaction.
    """
    sequence = db.query(LoanSequence).filter(LoanSequence.id == sequence_id).first()
    if not sequence:
        raise NotFoundError("Loan sequence not found")
    if sequence.status == SequenceStatus.DISBURSED:
        raise InvalidOperationError("Loan already disbursed")
    _check_guarantors(db, guarantor1_id, guarantor2_id)

    disbursed_at = _naive_utc(disbursed_at) if disbursed_at else _utcnow()
    cycle = sequence.cycle
    try:
        loan = _new_loan(
            db,
            member_id=sequence.member_id,
            cycle_id=sequence.cycle_id,
            sequence_id=sequence.id,
            principal=Decimal(sequence.loan_amount),
            months=CYCLE_LOAN_MONTHS,
            guarantor1_id=guarantor1_id,
            guarantor2_id=guarantor2_id,
            disbursement_method=disbursement_method,
            disbursed_at=disbursed_at,
        )
        sequence.status = SequenceStatus.DISBURSED
        sequence.disbursed_at = disbursed_at
        cycle.current_month = max(cycle.current_month or 0, sequence.month)
        db.commit()
    except InvalidOperationError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to disburse loan sequence {sequence_id}: {e}", exc_info=True)
        raise PersistenceError("Failed to disburse loan") from e

    db.refresh(loan)
    logger.info(
        f"Disbursed cycle {cycle.cycle_number} month {sequence.month} slot as loan {loan.id} "
        f"of {loan.principal} to member {loan.member_id}"
    )
    return loan


def repay_loan(
    db: Session,
    loan_id: UUID,
    user: User,
    payment_date: Optional[datetime] = None,
    is_late: bool = False,
    overdue_months: int = 0,
) -> dict:
    """Record one monthly instalment against a loan.

    The instalment is principal / months (no interest). Months missed since
    disbursement are skipped over and charged a late penalty on the
    outstanding balance. The loan's derived fields are then recomputed from
    the full transaction set; if that completes the loan, the completion
    timestamp is set to the payment date.
    """
    loan = get_loan_record(db, loan_id)
    _ensure_can_access(db, loan, user, "repay")
    if loan.status == LoanStatus.COMPLETED:
        raise InvalidOperationError("Loan already completed")

    payment_date = _naive_utc(payment_date) if payment_date else _utcnow()
    disbursed_at = loan.disbursed_at or payment_date

    months_since_disbursal = max(0, (payment_date - disbursed_at) // BILLING_MONTH)
    expected_month = months_since_disbursal + 1
    missed_months = max(0, expected_month - loan.current_month - 1)

    outstanding = Decimal(loan.remaining)
    penalty_months = missed_months
    # A late flag with its own overdue count adds to the missed months unless it repeats them
    if is_late and overdue_months > 0 and overdue_months != missed_months:
        penalty_months += overdue_months
    late_penalty = (outstanding * LATE_PENALTY_RATE * penalty_months).quantize(CENT)
    monthly_amount = (Decimal(loan.principal) / loan.months).quantize(CENT)
    amount = max(Decimal("0"), min(monthly_amount, outstanding))
    month = loan.current_month + 1 + missed_months

    try:
        transaction = LoanTransaction(
            loan_id=loan.id,
            date=payment_date,
            month=month,
            amount=amount,
            penalty=late_penalty,
        )
        db.add(transaction)
        db.flush()

        state = reconcile_loan(loan, list_loan_transactions(db, loan.id))
        if state.status == LoanStatus.COMPLETED and state.completed_at is None:
            state = replace(state, completed_at=payment_date)
        apply_derived_state(loan, state)
        transaction.remaining = state.remaining
        loan.late_payment_penalty = Decimal(loan.late_payment_penalty or 0) + late_penalty
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to record repayment for loan {loan_id}: {e}", exc_info=True)
        raise PersistenceError("Failed to process repayment") from e

    db.refresh(loan)
    db.refresh(transaction)
    logger.info(f"Loan {loan.id} repayment for month {month}: {amount} (penalty {late_penalty}), status {loan.status.value}")

    return {
        "loan": loan,
        "transaction": transaction,
        "payment": {
            "principal": amount,
            "late_penalty": late_penalty,
            "total": amount + late_penalty,
            "new_balance": loan.remaining,
            "monthly_amount": monthly_amount,
            "missed_months": missed_months,
            "expected_month": expected_month,
            "is_late": missed_months > 0 or is_late,
        },
    }


def delete_loan_transaction(db: Session, transaction_id: UUID) -> Loan:
    """Delete a loan transaction and reconcile its loan.

    The delete, the read-back of the surviving transactions and the write of
    the recomputed fields share one database transaction; on any storage
    error nothing is changed.
    """
    transaction = db.query(LoanTransaction).filter(LoanTransaction.id == transaction_id).first()
    if not transaction:
        raise NotFoundError("Transaction not found")

    loan = transaction.loan
    try:
        db.delete(transaction)
        db.flush()

        state = reconcile_loan(loan, list_loan_transactions(db, loan.id))
        apply_derived_state(loan, state)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to delete loan transaction {transaction_id}: {e}", exc_info=True)
        raise PersistenceError("Failed to delete transaction") from e

    db.refresh(loan)
    logger.info(
        f"Deleted loan transaction {transaction_id}; loan {loan.id} now "
        f"remaining={loan.remaining} month={loan.current_month} status={loan.status.value}"
    )
    return loan


def update_loan(db: Session, loan_id: UUID, reason: Optional[str] = None) -> Loan:
    """Update the editable (non-derived) fields of a loan."""
    loan = get_loan_record(db, loan_id)
    if reason is not None:
        loan.reason = reason
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to update loan {loan_id}: {e}", exc_info=True)
        raise PersistenceError("Failed to update loan") from e
    db.refresh(loan)
    return loan


def delete_loan(db: Session, loan_id: UUID) -> None:
    """Delete a loan together with all of its transactions."""
    loan = get_loan_record(db, loan_id)
    try:
        db.delete(loan)  # Transactions go with it (delete-orphan cascade)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to delete loan {loan_id}: {e}", exc_info=True)
        raise PersistenceError("Failed to delete loan") from e
    logger.info(f"Deleted loan {loan_id}")

import logging
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from app.core.exceptions import InvalidOperationError, NotFoundError, PersistenceError
from app.models.savings import Savings, SavingsTransaction
from app.services.member import get_member
from uuid import UUID
from decimal import Decimal, ROUND_DOWN
from datetime import datetime
from typing import Dict, List, Tuple

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def list_savings(db: Session) -> List[Savings]:
    return db.query(Savings).order_by(Savings.created_at.desc()).all()


def get_savings(db: Session, savings_id: UUID) -> Savings:
    savings = db.query(Savings).filter(Savings.id == savings_id).first()
    if not savings:
        raise NotFoundError("Savings not found")
    return savings


def get_or_create_savings(db: Session, member_id: UUID) -> Savings:
    """Find the member's savings record, creating an empty one if needed."""
    savings = db.query(Savings).filter(Savings.member_id == member_id).first()
    if not savings:
        savings = Savings(member_id=member_id, total_amount=Decimal("0.00"))
        db.add(savings)
        db.flush()
    return savings


def recompute_savings_total(db: Session, savings: Savings) -> Decimal:
    """Set the savings total from the full set of its transactions.

    Loan deductions are negative, so the total is the plain sum, floored at zero.
    """
    db.flush()
    amounts = db.query(SavingsTransaction.amount).filter(
        SavingsTransaction.savings_id == savings.id
    ).all()
    total = sum((Decimal(row.amount) for row in amounts), Decimal("0"))
    savings.total_amount = max(Decimal("0"), total)
    return savings.total_amount


def _add_transaction(db: Session, savings: Savings, amount: Decimal, date: datetime) -> SavingsTransaction:
    """Append a transaction and refresh the total. Does not commit."""
    transaction = SavingsTransaction(savings_id=savings.id, date=date, amount=amount, total=Decimal("0.00"))
    db.add(transaction)
    transaction.total = recompute_savings_total(db, savings)
    return transaction


def record_deposit(db: Session, member_id: UUID, amount: Decimal, date: datetime) -> Tuple[SavingsTransaction, Savings]:
    """Record a savings deposit for a member."""
    get_member(db, member_id)
    try:
        savings = get_or_create_savings(db, member_id)
        transaction = _add_transaction(db, savings, amount, date)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to record deposit for member {member_id}: {e}", exc_info=True)
        raise PersistenceError("Failed to create savings transaction") from e

    db.refresh(transaction)
    db.refresh(savings)
    return transaction, savings


def delete_savings_transaction(db: Session, transaction_id: UUID) -> Savings:
    """Delete a savings transaction and recompute the savings total atomically."""
    transaction = db.query(SavingsTransaction).filter(SavingsTransaction.id == transaction_id).first()
    if not transaction:
        raise NotFoundError("Transaction not found")

    savings = transaction.savings
    try:
        db.delete(transaction)
        recompute_savings_total(db, savings)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to delete savings transaction {transaction_id}: {e}", exc_info=True)
        raise PersistenceError("Failed to delete transaction") from e

    db.refresh(savings)
    logger.info(f"Deleted savings transaction {transaction_id}; savings {savings.id} total now {savings.total_amount}")
    return savings


def allocate_proportionally(balances: Dict[UUID, Decimal], amount: Decimal) -> Dict[UUID, Decimal]:
    """Split ``amount`` across balances in proportion to their size.

    Shares are rounded down to the cent; the rounding remainder is taken from
    whichever balances still have room, in iteration order. The caller must
    ensure ``sum(balances) >= amount``.
    """
    total = sum(balances.values(), Decimal("0"))
    shares = {}
    left = amount
    for key, balance in balances.items():
        share = (amount * balance / total).quantize(CENT, rounding=ROUND_DOWN)
        share = min(share, balance, left)
        shares[key] = share
        left -= share

    for key, balance in balances.items():
        if left <= 0:
            break
        extra = min(balance - shares[key], left)
        shares[key] += extra
        left -= extra

    return shares


def deduct_for_loan(db: Session, amount: Decimal, date: datetime) -> Decimal:
    """Withdraw a loan principal from the pooled savings. Does not commit.

    Returns the pooled total before the deduction.
    """
    accounts = db.query(Savings).filter(Savings.total_amount > 0).all()
    if not accounts:
        raise InvalidOperationError("No savings available to disburse loan")

    available = sum((Decimal(a.total_amount) for a in accounts), Decimal("0"))
    if available < amount:
        raise InvalidOperationError(f"Insufficient savings. Available: {available:.2f}, Required: {amount:.2f}")

    balances = {a.id: Decimal(a.total_amount) for a in accounts}
    shares = allocate_proportionally(balances, amount)
    for account in accounts:
        share = shares[account.id]
        if share > 0:
            _add_transaction(db, account, -share, date)

    return available

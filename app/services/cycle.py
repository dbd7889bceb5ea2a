import logging
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from app.core.exceptions import InvalidOperationError, NotFoundError, PersistenceError
from app.models.cycle import Cycle, LoanSequence, SequenceStatus
from app.models.loan import Loan, LoanStatus
from app.models.member import Member
from uuid import UUID
from decimal import Decimal
from datetime import datetime, timezone
from typing import List, Optional

logger = logging.getLogger(__name__)


def list_cycles(db: Session) -> List[Cycle]:
    return db.query(Cycle).order_by(Cycle.cycle_number.desc()).all()


def get_cycle(db: Session, cycle_id: UUID) -> Cycle:
    cycle = db.query(Cycle).filter(Cycle.id == cycle_id).first()
    if not cycle:
        raise NotFoundError("Cycle not found")
    return cycle


def next_cycle_number(db: Session) -> int:
    last_cycle = db.query(Cycle).order_by(Cycle.cycle_number.desc()).first()
    return last_cycle.cycle_number + 1 if last_cycle else 1


def create_cycle(
    db: Session,
    member_ids: List[UUID],
    monthly_amount: Decimal,
    start_date: Optional[datetime] = None
) -> Cycle:
    """Create a cycle with one rotation slot per member.

    Members receive the pooled amount (monthly_amount x number of members)
    in the order given: the first member in month 1, the second in month 2.
    """
    if len(set(member_ids)) != len(member_ids):
        raise InvalidOperationError("Duplicate members in cycle")
    members = db.query(Member).filter(Member.id.in_(member_ids)).all()
    if len(members) != len(member_ids):
        raise NotFoundError("One or more members not found")

    pooled_amount = Decimal(monthly_amount) * len(member_ids)
    try:
        cycle = Cycle(
            cycle_number=next_cycle_number(db),
            start_date=start_date or datetime.now(timezone.utc).replace(tzinfo=None),
            monthly_amount=monthly_amount,
            total_members=len(member_ids),
            is_active=True,
            current_month=0,
        )
        db.add(cycle)
        db.flush()  # Get cycle.id

        for index, member_id in enumerate(member_ids):
            db.add(LoanSequence(
                cycle_id=cycle.id,
                member_id=member_id,
                month=index + 1,
                loan_amount=pooled_amount,
                status=SequenceStatus.PENDING,
            ))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create cycle: {e}", exc_info=True)
        raise PersistenceError("Failed to create cycle") from e

    db.refresh(cycle)
    logger.info(f"Created cycle {cycle.cycle_number} with {len(member_ids)} members, pooled amount {pooled_amount}")
    return cycle


def update_cycle(
    db: Session,
    cycle_id: UUID,
    start_date: Optional[datetime] = None,
    monthly_amount: Optional[Decimal] = None,
    is_active: Optional[bool] = None
) -> Cycle:
    """Update a cycle's schedule, contribution or active flag.

    A new monthly amount re-prices the slots that have not been paid out yet.
    """
    cycle = get_cycle(db, cycle_id)
    if start_date is not None:
        cycle.start_date = start_date
    if is_active is not None:
        cycle.is_active = is_active
    if monthly_amount is not None:
        cycle.monthly_amount = monthly_amount
        pooled_amount = Decimal(monthly_amount) * cycle.total_members
        for sequence in cycle.sequences:
            if sequence.status == SequenceStatus.PENDING:
                sequence.loan_amount = pooled_amount
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to update cycle {cycle_id}: {e}", exc_info=True)
        raise PersistenceError("Failed to update cycle") from e

    db.refresh(cycle)
    logger.info(f"Updated cycle {cycle.cycle_number}: monthly_amount={cycle.monthly_amount}, is_active={cycle.is_active}")
    return cycle


def delete_cycle(db: Session, cycle_id: UUID) -> None:
    """Delete a cycle with its rotation slots and its settled loans."""
    cycle = get_cycle(db, cycle_id)
    loans = db.query(Loan).filter(Loan.cycle_id == cycle.id).all()
    if any(loan.status in (LoanStatus.ACTIVE, LoanStatus.PENDING) for loan in loans):
        raise InvalidOperationError(
            "Cannot delete cycle with active or pending loans. Please complete or cancel all loans first."
        )

    try:
        for loan in loans:
            db.delete(loan)  # Transactions go with it
        db.flush()
        db.expire(cycle)
        db.delete(cycle)  # Rotation slots go with it
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to delete cycle {cycle_id}: {e}", exc_info=True)
        raise PersistenceError("Failed to delete cycle") from e
    logger.info(f"Deleted cycle {cycle_id} and {len(loans)} completed loans")

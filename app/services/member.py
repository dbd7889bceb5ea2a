import logging
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from app.core.exceptions import InvalidOperationError, NotFoundError, PersistenceError
from app.core.security import get_password_hash
from app.models.cycle import LoanSequence, SequenceStatus
from app.models.loan import Loan, LoanStatus
from app.models.member import Member
from app.models.savings import Savings
from app.models.user import User, UserRoleEnum
from uuid import UUID
from typing import List, Optional

logger = logging.getLogger(__name__)

# Member columns an admin may edit
MEMBER_FIELDS = ("member_code", "name", "father_name", "address1", "address2", "account_number", "phone")


def get_member(db: Session, member_id: UUID) -> Member:
    member = db.query(Member).filter(Member.id == member_id).first()
    if not member:
        raise NotFoundError("Member not found")
    return member


def get_member_by_user_id(db: Session, user_id: UUID) -> Optional[Member]:
    """Get the member record linked to a login account."""
    return db.query(Member).filter(Member.user_id == user_id).first()


def list_members(db: Session) -> List[Member]:
    return db.query(Member).order_by(Member.created_at.desc()).all()


def _normalize_account_number(account_number: Optional[str]) -> Optional[str]:
    if account_number is None:
        return None
    account_number = account_number.strip()
    return account_number or None


def create_member(
    db: Session,
    member_code: str,
    name: str,
    email: str,
    password: Optional[str] = None,
    **kwargs
) -> Member:
    """Create a member together with its USER login account."""
    email = email.lower().strip()
    if db.query(User).filter(User.email == email).first():
        raise InvalidOperationError("User with this email already exists")
    if db.query(Member).filter(Member.member_code == member_code).first():
        raise InvalidOperationError("Member code already exists")

    account_number = _normalize_account_number(kwargs.pop("account_number", None))
    if account_number and db.query(Member).filter(Member.account_number == account_number).first():
        raise InvalidOperationError("Account number already exists")

    try:
        user = User(
            email=email,
            name=name,
            phone=kwargs.get("phone"),
            password_hash=get_password_hash(password) if password else None,
            role=UserRoleEnum.USER,
        )
        db.add(user)
        db.flush()  # Get user.id

        member = Member(
            user_id=user.id,
            member_code=member_code,
            name=name,
            account_number=account_number,
            **kwargs
        )
        db.add(member)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"IntegrityError creating member {member_code}: {e.orig}")
        raise InvalidOperationError("A record with this information already exists") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create member {member_code}: {e}", exc_info=True)
        raise PersistenceError("Failed to create member") from e

    db.refresh(member)
    logger.info(f"Created member {member.member_code} ({member.id})")
    return member


def update_member(db: Session, member_id: UUID, email: Optional[str] = None, **changes) -> Member:
    """Update member details and keep the linked login account in sync."""
    member = get_member(db, member_id)

    if "account_number" in changes:
        changes["account_number"] = _normalize_account_number(changes["account_number"])
        account_number = changes["account_number"]
        if account_number:
            existing = db.query(Member).filter(Member.account_number == account_number).first()
            if existing and existing.id != member.id:
                raise InvalidOperationError("Account number already exists")

    user = member.user
    if email is not None:
        email = email.lower().strip()
        existing_user = db.query(User).filter(User.email == email).first()
        if existing_user and (user is None or existing_user.id != user.id):
            raise InvalidOperationError("Email is already in use by another user")

    try:
        for field, value in changes.items():
            if field in MEMBER_FIELDS:
                setattr(member, field, value)

        if user is not None:
            if "name" in changes:
                user.name = changes["name"]
            if "phone" in changes:
                user.phone = changes["phone"]
            if email is not None:
                user.email = email
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise InvalidOperationError("A record with this information already exists") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to update member {member_id}: {e}", exc_info=True)
        raise PersistenceError("Failed to update member") from e

    db.refresh(member)
    return member


def delete_member(db: Session, member_id: UUID) -> None:
    """Delete a member, its login account, its savings and its settled loans.

    Refused while the member still owes on a loan or waits for a rotation
    slot in an active cycle. Loans the member guaranteed lose the guarantor.
    """
    member = get_member(db, member_id)
    loans = db.query(Loan).filter(Loan.member_id == member.id).all()
    if any(loan.status in (LoanStatus.ACTIVE, LoanStatus.PENDING) for loan in loans):
        raise InvalidOperationError("Cannot delete member with active or pending loans")
    sequences = db.query(LoanSequence).filter(LoanSequence.member_id == member.id).all()
    if any(s.status == SequenceStatus.PENDING and s.cycle.is_active for s in sequences):
        raise InvalidOperationError("Cannot delete member with a pending slot in an active cycle")

    try:
        db.query(Loan).filter(Loan.guarantor1_id == member.id).update({Loan.guarantor1_id: None}, synchronize_session="fetch")
        db.query(Loan).filter(Loan.guarantor2_id == member.id).update({Loan.guarantor2_id: None}, synchronize_session="fetch")
        for loan in loans:
            db.delete(loan)
        db.flush()
        for sequence in sequences:
            db.delete(sequence)
        savings = db.query(Savings).filter(Savings.member_id == member.id).first()
        if savings:
            db.delete(savings)  # Transactions go with it
        db.flush()
        db.expire(member)

        user = db.query(User).filter(User.id == member.user_id).first() if member.user_id else None
        db.delete(member)
        db.flush()
        if user:
            db.delete(user)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to delete member {member_id}: {e}", exc_info=True)
        raise PersistenceError("Failed to delete member") from e
    logger.info(f"Deleted member {member_id} and its user account")

from sqlalchemy import func
from sqlalchemy.orm import Session
from app.models.cycle import Cycle
from app.models.loan import Loan, LoanStatus
from app.models.member import Member
from app.models.savings import Savings
from app.models.statement import MonthlyStatement
from app.models.user import User
from app.services.member import get_member_by_user_id
from decimal import Decimal


def _sum(db: Session, column, *criteria) -> Decimal:
    value = db.query(func.sum(column)).filter(*criteria).scalar()
    return Decimal(str(value)) if value is not None else Decimal("0")


def _loan_stats(db: Session, *criteria) -> dict:
    return {
        "total_loans": db.query(Loan).filter(*criteria).count(),
        "active_loans": db.query(Loan).filter(Loan.status == LoanStatus.ACTIVE, *criteria).count(),
        "completed_loans": db.query(Loan).filter(Loan.status == LoanStatus.COMPLETED, *criteria).count(),
        "total_loan_amount": _sum(db, Loan.principal, *criteria),
        "total_remaining_loans": _sum(db, Loan.remaining, Loan.status == LoanStatus.ACTIVE, *criteria),
    }


def get_stats(db: Session, user: User) -> dict:
    """Dashboard figures: group-wide for admins, own figures for members."""
    if user.is_admin:
        stats = {
            "total_members": db.query(Member).count(),
            "total_savings": _sum(db, Savings.total_amount),
        }
        stats.update(_loan_stats(db))
        stats["active_cycles"] = db.query(Cycle).filter(Cycle.is_active == True).count()
        stats["total_statements"] = db.query(MonthlyStatement).count()
        return stats

    member = get_member_by_user_id(db, user.id)
    if not member:
        return {
            "total_savings": Decimal("0"),
            "total_loans": 0,
            "active_loans": 0,
            "completed_loans": 0,
            "total_loan_amount": Decimal("0"),
            "total_remaining_loans": Decimal("0"),
        }

    stats = {"total_savings": _sum(db, Savings.total_amount, Savings.member_id == member.id)}
    stats.update(_loan_stats(db, Loan.member_id == member.id))
    return stats

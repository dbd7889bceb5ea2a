from app.db.base import Base

# Import all models so Alembic can detect them
from app.models.user import User, UserRoleEnum
from app.models.member import Member
from app.models.savings import Savings, SavingsTransaction
from app.models.cycle import Cycle, LoanSequence, SequenceStatus
from app.models.loan import Loan, LoanTransaction, LoanStatus, DisbursementMethod
from app.models.statement import MonthlyStatement

__all__ = [
    "Base",
    "User",
    "UserRoleEnum",
    "Member",
    "Savings",
    "SavingsTransaction",
    "Cycle",
    "LoanSequence",
    "SequenceStatus",
    "Loan",
    "LoanTransaction",
    "LoanStatus",
    "DisbursementMethod",
    "MonthlyStatement",
]

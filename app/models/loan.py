from sqlalchemy import Column, String, ForeignKey, DateTime, Integer, Numeric, Enum as SQLEnum, Text, Uuid, text
from sqlalchemy.orm import relationship
import uuid
from app.db.base import Base
import enum
from decimal import Decimal


class LoanStatus(str, enum.Enum):
    """Loan lifecycle status. Derived from the loan's transactions."""
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class DisbursementMethod(str, enum.Enum):
    """How the principal was handed to the borrower."""
    CASH = "CASH"
    UPI = "UPI"
    BANK_TRANSFER = "BANK_TRANSFER"


class Loan(Base):
    """Loan disbursed to a member and repaid over a fixed number of months.

    remaining, current_month, total_principal_paid, status and completed_at
    are derived fields; they are only ever written from a reconciliation
    over the full transaction set (see app.services.loan_ledger).
    """
    __tablename__ = "loan"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    member_id = Column(Uuid(as_uuid=True), ForeignKey("member.id"), nullable=False, index=True)
    cycle_id = Column(Uuid(as_uuid=True), ForeignKey("cycle.id"), nullable=True, index=True)
    sequence_id = Column(Uuid(as_uuid=True), ForeignKey("loan_sequence.id"), nullable=True)  # Rotation slot this loan paid out
    principal = Column(Numeric(12, 2), nullable=False)
    months = Column(Integer, nullable=False)
    remaining = Column(Numeric(12, 2), nullable=False)
    current_month = Column(Integer, nullable=False, default=0)
    total_principal_paid = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    late_payment_penalty = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    status = Column(SQLEnum(LoanStatus, native_enum=False, values_callable=lambda obj: [e.value for e in obj]), default=LoanStatus.PENDING, nullable=False)
    reason = Column(Text, nullable=True)
    guarantor1_id = Column(Uuid(as_uuid=True), ForeignKey("member.id"), nullable=True)
    guarantor2_id = Column(Uuid(as_uuid=True), ForeignKey("member.id"), nullable=True)
    disbursement_method = Column(SQLEnum(DisbursementMethod, native_enum=False, values_callable=lambda obj: [e.value for e in obj]), nullable=True)
    disbursed_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    # Relationships
    member = relationship("Member", back_populates="loans", foreign_keys=[member_id])
    guarantor1 = relationship("Member", foreign_keys=[guarantor1_id])
    guarantor2 = relationship("Member", foreign_keys=[guarantor2_id])
    cycle = relationship("Cycle", back_populates="loans")
    sequence = relationship("LoanSequence")
    transactions = relationship(
        "LoanTransaction",
        back_populates="loan",
        order_by="desc(LoanTransaction.date)",
        cascade="all, delete-orphan",
    )


class LoanTransaction(Base):
    """A repayment applied to a loan's principal in a given month."""
    __tablename__ = "loan_transaction"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    loan_id = Column(Uuid(as_uuid=True), ForeignKey("loan.id"), nullable=False, index=True)
    date = Column(DateTime, nullable=False)
    month = Column(Integer, nullable=False)  # Period index within the loan term
    amount = Column(Numeric(12, 2), nullable=False)
    penalty = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))  # Not applied to principal
    remaining = Column(Numeric(12, 2), nullable=True)  # Balance snapshot after this payment
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    # Relationships
    loan = relationship("Loan", back_populates="transactions")

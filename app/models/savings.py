from sqlalchemy import Column, ForeignKey, DateTime, Numeric, Uuid, text
from sqlalchemy.orm import relationship
import uuid
from decimal import Decimal
from app.db.base import Base


class Savings(Base):
    """A member's savings balance. total_amount is derived from its transactions."""
    __tablename__ = "savings"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    member_id = Column(Uuid(as_uuid=True), ForeignKey("member.id"), nullable=False, unique=True, index=True)
    total_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    # Relationships
    member = relationship("Member", back_populates="savings")
    transactions = relationship(
        "SavingsTransaction",
        back_populates="savings",
        order_by="desc(SavingsTransaction.date)",
        cascade="all, delete-orphan",
    )


class SavingsTransaction(Base):
    """Deposit (positive) or loan disbursement deduction (negative)."""
    __tablename__ = "savings_transaction"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    savings_id = Column(Uuid(as_uuid=True), ForeignKey("savings.id"), nullable=False, index=True)
    date = Column(DateTime, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    total = Column(Numeric(12, 2), nullable=False)  # Running total after this transaction
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    # Relationships
    savings = relationship("Savings", back_populates="transactions")

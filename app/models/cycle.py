from sqlalchemy import Column, ForeignKey, DateTime, Enum as SQLEnum, Boolean, UniqueConstraint, Integer, Numeric, Uuid, text
from sqlalchemy.orm import relationship
import uuid
from app.db.base import Base
import enum


class SequenceStatus(str, enum.Enum):
    """Rotation slot status."""
    PENDING = "PENDING"
    DISBURSED = "DISBURSED"


class Cycle(Base):
    """ROSCA cycle: every member contributes monthly, one member receives the pool each month."""
    __tablename__ = "cycle"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    cycle_number = Column(Integer, nullable=False, unique=True, index=True)
    start_date = Column(DateTime, nullable=False)
    monthly_amount = Column(Numeric(12, 2), nullable=False)  # Contribution per member per month
    total_members = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    current_month = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    # Relationships
    sequences = relationship("LoanSequence", back_populates="cycle", order_by="LoanSequence.month", cascade="all, delete-orphan")
    loans = relationship("Loan", back_populates="cycle")


class LoanSequence(Base):
    """Which member receives the pooled amount in which month of a cycle."""
    __tablename__ = "loan_sequence"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    cycle_id = Column(Uuid(as_uuid=True), ForeignKey("cycle.id"), nullable=False, index=True)
    member_id = Column(Uuid(as_uuid=True), ForeignKey("member.id"), nullable=False, index=True)
    month = Column(Integer, nullable=False)
    loan_amount = Column(Numeric(12, 2), nullable=False)
    status = Column(SQLEnum(SequenceStatus, native_enum=False, values_callable=lambda obj: [e.value for e in obj]), default=SequenceStatus.PENDING, nullable=False)
    disbursed_at = Column(DateTime, nullable=True)

    # Relationships
    cycle = relationship("Cycle", back_populates="sequences")
    member = relationship("Member", back_populates="loan_sequences")

    # One slot per month per cycle
    __table_args__ = (
        UniqueConstraint("cycle_id", "month", name="uq_loan_sequence_cycle_month"),
    )

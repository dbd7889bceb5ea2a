from sqlalchemy import Column, String, ForeignKey, DateTime, Text, Uuid, text
from sqlalchemy.orm import relationship
import uuid
from app.db.base import Base


class Member(Base):
    """Group member, optionally linked 1:1 to a login account."""
    __tablename__ = "member"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("user.id"), nullable=True, unique=True, index=True)
    member_code = Column(String(50), nullable=False, unique=True, index=True)  # e.g. "M001"
    name = Column(String(200), nullable=False)
    father_name = Column(String(200), nullable=True)
    address1 = Column(Text, nullable=True)
    address2 = Column(Text, nullable=True)
    account_number = Column(String(50), nullable=True, unique=True)
    phone = Column(String(20), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    # Relationships
    user = relationship("User", back_populates="member")
    savings = relationship("Savings", back_populates="member", uselist=False)
    loans = relationship("Loan", back_populates="member", foreign_keys="[Loan.member_id]")
    loan_sequences = relationship("LoanSequence", back_populates="member")

    @property
    def email(self):
        """Login email of the linked account."""
        return self.user.email if self.user else None

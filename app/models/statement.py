from sqlalchemy import Column, String, DateTime, Integer, UniqueConstraint, Uuid, text, func
import uuid
from app.db.base import Base


class MonthlyStatement(Base):
    """Published monthly statement for the group."""
    __tablename__ = "monthly_statement"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    month = Column(Integer, nullable=False)  # 1-12
    year = Column(Integer, nullable=False)
    pdf_url = Column(String(500), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))
    updated_at = Column(DateTime, nullable=True, onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("month", "year", name="uq_monthly_statement_month_year"),
    )

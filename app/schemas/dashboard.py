from pydantic import BaseModel
from typing import Optional


class DashboardStats(BaseModel):
    """Dashboard figures. Member-count, cycle and statement figures are admin-only."""
    total_savings: float
    total_loans: int
    active_loans: int
    completed_loans: int
    total_loan_amount: float
    total_remaining_loans: float
    total_members: Optional[int] = None
    active_cycles: Optional[int] = None
    total_statements: Optional[int] = None

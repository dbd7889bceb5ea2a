from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from uuid import UUID
from app.models.loan import DisbursementMethod, LoanStatus


class GiveLoanRequest(BaseModel):
    """Schema for disbursing a loan."""
    member_id: UUID = Field(..., description="Borrowing member")
    principal: Decimal = Field(..., gt=0, decimal_places=2, description="Loan amount")
    months: int = Field(10, gt=0, description="Repayment term in months")
    reason: Optional[str] = None
    guarantor1_id: Optional[UUID] = None
    guarantor2_id: Optional[UUID] = None
    disbursement_method: Optional[DisbursementMethod] = None
    cycle_id: Optional[UUID] = Field(None, description="Cycle the loan belongs to, if any")


class DisburseLoanRequest(BaseModel):
    """Schema for paying out a cycle's rotation slot."""
    sequence_id: UUID = Field(..., description="Rotation slot to pay out")
    disbursed_at: Optional[datetime] = Field(None, description="Defaults to now")
    guarantor1_id: Optional[UUID] = None
    guarantor2_id: Optional[UUID] = None
    disbursement_method: Optional[DisbursementMethod] = None


class RepayLoanRequest(BaseModel):
    """Schema for recording a monthly instalment."""
    loan_id: UUID
    payment_date: Optional[datetime] = Field(None, description="Defaults to now")
    is_late: bool = False
    overdue_months: int = Field(0, ge=0, description="Extra overdue months charged when is_late is set")


class LoanUpdate(BaseModel):
    """Schema for updating a loan. Balance and status are derived and not editable."""
    reason: Optional[str] = None


class LoanTransactionResponse(BaseModel):
    id: UUID
    loan_id: UUID
    date: datetime
    month: int
    amount: float
    penalty: float
    remaining: Optional[float] = None

    class Config:
        from_attributes = True


class LoanResponse(BaseModel):
    id: UUID
    member_id: UUID
    cycle_id: Optional[UUID] = None
    sequence_id: Optional[UUID] = None
    principal: float
    months: int
    remaining: float
    current_month: int
    total_principal_paid: float
    late_payment_penalty: float
    status: LoanStatus
    reason: Optional[str] = None
    guarantor1_id: Optional[UUID] = None
    guarantor2_id: Optional[UUID] = None
    disbursement_method: Optional[DisbursementMethod] = None
    disbursed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class LoanDetailResponse(LoanResponse):
    transactions: List[LoanTransactionResponse] = Field(default_factory=list)


class PaymentBreakdown(BaseModel):
    principal: float
    late_penalty: float
    total: float
    new_balance: float
    monthly_amount: float
    missed_months: int
    expected_month: int
    is_late: bool


class RepayLoanResponse(BaseModel):
    loan: LoanResponse
    transaction: LoanTransactionResponse
    payment: PaymentBreakdown


class GiveLoanResponse(BaseModel):
    loan: LoanResponse
    message: str


class LoanMessageResponse(BaseModel):
    message: str
    loan: Optional[LoanResponse] = None

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from uuid import UUID
from app.models.cycle import SequenceStatus


class CycleCreate(BaseModel):
    """Schema for creating a new cycle."""
    member_ids: List[UUID] = Field(..., min_length=1, description="Participating members, in payout order")
    monthly_amount: Decimal = Field(..., gt=0, description="Monthly contribution per member")
    start_date: Optional[datetime] = Field(None, description="Cycle start date, defaults to now")


class CycleUpdate(BaseModel):
    """Schema for updating a cycle."""
    start_date: Optional[datetime] = None
    monthly_amount: Optional[Decimal] = Field(None, gt=0, description="Re-prices slots not yet paid out")
    is_active: Optional[bool] = None


class LoanSequenceResponse(BaseModel):
    """Schema for a rotation slot."""
    id: UUID
    member_id: UUID
    month: int
    loan_amount: float
    status: SequenceStatus
    disbursed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CycleResponse(BaseModel):
    """Schema for cycle response."""
    id: UUID
    cycle_number: int
    start_date: datetime
    monthly_amount: float
    total_members: int
    is_active: bool
    current_month: int
    created_at: datetime
    sequences: List[LoanSequenceResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class CycleCreateResponse(BaseModel):
    cycle: CycleResponse
    message: str


class CycleDeleteResponse(BaseModel):
    message: str

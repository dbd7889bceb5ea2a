from pydantic import BaseModel, Field
from typing import List
from datetime import datetime
from decimal import Decimal
from uuid import UUID


class SavingsDepositCreate(BaseModel):
    """Schema for recording a savings deposit."""
    member_id: UUID
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    date: datetime


class SavingsTransactionResponse(BaseModel):
    id: UUID
    savings_id: UUID
    date: datetime
    amount: float
    total: float

    class Config:
        from_attributes = True


class SavingsResponse(BaseModel):
    id: UUID
    member_id: UUID
    total_amount: float
    transactions: List[SavingsTransactionResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class SavingsDepositResponse(BaseModel):
    transaction: SavingsTransactionResponse
    savings: SavingsResponse


class SavingsDeleteResponse(BaseModel):
    message: str
    savings: SavingsResponse

from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from datetime import datetime
from uuid import UUID
from app.schemas.loan import LoanResponse
from app.schemas.savings import SavingsResponse


class MemberCreate(BaseModel):
    """Schema for creating a member and its login account."""
    member_code: str = Field(..., min_length=1, description="External member ID (e.g. 'M001')")
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: Optional[str] = Field(None, min_length=8, description="Initial login password")
    father_name: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None
    account_number: Optional[str] = None
    phone: Optional[str] = None


class MemberUpdate(BaseModel):
    """Schema for updating a member. Omitted fields are left unchanged."""
    member_code: Optional[str] = Field(None, min_length=1)
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    father_name: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None
    account_number: Optional[str] = None
    phone: Optional[str] = None


class MemberResponse(BaseModel):
    id: UUID
    user_id: Optional[UUID] = None
    member_code: str
    name: str
    email: Optional[str] = None
    father_name: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None
    account_number: Optional[str] = None
    phone: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class MemberDetailResponse(MemberResponse):
    savings: Optional[SavingsResponse] = None
    loans: List[LoanResponse] = Field(default_factory=list)


class MemberDeleteResponse(BaseModel):
    message: str

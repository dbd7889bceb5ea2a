from pydantic import BaseModel, EmailStr
from uuid import UUID
from typing import Optional
from app.models.user import UserRoleEnum


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: UUID
    email: str
    name: Optional[str] = None
    role: UserRoleEnum

    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    message: str
    user: UserResponse


class LoginStatus(BaseModel):
    is_logged_in: bool

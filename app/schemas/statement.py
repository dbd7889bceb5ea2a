from pydantic import BaseModel, Field, HttpUrl
from typing import Optional
from datetime import datetime
from uuid import UUID


class StatementCreate(BaseModel):
    month: int = Field(..., ge=1, le=12)
    year: int
    pdf_url: Optional[HttpUrl] = None


class StatementResponse(BaseModel):
    id: UUID
    month: int
    year: int
    pdf_url: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True

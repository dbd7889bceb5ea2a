from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from app.db.base import get_db
from app.core.audit import audit_user
from app.core.dependencies import get_current_user, require_admin
from app.core.exceptions import KuluError, http_status_for
from app.models.user import User
from app.schemas.statement import StatementCreate, StatementResponse
from app.services.statement import list_statements, upsert_statement
from typing import List

router = APIRouter(prefix="/api/statements", tags=["statements"])


@router.get("", response_model=List[StatementResponse])
def get_statements(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return list_statements(db)


@router.post("", response_model=StatementResponse)
def publish_statement(
    statement_data: StatementCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Create the statement for a month, or replace its PDF link (admin only)."""
    pdf_url = str(statement_data.pdf_url) if statement_data.pdf_url else None
    try:
        statement = upsert_statement(db, statement_data.month, statement_data.year, pdf_url)
    except KuluError as e:
        raise HTTPException(status_code=http_status_for(e), detail=str(e))

    audit_user(current_user, "Publish Statement", f"period={statement.year}-{statement.month:02d}")
    return statement

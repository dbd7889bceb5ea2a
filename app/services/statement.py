import logging
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from app.core.exceptions import PersistenceError
from app.models.statement import MonthlyStatement
from typing import List, Optional

logger = logging.getLogger(__name__)


def list_statements(db: Session) -> List[MonthlyStatement]:
    return db.query(MonthlyStatement).order_by(
        MonthlyStatement.year.desc(), MonthlyStatement.month.desc()
    ).all()


def upsert_statement(db: Session, month: int, year: int, pdf_url: Optional[str] = None) -> MonthlyStatement:
    """Publish the statement for a month, replacing the link if one exists."""
    statement = db.query(MonthlyStatement).filter(
        MonthlyStatement.month == month,
        MonthlyStatement.year == year
    ).first()

    try:
        if statement:
            statement.pdf_url = pdf_url
        else:
            statement = MonthlyStatement(month=month, year=year, pdf_url=pdf_url)
            db.add(statement)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to save statement {year}-{month:02d}: {e}", exc_info=True)
        raise PersistenceError("Failed to create statement") from e

    db.refresh(statement)
    return statement

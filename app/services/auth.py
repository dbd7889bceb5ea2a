import logging
from datetime import timedelta
from typing import Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from app.models.user import User, UserRoleEnum
from app.core.exceptions import InvalidOperationError, PersistenceError
from app.core.security import verify_password, get_password_hash, create_access_token
from app.core.config import settings

logger = logging.getLogger(__name__)


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """
    Authenticate user by email and password.

    Returns:
        User object if authentication succeeds, None otherwise. Accounts
        without a password (members not yet given one) cannot log in.
    """
    email = email.lower().strip()
    user = db.query(User).filter(User.email == email).first()
    if not user:
        logger.debug(f"User not found: {email}")
        return None

    if not user.password_hash:
        logger.debug(f"User {email} has no password set, login denied")
        return None

    if not verify_password(password, user.password_hash):
        logger.debug(f"Password verification failed for user: {email}")
        return None

    logger.debug(f"Authentication successful for user: {email}")
    return user


def create_access_token_for_user(user: User) -> str:
    """Create the session token stored in the auth cookie."""
    access_token_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return create_access_token(
        data={"sub": str(user.id), "email": user.email, "role": user.role.value},
        expires_delta=access_token_expires
    )


def create_admin_user(db: Session, email: str, password: str, name: Optional[str] = None) -> User:
    """Create an ADMIN login account. Raises InvalidOperationError if the email is taken."""
    email = email.lower().strip()
    if db.query(User).filter(User.email == email).first():
        raise InvalidOperationError(f"User with email {email} already exists")

    user = User(
        email=email,
        name=name,
        password_hash=get_password_hash(password),
        role=UserRoleEnum.ADMIN,
    )
    db.add(user)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create admin {email}: {e}", exc_info=True)
        raise PersistenceError("Failed to create admin user") from e

    db.refresh(user)
    logger.info(f"Created admin user {email}")
    return user

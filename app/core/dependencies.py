from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyCookie
from sqlalchemy.orm import Session
from app.db.base import get_db
from app.models.user import User, UserRoleEnum
from app.core.config import settings
from app.core.security import decode_access_token
import uuid

cookie_scheme = APIKeyCookie(name=settings.AUTH_COOKIE_NAME, auto_error=False)


async def get_current_user(
    token: Optional[str] = Depends(cookie_scheme),
    db: Session = Depends(get_db)
) -> User:
    """Get current authenticated user from the session cookie."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
    )

    if not token:
        raise credentials_exception

    payload = decode_access_token(token)
    if payload is None:
        raise credentials_exception

    user_id_str: str = payload.get("sub")
    if user_id_str is None:
        raise credentials_exception

    # Convert string UUID to UUID object
    try:
        user_id = uuid.UUID(user_id_str)
    except (ValueError, TypeError):
        raise credentials_exception

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise credentials_exception

    return user


def require_role(role: UserRoleEnum):
    """Dependency factory for requiring a specific role."""
    async def role_checker(
        current_user: User = Depends(get_current_user)
    ) -> User:
        if current_user.role != role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Forbidden - {role.value.capitalize()} access required"
            )
        return current_user
    return role_checker


require_admin = require_role(UserRoleEnum.ADMIN)

import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session
from app.db.base import get_db
from app.schemas.auth import UserLogin, UserResponse, LoginResponse, LoginStatus
from app.services.auth import authenticate_user, create_access_token_for_user
from app.core.audit import audit_user
from app.core.config import settings
from app.core.dependencies import cookie_scheme, get_current_user
from app.core.security import decode_access_token
from app.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.get("/login", response_model=LoginStatus)
def login_status(token: Optional[str] = Depends(cookie_scheme)):
    """Report whether the caller holds a valid session cookie."""
    return {"is_logged_in": bool(token) and decode_access_token(token) is not None}


@router.post("/login", response_model=LoginResponse)
def login(credentials: UserLogin, response: Response, db: Session = Depends(get_db)):
    """Login and store the session token in an http-only cookie."""
    user = authenticate_user(db, credentials.email, credentials.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password"
        )

    access_token = create_access_token_for_user(user)
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=access_token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        path="/",
    )
    audit_user(user, "Login", f"email={user.email}")
    logger.info(f"User {user.email} logged in")
    return {"message": "Login successful", "user": user}


@router.post("/logout")
def logout(
    response: Response,
    token: Optional[str] = Depends(cookie_scheme),
    db: Session = Depends(get_db)
):
    """Clear the session cookie. Always succeeds, even without a session."""
    payload = decode_access_token(token) if token else None
    if payload and payload.get("email"):
        user = db.query(User).filter(User.email == payload["email"]).first()
        if user:
            audit_user(user, "Logout", f"email={user.email}")

    response.delete_cookie(settings.AUTH_COOKIE_NAME, path="/")
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=UserResponse)
def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get current user information."""
    return current_user

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.db.base import get_db
from app.core.audit import audit_user
from app.core.dependencies import get_current_user, require_admin
from app.core.exceptions import KuluError, http_status_for
from app.models.user import User
from app.schemas.member import MemberCreate, MemberDeleteResponse, MemberUpdate, MemberResponse, MemberDetailResponse
from app.services.member import create_member, delete_member, get_member, list_members, update_member
from typing import List
from uuid import UUID

router = APIRouter(prefix="/api/members", tags=["members"])


@router.get("", response_model=List[MemberResponse])
def get_members(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return list_members(db)


@router.post("", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
def add_member(
    member_data: MemberCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Create a member and its login account (admin only)."""
    try:
        member = create_member(db, **member_data.model_dump())
    except KuluError as e:
        raise HTTPException(status_code=http_status_for(e), detail=str(e))

    audit_user(current_user, "Create Member", f"member={member.member_code}")
    return member


@router.get("/{member_id}", response_model=MemberDetailResponse)
def get_member_details(
    member_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get a member with savings and loans."""
    try:
        return get_member(db, member_id)
    except KuluError as e:
        raise HTTPException(status_code=http_status_for(e), detail=str(e))


@router.put("/{member_id}", response_model=MemberResponse)
def edit_member(
    member_id: UUID,
    member_data: MemberUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Update member details (admin only)."""
    try:
        member = update_member(db, member_id, **member_data.model_dump(exclude_unset=True))
    except KuluError as e:
        raise HTTPException(status_code=http_status_for(e), detail=str(e))

    audit_user(current_user, "Update Member", f"member={member.member_code}")
    return member


@router.delete("/{member_id}", response_model=MemberDeleteResponse)
def remove_member(
    member_id: UUID,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Delete a member and its login account (admin only)."""
    try:
        delete_member(db, member_id)
    except KuluError as e:
        raise HTTPException(status_code=http_status_for(e), detail=str(e))

    audit_user(current_user, "Delete Member", f"member_id={member_id}")
    return {"message": "Member and user account deleted successfully"}

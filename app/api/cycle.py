from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.db.base import get_db
from app.core.audit import audit_user
from app.core.dependencies import get_current_user, require_admin
from app.core.exceptions import KuluError, http_status_for
from app.models.user import User
from app.schemas.cycle import CycleCreate, CycleCreateResponse, CycleDeleteResponse, CycleResponse, CycleUpdate
from app.services.cycle import create_cycle, delete_cycle, get_cycle, list_cycles, update_cycle
from typing import List
from uuid import UUID

router = APIRouter(prefix="/api/cycles", tags=["cycles"])


@router.get("", response_model=List[CycleResponse])
def get_cycles(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List cycles, newest first."""
    return list_cycles(db)


@router.post("", response_model=CycleCreateResponse, status_code=status.HTTP_201_CREATED)
def add_cycle(
    cycle_data: CycleCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Create a cycle with a payout rotation over the given members (admin only)."""
    try:
        cycle = create_cycle(db, cycle_data.member_ids, cycle_data.monthly_amount, cycle_data.start_date)
    except KuluError as e:
        raise HTTPException(status_code=http_status_for(e), detail=str(e))

    audit_user(current_user, "Create Cycle", f"cycle_number={cycle.cycle_number}, members={cycle.total_members}")
    return {"cycle": cycle, "message": f"Cycle {cycle.cycle_number} created successfully"}


@router.get("/{cycle_id}", response_model=CycleResponse)
def get_cycle_details(
    cycle_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    try:
        return get_cycle(db, cycle_id)
    except KuluError as e:
        raise HTTPException(status_code=http_status_for(e), detail=str(e))


@router.put("/{cycle_id}", response_model=CycleResponse)
def edit_cycle(
    cycle_id: UUID,
    cycle_data: CycleUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Update a cycle (admin only)."""
    try:
        cycle = update_cycle(db, cycle_id, **cycle_data.model_dump(exclude_unset=True))
    except KuluError as e:
        raise HTTPException(status_code=http_status_for(e), detail=str(e))

    audit_user(current_user, "Update Cycle", f"cycle_number={cycle.cycle_number}")
    return cycle


@router.delete("/{cycle_id}", response_model=CycleDeleteResponse)
def remove_cycle(
    cycle_id: UUID,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Delete a cycle whose loans are all completed (admin only)."""
    try:
        delete_cycle(db, cycle_id)
    except KuluError as e:
        raise HTTPException(status_code=http_status_for(e), detail=str(e))

    audit_user(current_user, "Delete Cycle", f"cycle_id={cycle_id}")
    return {"message": "Cycle deleted successfully"}

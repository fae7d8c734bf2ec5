from typing import Any, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from app import crud, schemas
from app.core.deps import get_current_active_user
from app.core.permissions import require_admin
from app.db.database import get_db
from app.models.user import User, UserRole
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/me", response_model=schemas.User)
def read_user_me(
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Get current user."""
    return current_user


@router.get("", response_model=List[schemas.User])
def read_users(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    department: Optional[str] = None,
    role: Optional[UserRole] = None,
    skip: int = 0,
    limit: int = Query(100, le=500),
) -> Any:
    """Retrieve users, optionally by department and role."""
    return crud.user.get_filtered(db, department=department, role=role, skip=skip, limit=limit)


@router.get("/{user_id}", response_model=schemas.User)
def read_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    user = crud.user.get(db, id=user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user


@router.patch("/{user_id}", response_model=schemas.User)
def update_user(
    user_id: int,
    user_in: schemas.UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Change a user's organisation data (role, band, reporting line)."""
    require_admin(current_user)

    user = crud.user.get(db, id=user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    manager_id = user_in.manager_id
    if "manager_id" in user_in.model_fields_set and manager_id is not None:
        if crud.user.get(db, id=manager_id) is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Manager not found"
            )
        if crud.user.creates_reporting_cycle(db, user_id=user.id, manager_id=manager_id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Manager assignment would create a reporting cycle"
            )

    updated = crud.user.update(db, db_obj=user, obj_in=user_in)
    logger.info(f"User {user_id} updated by {current_user.id}: {sorted(user_in.model_fields_set)}")
    return updated

# File: app/api/v1/endpoints/auth.py
from typing import Any
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app import crud, schemas
from app.core import security
from app.core.deps import get_current_user
from app.db.database import get_db
from app.models.user import User
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


def _token_response(user: User) -> dict:
    return {
        "access_token": security.create_access_token(subject=user.id),
        "token_type": "bearer",
        "user": schemas.User.model_validate(user),
    }


@router.post("/register", response_model=schemas.Token, status_code=status.HTTP_201_CREATED)
def register(
    user_in: schemas.UserCreate,
    db: Session = Depends(get_db),
) -> Any:
    """Create an account and log it in"""
    if crud.user.get_by_username(db, username=user_in.username):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already exists"
        )
    if user_in.manager_id is not None and crud.user.get(db, id=user_in.manager_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Manager not found"
        )

    user = crud.user.create(db, obj_in=user_in)
    logger.info(f"Registered user {user.id} ({user.username})")
    return _token_response(user)


@router.post("/login", response_model=schemas.Token)
def login(
    login_data: schemas.LoginRequest,
    db: Session = Depends(get_db),
) -> Any:
    """Username/password login returning a bearer token"""
    user = crud.user.authenticate(db, username=login_data.username, password=login_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password"
        )
    elif not crud.user.is_active(user):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user"
        )

    logger.info(f"User {user.id} logged in")
    return _token_response(user)


@router.post("/logout", status_code=status.HTTP_200_OK)
def logout(current_user: User = Depends(get_current_user)) -> Any:
    """Tokens are stateless; the client simply drops its copy"""
    return {"message": "Logged out"}


@router.get("/user", response_model=schemas.User)
def read_session_user(current_user: User = Depends(get_current_user)) -> Any:
    return current_user

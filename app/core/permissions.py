from typing import Iterable
from fastapi import HTTPException, status
from app.models.user import User, UserRole


def has_any_role(user: User, required_roles: Iterable[UserRole]) -> bool:
    """Check if user holds any of the required roles"""
    return user.role in set(required_roles)


def is_admin(user: User) -> bool:
    return user.role == UserRole.ADMIN


def can_process_payments(user: User) -> bool:
    """Finance and admin users move approved claims through processing and payment"""
    return has_any_role(user, [UserRole.FINANCE, UserRole.ADMIN])


def require_admin(user: User) -> None:
    if not is_admin(user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required"
        )

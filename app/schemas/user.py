# File: app/schemas/user.py
from pydantic import EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime
import re

from app.models.user import UserRole
from app.schemas.base import APIModel

BAND_PATTERN = re.compile(r"^B\d+$")

# ==========================================
# BASE SCHEMAS
# ==========================================

class UserBase(APIModel):
    """Base user schema with common fields"""
    username: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1)
    email: EmailStr
    department: str = Field(min_length=1)
    designation: str = Field(min_length=1)
    branch: str = Field(min_length=1)
    e_code: str = Field(min_length=1)
    band: str
    business_unit: str = Field(min_length=1)
    role: UserRole = UserRole.EMPLOYEE
    manager_id: Optional[int] = None

    @field_validator("band")
    @classmethod
    def validate_band(cls, v):
        if not BAND_PATTERN.match(v):
            raise ValueError("Band must look like B1, B2, ...")
        return v


class UserCreate(UserBase):
    password: str = Field(min_length=6)


class UserUpdate(APIModel):
    """Organisation changes made by an admin"""
    role: Optional[UserRole] = None
    band: Optional[str] = None
    department: Optional[str] = None
    designation: Optional[str] = None
    branch: Optional[str] = None
    business_unit: Optional[str] = None
    manager_id: Optional[int] = None
    is_active: Optional[bool] = None

    @field_validator("role", "band", "department", "designation", "branch", "business_unit", "is_active")
    @classmethod
    def reject_null(cls, v):
        # managerId is the only field that may be cleared
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    @field_validator("band")
    @classmethod
    def validate_band(cls, v):
        if v is not None and not BAND_PATTERN.match(v):
            raise ValueError("Band must look like B1, B2, ...")
        return v


# ==========================================
# RESPONSE SCHEMAS
# ==========================================

class User(APIModel):
    id: int
    username: str
    name: str
    email: str
    department: str
    designation: str
    branch: str
    e_code: str
    band: str
    business_unit: str
    role: UserRole
    manager_id: Optional[int] = None
    is_active: bool = True
    created_at: datetime

# File: app/models/user.py
from sqlalchemy import Column, String, Boolean, Enum, Integer, ForeignKey
from sqlalchemy.orm import relationship
from app.models.base import BaseModel
import enum


class UserRole(enum.Enum):
    EMPLOYEE = "employee"
    MANAGER = "manager"
    FINANCE = "finance"
    ADMIN = "admin"


class User(BaseModel):
    __tablename__ = "users"

    username = Column(String(100), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.EMPLOYEE)
    is_active = Column(Boolean, default=True)

    # Organisation fields
    department = Column(String(255), nullable=False, index=True)
    designation = Column(String(255), nullable=False)
    branch = Column(String(255), nullable=False)
    e_code = Column(String(50), nullable=False)
    band = Column(String(10), nullable=False)  # B1 (junior) .. B5 (senior)
    business_unit = Column(String(255), nullable=False)

    # Direct manager; the reporting graph is a forest, never a cycle
    manager_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Relationships
    manager = relationship("User", remote_side="User.id", foreign_keys=[manager_id])

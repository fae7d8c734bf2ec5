from sqlalchemy import Column, Integer, Text, ForeignKey, Enum
from sqlalchemy.orm import relationship
from app.models.base import BaseModel
import enum


class ApprovalStatus(enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalLevel(enum.IntEnum):
    MANAGER = 1
    FINANCE = 2
    DIRECTOR = 3
    CXO = 4


class Approval(BaseModel):
    """One decision at one level of a claim's sign-off chain."""
    __tablename__ = "approvals"

    claim_id = Column(Integer, ForeignKey("claims.id"), nullable=False, index=True)
    approver_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    approval_level = Column(Integer, nullable=False, default=ApprovalLevel.MANAGER.value)
    status = Column(Enum(ApprovalStatus), nullable=False, default=ApprovalStatus.PENDING)
    notes = Column(Text)
    next_approver_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Relationships
    claim = relationship("Claim", back_populates="approvals")
    approver = relationship("User", foreign_keys=[approver_id])
    next_approver = relationship("User", foreign_keys=[next_approver_id])

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, JSON, Numeric, Enum
from sqlalchemy.orm import relationship
from app.models.base import BaseModel
import enum


class ClaimStatus(enum.Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    PROCESSING = "processing"
    PAID = "paid"


class ClaimType(enum.Enum):
    TRAVEL = "travel"
    BUSINESS_PROMOTION = "business_promotion"
    CONVEYANCE = "conveyance"
    MOBILE_BILL = "mobile_bill"
    RELOCATION = "relocation"
    OTHER = "other"


class Claim(BaseModel):
    __tablename__ = "claims"

    claim_number = Column(String(50), unique=True, index=True)  # EXP-2024-0101
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(Enum(ClaimType), nullable=False)
    status = Column(Enum(ClaimStatus), nullable=False, default=ClaimStatus.DRAFT, index=True)
    total_amount = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    approved_amount = Column(Numeric(12, 2, asdecimal=False), nullable=True)
    details = Column(JSON, nullable=False, default=dict)
    notes = Column(Text)

    # Set only while the claim is submitted and waiting on a decision
    current_approver_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    submitted_at = Column(DateTime(timezone=True))
    approved_at = Column(DateTime(timezone=True))
    rejected_at = Column(DateTime(timezone=True))
    paid_at = Column(DateTime(timezone=True))

    # Relationships
    user = relationship("User", foreign_keys=[user_id])
    current_approver = relationship("User", foreign_keys=[current_approver_id])
    approvals = relationship(
        "Approval",
        back_populates="claim",
        order_by="Approval.id",
    )

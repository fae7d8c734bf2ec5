from pydantic import Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime

from app.models.claim import ClaimStatus, ClaimType
from app.schemas.base import APIModel
from app.schemas.user import User

CREATABLE_STATUSES = (ClaimStatus.DRAFT, ClaimStatus.SUBMITTED)


class ClaimCreate(APIModel):
    type: ClaimType
    status: ClaimStatus = ClaimStatus.DRAFT
    total_amount: float = Field(ge=0)
    details: Dict[str, Any] = Field(default_factory=dict)
    notes: Optional[str] = None
    # Only admins may file a claim on behalf of someone else
    user_id: Optional[int] = None

    @field_validator("status")
    @classmethod
    def validate_initial_status(cls, v):
        if v not in CREATABLE_STATUSES:
            raise ValueError("A new claim must be draft or submitted")
        return v


class ClaimUpdate(APIModel):
    status: Optional[ClaimStatus] = None
    approved_amount: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None
    # Editable while the claim is still a draft
    type: Optional[ClaimType] = None
    total_amount: Optional[float] = Field(default=None, ge=0)
    details: Optional[Dict[str, Any]] = None

    @field_validator("type", "total_amount", "details")
    @classmethod
    def reject_null(cls, v):
        # Omit the key to leave a field unchanged; null would blank a required column
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class Claim(APIModel):
    id: int
    claim_number: Optional[str] = None
    user_id: int
    type: ClaimType
    status: ClaimStatus
    total_amount: float
    approved_amount: Optional[float] = None
    details: Dict[str, Any]
    notes: Optional[str] = None
    current_approver_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None


class ApprovalChainStep(APIModel):
    level: int
    level_name: str
    approver: User


class ApprovalChain(APIModel):
    claim_id: int
    amount: float
    department: str
    business_unit: str
    steps: List[ApprovalChainStep]
    unresolved_levels: List[str]
    is_complete: bool

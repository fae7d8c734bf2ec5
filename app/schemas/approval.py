from pydantic import Field
from typing import Optional
from datetime import datetime

from app.models.approval import ApprovalLevel, ApprovalStatus
from app.schemas.base import APIModel


class ApprovalCreate(APIModel):
    claim_id: int
    approver_id: int
    approval_level: int = Field(default=ApprovalLevel.MANAGER.value, ge=1, le=4)
    status: ApprovalStatus = ApprovalStatus.PENDING
    notes: Optional[str] = None
    next_approver_id: Optional[int] = None


class ApprovalUpdate(APIModel):
    status: Optional[ApprovalStatus] = None
    notes: Optional[str] = None
    # Used when this decision completes the chain
    approved_amount: Optional[float] = Field(default=None, ge=0)


class Approval(APIModel):
    id: int
    claim_id: int
    approver_id: int
    approval_level: int
    status: ApprovalStatus
    notes: Optional[str] = None
    next_approver_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class ApprovalWithApprover(Approval):
    approver_name: str = "Unknown"
    approver_title: str = "Approver"
    approver_department: str = ""

from typing import Any, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from app import crud, schemas
from app.core.deps import get_current_active_user
from app.core.errors import to_http_exception
from app.db.database import get_db
from app.models.approval import Approval
from app.models.user import User
from app.services.claim_lifecycle import ClaimLifecycle, ClaimLifecycleError
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


def with_approver(approval: Approval) -> dict:
    approver = approval.approver
    data = schemas.Approval.model_validate(approval).model_dump()
    data.update({
        "approver_name": approver.name if approver else "Unknown",
        "approver_title": approver.designation if approver else "Approver",
        "approver_department": approver.department if approver else "",
    })
    return data


@router.get("", response_model=List[schemas.ApprovalWithApprover])
def list_approvals(
    claim_id: Optional[int] = Query(None, alias="claimId"),
    approver_id: Optional[int] = Query(None, alias="approverId"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Approval history of a claim (in level order), or every approval of one approver"""
    if claim_id is None and approver_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Either claim ID or approver ID is required"
        )

    if claim_id is not None:
        approvals = crud.approval.get_by_claim(db, claim_id=claim_id)
    else:
        approvals = crud.approval.get_by_approver(db, approver_id=approver_id)
    return [with_approver(approval) for approval in approvals]


@router.post("", response_model=schemas.Approval, status_code=status.HTTP_201_CREATED)
def create_approval(
    approval_in: schemas.ApprovalCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Add an approval row by hand (admin), e.g. to route an unrouted claim"""
    try:
        return ClaimLifecycle(db).record_approval(current_user, approval_in)
    except ClaimLifecycleError as exc:
        raise to_http_exception(exc)


@router.patch("/{approval_id}", response_model=schemas.Approval)
def update_approval(
    approval_id: int,
    approval_in: schemas.ApprovalUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Record an approver's decision; the claim follows it"""
    try:
        return ClaimLifecycle(db).decide_approval(approval_id, current_user, approval_in)
    except ClaimLifecycleError as exc:
        logger.info(f"Decision on approval {approval_id} by user {current_user.id} refused: {exc}")
        raise to_http_exception(exc)

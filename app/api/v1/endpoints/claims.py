from typing import Any, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session
from app import crud, schemas
from app.core.deps import get_current_active_user
from app.core.errors import to_http_exception
from app.db.database import get_db
from app.models.claim import ClaimStatus
from app.models.user import User
from app.services.claim_lifecycle import ClaimLifecycle, ClaimLifecycleError
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


def parse_statuses(raw: Optional[str]) -> List[ClaimStatus]:
    """``status=approved,paid`` -> [APPROVED, PAID]"""
    if not raw:
        return []
    statuses = []
    for value in raw.split(","):
        value = value.strip()
        if not value:
            continue
        try:
            statuses.append(ClaimStatus(value))
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown claim status: {value}"
            )
    return statuses


def no_cache(response: Response) -> None:
    response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
    response.headers["Pragma"] = "no-cache"
    response.headers["Expires"] = "0"


@router.get("", response_model=List[schemas.Claim])
def list_claims(
    response: Response,
    user_id: Optional[int] = Query(None, alias="userId"),
    claim_status: Optional[str] = Query(None, alias="status"),
    approver_id: Optional[int] = Query(None, alias="approverId"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """List claims by owner and/or status (comma separated), or those decided by an approver"""
    no_cache(response)
    statuses = parse_statuses(claim_status)
    if approver_id is not None and user_id is None and not statuses:
        return crud.claim.get_decided_by(db, approver_id=approver_id)
    return crud.claim.get_filtered(db, user_id=user_id, statuses=statuses)


@router.get("/approval", response_model=List[schemas.Claim])
def list_claims_for_approval(
    approver_id: Optional[int] = Query(None, alias="approverId"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Submitted claims waiting on the given approver"""
    if approver_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Approver ID is required"
        )
    return crud.claim.get_for_approval(db, approver_id=approver_id)


@router.get("/unrouted", response_model=List[schemas.Claim])
def list_unrouted_claims(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Submitted claims for which no approver could be resolved"""
    return crud.claim.get_unrouted(db)


@router.post("", response_model=schemas.Claim, status_code=status.HTTP_201_CREATED)
def create_claim(
    claim_in: schemas.ClaimCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Create a draft claim, or submit it straight away"""
    try:
        return ClaimLifecycle(db).create_claim(current_user, claim_in)
    except ClaimLifecycleError as exc:
        logger.info(f"Claim creation by user {current_user.id} refused: {exc}")
        raise to_http_exception(exc)


@router.get("/{claim_id}", response_model=schemas.Claim)
def read_claim(
    claim_id: int,
    response: Response,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    no_cache(response)
    claim = crud.claim.get(db, id=claim_id)
    if not claim:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Claim not found"
        )
    return claim


@router.patch("/{claim_id}", response_model=schemas.Claim)
def update_claim(
    claim_id: int,
    claim_in: schemas.ClaimUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Edit a draft or move the claim along its lifecycle"""
    try:
        return ClaimLifecycle(db).update_claim(claim_id, current_user, claim_in)
    except ClaimLifecycleError as exc:
        logger.info(f"Update of claim {claim_id} by user {current_user.id} refused: {exc}")
        raise to_http_exception(exc)


@router.post("/{claim_id}/duplicate", response_model=schemas.Claim, status_code=status.HTTP_201_CREATED)
def duplicate_claim(
    claim_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Copy a rejected claim into a new draft"""
    try:
        return ClaimLifecycle(db).duplicate_rejected(claim_id, current_user)
    except ClaimLifecycleError as exc:
        raise to_http_exception(exc)


@router.get("/{claim_id}/approval-chain", response_model=schemas.ApprovalChain)
def read_approval_chain(
    claim_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Who would have to sign this claim off, and which levels nobody can fill"""
    try:
        claim, owner, route = ClaimLifecycle(db).approval_route_for(claim_id)
    except ClaimLifecycleError as exc:
        raise to_http_exception(exc)

    return {
        "claim_id": claim.id,
        "amount": claim.total_amount,
        "department": owner.department,
        "business_unit": owner.business_unit,
        "steps": [
            {
                "level": int(step.level),
                "level_name": step.level.name.lower(),
                "approver": schemas.User.model_validate(step.approver),
            }
            for step in route.steps
        ],
        "unresolved_levels": [level.name.lower() for level in route.unresolved_levels],
        "is_complete": route.is_complete,
    }

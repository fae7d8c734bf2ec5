from typing import List, Optional, Sequence
from sqlalchemy.orm import Session

from app.core.config import settings
from app.crud.base import CRUDBase
from app.models.approval import Approval, ApprovalStatus
from app.models.base import utcnow
from app.models.claim import Claim, ClaimStatus
from app.schemas.claim import ClaimCreate, ClaimUpdate


class CRUDClaim(CRUDBase[Claim, ClaimCreate, ClaimUpdate]):

    def get_filtered(
        self,
        db: Session,
        *,
        user_id: Optional[int] = None,
        statuses: Optional[Sequence[ClaimStatus]] = None,
    ) -> List[Claim]:
        query = db.query(Claim)
        if user_id is not None:
            query = query.filter(Claim.user_id == user_id)
        if statuses:
            query = query.filter(Claim.status.in_(list(statuses)))
        return query.order_by(Claim.id).all()

    def get_for_approval(self, db: Session, *, approver_id: int) -> List[Claim]:
        return (
            db.query(Claim)
            .filter(
                Claim.current_approver_id == approver_id,
                Claim.status == ClaimStatus.SUBMITTED,
            )
            .order_by(Claim.submitted_at, Claim.id)
            .all()
        )

    def get_decided_by(self, db: Session, *, approver_id: int) -> List[Claim]:
        """Claims on which the approver recorded an approve or reject decision."""
        decided = (
            db.query(Approval.claim_id)
            .filter(
                Approval.approver_id == approver_id,
                Approval.status.in_([ApprovalStatus.APPROVED, ApprovalStatus.REJECTED]),
            )
        )
        return db.query(Claim).filter(Claim.id.in_(decided)).order_by(Claim.id).all()

    def get_unrouted(self, db: Session) -> List[Claim]:
        return (
            db.query(Claim)
            .filter(
                Claim.status == ClaimStatus.SUBMITTED,
                Claim.current_approver_id.is_(None),
            )
            .order_by(Claim.submitted_at, Claim.id)
            .all()
        )

    def assign_claim_number(self, claim: Claim) -> str:
        """EXP-<year>-<NNNN>; needs the row id, so call after a flush."""
        claim.claim_number = f"{settings.CLAIM_NUMBER_PREFIX}-{utcnow().year}-{claim.id + 100:04d}"
        return claim.claim_number


claim = CRUDClaim(Claim)

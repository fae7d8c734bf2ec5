from typing import List
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.approval import Approval, ApprovalStatus
from app.schemas.approval import ApprovalCreate, ApprovalUpdate


class CRUDApproval(CRUDBase[Approval, ApprovalCreate, ApprovalUpdate]):

    def get_by_claim(self, db: Session, *, claim_id: int) -> List[Approval]:
        return (
            db.query(Approval)
            .filter(Approval.claim_id == claim_id)
            .order_by(Approval.approval_level, Approval.id)
            .all()
        )

    def get_by_approver(self, db: Session, *, approver_id: int) -> List[Approval]:
        return (
            db.query(Approval)
            .filter(Approval.approver_id == approver_id)
            .order_by(Approval.id)
            .all()
        )

    def get_pending_for_claim(self, db: Session, *, claim_id: int) -> List[Approval]:
        return (
            db.query(Approval)
            .filter(
                Approval.claim_id == claim_id,
                Approval.status == ApprovalStatus.PENDING,
            )
            .order_by(Approval.id)
            .all()
        )



approval = CRUDApproval(Approval)

import pytest

from app import crud
from app.models.approval import ApprovalStatus
from app.models.claim import ClaimStatus, ClaimType
from app.schemas.approval import ApprovalUpdate
from app.schemas.claim import ClaimCreate, ClaimUpdate
from app.services.claim_lifecycle import (
    ApprovalConflict,
    ClaimLifecycle,
    ClaimStateMachine,
    ClaimValidationError,
    InvalidTransition,
    NotAuthorized,
)
from conftest import travel_details


def submitted_claim(db, owner, amount):
    claim_in = ClaimCreate(
        type=ClaimType.TRAVEL,
        status=ClaimStatus.SUBMITTED,
        total_amount=amount,
        details=travel_details(amount),
    )
    return ClaimLifecycle(db).create_claim(owner, claim_in)


class TestStateMachine:
    def test_forward_targets(self):
        assert ClaimStateMachine.allowed_targets(ClaimStatus.DRAFT) == [ClaimStatus.SUBMITTED]
        assert set(ClaimStateMachine.allowed_targets(ClaimStatus.SUBMITTED)) == {
            ClaimStatus.APPROVED, ClaimStatus.REJECTED,
        }
        assert ClaimStateMachine.allowed_targets(ClaimStatus.APPROVED) == [ClaimStatus.PROCESSING]
        assert ClaimStateMachine.allowed_targets(ClaimStatus.PROCESSING) == [ClaimStatus.PAID]

    @pytest.mark.parametrize("status", [ClaimStatus.REJECTED, ClaimStatus.PAID])
    def test_terminal_states_have_no_exit(self, status):
        assert ClaimStateMachine.allowed_targets(status) == []

    @pytest.mark.parametrize("current,requested", [
        (ClaimStatus.APPROVED, ClaimStatus.SUBMITTED),
        (ClaimStatus.PAID, ClaimStatus.PROCESSING),
        (ClaimStatus.REJECTED, ClaimStatus.DRAFT),
        (ClaimStatus.DRAFT, ClaimStatus.PAID),
    ])
    def test_disallowed_pairs(self, current, requested):
        with pytest.raises(InvalidTransition):
            ClaimStateMachine.handler_for(current, requested)


class TestLifecycle:
    def test_submission_creates_one_pending_level_one_approval(self, db, org):
        claim = submitted_claim(db, org.emma, 12500)

        approvals = crud.approval.get_by_claim(db, claim_id=claim.id)
        assert len(approvals) == 1
        assert approvals[0].approval_level == 1
        assert approvals[0].status == ApprovalStatus.PENDING
        assert claim.current_approver_id == org.manoj.id == approvals[0].approver_id

    def test_claim_number(self, db, org):
        claim = submitted_claim(db, org.emma, 100)
        assert claim.claim_number.startswith("EXP-")
        assert claim.claim_number.endswith(f"-{claim.id + 100:04d}")

    def test_failed_decision_rolls_back(self, db, org):
        claim = submitted_claim(db, org.emma, 100)
        lifecycle = ClaimLifecycle(db)

        with pytest.raises(ClaimValidationError):
            lifecycle.update_claim(claim.id, org.manoj, ClaimUpdate(status=ClaimStatus.REJECTED))

        db.expire_all()
        claim = crud.claim.get(db, id=claim.id)
        assert claim.status == ClaimStatus.SUBMITTED
        assert claim.current_approver_id == org.manoj.id
        assert [a.status for a in claim.approvals] == [ApprovalStatus.PENDING]

    def test_stale_decision_conflicts(self, db, org):
        claim = submitted_claim(db, org.emma, 100)
        approval = crud.approval.get_by_claim(db, claim_id=claim.id)[0]

        ClaimLifecycle(db).decide_approval(
            approval.id, org.manoj, ApprovalUpdate(status=ApprovalStatus.APPROVED),
        )
        with pytest.raises(ApprovalConflict):
            ClaimLifecycle(db).decide_approval(
                approval.id, org.admin, ApprovalUpdate(status=ApprovalStatus.REJECTED, notes="late"),
            )

        db.expire_all()
        assert crud.claim.get(db, id=claim.id).status == ClaimStatus.APPROVED

    def test_rejection_clears_approved_amount(self, db, org):
        claim = submitted_claim(db, org.emma, 100)
        claim = ClaimLifecycle(db).update_claim(
            claim.id, org.manoj, ClaimUpdate(status=ClaimStatus.REJECTED, notes="duplicate bill"),
        )
        assert claim.status == ClaimStatus.REJECTED
        assert claim.approved_amount is None
        assert claim.rejected_at is not None
        assert claim.notes == "duplicate bill"

    def test_payments_need_finance(self, db, org):
        claim = submitted_claim(db, org.emma, 100)
        lifecycle = ClaimLifecycle(db)
        lifecycle.update_claim(claim.id, org.manoj, ClaimUpdate(status=ClaimStatus.APPROVED))

        with pytest.raises(NotAuthorized):
            lifecycle.update_claim(claim.id, org.emma, ClaimUpdate(status=ClaimStatus.PROCESSING))

        claim = lifecycle.update_claim(claim.id, org.fiona, ClaimUpdate(status=ClaimStatus.PROCESSING))
        claim = lifecycle.update_claim(claim.id, org.fiona, ClaimUpdate(status=ClaimStatus.PAID))
        assert claim.status == ClaimStatus.PAID
        assert claim.paid_at is not None

    def test_route_for_claim(self, db, org):
        claim = submitted_claim(db, org.emma, 8000)
        _, owner, route = ClaimLifecycle(db).approval_route_for(claim.id)
        assert owner.id == org.emma.id
        assert [u.id for u in route.approvers] == [org.manoj.id, org.fiona.id]

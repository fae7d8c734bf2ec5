"""Claim lifecycle: status transitions and the writes that go with them.

Transitions are looked up in ``ClaimStateMachine.TRANSITIONS``; anything not
listed is refused. Each public method runs as one unit of work and locks the
claim row first, so two approvers acting at once are serialised and the
second one finds the approval already decided.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError
from sqlalchemy.orm import Session

from app import crud
from app.core.permissions import can_process_payments, is_admin
from app.db.database import transaction
from app.models.approval import Approval, ApprovalLevel, ApprovalStatus
from app.models.base import utcnow
from app.models.claim import Claim, ClaimStatus, ClaimType
from app.models.user import User
from app.schemas.approval import ApprovalCreate, ApprovalUpdate
from app.schemas.claim import ClaimCreate, ClaimUpdate
from app.schemas.claim_details import format_validation_errors, parse_claim_details
from app.services.approval_policy import ApprovalPolicy, ApprovalRoute

logger = logging.getLogger(__name__)


class ClaimLifecycleError(Exception):
    """Base class for errors surfaced to API callers."""


class ClaimNotFound(ClaimLifecycleError):
    pass


class ApprovalNotFound(ClaimLifecycleError):
    pass


class UserNotFound(ClaimLifecycleError):
    pass


class InvalidTransition(ClaimLifecycleError):
    pass


class ApprovalConflict(ClaimLifecycleError):
    pass


class NotAuthorized(ClaimLifecycleError):
    pass


class ClaimValidationError(ClaimLifecycleError):
    def __init__(self, message: str, errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class ClaimStateMachine:
    # (current, requested) -> handler on ClaimLifecycle
    TRANSITIONS: Dict[Tuple[ClaimStatus, ClaimStatus], str] = {
        (ClaimStatus.DRAFT, ClaimStatus.SUBMITTED): "_submit",
        (ClaimStatus.SUBMITTED, ClaimStatus.APPROVED): "_approve",
        (ClaimStatus.SUBMITTED, ClaimStatus.REJECTED): "_reject",
        (ClaimStatus.APPROVED, ClaimStatus.PROCESSING): "_start_processing",
        (ClaimStatus.PROCESSING, ClaimStatus.PAID): "_mark_paid",
    }

    @classmethod
    def handler_for(cls, current: ClaimStatus, requested: ClaimStatus) -> str:
        handler = cls.TRANSITIONS.get((current, requested))
        if handler is None:
            raise InvalidTransition(
                f"Cannot move a claim from {current.value} to {requested.value}"
            )
        return handler

    @classmethod
    def allowed_targets(cls, current: ClaimStatus) -> List[ClaimStatus]:
        return [target for (source, target) in cls.TRANSITIONS if source == current]


def validated_details(claim_type: ClaimType, details: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    try:
        return parse_claim_details(claim_type, details).to_json()
    except ValidationError as exc:
        raise ClaimValidationError("Invalid claim details", format_validation_errors(exc))


class ClaimLifecycle:
    def __init__(self, db: Session, policy: Optional[ApprovalPolicy] = None):
        self.db = db
        self.policy = policy or ApprovalPolicy.from_settings()

    # ------------------------------------------------------------------
    # Claims
    # ------------------------------------------------------------------

    def create_claim(self, actor: User, claim_in: ClaimCreate) -> Claim:
        owner_id = claim_in.user_id if claim_in.user_id is not None else actor.id
        if owner_id != actor.id and not is_admin(actor):
            raise NotAuthorized("Only admins can file claims for other users")
        if crud.user.get(self.db, id=owner_id) is None:
            raise UserNotFound("User not found")

        details = claim_in.details
        if claim_in.status == ClaimStatus.SUBMITTED:
            details = validated_details(claim_in.type, details)

        with transaction(self.db):
            claim = Claim(
                user_id=owner_id,
                type=claim_in.type,
                status=ClaimStatus.DRAFT,
                total_amount=claim_in.total_amount,
                details=details,
                notes=claim_in.notes,
            )
            self.db.add(claim)
            self.db.flush()
            crud.claim.assign_claim_number(claim)
            if claim_in.status == ClaimStatus.SUBMITTED:
                self._submit(claim, actor, ClaimUpdate(status=ClaimStatus.SUBMITTED))

        self.db.refresh(claim)
        logger.info("Created claim %s (%s) for user %s", claim.claim_number, claim.status.value, owner_id)
        return claim

    def update_claim(self, claim_id: int, actor: User, claim_in: ClaimUpdate) -> Claim:
        fields_set = claim_in.model_fields_set
        with transaction(self.db):
            claim = crud.claim.get_for_update(self.db, id=claim_id)
            if claim is None:
                raise ClaimNotFound("Claim not found")

            edits = claim_in.model_dump(
                exclude_unset=True, exclude={"status", "approved_amount", "notes"}
            )
            if edits:
                self._edit_draft(claim, actor, edits)

            requested = claim_in.status
            transitioning = requested is not None and requested != claim.status
            if "approved_amount" in fields_set and not (transitioning and requested == ClaimStatus.APPROVED):
                raise ClaimValidationError("approvedAmount can only be set when approving a claim")

            if transitioning:
                handler = ClaimStateMachine.handler_for(claim.status, requested)
                getattr(self, handler)(claim, actor, claim_in)
            elif "notes" in fields_set:
                self._require_owner_or_current_approver(claim, actor)
                claim.notes = claim_in.notes

        self.db.refresh(claim)
        return claim

    def duplicate_rejected(self, claim_id: int, actor: User) -> Claim:
        source = crud.claim.get(self.db, id=claim_id)
        if source is None:
            raise ClaimNotFound("Claim not found")
        self._require_owner(source, actor)
        if source.status != ClaimStatus.REJECTED:
            raise InvalidTransition("Only rejected claims can be duplicated")

        with transaction(self.db):
            copy = Claim(
                user_id=source.user_id,
                type=source.type,
                status=ClaimStatus.DRAFT,
                total_amount=source.total_amount,
                details=dict(source.details or {}),
                notes=f"Copy of {source.claim_number}",
            )
            self.db.add(copy)
            self.db.flush()
            crud.claim.assign_claim_number(copy)

        self.db.refresh(copy)
        logger.info("Duplicated rejected claim %s into draft %s", source.claim_number, copy.claim_number)
        return copy

    def approval_route_for(self, claim_id: int) -> Tuple[Claim, User, ApprovalRoute]:
        claim = crud.claim.get(self.db, id=claim_id)
        if claim is None:
            raise ClaimNotFound("Claim not found")
        owner = crud.user.get(self.db, id=claim.user_id)
        if owner is None:
            raise UserNotFound("User not found")
        route = self._route_for(owner, claim.total_amount)
        return claim, owner, route

    # ------------------------------------------------------------------
    # Approvals
    # ------------------------------------------------------------------

    def record_approval(self, actor: User, approval_in: ApprovalCreate) -> Approval:
        """Manually add an approval row, e.g. to route a claim nobody was found for."""
        if not is_admin(actor):
            raise NotAuthorized("Admin role required")
        if crud.user.get(self.db, id=approval_in.approver_id) is None:
            raise UserNotFound("Approver not found")
        if approval_in.next_approver_id is not None and crud.user.get(self.db, id=approval_in.next_approver_id) is None:
            raise UserNotFound("Next approver not found")

        with transaction(self.db):
            claim = crud.claim.get_for_update(self.db, id=approval_in.claim_id)
            if claim is None:
                raise ClaimNotFound("Claim not found")
            if approval_in.status == ApprovalStatus.PENDING:
                if claim.status != ClaimStatus.SUBMITTED:
                    raise InvalidTransition("Pending approvals can only be added to submitted claims")
                if crud.approval.get_pending_for_claim(self.db, claim_id=claim.id):
                    raise ApprovalConflict("Claim already has a pending approval")
                claim.current_approver_id = approval_in.approver_id
            approval = crud.approval.create(self.db, obj_in=approval_in.model_dump(), commit=False)

        self.db.refresh(approval)
        return approval

    def decide_approval(self, approval_id: int, actor: User, approval_in: ApprovalUpdate) -> Approval:
        with transaction(self.db):
            approval = crud.approval.get(self.db, id=approval_id)
            if approval is None:
                raise ApprovalNotFound("Approval not found")
            claim = crud.claim.get_for_update(self.db, id=approval.claim_id)
            if claim is None:
                raise ClaimNotFound("Claim not found")
            # Re-read under the claim lock; a concurrent decision may have landed
            approval = crud.approval.get_for_update(self.db, id=approval_id)

            if actor.id != approval.approver_id and not is_admin(actor):
                raise NotAuthorized("Only the assigned approver can act on this approval")

            decision = approval_in.status
            if decision is None or decision == ApprovalStatus.PENDING:
                if "notes" in approval_in.model_fields_set:
                    approval.notes = approval_in.notes
                if "approved_amount" in approval_in.model_fields_set:
                    raise ClaimValidationError("approvedAmount can only be set when approving")
            else:
                if approval.status != ApprovalStatus.PENDING:
                    raise ApprovalConflict(f"Approval already {approval.status.value}")
                if claim.status != ClaimStatus.SUBMITTED:
                    raise InvalidTransition(f"Claim is {claim.status.value}, not awaiting a decision")
                if decision == ApprovalStatus.REJECTED:
                    self._decide_reject(claim, approval, approval_in)
                else:
                    self._decide_approve(claim, approval, approval_in)

        self.db.refresh(approval)
        return approval

    # ------------------------------------------------------------------
    # Transition handlers (called inside an open transaction)
    # ------------------------------------------------------------------

    def _submit(self, claim: Claim, actor: User, update: ClaimUpdate) -> None:
        self._require_owner(claim, actor)
        claim.details = validated_details(claim.type, claim.details)
        owner = crud.user.get(self.db, id=claim.user_id)
        if owner is None:
            raise UserNotFound("User not found")

        claim.status = ClaimStatus.SUBMITTED
        claim.submitted_at = utcnow()
        if "notes" in update.model_fields_set:
            claim.notes = update.notes

        directory = crud.user.get_directory(self.db)
        first = self.policy.resolve_first_approver(directory, owner, claim.total_amount)
        if first is None:
            claim.current_approver_id = None
            logger.warning("Claim %s submitted with no approver; it stays unrouted", claim.claim_number)
            return

        route = self._route_for(owner, claim.total_amount, directory=directory)
        following = route.next_step(after_level=ApprovalLevel.MANAGER, approver_id=first.id)
        claim.current_approver_id = first.id
        crud.approval.create(
            self.db,
            obj_in={
                "claim_id": claim.id,
                "approver_id": first.id,
                "approval_level": ApprovalLevel.MANAGER.value,
                "status": ApprovalStatus.PENDING,
                "notes": "",
                "next_approver_id": following.approver.id if following else None,
            },
            commit=False,
        )
        logger.info("Claim %s submitted, waiting on user %s", claim.claim_number, first.id)

    def _approve(self, claim: Claim, actor: User, update: ClaimUpdate) -> None:
        self._require_current_approver(claim, actor)
        self._close(claim, ClaimStatus.APPROVED, notes=update.notes, approved_amount=update.approved_amount)

    def _reject(self, claim: Claim, actor: User, update: ClaimUpdate) -> None:
        self._require_current_approver(claim, actor)
        self._close(claim, ClaimStatus.REJECTED, notes=update.notes)

    def _start_processing(self, claim: Claim, actor: User, update: ClaimUpdate) -> None:
        self._require_payments_role(actor)
        claim.status = ClaimStatus.PROCESSING
        if "notes" in update.model_fields_set:
            claim.notes = update.notes
        logger.info("Claim %s moved to processing", claim.claim_number)

    def _mark_paid(self, claim: Claim, actor: User, update: ClaimUpdate) -> None:
        self._require_payments_role(actor)
        claim.status = ClaimStatus.PAID
        claim.paid_at = utcnow()
        if "notes" in update.model_fields_set:
            claim.notes = update.notes
        logger.info("Claim %s paid", claim.claim_number)

    def _decide_reject(self, claim: Claim, approval: Approval, approval_in: ApprovalUpdate) -> None:
        if "approved_amount" in approval_in.model_fields_set:
            raise ClaimValidationError("approvedAmount can only be set when approving")
        self._close(claim, ClaimStatus.REJECTED, notes=approval_in.notes)

    def _decide_approve(self, claim: Claim, approval: Approval, approval_in: ApprovalUpdate) -> None:
        if approval.next_approver_id is None:
            self._close(
                claim, ClaimStatus.APPROVED,
                notes=approval_in.notes, approved_amount=approval_in.approved_amount,
            )
            return
        if "approved_amount" in approval_in.model_fields_set:
            raise ClaimValidationError("approvedAmount can only be set by the final approver")

        approval.status = ApprovalStatus.APPROVED
        approval.notes = approval_in.notes or ""

        owner = crud.user.get(self.db, id=claim.user_id)
        if owner is None:
            raise UserNotFound("User not found")
        route = self._route_for(owner, claim.total_amount)
        next_id = approval.next_approver_id
        level = route.level_of(next_id, after_level=approval.approval_level)
        if level is None:
            level = min(approval.approval_level + 1, ApprovalLevel.CXO.value)
        following = route.next_step(after_level=level, approver_id=next_id)

        claim.current_approver_id = next_id
        crud.approval.create(
            self.db,
            obj_in={
                "claim_id": claim.id,
                "approver_id": next_id,
                "approval_level": int(level),
                "status": ApprovalStatus.PENDING,
                "notes": "",
                "next_approver_id": following.approver.id if following else None,
            },
            commit=False,
        )
        logger.info(
            "Claim %s approved at level %s, moved to user %s",
            claim.claim_number, approval.approval_level, next_id,
        )

    def _close(
        self,
        claim: Claim,
        outcome: ClaimStatus,
        *,
        notes: Optional[str] = None,
        approved_amount: Optional[float] = None,
    ) -> None:
        """Final decision: stamp the claim and settle every pending approval."""
        now = utcnow()
        if outcome == ClaimStatus.REJECTED:
            if not notes or not notes.strip():
                raise ClaimValidationError("A rejection reason is required")
            claim.rejected_at = now
            claim.approved_amount = None
            approval_status = ApprovalStatus.REJECTED
        else:
            amount = claim.total_amount if approved_amount is None else approved_amount
            if amount < 0 or amount > claim.total_amount:
                raise ClaimValidationError("approvedAmount must be between 0 and the claimed total")
            claim.approved_at = now
            claim.approved_amount = amount
            approval_status = ApprovalStatus.APPROVED

        claim.status = outcome
        claim.current_approver_id = None
        if notes is not None:
            claim.notes = notes

        for pending in crud.approval.get_pending_for_claim(self.db, claim_id=claim.id):
            pending.status = approval_status
            pending.notes = notes or ""
        logger.info("Claim %s %s", claim.claim_number, outcome.value)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _edit_draft(self, claim: Claim, actor: User, edits: Dict[str, Any]) -> None:
        self._require_owner(claim, actor)
        if claim.status != ClaimStatus.DRAFT:
            raise InvalidTransition("Only draft claims can be edited")
        for field, value in edits.items():
            setattr(claim, field, value)

    def _route_for(self, owner: User, amount: float, directory: Optional[List[User]] = None) -> ApprovalRoute:
        if directory is None:
            directory = crud.user.get_directory(self.db)
        return self.policy.resolve_approval_chain(
            directory, owner.department, owner.business_unit, amount, exclude_user_id=owner.id,
        )

    @staticmethod
    def _require_owner(claim: Claim, actor: User) -> None:
        if claim.user_id != actor.id and not is_admin(actor):
            raise NotAuthorized("Only the claim owner can do this")

    @staticmethod
    def _require_owner_or_current_approver(claim: Claim, actor: User) -> None:
        if actor.id not in (claim.user_id, claim.current_approver_id) and not is_admin(actor):
            raise NotAuthorized("Only the claim owner or its current approver can annotate it")

    @staticmethod
    def _require_current_approver(claim: Claim, actor: User) -> None:
        if claim.current_approver_id != actor.id and not is_admin(actor):
            raise NotAuthorized("Only the current approver can decide this claim")

    @staticmethod
    def _require_payments_role(actor: User) -> None:
        if not can_process_payments(actor):
            raise NotAuthorized("Finance or admin role required")

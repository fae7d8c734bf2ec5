"""Approval routing for expense claims.

Decides who has to sign off a claim: the submitter's direct manager when
there is one, otherwise amount-based brackets mapped onto department-scoped
role lookups. Everything here is a pure lookup over a directory snapshot
(a sequence of ``User`` rows in id order); nothing touches the session.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from app.core.config import settings
from app.models.approval import ApprovalLevel
from app.models.user import User, UserRole

logger = logging.getLogger(__name__)

_BAND_DIGITS = re.compile(r"(\d+)")


def band_rank(band: Optional[str]) -> int:
    """Numeric seniority of a band string ("B4" -> 4); unparseable bands rank 0."""
    if not band:
        return 0
    match = _BAND_DIGITS.search(band)
    return int(match.group(1)) if match else 0


@dataclass(frozen=True)
class ThresholdBracket:
    upper_limit: Optional[float]  # inclusive; None means unbounded
    level: ApprovalLevel

    def contains(self, amount: float) -> bool:
        return self.upper_limit is None or amount <= self.upper_limit


@dataclass(frozen=True)
class ChainStep:
    level: ApprovalLevel
    approver: User


@dataclass
class ApprovalRoute:
    """Ordered approvers for one claim plus the levels nobody could fill."""
    steps: List[ChainStep] = field(default_factory=list)
    unresolved_levels: List[ApprovalLevel] = field(default_factory=list)

    @property
    def approvers(self) -> List[User]:
        return [step.approver for step in self.steps]

    @property
    def is_complete(self) -> bool:
        return not self.unresolved_levels

    def level_of(self, approver_id: int, *, after_level: int = 0) -> Optional[ApprovalLevel]:
        for step in self.steps:
            if step.level > after_level and step.approver.id == approver_id:
                return step.level
        return None

    def next_step(self, *, after_level: int, approver_id: Optional[int] = None) -> Optional[ChainStep]:
        """First step above ``after_level`` held by someone other than ``approver_id``."""
        for step in self.steps:
            if step.level <= after_level:
                continue
            if approver_id is not None and step.approver.id == approver_id:
                continue
            return step
        return None


class ApprovalPolicy:
    def __init__(
        self,
        brackets: Sequence[ThresholdBracket],
        *,
        director_min_band: str = "B4",
        finance_department: str = "Finance",
        executive_department: str = "Administration",
    ):
        self.brackets = self._check_brackets(brackets)
        self.director_min_band = director_min_band
        self.finance_department = finance_department
        self.executive_department = executive_department

    @classmethod
    def from_settings(cls, config=settings) -> "ApprovalPolicy":
        return cls(
            [
                ThresholdBracket(config.MANAGER_APPROVAL_LIMIT, ApprovalLevel.MANAGER),
                ThresholdBracket(config.FINANCE_APPROVAL_LIMIT, ApprovalLevel.FINANCE),
                ThresholdBracket(config.DIRECTOR_APPROVAL_LIMIT, ApprovalLevel.DIRECTOR),
                ThresholdBracket(None, ApprovalLevel.CXO),
            ],
            director_min_band=config.DIRECTOR_MIN_BAND,
            finance_department=config.FINANCE_DEPARTMENT,
            executive_department=config.EXECUTIVE_DEPARTMENT,
        )

    @staticmethod
    def _check_brackets(brackets: Sequence[ThresholdBracket]) -> List[ThresholdBracket]:
        brackets = list(brackets)
        if not brackets:
            raise ValueError("At least one approval bracket is required")
        if brackets[-1].upper_limit is not None:
            raise ValueError("The last approval bracket must be unbounded")
        limits = [b.upper_limit for b in brackets[:-1]]
        if any(limit is None for limit in limits):
            raise ValueError("Only the last approval bracket may be unbounded")
        if limits != sorted(limits) or len(set(limits)) != len(limits):
            raise ValueError("Approval brackets must be strictly ascending")
        levels = [b.level for b in brackets]
        if levels != sorted(levels):
            raise ValueError("Approval levels must rise with the brackets")
        return brackets

    # ------------------------------------------------------------------
    # Amount brackets
    # ------------------------------------------------------------------

    def level_for_amount(self, amount: float) -> ApprovalLevel:
        if amount < 0:
            raise ValueError("Claim amount cannot be negative")
        for bracket in self.brackets:
            if bracket.contains(amount):
                return bracket.level
        return self.brackets[-1].level

    def levels_for_amount(self, amount: float) -> List[ApprovalLevel]:
        """Every level from manager up to the bracket level, in sign-off order."""
        top = self.level_for_amount(amount)
        return [level for level in ApprovalLevel if level <= top]

    # ------------------------------------------------------------------
    # Directory lookups
    # ------------------------------------------------------------------

    def department_for_level(self, level: ApprovalLevel, department: str) -> str:
        if level == ApprovalLevel.FINANCE:
            return self.finance_department
        if level == ApprovalLevel.CXO:
            return self.executive_department
        return department

    def is_eligible(self, user: User, level: ApprovalLevel) -> bool:
        if level == ApprovalLevel.MANAGER:
            return user.role == UserRole.MANAGER
        if level == ApprovalLevel.FINANCE:
            return user.role == UserRole.FINANCE
        if level == ApprovalLevel.DIRECTOR:
            return (
                user.role == UserRole.MANAGER
                and band_rank(user.band) >= band_rank(self.director_min_band)
            )
        if level == ApprovalLevel.CXO:
            return user.role == UserRole.ADMIN
        return False

    def approvers_for_department_and_level(
        self, users: Iterable[User], department: str, level: ApprovalLevel
    ) -> List[User]:
        return [
            user for user in users
            if user.department == department and self.is_eligible(user, level)
        ]

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    def resolve_first_approver(
        self, users: Sequence[User], submitter: User, amount: float
    ) -> Optional[User]:
        """The one person who acts first on a freshly submitted claim.

        The reporting line wins over amount routing; brackets are only used
        when the submitter has no (known) direct manager.
        """
        if submitter.manager_id is not None:
            manager = next((u for u in users if u.id == submitter.manager_id), None)
            if manager is not None:
                return manager
            logger.warning(
                "Manager %s of user %s is not in the directory, falling back to amount routing",
                submitter.manager_id, submitter.id,
            )

        level = self.level_for_amount(amount)
        candidates = [
            user for user in self.approvers_for_department_and_level(users, submitter.department, level)
            if user.id != submitter.id
        ]
        if not candidates:
            logger.warning(
                "No %s-level approver in department %r for user %s (amount %s)",
                level.name.lower(), submitter.department, submitter.id, amount,
            )
            return None
        return candidates[0]

    def resolve_approval_chain(
        self,
        users: Sequence[User],
        department: str,
        business_unit: str,
        amount: float,
        *,
        exclude_user_id: Optional[int] = None,
    ) -> ApprovalRoute:
        route = ApprovalRoute()
        for level in self.levels_for_amount(amount):
            lookup_department = self.department_for_level(level, department)
            candidates = [
                user for user in self.approvers_for_department_and_level(users, lookup_department, level)
                if user.id != exclude_user_id
            ]
            if candidates:
                route.steps.append(ChainStep(level=level, approver=candidates[0]))
            else:
                route.unresolved_levels.append(level)

        if route.unresolved_levels:
            logger.warning(
                "Approval chain for %s/%s amount %s has no approver for: %s",
                department, business_unit, amount,
                ", ".join(level.name.lower() for level in route.unresolved_levels),
            )
        return route

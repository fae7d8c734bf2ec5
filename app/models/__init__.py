from .base import BaseModel
from .user import User, UserRole
from .claim import Claim, ClaimStatus, ClaimType
from .approval import Approval, ApprovalStatus, ApprovalLevel

__all__ = [
    "BaseModel", "User", "UserRole",
    "Claim", "ClaimStatus", "ClaimType",
    "Approval", "ApprovalStatus", "ApprovalLevel",
]

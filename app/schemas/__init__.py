# File: app/schemas/__init__.py
from .base import APIModel
from .user import User, UserBase, UserCreate, UserUpdate
from .auth import Token, LoginRequest
from .claim import Claim, ClaimCreate, ClaimUpdate, ApprovalChain, ApprovalChainStep
from .claim_details import (
    ClaimDetails, CLAIM_DETAILS_SCHEMAS, parse_claim_details, format_validation_errors,
    TravelExpenseDetails, BusinessPromotionDetails, ConveyanceClaimDetails,
    MobileBillDetails, RelocationExpenseDetails, OtherClaimDetails,
)
from .approval import Approval, ApprovalCreate, ApprovalUpdate, ApprovalWithApprover

"""Per-type payloads carried in ``Claim.details``.

Each claim type has exactly one details model; ``parse_claim_details`` picks
the model from the claim type and validates the raw JSON against it, so a
claim is never persisted as submitted with a payload of the wrong shape.
"""
from typing import Annotated, Any, ClassVar, Dict, List, Optional, Type, Union

from pydantic import Field, ValidationError

from app.models.claim import ClaimType
from app.schemas.base import APIModel

RequiredStr = Annotated[str, Field(min_length=1)]


class ClaimDetailsBase(APIModel):
    claim_type: ClassVar[ClaimType]

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class TravelExpenseItem(APIModel):
    date: RequiredStr
    category: RequiredStr
    description: RequiredStr
    amount: float = Field(ge=0.01)
    receipt: Optional[str] = None


class TravelChecklist(APIModel):
    receipts_attached: bool = False
    policy_compliance: bool = False
    details_accurate: bool = False


class TravelExpenseDetails(ClaimDetailsBase):
    claim_type: ClassVar[ClaimType] = ClaimType.TRAVEL

    destination: RequiredStr
    purpose: RequiredStr
    departure_date: RequiredStr
    return_date: RequiredStr
    travel_mode: RequiredStr
    travel_class: RequiredStr
    advance_amount: float = 0
    expenses: List[TravelExpenseItem] = Field(min_length=1)
    checklist: TravelChecklist
    documents: Optional[List[str]] = None
    additional_notes: Optional[str] = None


class BusinessPromotionDetails(ClaimDetailsBase):
    claim_type: ClassVar[ClaimType] = ClaimType.BUSINESS_PROMOTION

    client_name: RequiredStr
    event_date: RequiredStr
    expense_type: RequiredStr
    total_cost: float = Field(ge=0.01)
    attendees: int = Field(ge=1)
    cost_per_person: float
    purpose: RequiredStr
    documents: Optional[List[str]] = None
    additional_notes: Optional[str] = None


class ConveyanceClaimDetails(ClaimDetailsBase):
    claim_type: ClassVar[ClaimType] = ClaimType.CONVEYANCE

    date: RequiredStr
    from_location: RequiredStr
    to_location: RequiredStr
    distance: float = Field(ge=0.1)
    vehicle_type: RequiredStr
    purpose: RequiredStr
    rate_per_km: float
    total_amount: float
    documents: Optional[List[str]] = None
    additional_notes: Optional[str] = None


class MobileBillDetails(ClaimDetailsBase):
    claim_type: ClassVar[ClaimType] = ClaimType.MOBILE_BILL

    period: RequiredStr
    total_bill: float = Field(ge=0.01)
    deductions: float = 0
    gst_amount: float
    net_claim: float
    isd_calls: bool = False
    bill_attachment: Optional[str] = None
    additional_notes: Optional[str] = None


class RelocationExpenseDetails(ClaimDetailsBase):
    claim_type: ClassVar[ClaimType] = ClaimType.RELOCATION

    from_location: RequiredStr
    to_location: RequiredStr
    moving_date: RequiredStr
    ticket_cost: float
    goods_transport_cost: float
    other_expenses: float = 0
    total_amount: float
    documents: Optional[List[str]] = None
    additional_notes: Optional[str] = None


class OtherClaimDetails(ClaimDetailsBase):
    claim_type: ClassVar[ClaimType] = ClaimType.OTHER

    expense_type: RequiredStr
    description: RequiredStr
    amount: float = Field(ge=0.01)
    date: RequiredStr
    documents: Optional[List[str]] = None
    additional_notes: Optional[str] = None


ClaimDetails = Union[
    TravelExpenseDetails,
    BusinessPromotionDetails,
    ConveyanceClaimDetails,
    MobileBillDetails,
    RelocationExpenseDetails,
    OtherClaimDetails,
]

CLAIM_DETAILS_SCHEMAS: Dict[ClaimType, Type[ClaimDetailsBase]] = {
    schema.claim_type: schema
    for schema in (
        TravelExpenseDetails,
        BusinessPromotionDetails,
        ConveyanceClaimDetails,
        MobileBillDetails,
        RelocationExpenseDetails,
        OtherClaimDetails,
    )
}


def parse_claim_details(claim_type: ClaimType, payload: Optional[Dict[str, Any]]) -> ClaimDetails:
    """Validate a raw details payload; raises pydantic ``ValidationError``."""
    schema = CLAIM_DETAILS_SCHEMAS[claim_type]
    return schema.model_validate(payload or {})


def format_validation_errors(exc: ValidationError) -> List[Dict[str, str]]:
    return [
        {
            "path": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]

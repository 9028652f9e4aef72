"""
Stock Issuance Schemas

Covers:
- Issuing stock against an order (explicit list or planned from order lines)
- Reversing an issuance
- Manual (order-less) issuance
- Issuance history and line issue status
"""
from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import datetime
from decimal import Decimal

from unity_erp.services.issuance_ledger import IssuanceState


# ============================================================================
# Requests
# ============================================================================

class IssueItem(BaseModel):
    component_id: int
    quantity: Decimal


class StockIssueRequest(BaseModel):
    """
    Issue stock against an order.

    Either pass `issues` directly, or select `order_detail_ids` (plus any
    `manual_components`) and let the server plan the quantities.
    """
    issues: List[IssueItem] = Field(default_factory=list)
    order_detail_ids: List[int] = Field(default_factory=list)
    manual_components: List[IssueItem] = Field(default_factory=list)
    quantity_overrides: Dict[int, Decimal] = Field(default_factory=dict)

    notes: Optional[str] = None
    staff_id: Optional[int] = None
    purchase_order_id: Optional[int] = None
    created_by: Optional[str] = Field(None, max_length=100)


class IssuePlanRequest(BaseModel):
    order_detail_ids: List[int] = Field(default_factory=list)
    manual_components: List[IssueItem] = Field(default_factory=list)
    quantity_overrides: Dict[int, Decimal] = Field(default_factory=dict)


class ReverseIssuanceRequest(BaseModel):
    quantity: Decimal
    reason: Optional[str] = None
    created_by: Optional[str] = Field(None, max_length=100)


class ManualIssueRequest(BaseModel):
    component_id: int
    quantity: Decimal
    external_reference: str = Field(..., max_length=200)
    issue_category: str = "production"
    notes: Optional[str] = None
    staff_id: Optional[int] = None
    created_by: Optional[str] = Field(None, max_length=100)


# ============================================================================
# Responses
# ============================================================================

class IssuanceResultResponse(BaseModel):
    issuance_id: Optional[int] = None
    transaction_id: Optional[int] = None
    quantity_on_hand: Optional[float] = None
    success: bool
    message: str
    component_id: Optional[int] = None
    quantity: Optional[float] = None


class IssueBatchResponse(BaseModel):
    """Per-entry outcomes; entries before a failure stay issued"""
    order_id: int
    success: bool
    message: str
    results: List[IssuanceResultResponse]
    not_attempted: List[IssueItem] = []


class ReversalResultResponse(BaseModel):
    issuance_id: int
    reversal_id: Optional[int] = None
    transaction_id: Optional[int] = None
    quantity_on_hand: Optional[float] = None
    remaining_quantity: Optional[float] = None
    success: bool
    message: str


class IssuePlanEntryResponse(BaseModel):
    component_id: int
    internal_code: str
    description: Optional[str] = None
    required_quantity: float
    already_issued: float
    available_quantity: float
    issue_quantity: float
    manual: bool
    has_warning: bool


class IssuePlanResponse(BaseModel):
    order_id: int
    entries: List[IssuePlanEntryResponse]


class IssuanceItemResponse(BaseModel):
    issuance_id: int
    component_id: int
    internal_code: Optional[str] = None
    description: Optional[str] = None
    quantity_issued: float
    quantity_reversed: float
    effective_quantity: float
    issuance_date: datetime


class IssuanceGroupResponse(BaseModel):
    group_key: str
    issuance_date: datetime
    staff_id: Optional[int] = None
    staff_name: Optional[str] = None
    notes: Optional[str] = None
    items: List[IssuanceItemResponse]


class ComponentIssuedResponse(BaseModel):
    component_id: int
    issued: float
    issued_display: str


class ComponentIssueStatusResponse(BaseModel):
    component_id: int
    internal_code: str
    required: float
    issued: float
    remaining: float
    state: IssuanceState


class LineIssueStatusResponse(BaseModel):
    product_id: int
    order_detail_ids: List[int]
    fully_issued: bool
    components: List[ComponentIssueStatusResponse]


class IssuanceSummaryResponse(BaseModel):
    order_id: int
    groups: List[IssuanceGroupResponse]
    issued_by_component: List[ComponentIssuedResponse]
    lines: List[LineIssueStatusResponse]
    fully_issued_order_detail_ids: List[int]

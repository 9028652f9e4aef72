"""
Stock Issuance API Endpoints

Endpoints for:
- Issuance history and line issue status of an order
- Issuing stock against an order (batch, not all-or-nothing)
- Reversing an issuance, in part or in full
- Manual issuance without an order
"""
from fastapi import APIRouter, Depends
from typing import List

from unity_erp.api.v1.deps import get_issuance_service, get_requirements_service
from unity_erp.schemas.stock_issuance import (
    ComponentIssuedResponse,
    ComponentIssueStatusResponse,
    IssuanceGroupResponse,
    IssuanceItemResponse,
    IssuanceResultResponse,
    IssuanceSummaryResponse,
    IssueBatchResponse,
    IssueItem,
    IssuePlanEntryResponse,
    IssuePlanRequest,
    IssuePlanResponse,
    LineIssueStatusResponse,
    ManualIssueRequest,
    ReversalResultResponse,
    ReverseIssuanceRequest,
    StockIssueRequest,
)
from unity_erp.exceptions import ValidationError
from unity_erp.services.issuance_ledger import IssuePlanEntry, issues_to_process
from unity_erp.services.order_requirements import OrderRequirementsService
from unity_erp.services.quantities import format_quantity
from unity_erp.services.stock_issuance_service import (
    IssuanceResult,
    IssueRequest,
    StockIssuanceService,
)


router = APIRouter(tags=["stock-issuances"])


def _result_response(result: IssuanceResult) -> IssuanceResultResponse:
    return IssuanceResultResponse(
        issuance_id=result.issuance_id,
        transaction_id=result.transaction_id,
        quantity_on_hand=float(result.quantity_on_hand) if result.quantity_on_hand is not None else None,
        success=result.success,
        message=result.message,
        component_id=result.component_id,
        quantity=float(result.quantity) if result.quantity is not None else None,
    )


def _plan_response(entry: IssuePlanEntry) -> IssuePlanEntryResponse:
    return IssuePlanEntryResponse(
        component_id=entry.component_id,
        internal_code=entry.internal_code,
        description=entry.description,
        required_quantity=float(entry.required_quantity),
        already_issued=float(entry.already_issued),
        available_quantity=float(entry.available_quantity),
        issue_quantity=float(entry.issue_quantity),
        manual=entry.manual,
        has_warning=entry.has_warning,
    )


def _manual_requests(items: List[IssueItem]) -> List[IssueRequest]:
    return [IssueRequest(i.component_id, i.quantity) for i in items]


# ============================================================================
# Order issuances
# ============================================================================

@router.get("/orders/{order_id}/stock-issuances", response_model=IssuanceSummaryResponse)
async def get_order_issuances(
    order_id: int,
    service: OrderRequirementsService = Depends(get_requirements_service),
):
    """
    Issuance history of an order grouped for display, the effective issued
    quantity per component and which order lines are fully issued.
    """
    summary = service.get_issuance_summary(order_id)
    return IssuanceSummaryResponse(
        order_id=order_id,
        groups=[
            IssuanceGroupResponse(
                group_key=g.group_key,
                issuance_date=g.issuance_date,
                staff_id=g.staff_id,
                staff_name=g.staff_name,
                notes=g.notes,
                items=[
                    IssuanceItemResponse(
                        issuance_id=i.issuance_id,
                        component_id=i.component_id,
                        internal_code=i.internal_code,
                        description=i.description,
                        quantity_issued=float(i.quantity_issued),
                        quantity_reversed=float(i.quantity_reversed),
                        effective_quantity=float(i.effective_quantity),
                        issuance_date=i.issuance_date,
                    )
                    for i in g.items
                ],
            )
            for g in summary.groups
        ],
        issued_by_component=[
            ComponentIssuedResponse(component_id=cid, issued=float(qty), issued_display=format_quantity(qty))
            for cid, qty in sorted(summary.issued_by_component.items())
        ],
        lines=[
            LineIssueStatusResponse(
                product_id=line.product_id,
                order_detail_ids=line.order_detail_ids,
                fully_issued=line.fully_issued,
                components=[
                    ComponentIssueStatusResponse(
                        component_id=c.component_id,
                        internal_code=c.internal_code,
                        required=float(c.required),
                        issued=float(c.issued),
                        remaining=float(c.remaining),
                        state=c.state,
                    )
                    for c in line.components
                ],
            )
            for line in summary.lines
        ],
        fully_issued_order_detail_ids=summary.fully_issued_order_detail_ids,
    )


@router.post("/orders/{order_id}/stock-issuances/plan", response_model=IssuePlanResponse)
async def plan_order_issue(
    order_id: int,
    request: IssuePlanRequest,
    service: OrderRequirementsService = Depends(get_requirements_service),
):
    """Components and default quantities to issue for the selected order lines"""
    plan = service.plan_issue(
        order_id,
        request.order_detail_ids,
        manual_components=_manual_requests(request.manual_components),
        quantity_overrides=request.quantity_overrides,
    )
    return IssuePlanResponse(order_id=order_id, entries=[_plan_response(e) for e in plan])


@router.post("/orders/{order_id}/stock-issuances", response_model=IssueBatchResponse)
async def issue_order_stock(
    order_id: int,
    request: StockIssueRequest,
    requirements: OrderRequirementsService = Depends(get_requirements_service),
    service: StockIssuanceService = Depends(get_issuance_service),
):
    """
    Issue stock against an order.

    Entries are issued one at a time and processing stops at the first
    failure. Entries issued before the failure are NOT rolled back; the
    response lists what went through and what was never attempted.
    """
    if request.issues:
        issues = _manual_requests(request.issues)
    elif request.order_detail_ids or request.manual_components:
        plan = requirements.plan_issue(
            order_id,
            request.order_detail_ids,
            manual_components=_manual_requests(request.manual_components),
            quantity_overrides=request.quantity_overrides,
        )
        issues = [IssueRequest(i["component_id"], i["quantity"]) for i in issues_to_process(plan)]
    else:
        raise ValidationError("Please select components to issue", field="issues")

    batch = service.issue_batch(
        order_id,
        issues,
        purchase_order_id=request.purchase_order_id,
        notes=request.notes,
        staff_id=request.staff_id,
        created_by=request.created_by,
    )
    return IssueBatchResponse(
        order_id=order_id,
        success=batch.success,
        message=batch.message,
        results=[_result_response(r) for r in batch.results],
        not_attempted=[IssueItem(component_id=i.component_id, quantity=i.quantity) for i in batch.not_attempted],
    )


# ============================================================================
# Reversal / manual issue
# ============================================================================

@router.post("/stock-issuances/{issuance_id}/reverse", response_model=ReversalResultResponse)
async def reverse_issuance(
    issuance_id: int,
    request: ReverseIssuanceRequest,
    service: StockIssuanceService = Depends(get_issuance_service),
):
    """Return part or all of an issuance to stock"""
    result = service.reverse_issuance(
        issuance_id,
        request.quantity,
        reason=request.reason,
        created_by=request.created_by,
    )
    return ReversalResultResponse(
        issuance_id=issuance_id,
        reversal_id=result.reversal_id,
        transaction_id=result.transaction_id,
        quantity_on_hand=float(result.quantity_on_hand) if result.quantity_on_hand is not None else None,
        remaining_quantity=float(result.remaining_quantity) if result.remaining_quantity is not None else None,
        success=result.success,
        message=result.message,
    )


@router.post("/stock-issuances/manual", response_model=IssuanceResultResponse)
async def issue_manual_stock(
    request: ManualIssueRequest,
    service: StockIssuanceService = Depends(get_issuance_service),
):
    """Issue stock without an order; requires an external reference"""
    result = service.issue_manual(
        request.component_id,
        request.quantity,
        external_reference=request.external_reference,
        issue_category=request.issue_category,
        notes=request.notes,
        staff_id=request.staff_id,
        created_by=request.created_by,
    )
    return _result_response(result)

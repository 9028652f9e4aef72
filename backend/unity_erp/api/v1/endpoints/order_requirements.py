"""
Order Component Requirements API Endpoints

Endpoints for:
- Component requirements and shortfalls of an order (single-order and global)
- Supplier groups for purchasing an order's real shortfalls
"""
from fastapi import APIRouter, Depends, Query
from typing import Optional

from unity_erp.api.v1.deps import get_requirements_service
from unity_erp.schemas.requirements import (
    AllocationResponse,
    ComponentRequirementResponse,
    ComponentSourcingResponse,
    OnOrderSupplyResponse,
    OrderComponentRequirementsResponse,
    OrderDemandResponse,
    ProductComponentResponse,
    ProductRequirementResponse,
    RequirementsSummary,
    SupplierGroupResponse,
    SupplierGroupsResponse,
    SupplierOptionResponse,
    UnsourcedComponentResponse,
)
from unity_erp.services.order_requirements import OrderRequirementsService
from unity_erp.services.quantities import format_quantity
from unity_erp.services.requirement_explosion import ProductRequirement
from unity_erp.services.shortfall import ComponentRequirement
from unity_erp.services.supplier_allocation import ComponentSourcing, SupplierGroup


router = APIRouter(prefix="/orders", tags=["component-requirements"])


def _product_response(product: ProductRequirement) -> ProductRequirementResponse:
    return ProductRequirementResponse(
        product_id=product.product_id,
        product_code=product.product_code,
        product_name=product.product_name,
        order_detail_ids=product.order_detail_ids,
        ordered_quantity=float(product.ordered_quantity),
        reserved_quantity=float(product.reserved_quantity),
        coverage_factor=float(product.coverage_factor),
        components=[
            ProductComponentResponse(
                component_id=c.component_id,
                internal_code=c.internal_code,
                description=c.description,
                quantity_per_unit=float(c.quantity_per_unit),
                required=float(c.required),
                required_display=format_quantity(c.required),
                required_base=float(c.required_base) if c.required_base is not None else None,
            )
            for c in product.components
        ],
    )


def _component_response(req: ComponentRequirement) -> ComponentRequirementResponse:
    return ComponentRequirementResponse(
        component_id=req.component_id,
        internal_code=req.internal_code,
        description=req.description,
        required=float(req.required),
        required_display=format_quantity(req.required),
        in_stock=float(req.in_stock),
        on_order=float(req.on_order),
        apparent_shortfall=float(req.apparent_shortfall),
        real_shortfall=float(req.real_shortfall),
        status=req.status,
        total_required_all_orders=float(req.total_required_all_orders),
        order_count=req.order_count,
        global_apparent_shortfall=float(req.global_apparent_shortfall),
        global_real_shortfall=float(req.global_real_shortfall),
        global_status=req.global_status,
        product_ids=req.product_ids,
        order_breakdown=[
            OrderDemandResponse(order_id=d.order_id, required=float(d.required), order_status=d.order_status)
            for d in req.order_breakdown
        ],
        on_order_breakdown=[
            OnOrderSupplyResponse(
                supplier_order_id=s.supplier_order_id,
                purchase_order_id=s.purchase_order_id,
                supplier_name=s.supplier_name,
                outstanding=float(s.outstanding),
                status_name=s.status_name,
            )
            for s in req.on_order_breakdown
        ],
    )


def _sourcing_response(comp: ComponentSourcing) -> ComponentSourcingResponse:
    return ComponentSourcingResponse(
        component_id=comp.component_id,
        internal_code=comp.internal_code,
        description=comp.description,
        real_shortfall=float(comp.real_shortfall),
        real_shortfall_display=format_quantity(comp.real_shortfall),
        selected_supplier_component_id=comp.selected.supplier_component_id,
        options=[
            SupplierOptionResponse(
                supplier_component_id=o.supplier_component_id,
                supplier_id=o.supplier_id,
                supplier_name=o.supplier_name,
                unit_price=float(o.unit_price) if o.unit_price is not None else None,
                supplier_code=o.supplier_code,
                lead_time=o.lead_time,
            )
            for o in comp.options
        ],
        allocation=AllocationResponse(
            order_quantity=float(comp.allocation.order_quantity),
            for_this_order=float(comp.allocation.for_this_order),
            for_stock=float(comp.allocation.for_stock),
        ),
    )


def _group_response(group: SupplierGroup) -> SupplierGroupResponse:
    return SupplierGroupResponse(
        supplier_id=group.supplier_id,
        supplier_name=group.supplier_name,
        emails=group.emails,
        component_count=group.component_count,
        estimated_total=float(group.estimated_total),
        components=[_sourcing_response(c) for c in group.components],
    )


# ============================================================================
# Requirements
# ============================================================================

@router.get("/{order_id}/component-requirements", response_model=OrderComponentRequirementsResponse)
async def get_component_requirements(
    order_id: int,
    apply_fg_coverage: Optional[bool] = Query(
        None, description="Scale requirements by finished-goods reservations (default from settings)"
    ),
    service: OrderRequirementsService = Depends(get_requirements_service),
):
    """
    Component requirements of an order.

    Per component: required (after finished-goods coverage when enabled),
    in stock, on order, apparent and real shortfall, and the same shortfalls
    across every open order that needs the component.
    """
    view = service.get_component_requirements(order_id, apply_fg_coverage)
    counts = view.summary
    return OrderComponentRequirementsResponse(
        order_id=view.order.order_id,
        order_status=view.order.status,
        delivery_date=view.order.delivery_date,
        apply_fg_coverage=view.apply_coverage,
        summary=RequirementsSummary(
            total_components=len(view.components),
            short=counts["short"],
            covered_by_on_order=counts["covered_by_on_order"],
            none=counts["none"],
        ),
        products=[_product_response(p) for p in view.products],
        components=[_component_response(c) for c in view.components],
    )


# ============================================================================
# Supplier groups
# ============================================================================

@router.get("/{order_id}/supplier-groups", response_model=SupplierGroupsResponse)
async def get_supplier_groups(
    order_id: int,
    apply_fg_coverage: Optional[bool] = Query(None),
    service: OrderRequirementsService = Depends(get_requirements_service),
):
    """
    Really short components grouped by their cheapest supplier.

    Each component carries all of its supplier options and a default
    allocation (whole shortfall for this order, nothing for stock).
    """
    view = service.get_component_requirements(order_id, apply_fg_coverage)
    result = service.get_supplier_groups(order_id, view.apply_coverage)
    return SupplierGroupsResponse(
        order_id=order_id,
        apply_fg_coverage=view.apply_coverage,
        groups=[_group_response(g) for g in result.groups],
        unsourced=[
            UnsourcedComponentResponse(
                component_id=c.component_id,
                internal_code=c.internal_code,
                real_shortfall=float(c.real_shortfall),
            )
            for c in result.unsourced
        ],
    )

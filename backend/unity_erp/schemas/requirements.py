"""
Component Requirements Schemas

Response schemas for:
- GET /api/v1/orders/{order_id}/component-requirements
- GET /api/v1/orders/{order_id}/supplier-groups

Quantities are floats in responses; every quantity that is shown to a
user also comes with a *_display string (integer when within 0.001 of
one, otherwise two decimals).
"""
from pydantic import BaseModel
from typing import List, Optional
from datetime import date

from unity_erp.services.shortfall import ShortfallStatus


# ============================================================================
# Requirements
# ============================================================================

class OrderDemandResponse(BaseModel):
    """One open order's requirement for a component"""
    order_id: int
    required: float
    order_status: Optional[str] = None


class OnOrderSupplyResponse(BaseModel):
    """Open supplier order line counted as on-order"""
    supplier_order_id: int
    purchase_order_id: Optional[int] = None
    supplier_name: Optional[str] = None
    outstanding: float
    status_name: Optional[str] = None


class ComponentRequirementResponse(BaseModel):
    component_id: int
    internal_code: str
    description: Optional[str] = None

    required: float
    required_display: str
    in_stock: float
    on_order: float
    apparent_shortfall: float
    real_shortfall: float
    status: ShortfallStatus

    total_required_all_orders: float
    order_count: int
    global_apparent_shortfall: float
    global_real_shortfall: float
    global_status: ShortfallStatus

    product_ids: List[int] = []
    order_breakdown: List[OrderDemandResponse] = []
    on_order_breakdown: List[OnOrderSupplyResponse] = []


class ProductComponentResponse(BaseModel):
    component_id: int
    internal_code: str
    description: Optional[str] = None
    quantity_per_unit: float
    required: float
    required_display: str
    required_base: Optional[float] = None  # before coverage


class ProductRequirementResponse(BaseModel):
    product_id: int
    product_code: Optional[str] = None
    product_name: Optional[str] = None
    order_detail_ids: List[int]
    ordered_quantity: float
    reserved_quantity: float
    coverage_factor: float
    components: List[ProductComponentResponse]


class RequirementsSummary(BaseModel):
    total_components: int
    short: int
    covered_by_on_order: int
    none: int


class OrderComponentRequirementsResponse(BaseModel):
    """Complete requirement view of one order"""
    order_id: int
    order_status: str
    delivery_date: Optional[date] = None
    apply_fg_coverage: bool
    summary: RequirementsSummary
    products: List[ProductRequirementResponse]
    components: List[ComponentRequirementResponse]


# ============================================================================
# Supplier groups
# ============================================================================

class SupplierOptionResponse(BaseModel):
    supplier_component_id: int
    supplier_id: int
    supplier_name: str
    unit_price: Optional[float] = None
    supplier_code: Optional[str] = None
    lead_time: Optional[int] = None


class AllocationResponse(BaseModel):
    order_quantity: float
    for_this_order: float
    for_stock: float


class ComponentSourcingResponse(BaseModel):
    component_id: int
    internal_code: str
    description: Optional[str] = None
    real_shortfall: float
    real_shortfall_display: str
    selected_supplier_component_id: int
    options: List[SupplierOptionResponse]
    allocation: AllocationResponse


class SupplierGroupResponse(BaseModel):
    supplier_id: int
    supplier_name: str
    emails: List[str] = []
    component_count: int
    estimated_total: float
    components: List[ComponentSourcingResponse]


class UnsourcedComponentResponse(BaseModel):
    """Really short component with no supplier option"""
    component_id: int
    internal_code: str
    real_shortfall: float


class SupplierGroupsResponse(BaseModel):
    order_id: int
    apply_fg_coverage: bool
    groups: List[SupplierGroupResponse]
    unsourced: List[UnsourcedComponentResponse] = []

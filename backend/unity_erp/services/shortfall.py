"""
Shortfall Classifier

One formula, used for both the single-order and the global view:

    apparent = max(0, required - in_stock)
    real     = max(0, required - in_stock - on_order)

The global view passes total_required_all_orders as `required`. Stock and
on-order supply are one physical pool, so they are the same in both views.

A component with apparent > 0 and real == 0 is already covered by open
supplier orders and is reported as COVERED_BY_ON_ORDER, not as something
to purchase.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from unity_erp.services.quantities import ZERO, non_negative, to_decimal
from unity_erp.services.requirement_explosion import ComponentTotal


class ShortfallStatus(str, Enum):
    NONE = "none"
    COVERED_BY_ON_ORDER = "covered_by_on_order"
    SHORT = "short"


@dataclass(frozen=True)
class Shortfall:
    required: Decimal
    in_stock: Decimal
    on_order: Decimal
    apparent: Decimal
    real: Decimal

    @property
    def status(self) -> ShortfallStatus:
        if self.real > ZERO:
            return ShortfallStatus.SHORT
        if self.apparent > ZERO:
            return ShortfallStatus.COVERED_BY_ON_ORDER
        return ShortfallStatus.NONE


def classify_shortfall(required, in_stock, on_order) -> Shortfall:
    """
    Apparent and real shortfall for a required quantity against the stock pool.

    Nothing required means nothing short, whatever the stock level.
    """
    required = to_decimal(required)
    in_stock = to_decimal(in_stock)
    on_order = non_negative(to_decimal(on_order))
    if required <= ZERO:
        return Shortfall(required=required, in_stock=in_stock, on_order=on_order, apparent=ZERO, real=ZERO)
    return Shortfall(
        required=required,
        in_stock=in_stock,
        on_order=on_order,
        apparent=non_negative(required - in_stock),
        real=non_negative(required - in_stock - on_order),
    )


# ============================================================================
# Component status (what the status provider returns per component)
# ============================================================================

@dataclass
class OrderDemand:
    """One open order's requirement for a component"""
    order_id: int
    required: Decimal
    order_status: Optional[str] = None


@dataclass
class OnOrderSupply:
    """One open supplier order line contributing on-order quantity"""
    supplier_order_id: int
    purchase_order_id: Optional[int]
    supplier_name: Optional[str]
    outstanding: Decimal
    status_name: Optional[str] = None


@dataclass
class ComponentStatus:
    """
    Stock position of one component.

    The global fields are optional: a provider that does not precompute them
    leaves them as None and resolve_global falls back to the breakdown.
    """
    component_id: int
    in_stock: Decimal = ZERO
    on_order: Decimal = ZERO
    order_breakdown: List[OrderDemand] = field(default_factory=list)
    on_order_breakdown: List[OnOrderSupply] = field(default_factory=list)
    total_required: Optional[Decimal] = None
    order_count: Optional[int] = None
    global_apparent_shortfall: Optional[Decimal] = None
    global_real_shortfall: Optional[Decimal] = None


@dataclass
class ComponentRequirement:
    """Requirement, stock position and shortfall of one component for one order"""
    order_id: int
    component_id: int
    internal_code: str
    description: Optional[str]
    required: Decimal
    in_stock: Decimal
    on_order: Decimal
    apparent_shortfall: Decimal
    real_shortfall: Decimal
    status: ShortfallStatus
    total_required_all_orders: Decimal
    order_count: int
    global_apparent_shortfall: Decimal
    global_real_shortfall: Decimal
    global_status: ShortfallStatus
    product_ids: List[int] = field(default_factory=list)
    order_breakdown: List[OrderDemand] = field(default_factory=list)
    on_order_breakdown: List[OnOrderSupply] = field(default_factory=list)


# ============================================================================
# Global aggregation
# ============================================================================

def global_demand_from_breakdown(
    order_id: int,
    required: Decimal,
    breakdown: Iterable[OrderDemand],
) -> Tuple[Decimal, int]:
    """
    Total requirement across open orders, from the per-order breakdown.

    The current order is counted with `required` (the value just computed
    here) rather than whatever the breakdown holds for it.
    """
    total = required
    orders = {order_id} if required > ZERO else set()
    for demand in breakdown:
        if demand.order_id == order_id:
            continue
        qty = to_decimal(demand.required)
        if qty <= ZERO:
            continue
        total += qty
        orders.add(demand.order_id)
    return total, len(orders)


def resolve_global(
    order_id: int,
    required: Decimal,
    status: ComponentStatus,
) -> Tuple[Decimal, int, Shortfall]:
    """
    Global totals for one component.

    Precomputed numbers from the status provider win when present; otherwise
    they are computed from the order breakdown with the same formula as the
    single-order view. Either way the total is never below `required`, so the
    global shortfall can never be below the single-order one.

    Returns:
        (total_required_all_orders, order_count, global Shortfall)
    """
    if status.total_required is not None:
        total = max(to_decimal(status.total_required), required)
        count = status.order_count
        if count is None:
            _, count = global_demand_from_breakdown(order_id, required, status.order_breakdown)
    else:
        total, count = global_demand_from_breakdown(order_id, required, status.order_breakdown)

    computed = classify_shortfall(total, status.in_stock, status.on_order)
    if status.global_apparent_shortfall is None or status.global_real_shortfall is None:
        return total, count, computed

    apparent = max(to_decimal(status.global_apparent_shortfall), computed.apparent)
    real = min(max(to_decimal(status.global_real_shortfall), computed.real), apparent)
    return total, count, Shortfall(
        required=total,
        in_stock=computed.in_stock,
        on_order=computed.on_order,
        apparent=apparent,
        real=real,
    )


def build_component_requirements(
    order_id: int,
    totals: Iterable[ComponentTotal],
    statuses: Mapping[int, ComponentStatus],
) -> List[ComponentRequirement]:
    """
    Classify every component of an order.

    Args:
        order_id: The order being viewed
        totals: Flattened (coverage-adjusted) requirements of the order
        statuses: Stock position per component_id; a missing component is
                  treated as nothing in stock and nothing on order

    Returns:
        ComponentRequirement per component, in the order of `totals`
    """
    results: List[ComponentRequirement] = []
    for total in totals:
        status = statuses.get(total.component_id) or ComponentStatus(component_id=total.component_id)
        local = classify_shortfall(total.required, status.in_stock, status.on_order)
        total_all, count, global_shortfall = resolve_global(order_id, local.required, status)
        results.append(
            ComponentRequirement(
                order_id=order_id,
                component_id=total.component_id,
                internal_code=total.internal_code,
                description=total.description,
                required=local.required,
                in_stock=local.in_stock,
                on_order=local.on_order,
                apparent_shortfall=local.apparent,
                real_shortfall=local.real,
                status=local.status,
                total_required_all_orders=total_all,
                order_count=count,
                global_apparent_shortfall=global_shortfall.apparent,
                global_real_shortfall=global_shortfall.real,
                global_status=global_shortfall.status,
                product_ids=list(total.product_ids),
                order_breakdown=list(status.order_breakdown),
                on_order_breakdown=list(status.on_order_breakdown),
            )
        )
    return results


def summarize_statuses(requirements: Iterable[ComponentRequirement]) -> Dict[str, int]:
    """Count components per ShortfallStatus"""
    counts = {s.value: 0 for s in ShortfallStatus}
    for req in requirements:
        counts[req.status.value] += 1
    return counts

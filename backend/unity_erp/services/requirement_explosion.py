"""
Requirement Explosion

Turns an order's line items and the BOM rows of their products into
per-product, per-component required quantities:

    required += bom.quantity_required × line.quantity

Two views are produced from the same explosion:
1. Product-grouped - one ProductRequirement per product on the order, with
   its component breakdown (used for display and "fully issued" checks)
2. Flattened - one entry per component_id, summed across every product
   (used for issuance and shortfall classification)

These functions are pure: no session, no shared state.
"""
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from unity_erp.services.quantities import ZERO, to_decimal


# ============================================================================
# Inputs
# ============================================================================

@dataclass(frozen=True)
class OrderLineInput:
    """One order line as the engine sees it"""
    order_detail_id: int
    product_id: int
    quantity: Decimal
    product_code: Optional[str] = None
    product_name: Optional[str] = None


@dataclass(frozen=True)
class BOMRowInput:
    """One BOM row with the component metadata needed for display"""
    product_id: int
    component_id: int
    quantity_required: Decimal
    internal_code: str = ""
    description: Optional[str] = None


# ============================================================================
# Outputs
# ============================================================================

@dataclass
class ProductComponentRequirement:
    """How much of one component one product on the order needs"""
    component_id: int
    internal_code: str
    description: Optional[str]
    quantity_per_unit: Decimal
    required: Decimal
    # Unscaled requirement when coverage has been applied
    required_base: Optional[Decimal] = None


@dataclass
class ProductRequirement:
    """A product on the order with its exploded components"""
    product_id: int
    product_code: Optional[str]
    product_name: Optional[str]
    order_detail_ids: List[int]
    ordered_quantity: Decimal
    components: List[ProductComponentRequirement] = field(default_factory=list)
    reserved_quantity: Decimal = ZERO
    coverage_factor: Decimal = Decimal("1")
    line_quantities: Dict[int, Decimal] = field(default_factory=dict)

    @property
    def has_bom(self) -> bool:
        return bool(self.components)


@dataclass
class ComponentTotal:
    """A component summed across every product on the order"""
    component_id: int
    internal_code: str
    description: Optional[str]
    required: Decimal
    product_ids: List[int] = field(default_factory=list)


def index_bom_rows(bom_rows: Iterable[BOMRowInput]) -> Dict[int, List[BOMRowInput]]:
    """Group BOM rows by product_id, keeping their order"""
    by_product: Dict[int, List[BOMRowInput]] = {}
    for row in bom_rows:
        by_product.setdefault(row.product_id, []).append(row)
    return by_product


def explode_order(
    lines: Iterable[OrderLineInput],
    bom_rows: Iterable[BOMRowInput],
) -> List[ProductRequirement]:
    """
    Explode order lines into product-grouped component requirements.

    Lines for the same product are merged into one ProductRequirement. A
    product without BOM rows still appears, with no components. An order
    without lines gives an empty list.

    Args:
        lines: Order lines (product_id, quantity)
        bom_rows: BOM rows for (at least) every product on the lines

    Returns:
        ProductRequirement list in first-seen product order
    """
    bom_by_product = index_bom_rows(bom_rows)
    products: "OrderedDict[int, ProductRequirement]" = OrderedDict()

    for line in lines:
        quantity = to_decimal(line.quantity)
        product = products.get(line.product_id)
        if product is None:
            product = ProductRequirement(
                product_id=line.product_id,
                product_code=line.product_code,
                product_name=line.product_name,
                order_detail_ids=[],
                ordered_quantity=ZERO,
            )
            products[line.product_id] = product
        product.order_detail_ids.append(line.order_detail_id)
        product.line_quantities[line.order_detail_id] = (
            product.line_quantities.get(line.order_detail_id, ZERO) + quantity
        )
        product.ordered_quantity += quantity

    for product in products.values():
        components: "OrderedDict[int, ProductComponentRequirement]" = OrderedDict()
        for row in bom_by_product.get(product.product_id, []):
            per_unit = to_decimal(row.quantity_required)
            existing = components.get(row.component_id)
            if existing is not None:
                # Duplicate BOM rows for one component add up
                existing.quantity_per_unit += per_unit
                existing.required += per_unit * product.ordered_quantity
                continue
            components[row.component_id] = ProductComponentRequirement(
                component_id=row.component_id,
                internal_code=row.internal_code,
                description=row.description,
                quantity_per_unit=per_unit,
                required=per_unit * product.ordered_quantity,
            )
        product.components = list(components.values())

    return list(products.values())


def flatten_by_component(products: Iterable[ProductRequirement]) -> List[ComponentTotal]:
    """
    Aggregate product-grouped requirements into one total per component_id.

    Args:
        products: Output of explode_order (optionally coverage-adjusted)

    Returns:
        ComponentTotal list in first-seen component order
    """
    totals: "OrderedDict[int, ComponentTotal]" = OrderedDict()
    for product in products:
        for comp in product.components:
            total = totals.get(comp.component_id)
            if total is None:
                total = ComponentTotal(
                    component_id=comp.component_id,
                    internal_code=comp.internal_code,
                    description=comp.description,
                    required=ZERO,
                )
                totals[comp.component_id] = total
            total.required += comp.required
            if product.product_id not in total.product_ids:
                total.product_ids.append(product.product_id)
    return list(totals.values())

"""
Finished-goods coverage

Reserving finished goods against an order reduces the units that still
have to be built, so every component requirement for that product shrinks
by the same fraction:

    remain = max(0, ordered - reserved)
    factor = remain / ordered            (1 when ordered is 0)
    required_effective = required_base * factor

Reservations are keyed by (order, product), so all lines of one product on
an order share a single factor computed from their summed quantity.
"""
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Tuple

from unity_erp.services.quantities import ZERO, non_negative, to_decimal
from unity_erp.services.requirement_explosion import ProductRequirement

ONE = Decimal("1")


@dataclass(frozen=True)
class CoverageFactor:
    """Coverage of one product line by reserved finished goods"""
    product_id: int
    ordered: Decimal
    reserved: Decimal
    remain: Decimal
    factor: Decimal


def compute_coverage_factor(product_id: int, ordered, reserved) -> CoverageFactor:
    """
    Coverage factor for one product line.

    >>> compute_coverage_factor(1, 10, 4).factor
    Decimal('0.6')
    """
    ordered = to_decimal(ordered)
    reserved = to_decimal(reserved)
    remain = non_negative(ordered - reserved)
    factor = remain / ordered if ordered > ZERO else ONE
    return CoverageFactor(
        product_id=product_id,
        ordered=ordered,
        reserved=reserved,
        remain=remain,
        factor=factor,
    )


def summarize_reservations(reservations: Iterable[Tuple[int, Decimal]]) -> Dict[int, Decimal]:
    """Sum (product_id, qty_reserved) pairs per product"""
    reserved: Dict[int, Decimal] = {}
    for product_id, qty in reservations:
        reserved[product_id] = reserved.get(product_id, ZERO) + to_decimal(qty)
    return reserved


def scale_required(required: Decimal, coverage: CoverageFactor) -> Decimal:
    """required × factor, computed as required × remain / ordered"""
    if coverage.ordered <= ZERO:
        return required
    return required * coverage.remain / coverage.ordered


def factors_by_product(
    products: Iterable[ProductRequirement],
    reserved_by_product: Mapping[int, Decimal],
) -> Dict[int, CoverageFactor]:
    """One CoverageFactor per product on the order"""
    return {
        p.product_id: compute_coverage_factor(
            p.product_id, p.ordered_quantity, reserved_by_product.get(p.product_id, ZERO)
        )
        for p in products
    }


def apply_coverage(
    products: Iterable[ProductRequirement],
    reserved_by_product: Mapping[int, Decimal],
    apply: bool = True,
) -> List[ProductRequirement]:
    """
    Scale component requirements by finished-goods coverage.

    Returns new ProductRequirement objects; the inputs are left untouched.
    With apply=False the factor is still reported on each product but the
    requirements are not scaled.

    Args:
        products: Output of explode_order
        reserved_by_product: Reserved finished goods per product_id
        apply: Whether the coverage toggle is on

    Returns:
        Coverage-adjusted ProductRequirement list
    """
    products = list(products)
    factors = factors_by_product(products, reserved_by_product)
    adjusted: List[ProductRequirement] = []
    for product in products:
        coverage = factors[product.product_id]
        components = [
            replace(
                comp,
                required=scale_required(comp.required, coverage) if apply else comp.required,
                required_base=comp.required if comp.required_base is None else comp.required_base,
            )
            for comp in product.components
        ]
        adjusted.append(
            replace(
                product,
                order_detail_ids=list(product.order_detail_ids),
                line_quantities=dict(product.line_quantities),
                components=components,
                reserved_quantity=coverage.reserved,
                coverage_factor=coverage.factor,
            )
        )
    return adjusted

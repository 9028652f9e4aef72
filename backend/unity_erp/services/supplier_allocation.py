"""
Supplier Grouping & Allocation

Takes the components of an order that are really short and the supplier
options for each, and builds the purchasing worksheet:

1. Lowest-price option preselected per component, all options kept
2. Components grouped by selected supplier, biggest groups first
3. Default allocation per component:
       for_this_order = min(order_quantity, shortfall)
       for_stock      = max(0, order_quantity - shortfall)
   order_quantity defaults to the shortfall

An allocation that has been edited explicitly keeps its numbers; only a
default allocation follows changes to the order quantity.
"""
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from unity_erp.exceptions import ValidationError
from unity_erp.services.quantities import ZERO, non_negative, to_decimal
from unity_erp.services.shortfall import ComponentRequirement


@dataclass(frozen=True)
class SupplierOption:
    """One supplier's offer for a component"""
    supplier_component_id: int
    supplier_id: int
    supplier_name: str
    component_id: int
    unit_price: Optional[Decimal]
    supplier_code: Optional[str] = None
    lead_time: Optional[int] = None

    @property
    def sort_price(self) -> Decimal:
        # Unpriced options sort last
        return self.unit_price if self.unit_price is not None else Decimal("Infinity")


def cheapest_option(options: Sequence[SupplierOption]) -> Optional[SupplierOption]:
    """Lowest price wins; ties go to supplier name, then supplier_component_id"""
    if not options:
        return None
    return min(options, key=lambda o: (o.sort_price, o.supplier_name.lower(), o.supplier_component_id))


# ============================================================================
# Allocation
# ============================================================================

@dataclass
class Allocation:
    """Split of a purchase quantity between this order and general stock"""
    shortfall: Decimal
    order_quantity: Decimal
    for_this_order: Decimal
    for_stock: Decimal
    explicitly_edited: bool = False

    @classmethod
    def default(cls, shortfall, order_quantity=None) -> "Allocation":
        """Default split; order_quantity defaults to the shortfall"""
        shortfall = non_negative(to_decimal(shortfall))
        quantity = shortfall if order_quantity is None else to_decimal(order_quantity)
        if quantity < ZERO:
            raise ValidationError("Order quantity cannot be negative", field="order_quantity", value=quantity)
        return cls(
            shortfall=shortfall,
            order_quantity=quantity,
            for_this_order=min(quantity, shortfall),
            for_stock=non_negative(quantity - shortfall),
        )

    def set_order_quantity(self, order_quantity) -> None:
        """
        Change the purchase quantity.

        A default allocation is recomputed from the shortfall. An explicitly
        edited allocation is left alone.
        """
        quantity = to_decimal(order_quantity)
        if quantity < ZERO:
            raise ValidationError("Order quantity cannot be negative", field="order_quantity", value=quantity)
        self.order_quantity = quantity
        if not self.explicitly_edited:
            self.for_this_order = min(quantity, self.shortfall)
            self.for_stock = non_negative(quantity - self.shortfall)

    def edit(self, for_this_order, for_stock) -> None:
        """Explicit user edit; both parts must be non-negative"""
        for_this_order = to_decimal(for_this_order)
        for_stock = to_decimal(for_stock)
        if for_this_order < ZERO:
            raise ValidationError("Quantity for this order cannot be negative", field="for_this_order", value=for_this_order)
        if for_stock < ZERO:
            raise ValidationError("Quantity for stock cannot be negative", field="for_stock", value=for_stock)
        self.for_this_order = for_this_order
        self.for_stock = for_stock
        self.order_quantity = for_this_order + for_stock
        self.explicitly_edited = True


# ============================================================================
# Grouping
# ============================================================================

@dataclass
class ComponentSourcing:
    """A short component with its supplier options and current allocation"""
    component_id: int
    internal_code: str
    description: Optional[str]
    real_shortfall: Decimal
    options: List[SupplierOption]
    selected: SupplierOption
    allocation: Allocation
    selected_for_order: bool = True


@dataclass
class SupplierGroup:
    """Components to buy from one supplier"""
    supplier_id: int
    supplier_name: str
    components: List[ComponentSourcing] = field(default_factory=list)
    emails: List[str] = field(default_factory=list)

    @property
    def component_count(self) -> int:
        return len(self.components)

    @property
    def selected_components(self) -> List[ComponentSourcing]:
        return [c for c in self.components if c.selected_for_order and c.allocation.order_quantity > ZERO]

    @property
    def estimated_total(self) -> Decimal:
        total = ZERO
        for comp in self.selected_components:
            if comp.selected.unit_price is not None:
                total += comp.selected.unit_price * comp.allocation.order_quantity
        return total


@dataclass
class GroupingResult:
    groups: List[SupplierGroup]
    # Short components nobody sells
    unsourced: List[ComponentRequirement] = field(default_factory=list)


def build_component_sourcing(
    requirements: Iterable[ComponentRequirement],
    options_by_component: Mapping[int, Sequence[SupplierOption]],
) -> GroupingResult:
    """Preselect the cheapest option for every really-short component"""
    sourcing: List[ComponentSourcing] = []
    unsourced: List[ComponentRequirement] = []
    for req in requirements:
        if req.real_shortfall <= ZERO:
            continue
        options = list(options_by_component.get(req.component_id, ()))
        selected = cheapest_option(options)
        if selected is None:
            unsourced.append(req)
            continue
        options.sort(key=lambda o: (o.sort_price, o.supplier_name.lower(), o.supplier_component_id))
        sourcing.append(
            ComponentSourcing(
                component_id=req.component_id,
                internal_code=req.internal_code,
                description=req.description,
                real_shortfall=req.real_shortfall,
                options=options,
                selected=selected,
                allocation=Allocation.default(req.real_shortfall),
            )
        )
    return GroupingResult(groups=group_by_supplier(sourcing), unsourced=unsourced)


def group_by_supplier(
    sourcing: Iterable[ComponentSourcing],
    emails_by_supplier: Optional[Mapping[int, List[str]]] = None,
) -> List[SupplierGroup]:
    """
    Group components by their selected supplier.

    Groups are sorted by descending component count, ties by supplier name.
    """
    emails_by_supplier = emails_by_supplier or {}
    groups: "OrderedDict[int, SupplierGroup]" = OrderedDict()
    for comp in sourcing:
        supplier_id = comp.selected.supplier_id
        group = groups.get(supplier_id)
        if group is None:
            group = SupplierGroup(
                supplier_id=supplier_id,
                supplier_name=comp.selected.supplier_name,
                emails=list(emails_by_supplier.get(supplier_id, [])),
            )
            groups[supplier_id] = group
        group.components.append(comp)
    return sorted(groups.values(), key=lambda g: (-g.component_count, g.supplier_name.lower()))


def attach_emails(groups: Iterable[SupplierGroup], emails_by_supplier: Mapping[int, List[str]]) -> None:
    for group in groups:
        group.emails = list(emails_by_supplier.get(group.supplier_id, []))


def options_by_component(options: Iterable[SupplierOption]) -> Dict[int, List[SupplierOption]]:
    by_component: Dict[int, List[SupplierOption]] = {}
    for option in options:
        by_component.setdefault(option.component_id, []).append(option)
    return by_component

"""
Stock Issuance Ledger Reconciliation

Pure functions over the issuance ledger of one order:
- effective issued quantity per component (issued minus reversed)
- derived issue state per component and "fully issued" order lines
- the issue plan for a set of selected order lines plus manual components
- grouping of ledger rows for display

The ledger itself lives in stock_issuances / stock_issuance_reversals and is
written by StockIssuanceService.
"""
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from unity_erp.services.quantities import ZERO, non_negative, to_decimal
from unity_erp.services.requirement_explosion import ProductRequirement


class IssuanceState(str, Enum):
    NOT_ISSUED = "not_issued"
    PARTIALLY_ISSUED = "partially_issued"
    FULLY_ISSUED = "fully_issued"


@dataclass
class IssuanceRecord:
    """One ledger row with its reversals already summed"""
    issuance_id: int
    component_id: int
    quantity_issued: Decimal
    issuance_date: datetime
    order_id: Optional[int] = None
    quantity_reversed: Decimal = ZERO
    internal_code: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    staff_id: Optional[int] = None
    staff_name: Optional[str] = None
    created_by: Optional[str] = None

    @property
    def effective_quantity(self) -> Decimal:
        return non_negative(to_decimal(self.quantity_issued) - to_decimal(self.quantity_reversed))


def effective_issued_by_component(records: Iterable[IssuanceRecord]) -> Dict[int, Decimal]:
    """Sum of effective issued quantity per component_id, never negative"""
    issued: Dict[int, Decimal] = {}
    for record in records:
        issued[record.component_id] = issued.get(record.component_id, ZERO) + record.effective_quantity
    return issued


def issuance_state(required: Decimal, issued: Decimal) -> IssuanceState:
    issued = to_decimal(issued)
    if issued <= ZERO:
        return IssuanceState.NOT_ISSUED
    if issued >= to_decimal(required):
        return IssuanceState.FULLY_ISSUED
    return IssuanceState.PARTIALLY_ISSUED


# ============================================================================
# Line status
# ============================================================================

@dataclass
class ComponentIssueStatus:
    component_id: int
    internal_code: str
    required: Decimal
    issued: Decimal
    state: IssuanceState

    @property
    def remaining(self) -> Decimal:
        return non_negative(self.required - self.issued)


@dataclass
class LineIssueStatus:
    """Issue status of one product on the order"""
    product_id: int
    order_detail_ids: List[int]
    components: List[ComponentIssueStatus]

    @property
    def fully_issued(self) -> bool:
        # No BOM means nothing to compare against
        if not self.components:
            return False
        return all(c.state is IssuanceState.FULLY_ISSUED for c in self.components)


def line_issue_statuses(
    products: Iterable[ProductRequirement],
    issued_by_component: Mapping[int, Decimal],
) -> List[LineIssueStatus]:
    """
    Issue status per product line.

    Issued quantities are order-wide per component, so a component shared by
    two products counts its whole issued total against each product's own
    requirement.
    """
    statuses: List[LineIssueStatus] = []
    for product in products:
        components = []
        for comp in product.components:
            issued = issued_by_component.get(comp.component_id, ZERO)
            components.append(
                ComponentIssueStatus(
                    component_id=comp.component_id,
                    internal_code=comp.internal_code,
                    required=comp.required,
                    issued=issued,
                    state=issuance_state(comp.required, issued),
                )
            )
        statuses.append(
            LineIssueStatus(
                product_id=product.product_id,
                order_detail_ids=list(product.order_detail_ids),
                components=components,
            )
        )
    return statuses


def fully_issued_order_detail_ids(statuses: Iterable[LineIssueStatus]) -> List[int]:
    ids: List[int] = []
    for status in statuses:
        if status.fully_issued:
            ids.extend(status.order_detail_ids)
    return ids


# ============================================================================
# Issue plan
# ============================================================================

@dataclass
class IssuePlanEntry:
    component_id: int
    internal_code: str
    description: Optional[str]
    required_quantity: Decimal
    already_issued: Decimal
    available_quantity: Decimal
    issue_quantity: Decimal
    manual: bool = False

    @property
    def has_warning(self) -> bool:
        return self.available_quantity < self.issue_quantity


@dataclass(frozen=True)
class ManualComponent:
    """A component added by hand to an issue, not on any selected BOM"""
    component_id: int
    internal_code: str
    description: Optional[str] = None
    quantity: Decimal = Decimal("1")


def build_issue_plan(
    products: Sequence[ProductRequirement],
    selected_order_detail_ids: Iterable[int],
    issued_by_component: Mapping[int, Decimal],
    available_by_component: Mapping[int, Decimal],
    manual_components: Iterable[ManualComponent] = (),
    quantity_overrides: Optional[Mapping[int, Decimal]] = None,
) -> List[IssuePlanEntry]:
    """
    Components to issue for the selected order lines.

    Each selected line contributes its share of its product's requirement
    (a product ordered on two lines splits by line quantity). The default
    issue quantity is what is still left to issue; overrides replace it.
    Manual components are appended unless already on the list.
    """
    selected = set(selected_order_detail_ids)
    overrides = quantity_overrides or {}
    plan: "OrderedDict[int, IssuePlanEntry]" = OrderedDict()

    for product in products:
        share = ZERO
        for detail_id in product.order_detail_ids:
            if detail_id in selected:
                share += product.line_quantities.get(detail_id, ZERO)
        if share <= ZERO or product.ordered_quantity <= ZERO:
            continue
        for comp in product.components:
            required = comp.required * share / product.ordered_quantity
            entry = plan.get(comp.component_id)
            if entry is None:
                entry = IssuePlanEntry(
                    component_id=comp.component_id,
                    internal_code=comp.internal_code,
                    description=comp.description,
                    required_quantity=ZERO,
                    already_issued=to_decimal(issued_by_component.get(comp.component_id)),
                    available_quantity=to_decimal(available_by_component.get(comp.component_id)),
                    issue_quantity=ZERO,
                )
                plan[comp.component_id] = entry
            entry.required_quantity += required

    for entry in plan.values():
        entry.issue_quantity = non_negative(entry.required_quantity - entry.already_issued)

    for manual in manual_components:
        if manual.component_id in plan:
            continue
        plan[manual.component_id] = IssuePlanEntry(
            component_id=manual.component_id,
            internal_code=manual.internal_code,
            description=manual.description,
            required_quantity=ZERO,
            already_issued=to_decimal(issued_by_component.get(manual.component_id)),
            available_quantity=to_decimal(available_by_component.get(manual.component_id)),
            issue_quantity=to_decimal(manual.quantity),
            manual=True,
        )

    for component_id, quantity in overrides.items():
        if component_id in plan:
            plan[component_id].issue_quantity = to_decimal(quantity)

    return list(plan.values())


def issues_to_process(plan: Iterable[IssuePlanEntry]) -> List[Dict[str, Decimal]]:
    """The {component_id, quantity} batch for entries with something to issue"""
    return [
        {"component_id": entry.component_id, "quantity": entry.issue_quantity}
        for entry in plan
        if entry.issue_quantity > ZERO
    ]


# ============================================================================
# Display grouping
# ============================================================================

@dataclass
class IssuanceGroup:
    group_key: str
    issuance_date: datetime
    staff_id: Optional[int]
    staff_name: Optional[str]
    notes: Optional[str]
    items: List[IssuanceRecord] = field(default_factory=list)


def issuance_group_key(staff_id: Optional[int], notes: Optional[str], issuance_date: datetime) -> str:
    """
    Display key approximating "one issue action": staff, notes and the minute
    the issuance was made.

    Two unrelated issuances by the same staff member, with the same notes, in
    the same minute share a key and display as one group.
    """
    minute = issuance_date.strftime("%Y-%m-%dT%H:%M")
    return f"{staff_id or ''}_{notes or ''}_{minute}"


def group_issuances_for_display(records: Iterable[IssuanceRecord]) -> List[IssuanceGroup]:
    """Group ledger rows by issuance_group_key, newest group first"""
    groups: "OrderedDict[str, IssuanceGroup]" = OrderedDict()
    for record in records:
        key = issuance_group_key(record.staff_id, record.notes, record.issuance_date)
        group = groups.get(key)
        if group is None:
            group = IssuanceGroup(
                group_key=key,
                issuance_date=record.issuance_date,
                staff_id=record.staff_id,
                staff_name=record.staff_name,
                notes=record.notes,
            )
            groups[key] = group
        group.items.append(record)
    return sorted(groups.values(), key=lambda g: g.issuance_date, reverse=True)

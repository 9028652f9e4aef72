"""
Order requirements orchestration

Joins the collaborators and runs the calculation pipeline for one order:

    OrderRepository ──► explode_order ──► apply_coverage ──► flatten_by_component
                                                                  │
    ComponentStatusProvider ─────────────────────────────► build_component_requirements
                                                                  │
    SupplierCatalogue ───────────────────────────────────► build_component_sourcing

Everything the calculation needs (order lines, reservations, stock, other
orders' demand) is loaded before anything is computed. Results are cached
in the RequirementCache and recomputed when a mutation moves one of their
generations.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional

from sqlalchemy.orm import Session

from unity_erp.core.settings import get_settings
from unity_erp.exceptions import NotFoundError
from unity_erp.logging_config import get_logger
from unity_erp.models import Component
from unity_erp.services.component_status import ComponentStatusProvider
from unity_erp.services.coverage import CoverageFactor, apply_coverage, factors_by_product
from unity_erp.services.issuance_ledger import (
    IssuanceGroup,
    IssuePlanEntry,
    LineIssueStatus,
    ManualComponent,
    build_issue_plan,
    effective_issued_by_component,
    fully_issued_order_detail_ids,
    group_issuances_for_display,
    line_issue_statuses,
)
from unity_erp.services.order_repository import OrderRepository, OrderSnapshot
from unity_erp.services.requirement_cache import RequirementCache
from unity_erp.services.requirement_explosion import (
    ProductRequirement,
    explode_order,
    flatten_by_component,
)
from unity_erp.services.shortfall import (
    ComponentRequirement,
    build_component_requirements,
    summarize_statuses,
)
from unity_erp.services.quantities import to_decimal
from unity_erp.services.stock_issuance_service import IssueRequest, StockIssuanceService
from unity_erp.services.supplier_allocation import (
    GroupingResult,
    attach_emails,
    build_component_sourcing,
)
from unity_erp.services.supplier_catalogue import SupplierCatalogue

logger = get_logger(__name__)


@dataclass
class OrderRequirementsView:
    order: OrderSnapshot
    apply_coverage: bool
    products: List[ProductRequirement]
    components: List[ComponentRequirement]
    coverage: Dict[int, CoverageFactor] = field(default_factory=dict)

    @property
    def summary(self) -> Dict[str, int]:
        return summarize_statuses(self.components)

    @property
    def component_ids(self) -> List[int]:
        return [c.component_id for c in self.components]


@dataclass
class IssuanceSummaryView:
    order_id: int
    groups: List[IssuanceGroup]
    issued_by_component: Dict[int, Decimal]
    lines: List[LineIssueStatus]
    fully_issued_order_detail_ids: List[int]


class OrderRequirementsService:
    """Component requirements, shortfalls, sourcing and issue status of an order"""

    def __init__(
        self,
        db: Session,
        cache: Optional[RequirementCache] = None,
        orders: Optional[OrderRepository] = None,
        status_provider: Optional[ComponentStatusProvider] = None,
        catalogue: Optional[SupplierCatalogue] = None,
    ):
        self.db = db
        self.cache = cache
        self.orders = orders or OrderRepository(db)
        self.status_provider = status_provider or ComponentStatusProvider(db, self.orders)
        self.catalogue = catalogue or SupplierCatalogue(db)

    def get_component_requirements(
        self,
        order_id: int,
        apply_fg_coverage: Optional[bool] = None,
    ) -> OrderRequirementsView:
        """
        Requirement and shortfall of every component of an order.

        Args:
            order_id: Order to analyse
            apply_fg_coverage: Scale by finished-goods reservations;
                               None uses FG_COVERAGE_DEFAULT

        Raises:
            NotFoundError: If the order does not exist
        """
        apply = get_settings().FG_COVERAGE_DEFAULT if apply_fg_coverage is None else apply_fg_coverage
        view_key = ("component_requirements", apply)
        if self.cache is None:
            return self._compute_requirements(order_id, apply)
        return self.cache.get_or_compute(
            view_key,
            order_id,
            lambda: self._compute_requirements(order_id, apply),
            lambda view: view.component_ids,
        )

    def _compute_requirements(self, order_id: int, apply: bool) -> OrderRequirementsView:
        order = self.orders.get_order(order_id)
        bom_rows = self.orders.get_bom_rows(order.product_ids)
        reserved = self.orders.get_reserved_by_product(order_id)
        statuses = self.status_provider.get_order_component_status(order_id, apply_coverage=apply)

        exploded = explode_order(order.lines, bom_rows)
        products = apply_coverage(exploded, reserved, apply=apply)
        components = build_component_requirements(order_id, flatten_by_component(products), statuses)

        view = OrderRequirementsView(
            order=order,
            apply_coverage=apply,
            products=products,
            components=components,
            coverage=factors_by_product(exploded, reserved),
        )
        logger.info(
            "Component requirements computed",
            extra={"order_id": order_id, "apply_coverage": apply, **view.summary},
        )
        return view

    def get_supplier_groups(
        self,
        order_id: int,
        apply_fg_coverage: Optional[bool] = None,
    ) -> GroupingResult:
        """Purchasing worksheet for the order's real shortfalls, with supplier emails"""
        view = self.get_component_requirements(order_id, apply_fg_coverage)
        short = [c for c in view.components if c.real_shortfall > 0]
        options = self.catalogue.get_options(c.component_id for c in short)
        result = build_component_sourcing(short, options)
        attach_emails(result.groups, self.catalogue.get_supplier_emails(g.supplier_id for g in result.groups))
        return result

    # ========================================================================
    # Issuance
    # ========================================================================

    def get_issuance_summary(
        self,
        order_id: int,
        apply_fg_coverage: Optional[bool] = None,
    ) -> IssuanceSummaryView:
        """Issuance history grouped for display and the issue status of every line"""
        view = self.get_component_requirements(order_id, apply_fg_coverage)
        records = StockIssuanceService(self.db, self.cache).list_order_issuances(order_id)
        issued = effective_issued_by_component(records)
        lines = line_issue_statuses(view.products, issued)
        return IssuanceSummaryView(
            order_id=order_id,
            groups=group_issuances_for_display(records),
            issued_by_component=issued,
            lines=lines,
            fully_issued_order_detail_ids=fully_issued_order_detail_ids(lines),
        )

    def plan_issue(
        self,
        order_id: int,
        order_detail_ids: Iterable[int],
        manual_components: Iterable[IssueRequest] = (),
        quantity_overrides: Optional[Mapping[int, Decimal]] = None,
        apply_fg_coverage: Optional[bool] = None,
    ) -> List[IssuePlanEntry]:
        """
        Components (and default quantities) to issue for the selected lines.

        Raises:
            NotFoundError: order or a manual component does not exist
        """
        view = self.get_component_requirements(order_id, apply_fg_coverage)
        records = StockIssuanceService(self.db, self.cache).list_order_issuances(order_id)
        manual_components = self._manual_components(manual_components)
        component_ids = set(view.component_ids) | {m.component_id for m in manual_components}
        available = self.status_provider.get_in_stock(component_ids) if component_ids else {}
        return build_issue_plan(
            view.products,
            order_detail_ids,
            effective_issued_by_component(records),
            available,
            manual_components=manual_components,
            quantity_overrides=quantity_overrides,
        )

    def _manual_components(self, requests: Iterable[IssueRequest]) -> List[ManualComponent]:
        requests = list(requests)
        if not requests:
            return []
        ids = [r.component_id for r in requests]
        components = {c.id: c for c in self.db.query(Component).filter(Component.id.in_(ids)).all()}
        manual: List[ManualComponent] = []
        for request in requests:
            component = components.get(request.component_id)
            if component is None:
                raise NotFoundError("Component", request.component_id)
            manual.append(
                ManualComponent(
                    component_id=component.id,
                    internal_code=component.internal_code,
                    description=component.description,
                    quantity=to_decimal(request.quantity),
                )
            )
        return manual

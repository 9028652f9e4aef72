"""
Purchase order creation from supplier groups

One purchase order per supplier group, one supplier order line per
component, one link row per (supplier order, customer order) carrying the
allocation split. A line without an explicit split gets the default one
from the component's real shortfall on this order: up to the shortfall
for the order, the rest for stock.

Each group is committed on its own: a group's purchase order and all of
its lines go in together or not at all, and one failing group does not
stop the others. Everything that can be checked up front is checked
before the first insert.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, NamedTuple, Optional

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from unity_erp.core.settings import get_settings
from unity_erp.exceptions import DraftStatusNotFoundError, NotFoundError, ValidationError
from unity_erp.logging_config import get_logger
from unity_erp.models import (
    Order, Supplier, SupplierComponent, SupplierOrderStatus,
    PurchaseOrder, SupplierOrder, SupplierOrderCustomerOrder,
)
from unity_erp.services.order_requirements import OrderRequirementsService
from unity_erp.services.quantities import ZERO, to_decimal
from unity_erp.services.requirement_cache import RequirementCache
from unity_erp.services.supplier_allocation import Allocation

logger = get_logger(__name__)


class PurchaseLineRequest(NamedTuple):
    """One component to order from the group's supplier"""
    supplier_component_id: int
    order_quantity: Decimal
    for_this_order: Optional[Decimal] = None
    for_stock: Optional[Decimal] = None


class PurchaseGroupRequest(NamedTuple):
    supplier_id: int
    lines: List[PurchaseLineRequest]
    notes: Optional[str] = None


@dataclass
class PurchaseGroupResult:
    supplier_id: int
    success: bool
    message: str
    purchase_order_id: Optional[int] = None
    supplier_order_ids: List[int] = field(default_factory=list)


@dataclass
class PurchaseOrderBatchResult:
    results: List[PurchaseGroupResult] = field(default_factory=list)
    skipped_supplier_ids: List[int] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(r.success for r in self.results)

    @property
    def purchase_order_ids(self) -> List[int]:
        return [r.purchase_order_id for r in self.results if r.purchase_order_id is not None]


@dataclass
class _ValidLine:
    supplier_component: SupplierComponent
    allocation: Allocation


class PurchaseOrderService:
    """Create draft purchase orders for an order's shortfalls"""

    def __init__(self, db: Session, cache: Optional[RequirementCache] = None):
        self.db = db
        self.cache = cache

    def create_purchase_orders(
        self,
        order_id: int,
        groups: Iterable[PurchaseGroupRequest],
        *,
        notes: Optional[str] = None,
        created_by: Optional[str] = None,
        apply_fg_coverage: Optional[bool] = None,
    ) -> PurchaseOrderBatchResult:
        """
        Create one draft purchase order per supplier group.

        Groups with no line to order (quantity 0) are skipped silently.
        A group whose lines do not check out is reported as failed without
        touching the database; the remaining groups still go ahead.

        Lines without a split get the default allocation against the
        component's real shortfall; apply_fg_coverage picks which shortfall
        (None uses FG_COVERAGE_DEFAULT).

        Raises:
            NotFoundError: order does not exist
            ValidationError: no component selected in any group, or a negative quantity
            DraftStatusNotFoundError: the Draft supplier order status is missing
        """
        if not self.db.query(Order.id).filter(Order.id == order_id).first():
            raise NotFoundError("Order", order_id)

        groups = list(groups)
        for group in groups:
            for line in group.lines:
                self._check_non_negative(line)

        selected = [
            PurchaseGroupRequest(g.supplier_id, [l for l in g.lines if to_decimal(l.order_quantity) > ZERO], g.notes)
            for g in groups
        ]
        batch = PurchaseOrderBatchResult(
            skipped_supplier_ids=[g.supplier_id for g in selected if not g.lines],
        )
        selected = [g for g in selected if g.lines]
        if not selected:
            raise ValidationError("Select at least one component to order", field="groups")

        draft_name = get_settings().DRAFT_STATUS_NAME
        draft = (
            self.db.query(SupplierOrderStatus)
            .filter(SupplierOrderStatus.status_name == draft_name)
            .first()
        )
        if not draft:
            logger.error("Draft supplier order status missing", extra={"status_name": draft_name})
            raise DraftStatusNotFoundError(draft_name)

        requirements = OrderRequirementsService(self.db, self.cache).get_component_requirements(
            order_id, apply_fg_coverage
        )
        shortfalls = {c.component_id: c.real_shortfall for c in requirements.components}

        prepared: List[tuple] = []
        for group in selected:
            try:
                prepared.append((group, self._validate_group(group, shortfalls)))
            except (ValidationError, NotFoundError) as e:
                logger.warning(
                    "Purchase order group rejected",
                    extra={"order_id": order_id, "supplier_id": group.supplier_id, "error": e.error_code},
                )
                batch.results.append(
                    PurchaseGroupResult(supplier_id=group.supplier_id, success=False, message=e.message)
                )

        touched_components: List[int] = []
        for group, lines in prepared:
            result = self._create_group(order_id, group, lines, draft.id, notes=notes, created_by=created_by)
            batch.results.append(result)
            if result.success:
                touched_components.extend(l.supplier_component.component_id for l in lines)

        if self.cache is not None and touched_components:
            self.cache.invalidate_order(order_id, touched_components)

        logger.info(
            "Purchase orders created",
            extra={
                "order_id": order_id,
                "purchase_order_ids": batch.purchase_order_ids,
                "failed_groups": sum(1 for r in batch.results if not r.success),
                "skipped_groups": len(batch.skipped_supplier_ids),
            },
        )
        return batch

    # ------------------------------------------------------------------

    @staticmethod
    def _check_non_negative(line: PurchaseLineRequest) -> None:
        for name in ("order_quantity", "for_this_order", "for_stock"):
            value = getattr(line, name)
            if value is not None and to_decimal(value) < ZERO:
                raise ValidationError(f"{name} cannot be negative", field=name, value=value)

    def _validate_group(
        self,
        group: PurchaseGroupRequest,
        shortfalls: Mapping[int, Decimal],
    ) -> List[_ValidLine]:
        supplier = self.db.query(Supplier).filter(Supplier.id == group.supplier_id).first()
        if not supplier:
            raise NotFoundError("Supplier", group.supplier_id)

        ids = [l.supplier_component_id for l in group.lines]
        found: Dict[int, SupplierComponent] = {
            sc.id: sc
            for sc in self.db.query(SupplierComponent).filter(SupplierComponent.id.in_(ids)).all()
        }

        lines: List[_ValidLine] = []
        for line in group.lines:
            sc = found.get(line.supplier_component_id)
            if sc is None:
                raise NotFoundError("Supplier component", line.supplier_component_id)
            if sc.supplier_id != group.supplier_id:
                raise ValidationError(
                    f"Supplier component {sc.id} is not sold by supplier {supplier.name}",
                    field="supplier_component_id",
                    value=sc.id,
                )
            quantity = to_decimal(line.order_quantity)
            allocation = Allocation.default(shortfalls.get(sc.component_id, ZERO))
            allocation.set_order_quantity(quantity)
            if line.for_this_order is not None or line.for_stock is not None:
                # A missing side takes whatever the other leaves
                for_order = line.for_this_order
                for_stock = line.for_stock
                if for_order is None:
                    for_order = quantity - to_decimal(for_stock)
                if for_stock is None:
                    for_stock = quantity - to_decimal(for_order)
                allocation.edit(for_order, for_stock)
                if allocation.order_quantity != quantity:
                    raise ValidationError(
                        f"Allocation for supplier component {sc.id} "
                        f"({allocation.for_this_order} + {allocation.for_stock}) "
                        f"does not add up to the order quantity {quantity}",
                        field="for_this_order",
                    )
            lines.append(_ValidLine(sc, allocation))
        return lines

    def _create_group(
        self,
        order_id: int,
        group: PurchaseGroupRequest,
        lines: List[_ValidLine],
        draft_status_id: int,
        *,
        notes: Optional[str],
        created_by: Optional[str],
    ) -> PurchaseGroupResult:
        try:
            po = PurchaseOrder(
                supplier_id=group.supplier_id,
                status_id=draft_status_id,
                order_date=datetime.utcnow(),
                notes=group.notes or notes,
                created_by=created_by,
            )
            self.db.add(po)
            self.db.flush()
            po_id = po.id

            supplier_order_ids: List[int] = []
            for line in lines:
                so = SupplierOrder(
                    purchase_order_id=po_id,
                    supplier_component_id=line.supplier_component.id,
                    status_id=draft_status_id,
                    order_quantity=line.allocation.order_quantity,
                    total_received=ZERO,
                )
                self.db.add(so)
                self.db.flush()
                supplier_order_ids.append(so.id)
                self.db.add(
                    SupplierOrderCustomerOrder(
                        supplier_order_id=so.id,
                        order_id=order_id,
                        component_id=line.supplier_component.component_id,
                        quantity_for_order=line.allocation.for_this_order,
                        quantity_for_stock=line.allocation.for_stock,
                    )
                )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error(
                "Purchase order creation failed",
                extra={"order_id": order_id, "supplier_id": group.supplier_id},
                exc_info=True,
            )
            return PurchaseGroupResult(
                supplier_id=group.supplier_id,
                success=False,
                message="Failed to create purchase order",
            )

        return PurchaseGroupResult(
            supplier_id=group.supplier_id,
            success=True,
            message=f"Purchase order {po_id} created",
            purchase_order_id=po_id,
            supplier_order_ids=supplier_order_ids,
        )

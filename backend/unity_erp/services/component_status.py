"""
Component Status Provider

For the components of one order, reads the shared stock pool (in stock,
on order) and precomputes the global demand across every open order, so
the shortfall classifier gets both single-order and global inputs in one
call.

Global demand uses the same explosion and coverage rules as the single
order view, applied to every open order that needs the component.
"""
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session
from sqlalchemy import func

from unity_erp.core.settings import get_settings
from unity_erp.logging_config import get_logger
from unity_erp.models import (
    Order, Inventory, BillOfMaterials, Supplier, SupplierComponent,
    SupplierOrder, SupplierOrderStatus,
)
from unity_erp.services.coverage import apply_coverage as cover_products
from unity_erp.services.order_repository import OrderRepository
from unity_erp.services.quantities import ZERO, non_negative, to_decimal
from unity_erp.services.requirement_explosion import explode_order, flatten_by_component
from unity_erp.services.shortfall import ComponentStatus, OnOrderSupply, OrderDemand

logger = get_logger(__name__)


class ComponentStatusProvider:
    """Stock, on-order and cross-order demand per component"""

    def __init__(self, db: Session, orders: Optional[OrderRepository] = None):
        self.db = db
        self.orders = orders or OrderRepository(db)

    def get_order_component_status(
        self,
        order_id: int,
        apply_coverage: bool = True,
    ) -> Dict[int, ComponentStatus]:
        """
        Status of every component the order needs.

        Args:
            order_id: Order being viewed
            apply_coverage: Scale every order's demand by its FG reservations

        Returns:
            ComponentStatus per component_id, with global totals filled in

        Raises:
            NotFoundError: If the order does not exist
        """
        order = self.orders.get_order(order_id)
        bom_rows = self.orders.get_bom_rows(order.product_ids)
        component_ids = sorted({row.component_id for row in bom_rows})
        if not component_ids:
            return {}

        in_stock = self.get_in_stock(component_ids)
        on_order = self.get_on_order(component_ids)
        demand = self.get_open_demand(component_ids, apply_coverage, include_order_id=order_id)

        statuses: Dict[int, ComponentStatus] = {}
        for component_id in component_ids:
            supply = on_order.get(component_id, [])
            breakdown = demand.get(component_id, [])
            total = sum((d.required for d in breakdown), ZERO)
            status = ComponentStatus(
                component_id=component_id,
                in_stock=in_stock.get(component_id, ZERO),
                on_order=sum((s.outstanding for s in supply), ZERO),
                order_breakdown=breakdown,
                on_order_breakdown=supply,
                total_required=total,
                order_count=sum(1 for d in breakdown if d.required > ZERO),
            )
            statuses[component_id] = status

        logger.debug(
            "Component status loaded",
            extra={"order_id": order_id, "component_count": len(statuses), "apply_coverage": apply_coverage},
        )
        return statuses

    # ========================================================================
    # Stock pool
    # ========================================================================

    def get_in_stock(self, component_ids: Iterable[int]) -> Dict[int, Decimal]:
        """Quantity on hand per component"""
        rows = (
            self.db.query(Inventory.component_id, func.sum(Inventory.quantity_on_hand))
            .filter(Inventory.component_id.in_(list(component_ids)))
            .group_by(Inventory.component_id)
            .all()
        )
        return {component_id: to_decimal(qty) for component_id, qty in rows}

    def get_on_order(self, component_ids: Iterable[int]) -> Dict[int, List[OnOrderSupply]]:
        """
        Outstanding supplier order quantity per component.

        Only supplier orders in an open status count; each line contributes
        order_quantity - total_received, never less than zero.
        """
        open_statuses = get_settings().OPEN_SUPPLIER_ORDER_STATUSES
        rows = (
            self.db.query(SupplierOrder, SupplierComponent, SupplierOrderStatus, Supplier)
            .join(SupplierComponent, SupplierComponent.id == SupplierOrder.supplier_component_id)
            .join(SupplierOrderStatus, SupplierOrderStatus.id == SupplierOrder.status_id)
            .join(Supplier, Supplier.id == SupplierComponent.supplier_id)
            .filter(SupplierComponent.component_id.in_(list(component_ids)))
            .filter(SupplierOrderStatus.status_name.in_(open_statuses))
            .order_by(SupplierOrder.id)
            .all()
        )
        supply: Dict[int, List[OnOrderSupply]] = {}
        for line, supplier_component, status, supplier in rows:
            outstanding = non_negative(to_decimal(line.order_quantity) - to_decimal(line.total_received))
            if outstanding <= ZERO:
                continue
            supply.setdefault(supplier_component.component_id, []).append(
                OnOrderSupply(
                    supplier_order_id=line.id,
                    purchase_order_id=line.purchase_order_id,
                    supplier_name=supplier.name,
                    outstanding=outstanding,
                    status_name=status.status_name,
                )
            )
        return supply

    # ========================================================================
    # Cross-order demand
    # ========================================================================

    def get_open_demand(
        self,
        component_ids: Iterable[int],
        apply_coverage: bool,
        include_order_id: Optional[int] = None,
    ) -> Dict[int, List[OrderDemand]]:
        """
        Requirement of every open order for the given components.

        include_order_id is always part of the breakdown, even when its own
        status is closed, so the global total is never below the order's own.
        """
        component_ids = set(component_ids)
        product_ids = [
            row[0]
            for row in self.db.query(BillOfMaterials.product_id)
            .filter(BillOfMaterials.component_id.in_(sorted(component_ids)))
            .distinct()
            .all()
        ]
        lines_by_order = self.orders.get_open_order_lines(product_ids)
        if include_order_id is not None and include_order_id not in lines_by_order:
            own = self.orders.get_order(include_order_id)
            own_lines = [line for line in own.lines if line.product_id in product_ids]
            if own_lines:
                lines_by_order[include_order_id] = own_lines
        if not lines_by_order:
            return {}

        bom_rows = [
            row for row in self.orders.get_bom_rows(product_ids)
            if row.component_id in component_ids
        ]
        reservations = self.orders.get_reservations_for_orders(lines_by_order.keys()) if apply_coverage else {}
        statuses = dict(
            self.db.query(Order.id, Order.status).filter(Order.id.in_(list(lines_by_order.keys()))).all()
        )

        demand: Dict[int, List[OrderDemand]] = {}
        for order_id, lines in lines_by_order.items():
            products = explode_order(lines, bom_rows)
            products = cover_products(products, reservations.get(order_id, {}), apply=apply_coverage)
            for total in flatten_by_component(products):
                demand.setdefault(total.component_id, []).append(
                    OrderDemand(
                        order_id=order_id,
                        required=total.required,
                        order_status=statuses.get(order_id),
                    )
                )
        return demand

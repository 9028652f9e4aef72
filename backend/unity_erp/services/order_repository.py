"""
Order & BOM lookup

Reads orders, their lines, BOM rows and finished-goods reservations and
hands them to the calculation modules as plain dataclasses.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session
from sqlalchemy import func

from unity_erp.core.settings import get_settings
from unity_erp.exceptions import NotFoundError
from unity_erp.models import (
    Order, OrderDetail, Product, Component, BillOfMaterials, ProductReservation,
)
from unity_erp.services.quantities import to_decimal
from unity_erp.services.requirement_explosion import BOMRowInput, OrderLineInput


@dataclass
class OrderSnapshot:
    """Order header and lines as read at one point in time"""
    order_id: int
    status: str
    order_date: Optional[datetime]
    delivery_date: Optional[date]
    total_amount: Decimal
    customer_id: Optional[int]
    lines: List[OrderLineInput] = field(default_factory=list)

    @property
    def product_ids(self) -> List[int]:
        seen: List[int] = []
        for line in self.lines:
            if line.product_id not in seen:
                seen.append(line.product_id)
        return seen


class OrderRepository:
    """Order, BOM and reservation reads"""

    def __init__(self, db: Session):
        self.db = db

    def get_order(self, order_id: int) -> OrderSnapshot:
        """
        Load an order with its lines.

        Raises:
            NotFoundError: If the order does not exist
        """
        order = self.db.query(Order).filter(Order.id == order_id).first()
        if not order:
            raise NotFoundError("Order", order_id)

        rows = (
            self.db.query(OrderDetail, Product)
            .join(Product, Product.id == OrderDetail.product_id)
            .filter(OrderDetail.order_id == order_id)
            .order_by(OrderDetail.id)
            .all()
        )
        lines = [
            OrderLineInput(
                order_detail_id=detail.id,
                product_id=detail.product_id,
                quantity=to_decimal(detail.quantity),
                product_code=product.internal_code,
                product_name=product.name,
            )
            for detail, product in rows
        ]
        return OrderSnapshot(
            order_id=order.id,
            status=order.status,
            order_date=order.order_date,
            delivery_date=order.delivery_date,
            total_amount=to_decimal(order.total_amount),
            customer_id=order.customer_id,
            lines=lines,
        )

    def get_bom_rows(self, product_ids: Iterable[int]) -> List[BOMRowInput]:
        """BOM rows (with component code/description) for the given products"""
        product_ids = list(product_ids)
        if not product_ids:
            return []
        rows = (
            self.db.query(BillOfMaterials, Component)
            .join(Component, Component.id == BillOfMaterials.component_id)
            .filter(BillOfMaterials.product_id.in_(product_ids))
            .order_by(BillOfMaterials.product_id, BillOfMaterials.id)
            .all()
        )
        return [
            BOMRowInput(
                product_id=bom.product_id,
                component_id=bom.component_id,
                quantity_required=to_decimal(bom.quantity_required),
                internal_code=component.internal_code,
                description=component.description,
            )
            for bom, component in rows
        ]

    def get_reserved_by_product(self, order_id: int) -> Dict[int, Decimal]:
        """Finished goods reserved against an order, per product"""
        rows = (
            self.db.query(ProductReservation.product_id, func.sum(ProductReservation.qty_reserved))
            .filter(ProductReservation.order_id == order_id)
            .group_by(ProductReservation.product_id)
            .all()
        )
        return {product_id: to_decimal(qty) for product_id, qty in rows}

    def get_open_order_lines(self, product_ids: Iterable[int]) -> Dict[int, List[OrderLineInput]]:
        """
        Lines of every open order that orders one of the given products.

        Orders in a closed status (Completed, Cancelled by default) are left out.
        """
        product_ids = list(product_ids)
        if not product_ids:
            return {}
        closed = get_settings().CLOSED_ORDER_STATUSES
        query = (
            self.db.query(OrderDetail)
            .join(Order, Order.id == OrderDetail.order_id)
            .filter(OrderDetail.product_id.in_(product_ids))
        )
        if closed:
            query = query.filter(Order.status.notin_(closed))

        by_order: Dict[int, List[OrderLineInput]] = {}
        for detail in query.order_by(OrderDetail.order_id, OrderDetail.id).all():
            by_order.setdefault(detail.order_id, []).append(
                OrderLineInput(
                    order_detail_id=detail.id,
                    product_id=detail.product_id,
                    quantity=to_decimal(detail.quantity),
                )
            )
        return by_order

    def get_reservations_for_orders(self, order_ids: Iterable[int]) -> Dict[int, Dict[int, Decimal]]:
        """Reserved finished goods per order, per product"""
        order_ids = list(order_ids)
        if not order_ids:
            return {}
        rows = (
            self.db.query(
                ProductReservation.order_id,
                ProductReservation.product_id,
                func.sum(ProductReservation.qty_reserved),
            )
            .filter(ProductReservation.order_id.in_(order_ids))
            .group_by(ProductReservation.order_id, ProductReservation.product_id)
            .all()
        )
        reserved: Dict[int, Dict[int, Decimal]] = {}
        for order_id, product_id, qty in rows:
            reserved.setdefault(order_id, {})[product_id] = to_decimal(qty)
        return reserved

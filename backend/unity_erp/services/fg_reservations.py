"""
Finished-goods reservation service

Reserve:  set finished goods on hand aside against an order's lines
Release:  drop the reservations, the stock becomes available again
Consume:  the reserved goods ship - deduct them from stock, drop the reservations

Reserve is idempotent: it replaces the order's reservations with a fresh
calculation, so calling it twice gives the same rows.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import Session
from sqlalchemy import func

from unity_erp.logging_config import get_logger
from unity_erp.models import OrderDetail, Product, ProductInventory, ProductReservation, BillOfMaterials
from unity_erp.services.order_repository import OrderRepository
from unity_erp.services.quantities import ZERO, non_negative, to_decimal
from unity_erp.services.requirement_cache import RequirementCache

logger = get_logger(__name__)


@dataclass
class ReservationRow:
    order_id: int
    product_id: int
    qty_reserved: Decimal
    product_code: Optional[str] = None
    product_name: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class ConsumedRow:
    product_id: int
    qty_consumed: Decimal


class FinishedGoodsReservationService:
    """Reserve / release / consume finished goods against an order"""

    def __init__(self, db: Session, cache: Optional[RequirementCache] = None):
        self.db = db
        self.cache = cache
        self.orders = OrderRepository(db)

    def list_reservations(self, order_id: int) -> List[ReservationRow]:
        """Current reservations of an order with product code and name"""
        self.orders.get_order(order_id)
        rows = (
            self.db.query(ProductReservation, Product)
            .join(Product, Product.id == ProductReservation.product_id)
            .filter(ProductReservation.order_id == order_id)
            .order_by(ProductReservation.product_id)
            .all()
        )
        return [
            ReservationRow(
                order_id=res.order_id,
                product_id=res.product_id,
                qty_reserved=to_decimal(res.qty_reserved),
                product_code=product.internal_code,
                product_name=product.name,
                created_at=res.created_at,
            )
            for res, product in rows
        ]

    def reserve(self, order_id: int) -> List[ReservationRow]:
        """
        Reserve finished goods for every product on the order.

        Per product: min(ordered, on hand - reserved by other orders), and
        only positive quantities are stored. Existing reservations of this
        order are replaced.

        Raises:
            NotFoundError: If the order does not exist
        """
        self.orders.get_order(order_id)

        ordered: Dict[int, Decimal] = {
            product_id: to_decimal(qty)
            for product_id, qty in self.db.query(OrderDetail.product_id, func.sum(OrderDetail.quantity))
            .filter(OrderDetail.order_id == order_id)
            .group_by(OrderDetail.product_id)
            .all()
        }

        self.db.query(ProductReservation).filter(
            ProductReservation.order_id == order_id
        ).delete(synchronize_session=False)

        reserved_count = 0
        for product_id in sorted(ordered):
            on_hand = self._on_hand(product_id)
            reserved_elsewhere = to_decimal(
                self.db.query(func.sum(ProductReservation.qty_reserved))
                .filter(
                    ProductReservation.product_id == product_id,
                    ProductReservation.order_id != order_id,
                )
                .scalar()
            )
            quantity = non_negative(min(ordered[product_id], on_hand - reserved_elsewhere))
            if quantity <= ZERO:
                continue
            self.db.add(ProductReservation(order_id=order_id, product_id=product_id, qty_reserved=quantity))
            reserved_count += 1

        self.db.commit()
        self._invalidate(order_id, list(ordered))

        logger.info(
            "Finished goods reserved",
            extra={"order_id": order_id, "products_reserved": reserved_count},
        )
        return self.list_reservations(order_id)

    def release(self, order_id: int) -> int:
        """
        Drop all reservations of an order.

        Returns:
            Number of reservation rows released
        """
        self.orders.get_order(order_id)
        product_ids = self._reserved_product_ids(order_id)
        released = self.db.query(ProductReservation).filter(
            ProductReservation.order_id == order_id
        ).delete(synchronize_session=False)
        self.db.commit()
        self._invalidate(order_id, product_ids)

        logger.info("Finished goods released", extra={"order_id": order_id, "released": released})
        return released

    def consume(self, order_id: int) -> List[ConsumedRow]:
        """
        Ship reserved finished goods.

        Each reserved quantity is deducted from the product's stock row
        without a location (or the first row when all have one), never
        below zero. The reservations are then removed.

        Returns:
            One ConsumedRow per consumed reservation
        """
        self.orders.get_order(order_id)
        reservations = (
            self.db.query(ProductReservation)
            .filter(ProductReservation.order_id == order_id)
            .order_by(ProductReservation.product_id)
            .all()
        )

        consumed: List[ConsumedRow] = []
        for res in reservations:
            quantity = to_decimal(res.qty_reserved)
            stock = self._primary_stock_row(res.product_id)
            if stock is not None:
                stock.quantity_on_hand = non_negative(to_decimal(stock.quantity_on_hand) - quantity)
            else:
                logger.warning(
                    "No finished goods stock row to consume from",
                    extra={"order_id": order_id, "product_id": res.product_id},
                )
            consumed.append(ConsumedRow(product_id=res.product_id, qty_consumed=quantity))
            self.db.delete(res)

        self.db.commit()
        self._invalidate(order_id, [row.product_id for row in consumed])

        logger.info(
            "Finished goods consumed",
            extra={"order_id": order_id, "products_consumed": len(consumed)},
        )
        return consumed

    # ------------------------------------------------------------------

    def _on_hand(self, product_id: int) -> Decimal:
        return to_decimal(
            self.db.query(func.sum(ProductInventory.quantity_on_hand))
            .filter(ProductInventory.product_id == product_id)
            .scalar()
        )

    def _primary_stock_row(self, product_id: int) -> Optional[ProductInventory]:
        rows = (
            self.db.query(ProductInventory)
            .filter(ProductInventory.product_id == product_id)
            .order_by(ProductInventory.id)
            .with_for_update()
            .all()
        )
        for row in rows:
            if row.location is None:
                return row
        return rows[0] if rows else None

    def _reserved_product_ids(self, order_id: int) -> List[int]:
        return [
            row[0]
            for row in self.db.query(ProductReservation.product_id)
            .filter(ProductReservation.order_id == order_id)
            .all()
        ]

    def _invalidate(self, order_id: int, product_ids: List[int]) -> None:
        if self.cache is None:
            return
        if not product_ids:
            self.cache.invalidate_order(order_id)
            return
        component_ids = [
            row[0]
            for row in self.db.query(BillOfMaterials.component_id)
            .filter(BillOfMaterials.product_id.in_(product_ids))
            .distinct()
            .all()
        ]
        self.cache.invalidate_order(order_id, component_ids)

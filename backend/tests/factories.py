"""
Test data factories for Unity ERP.

Provides functions to create test entities with sensible defaults.
Used by scenarios.py to create interconnected test data.

Usage:
    from tests.factories import create_test_product, create_test_component

    def test_something(db_session):
        product = create_test_product(db_session, name="Widget")
        leg = create_test_component(db_session, internal_code="LEG-01")
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Dict, Any
from sqlalchemy.orm import Session


# =============================================================================
# SEQUENCE MANAGEMENT
# =============================================================================

_sequences: Dict[str, int] = {}


def reset_sequences():
    """Reset all sequences. Call between tests for predictable codes."""
    global _sequences
    _sequences = {}


def _next(name: str) -> int:
    """Get next sequence number for a given entity type."""
    _sequences[name] = _sequences.get(name, 0) + 1
    return _sequences[name]


# =============================================================================
# PRODUCT / COMPONENT FACTORIES
# =============================================================================

def create_test_product(
    db: Session,
    internal_code: Optional[str] = None,
    name: Optional[str] = None,
    **overrides
) -> "Product":
    """Create a finished product."""
    from unity_erp.models import Product

    seq = _next("product")
    product = Product(
        internal_code=internal_code or f"PROD-{seq:04d}",
        name=name or f"Test Product {seq}",
        **overrides
    )
    db.add(product)
    db.flush()
    return product


def create_test_component(
    db: Session,
    internal_code: Optional[str] = None,
    description: Optional[str] = None,
    quantity_on_hand: Optional[Decimal] = None,
    **overrides
) -> "Component":
    """
    Create a component.

    Args:
        quantity_on_hand: If given, an inventory row is created with this quantity
    """
    from unity_erp.models import Component

    seq = _next("component")
    component = Component(
        internal_code=internal_code or f"COMP-{seq:04d}",
        description=description or f"Test Component {seq}",
        unit=overrides.pop("unit", "EA"),
        **overrides
    )
    db.add(component)
    db.flush()
    if quantity_on_hand is not None:
        create_test_inventory(db, component, quantity_on_hand)
    return component


def create_test_bom(
    db: Session,
    product: "Product",
    lines: List[Dict[str, Any]],
) -> List["BillOfMaterials"]:
    """
    Create BOM rows for a product.

    Args:
        lines: [{"component": Component, "quantity": Decimal}, ...]
    """
    from unity_erp.models import BillOfMaterials

    rows = []
    for line in lines:
        row = BillOfMaterials(
            product_id=product.id,
            component_id=line["component"].id,
            quantity_required=Decimal(str(line.get("quantity", 1))),
        )
        db.add(row)
        rows.append(row)
    db.flush()
    return rows


# =============================================================================
# INVENTORY FACTORIES
# =============================================================================

def create_test_inventory(
    db: Session,
    component: "Component",
    quantity: Decimal = Decimal("0"),
    **overrides
) -> "Inventory":
    """Create (or top up) the inventory row of a component."""
    from unity_erp.models import Inventory

    inventory = db.query(Inventory).filter(Inventory.component_id == component.id).first()
    if inventory:
        inventory.quantity_on_hand = Decimal(str(inventory.quantity_on_hand)) + Decimal(str(quantity))
    else:
        inventory = Inventory(
            component_id=component.id,
            quantity_on_hand=Decimal(str(quantity)),
            reorder_level=overrides.pop("reorder_level", Decimal("0")),
            **overrides
        )
        db.add(inventory)
    db.flush()
    return inventory


def create_test_product_inventory(
    db: Session,
    product: "Product",
    quantity: Decimal = Decimal("0"),
    location: Optional[str] = None,
) -> "ProductInventory":
    """Create a finished-goods stock row."""
    from unity_erp.models import ProductInventory

    stock = ProductInventory(
        product_id=product.id,
        quantity_on_hand=Decimal(str(quantity)),
        location=location,
    )
    db.add(stock)
    db.flush()
    return stock


def create_test_reservation(
    db: Session,
    order: "Order",
    product: "Product",
    quantity: Decimal,
) -> "ProductReservation":
    """Reserve finished goods against an order directly."""
    from unity_erp.models import ProductReservation

    reservation = ProductReservation(
        order_id=order.id,
        product_id=product.id,
        qty_reserved=Decimal(str(quantity)),
    )
    db.add(reservation)
    db.flush()
    return reservation


# =============================================================================
# ORDER FACTORY
# =============================================================================

def create_test_order(
    db: Session,
    lines: Optional[List[Dict[str, Any]]] = None,
    status: str = "Open",
    **overrides
) -> "Order":
    """
    Create a customer order with lines.

    Args:
        lines: [{"product": Product, "quantity": Decimal, "unit_price": Decimal}, ...]
        status: Order status

    Returns:
        Created Order instance (lines in order.details)
    """
    from unity_erp.models import Order, OrderDetail

    _next("order")
    order = Order(
        status=status,
        order_date=overrides.pop("order_date", datetime.utcnow()),
        total_amount=overrides.pop("total_amount", Decimal("0")),
        **overrides
    )
    db.add(order)
    db.flush()

    total = Decimal("0")
    for line in lines or []:
        quantity = Decimal(str(line.get("quantity", 1)))
        unit_price = Decimal(str(line.get("unit_price", "10.00")))
        db.add(OrderDetail(
            order_id=order.id,
            product_id=line["product"].id,
            quantity=quantity,
            unit_price=unit_price,
        ))
        total += quantity * unit_price
    order.total_amount = total
    db.flush()
    db.refresh(order)
    return order


# =============================================================================
# SUPPLIER / PURCHASING FACTORIES
# =============================================================================

def create_test_supplier(
    db: Session,
    name: Optional[str] = None,
    emails: Optional[List[str]] = None,
    **overrides
) -> "Supplier":
    """
    Create a supplier.

    Args:
        emails: Contact addresses; the first one is marked primary
    """
    from unity_erp.models import Supplier, SupplierEmail

    seq = _next("supplier")
    supplier = Supplier(name=name or f"Test Supplier {seq}", **overrides)
    db.add(supplier)
    db.flush()
    for index, email in enumerate(emails or []):
        db.add(SupplierEmail(supplier_id=supplier.id, email=email, is_primary=index == 0))
    db.flush()
    return supplier


def create_test_supplier_component(
    db: Session,
    supplier: "Supplier",
    component: "Component",
    price: Optional[Decimal] = Decimal("1.00"),
    **overrides
) -> "SupplierComponent":
    """Offer a component from a supplier at a price."""
    from unity_erp.models import SupplierComponent

    seq = _next("supplier_component")
    sc = SupplierComponent(
        supplier_id=supplier.id,
        component_id=component.id,
        supplier_code=overrides.pop("supplier_code", f"SUP-{seq:04d}"),
        price=Decimal(str(price)) if price is not None else None,
        lead_time=overrides.pop("lead_time", 7),
        **overrides
    )
    db.add(sc)
    db.flush()
    return sc


def create_test_status(db: Session, status_name: str) -> "SupplierOrderStatus":
    """Get or create a supplier order status."""
    from unity_erp.models import SupplierOrderStatus

    existing = db.query(SupplierOrderStatus).filter_by(status_name=status_name).first()
    if existing:
        return existing
    status = SupplierOrderStatus(status_name=status_name)
    db.add(status)
    db.flush()
    return status


def create_test_supplier_order(
    db: Session,
    supplier_component: "SupplierComponent",
    order_quantity: Decimal,
    total_received: Decimal = Decimal("0"),
    status_name: str = "Open",
) -> "SupplierOrder":
    """Create a purchase order with one supplier order line."""
    from unity_erp.models import PurchaseOrder, SupplierOrder

    status = create_test_status(db, status_name)
    po = PurchaseOrder(supplier_id=supplier_component.supplier_id, status_id=status.id)
    db.add(po)
    db.flush()
    line = SupplierOrder(
        purchase_order_id=po.id,
        supplier_component_id=supplier_component.id,
        status_id=status.id,
        order_quantity=Decimal(str(order_quantity)),
        total_received=Decimal(str(total_received)),
    )
    db.add(line)
    db.flush()
    return line


# =============================================================================
# STAFF FACTORY
# =============================================================================

def create_test_staff(
    db: Session,
    first_name: Optional[str] = None,
    last_name: str = "Worker",
) -> "Staff":
    from unity_erp.models import Staff

    seq = _next("staff")
    staff = Staff(first_name=first_name or f"Staff{seq}", last_name=last_name)
    db.add(staff)
    db.flush()
    return staff

"""
Purchasing models - purchase orders, supplier order lines and their link to customer orders
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
from datetime import datetime

from unity_erp.db.base import Base


class SupplierOrderStatus(Base):
    """Reference data: Draft, Open, In Progress, Approved, Partially Received, Completed, Cancelled"""
    __tablename__ = "supplier_order_statuses"

    id = Column(Integer, primary_key=True, index=True)
    status_name = Column(String(50), nullable=False, unique=True)

    def __repr__(self):
        return f"<SupplierOrderStatus {self.status_name}>"


class PurchaseOrder(Base):
    """Purchase order header, one per supplier - matches purchase_orders table"""
    __tablename__ = "purchase_orders"

    id = Column(Integer, primary_key=True, index=True)
    supplier_id = Column(Integer, ForeignKey('suppliers.id'), nullable=False, index=True)
    status_id = Column(Integer, ForeignKey('supplier_order_statuses.id'), nullable=False)

    order_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    notes = Column(Text, nullable=True)
    created_by = Column(String(100), nullable=True)

    supplier = relationship("Supplier")
    status = relationship("SupplierOrderStatus")
    lines = relationship(
        "SupplierOrder",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="SupplierOrder.id",
    )

    def __repr__(self):
        return f"<PurchaseOrder {self.id}: supplier {self.supplier_id}>"


class SupplierOrder(Base):
    """One purchase order line for one supplier component - matches supplier_orders table"""
    __tablename__ = "supplier_orders"

    id = Column(Integer, primary_key=True, index=True)
    purchase_order_id = Column(Integer, ForeignKey('purchase_orders.id', ondelete='CASCADE'), nullable=False, index=True)
    supplier_component_id = Column(Integer, ForeignKey('suppliercomponents.id'), nullable=False, index=True)
    status_id = Column(Integer, ForeignKey('supplier_order_statuses.id'), nullable=False)

    order_quantity = Column(Numeric(18, 4), nullable=False)
    total_received = Column(Numeric(18, 4), default=0, nullable=False)
    order_date = Column(DateTime, default=datetime.utcnow, nullable=False)

    purchase_order = relationship("PurchaseOrder", back_populates="lines")
    supplier_component = relationship("SupplierComponent")
    status = relationship("SupplierOrderStatus")
    customer_links = relationship(
        "SupplierOrderCustomerOrder",
        back_populates="supplier_order",
        cascade="all, delete-orphan",
    )

    @property
    def outstanding_quantity(self):
        """Ordered but not yet received, never negative"""
        remaining = (self.order_quantity or 0) - (self.total_received or 0)
        return remaining if remaining > 0 else 0

    def __repr__(self):
        return f"<SupplierOrder {self.id}: {self.order_quantity} (received {self.total_received})>"


class SupplierOrderCustomerOrder(Base):
    """How much of a supplier order line is for a customer order and how much is for stock"""
    __tablename__ = "supplier_order_customer_orders"

    id = Column(Integer, primary_key=True, index=True)
    supplier_order_id = Column(Integer, ForeignKey('supplier_orders.id', ondelete='CASCADE'), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey('orders.id'), nullable=True, index=True)
    component_id = Column(Integer, ForeignKey('components.id'), nullable=False)

    quantity_for_order = Column(Numeric(18, 4), default=0, nullable=False)
    quantity_for_stock = Column(Numeric(18, 4), default=0, nullable=False)

    supplier_order = relationship("SupplierOrder", back_populates="customer_links")

    def __repr__(self):
        return (
            f"<SupplierOrderCustomerOrder so {self.supplier_order_id} order {self.order_id}: "
            f"{self.quantity_for_order} + {self.quantity_for_stock} stock>"
        )

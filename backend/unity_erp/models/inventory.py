"""
Component inventory models
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
from datetime import datetime

from unity_erp.db.base import Base


class Inventory(Base):
    """Component stock on hand - matches inventory table (one row per component)"""
    __tablename__ = "inventory"

    id = Column(Integer, primary_key=True, index=True)
    component_id = Column(Integer, ForeignKey('components.id'), nullable=False, unique=True, index=True)

    quantity_on_hand = Column(Numeric(18, 4), default=0, nullable=False)
    location = Column(String(100), nullable=True)
    reorder_level = Column(Numeric(18, 4), default=0, nullable=False)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    component = relationship("Component", back_populates="inventory")

    def __repr__(self):
        return f"<Inventory component {self.component_id}: {self.quantity_on_hand}>"


class InventoryTransaction(Base):
    """Inventory movement - matches inventory_transactions table"""
    __tablename__ = "inventory_transactions"

    id = Column(Integer, primary_key=True, index=True)
    component_id = Column(Integer, ForeignKey('components.id'), nullable=False, index=True)

    # ISSUE (out, negative), REVERSAL (in, positive), RECEIPT, ADJUSTMENT
    transaction_type = Column(String(50), nullable=False)

    # Signed: negative leaves stock, positive returns it
    quantity = Column(Numeric(18, 4), nullable=False)

    order_id = Column(Integer, ForeignKey('orders.id'), nullable=True, index=True)
    purchase_order_id = Column(Integer, ForeignKey('purchase_orders.id'), nullable=True)

    reason = Column(Text, nullable=True)
    transaction_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    created_by = Column(String(100), nullable=True)

    component = relationship("Component")

    def __repr__(self):
        return f"<InventoryTransaction {self.transaction_type}: {self.quantity}>"

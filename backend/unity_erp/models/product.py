"""
Product (finished good) models and finished-good reservations
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
from datetime import datetime

from unity_erp.db.base import Base


class Product(Base):
    """Assembled product - matches products table"""
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    internal_code = Column(String(100), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    bom_rows = relationship("BillOfMaterials", back_populates="product", cascade="all, delete-orphan")
    inventory_rows = relationship("ProductInventory", back_populates="product", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Product {self.internal_code}: {self.name}>"


class ProductInventory(Base):
    """Finished goods on hand - matches product_inventory table"""
    __tablename__ = "product_inventory"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey('products.id', ondelete='CASCADE'), nullable=False, index=True)
    quantity_on_hand = Column(Numeric(18, 4), default=0, nullable=False)
    # NULL location is the primary row consumed first
    location = Column(String(100), nullable=True)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    product = relationship("Product", back_populates="inventory_rows")

    def __repr__(self):
        return f"<ProductInventory product {self.product_id}: {self.quantity_on_hand}>"


class ProductReservation(Base):
    """Finished goods set aside against an order - matches product_reservations table"""
    __tablename__ = "product_reservations"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey('products.id', ondelete='CASCADE'), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    qty_reserved = Column(Numeric(18, 4), default=0, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    product = relationship("Product")

    def __repr__(self):
        return f"<ProductReservation order {self.order_id} product {self.product_id}: {self.qty_reserved}>"

"""
Component and Bill of Materials models
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from unity_erp.db.base import Base


class Component(Base):
    """Purchasable component - matches components table"""
    __tablename__ = "components"

    id = Column(Integer, primary_key=True, index=True)
    internal_code = Column(String(100), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    unit = Column(String(20), default="EA", nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    inventory = relationship("Inventory", back_populates="component", uselist=False)

    def __repr__(self):
        return f"<Component {self.internal_code}>"


class BillOfMaterials(Base):
    """One BOM row: how much of a component one unit of a product consumes"""
    __tablename__ = "billofmaterials"
    __table_args__ = (
        UniqueConstraint("product_id", "component_id", name="uq_bom_product_component"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey('products.id', ondelete='CASCADE'), nullable=False, index=True)
    component_id = Column(Integer, ForeignKey('components.id'), nullable=False, index=True)

    # Per unit of product; fractional for length/area based components
    quantity_required = Column(Numeric(18, 4), nullable=False)

    product = relationship("Product", back_populates="bom_rows")
    component = relationship("Component")

    def __repr__(self):
        return f"<BOM product {self.product_id} -> component {self.component_id} x {self.quantity_required}>"

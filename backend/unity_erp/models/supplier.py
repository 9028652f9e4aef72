"""
Supplier models - suppliers, their contact emails and the components they sell
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Boolean
from sqlalchemy.orm import relationship
from datetime import datetime

from unity_erp.db.base import Base


class Supplier(Base):
    """Supplier - matches suppliers table"""
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False, index=True)
    contact_info = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    emails = relationship("SupplierEmail", back_populates="supplier", cascade="all, delete-orphan")
    components = relationship("SupplierComponent", back_populates="supplier")

    def __repr__(self):
        return f"<Supplier {self.name}>"


class SupplierEmail(Base):
    """Supplier contact email - matches supplier_emails table"""
    __tablename__ = "supplier_emails"

    id = Column(Integer, primary_key=True, index=True)
    supplier_id = Column(Integer, ForeignKey('suppliers.id', ondelete='CASCADE'), nullable=False, index=True)
    email = Column(String(255), nullable=False)
    is_primary = Column(Boolean, default=False, nullable=False)

    supplier = relationship("Supplier", back_populates="emails")

    def __repr__(self):
        return f"<SupplierEmail {self.email}>"


class SupplierComponent(Base):
    """A component as sold by one supplier, with that supplier's price"""
    __tablename__ = "suppliercomponents"

    id = Column(Integer, primary_key=True, index=True)
    supplier_id = Column(Integer, ForeignKey('suppliers.id'), nullable=False, index=True)
    component_id = Column(Integer, ForeignKey('components.id'), nullable=False, index=True)

    supplier_code = Column(String(100), nullable=True)
    price = Column(Numeric(18, 4), nullable=True)
    lead_time = Column(Integer, nullable=True)  # days
    min_order_quantity = Column(Numeric(18, 4), nullable=True)

    supplier = relationship("Supplier", back_populates="components")
    component = relationship("Component")

    def __repr__(self):
        return f"<SupplierComponent supplier {self.supplier_id} component {self.component_id} @ {self.price}>"

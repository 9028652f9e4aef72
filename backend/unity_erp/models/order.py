"""
Customer order models
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Date, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime

from unity_erp.db.base import Base


class Order(Base):
    """Customer order header - matches orders table"""
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)

    # Open, In Progress, Completed, Cancelled
    status = Column(String(50), default="Open", nullable=False)

    order_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    delivery_date = Column(Date, nullable=True)
    total_amount = Column(Numeric(18, 4), default=0, nullable=False)

    # Customer reference (customers are owned by the CRM side)
    customer_id = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    details = relationship(
        "OrderDetail",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderDetail.id",
    )

    def __repr__(self):
        return f"<Order {self.id}: {self.status}>"


class OrderDetail(Base):
    """Order line item - matches order_details table"""
    __tablename__ = "order_details"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey('products.id'), nullable=False, index=True)

    quantity = Column(Numeric(18, 4), nullable=False)
    unit_price = Column(Numeric(18, 4), default=0, nullable=False)

    order = relationship("Order", back_populates="details")
    product = relationship("Product")

    def __repr__(self):
        return f"<OrderDetail {self.id}: product {self.product_id} x {self.quantity}>"

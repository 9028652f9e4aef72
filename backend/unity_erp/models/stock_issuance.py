"""
Stock issuance ledger models

Issuance rows are append-only. A reversal is recorded as its own row in
stock_issuance_reversals; the effective quantity of an issuance is
quantity_issued minus the sum of its reversals.
"""
from decimal import Decimal

from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Text, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from unity_erp.db.base import Base


class StockIssuance(Base):
    """Components issued from inventory, against an order or manually"""
    __tablename__ = "stock_issuances"
    __table_args__ = (
        CheckConstraint("quantity_issued > 0", name="ck_stock_issuances_quantity_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    # NULL for manual issuances
    order_id = Column(Integer, ForeignKey('orders.id'), nullable=True, index=True)
    component_id = Column(Integer, ForeignKey('components.id'), nullable=False, index=True)
    transaction_id = Column(Integer, ForeignKey('inventory_transactions.id'), nullable=True)

    quantity_issued = Column(Numeric(18, 4), nullable=False)
    issuance_date = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    notes = Column(Text, nullable=True)
    staff_id = Column(Integer, ForeignKey('staff.id'), nullable=True)
    purchase_order_id = Column(Integer, ForeignKey('purchase_orders.id'), nullable=True)

    # Manual issuance fields
    external_reference = Column(String(200), nullable=True)
    issue_category = Column(String(50), nullable=True)

    created_by = Column(String(100), nullable=True)

    component = relationship("Component")
    staff = relationship("Staff")
    reversals = relationship(
        "StockIssuanceReversal",
        back_populates="issuance",
        order_by="StockIssuanceReversal.id",
    )

    @property
    def quantity_reversed(self) -> Decimal:
        return sum((Decimal(str(r.quantity_reversed)) for r in self.reversals), Decimal("0"))

    @property
    def effective_quantity(self) -> Decimal:
        return Decimal(str(self.quantity_issued)) - self.quantity_reversed

    def __repr__(self):
        return f"<StockIssuance {self.id}: component {self.component_id} x {self.quantity_issued}>"


class StockIssuanceReversal(Base):
    """A partial or full reversal of one issuance"""
    __tablename__ = "stock_issuance_reversals"
    __table_args__ = (
        CheckConstraint("quantity_reversed > 0", name="ck_stock_issuance_reversals_quantity_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    issuance_id = Column(Integer, ForeignKey('stock_issuances.id'), nullable=False, index=True)
    transaction_id = Column(Integer, ForeignKey('inventory_transactions.id'), nullable=True)

    quantity_reversed = Column(Numeric(18, 4), nullable=False)
    reason = Column(Text, nullable=True)
    reversed_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    created_by = Column(String(100), nullable=True)

    issuance = relationship("StockIssuance", back_populates="reversals")

    def __repr__(self):
        return f"<StockIssuanceReversal {self.id}: issuance {self.issuance_id} x {self.quantity_reversed}>"

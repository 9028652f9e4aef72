"""
SQLAlchemy models
"""
from unity_erp.models.order import Order, OrderDetail
from unity_erp.models.product import Product, ProductInventory, ProductReservation
from unity_erp.models.component import Component, BillOfMaterials
from unity_erp.models.inventory import Inventory, InventoryTransaction
from unity_erp.models.supplier import Supplier, SupplierEmail, SupplierComponent
from unity_erp.models.purchasing import (
    SupplierOrderStatus,
    PurchaseOrder,
    SupplierOrder,
    SupplierOrderCustomerOrder,
)
from unity_erp.models.staff import Staff
from unity_erp.models.stock_issuance import StockIssuance, StockIssuanceReversal

__all__ = [
    "Order",
    "OrderDetail",
    "Product",
    "ProductInventory",
    "ProductReservation",
    "Component",
    "BillOfMaterials",
    "Inventory",
    "InventoryTransaction",
    "Supplier",
    "SupplierEmail",
    "SupplierComponent",
    "SupplierOrderStatus",
    "PurchaseOrder",
    "SupplierOrder",
    "SupplierOrderCustomerOrder",
    "Staff",
    "StockIssuance",
    "StockIssuanceReversal",
]

"""
API v1 Router - Unity ERP
"""
from fastapi import APIRouter
from unity_erp.api.v1.endpoints import (
    order_requirements,
    fg_reservations,
    stock_issuances,
    purchase_orders,
)

router = APIRouter()

# Component requirements & shortfalls
router.include_router(order_requirements.router)

# Finished-goods reservations
router.include_router(fg_reservations.router)

# Stock issuance ledger
router.include_router(stock_issuances.router)

# Purchase orders from supplier groups
router.include_router(purchase_orders.router)

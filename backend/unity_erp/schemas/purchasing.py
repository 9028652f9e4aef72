"""
Purchase order creation schemas
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from decimal import Decimal


class PurchaseLineCreate(BaseModel):
    """
    One component to order.

    Leave for_this_order and for_stock out to allocate everything to the
    order; when given they must add up to order_quantity.
    """
    supplier_component_id: int
    order_quantity: Decimal
    for_this_order: Optional[Decimal] = None
    for_stock: Optional[Decimal] = None


class PurchaseGroupCreate(BaseModel):
    supplier_id: int
    lines: List[PurchaseLineCreate] = Field(default_factory=list)
    notes: Optional[str] = None


class CreatePurchaseOrdersRequest(BaseModel):
    groups: List[PurchaseGroupCreate]
    notes: Optional[str] = None
    created_by: Optional[str] = Field(None, max_length=100)
    apply_fg_coverage: Optional[bool] = None


class PurchaseGroupResultResponse(BaseModel):
    supplier_id: int
    success: bool
    message: str
    purchase_order_id: Optional[int] = None
    supplier_order_ids: List[int] = []


class CreatePurchaseOrdersResponse(BaseModel):
    order_id: int
    success: bool
    purchase_order_ids: List[int]
    results: List[PurchaseGroupResultResponse]
    skipped_supplier_ids: List[int] = []

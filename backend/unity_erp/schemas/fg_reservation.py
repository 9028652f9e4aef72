"""
Finished-goods reservation schemas
"""
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime


class FGReservationResponse(BaseModel):
    order_id: int
    product_id: int
    product_code: Optional[str] = None
    product_name: Optional[str] = None
    qty_reserved: float
    created_at: Optional[datetime] = None


class FGReservationListResponse(BaseModel):
    order_id: int
    reservations: List[FGReservationResponse]
    total_reserved: float


class FGReleaseResponse(BaseModel):
    order_id: int
    released: int


class FGConsumedItem(BaseModel):
    product_id: int
    qty_consumed: float


class FGConsumeResponse(BaseModel):
    order_id: int
    consumed: List[FGConsumedItem]

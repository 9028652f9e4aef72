"""
Finished-goods Reservation API Endpoints
"""
from fastapi import APIRouter, Depends

from unity_erp.api.v1.deps import get_reservation_service
from unity_erp.schemas.fg_reservation import (
    FGConsumedItem,
    FGConsumeResponse,
    FGReleaseResponse,
    FGReservationListResponse,
    FGReservationResponse,
)
from unity_erp.services.fg_reservations import FinishedGoodsReservationService, ReservationRow


router = APIRouter(prefix="/orders", tags=["fg-reservations"])


def _list_response(order_id: int, rows: list) -> FGReservationListResponse:
    return FGReservationListResponse(
        order_id=order_id,
        reservations=[_row_response(r) for r in rows],
        total_reserved=float(sum(r.qty_reserved for r in rows)),
    )


def _row_response(row: ReservationRow) -> FGReservationResponse:
    return FGReservationResponse(
        order_id=row.order_id,
        product_id=row.product_id,
        product_code=row.product_code,
        product_name=row.product_name,
        qty_reserved=float(row.qty_reserved),
        created_at=row.created_at,
    )


@router.get("/{order_id}/fg-reservations", response_model=FGReservationListResponse)
async def list_fg_reservations(
    order_id: int,
    service: FinishedGoodsReservationService = Depends(get_reservation_service),
):
    """Finished goods currently reserved against an order"""
    return _list_response(order_id, service.list_reservations(order_id))


@router.post("/{order_id}/fg-reservations", response_model=FGReservationListResponse)
async def reserve_fg(
    order_id: int,
    service: FinishedGoodsReservationService = Depends(get_reservation_service),
):
    """
    Reserve available finished goods for the order's lines.

    Replaces any existing reservations of the order.
    """
    return _list_response(order_id, service.reserve(order_id))


@router.post("/{order_id}/fg-reservations/release", response_model=FGReleaseResponse)
async def release_fg(
    order_id: int,
    service: FinishedGoodsReservationService = Depends(get_reservation_service),
):
    """Release the order's reservations back to available stock"""
    return FGReleaseResponse(order_id=order_id, released=service.release(order_id))


@router.post("/{order_id}/fg-reservations/consume", response_model=FGConsumeResponse)
async def consume_fg(
    order_id: int,
    service: FinishedGoodsReservationService = Depends(get_reservation_service),
):
    """Ship the reserved finished goods: deduct them from stock and drop the reservations"""
    consumed = service.consume(order_id)
    return FGConsumeResponse(
        order_id=order_id,
        consumed=[FGConsumedItem(product_id=c.product_id, qty_consumed=float(c.qty_consumed)) for c in consumed],
    )

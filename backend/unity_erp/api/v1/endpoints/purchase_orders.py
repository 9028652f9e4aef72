"""
Purchase Order API Endpoints

Create draft purchase orders from an order's supplier groups.
"""
from fastapi import APIRouter, Depends

from unity_erp.api.v1.deps import get_purchase_order_service
from unity_erp.schemas.purchasing import (
    CreatePurchaseOrdersRequest,
    CreatePurchaseOrdersResponse,
    PurchaseGroupResultResponse,
)
from unity_erp.services.purchase_order_service import (
    PurchaseGroupRequest,
    PurchaseLineRequest,
    PurchaseOrderService,
)


router = APIRouter(prefix="/orders", tags=["purchase-orders"])


@router.post("/{order_id}/purchase-orders", response_model=CreatePurchaseOrdersResponse)
async def create_purchase_orders(
    order_id: int,
    request: CreatePurchaseOrdersRequest,
    service: PurchaseOrderService = Depends(get_purchase_order_service),
):
    """
    One draft purchase order per supplier group.

    Lines with a zero quantity are left out and groups left empty are
    skipped. A group that fails does not stop the others; check `results`.
    """
    groups = [
        PurchaseGroupRequest(
            supplier_id=g.supplier_id,
            lines=[
                PurchaseLineRequest(
                    supplier_component_id=line.supplier_component_id,
                    order_quantity=line.order_quantity,
                    for_this_order=line.for_this_order,
                    for_stock=line.for_stock,
                )
                for line in g.lines
            ],
            notes=g.notes,
        )
        for g in request.groups
    ]
    batch = service.create_purchase_orders(
        order_id,
        groups,
        notes=request.notes,
        created_by=request.created_by,
        apply_fg_coverage=request.apply_fg_coverage,
    )
    return CreatePurchaseOrdersResponse(
        order_id=order_id,
        success=batch.success,
        purchase_order_ids=batch.purchase_order_ids,
        results=[
            PurchaseGroupResultResponse(
                supplier_id=r.supplier_id,
                success=r.success,
                message=r.message,
                purchase_order_id=r.purchase_order_id,
                supplier_order_ids=r.supplier_order_ids,
            )
            for r in batch.results
        ],
        skipped_supplier_ids=batch.skipped_supplier_ids,
    )

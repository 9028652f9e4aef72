"""
API Dependencies

Service factories wired to the request's database session and the
process-wide requirement cache.
"""
from fastapi import Depends
from sqlalchemy.orm import Session

from unity_erp.db.session import get_db
from unity_erp.services.fg_reservations import FinishedGoodsReservationService
from unity_erp.services.order_requirements import OrderRequirementsService
from unity_erp.services.purchase_order_service import PurchaseOrderService
from unity_erp.services.requirement_cache import RequirementCache, get_requirement_cache
from unity_erp.services.stock_issuance_service import StockIssuanceService


def get_requirements_service(
    db: Session = Depends(get_db),
    cache: RequirementCache = Depends(get_requirement_cache),
) -> OrderRequirementsService:
    return OrderRequirementsService(db, cache)


def get_reservation_service(
    db: Session = Depends(get_db),
    cache: RequirementCache = Depends(get_requirement_cache),
) -> FinishedGoodsReservationService:
    return FinishedGoodsReservationService(db, cache)


def get_issuance_service(
    db: Session = Depends(get_db),
    cache: RequirementCache = Depends(get_requirement_cache),
) -> StockIssuanceService:
    return StockIssuanceService(db, cache)


def get_purchase_order_service(
    db: Session = Depends(get_db),
    cache: RequirementCache = Depends(get_requirement_cache),
) -> PurchaseOrderService:
    return PurchaseOrderService(db, cache)

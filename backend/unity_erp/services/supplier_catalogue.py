"""
Supplier/pricing lookup
"""
from typing import Dict, Iterable, List

from sqlalchemy.orm import Session

from unity_erp.models import Supplier, SupplierComponent, SupplierEmail
from unity_erp.services.supplier_allocation import SupplierOption
from unity_erp.services.quantities import to_decimal


class SupplierCatalogue:
    """Supplier options and contacts for components"""

    def __init__(self, db: Session):
        self.db = db

    def get_options(self, component_ids: Iterable[int]) -> Dict[int, List[SupplierOption]]:
        """All supplier options per component_id, cheapest first"""
        component_ids = list(component_ids)
        if not component_ids:
            return {}
        rows = (
            self.db.query(SupplierComponent, Supplier)
            .join(Supplier, Supplier.id == SupplierComponent.supplier_id)
            .filter(SupplierComponent.component_id.in_(component_ids))
            .order_by(SupplierComponent.component_id, SupplierComponent.price, Supplier.name)
            .all()
        )
        options: Dict[int, List[SupplierOption]] = {}
        for sc, supplier in rows:
            options.setdefault(sc.component_id, []).append(
                SupplierOption(
                    supplier_component_id=sc.id,
                    supplier_id=supplier.id,
                    supplier_name=supplier.name,
                    component_id=sc.component_id,
                    unit_price=to_decimal(sc.price) if sc.price is not None else None,
                    supplier_code=sc.supplier_code,
                    lead_time=sc.lead_time,
                )
            )
        return options

    def get_supplier_emails(self, supplier_ids: Iterable[int]) -> Dict[int, List[str]]:
        """Contact emails per supplier, primary address first"""
        supplier_ids = list(supplier_ids)
        if not supplier_ids:
            return {}
        rows = (
            self.db.query(SupplierEmail)
            .filter(SupplierEmail.supplier_id.in_(supplier_ids))
            .order_by(SupplierEmail.supplier_id, SupplierEmail.is_primary.desc(), SupplierEmail.id)
            .all()
        )
        emails: Dict[int, List[str]] = {}
        for row in rows:
            emails.setdefault(row.supplier_id, []).append(row.email)
        return emails

"""
Service tests for PurchaseOrderService
"""
import pytest
from decimal import Decimal

from unity_erp.exceptions import DraftStatusNotFoundError, NotFoundError, ValidationError
from unity_erp.models import PurchaseOrder, SupplierOrder, SupplierOrderCustomerOrder, SupplierOrderStatus
from unity_erp.services.order_requirements import OrderRequirementsService
from unity_erp.services.purchase_order_service import (
    PurchaseGroupRequest,
    PurchaseLineRequest,
    PurchaseOrderService,
)
from unity_erp.services.shortfall import ShortfallStatus
from tests.factories import reset_sequences
from tests.scenarios import seed_purchasing


class TestCreatePurchaseOrders:

    @pytest.fixture(autouse=True)
    def setup(self, db_session):
        """Reset sequences before each test."""
        reset_sequences()

    def test_one_purchase_order_per_group(self, db_session):
        # Arrange
        data = seed_purchasing(db_session)
        groups = [
            PurchaseGroupRequest(data["beta"].id, [
                PurchaseLineRequest(data["beta_p1"].id, Decimal("4")),
                PurchaseLineRequest(data["beta_p2"].id, Decimal("8"), Decimal("6"), Decimal("2")),
            ]),
            PurchaseGroupRequest(data["alpha"].id, [PurchaseLineRequest(data["alpha_p3"].id, Decimal("5"))]),
        ]

        # Act
        batch = PurchaseOrderService(db_session).create_purchase_orders(
            data["order"].id, groups, notes="Shortfalls", created_by="buyer"
        )

        # Assert
        assert batch.success is True
        assert len(batch.purchase_order_ids) == 2
        draft = db_session.query(SupplierOrderStatus).filter_by(status_name="Draft").one()
        for po in db_session.query(PurchaseOrder).all():
            assert po.status_id == draft.id
            assert po.notes == "Shortfalls"
        assert db_session.query(SupplierOrder).count() == 3

        link = (
            db_session.query(SupplierOrderCustomerOrder)
            .filter(SupplierOrderCustomerOrder.component_id == data["components"]["P2"].id)
            .one()
        )
        assert link.order_id == data["order"].id
        assert Decimal(str(link.quantity_for_order)) == Decimal("6")
        assert Decimal(str(link.quantity_for_stock)) == Decimal("2")

    def test_default_split_sends_surplus_to_stock(self, db_session):
        """P1 is 4 short; ordering 6 puts 4 on the order and 2 into stock"""
        # Arrange
        data = seed_purchasing(db_session)

        # Act
        PurchaseOrderService(db_session).create_purchase_orders(
            data["order"].id,
            [PurchaseGroupRequest(data["beta"].id, [PurchaseLineRequest(data["beta_p1"].id, Decimal("6"))])],
        )

        # Assert
        so = db_session.query(SupplierOrder).one()
        link = db_session.query(SupplierOrderCustomerOrder).one()
        assert Decimal(str(so.order_quantity)) == Decimal("6")
        assert Decimal(str(link.quantity_for_order)) == Decimal("4")
        assert Decimal(str(link.quantity_for_stock)) == Decimal("2")

    def test_default_split_for_larger_order_quantity(self, db_session):
        data = seed_purchasing(db_session)

        PurchaseOrderService(db_session).create_purchase_orders(
            data["order"].id,
            [PurchaseGroupRequest(data["alpha"].id, [PurchaseLineRequest(data["alpha_p3"].id, Decimal("8"))])],
        )

        link = db_session.query(SupplierOrderCustomerOrder).one()
        assert Decimal(str(link.quantity_for_order)) == Decimal("5")
        assert Decimal(str(link.quantity_for_stock)) == Decimal("3")

    def test_default_split_at_or_below_shortfall_is_all_for_order(self, db_session):
        data = seed_purchasing(db_session)

        PurchaseOrderService(db_session).create_purchase_orders(
            data["order"].id,
            [PurchaseGroupRequest(data["beta"].id, [
                PurchaseLineRequest(data["beta_p1"].id, Decimal("3")),
                PurchaseLineRequest(data["beta_p2"].id, Decimal("6")),
            ])],
        )

        links = {
            link.component_id: (Decimal(str(link.quantity_for_order)), Decimal(str(link.quantity_for_stock)))
            for link in db_session.query(SupplierOrderCustomerOrder).all()
        }
        assert links == {
            data["components"]["P1"].id: (Decimal("3"), Decimal("0")),
            data["components"]["P2"].id: (Decimal("6"), Decimal("0")),
        }

    def test_one_sided_split_fills_in_the_other_side(self, db_session):
        data = seed_purchasing(db_session)

        PurchaseOrderService(db_session).create_purchase_orders(
            data["order"].id,
            [PurchaseGroupRequest(data["beta"].id, [
                PurchaseLineRequest(data["beta_p1"].id, Decimal("6"), for_stock=Decimal("5")),
            ])],
        )

        link = db_session.query(SupplierOrderCustomerOrder).one()
        assert Decimal(str(link.quantity_for_order)) == Decimal("1")
        assert Decimal(str(link.quantity_for_stock)) == Decimal("5")

    def test_zero_quantity_groups_are_skipped(self, db_session):
        data = seed_purchasing(db_session)

        batch = PurchaseOrderService(db_session).create_purchase_orders(
            data["order"].id,
            [
                PurchaseGroupRequest(data["beta"].id, [PurchaseLineRequest(data["beta_p1"].id, Decimal("4"))]),
                PurchaseGroupRequest(data["alpha"].id, [PurchaseLineRequest(data["alpha_p3"].id, Decimal("0"))]),
            ],
        )

        assert batch.skipped_supplier_ids == [data["alpha"].id]
        assert db_session.query(PurchaseOrder).count() == 1

    def test_nothing_selected(self, db_session):
        data = seed_purchasing(db_session)

        with pytest.raises(ValidationError):
            PurchaseOrderService(db_session).create_purchase_orders(
                data["order"].id,
                [PurchaseGroupRequest(data["beta"].id, [PurchaseLineRequest(data["beta_p1"].id, Decimal("0"))])],
            )
        assert db_session.query(PurchaseOrder).count() == 0

    def test_negative_quantity_rejected_before_any_insert(self, db_session):
        data = seed_purchasing(db_session)

        with pytest.raises(ValidationError):
            PurchaseOrderService(db_session).create_purchase_orders(
                data["order"].id,
                [
                    PurchaseGroupRequest(data["beta"].id, [PurchaseLineRequest(data["beta_p1"].id, Decimal("4"))]),
                    PurchaseGroupRequest(data["alpha"].id, [PurchaseLineRequest(data["alpha_p3"].id, Decimal("-1"))]),
                ],
            )
        assert db_session.query(PurchaseOrder).count() == 0

    def test_missing_draft_status(self, db_session):
        data = seed_purchasing(db_session)
        db_session.query(SupplierOrderStatus).filter_by(status_name="Draft").delete()
        db_session.commit()

        with pytest.raises(DraftStatusNotFoundError):
            PurchaseOrderService(db_session).create_purchase_orders(
                data["order"].id,
                [PurchaseGroupRequest(data["beta"].id, [PurchaseLineRequest(data["beta_p1"].id, Decimal("4"))])],
            )

    def test_bad_group_fails_alone(self, db_session):
        data = seed_purchasing(db_session)

        batch = PurchaseOrderService(db_session).create_purchase_orders(
            data["order"].id,
            [
                # Alpha's supplier component under Beta
                PurchaseGroupRequest(data["beta"].id, [PurchaseLineRequest(data["alpha_p1"].id, Decimal("4"))]),
                PurchaseGroupRequest(data["alpha"].id, [PurchaseLineRequest(data["alpha_p3"].id, Decimal("5"))]),
            ],
        )

        assert batch.success is False
        outcome = {r.supplier_id: r.success for r in batch.results}
        assert outcome == {data["beta"].id: False, data["alpha"].id: True}
        assert db_session.query(PurchaseOrder).count() == 1

    def test_allocation_must_add_up(self, db_session):
        data = seed_purchasing(db_session)

        batch = PurchaseOrderService(db_session).create_purchase_orders(
            data["order"].id,
            [PurchaseGroupRequest(data["beta"].id, [
                PurchaseLineRequest(data["beta_p1"].id, Decimal("8"), Decimal("4"), Decimal("1")),
            ])],
        )

        assert batch.success is False
        assert db_session.query(PurchaseOrder).count() == 0

    def test_unknown_order(self, db_session):
        with pytest.raises(NotFoundError):
            PurchaseOrderService(db_session).create_purchase_orders(999, [])

    def test_new_supplier_orders_are_drafts_not_on_order(self, db_session, requirement_cache):
        """Draft purchase orders do not count as on-order supply"""
        data = seed_purchasing(db_session)
        PurchaseOrderService(db_session, requirement_cache).create_purchase_orders(
            data["order"].id,
            [PurchaseGroupRequest(data["beta"].id, [PurchaseLineRequest(data["beta_p1"].id, Decimal("4"))])],
        )

        view = OrderRequirementsService(db_session, requirement_cache).get_component_requirements(data["order"].id)

        p1 = next(c for c in view.components if c.internal_code == "P1")
        assert p1.on_order == Decimal("0")
        assert p1.status is ShortfallStatus.SHORT

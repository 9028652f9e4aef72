"""
Service tests for OrderRequirementsService and ComponentStatusProvider

Uses the in-memory SQLite session from conftest.
"""
import pytest
from decimal import Decimal

from unity_erp.exceptions import NotFoundError
from unity_erp.services.component_status import ComponentStatusProvider
from unity_erp.services.fg_reservations import FinishedGoodsReservationService
from unity_erp.services.order_requirements import OrderRequirementsService
from unity_erp.services.shortfall import ShortfallStatus
from unity_erp.services.stock_issuance_service import IssueRequest, StockIssuanceService
from tests.factories import (
    create_test_bom,
    create_test_component,
    create_test_order,
    create_test_product,
    create_test_reservation,
    create_test_supplier,
    create_test_supplier_component,
    create_test_supplier_order,
    reset_sequences,
)
from tests.scenarios import seed_order_100, seed_purchasing, seed_shared_component


class TestComponentRequirements:
    """Single-order requirements and shortfalls"""

    @pytest.fixture(autouse=True)
    def setup(self, db_session):
        """Reset sequences before each test."""
        reset_sequences()

    def test_order_100_short_by_five(self, db_session):
        # Arrange
        data = seed_order_100(db_session)

        # Act
        view = OrderRequirementsService(db_session).get_component_requirements(data["order"].id)

        # Assert
        [req] = view.components
        assert req.required == Decimal("20")
        assert req.in_stock == Decimal("15")
        assert req.on_order == Decimal("0")
        assert req.apparent_shortfall == Decimal("5")
        assert req.real_shortfall == Decimal("5")
        assert req.status is ShortfallStatus.SHORT

    def test_fg_reservation_removes_shortfall(self, db_session, requirement_cache):
        # Arrange
        data = seed_order_100(db_session)
        service = OrderRequirementsService(db_session, requirement_cache)
        order_id = data["order"].id
        assert service.get_component_requirements(order_id).components[0].real_shortfall == Decimal("5")

        # Act
        FinishedGoodsReservationService(db_session, requirement_cache).reserve(order_id)
        view = service.get_component_requirements(order_id)

        # Assert
        [req] = view.components
        assert view.products[0].reserved_quantity == Decimal("4")
        assert view.coverage[data["product"].id].factor == Decimal("0.6")
        assert req.required == Decimal("12")
        assert req.apparent_shortfall == Decimal("0")
        assert req.real_shortfall == Decimal("0")
        assert req.status is ShortfallStatus.NONE

    def test_coverage_toggle_off(self, db_session):
        data = seed_order_100(db_session)
        create_test_reservation(db_session, data["order"], data["product"], Decimal("4"))
        db_session.commit()

        view = OrderRequirementsService(db_session).get_component_requirements(
            data["order"].id, apply_fg_coverage=False
        )

        assert view.apply_coverage is False
        assert view.components[0].required == Decimal("20")
        assert view.products[0].components[0].required_base == Decimal("20")

    def test_on_order_covers_shortfall(self, db_session):
        data = seed_order_100(db_session)
        supplier = create_test_supplier(db_session)
        sc = create_test_supplier_component(db_session, supplier, data["component"])
        create_test_supplier_order(db_session, sc, Decimal("8"), total_received=Decimal("3"))
        # Draft supplier orders are not on order yet
        create_test_supplier_order(db_session, sc, Decimal("100"), status_name="Draft")
        db_session.commit()

        [req] = OrderRequirementsService(db_session).get_component_requirements(data["order"].id).components

        assert req.on_order == Decimal("5")
        assert req.apparent_shortfall == Decimal("5")
        assert req.real_shortfall == Decimal("0")
        assert req.status is ShortfallStatus.COVERED_BY_ON_ORDER
        assert len(req.on_order_breakdown) == 1

    def test_unknown_order(self, db_session):
        with pytest.raises(NotFoundError):
            OrderRequirementsService(db_session).get_component_requirements(999)

    def test_order_without_lines(self, db_session):
        order = create_test_order(db_session, lines=[])
        db_session.commit()

        view = OrderRequirementsService(db_session).get_component_requirements(order.id)

        assert view.products == []
        assert view.components == []

    def test_cached_view_recomputed_after_issue(self, db_session, requirement_cache):
        data = seed_order_100(db_session)
        service = OrderRequirementsService(db_session, requirement_cache)
        order_id = data["order"].id
        first = service.get_component_requirements(order_id)
        assert service.get_component_requirements(order_id) is first

        StockIssuanceService(db_session, requirement_cache).issue_component(
            order_id, data["component"].id, Decimal("5")
        )
        second = service.get_component_requirements(order_id)

        assert second is not first
        assert second.components[0].in_stock == Decimal("10")


class TestGlobalRequirements:
    """Demand across every open order"""

    @pytest.fixture(autouse=True)
    def setup(self, db_session):
        reset_sequences()

    def test_global_totals_exclude_closed_orders(self, db_session):
        data = seed_shared_component(db_session)

        [req] = OrderRequirementsService(db_session).get_component_requirements(data["first"].id).components

        assert req.required == Decimal("10")
        assert req.in_stock == Decimal("25")
        assert req.on_order == Decimal("4")
        assert req.status is ShortfallStatus.NONE
        assert req.total_required_all_orders == Decimal("30")
        assert req.order_count == 2
        assert req.global_apparent_shortfall == Decimal("5")
        assert req.global_real_shortfall == Decimal("1")
        assert req.global_status is ShortfallStatus.SHORT

    def test_global_total_is_sum_of_open_orders(self, db_session):
        data = seed_shared_component(db_session)
        service = OrderRequirementsService(db_session)

        first = service.get_component_requirements(data["first"].id).components[0]
        second = service.get_component_requirements(data["second"].id).components[0]

        assert first.total_required_all_orders == first.required + second.required
        assert second.total_required_all_orders == first.total_required_all_orders

    def test_global_demand_respects_other_orders_reservations(self, db_session):
        data = seed_shared_component(db_session)
        create_test_reservation(db_session, data["second"], data["product"], Decimal("5"))
        db_session.commit()

        [req] = OrderRequirementsService(db_session).get_component_requirements(data["first"].id).components

        # Order 2 still needs 5 of its 10 units: 10 Y
        assert req.total_required_all_orders == Decimal("20")

    def test_closed_order_still_sees_its_own_demand(self, db_session):
        data = seed_shared_component(db_session)

        [req] = OrderRequirementsService(db_session).get_component_requirements(data["closed"].id).components

        assert req.required == Decimal("100")
        assert req.total_required_all_orders == Decimal("130")
        assert req.global_apparent_shortfall >= req.apparent_shortfall

    def test_status_provider_in_stock(self, db_session):
        data = seed_shared_component(db_session)

        in_stock = ComponentStatusProvider(db_session).get_in_stock([data["component"].id])

        assert in_stock == {data["component"].id: Decimal("25")}


class TestSupplierGroups:

    @pytest.fixture(autouse=True)
    def setup(self, db_session):
        reset_sequences()

    def test_groups_and_emails(self, db_session):
        data = seed_purchasing(db_session)

        result = OrderRequirementsService(db_session).get_supplier_groups(data["order"].id)

        assert [g.supplier_name for g in result.groups] == ["Beta", "Alpha"]
        beta, alpha = result.groups
        assert [c.internal_code for c in beta.components] == ["P1", "P2"]
        assert beta.emails == ["beta@beta.test"]
        assert alpha.emails == ["sales@alpha.test", "alt@alpha.test"]
        assert beta.estimated_total == Decimal("22")
        assert [c.internal_code for c in result.unsourced] == ["P4"]

    def test_default_allocation(self, db_session):
        data = seed_purchasing(db_session)

        result = OrderRequirementsService(db_session).get_supplier_groups(data["order"].id)

        p2 = result.groups[0].components[1]
        assert p2.allocation.order_quantity == Decimal("6")
        assert p2.allocation.for_this_order == Decimal("6")
        assert p2.allocation.for_stock == Decimal("0")

    def test_nothing_short(self, db_session):
        product = create_test_product(db_session)
        component = create_test_component(db_session, quantity_on_hand=Decimal("100"))
        create_test_bom(db_session, product, [{"component": component, "quantity": 1}])
        order = create_test_order(db_session, lines=[{"product": product, "quantity": 5}])
        db_session.commit()

        result = OrderRequirementsService(db_session).get_supplier_groups(order.id)

        assert result.groups == []
        assert result.unsourced == []


class TestIssuanceSummary:

    @pytest.fixture(autouse=True)
    def setup(self, db_session):
        reset_sequences()

    def test_issue_twelve_reverse_five(self, db_session, requirement_cache):
        # Arrange
        data = seed_order_100(db_session)
        order_id = data["order"].id
        issuance = StockIssuanceService(db_session, requirement_cache)
        result = issuance.issue_component(order_id, data["component"].id, Decimal("12"))

        # Act
        issuance.reverse_issuance(result.issuance_id, Decimal("5"))
        summary = OrderRequirementsService(db_session, requirement_cache).get_issuance_summary(order_id)

        # Assert
        assert summary.issued_by_component == {data["component"].id: Decimal("7")}
        assert summary.lines[0].fully_issued is False
        assert summary.fully_issued_order_detail_ids == []

    def test_fully_issued_after_coverage(self, db_session, requirement_cache):
        """With 4 reserved, 12 X covers the line; 7 does not"""
        data = seed_order_100(db_session)
        order_id = data["order"].id
        FinishedGoodsReservationService(db_session, requirement_cache).reserve(order_id)
        StockIssuanceService(db_session, requirement_cache).issue_component(
            order_id, data["component"].id, Decimal("12")
        )

        summary = OrderRequirementsService(db_session, requirement_cache).get_issuance_summary(order_id)

        assert summary.fully_issued_order_detail_ids == [data["line"].id]
        assert len(summary.groups) == 1

    def test_plan_issue_for_selected_line(self, db_session):
        data = seed_order_100(db_session)
        extra = create_test_component(db_session, internal_code="GLUE", quantity_on_hand=Decimal("1"))
        db_session.commit()

        plan = OrderRequirementsService(db_session).plan_issue(
            data["order"].id,
            [data["line"].id],
            manual_components=[IssueRequest(extra.id, Decimal("2"))],
        )

        entries = {e.internal_code: e for e in plan}
        assert entries["COMP-X"].issue_quantity == Decimal("20")
        assert entries["COMP-X"].available_quantity == Decimal("15")
        assert entries["COMP-X"].has_warning is True
        assert entries["GLUE"].manual is True
        assert entries["GLUE"].issue_quantity == Decimal("2")

    def test_plan_issue_unknown_manual_component(self, db_session):
        data = seed_order_100(db_session)

        with pytest.raises(NotFoundError):
            OrderRequirementsService(db_session).plan_issue(
                data["order"].id, [], manual_components=[IssueRequest(999, Decimal("1"))]
            )

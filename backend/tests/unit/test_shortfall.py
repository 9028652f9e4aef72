"""
Unit tests for shortfall classification (single order and global)
"""
import pytest
from decimal import Decimal

from unity_erp.services.quantities import format_quantity
from unity_erp.services.requirement_explosion import ComponentTotal
from unity_erp.services.shortfall import (
    ComponentStatus,
    OrderDemand,
    ShortfallStatus,
    build_component_requirements,
    classify_shortfall,
    global_demand_from_breakdown,
    resolve_global,
    summarize_statuses,
)


def _total(component_id, required):
    return ComponentTotal(
        component_id=component_id,
        internal_code=f"C{component_id}",
        description=None,
        required=Decimal(str(required)),
        product_ids=[1],
    )


class TestClassifyShortfall:

    @pytest.mark.parametrize("required,in_stock,on_order,apparent,real,status", [
        (20, 15, 0, 5, 5, ShortfallStatus.SHORT),
        (20, 15, 5, 5, 0, ShortfallStatus.COVERED_BY_ON_ORDER),
        (20, 15, 3, 5, 2, ShortfallStatus.SHORT),
        (12, 15, 0, 0, 0, ShortfallStatus.NONE),
        (0, 0, 0, 0, 0, ShortfallStatus.NONE),
        # Negative stock never hides a shortfall
        (5, -3, 0, 8, 8, ShortfallStatus.SHORT),
        # Nor does it create one where nothing is required
        (0, -5, 0, 0, 0, ShortfallStatus.NONE),
        (0, -5, 2, 0, 0, ShortfallStatus.NONE),
    ])
    def test_classification(self, required, in_stock, on_order, apparent, real, status):
        result = classify_shortfall(Decimal(required), Decimal(in_stock), Decimal(on_order))

        assert result.apparent == Decimal(apparent)
        assert result.real == Decimal(real)
        assert result.status is status

    def test_real_never_exceeds_apparent(self):
        for required in range(0, 30, 3):
            for on_order in range(0, 10, 2):
                result = classify_shortfall(Decimal(required), Decimal("10"), Decimal(on_order))
                assert Decimal("0") <= result.real <= result.apparent


class TestGlobalDemand:

    def test_current_order_counted_with_local_required(self):
        breakdown = [
            OrderDemand(order_id=1, required=Decimal("999")),
            OrderDemand(order_id=2, required=Decimal("20")),
            OrderDemand(order_id=3, required=Decimal("0")),
        ]

        total, count = global_demand_from_breakdown(1, Decimal("10"), breakdown)

        assert total == Decimal("30")
        assert count == 2

    def test_provider_total_is_never_below_local(self):
        status = ComponentStatus(
            component_id=7,
            in_stock=Decimal("5"),
            total_required=Decimal("3"),
            order_count=1,
        )

        total, count, shortfall = resolve_global(1, Decimal("10"), status)

        assert total == Decimal("10")
        assert shortfall.apparent == Decimal("5")

    def test_provider_shortfalls_are_clamped(self):
        status = ComponentStatus(
            component_id=7,
            in_stock=Decimal("5"),
            on_order=Decimal("2"),
            total_required=Decimal("10"),
            order_count=2,
            global_apparent_shortfall=Decimal("1"),
            global_real_shortfall=Decimal("9"),
        )

        _, _, shortfall = resolve_global(1, Decimal("10"), status)

        assert shortfall.apparent == Decimal("5")
        assert shortfall.real == Decimal("5")


class TestBuildComponentRequirements:

    def test_global_at_least_local(self):
        statuses = {
            1: ComponentStatus(
                component_id=1,
                in_stock=Decimal("25"),
                on_order=Decimal("4"),
                order_breakdown=[
                    OrderDemand(order_id=1, required=Decimal("10")),
                    OrderDemand(order_id=2, required=Decimal("20")),
                ],
            ),
        }

        [req] = build_component_requirements(1, [_total(1, 10)], statuses)

        assert req.status is ShortfallStatus.NONE
        assert req.total_required_all_orders == Decimal("30")
        assert req.order_count == 2
        assert req.global_apparent_shortfall == Decimal("5")
        assert req.global_real_shortfall == Decimal("1")
        assert req.global_status is ShortfallStatus.SHORT
        assert req.global_apparent_shortfall >= req.apparent_shortfall
        assert req.global_real_shortfall >= req.real_shortfall

    def test_missing_status_means_nothing_in_stock(self):
        [req] = build_component_requirements(1, [_total(9, 3)], {})

        assert req.in_stock == Decimal("0")
        assert req.real_shortfall == Decimal("3")
        assert req.order_count == 1

    def test_summary_counts(self):
        statuses = {
            1: ComponentStatus(component_id=1, in_stock=Decimal("100")),
            2: ComponentStatus(component_id=2, on_order=Decimal("10")),
        }

        reqs = build_component_requirements(1, [_total(1, 5), _total(2, 5), _total(3, 5)], statuses)

        assert summarize_statuses(reqs) == {"none": 1, "covered_by_on_order": 1, "short": 1}


class TestFormatQuantity:

    @pytest.mark.parametrize("value,expected", [
        (Decimal("12"), "12"),
        (Decimal("12.0004"), "12"),
        (Decimal("11.9995"), "12"),
        (Decimal("2.5"), "2.50"),
        (Decimal("0.333333"), "0.33"),
        (Decimal("0.0001"), "0"),
        (None, "0"),
    ])
    def test_display(self, value, expected):
        assert format_quantity(value) == expected

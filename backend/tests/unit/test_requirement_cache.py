"""
Unit tests for the generation-counter requirement cache
"""
from unity_erp.services.requirement_cache import RequirementCache


class _View:
    def __init__(self, value, component_ids):
        self.value = value
        self.component_ids = component_ids


def _compute_counter(component_ids):
    calls = []

    def compute():
        calls.append(1)
        return _View(len(calls), component_ids)

    return compute, calls


class TestRequirementCache:

    def test_hit_until_invalidated(self):
        cache = RequirementCache()
        compute, calls = _compute_counter([7, 8])

        first = cache.get_or_compute("view", 1, compute, lambda v: v.component_ids)
        second = cache.get_or_compute("view", 1, compute, lambda v: v.component_ids)

        assert first is second
        assert len(calls) == 1

    def test_order_invalidation(self):
        cache = RequirementCache()
        compute, calls = _compute_counter([7])
        cache.get_or_compute("view", 1, compute, lambda v: v.component_ids)

        cache.invalidate_order(1)

        assert cache.get("view", 1) is None
        cache.get_or_compute("view", 1, compute, lambda v: v.component_ids)
        assert len(calls) == 2

    def test_component_invalidation_reaches_other_orders(self):
        cache = RequirementCache()
        compute, _ = _compute_counter([7])
        cache.get_or_compute("view", 1, compute, lambda v: v.component_ids)
        cache.get_or_compute("view", 2, compute, lambda v: v.component_ids)

        # Stock of component 7 moved through order 2
        cache.invalidate_order(2, [7])

        assert cache.get("view", 1) is None
        assert cache.get("view", 2) is None

    def test_unrelated_component_keeps_entry(self):
        cache = RequirementCache()
        compute, _ = _compute_counter([7])
        cache.get_or_compute("view", 1, compute, lambda v: v.component_ids)

        cache.invalidate_components([99])
        cache.invalidate_order(2)

        assert cache.get("view", 1) is not None

    def test_views_are_separate(self):
        cache = RequirementCache()
        cache.put(("requirements", True), 1, "covered", [7])
        cache.put(("requirements", False), 1, "raw", [7])

        assert cache.get(("requirements", True), 1) == "covered"
        assert cache.get(("requirements", False), 1) == "raw"

    def test_mutation_during_compute_leaves_entry_stale(self):
        cache = RequirementCache()

        def compute():
            cache.invalidate_order(1, [7])
            return _View("old", [7])

        cache.get_or_compute("view", 1, compute, lambda v: v.component_ids)

        assert cache.get("view", 1) is None

    def test_clear(self):
        cache = RequirementCache()
        cache.put("view", 1, "value", [])

        cache.clear()

        assert cache.get("view", 1) is None

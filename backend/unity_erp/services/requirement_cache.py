"""
Requirement cache with generation counters.

Derived views (component requirements, issuance summaries) are cached per
order together with the generation of every key they were computed from:
the order itself and each (order_id, component_id) pair. Mutations bump
generations; a cached view whose recorded generations no longer match is
stale and gets recomputed. Cached numbers are never patched in place.

Global views depend on other orders too, so stock mutations also bump the
component-wide generation (order_id None).

A cache lives for one request. Rows written by other flows (new orders,
received supplier orders, BOM edits) are picked up on the next request.
"""
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Iterable, Optional, Tuple

from unity_erp.logging_config import get_logger

logger = get_logger(__name__)

Key = Tuple[Optional[int], Optional[int]]


@dataclass
class _Entry:
    value: Any
    generations: Dict[Key, int]


class RequirementCache:
    """Cache of derived views for one unit of work, keyed by (view name, order id)"""

    def __init__(self):
        self._lock = threading.Lock()
        self._generations: Dict[Key, int] = {}
        self._entries: Dict[Tuple[Hashable, int], _Entry] = {}

    # ------------------------------------------------------------------
    # Generations
    # ------------------------------------------------------------------

    def generation(self, key: Key) -> int:
        return self._generations.get(key, 0)

    def _bump(self, key: Key) -> None:
        self._generations[key] = self._generations.get(key, 0) + 1

    def invalidate_order(self, order_id: int, component_ids: Iterable[int] = ()) -> None:
        """Mark an order (and optionally some of its components) as changed"""
        component_ids = list(component_ids)
        with self._lock:
            self._bump((order_id, None))
            for component_id in component_ids:
                self._bump((order_id, component_id))
                # Stock is shared, other orders' global numbers moved too
                self._bump((None, component_id))
        logger.debug(
            "Requirement cache invalidated",
            extra={"order_id": order_id, "component_ids": component_ids},
        )

    def invalidate_components(self, component_ids: Iterable[int]) -> None:
        """Mark components as changed for every order (stock moved)"""
        with self._lock:
            for component_id in component_ids:
                self._bump((None, component_id))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._generations.clear()

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def _dependency_keys(self, order_id: int, component_ids: Iterable[int]) -> Iterable[Key]:
        yield (order_id, None)
        for component_id in component_ids:
            yield (order_id, component_id)
            yield (None, component_id)

    def get(self, view: Hashable, order_id: int) -> Optional[Any]:
        """Cached value, or None if missing or stale"""
        with self._lock:
            entry = self._entries.get((view, order_id))
            if entry is None:
                return None
            for key, generation in entry.generations.items():
                if self._generations.get(key, 0) != generation:
                    del self._entries[(view, order_id)]
                    return None
            return entry.value

    def put(self, view: Hashable, order_id: int, value: Any, component_ids: Iterable[int]) -> None:
        with self._lock:
            generations = {
                key: self._generations.get(key, 0)
                for key in self._dependency_keys(order_id, component_ids)
            }
            self._entries[(view, order_id)] = _Entry(value=value, generations=generations)

    def get_or_compute(
        self,
        view: Hashable,
        order_id: int,
        compute: Callable[[], Any],
        component_ids_of: Callable[[Any], Iterable[int]],
    ) -> Any:
        """
        Return the cached view or compute and cache it.

        Generations are read before computing, so a mutation that lands
        while computing leaves the stored entry already stale.
        """
        cached = self.get(view, order_id)
        if cached is not None:
            return cached
        with self._lock:
            before = dict(self._generations)
        value = compute()
        component_ids = list(component_ids_of(value))
        generations = {
            key: before.get(key, 0)
            for key in self._dependency_keys(order_id, component_ids)
        }
        with self._lock:
            self._entries[(view, order_id)] = _Entry(value=value, generations=generations)
        return value


def get_requirement_cache() -> RequirementCache:
    """
    FastAPI dependency: one cache per request.

    FastAPI resolves a dependency once per request, so every service of a
    request shares this cache. Orders, BOMs and supplier orders are also
    written outside this engine, so nothing is kept across requests.
    """
    return RequirementCache()

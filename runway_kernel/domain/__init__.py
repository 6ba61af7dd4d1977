"""Pure domain helpers for the runway kernel."""

from runway_kernel.domain.category_map import CategoryMap, normalize_category
from runway_kernel.domain.clock import Clock, DeterministicClock, SystemClock

__all__ = [
    "CategoryMap",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "normalize_category",
]

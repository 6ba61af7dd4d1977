"""
runway_config -- runtime configuration for the runway ledger.

Responsibility:
    The one place that reads configuration: the database URL from the
    environment and the versioned category map from YAML.  The kernel
    receives the results (a URL string, a ``CategoryMap``) and never reads
    files or environment variables itself.

Architecture position:
    Sits above ``runway_kernel``.  Kernel code reaches this package only
    through ``get_active_category_map()``.

Audit relevance:
    Every load emits a ``CATEGORY_MAP_TRACE`` log entry with the map
    version and checksum; posting logs carry the same version.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path

from runway_config.loader import DEFAULT_CATEGORY_MAP_PATH, load_category_map_file
from runway_config.validator import (
    CategoryMapValidationResult,
    assert_valid,
    validate_category_map,
)
from runway_kernel.domain.category_map import CategoryMap

_logger = logging.getLogger("runway_kernel.config")

DATABASE_URL_ENV = "RUNWAY_DATABASE_URL"
DEFAULT_DATABASE_URL = "sqlite:///runway.db"

_cache: dict[Path, CategoryMap] = {}
_cache_lock = threading.Lock()


def database_url() -> str:
    """Database URL from RUNWAY_DATABASE_URL, or a local SQLite file."""
    return os.environ.get(DATABASE_URL_ENV) or DEFAULT_DATABASE_URL


def load_category_map(path: Path | None = None) -> CategoryMap:
    """
    Load, validate and return a category map (uncached).

    Raises:
        CategoryMapError: The map fails parsing or validation.
        FileNotFoundError: No file at ``path``.
    """
    path = Path(path) if path is not None else DEFAULT_CATEGORY_MAP_PATH
    category_map = load_category_map_file(path)
    result = assert_valid(category_map)
    for warning in result.warnings:
        _logger.warning(
            "category_map_warning",
            extra={"category_map_version": category_map.version, "detail": warning},
        )
    _logger.info(
        "CATEGORY_MAP_TRACE",
        extra={
            "trace_type": "CATEGORY_MAP_TRACE",
            "category_map_version": category_map.version,
            "checksum": category_map.checksum,
            "category_count": len(category_map.categories),
            "source": str(path),
        },
    )
    return category_map


def get_active_category_map(path: Path | None = None) -> CategoryMap:
    """The validated category map, loaded once per path per process."""
    key = Path(path) if path is not None else DEFAULT_CATEGORY_MAP_PATH
    with _cache_lock:
        if key not in _cache:
            _cache[key] = load_category_map(key)
        return _cache[key]


def clear_category_map_cache() -> None:
    """Forget loaded maps. FOR TESTING ONLY."""
    with _cache_lock:
        _cache.clear()


__all__ = [
    "CategoryMapValidationResult",
    "DATABASE_URL_ENV",
    "DEFAULT_DATABASE_URL",
    "clear_category_map_cache",
    "database_url",
    "get_active_category_map",
    "load_category_map",
    "validate_category_map",
]

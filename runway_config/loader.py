"""
Category map loader (``runway_config.loader``).

Responsibility
--------------
Reads the category map YAML and parses it into the kernel's frozen
``CategoryMap``.  Parsing only: semantic checks live in
``runway_config.validator``.

Failure modes
-------------
* Missing file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing keys or duplicate category names  -> ``CategoryMapError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from runway_kernel.domain.category_map import CategoryMap, normalize_category
from runway_kernel.exceptions import CategoryMapError

DEFAULT_CATEGORY_MAP_PATH = Path(__file__).parent / "sets" / "category_map.yaml"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load one YAML file; an empty file gives an empty dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _code(data: dict[str, Any], *keys: str, version: str) -> str:
    value: Any = data
    for key in keys:
        if not isinstance(value, dict) or key not in value:
            raise CategoryMapError(version, [f"missing key {'.'.join(keys)}"])
        value = value[key]
    if value is None or str(value).strip() == "":
        raise CategoryMapError(version, [f"empty value for {'.'.join(keys)}"])
    return str(value).strip()


def parse_category_map(data: dict[str, Any], checksum: str = "") -> CategoryMap:
    """
    Build a CategoryMap from parsed YAML.

    Raises:
        CategoryMapError: Missing keys, empty codes or two names that
            collide after case folding.
    """
    version = str(data.get("version") or "").strip()
    if not version:
        raise CategoryMapError("<unversioned>", ["missing key version"])

    raw_categories = data.get("categories") or {}
    if not isinstance(raw_categories, dict):
        raise CategoryMapError(version, ["categories must be a mapping"])

    categories: dict[str, str] = {}
    seen: dict[str, str] = {}
    problems: list[str] = []
    for name, code in raw_categories.items():
        key = normalize_category(str(name))
        if not key:
            problems.append("blank category name")
            continue
        if key in seen:
            problems.append(f"category {name!r} duplicates {seen[key]!r}")
            continue
        if code is None or str(code).strip() == "":
            problems.append(f"category {name!r} has no account code")
            continue
        seen[key] = str(name)
        categories[str(name)] = str(code).strip()
    if problems:
        raise CategoryMapError(version, problems)

    return CategoryMap(
        version=version,
        categories=categories,
        clearing_account=_code(data, "clearing_account", version=version),
        fallback_outflow=_code(data, "fallback", "outflow", version=version),
        fallback_inflow=_code(data, "fallback", "inflow", version=version),
        gst_input=_code(data, "gst", "input", version=version),
        gst_output_cgst=_code(data, "gst", "output_cgst", version=version),
        gst_output_sgst=_code(data, "gst", "output_sgst", version=version),
        gst_output_igst=_code(data, "gst", "output_igst", version=version),
        receivable_account=_code(data, "receivable_account", version=version),
        revenue_account=_code(data, "revenue_account", version=version),
        checksum=checksum,
    )


def load_category_map_file(path: Path | None = None) -> CategoryMap:
    """Load and parse (but not validate) a category map file."""
    data = load_yaml_file(path or DEFAULT_CATEGORY_MAP_PATH)
    return parse_category_map(data, checksum=compute_checksum(data))

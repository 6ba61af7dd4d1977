"""Database layer - engine, base classes, money types and append-only rules."""

from runway_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from runway_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    read_scope,
    session_scope,
)
from runway_kernel.db.types import MinorUnits, from_minor, round_money, to_minor

__all__ = [
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "read_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "MinorUnits",
    "from_minor",
    "round_money",
    "to_minor",
]

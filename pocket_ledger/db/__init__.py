"""Database layer - engine, base classes, and column types."""

from pocket_ledger.db.base import UUID, Base, TrackedBase, UUIDString
from pocket_ledger.db.engine import (
    build_engine,
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    session_scope,
)
from pocket_ledger.db.types import Money, ShortText, round_money, to_money

__all__ = [
    "build_engine",
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "drop_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "Money",
    "ShortText",
    "round_money",
    "to_money",
]

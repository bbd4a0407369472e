"""Collaboration request persistence package.

Provides SQLite-backed storage with compare-and-swap status transitions and
serialization helpers for domain objects.
"""

from collab.store.schema import init_collab_tables
from collab.store.serializers import (
    format_ts,
    parse_ts,
    row_to_deal,
    row_to_request,
)
from collab.store.store import MUTABLE_COLUMNS, SqliteCollabStore, StoreTransaction

__all__ = [
    "MUTABLE_COLUMNS",
    "SqliteCollabStore",
    "StoreTransaction",
    "format_ts",
    "init_collab_tables",
    "parse_ts",
    "row_to_deal",
    "row_to_request",
]

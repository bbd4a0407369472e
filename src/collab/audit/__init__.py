"""Append-only action log: models, storage, logger, and query CLI."""

from collab.audit.cli import build_parser
from collab.audit.logger import ActionLogger
from collab.audit.models import ActionLogEntry, ActionLogEvent
from collab.audit.store import (
    close_db,
    init_action_log_table,
    insert_action_log,
    open_db,
    query_action_log,
)

__all__ = [
    "ActionLogEntry",
    "ActionLogEvent",
    "ActionLogger",
    "build_parser",
    "close_db",
    "init_action_log_table",
    "insert_action_log",
    "open_db",
    "query_action_log",
]

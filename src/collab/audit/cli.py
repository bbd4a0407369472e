"""CLI query interface for the collaboration action log.

Provides an argparse-based command-line tool for querying action log
entries by request, deal, event, date range, and a shorthand ``--last``
duration.  Output formats: table (default) or JSON.

Usage::

    collab-audit --request req-123 --last 7d
    collab-audit --event notification_failed --format json
"""

from __future__ import annotations

import argparse
import json
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from collab.audit.models import ActionLogEvent
from collab.audit.store import close_db, open_db, query_action_log


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for action log queries.

    Returns:
        A configured :class:`argparse.ArgumentParser`.
    """
    parser = argparse.ArgumentParser(description="Query the collaboration action log")
    filters = parser.add_argument_group("filters")
    output = parser.add_argument_group("output")

    filters.add_argument(
        "--request",
        type=str,
        help="Filter by collaboration request id",
    )
    filters.add_argument(
        "--deal",
        type=str,
        help="Filter by deal id",
    )
    filters.add_argument(
        "--from-date",
        type=str,
        help="Start date (YYYY-MM-DD)",
    )
    filters.add_argument(
        "--to-date",
        type=str,
        help="End date (YYYY-MM-DD)",
    )
    filters.add_argument(
        "--event",
        type=str,
        choices=[e.value for e in ActionLogEvent],
        help="Filter by event",
    )
    filters.add_argument(
        "--last",
        type=str,
        help='Shorthand duration (e.g., "7d", "24h", "30d")',
    )
    output.add_argument(
        "--format",
        type=str,
        choices=["table", "json"],
        default="table",
        dest="output_format",
        help="Output format (default: table)",
    )
    output.add_argument(
        "--limit",
        type=int,
        default=50,
        help="Maximum results (default: 50)",
    )
    parser.add_argument(
        "--db",
        type=str,
        default="data/collab.db",
        help="Path to the service database (default: data/collab.db)",
    )

    return parser


def parse_last_duration(last: str, now: datetime | None = None) -> str:
    """Convert a shorthand duration to an ISO 8601 date string.

    Supported formats:
        - ``Nd`` -- N days ago (e.g., ``7d``)
        - ``Nh`` -- N hours ago (e.g., ``24h``)

    Args:
        last: Duration string like ``"7d"`` or ``"24h"``.
        now: Reference time; defaults to the current UTC time.

    Returns:
        ISO 8601 date-time string for the computed past time.

    Raises:
        ValueError: If the format is not recognized.
    """
    if not last or len(last) < 2:
        msg = f"Unrecognized duration format: {last!r}"
        raise ValueError(msg)

    unit = last[-1]
    try:
        value = int(last[:-1])
    except ValueError:
        msg = f"Unrecognized duration format: {last!r}"
        raise ValueError(msg) from None

    now = now or datetime.now(tz=UTC)

    if unit == "d":
        result = now - timedelta(days=value)
    elif unit == "h":
        result = now - timedelta(hours=value)
    else:
        msg = f"Unrecognized duration format: {last!r}. Use 'd' for days or 'h' for hours."
        raise ValueError(msg)

    return result.strftime("%Y-%m-%dT%H:%M:%SZ")


def format_table(results: list[dict[str, Any]]) -> str:
    """Format action log results as a human-readable table.

    Columns: Created, Event, Request, Deal, Detail.  Long fields are
    truncated to fit a reasonable terminal width.

    Args:
        results: List of entry dicts from ``query_action_log``.

    Returns:
        Formatted table string with header row.
    """
    if not results:
        return "No results found."

    headers = ["Created", "Event", "Request", "Deal", "Detail"]
    widths = [20, 22, 20, 20, 40]

    def truncate(value: str | None, width: int) -> str:
        s = str(value or "")
        if len(s) > width:
            return s[: width - 3] + "..."
        return s

    lines: list[str] = []

    header_line = "  ".join(h.ljust(w) for h, w in zip(headers, widths, strict=True))
    lines.append(header_line)
    lines.append("-" * len(header_line))

    for row in results:
        metadata = row.get("metadata") or {}
        detail = ", ".join(f"{k}={v}" for k, v in sorted(metadata.items()))
        cells = [
            truncate(row.get("created_at"), widths[0]),
            truncate(row.get("event"), widths[1]),
            truncate(row.get("request_id"), widths[2]),
            truncate(row.get("deal_id"), widths[3]),
            truncate(detail, widths[4]),
        ]
        lines.append("  ".join(c.ljust(w) for c, w in zip(cells, widths, strict=True)))

    return "\n".join(lines)


def format_json(results: list[dict[str, Any]]) -> str:
    """Format action log results as a JSON string.

    Args:
        results: List of entry dicts from ``query_action_log``.

    Returns:
        Pretty-printed JSON string.
    """
    return json.dumps(results, indent=2)


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, query the action log, and print results.

    Returns:
        Process exit code: 0 on success, 1 if the database does not exist,
        2 for an unusable ``--last`` value.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    from_date = args.from_date
    if args.last:
        try:
            from_date = parse_last_duration(args.last)
        except ValueError as exc:
            parser.error(str(exc))

    db_path = Path(args.db)
    if not db_path.exists():
        print(f"No database at {db_path}", file=sys.stderr)
        return 1

    conn = open_db(db_path)
    try:
        results = query_action_log(
            conn,
            request_id=args.request,
            deal_id=args.deal,
            event=args.event,
            from_date=from_date,
            to_date=args.to_date,
            limit=args.limit,
        )
    finally:
        close_db(conn)

    print(format_json(results) if args.output_format == "json" else format_table(results))
    return 0


if __name__ == "__main__":
    sys.exit(main())

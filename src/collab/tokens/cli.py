"""Operator CLI for minting and inspecting brand action links.

Used to re-send a link to a brand without going through the submission
flow, or to check why a link a brand forwarded is being rejected.

Usage::

    collab-token mint req-123 accept --ttl-days 7
    collab-token inspect "v1.req-123.accept.1767225600000.Zm9v..."
"""

from __future__ import annotations

import argparse
import json
import sys
from datetime import timedelta

from collab.config import get_settings
from collab.domain.errors import InvalidActionKindError, InvalidTokenError
from collab.domain.types import ActionKind
from collab.tokens.codec import ActionTokenCodec
from collab.tokens.links import ActionLinkBuilder


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the token CLI.

    Returns:
        A configured :class:`argparse.ArgumentParser`.
    """
    parser = argparse.ArgumentParser(description="Mint or inspect action tokens")
    sub = parser.add_subparsers(dest="command", required=True)

    mint = sub.add_parser("mint", help="Mint an action link for a request")
    mint.add_argument("request_id", type=str)
    mint.add_argument("action", type=str, choices=[a.value for a in ActionKind])
    mint.add_argument(
        "--ttl-days",
        type=int,
        default=None,
        help="Link validity in days (default: ACTION_TOKEN_TTL_DAYS)",
    )

    inspect = sub.add_parser("inspect", help="Verify a token and print its content")
    inspect.add_argument("token", type=str)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse arguments and run the requested command.

    Returns:
        Process exit code: 0 on success, 1 if the token was rejected.
    """
    args = build_parser().parse_args(argv)
    settings = get_settings()
    codec = ActionTokenCodec(settings.action_token_secret)

    if args.command == "mint":
        ttl_days = args.ttl_days if args.ttl_days is not None else settings.action_token_ttl_days
        builder = ActionLinkBuilder(codec, settings.public_base_url, timedelta(days=ttl_days))
        print(builder.action_url(args.request_id, ActionKind(args.action)))
        return 0

    try:
        verified = codec.verify(args.token)
    except (InvalidTokenError, InvalidActionKindError) as exc:
        print(json.dumps({"valid": False, "reason": type(exc).__name__}))
        return 1
    print(json.dumps({"valid": True, **verified.model_dump(mode="json")}))
    return 0


if __name__ == "__main__":
    sys.exit(main())

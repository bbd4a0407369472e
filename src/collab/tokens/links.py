"""Build brand-facing action URLs carrying freshly minted tokens.

Tokens are minted on demand each time a message containing action links is
sent; nothing about a link is stored.
"""

from __future__ import annotations

from datetime import timedelta
from urllib.parse import urlencode

from collab.domain.types import ActionKind
from collab.tokens.codec import DEFAULT_TTL, ActionTokenCodec

ACTION_PAGE_PATH = "/collab-action"


class ActionLinkBuilder:
    """Mint accept/decline links for a collaboration request.

    Args:
        codec: The token codec holding the signing secret.
        base_url: Public origin of the brand-facing action page.
        ttl: Validity window of each minted link.
    """

    def __init__(
        self,
        codec: ActionTokenCodec,
        base_url: str,
        ttl: timedelta = DEFAULT_TTL,
    ) -> None:
        self._codec = codec
        self._base_url = base_url.rstrip("/")
        self._ttl = ttl

    def action_url(self, request_id: str, action: ActionKind) -> str:
        """Return the link that performs *action* on *request_id*."""
        token = self._codec.mint(request_id, action, self._ttl)
        return f"{self._base_url}{ACTION_PAGE_PATH}?{urlencode({'token': token})}"

    def links_for(self, request_id: str) -> dict[str, str]:
        """Return both action links for *request_id*, keyed for templates.

        Returns:
            A dict with ``accept_url`` and ``decline_url`` keys.
        """
        return {
            "accept_url": self.action_url(request_id, ActionKind.ACCEPT),
            "decline_url": self.action_url(request_id, ActionKind.DECLINE),
        }

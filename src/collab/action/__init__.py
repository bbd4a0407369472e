"""Public boundary for brand action links: token redemption and preview."""

from collab.action.endpoint import (
    HTTP_STATUS,
    INVALID_LINK_MESSAGE,
    ActionEndpoint,
    ActionResponse,
    RequestPreview,
)
from collab.action.routes import router

__all__ = [
    "HTTP_STATUS",
    "INVALID_LINK_MESSAGE",
    "ActionEndpoint",
    "ActionResponse",
    "RequestPreview",
    "router",
]

"""FastAPI routes for brand action links.

Three routes, all unauthenticated:

- ``GET /collab-action/details`` -- read-only preview for the confirmation
  screen.
- ``POST /collab-action/redeem`` -- redeem a token passed in the JSON body
  or the ``token`` query parameter.
- ``POST /collab-action/redeem/{token}`` -- redeem a token passed in the path.

Redemption runs in a worker thread and is shielded from cancellation: once
a token has been accepted for processing, a client that disconnects does
not abort the transition half way.
"""

from __future__ import annotations

import asyncio
from typing import Any
from urllib.parse import urlencode

import structlog
from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response
from pydantic import BaseModel, Field

from collab.action.endpoint import ActionEndpoint, ActionResponse

logger = structlog.get_logger()

router = APIRouter(prefix="/collab-action", tags=["collab-action"])

MAX_REASON_LENGTH = 1000


class RedeemBody(BaseModel):
    """Optional JSON body of a redeem call."""

    token: str | None = None
    reason: str | None = Field(default=None, max_length=MAX_REASON_LENGTH)


def _endpoint(request: Request) -> ActionEndpoint:
    services: dict[str, Any] = request.app.state.services
    endpoint: ActionEndpoint = services["action_endpoint"]
    return endpoint


def _prefers_html(request: Request) -> bool:
    accept = request.headers.get("accept", "")
    return "text/html" in accept


def _render(request: Request, response: ActionResponse) -> Response:
    """Return JSON, or a 303 to the result page for browsers when one is configured."""
    result_url = request.app.state.settings.action_result_url
    if result_url and _prefers_html(request):
        query = urlencode({"outcome": response.outcome.value})
        return RedirectResponse(f"{result_url}?{query}", status_code=303)
    return JSONResponse(
        content=response.model_dump(mode="json", exclude_none=True),
        status_code=response.http_status,
    )


async def _redeem(request: Request, token: str, reason: str | None) -> Response:
    endpoint = _endpoint(request)
    response = await asyncio.shield(asyncio.to_thread(endpoint.redeem, token, reason=reason))
    return _render(request, response)


@router.get("/details")
async def action_details(request: Request, token: str = Query(default="")) -> JSONResponse:
    """Describe the request behind *token* without changing it."""
    preview = await asyncio.to_thread(_endpoint(request).preview, token)
    return JSONResponse(
        content=preview.model_dump(mode="json", exclude_none=True),
        status_code=preview.http_status,
    )


@router.post("/redeem")
async def redeem_action(
    request: Request,
    payload: RedeemBody | None = None,
    token: str | None = Query(default=None),
    reason: str | None = Query(default=None, max_length=MAX_REASON_LENGTH),
) -> Response:
    """Redeem a token taken from the body or the query string.

    A token in the body wins over one in the query string.
    """
    body_token = payload.token if payload is not None else None
    body_reason = payload.reason if payload is not None else None
    return await _redeem(request, body_token or token or "", body_reason or reason)


@router.post("/redeem/{token}")
async def redeem_action_path(
    request: Request,
    token: str,
    payload: RedeemBody | None = None,
) -> Response:
    """Redeem a token carried in the URL path."""
    reason = payload.reason if payload is not None else None
    return await _redeem(request, token, reason)

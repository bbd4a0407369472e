"""Tests for the /collab-action HTTP routes."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from collab.action.endpoint import INVALID_LINK_MESSAGE, ActionEndpoint
from collab.action.routes import MAX_REASON_LENGTH, router
from collab.domain.types import ActionKind, RequestStatus

RESULT_PAGE = "https://app.example.com/collab-action/result"


def _make_app(endpoint: ActionEndpoint, action_result_url: str = "") -> FastAPI:
    """Create a minimal FastAPI app with the action routes."""
    app = FastAPI()
    app.state.services = {"action_endpoint": endpoint}
    app.state.settings = SimpleNamespace(action_result_url=action_result_url)
    app.include_router(router)
    return app


@pytest.fixture
def endpoint(codec, machine, action_logger) -> ActionEndpoint:
    return ActionEndpoint(codec, machine, action_logger)


@pytest.fixture
def client(endpoint) -> TestClient:
    return TestClient(_make_app(endpoint))


# ---------------------------------------------------------------------------
# POST /collab-action/redeem
# ---------------------------------------------------------------------------

class TestRedeemRoute:
    def test_token_in_body(self, client, codec, pending_request):
        token = codec.mint(pending_request.id, ActionKind.ACCEPT)

        resp = client.post("/collab-action/redeem", json={"token": token})

        assert resp.status_code == 200
        body = resp.json()
        assert body["outcome"] == "applied"
        assert body["status"] == "accepted"
        assert body["request_id"] == pending_request.id
        assert body["deal_id"]

    def test_token_in_query(self, client, codec, pending_request):
        token = codec.mint(pending_request.id, ActionKind.DECLINE)

        resp = client.post("/collab-action/redeem", params={"token": token, "reason": "Off-brand"})

        assert resp.status_code == 200
        assert resp.json()["status"] == "declined"

    def test_decline_reason_in_body(self, client, codec, pending_request, store):
        token = codec.mint(pending_request.id, ActionKind.DECLINE)

        client.post("/collab-action/redeem", json={"token": token, "reason": "Timeline too short"})

        stored = store.get_collaboration_request(pending_request.id)
        assert stored.decline_reason == "Timeline too short"

    def test_missing_token_is_invalid(self, client):
        resp = client.post("/collab-action/redeem")

        assert resp.status_code == 401
        assert resp.json() == {"outcome": "invalid", "message": INVALID_LINK_MESSAGE}

    def test_forged_token_is_invalid(self, client, codec, pending_request):
        token = codec.mint(pending_request.id, ActionKind.ACCEPT)

        resp = client.post("/collab-action/redeem", json={"token": token[:-3] + "xyz"})

        assert resp.status_code == 401
        assert "request_id" not in resp.json()

    def test_reason_too_long_rejected(self, client, codec, pending_request, store):
        token = codec.mint(pending_request.id, ActionKind.DECLINE)

        resp = client.post(
            "/collab-action/redeem",
            json={"token": token, "reason": "x" * (MAX_REASON_LENGTH + 1)},
        )

        assert resp.status_code == 422
        assert store.get_collaboration_request(pending_request.id).is_pending

    def test_repeat_and_conflict_statuses(self, client, codec, pending_request):
        accept = codec.mint(pending_request.id, ActionKind.ACCEPT)
        decline = codec.mint(pending_request.id, ActionKind.DECLINE)

        first = client.post("/collab-action/redeem", json={"token": accept})
        again = client.post("/collab-action/redeem", json={"token": accept})
        other = client.post("/collab-action/redeem", json={"token": decline})

        assert first.status_code == 200
        assert again.status_code == 200
        assert again.json()["outcome"] == "already-applied-same"
        assert other.status_code == 409
        assert other.json()["outcome"] == "conflict"

    def test_unknown_request_is_404(self, client, codec):
        resp = client.post(
            "/collab-action/redeem", json={"token": codec.mint("req-missing", ActionKind.ACCEPT)}
        )

        assert resp.status_code == 404
        assert resp.json()["outcome"] == "not-found"


# ---------------------------------------------------------------------------
# POST /collab-action/redeem/{token}
# ---------------------------------------------------------------------------

class TestRedeemPathRoute:
    def test_token_in_path(self, client, codec, pending_request):
        token = codec.mint(pending_request.id, ActionKind.ACCEPT)

        resp = client.post(f"/collab-action/redeem/{token}")

        assert resp.status_code == 200
        assert resp.json()["status"] == RequestStatus.ACCEPTED.value

    def test_garbage_path_token(self, client):
        resp = client.post("/collab-action/redeem/not-a-token")

        assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Browser redirect
# ---------------------------------------------------------------------------

class TestResultPageRedirect:
    def test_browser_redirected_to_result_page(self, endpoint, codec, pending_request):
        client = TestClient(_make_app(endpoint, action_result_url=RESULT_PAGE))
        token = codec.mint(pending_request.id, ActionKind.ACCEPT)

        resp = client.post(
            f"/collab-action/redeem/{token}",
            headers={"Accept": "text/html,application/xhtml+xml"},
            follow_redirects=False,
        )

        assert resp.status_code == 303
        assert resp.headers["location"] == f"{RESULT_PAGE}?outcome=applied"

    def test_api_client_still_gets_json(self, endpoint, codec, pending_request):
        client = TestClient(_make_app(endpoint, action_result_url=RESULT_PAGE))
        token = codec.mint(pending_request.id, ActionKind.ACCEPT)

        resp = client.post(f"/collab-action/redeem/{token}", headers={"Accept": "application/json"})

        assert resp.status_code == 200
        assert resp.json()["outcome"] == "applied"

    def test_no_result_page_configured(self, client, codec, pending_request):
        token = codec.mint(pending_request.id, ActionKind.ACCEPT)

        resp = client.post(
            f"/collab-action/redeem/{token}",
            headers={"Accept": "text/html"},
            follow_redirects=False,
        )

        assert resp.status_code == 200


# ---------------------------------------------------------------------------
# GET /collab-action/details
# ---------------------------------------------------------------------------

class TestDetailsRoute:
    def test_pending_request(self, client, codec, pending_request, store):
        token = codec.mint(pending_request.id, ActionKind.ACCEPT)

        resp = client.get("/collab-action/details", params={"token": token})

        assert resp.status_code == 200
        body = resp.json()
        assert body["actionable"] is True
        assert body["action"] == "accept"
        assert body["brand_name"] == "Acme Snacks"
        assert "outcome" not in body
        assert store.get_collaboration_request(pending_request.id).is_pending

    def test_invalid_token(self, client):
        resp = client.get("/collab-action/details", params={"token": "v1.a.b"})

        assert resp.status_code == 401
        assert resp.json() == {
            "message": INVALID_LINK_MESSAGE,
            "outcome": "invalid",
            "actionable": False,
            "deliverables": [],
        }

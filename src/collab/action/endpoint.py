"""Public, unauthenticated boundary for brand action links.

``ActionEndpoint`` verifies the token, hands the action it carries to the
state machine, and maps whatever comes back onto a response.  It never
writes to the store itself and never trusts an action supplied by the
client: the only action it applies is the one recovered from a valid
signature.

Every token failure (bad shape, forged signature, expired) produces the
same response so a caller cannot tell which check rejected the link.
"""

from __future__ import annotations

from decimal import Decimal

import structlog
from pydantic import BaseModel, Field

from collab.audit.logger import ActionLogger
from collab.domain.errors import (
    InvalidActionKindError,
    InvalidTokenError,
    RequestNotFoundError,
    TransientError,
)
from collab.domain.types import ActionKind, RequestStatus
from collab.observability.metrics import REDEMPTIONS
from collab.state_machine.machine import ActionOutcome, ActionResult, DealStateMachine
from collab.tokens.codec import ActionTokenCodec, VerifiedAction

logger = structlog.get_logger()

INVALID_LINK_MESSAGE = "This link is invalid or has expired."

OUTCOME_MESSAGES: dict[ActionOutcome, str] = {
    ActionOutcome.APPLIED: "Thanks, your response has been recorded.",
    ActionOutcome.ALREADY_APPLIED_SAME: "Your response was already recorded.",
    ActionOutcome.CONFLICT: "This collaboration request has already been handled.",
    ActionOutcome.INVALID: INVALID_LINK_MESSAGE,
    ActionOutcome.NOT_FOUND: "This collaboration request no longer exists.",
    ActionOutcome.RETRY_LATER: (
        "We could not record your response right now. Please try again shortly."
    ),
}

HTTP_STATUS: dict[ActionOutcome, int] = {
    ActionOutcome.APPLIED: 200,
    ActionOutcome.ALREADY_APPLIED_SAME: 200,
    ActionOutcome.CONFLICT: 409,
    ActionOutcome.INVALID: 401,
    ActionOutcome.NOT_FOUND: 404,
    ActionOutcome.RETRY_LATER: 503,
}


class ActionResponse(BaseModel):
    """Body returned to whoever followed an action link."""

    outcome: ActionOutcome
    message: str
    request_id: str | None = None
    status: RequestStatus | None = None
    deal_id: str | None = None

    @property
    def http_status(self) -> int:
        """Return the HTTP status code for this outcome."""
        return HTTP_STATUS[self.outcome]

    @classmethod
    def from_result(cls, result: ActionResult) -> ActionResponse:
        """Build the public response for a state machine result.

        Identifiers are only echoed back for outcomes reached with a valid
        token.
        """
        return cls(
            outcome=result.outcome,
            message=OUTCOME_MESSAGES[result.outcome],
            request_id=result.request_id,
            status=result.status,
            deal_id=result.deal_id,
        )


class RequestPreview(BaseModel):
    """Read-only summary shown on the confirmation screen before redeeming.

    ``outcome`` is only set when the request could not be shown.
    """

    message: str
    outcome: ActionOutcome | None = None
    request_id: str | None = None
    action: ActionKind | None = None
    status: RequestStatus | None = None
    actionable: bool = False
    brand_name: str | None = None
    collab_type: str | None = None
    amount: Decimal | None = None
    barter_value: Decimal | None = None
    barter_description: str | None = None
    deliverables: list[str] = Field(default_factory=list)
    deadline: str | None = None

    @property
    def http_status(self) -> int:
        """Return the HTTP status code for this preview."""
        return 200 if self.outcome is None else HTTP_STATUS[self.outcome]


class ActionEndpoint:
    """Verify action tokens and apply them through the state machine.

    Args:
        codec: Verifies tokens with the process-wide secret.
        machine: Applies verified actions.
        action_logger: Receives integrity errors.
    """

    def __init__(
        self,
        codec: ActionTokenCodec,
        machine: DealStateMachine,
        action_logger: ActionLogger,
    ) -> None:
        self._codec = codec
        self._machine = machine
        self._audit = action_logger

    def _verify(self, token: str) -> VerifiedAction | None:
        try:
            return self._codec.verify(token)
        except InvalidTokenError as exc:
            logger.info("action_token_rejected", reason=type(exc).__name__)
        except InvalidActionKindError as exc:
            # A correctly signed token with an unknown action: the secret
            # signed something this service never mints.
            logger.error("action_token_integrity_error", action=str(exc.action))
            self._audit.log_integrity_error(
                str(exc), context="signed token carries unknown action"
            )
        return None

    def redeem(self, token: str, *, reason: str | None = None) -> ActionResponse:
        """Apply the action carried by *token*.

        Args:
            token: The token taken from the link.
            reason: Optional free-text reason; kept only for declines.

        Returns:
            The response for the caller.  Never raises.
        """
        verified = self._verify(token)
        if verified is None:
            result = ActionResult(outcome=ActionOutcome.INVALID)
        else:
            result = self._apply(verified, reason)

        REDEMPTIONS.labels(outcome=result.outcome.value).inc()
        if result.outcome == ActionOutcome.INVALID:
            return ActionResponse(outcome=ActionOutcome.INVALID, message=INVALID_LINK_MESSAGE)
        return ActionResponse.from_result(result)

    def _apply(self, verified: VerifiedAction, reason: str | None) -> ActionResult:
        request_id = verified.request_id
        if verified.action != ActionKind.DECLINE:
            reason = None
        try:
            result = self._machine.apply_action(request_id, verified.action, reason=reason)
        except InvalidActionKindError as exc:
            logger.error(
                "action_kind_integrity_error", request_id=request_id, action=str(exc.action)
            )
            self._audit.log_integrity_error(str(exc), request_id=request_id, context="apply_action")
            return ActionResult(outcome=ActionOutcome.INVALID)
        except RequestNotFoundError:
            logger.warning("action_request_not_found", request_id=request_id)
            return ActionResult(outcome=ActionOutcome.NOT_FOUND, request_id=request_id)
        except TransientError:
            logger.warning("action_store_unavailable", request_id=request_id)
            return ActionResult(outcome=ActionOutcome.RETRY_LATER, request_id=request_id)
        except Exception:
            logger.exception("action_redeem_failed", request_id=request_id)
            return ActionResult(outcome=ActionOutcome.RETRY_LATER, request_id=request_id)

        logger.info(
            "action_redeemed",
            request_id=request_id,
            action=verified.action.value,
            outcome=result.outcome.value,
        )
        return result

    def preview(self, token: str) -> RequestPreview:
        """Describe the request a token refers to without changing it.

        Returns:
            A preview with ``actionable`` set only while the request is
            pending.  Never raises.
        """
        verified = self._verify(token)
        if verified is None:
            return RequestPreview(outcome=ActionOutcome.INVALID, message=INVALID_LINK_MESSAGE)

        request_id = verified.request_id
        try:
            request = self._machine.get_request(request_id)
        except RequestNotFoundError:
            return RequestPreview(
                outcome=ActionOutcome.NOT_FOUND,
                message=OUTCOME_MESSAGES[ActionOutcome.NOT_FOUND],
                request_id=request_id,
            )
        except TransientError:
            return RequestPreview(
                outcome=ActionOutcome.RETRY_LATER,
                message=OUTCOME_MESSAGES[ActionOutcome.RETRY_LATER],
                request_id=request_id,
            )

        terms = request.terms
        if request.is_pending:
            message = "Review the collaboration request below."
        else:
            message = f"This collaboration request has already been {request.status.value}."
        return RequestPreview(
            message=message,
            request_id=request_id,
            action=verified.action,
            status=request.status,
            actionable=request.is_pending,
            brand_name=request.brand_contact.name,
            collab_type=terms.collab_type.value,
            amount=terms.amount,
            barter_value=terms.barter_value,
            barter_description=terms.barter_description,
            deliverables=list(terms.deliverables),
            deadline=terms.deadline.isoformat() if terms.deadline else None,
        )

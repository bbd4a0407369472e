"""DealStateMachine: applies brand actions to collaboration requests.

Every transition is a compare-and-swap against the store, so the machine
itself holds no per-request state and any number of callers may drive the
same request concurrently.  Exactly one of them wins; the others observe
the committed status and resolve to ``already-applied-same`` or
``conflict``.

Side effects run only after the transition commits and never undo it:
notification and contract hand-off failures are written to the action log
for someone to follow up.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
from enum import StrEnum
from typing import Any

import structlog
from pydantic import BaseModel

from collab.audit.logger import ActionLogger
from collab.audit.models import ActionLogEvent
from collab.contracts.generator import ContractGenerator
from collab.domain.errors import ConflictError, InvalidActionKindError, RequestNotFoundError
from collab.domain.models import BrandDeal, CollaborationRequest, DealTerms, utc_now
from collab.domain.types import ActionKind, DealType, RequestStatus
from collab.notify.client import Notifier
from collab.notify.models import Channel, DeliveryResult, Notification, NotificationTemplate
from collab.observability.metrics import DEALS_CREATED, NOTIFICATION_FAILURES
from collab.resilience.retry import retry_transient_once
from collab.state_machine.transitions import ACTION_EVENTS, RequestEvent, next_status
from collab.store.store import Mutation, SqliteCollabStore, StoreTransaction
from collab.tokens.links import ActionLinkBuilder

logger = structlog.get_logger()


class ActionOutcome(StrEnum):
    """Result categories reported to whoever redeemed an action."""

    APPLIED = "applied"
    ALREADY_APPLIED_SAME = "already-applied-same"
    CONFLICT = "conflict"
    INVALID = "invalid"
    NOT_FOUND = "not-found"
    RETRY_LATER = "retry-later"


class ActionResult(BaseModel):
    """What happened when an action was applied to a request."""

    outcome: ActionOutcome
    request_id: str | None = None
    status: RequestStatus | None = None
    deal_id: str | None = None
    child_request_id: str | None = None


_AUDIT_EVENTS: dict[RequestStatus, ActionLogEvent] = {
    RequestStatus.ACCEPTED: ActionLogEvent.REQUEST_ACCEPTED,
    RequestStatus.DECLINED: ActionLogEvent.REQUEST_DECLINED,
    RequestStatus.COUNTERED: ActionLogEvent.REQUEST_COUNTERED,
    RequestStatus.EXPIRED: ActionLogEvent.REQUEST_EXPIRED,
}

_BRAND_TEMPLATES: dict[RequestStatus, NotificationTemplate] = {
    RequestStatus.ACCEPTED: NotificationTemplate.BRAND_REQUEST_ACCEPTED,
    RequestStatus.DECLINED: NotificationTemplate.BRAND_REQUEST_DECLINED,
}

_CREATOR_TEMPLATES: dict[RequestStatus, NotificationTemplate] = {
    RequestStatus.ACCEPTED: NotificationTemplate.CREATOR_REQUEST_ACCEPTED,
    RequestStatus.DECLINED: NotificationTemplate.CREATOR_REQUEST_DECLINED,
    RequestStatus.EXPIRED: NotificationTemplate.CREATOR_REQUEST_EXPIRED,
}


def creator_recipient(creator_id: str) -> str:
    """Return the push recipient address for a creator."""
    return f"creator:{creator_id}"


class DealStateMachine:
    """Drive collaboration requests through their lifecycle.

    Args:
        store: Durable storage providing compare-and-swap transitions.
        action_logger: Append-only audit log.
        notifier: Delivers brand and creator notifications.
        contract_generator: Receives paid deals for contract drafting.
        link_builder: Mints fresh action links for counter-offers.  Without
            one, counter-offer messages carry no links.
        now: Clock used for transition timestamps and the expiry cutoff.
    """

    def __init__(
        self,
        store: SqliteCollabStore,
        action_logger: ActionLogger,
        notifier: Notifier,
        contract_generator: ContractGenerator,
        link_builder: ActionLinkBuilder | None = None,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._audit = action_logger
        self._notifier = notifier
        self._contracts = contract_generator
        self._links = link_builder
        self._now = now

    # ------------------------------------------------------------------
    # Store access, retried once on TransientError
    # ------------------------------------------------------------------

    @retry_transient_once
    def _load(self, request_id: str) -> CollaborationRequest:
        return self._store.get_collaboration_request(request_id)

    @retry_transient_once
    def _transition(
        self,
        request_id: str,
        target: RequestStatus,
        mutate: Mutation | None = None,
    ) -> CollaborationRequest:
        return self._store.transition_collaboration_request(
            request_id, RequestStatus.PENDING, target, mutate=mutate, now=self._now()
        )

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def get_request(self, request_id: str) -> CollaborationRequest:
        """Return the current state of a request.

        Raises:
            RequestNotFoundError: If no request has this id.
            TransientError: If the store stays unavailable after one retry.
        """
        return self._load(request_id)

    def apply_action(
        self,
        request_id: str,
        action: ActionKind | str,
        *,
        reason: str | None = None,
    ) -> ActionResult:
        """Apply a brand's accept or decline to a pending request.

        Args:
            request_id: The request named in the verified token.
            action: The action named in the verified token.
            reason: Optional free-text reason stored with a decline.

        Returns:
            ``applied`` if this call moved the request, otherwise
            ``already-applied-same`` or ``conflict`` depending on the
            status it found.

        Raises:
            InvalidActionKindError: If *action* is not an ``ActionKind``.
            RequestNotFoundError: If no request has this id.
            TransientError: If the store stays unavailable after one retry.
        """
        try:
            kind = ActionKind(action)
        except ValueError:
            raise InvalidActionKindError(action) from None
        target = next_status(RequestStatus.PENDING, ACTION_EVENTS[kind])

        current = self._load(request_id)
        if not current.is_pending:
            return self._resolve(current, target)

        created: dict[str, BrandDeal] = {}
        now = self._now()

        def mutate(tx: StoreTransaction, request: CollaborationRequest) -> dict[str, Any] | None:
            if target == RequestStatus.ACCEPTED:
                deal = tx.create_deal(request, now)
                created["deal"] = deal
                return {"deal_id": deal.id}
            if reason:
                return {"decline_reason": reason}
            return None

        try:
            updated = self._transition(request_id, target, mutate)
        except ConflictError:
            return self._resolve(self._load(request_id), target)

        logger.info(
            "collab_request_transitioned",
            request_id=request_id,
            from_status=RequestStatus.PENDING.value,
            to_status=target.value,
            deal_id=updated.deal_id,
        )
        metadata = {"action": kind.value}
        if reason and target == RequestStatus.DECLINED:
            metadata["reason"] = reason
        self._audit.log_transition(
            _AUDIT_EVENTS[target],
            request_id,
            from_status=RequestStatus.PENDING.value,
            to_status=target.value,
            deal_id=updated.deal_id,
            metadata=metadata,
        )

        deal = created.get("deal")
        if deal is not None:
            DEALS_CREATED.inc()
        self._notify_parties(updated, deal)
        if deal is not None:
            self._hand_off_contract(updated, deal)

        return ActionResult(
            outcome=ActionOutcome.APPLIED,
            request_id=request_id,
            status=updated.status,
            deal_id=updated.deal_id,
        )

    def counter(self, request_id: str, terms: DealTerms) -> ActionResult:
        """Replace a pending request's terms with a new child request.

        The child is written in the same transaction that moves the parent
        to ``countered``, so a countered parent always has its child.  The
        brand is sent fresh accept/decline links for the child.

        Returns:
            ``applied`` with ``child_request_id`` set, or the resolution
            of a request that was no longer pending.

        Raises:
            RequestNotFoundError: If no request has this id.
            TransientError: If the store stays unavailable after one retry.
        """
        target = next_status(RequestStatus.PENDING, RequestEvent.COUNTER)
        current = self._load(request_id)
        if not current.is_pending:
            return self._resolve_counter(current, terms)

        children: dict[str, CollaborationRequest] = {}
        now = self._now()

        def mutate(tx: StoreTransaction, request: CollaborationRequest) -> dict[str, Any]:
            child = CollaborationRequest(
                creator_id=request.creator_id,
                brand_contact=request.brand_contact,
                terms=terms,
                supersedes=request.id,
                created_at=now,
                updated_at=now,
            )
            tx.insert_request(child)
            children["child"] = child
            return {"superseded_by": child.id}

        try:
            updated = self._transition(request_id, target, mutate)
        except ConflictError:
            return self._resolve_counter(self._load(request_id), terms)

        child = children["child"]
        logger.info(
            "collab_request_countered",
            request_id=request_id,
            child_request_id=child.id,
        )
        self._audit.log_transition(
            ActionLogEvent.REQUEST_COUNTERED,
            request_id,
            from_status=RequestStatus.PENDING.value,
            to_status=target.value,
            metadata={"child_request_id": child.id},
        )

        variables = self._variables(child)
        if self._links is not None:
            variables.update(self._links.links_for(child.id))
        else:
            logger.warning("counter_offer_sent_without_links", request_id=child.id)
        self._notify(
            request_id,
            Notification(
                template=NotificationTemplate.BRAND_REQUEST_COUNTERED,
                channel=Channel.EMAIL,
                recipient=child.brand_contact.email,
                variables=variables,
            ),
        )

        return ActionResult(
            outcome=ActionOutcome.APPLIED,
            request_id=request_id,
            status=updated.status,
            child_request_id=child.id,
        )

    def expire_stale(self, max_age: timedelta) -> list[str]:
        """Expire pending requests created more than *max_age* ago.

        Requests actioned while the sweep runs are skipped.

        Returns:
            Ids of the requests this call expired.
        """
        target = next_status(RequestStatus.PENDING, RequestEvent.EXPIRE)
        cutoff = self._now() - max_age
        expired: list[str] = []

        for request_id in self._store.list_stale_pending(cutoff):
            try:
                updated = self._transition(request_id, target)
            except (ConflictError, RequestNotFoundError):
                continue
            self._audit.log_transition(
                ActionLogEvent.REQUEST_EXPIRED,
                request_id,
                from_status=RequestStatus.PENDING.value,
                to_status=target.value,
            )
            self._notify(
                request_id,
                Notification(
                    template=_CREATOR_TEMPLATES[target],
                    channel=Channel.PUSH,
                    recipient=creator_recipient(updated.creator_id),
                    variables=self._variables(updated),
                ),
            )
            expired.append(request_id)

        if expired:
            logger.info("stale_requests_expired", count=len(expired))
        return expired

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _resolve(current: CollaborationRequest, target: RequestStatus) -> ActionResult:
        outcome = (
            ActionOutcome.ALREADY_APPLIED_SAME
            if current.status == target
            else ActionOutcome.CONFLICT
        )
        return ActionResult(
            outcome=outcome,
            request_id=current.id,
            status=current.status,
            deal_id=current.deal_id,
            child_request_id=current.superseded_by,
        )

    def _resolve_counter(self, current: CollaborationRequest, terms: DealTerms) -> ActionResult:
        """Resolve a counter against a request that is no longer pending.

        Repeating a counter is only ``already-applied-same`` when the child
        it produced carries the same terms.
        """
        result = self._resolve(current, RequestStatus.COUNTERED)
        if result.outcome != ActionOutcome.ALREADY_APPLIED_SAME or current.superseded_by is None:
            return result
        try:
            child = self._load(current.superseded_by)
        except RequestNotFoundError:
            return result.model_copy(update={"outcome": ActionOutcome.CONFLICT})
        if child.terms.model_dump() != terms.model_dump():
            return result.model_copy(update={"outcome": ActionOutcome.CONFLICT})
        return result

    @staticmethod
    def _variables(request: CollaborationRequest) -> dict[str, str]:
        variables = {
            "request_id": request.id,
            "brand_name": request.brand_contact.name,
            "creator_id": request.creator_id,
            "collab_type": request.terms.collab_type.value,
        }
        if request.deal_id is not None:
            variables["deal_id"] = request.deal_id
        if request.decline_reason:
            variables["decline_reason"] = request.decline_reason
        return variables

    def _notify_parties(self, request: CollaborationRequest, deal: BrandDeal | None) -> None:
        variables = self._variables(request)
        if deal is not None:
            variables["deal_amount"] = str(deal.deal_amount)
            variables["due_date"] = deal.due_date.isoformat()

        self._notify(
            request.id,
            Notification(
                template=_BRAND_TEMPLATES[request.status],
                channel=Channel.EMAIL,
                recipient=request.brand_contact.email,
                variables=variables,
            ),
            deal_id=request.deal_id,
        )
        self._notify(
            request.id,
            Notification(
                template=_CREATOR_TEMPLATES[request.status],
                channel=Channel.PUSH,
                recipient=creator_recipient(request.creator_id),
                variables=variables,
            ),
            deal_id=request.deal_id,
        )

    def _notify(
        self,
        request_id: str,
        notification: Notification,
        deal_id: str | None = None,
    ) -> DeliveryResult:
        try:
            result = self._notifier.send(notification)
        except Exception as exc:
            logger.exception(
                "notifier_raised",
                request_id=request_id,
                template=notification.template.value,
            )
            result = DeliveryResult(
                delivered=False,
                error_class=type(exc).__name__,
                error_message=str(exc),
            )

        if not result.delivered:
            NOTIFICATION_FAILURES.labels(template=notification.template.value).inc()
        self._audit.log_notification(
            request_id,
            template=notification.template.value,
            channel=notification.channel.value,
            recipient=notification.recipient,
            delivered=result.delivered,
            deal_id=deal_id,
            provider_id=result.provider_id,
            error_class=result.error_class,
            error_message=result.error_message,
        )
        return result

    def _hand_off_contract(self, request: CollaborationRequest, deal: BrandDeal) -> None:
        if deal.deal_type == DealType.BARTER:
            # Barter contracts need delivery details the brand has not sent yet.
            self._audit.log_contract(
                ActionLogEvent.CONTRACT_DEFERRED,
                request.id,
                deal.id,
                detail={"reason": "awaiting_delivery_details"},
            )
            return

        try:
            job_id = self._contracts.enqueue(request, deal)
        except Exception as exc:
            logger.exception("contract_enqueue_failed", request_id=request.id, deal_id=deal.id)
            self._audit.log_contract(
                ActionLogEvent.CONTRACT_FAILED,
                request.id,
                deal.id,
                detail={"error_class": type(exc).__name__, "error_message": str(exc)},
            )
            return

        self._audit.log_contract(
            ActionLogEvent.CONTRACT_QUEUED,
            request.id,
            deal.id,
            detail={"job_id": job_id},
        )

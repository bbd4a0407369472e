"""Notification models exchanged with the Notifier collaborator.

Template rendering lives with the messaging provider: this service only
names the template and supplies structured variables.
"""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class Channel(StrEnum):
    """Delivery channels supported by the messaging provider."""

    EMAIL = "email"
    SMS = "sms"
    WHATSAPP = "whatsapp"
    PUSH = "push"


class NotificationTemplate(StrEnum):
    """Templates sent as a result of collaboration request transitions."""

    BRAND_REQUEST_ACCEPTED = "collab_request_accepted"
    BRAND_REQUEST_DECLINED = "collab_request_declined"
    BRAND_REQUEST_COUNTERED = "collab_request_countered"
    CREATOR_REQUEST_ACCEPTED = "creator_collab_accepted"
    CREATOR_REQUEST_DECLINED = "creator_collab_declined"
    CREATOR_REQUEST_EXPIRED = "creator_collab_expired"


class Notification(BaseModel):
    """A single message to deliver."""

    model_config = ConfigDict(frozen=True)

    template: NotificationTemplate
    channel: Channel
    recipient: str
    variables: dict[str, str] = Field(default_factory=dict)


class DeliveryResult(BaseModel):
    """Outcome of one delivery attempt as reported by the notifier."""

    delivered: bool
    provider_id: str | None = None
    error_class: str | None = None
    error_message: str | None = None

"""Notifications: models and notifier implementations."""

from collab.notify.client import HttpNotifier, LoggingNotifier, Notifier
from collab.notify.models import (
    Channel,
    DeliveryResult,
    Notification,
    NotificationTemplate,
)

__all__ = [
    "Channel",
    "DeliveryResult",
    "HttpNotifier",
    "LoggingNotifier",
    "Notification",
    "NotificationTemplate",
    "Notifier",
]

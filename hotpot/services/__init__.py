"""Hotpot application services."""

from .notification_service import NotificationRecord, NotificationService

__all__ = [
    "NotificationRecord",
    "NotificationService",
]

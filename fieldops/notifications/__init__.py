"""Section notification fan-out module."""

from fieldops.notifications.service import NotificationService

__all__ = ["NotificationService"]

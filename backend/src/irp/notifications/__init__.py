"""Outbound notifications sent when a review completes."""

from .email import LoggingNotifier, Notifier, ResendNotifier, close_notifier, get_notifier

__all__ = ["LoggingNotifier", "Notifier", "ResendNotifier", "close_notifier", "get_notifier"]

"""Notification transports."""

from pagewatch.notifiers.email import EmailNotifier
from pagewatch.notifiers.log import LogNotifier
from pagewatch.notifiers.webhook import WebhookNotifier

__all__ = ["EmailNotifier", "LogNotifier", "WebhookNotifier"]

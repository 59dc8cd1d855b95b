"""Notifier that only writes events to the log."""

from __future__ import annotations

import logging

from pagewatch.models.events import NotificationEvent

logger = logging.getLogger(__name__)


class LogNotifier:
    name = "log"

    def __init__(self, level: int = logging.WARNING) -> None:
        self.level = level

    async def send(self, event: NotificationEvent) -> None:
        if event.text:
            logger.log(self.level, "Change detected for URL [%s]: %s", event.url, event.text)
        else:
            logger.log(self.level, "Change detected for URL [%s]", event.url)

"""Discord-style webhook notifier."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from pagewatch.exceptions import NotificationError
from pagewatch.models.events import NotificationEvent

logger = logging.getLogger(__name__)


class WebhookNotifier:
    """POST each event as a chat message to a webhook URL.

    Args:
        webhook_url: Destination URL.
        username: Display name attached to every message.
        timeout_sec: Per-request timeout.
        client: Optional pre-built client (tests inject one with a mock transport).
    """

    name = "discord"

    def __init__(
        self,
        webhook_url: str,
        *,
        username: str = "Pagewatch Alert",
        timeout_sec: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.webhook_url = webhook_url
        self.username = username
        self._timeout = timeout_sec
        self._client = client

    @staticmethod
    def build_payload(event: NotificationEvent, username: str) -> dict[str, Any]:
        return {
            "content": f"URL: {event.url}\nText: {event.text or ''}",
            "username": username,
        }

    async def send(self, event: NotificationEvent) -> None:
        payload = self.build_payload(event, self.username)
        logger.debug("Sending payload to webhook: %s", payload)

        try:
            if self._client is not None:
                resp = await self._client.post(self.webhook_url, json=payload, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    resp = await client.post(self.webhook_url, json=payload)
        except httpx.HTTPError as exc:
            raise NotificationError(self.name, event.url, str(exc)) from exc

        if not resp.is_success:
            logger.error("Webhook returned unexpected status %d for URL [%s]", resp.status_code, event.url)
            raise NotificationError(self.name, event.url, f"HTTP {resp.status_code}")

        logger.info("Webhook notification sent successfully for URL [%s]", event.url)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()

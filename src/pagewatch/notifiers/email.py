"""SMTP notifier.

``smtplib`` is blocking, so each send runs in a worker thread; the handoff
queue's consumer awaits it without stalling the event loop.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
import ssl

from pagewatch.exceptions import NotificationError
from pagewatch.models.events import NotificationEvent

logger = logging.getLogger(__name__)


def format_message(event: NotificationEvent, *, to_addr: str, subject: str) -> str:
    """Render the plain-text message body, headers included."""
    lines = [f"To: {to_addr}", f"Subject: {subject}", "", f"URL: {event.url}"]
    if event.text:
        lines.append(f"Text: {event.text}")
    return "\r\n".join(lines) + "\r\n"


class EmailNotifier:
    """Send each event as an email over SMTP with implicit TLS."""

    name = "email"

    def __init__(
        self,
        *,
        from_addr: str,
        to_addr: str,
        password: str,
        subject: str = "Pagewatch Watcher",
        smtp_host: str = "smtp.gmail.com",
        smtp_port: int = 465,
        timeout_sec: float = 30.0,
    ) -> None:
        self.from_addr = from_addr
        self.to_addr = to_addr
        self.subject = subject
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self._password = password
        self._timeout = timeout_sec

    async def send(self, event: NotificationEvent) -> None:
        message = format_message(event, to_addr=self.to_addr, subject=self.subject)
        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError(self.name, event.url, str(exc)) from exc
        logger.info("Emailed %s successfully for URL [%s]", self.to_addr, event.url)

    def _deliver(self, message: str) -> None:
        context = ssl.create_default_context()
        with smtplib.SMTP_SSL(self.smtp_host, self.smtp_port, context=context, timeout=self._timeout) as smtp:
            smtp.login(self.from_addr, self._password)
            smtp.sendmail(self.from_addr, [self.to_addr], message.encode("utf-8"))

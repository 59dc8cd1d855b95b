"""Non-blocking handoff of notifications and diagnostic dumps.

Each downstream collaborator (webhook, email, dump store) gets its own
``HandoffQueue`` with a single long-lived consumer task, so a slow transport
never stalls the scrape loop.
"""

from pagewatch.dispatch.diagnostics import DiagnosticsRouter, DumpStore
from pagewatch.dispatch.notifications import InMemoryNotifier, NotificationDispatcher, Notifier
from pagewatch.dispatch.queue import HandoffQueue

__all__ = [
    "DiagnosticsRouter",
    "DumpStore",
    "HandoffQueue",
    "InMemoryNotifier",
    "NotificationDispatcher",
    "Notifier",
]

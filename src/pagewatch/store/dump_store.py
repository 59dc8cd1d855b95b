"""Dump stores with pluggable Redis / in-memory backends.

Deployments that cannot watch the terminal persist failure dumps to Redis so
they can be inspected after the fact. Keys follow
``{category}-{unix_ts}-{url}``, e.g. ``wait-errors-1700000000-https://x``.

Usage::

    from pagewatch.store.dump_store import build_dump_store

    store = build_dump_store(settings.diagnostics)
    router = DiagnosticsRouter(store)
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import redis.asyncio as redis_lib
from redis.exceptions import RedisError

from pagewatch.exceptions import ConfigurationError
from pagewatch.models.events import DumpRecord

if TYPE_CHECKING:
    from pagewatch.settings.config import DiagnosticsSettings

logger = logging.getLogger(__name__)


class InMemoryDumpStore:
    """In-memory dump store for local development and tests."""

    def __init__(self) -> None:
        self.records: dict[str, str] = {}
        self.closed = False

    async def write(self, record: DumpRecord) -> None:
        """Store the record content under its key."""
        self.records[record.key] = record.content

    async def close(self) -> None:
        self.closed = True


class RedisDumpStore:
    """Redis-backed dump store.

    Args:
        redis_url: Redis connection string (e.g. ``redis://localhost:6379/0``).
        password: Optional password, overriding any in the URL.
        expiration_sec: Key TTL in seconds (0 = no expiry).
        write_timeout_sec: Upper bound on a single ``SET``.
        client: Optional pre-built client.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        *,
        password: str = "",
        expiration_sec: int = 0,
        write_timeout_sec: float = 5.0,
        client: redis_lib.Redis | None = None,
    ) -> None:
        if client is None:
            kwargs = {"password": password} if password else {}
            # A bare host:port is accepted for compatibility with older configs.
            if "://" not in redis_url:
                redis_url = f"redis://{redis_url}"
            client = redis_lib.Redis.from_url(redis_url, decode_responses=True, **kwargs)
        self._client = client
        self._expiration = expiration_sec
        self._write_timeout = write_timeout_sec

    async def write(self, record: DumpRecord) -> None:
        """Store one record, logging rather than raising on Redis failures."""
        try:
            await asyncio.wait_for(
                self._client.set(record.key, record.content, ex=self._expiration or None),
                self._write_timeout,
            )
        except (RedisError, TimeoutError) as exc:
            logger.error("Unable to write %s dump for URL [%s] to redis: %s", record.category.value, record.url, exc)
            return
        logger.info("Wrote %s dump for URL [%s] to redis key [%s]", record.category.value, record.url, record.key)

    async def close(self) -> None:
        await self._client.aclose()


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def build_dump_store(diagnostics: DiagnosticsSettings) -> RedisDumpStore | None:
    """Return a Redis store when dumps should be persisted, else ``None`` (stdout).

    Raises:
        ConfigurationError: Redis dumps are enabled without a ``redis_url``.
    """
    if not diagnostics.redis_dumps:
        return None
    if not diagnostics.redis_url:
        raise ConfigurationError("Redis dumps are enabled but no redis_url is configured")

    logger.info(
        "Using Redis dump store at %s (expiration=%ds)",
        diagnostics.redis_url,
        diagnostics.redis_key_expiration_sec,
    )
    return RedisDumpStore(
        diagnostics.redis_url,
        password=diagnostics.redis_password,
        expiration_sec=diagnostics.redis_key_expiration_sec,
        write_timeout_sec=diagnostics.redis_write_timeout_sec,
    )

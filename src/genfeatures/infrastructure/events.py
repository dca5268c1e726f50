"""Domain event fan-out over redis pub/sub.

Each event is wrapped as ``{"type", "emitted_at", "payload"}`` and published on
``genfeatures.events.<type>``. Publishing never raises: without ``REDIS_URL``
nothing is sent, and an unreachable server is retried at most once per
``retry_interval`` seconds rather than on every event.
"""

from __future__ import annotations

import json
import logging
import os
import time
from datetime import UTC, datetime
from typing import Any, Callable, Dict, Mapping, Optional

import redis

logger = logging.getLogger("genfeatures.events")

CHANNEL_PREFIX = "genfeatures.events"
DEFAULT_RETRY_INTERVAL = 5.0


def event_envelope(event_type: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "type": event_type,
        "emitted_at": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        "payload": dict(payload),
    }


class EventPublisher:
    def __init__(
        self,
        url: str,
        *,
        retry_interval: float = DEFAULT_RETRY_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.url = url
        self._retry_interval = retry_interval
        self._clock = clock
        self._client: Optional[redis.Redis] = None
        self._next_attempt = 0.0
        self.sent = 0
        self.dropped = 0

    @property
    def connected(self) -> bool:
        return self._client is not None

    def _back_off(self) -> None:
        self._client = None
        self._next_attempt = self._clock() + self._retry_interval

    def _ensure_client(self) -> Optional[redis.Redis]:
        if self._client is not None:
            return self._client
        if self._clock() < self._next_attempt:
            return None
        try:
            client = redis.Redis.from_url(self.url, socket_timeout=0.5)
            client.ping()
        except Exception as exc:
            self._back_off()
            logger.debug("event_bus_unreachable", extra={"err": str(exc)})
            return None
        self._client = client
        return client

    def publish(self, event_type: str, payload: Mapping[str, Any]) -> bool:
        client = self._ensure_client()
        if client is None:
            self.dropped += 1
            return False
        channel = f"{CHANNEL_PREFIX}.{event_type}"
        try:
            client.publish(channel, json.dumps(event_envelope(event_type, payload), default=str))
        except Exception as exc:
            self._back_off()
            self.dropped += 1
            logger.debug("event_publish_failed", extra={"channel": channel, "err": str(exc)})
            return False
        self.sent += 1
        return True


_publisher: Optional[EventPublisher] = None


def load_event_client() -> Optional[EventPublisher]:
    """Return the process-wide publisher, or ``None`` when ``REDIS_URL`` is unset."""
    global _publisher
    if _publisher is None:
        url = (os.getenv("REDIS_URL") or "").strip()
        if url:
            _publisher = EventPublisher(url)
    return _publisher


def publish_event(event_type: str, payload: Mapping[str, Any]) -> bool:
    publisher = load_event_client()
    if publisher is None:
        return False
    return publisher.publish(event_type, payload)

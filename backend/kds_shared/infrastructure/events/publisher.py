"""
Single-channel publish with retries.

Oversized events are refused before touching Redis; an open circuit
short-circuits to zero receivers.
"""

from __future__ import annotations

import asyncio

import redis.asyncio as redis
from redis.exceptions import RedisError

from kds_shared.config.settings import settings
from kds_shared.config.logging import get_logger
from .circuit_breaker import get_event_circuit_breaker, publish_retry_delay
from .event_schema import Event
from .event_types import MAX_EVENT_SIZE

logger = get_logger(__name__)

# Failures worth another attempt; builtin ConnectionError is an OSError
RETRYABLE_ERRORS = (RedisError, OSError, asyncio.TimeoutError)


def encode_event(event: Event) -> str:
    payload = event.to_json()
    size = len(payload.encode("utf-8"))
    if size > MAX_EVENT_SIZE:
        raise ValueError(f"{event.type} event is {size} bytes, limit is {MAX_EVENT_SIZE}")
    return payload


async def publish_event(redis_client: redis.Redis, channel: str, event: Event) -> int:
    """
    Publish ``event`` on ``channel`` and return the receiver count.

    Returns 0 without publishing while the circuit is open. Raises
    ValueError for oversized events and re-raises the Redis error once
    ``redis_publish_max_retries`` attempts have failed.
    """
    payload = encode_event(event)
    breaker = get_event_circuit_breaker()
    if not breaker.can_execute():
        logger.warning("Circuit open, event dropped", channel=channel, event_type=event.type)
        return 0

    attempts = max(1, settings.redis_publish_max_retries)
    for attempt in range(1, attempts + 1):
        try:
            receivers = await redis_client.publish(channel, payload)
        except RETRYABLE_ERRORS as e:
            if attempt == attempts:
                breaker.record_failure()
                logger.error(
                    "Event publish gave up",
                    channel=channel,
                    event_type=event.type,
                    attempts=attempts,
                    error=str(e),
                )
                raise
            delay = publish_retry_delay(attempt, settings.redis_publish_retry_delay)
            logger.warning(
                "Event publish failed, retrying",
                channel=channel,
                attempt=attempt,
                delay_seconds=round(delay, 3),
                error=str(e),
            )
            await asyncio.sleep(delay)
        else:
            breaker.record_success()
            return receivers
    return 0

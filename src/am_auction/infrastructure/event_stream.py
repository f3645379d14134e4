"""Per-auction live event stream over Redis Pub/Sub.

Publisher side runs after the ledger commit; subscriber side backs the
Server-Sent Events endpoint. Redis Pub/Sub is fire-and-forget: subscribers
that are not connected miss events and re-read the auction on reconnect.
"""

import asyncio
import logging
from collections.abc import AsyncIterator

from redis.exceptions import RedisError

from config.settings import settings
from src.am_auction.domain.events import AuctionEvent
from src.am_common.redis_client import get_redis

logger = logging.getLogger(__name__)

_KEEPALIVE_SECONDS = 15.0


def channel_for(auction_id: str) -> str:
    return f"{settings.EVENT_CHANNEL_PREFIX}:{auction_id}"


async def publish_event(event: AuctionEvent) -> bool:
    """Publish an event; returns False (and logs) instead of raising on Redis errors."""
    try:
        redis = await get_redis()
        await redis.publish(channel_for(event.auction_id), event.model_dump_json())
    except (RedisError, OSError):
        logger.warning(
            "Failed to publish %s for auction=%s", event.event_type, event.auction_id,
            exc_info=True,
        )
        return False
    return True


def format_sse(data: str, event: str | None = None) -> str:
    lines = []
    if event:
        lines.append(f"event: {event}")
    lines.extend(f"data: {line}" for line in data.splitlines() or [""])
    return "\n".join(lines) + "\n\n"


async def stream_events(auction_id: str) -> AsyncIterator[str]:
    """Yield SSE frames for one auction until the client disconnects."""
    redis = await get_redis()
    pubsub = redis.pubsub()
    await pubsub.subscribe(channel_for(auction_id))
    logger.info("Stream subscribed: auction=%s", auction_id)
    idle = 0.0
    try:
        while True:
            message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
            if message and message["type"] == "message":
                idle = 0.0
                yield format_sse(message["data"], event="auction_event")
                continue
            idle += 1.0
            if idle >= _KEEPALIVE_SECONDS:
                idle = 0.0
                yield ": keepalive\n\n"
            await asyncio.sleep(0)
    finally:
        await pubsub.unsubscribe(channel_for(auction_id))
        await pubsub.aclose()
        logger.info("Stream closed: auction=%s", auction_id)

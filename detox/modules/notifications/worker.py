"""Background listener feeding device taps into the tap router."""

from __future__ import annotations

import asyncio

import structlog

from modules.notifications.events import TapRouter

logger = structlog.get_logger()

# Pause before resubscribing after the Redis connection drops
RECONNECT_DELAY_SECONDS = 5


async def tap_listener(router: TapRouter, redis_client, channel: str) -> None:
    """Subscribe to ``channel`` and queue every tap published on it."""
    while True:
        pubsub = redis_client.pubsub()
        try:
            await pubsub.subscribe(channel)
            logger.info("tap_listener_started", channel=channel)

            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                router.deliver_raw(message["data"])
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("tap_listener_failed", channel=channel, error=str(e))
        finally:
            try:
                await pubsub.unsubscribe(channel)
                await pubsub.aclose()
            except Exception as e:
                logger.debug("tap_listener_cleanup_failed", error=str(e))

        await asyncio.sleep(RECONNECT_DELAY_SECONDS)

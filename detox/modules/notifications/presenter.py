"""UI events published for the client to present."""

from __future__ import annotations

import structlog

from modules.notifications.catalog import MessageVariant
from shared.schemas.notifications import UiEvent

logger = structlog.get_logger()


class Presenter:
    """Publishes "show this screen" events on ``<ns>:ui``.

    Rendering happens on the client. Without Redis the event is only
    logged; publishing failures never reach the caller.
    """

    def __init__(self, redis_client=None, namespace: str = "detox"):
        self._redis = redis_client
        self.channel = f"{namespace}:ui"

    async def show_quiz(self, message: MessageVariant) -> UiEvent:
        event = UiEvent(kind="quiz", data=message.model_dump(mode="json", by_alias=True))
        await self._publish(event)
        return event

    async def show_celebration(self, celebration: dict) -> UiEvent:
        event = UiEvent(kind="celebration", data=celebration)
        await self._publish(event)
        return event

    async def _publish(self, event: UiEvent) -> None:
        if self._redis is None:
            logger.info("ui_event_unpublished", kind=event.kind, reason="no_redis")
            return
        try:
            await self._redis.publish(self.channel, event.model_dump_json())
            logger.info("ui_event_published", channel=self.channel, kind=event.kind)
        except Exception as e:
            logger.error("ui_event_publish_failed", kind=event.kind, error=str(e))

"""Inbound notification taps, queued and then routed by payload type."""

from __future__ import annotations

import asyncio

import structlog
from pydantic import ValidationError

from modules.notifications.catalog import MessageCatalog
from modules.notifications.celebration import StreakCelebrationReconciler
from modules.notifications.preferences import PreferenceStore
from modules.notifications.presenter import Presenter
from modules.notifications.settle import settle
from shared.schemas.notifications import NotificationTap, NotificationTypeTag

logger = structlog.get_logger()


class TapRouter:
    """Receives taps from the device and dispatches them.

    Taps delivered while the app is still launching are queued and only
    processed once the launch has settled, so dependent stores exist
    before anything is presented.
    """

    def __init__(
        self,
        catalog: MessageCatalog,
        reconciler: StreakCelebrationReconciler,
        presenter: Presenter,
        preferences: PreferenceStore,
        launch_settle_seconds: float = 1.0,
        quiz_settle_seconds: float = 0.5,
        ready: asyncio.Event | None = None,
    ):
        self.catalog = catalog
        self.reconciler = reconciler
        self.presenter = presenter
        self.preferences = preferences
        self.launch_settle_seconds = launch_settle_seconds
        self.quiz_settle_seconds = quiz_settle_seconds
        self.ready = ready
        self._queue: asyncio.Queue[NotificationTap] = asyncio.Queue()

    @property
    def queued(self) -> int:
        return self._queue.qsize()

    def deliver(self, tap: NotificationTap) -> None:
        self._queue.put_nowait(tap)

    def deliver_raw(self, raw: str | bytes) -> None:
        """Queue a tap from its JSON form.

        An undecodable tap still opens the app on a quiz: it is routed as a
        quiz tap without a message id, which falls back to a random message.
        """
        try:
            tap = NotificationTap.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("tap_payload_undecodable", error=str(e))
            tap = NotificationTap(payload={"type": NotificationTypeTag.QUIZ.value})
        self.deliver(tap)

    async def run(self) -> None:
        """Drain the tap queue forever, after the launch has settled."""
        await settle(self.launch_settle_seconds, self.ready)
        logger.info("tap_router_started", queued=self.queued)
        while True:
            tap = await self._queue.get()
            try:
                await self.dispatch(tap)
            except Exception as e:
                logger.error("tap_dispatch_error", identifier=tap.identifier, error=str(e))
            finally:
                self._queue.task_done()

    async def join(self) -> None:
        """Wait until every queued tap has been dispatched."""
        await self._queue.join()

    async def dispatch(self, tap: NotificationTap) -> dict:
        kind = tap.payload.get("type")
        logger.info("tap_received", identifier=tap.identifier, type=kind)

        if kind == NotificationTypeTag.QUIZ.value:
            return await self._handle_quiz(tap)
        if kind == NotificationTypeTag.STREAK_CELEBRATION.value:
            return await self._handle_streak(tap)

        logger.warning("tap_type_unknown", identifier=tap.identifier, type=kind)
        return {"handled": False, "reason": "unknown_type"}

    async def _handle_quiz(self, tap: NotificationTap) -> dict:
        message_id = tap.payload.get("messageId")
        message = self.catalog.get_message(str(message_id)) if message_id else None
        if message is None:
            logger.info("quiz_tap_fallback", message_id=message_id)
            message = self.catalog.random_message()
        if message is None:
            logger.warning("quiz_tap_unhandled", reason="empty_catalog")
            return {"handled": False, "reason": "empty_catalog"}

        await settle(self.quiz_settle_seconds)
        await self.presenter.show_quiz(message)
        return {"handled": True, "type": NotificationTypeTag.QUIZ.value, "message_id": message.id}

    async def _handle_streak(self, tap: NotificationTap) -> dict:
        state = await self.preferences.get_tracking_state()
        if state is None:
            # Nothing reported yet; the next foreground evaluation picks it up
            self.reconciler.request_force()
            logger.info("streak_tap_deferred", identifier=tap.identifier)
            return {"handled": True, "deferred": True}

        decision = await self.reconciler.evaluate(
            state.current_streak, state.onboarding_completed, force=True
        )
        return {
            "handled": True,
            "deferred": False,
            "celebration": decision.model_dump() if decision else None,
        }

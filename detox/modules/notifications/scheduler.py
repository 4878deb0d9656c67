"""Local notification scheduling for quiz messages and streak celebrations."""

from __future__ import annotations

import asyncio
import random
import uuid
import zoneinfo
from datetime import date, datetime, time, timedelta
from typing import Callable

import structlog

from modules.notifications.authorization import AuthorizationGate
from modules.notifications.catalog import MessageCatalog
from modules.notifications.center import NotificationCenter
from modules.notifications.message_tracker import UsedMessageTracker
from shared.config import Settings
from shared.schemas.notifications import NotificationRequest, NotificationTypeTag

logger = structlog.get_logger()

# Identifier prefix for debug notifications; keeps them out of type sweeps
TEST_PREFIX = "test_"


def make_identifier(type_tag: NotificationTypeTag, *parts: str) -> str:
    """Build a request identifier: type prefix, disambiguators, random suffix.

    The suffix keeps a fresh batch from colliding with requests the device
    has not finished removing yet.
    """
    return "_".join([type_tag.value, *parts, str(uuid.uuid4())])


def generate_random_times(
    count: int,
    start_hour: int,
    end_hour: int,
    rng: random.Random | None = None,
) -> list[tuple[int, int]]:
    """Pick ``count`` (hour, minute) slots spread over [start_hour, end_hour).

    The window is cut into ``count`` equal segments and one random minute
    is drawn inside each, so slots never cluster and come out strictly
    increasing.
    """
    if count <= 0:
        raise ValueError(f"count must be positive, got {count}")
    if not 0 <= start_hour < end_hour <= 24:
        raise ValueError(f"invalid hour window [{start_hour}, {end_hour})")

    rng = rng or random.Random()
    total_minutes = (end_hour - start_hour) * 60
    segment = total_minutes // count
    if segment < 1:
        raise ValueError(f"window too small for {count} slots")

    times = []
    for i in range(count):
        offset = rng.randrange(i * segment, (i + 1) * segment)
        times.append((start_hour + offset // 60, offset % 60))
    return times


class NotificationScheduler:
    """Computes, cancels and submits local notifications.

    Every ``schedule_*`` call first removes all pending requests of its
    type, so calling it on every app open never piles up duplicates.
    Calls for the same type are serialized; different types run freely.
    """

    def __init__(
        self,
        center: NotificationCenter,
        gate: AuthorizationGate,
        catalog: MessageCatalog,
        tracker: UsedMessageTracker,
        settings: Settings,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.center = center
        self.gate = gate
        self.catalog = catalog
        self.tracker = tracker
        self.settings = settings
        self.tz = zoneinfo.ZoneInfo(settings.timezone)
        self._rng = rng or random.Random()
        self._clock = clock or (lambda: datetime.now(self.tz))
        self._locks = {tag: asyncio.Lock() for tag in NotificationTypeTag}

    def _now(self) -> datetime:
        return self._clock().astimezone(self.tz)

    def _tomorrow(self) -> date:
        return self._now().date() + timedelta(days=1)

    def _at(self, day: date, hour: int, minute: int, second: int = 0) -> datetime:
        return datetime.combine(day, time(hour, minute, second), tzinfo=self.tz)

    # ------------------------------------------------------------------
    # Quiz notifications
    # ------------------------------------------------------------------

    async def schedule_quiz_notifications(
        self, audience_tag: str, display_name: str = ""
    ) -> list[NotificationRequest]:
        """Replace tomorrow's quiz notifications with a fresh batch."""
        type_tag = NotificationTypeTag.QUIZ
        async with self._locks[type_tag]:
            if not await self.gate.is_authorized():
                logger.info("quiz_scheduling_skipped", reason="not_authorized")
                return []
            if not await self._cancel_type(type_tag):
                return []

            tomorrow = self._tomorrow()
            times = generate_random_times(
                self.settings.quiz_notification_count,
                self.settings.quiz_window_start_hour,
                self.settings.quiz_window_end_hour,
                self._rng,
            )
            title = display_name.strip() or self.settings.quiz_fallback_title

            scheduled: list[NotificationRequest] = []
            for index, (hour, minute) in enumerate(times):
                message = self.tracker.pick_message(audience_tag)
                if message is None:
                    logger.warning("quiz_slot_skipped", slot=index, audience_tag=audience_tag)
                    continue

                request = NotificationRequest(
                    identifier=make_identifier(type_tag, str(index)),
                    fire_at=self._at(tomorrow, hour, minute),
                    title=title,
                    body=message.text,
                    payload={"type": type_tag.value, "messageId": message.id},
                )
                try:
                    await self.center.submit(request)
                except Exception as e:
                    logger.error(
                        "quiz_notification_submit_failed",
                        slot=index,
                        message_id=message.id,
                        error=str(e),
                    )
                    continue

                self.tracker.mark_used(message.id)
                scheduled.append(request)

            logger.info(
                "quiz_notifications_scheduled",
                audience_tag=audience_tag,
                requested=len(times),
                scheduled=len(scheduled),
                fire_times=[r.fire_at.isoformat() for r in scheduled],
            )
            return scheduled

    # ------------------------------------------------------------------
    # Streak notification
    # ------------------------------------------------------------------

    async def schedule_streak_notification(
        self, current_streak: int
    ) -> NotificationRequest | None:
        """Schedule tomorrow's "day N+1" celebration just after midnight."""
        if current_streak < 0:
            raise ValueError(f"current_streak must be >= 0, got {current_streak}")

        type_tag = NotificationTypeTag.STREAK_CELEBRATION
        async with self._locks[type_tag]:
            if not await self.gate.is_authorized():
                logger.info("streak_scheduling_skipped", reason="not_authorized")
                return None
            if not await self._cancel_type(type_tag):
                return None

            # A few seconds past midnight avoids the ambiguous 00:00:00 instant
            fire_at = self._at(self._tomorrow(), 0, 0) + timedelta(
                seconds=self.settings.streak_fire_offset_seconds
            )
            next_streak = current_streak + 1
            celebration = self.catalog.get_celebration(next_streak)

            request = NotificationRequest(
                identifier=make_identifier(type_tag),
                fire_at=fire_at,
                title=celebration.title,
                body=celebration.notification,
                payload={"type": type_tag.value, "streak": next_streak},
            )
            try:
                await self.center.submit(request)
            except Exception as e:
                logger.error("streak_notification_submit_failed", streak=next_streak, error=str(e))
                return None

            logger.info(
                "streak_notification_scheduled",
                streak=next_streak,
                fire_at=fire_at.isoformat(),
            )
            return request

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    async def cancel_notifications(self, type_tag: NotificationTypeTag) -> list[str]:
        """Remove every pending request of one type. Other types are untouched."""
        async with self._locks[type_tag]:
            try:
                pending = await self.center.list_pending()
                identifiers = [r.identifier for r in pending if r.has_type(type_tag)]
                await self.center.cancel(identifiers)
            except Exception as e:
                logger.error("notification_cancel_failed", type=type_tag.value, error=str(e))
                return []
            logger.info("notifications_cancelled", type=type_tag.value, count=len(identifiers))
            return identifiers

    async def cancel_all_notifications(self) -> bool:
        async with self._locks[NotificationTypeTag.QUIZ], self._locks[
            NotificationTypeTag.STREAK_CELEBRATION
        ]:
            try:
                await self.center.cancel_all()
            except Exception as e:
                logger.error("notification_cancel_all_failed", error=str(e))
                return False
        logger.info("all_notifications_cancelled")
        return True

    async def _cancel_type(self, type_tag: NotificationTypeTag) -> bool:
        """Cancel pending requests of a type while its lock is held.

        Returns False when the device could not be queried, in which case
        the caller must not add a new batch on top of the stale one.
        """
        try:
            pending = await self.center.list_pending()
            identifiers = [r.identifier for r in pending if r.has_type(type_tag)]
            await self.center.cancel(identifiers)
        except Exception as e:
            logger.error("notification_cancel_failed", type=type_tag.value, error=str(e))
            return False
        if identifiers:
            logger.debug("stale_notifications_cancelled", type=type_tag.value, count=len(identifiers))
        return True

    # ------------------------------------------------------------------
    # Debug triggers
    # ------------------------------------------------------------------

    async def trigger_test_quiz_notification(
        self, display_name: str = ""
    ) -> NotificationRequest | None:
        """Fire a random quiz notification a few seconds from now."""
        message = self.catalog.random_message()
        if message is None:
            return None
        request = NotificationRequest(
            identifier=TEST_PREFIX + make_identifier(NotificationTypeTag.QUIZ),
            fire_at=self._now() + timedelta(seconds=self.settings.test_notification_delay_seconds),
            title=display_name.strip() or self.settings.quiz_fallback_title,
            body=message.text,
            payload={"type": NotificationTypeTag.QUIZ.value, "messageId": message.id},
        )
        return await self._submit_test(request)

    async def trigger_test_streak_notification(self, streak: int) -> NotificationRequest | None:
        """Fire the celebration for ``streak`` a few seconds from now."""
        celebration = self.catalog.get_celebration(streak)
        request = NotificationRequest(
            identifier=TEST_PREFIX + make_identifier(NotificationTypeTag.STREAK_CELEBRATION),
            fire_at=self._now() + timedelta(seconds=self.settings.test_notification_delay_seconds),
            title=celebration.title,
            body=celebration.notification,
            payload={"type": NotificationTypeTag.STREAK_CELEBRATION.value, "streak": streak},
        )
        return await self._submit_test(request)

    async def _submit_test(self, request: NotificationRequest) -> NotificationRequest | None:
        if not await self.gate.is_authorized():
            logger.info("test_notification_skipped", reason="not_authorized")
            return None
        try:
            await self.center.submit(request)
        except Exception as e:
            logger.error("test_notification_submit_failed", identifier=request.identifier, error=str(e))
            return None
        logger.info("test_notification_scheduled", identifier=request.identifier)
        return request

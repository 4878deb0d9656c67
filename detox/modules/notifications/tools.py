"""Notifications module tool implementations."""

from __future__ import annotations

import asyncio
import random
from datetime import datetime
from typing import Callable

import structlog

from modules.notifications.authorization import AuthorizationGate
from modules.notifications.catalog import MessageCatalog
from modules.notifications.celebration import StreakCelebrationReconciler
from modules.notifications.center import (
    InMemoryNotificationCenter,
    NotificationCenter,
    RedisNotificationCenter,
)
from modules.notifications.events import TapRouter
from modules.notifications.message_tracker import UsedMessageTracker, normalize_audience_tag
from modules.notifications.preferences import PreferenceStore
from modules.notifications.presenter import Presenter
from modules.notifications.scheduler import NotificationScheduler
from shared.config import Settings
from shared.schemas.notifications import NotificationTap, NotificationTypeTag, TrackingState

logger = structlog.get_logger()


def parse_type_tag(value: str) -> NotificationTypeTag:
    """Accept either the tag value ("ex_quiz") or its name ("quiz")."""
    try:
        return NotificationTypeTag(value)
    except ValueError:
        pass
    try:
        return NotificationTypeTag[value.upper()]
    except KeyError:
        valid = ", ".join(t.value for t in NotificationTypeTag)
        raise ValueError(f"Unknown notification type '{value}'. Valid: {valid}") from None


class NotificationTools:
    """Notification service, built once at startup.

    Every collaborator is injected so tests can swap the device boundary
    and the preference store for in-memory versions.
    """

    def __init__(
        self,
        *,
        catalog: MessageCatalog,
        tracker: UsedMessageTracker,
        gate: AuthorizationGate,
        scheduler: NotificationScheduler,
        preferences: PreferenceStore,
        reconciler: StreakCelebrationReconciler,
        router: TapRouter,
    ):
        self.catalog = catalog
        self.tracker = tracker
        self.gate = gate
        self.scheduler = scheduler
        self.preferences = preferences
        self.reconciler = reconciler
        self.router = router

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        redis_client=None,
        center: NotificationCenter | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
        ready: asyncio.Event | None = None,
    ) -> NotificationTools:
        rng = rng or random.Random()
        namespace = settings.preferences_namespace

        if center is None:
            if redis_client is not None:
                center = RedisNotificationCenter(
                    redis_client,
                    namespace,
                    prompt_timeout_seconds=settings.permission_prompt_timeout_seconds,
                    poll_interval_seconds=settings.permission_poll_interval_seconds,
                )
            else:
                center = InMemoryNotificationCenter()

        catalog = MessageCatalog.from_directory(settings.content_dir or None, rng=rng)
        tracker = UsedMessageTracker(catalog, rng=rng)
        gate = AuthorizationGate(center)
        preferences = PreferenceStore(redis_client, namespace)
        presenter = Presenter(redis_client, namespace)
        reconciler = StreakCelebrationReconciler(
            preferences,
            catalog,
            presenter,
            settle_delay=settings.celebration_settle_seconds,
            ready=ready,
        )
        return cls(
            catalog=catalog,
            tracker=tracker,
            gate=gate,
            scheduler=NotificationScheduler(
                center, gate, catalog, tracker, settings, rng=rng, clock=clock
            ),
            preferences=preferences,
            reconciler=reconciler,
            router=TapRouter(
                catalog,
                reconciler,
                presenter,
                preferences,
                launch_settle_seconds=settings.launch_settle_seconds,
                quiz_settle_seconds=settings.quiz_tap_settle_seconds,
                ready=ready,
            ),
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def app_foreground(
        self,
        current_streak: int,
        onboarding_completed: bool = True,
        display_name: str = "",
        audience: str = "",
    ) -> dict:
        """Reschedule enabled notifications and reconcile the celebration."""
        state = TrackingState(
            current_streak=current_streak, onboarding_completed=onboarding_completed
        )
        await self.preferences.set_tracking_state(state)
        prefs = await self.preferences.get_preferences()

        # Different types don't share a lock, so they can reschedule together
        jobs = {}
        if prefs.quiz_enabled:
            jobs["quiz"] = self.scheduler.schedule_quiz_notifications(
                normalize_audience_tag(audience), display_name
            )
        if prefs.streak_celebration_enabled:
            jobs["streak"] = self.scheduler.schedule_streak_notification(current_streak)
        results = dict(zip(jobs, await asyncio.gather(*jobs.values())))
        quiz_requests = results.get("quiz", [])
        streak_request = results.get("streak")

        decision = await self.reconciler.evaluate(current_streak, onboarding_completed)
        return {
            "quiz_scheduled": len(quiz_requests),
            "streak_scheduled": streak_request is not None,
            "celebration": decision.model_dump() if decision else None,
        }

    async def dismiss_celebration(self) -> dict:
        streak = await self.reconciler.dismiss()
        return {"dismissed": streak is not None, "last_shown_streak_day": streak}

    async def reset_streak_marker(self) -> dict:
        """Forget the last celebrated streak, e.g. after a relapse restart."""
        await self.preferences.reset_last_shown_streak_day()
        logger.info("streak_marker_reset")
        return {"last_shown_streak_day": 0}

    async def handle_tap(self, payload: dict, identifier: str = "") -> dict:
        """Queue a tap; the router dispatches it once the launch has settled."""
        self.router.deliver(NotificationTap(identifier=identifier, payload=payload))
        return {"queued": True, "pending": self.router.queued}

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    async def schedule_quiz(self, audience: str = "", display_name: str = "") -> dict:
        requests = await self.scheduler.schedule_quiz_notifications(
            normalize_audience_tag(audience), display_name
        )
        return {
            "scheduled": len(requests),
            "requests": [r.model_dump(mode="json") for r in requests],
        }

    async def schedule_streak(self, current_streak: int) -> dict:
        request = await self.scheduler.schedule_streak_notification(current_streak)
        return {
            "scheduled": request is not None,
            "request": request.model_dump(mode="json") if request else None,
        }

    async def cancel_notifications(self, type: str) -> dict:
        type_tag = parse_type_tag(type)
        removed = await self.scheduler.cancel_notifications(type_tag)
        return {"type": type_tag.value, "cancelled": len(removed)}

    async def cancel_all(self) -> dict:
        return {"cancelled": await self.scheduler.cancel_all_notifications()}

    async def test_notification(
        self, type: str, display_name: str = "", streak: int = 1
    ) -> dict:
        type_tag = parse_type_tag(type)
        if type_tag == NotificationTypeTag.QUIZ:
            request = await self.scheduler.trigger_test_quiz_notification(display_name)
        else:
            request = await self.scheduler.trigger_test_streak_notification(streak)
        return {"scheduled": request is not None, "identifier": request.identifier if request else None}

    # ------------------------------------------------------------------
    # Permission & preferences
    # ------------------------------------------------------------------

    async def permission_status(self) -> dict:
        status = await self.gate.check_status()
        return {"status": status.value}

    async def request_permission(self) -> dict:
        """Prompt for permission; both features follow the user's answer."""
        granted = await self.gate.request_authorization()
        prefs = await self.preferences.update_preferences(
            permission_requested=True,
            quiz_enabled=granted,
            streak_celebration_enabled=granted,
        )
        return {"granted": granted, "status": self.gate.status.value, **prefs.model_dump()}

    async def get_preferences(self) -> dict:
        prefs = await self.preferences.get_preferences()
        return {
            **prefs.model_dump(),
            "last_shown_streak_day": await self.preferences.get_last_shown_streak_day(),
        }

    async def set_preferences(
        self,
        quiz_enabled: bool | None = None,
        streak_celebration_enabled: bool | None = None,
    ) -> dict:
        """Toggle features. Turning one off removes its pending notifications."""
        changes = {}
        if quiz_enabled is not None:
            changes["quiz_enabled"] = quiz_enabled
        if streak_celebration_enabled is not None:
            changes["streak_celebration_enabled"] = streak_celebration_enabled
        prefs = await self.preferences.update_preferences(**changes)

        if quiz_enabled is False:
            await self.scheduler.cancel_notifications(NotificationTypeTag.QUIZ)
        if streak_celebration_enabled is False:
            await self.scheduler.cancel_notifications(NotificationTypeTag.STREAK_CELEBRATION)
        return prefs.model_dump()

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    async def get_celebration(self, day: int) -> dict:
        return self.catalog.get_celebration(day)._asdict()

"""Streak celebration reconciliation.

Decides, when the app comes to the foreground or a streak notification is
tapped, whether the one-time celebration screen should be shown.

Rules:
- never while a celebration is already showing (checked first);
- never before onboarding is complete or while the streak is 0;
- otherwise when the streak is above the last celebrated value, or when
  a force was requested (tapping a streak notification).

The last celebrated value is persisted on dismissal, so a restart never
shows the same streak twice.
"""

from __future__ import annotations

import asyncio
from enum import Enum

import structlog
from pydantic import BaseModel

from modules.notifications.catalog import MessageCatalog
from modules.notifications.preferences import PreferenceStore
from modules.notifications.presenter import Presenter
from modules.notifications.settle import settle

logger = structlog.get_logger()


class CelebrationPhase(str, Enum):
    IDLE = "idle"
    SHOWING = "showing"


class CelebrationDecision(BaseModel):
    """What the celebration screen animates: previous -> current."""

    previous_streak: int
    current_streak: int
    forced: bool = False
    emoji: str = ""
    title: str = ""
    message: str = ""


def previous_streak_for(current_streak: int, last_shown: int, progressed: bool) -> int:
    if progressed and last_shown > 0:
        return last_shown
    return max(current_streak - 1, 0)


class StreakCelebrationReconciler:
    def __init__(
        self,
        preferences: PreferenceStore,
        catalog: MessageCatalog,
        presenter: Presenter | None = None,
        settle_delay: float = 0.3,
        ready: asyncio.Event | None = None,
    ):
        self.preferences = preferences
        self.catalog = catalog
        self.presenter = presenter
        self.settle_delay = settle_delay
        self.ready = ready
        self.phase = CelebrationPhase.IDLE
        self.force_requested = False
        self.active: CelebrationDecision | None = None
        self._lock = asyncio.Lock()

    @property
    def showing(self) -> bool:
        return self.phase == CelebrationPhase.SHOWING

    def request_force(self) -> None:
        """Show on the next evaluation even if this streak was celebrated."""
        self.force_requested = True

    async def evaluate(
        self,
        current_streak: int,
        onboarding_completed: bool,
        force: bool = False,
    ) -> CelebrationDecision | None:
        if current_streak < 0:
            raise ValueError(f"current_streak must be >= 0, got {current_streak}")
        if self.showing:
            logger.debug("celebration_evaluation_skipped", reason="already_showing")
            return None

        if force:
            self.force_requested = True

        # Let navigation settle before deciding; a tap may have queued a force
        # while the view hierarchy was still loading.
        await settle(self.settle_delay, self.ready)

        async with self._lock:
            # Another trigger may have won the race during the wait
            if self.showing:
                return None
            return await self._decide(current_streak, onboarding_completed)

    async def _decide(
        self, current_streak: int, onboarding_completed: bool
    ) -> CelebrationDecision | None:
        forced = self.force_requested
        self.force_requested = False

        if not onboarding_completed or current_streak <= 0:
            logger.debug(
                "celebration_not_eligible",
                onboarding_completed=onboarding_completed,
                current_streak=current_streak,
            )
            return None

        last_shown = await self.preferences.get_last_shown_streak_day()
        progressed = current_streak > last_shown
        if not progressed and not forced:
            return None

        celebration = self.catalog.get_celebration(current_streak)
        decision = CelebrationDecision(
            previous_streak=previous_streak_for(current_streak, last_shown, progressed),
            current_streak=current_streak,
            forced=forced and not progressed,
            emoji=celebration.emoji,
            title=celebration.title,
            message=celebration.message,
        )
        self.phase = CelebrationPhase.SHOWING
        self.active = decision
        logger.info(
            "celebration_shown",
            previous_streak=decision.previous_streak,
            current_streak=current_streak,
            last_shown=last_shown,
            forced=decision.forced,
        )

        if self.presenter is not None:
            await self.presenter.show_celebration(decision.model_dump())
        return decision

    async def dismiss(self) -> int | None:
        """Close the celebration and remember the streak it showed."""
        if not self.showing or self.active is None:
            return None
        streak = self.active.current_streak
        await self.preferences.set_last_shown_streak_day(streak)
        self.phase = CelebrationPhase.IDLE
        self.active = None
        logger.info("celebration_dismissed", last_shown_streak_day=streak)
        return streak

"""Tests for streak celebration reconciliation."""

from __future__ import annotations

import asyncio

import pytest

from modules.notifications.celebration import (
    CelebrationPhase,
    StreakCelebrationReconciler,
    previous_streak_for,
)


@pytest.mark.parametrize("current,last_shown,progressed,expected", [
    (5, 3, True, 3),
    (5, 0, True, 4),
    (1, 0, True, 0),
    (5, 5, False, 4),
    (3, 7, False, 2),
])
def test_previous_streak_for(current, last_shown, progressed, expected):
    assert previous_streak_for(current, last_shown, progressed) == expected


class TestEvaluate:
    @pytest.mark.asyncio
    async def test_shows_when_streak_progressed(self, reconciler, preferences):
        await preferences.set_last_shown_streak_day(3)

        decision = await reconciler.evaluate(5, onboarding_completed=True)

        assert decision.previous_streak == 3
        assert decision.current_streak == 5
        assert decision.forced is False
        assert reconciler.phase == CelebrationPhase.SHOWING
        assert reconciler.active == decision

    @pytest.mark.asyncio
    async def test_first_ever_celebration_animates_from_day_before(self, reconciler):
        decision = await reconciler.evaluate(7, onboarding_completed=True)

        assert decision.previous_streak == 6
        assert decision.title == "One whole week!"
        assert decision.emoji == "🔥"
        assert decision.message == "A full week of healing."

    @pytest.mark.asyncio
    async def test_not_shown_before_onboarding(self, reconciler):
        assert await reconciler.evaluate(5, onboarding_completed=False) is None
        assert reconciler.phase == CelebrationPhase.IDLE

    @pytest.mark.asyncio
    async def test_not_shown_for_zero_streak(self, reconciler):
        assert await reconciler.evaluate(0, onboarding_completed=True, force=True) is None
        assert reconciler.force_requested is False

    @pytest.mark.asyncio
    async def test_negative_streak_rejected(self, reconciler):
        with pytest.raises(ValueError):
            await reconciler.evaluate(-2, onboarding_completed=True)

    @pytest.mark.asyncio
    async def test_presenter_receives_decision(self, reconciler, presenter):
        decision = await reconciler.evaluate(2, onboarding_completed=True)

        presenter.show_celebration.assert_awaited_once_with(decision.model_dump())

    @pytest.mark.asyncio
    async def test_not_reentrant_while_showing(self, reconciler, presenter):
        await reconciler.evaluate(2, onboarding_completed=True)

        assert await reconciler.evaluate(3, onboarding_completed=True) is None
        assert await reconciler.evaluate(3, onboarding_completed=True, force=True) is None
        assert presenter.show_celebration.await_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_triggers_show_once(self, reconciler, presenter):
        results = await asyncio.gather(
            reconciler.evaluate(4, onboarding_completed=True),
            reconciler.evaluate(4, onboarding_completed=True, force=True),
        )

        assert sum(r is not None for r in results) == 1
        assert presenter.show_celebration.await_count == 1


class TestShowOnce:
    @pytest.mark.asyncio
    async def test_dismissed_streak_is_not_shown_again(self, reconciler, preferences):
        await reconciler.evaluate(4, onboarding_completed=True)
        assert await reconciler.dismiss() == 4
        assert await preferences.get_last_shown_streak_day() == 4

        for _ in range(3):
            assert await reconciler.evaluate(4, onboarding_completed=True) is None

    @pytest.mark.asyncio
    async def test_survives_restart(self, preferences, catalog):
        first = StreakCelebrationReconciler(preferences, catalog, settle_delay=0)
        await first.evaluate(4, onboarding_completed=True)
        await first.dismiss()

        restarted = StreakCelebrationReconciler(preferences, catalog, settle_delay=0)
        assert await restarted.evaluate(4, onboarding_completed=True) is None

    @pytest.mark.asyncio
    async def test_next_day_is_shown(self, reconciler):
        await reconciler.evaluate(4, onboarding_completed=True)
        await reconciler.dismiss()

        decision = await reconciler.evaluate(5, onboarding_completed=True)

        assert decision.previous_streak == 4
        assert decision.current_streak == 5

    @pytest.mark.asyncio
    async def test_streak_reset_below_marker_is_not_shown(self, reconciler, preferences):
        await preferences.set_last_shown_streak_day(10)
        assert await reconciler.evaluate(2, onboarding_completed=True) is None

    @pytest.mark.asyncio
    async def test_dismiss_without_celebration(self, reconciler, preferences):
        assert await reconciler.dismiss() is None
        assert await preferences.get_last_shown_streak_day() == 0


class TestForce:
    @pytest.mark.asyncio
    async def test_force_shows_already_celebrated_streak(self, reconciler, preferences):
        await preferences.set_last_shown_streak_day(6)

        decision = await reconciler.evaluate(6, onboarding_completed=True, force=True)

        assert decision.forced is True
        assert decision.previous_streak == 5
        assert decision.current_streak == 6

    @pytest.mark.asyncio
    async def test_force_on_progressed_streak_is_not_marked_forced(self, reconciler):
        decision = await reconciler.evaluate(3, onboarding_completed=True, force=True)
        assert decision.forced is False

    @pytest.mark.asyncio
    async def test_force_is_consumed(self, reconciler, preferences):
        await preferences.set_last_shown_streak_day(6)

        await reconciler.evaluate(6, onboarding_completed=True, force=True)
        await reconciler.dismiss()

        assert reconciler.force_requested is False
        assert await reconciler.evaluate(6, onboarding_completed=True) is None

    @pytest.mark.asyncio
    async def test_requested_force_applies_to_next_evaluation(self, reconciler, preferences):
        await preferences.set_last_shown_streak_day(6)
        reconciler.request_force()

        decision = await reconciler.evaluate(6, onboarding_completed=True)

        assert decision is not None
        assert decision.forced is True

    @pytest.mark.asyncio
    async def test_force_consumed_even_when_not_eligible(self, reconciler, preferences):
        await preferences.set_last_shown_streak_day(6)
        reconciler.request_force()

        assert await reconciler.evaluate(6, onboarding_completed=False) is None
        assert await reconciler.evaluate(6, onboarding_completed=True) is None


class TestReadiness:
    @pytest.mark.asyncio
    async def test_waits_for_ready_event(self, preferences, catalog):
        ready = asyncio.Event()
        reconciler = StreakCelebrationReconciler(preferences, catalog, settle_delay=60, ready=ready)

        task = asyncio.create_task(reconciler.evaluate(2, onboarding_completed=True))
        await asyncio.sleep(0)
        assert not task.done()

        ready.set()
        decision = await asyncio.wait_for(task, timeout=1)
        assert decision.current_streak == 2

    @pytest.mark.asyncio
    async def test_force_requested_during_settle_is_honoured(self, preferences, catalog):
        await preferences.set_last_shown_streak_day(5)
        ready = asyncio.Event()
        reconciler = StreakCelebrationReconciler(preferences, catalog, ready=ready)

        task = asyncio.create_task(reconciler.evaluate(5, onboarding_completed=True))
        await asyncio.sleep(0)
        reconciler.request_force()
        ready.set()

        decision = await asyncio.wait_for(task, timeout=1)
        assert decision is not None
        assert decision.forced is True

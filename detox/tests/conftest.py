"""Shared test fixtures for the notification test suite.

Provides a small content catalog, an in-memory notification center, a
fixed clock and a mock Redis client so tests run without any device or
Redis server.
"""

from __future__ import annotations

import random
from datetime import datetime
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

import pytest

from modules.notifications.authorization import AuthorizationGate
from modules.notifications.catalog import (
    GenericStreakTemplate,
    MessageCatalog,
    MessageVariant,
    MilestoneMessage,
)
from modules.notifications.celebration import StreakCelebrationReconciler
from modules.notifications.center import InMemoryNotificationCenter
from modules.notifications.events import TapRouter
from modules.notifications.message_tracker import UsedMessageTracker
from modules.notifications.preferences import PreferenceStore
from modules.notifications.presenter import Presenter
from modules.notifications.scheduler import NotificationScheduler
from modules.notifications.tools import NotificationTools
from shared.config import Settings
from shared.schemas.notifications import AuthorizationStatus

# 2026-03-14 10:30 local time, a Saturday well clear of the DST change
FIXED_NOW = datetime(2026, 3, 14, 10, 30, tzinfo=ZoneInfo("Europe/London"))


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------


def make_message(message_id: str, tags: list[str]) -> MessageVariant:
    return MessageVariant(
        id=message_id,
        text=f"text for {message_id}",
        audience_tags=tags,
        decoy_answers=["decoy a", "decoy b"],
        correct_answer="the right answer",
        explanation="because",
    )


@pytest.fixture
def quiz_messages():
    return [
        make_message("m1", ["male", "other"]),
        make_message("m2", ["male"]),
        make_message("m3", ["male", "female"]),
        make_message("f1", ["female"]),
        make_message("f2", ["female", "other"]),
    ]


@pytest.fixture
def milestones():
    return [
        MilestoneMessage(
            day=7,
            emoji="🔥",
            title="One whole week!",
            message="A full week of healing.",
            notification="ONE WEEK 🔥",
        ),
    ]


@pytest.fixture
def generic_templates():
    return [
        GenericStreakTemplate(
            emoji="⭐",
            title="Day {streak}!",
            message="{streak} days of choosing yourself.",
            notification="Day {streak} ⭐ keep going",
        ),
    ]


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def catalog(quiz_messages, milestones, generic_templates, rng):
    return MessageCatalog(quiz_messages, milestones, generic_templates, rng=rng)


@pytest.fixture
def tracker(catalog, rng):
    return UsedMessageTracker(catalog, rng=rng)


# ---------------------------------------------------------------------------
# Device boundary, settings and clock
# ---------------------------------------------------------------------------


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        timezone="Europe/London",
        launch_settle_seconds=0,
        quiz_tap_settle_seconds=0,
        celebration_settle_seconds=0,
        permission_poll_interval_seconds=0,
    )


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def center():
    """Authorized in-memory center."""
    return InMemoryNotificationCenter(status=AuthorizationStatus.AUTHORIZED)


@pytest.fixture
def gate(center):
    return AuthorizationGate(center)


@pytest.fixture
def scheduler(center, gate, catalog, tracker, settings, rng, clock):
    return NotificationScheduler(center, gate, catalog, tracker, settings, rng=rng, clock=clock)


# ---------------------------------------------------------------------------
# Persistence and UI
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_redis():
    """Mock async Redis client with common operations."""
    redis = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock()
    redis.delete = AsyncMock()
    redis.publish = AsyncMock()
    redis.hset = AsyncMock()
    redis.hdel = AsyncMock()
    redis.hgetall = AsyncMock(return_value={})
    return redis


@pytest.fixture
def preferences():
    """Store without Redis: values live in process memory."""
    return PreferenceStore(redis_client=None, namespace="test")


@pytest.fixture
def presenter():
    presenter = Presenter(redis_client=None, namespace="test")
    presenter.show_quiz = AsyncMock(wraps=presenter.show_quiz)
    presenter.show_celebration = AsyncMock(wraps=presenter.show_celebration)
    return presenter


@pytest.fixture
def reconciler(preferences, catalog, presenter):
    return StreakCelebrationReconciler(preferences, catalog, presenter, settle_delay=0)


@pytest.fixture
def router(catalog, reconciler, presenter, preferences):
    return TapRouter(
        catalog,
        reconciler,
        presenter,
        preferences,
        launch_settle_seconds=0,
        quiz_settle_seconds=0,
    )


@pytest.fixture
def notification_tools(catalog, tracker, gate, scheduler, preferences, reconciler, router):
    return NotificationTools(
        catalog=catalog,
        tracker=tracker,
        gate=gate,
        scheduler=scheduler,
        preferences=preferences,
        reconciler=reconciler,
        router=router,
    )

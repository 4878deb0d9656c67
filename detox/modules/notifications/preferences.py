"""Durable notification preferences and celebration markers."""

from __future__ import annotations

import structlog
from pydantic import ValidationError

from shared.schemas.notifications import NotificationPreferences, TrackingState

logger = structlog.get_logger()

LAST_SHOWN_STREAK_KEY = "last_shown_streak_day"
PREFERENCES_KEY = "preferences"
TRACKING_KEY = "tracking"


class PreferenceStore:
    """Redis-backed key/value store with a process-local fallback.

    Without Redis, values live in memory for the life of the process.
    Read errors fall back to defaults and write errors are logged, so a
    Redis outage degrades to "no celebration" rather than a crash.
    """

    def __init__(self, redis_client=None, namespace: str = "detox"):
        self._redis = redis_client
        self._namespace = namespace
        self._local: dict[str, str] = {}

    def _key(self, name: str) -> str:
        return f"{self._namespace}:{name}"

    async def _get(self, name: str) -> str | None:
        key = self._key(name)
        if self._redis is None:
            return self._local.get(key)
        try:
            return await self._redis.get(key)
        except Exception as e:
            logger.warning("preference_get_error", key=key, error=str(e))
            return None

    async def _set(self, name: str, value: str) -> None:
        key = self._key(name)
        if self._redis is None:
            self._local[key] = value
            return
        try:
            await self._redis.set(key, value)
            logger.debug("preference_set", key=key)
        except Exception as e:
            logger.warning("preference_set_error", key=key, error=str(e))

    # -- last shown streak -------------------------------------------------

    async def get_last_shown_streak_day(self) -> int:
        raw = await self._get(LAST_SHOWN_STREAK_KEY)
        if raw is None:
            return 0
        try:
            return max(int(raw), 0)
        except (TypeError, ValueError):
            logger.warning("last_shown_streak_unreadable", value=raw)
            return 0

    async def set_last_shown_streak_day(self, day: int) -> None:
        await self._set(LAST_SHOWN_STREAK_KEY, str(max(day, 0)))

    async def reset_last_shown_streak_day(self) -> None:
        await self._set(LAST_SHOWN_STREAK_KEY, "0")

    # -- feature flags -----------------------------------------------------

    async def get_preferences(self) -> NotificationPreferences:
        raw = await self._get(PREFERENCES_KEY)
        if raw is None:
            return NotificationPreferences()
        try:
            return NotificationPreferences.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("preferences_unreadable", error=str(e))
            return NotificationPreferences()

    async def set_preferences(self, preferences: NotificationPreferences) -> None:
        await self._set(PREFERENCES_KEY, preferences.model_dump_json())

    async def update_preferences(self, **changes: bool) -> NotificationPreferences:
        current = await self.get_preferences()
        updated = current.model_copy(update=changes)
        await self.set_preferences(updated)
        return updated

    # -- tracking state ----------------------------------------------------

    async def get_tracking_state(self) -> TrackingState | None:
        raw = await self._get(TRACKING_KEY)
        if raw is None:
            return None
        try:
            return TrackingState.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("tracking_state_unreadable", error=str(e))
            return None

    async def set_tracking_state(self, state: TrackingState) -> None:
        await self._set(TRACKING_KEY, state.model_dump_json())

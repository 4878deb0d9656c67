"""Wire schemas for local notifications and the events they produce."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class NotificationTypeTag(str, Enum):
    """Category of a scheduled notification.

    The value doubles as the identifier prefix, so all pending requests of
    one category can be removed without tracking their ids.
    """

    QUIZ = "ex_quiz"
    STREAK_CELEBRATION = "streak_celebration"


class AuthorizationStatus(str, Enum):
    NOT_DETERMINED = "not_determined"
    DENIED = "denied"
    AUTHORIZED = "authorized"
    PROVISIONAL = "provisional"
    RESTRICTED = "restricted"


class NotificationRequest(BaseModel):
    """A local notification handed to the device for future delivery."""

    identifier: str
    fire_at: datetime
    title: str
    body: str
    payload: dict[str, Any] = Field(default_factory=dict)

    def has_type(self, type_tag: NotificationTypeTag) -> bool:
        return self.identifier.startswith(type_tag.value)


class NotificationTap(BaseModel):
    """A delivered notification the user tapped, sent back by the device."""

    identifier: str = ""
    payload: dict[str, Any] = Field(default_factory=dict)


class NotificationPreferences(BaseModel):
    """Per-feature notification toggles persisted for the user."""

    quiz_enabled: bool = False
    streak_celebration_enabled: bool = False
    permission_requested: bool = False


class TrackingState(BaseModel):
    """Latest streak values reported by the tracking side of the app."""

    current_streak: int = Field(default=0, ge=0)
    onboarding_completed: bool = False


class UiEvent(BaseModel):
    """Instruction for the client to present a screen."""

    kind: str  # "quiz" | "celebration"
    data: dict[str, Any] = Field(default_factory=dict)

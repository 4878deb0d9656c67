"""Static notification content: quiz messages and streak celebrations."""

from __future__ import annotations

import json
import random
from pathlib import Path
from typing import NamedTuple

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = structlog.get_logger()

DEFAULT_CONTENT_DIR = Path(__file__).parent / "data"
QUIZ_MESSAGES_FILE = "quiz_messages.json"
STREAK_CELEBRATIONS_FILE = "streak_celebrations.json"

STREAK_PLACEHOLDER = "{streak}"


class MessageVariant(BaseModel):
    """A quiz-style message: the ex's text plus the multiple-choice decode."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    text: str
    audience_tags: list[str] = Field(alias="audienceTags")
    decoy_answers: list[str] = Field(default_factory=list, alias="decoyAnswers")
    correct_answer: str = Field(alias="correctAnswer")
    explanation: str = ""


class MilestoneMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: int
    emoji: str
    title: str
    message: str
    notification: str


class Celebration(NamedTuple):
    emoji: str
    title: str
    message: str
    notification: str


class GenericStreakTemplate(BaseModel):
    """Celebration text for days without a milestone of their own."""

    model_config = ConfigDict(frozen=True)

    emoji: str
    title: str
    message: str
    notification: str

    def formatted(self, streak: int) -> Celebration:
        value = str(streak)
        return Celebration(
            emoji=self.emoji.replace(STREAK_PLACEHOLDER, value),
            title=self.title.replace(STREAK_PLACEHOLDER, value),
            message=self.message.replace(STREAK_PLACEHOLDER, value),
            notification=self.notification.replace(STREAK_PLACEHOLDER, value),
        )


def fallback_celebration(day: int) -> Celebration:
    """Last-resort celebration used when no content is bundled."""
    return Celebration(
        emoji="🔥",
        title=f"Day {day}!",
        message="Keep going strong!",
        notification=f"Day {day}! 🔥 Keep that energy",
    )


def _read_json(path: Path) -> dict:
    """Read a JSON object from disk, or {} if missing/unreadable."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.warning("content_file_missing", path=str(path))
        return {}
    except (OSError, ValueError) as e:
        logger.warning("content_file_unreadable", path=str(path), error=str(e))
        return {}
    if not isinstance(data, dict):
        logger.warning("content_file_malformed", path=str(path))
        return {}
    return data


def _parse_list(model: type[BaseModel], raw: object, source: str) -> list:
    """Validate a list of records. A malformed section yields []."""
    if not isinstance(raw, list):
        return []
    try:
        return [model.model_validate(item) for item in raw]
    except ValidationError as e:
        logger.warning(
            "content_section_malformed",
            source=source,
            errors=e.error_count(),
        )
        return []


class MessageCatalog:
    """Immutable content loaded once at startup.

    Loading never raises: missing or malformed files produce empty
    collections, and every lookup below has a fallback for that case.
    """

    def __init__(
        self,
        quiz_messages: list[MessageVariant] | None = None,
        milestones: list[MilestoneMessage] | None = None,
        generic_templates: list[GenericStreakTemplate] | None = None,
        rng: random.Random | None = None,
    ):
        self._quiz_messages = tuple(quiz_messages or ())
        self._milestones = {m.day: m for m in (milestones or ())}
        self._generic_templates = tuple(generic_templates or ())
        self._by_id = {m.id: m for m in self._quiz_messages}
        self._rng = rng or random.Random()

    @classmethod
    def from_directory(
        cls, content_dir: str | Path | None = None, rng: random.Random | None = None
    ) -> MessageCatalog:
        directory = Path(content_dir) if content_dir else DEFAULT_CONTENT_DIR
        quiz_messages = load_quiz_messages(directory / QUIZ_MESSAGES_FILE)
        celebrations_path = directory / STREAK_CELEBRATIONS_FILE
        catalog = cls(
            quiz_messages=quiz_messages,
            milestones=load_milestones(celebrations_path),
            generic_templates=load_generic_templates(celebrations_path),
            rng=rng,
        )
        logger.info(
            "catalog_loaded",
            content_dir=str(directory),
            quiz_messages=len(catalog.quiz_messages),
            milestones=len(catalog.milestones),
            generic_templates=len(catalog.generic_templates),
        )
        return catalog

    @property
    def quiz_messages(self) -> tuple[MessageVariant, ...]:
        return self._quiz_messages

    @property
    def milestones(self) -> tuple[MilestoneMessage, ...]:
        return tuple(self._milestones.values())

    @property
    def generic_templates(self) -> tuple[GenericStreakTemplate, ...]:
        return self._generic_templates

    def messages_for(self, audience_tag: str) -> list[MessageVariant]:
        return [m for m in self._quiz_messages if audience_tag in m.audience_tags]

    def get_message(self, message_id: str) -> MessageVariant | None:
        return self._by_id.get(message_id)

    def random_message(self) -> MessageVariant | None:
        if not self._quiz_messages:
            return None
        return self._rng.choice(self._quiz_messages)

    def get_celebration(self, day: int) -> Celebration:
        """Resolve celebration text for a streak day.

        Exact milestone first, then a random generic template with the
        day substituted, then the hardcoded fallback.
        """
        milestone = self._milestones.get(day)
        if milestone is not None:
            return Celebration(
                milestone.emoji, milestone.title, milestone.message, milestone.notification
            )
        if self._generic_templates:
            return self._rng.choice(self._generic_templates).formatted(day)
        return fallback_celebration(day)


def load_quiz_messages(path: str | Path) -> list[MessageVariant]:
    data = _read_json(Path(path))
    return _parse_list(MessageVariant, data.get("messages"), "messages")


def load_milestones(path: str | Path) -> list[MilestoneMessage]:
    data = _read_json(Path(path))
    return _parse_list(MilestoneMessage, data.get("milestones"), "milestones")


def load_generic_templates(path: str | Path) -> list[GenericStreakTemplate]:
    data = _read_json(Path(path))
    return _parse_list(GenericStreakTemplate, data.get("generic"), "generic")

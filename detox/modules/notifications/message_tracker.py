"""Non-repeating quiz message selection."""

from __future__ import annotations

import random

import structlog

from modules.notifications.catalog import MessageCatalog, MessageVariant

logger = structlog.get_logger()

AUDIENCE_MALE = "male"
AUDIENCE_FEMALE = "female"
AUDIENCE_OTHER = "other"


def normalize_audience_tag(raw: str | None) -> str:
    """Map a free-form profile value onto a catalog audience tag.

    "female" contains "male", so it has to be ruled out first.
    """
    value = (raw or "").lower()
    if "male" in value and "female" not in value:
        return AUDIENCE_MALE
    if "female" in value:
        return AUDIENCE_FEMALE
    return AUDIENCE_OTHER


class UsedMessageTracker:
    """Remembers which quiz messages were delivered during this process.

    The used set is process-lifetime only. When every message for a tag
    has been used, the set is cleared and selection starts over, so the
    whole catalog is eventually covered and a tag with at least one
    message always yields a pick.
    """

    def __init__(self, catalog: MessageCatalog, rng: random.Random | None = None):
        self.catalog = catalog
        self._rng = rng or random.Random()
        self._used_ids: set[str] = set()

    @property
    def used_ids(self) -> frozenset[str]:
        return frozenset(self._used_ids)

    def pick_message(self, audience_tag: str) -> MessageVariant | None:
        matching = self.catalog.messages_for(audience_tag)
        if not matching:
            return None

        unused = [m for m in matching if m.id not in self._used_ids]
        if not unused:
            logger.info(
                "quiz_messages_exhausted",
                audience_tag=audience_tag,
                used=len(self._used_ids),
            )
            self._used_ids.clear()
            unused = matching

        return self._rng.choice(unused)

    def mark_used(self, message_id: str) -> None:
        self._used_ids.add(message_id)

    def get_message(self, message_id: str) -> MessageVariant | None:
        return self.catalog.get_message(message_id)

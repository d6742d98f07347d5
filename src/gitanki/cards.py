from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

LOGGER = logging.getLogger(__name__)

WORD_FIELD = "Word"


class CardStatus(str, Enum):
    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    RELEARNING = "relearning"

    @classmethod
    def from_code(cls, code: int) -> "CardStatus":
        """Map an Anki queue/type code; unknown codes count as ``review``."""
        status = _CODE_TO_STATUS.get(code)
        if status is None:
            LOGGER.warning("Unhandled card queue %d. Defaulting to 'review'.", code)
            return cls.REVIEW
        return status


_CODE_TO_STATUS = {
    0: CardStatus.NEW,
    1: CardStatus.LEARNING,
    2: CardStatus.REVIEW,
    3: CardStatus.RELEARNING,
}


class MalformedRecordError(ValueError):
    """A card record had nothing usable to log."""


@dataclass(frozen=True)
class Card:
    word: str
    status: CardStatus


def classify(record: Mapping[str, Any], card_id: Optional[object] = None) -> Card:
    """Build a ``Card`` from a raw ``cardsInfo`` record.

    The word comes from the ``Word`` field, falling back to the first
    non-empty field in record order.  The status comes from ``queue``, then
    ``type``, then defaults to ``review``.
    """

    label = card_id if card_id is not None else record.get("cardId", "?")
    fields = record.get("fields")
    if not isinstance(fields, Mapping):
        raise MalformedRecordError(f"could not get card fields map for card ID {label}")

    word = field_value(fields, WORD_FIELD)
    if not word:
        LOGGER.warning(
            "'%s' field is empty or missing for card ID %s. Trying other fields.",
            WORD_FIELD,
            label,
        )
        for name in fields:
            value = field_value(fields, name)
            if value:
                LOGGER.warning("Using field '%s' with value '%s' as fallback.", name, value)
                word = value
                break
        else:
            raise MalformedRecordError(f"no usable field found for card ID {label}")

    return Card(word=word, status=card_status(record))


def field_value(fields: Mapping[str, Any], name: str) -> str:
    field = fields.get(name)
    if isinstance(field, Mapping):
        value = field.get("value")
        if isinstance(value, str):
            return value
    return ""


def card_status(record: Mapping[str, Any]) -> CardStatus:
    code = _numeric(record.get("queue"))
    if code is None:
        code = _numeric(record.get("type"))
    if code is None:
        LOGGER.warning(
            "Could not determine queue/type for card %s. Defaulting to 'review'.",
            record.get("cardId", "?"),
        )
        return CardStatus.REVIEW
    return CardStatus.from_code(int(code))


def _numeric(value: Any) -> Optional[float]:
    # bool is an int subclass but never a queue code
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)

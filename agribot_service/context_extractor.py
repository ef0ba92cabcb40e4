"""
Recovers the detected condition name from a conversation transcript.

The first assistant message is produced by the detection step. It is expected
to carry the condition as a tagged ``condition`` field; older producers only
embed it in prose as ``affected by: **NAME**``, which is parsed as a fallback.
"""
import re
from dataclasses import dataclass
from typing import Optional, Sequence

from .models import ChatMessage
from .structured_logging import StructuredLogger

logger = StructuredLogger(__name__)

UNKNOWN_CONDITION = "Unknown"

CONDITION_PATTERN = re.compile(r"affected by: \*\*(.*?)\*\*")

SOURCE_TAGGED = "tagged"
SOURCE_HEURISTIC = "heuristic"
SOURCE_UNKNOWN = "unknown"


@dataclass(frozen=True)
class ConditionMatch:
    name: str
    source: str

    @property
    def known(self) -> bool:
        return self.source != SOURCE_UNKNOWN


CONDITION_UNKNOWN = ConditionMatch(UNKNOWN_CONDITION, SOURCE_UNKNOWN)


def _first_assistant_message(transcript: Sequence[ChatMessage]) -> Optional[ChatMessage]:
    for message in transcript:
        if message.role == "assistant":
            return message
    return None


def extract_condition(transcript: Sequence[ChatMessage]) -> ConditionMatch:
    message = _first_assistant_message(transcript)
    if message is None:
        logger.info("No assistant message in transcript; condition unknown")
        return CONDITION_UNKNOWN

    if message.condition and message.condition.strip():
        return ConditionMatch(message.condition.strip(), SOURCE_TAGGED)

    match = CONDITION_PATTERN.search(message.content)
    if match and match.group(1).strip():
        return ConditionMatch(match.group(1).strip(), SOURCE_HEURISTIC)

    logger.warning(
        "First assistant message has no condition marker",
        content_preview=message.content[:80],
    )
    return CONDITION_UNKNOWN


def extract_condition_name(transcript: Sequence[ChatMessage]) -> str:
    return extract_condition(transcript).name


def format_detection_message(label: str, confidence: float) -> ChatMessage:
    """Opening assistant message for a classification result.

    Carries the condition both tagged and in the prose marker so either kind
    of reader can recover it.
    """
    label = label.strip()
    content = (
        f"Your plant appears to be affected by: **{label}** "
        f"({confidence:.0%} confidence). Ask me anything about treating it."
    )
    return ChatMessage(role="assistant", content=content, condition=label)

"""
Boundary validation for inbound request bodies.

Nothing here touches the network: a request that fails validation is
rejected before either upstream is called.
"""

import re
from typing import Any, List

from pydantic import ValidationError

from .errors import InvalidRequest
from .models import ChatMessage, ChatRequest, PredictRequest
from .structured_logging import StructuredLogger

logger = StructuredLogger(__name__)


MAX_MESSAGE_LENGTH = 10000

# Keeps \t, \n and \r; markdown in assistant messages must survive intact.
_CONTROL_CHARS = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]')


def sanitize_content(text: str, max_length: int = MAX_MESSAGE_LENGTH) -> str:
    """Remove control characters and cap length."""
    if not text:
        return ""
    text = _CONTROL_CHARS.sub('', text)
    if len(text) > max_length:
        logger.warning(
            "Message content truncated",
            original_length=len(text),
            max_length=max_length,
        )
        text = text[:max_length]
    return text


def validate_chat_request(body: Any) -> List[ChatMessage]:
    """Return the sanitized transcript from a /chat body.

    Raises InvalidRequest when ``messages`` is missing, not an array, empty,
    or holds something that is not a ChatMessage.
    """
    if not isinstance(body, dict):
        raise InvalidRequest("Request body must be a JSON object")
    try:
        request = ChatRequest.model_validate(body)
    except ValidationError as e:
        raise InvalidRequest(str(e.errors()[0].get("msg", "Invalid request"))) from e

    return [
        message.model_copy(update={"content": sanitize_content(message.content)})
        for message in request.messages
    ]


def validate_predict_request(body: Any) -> str:
    """Return the data URL from a /predict body."""
    if not isinstance(body, dict):
        raise InvalidRequest("Request body must be a JSON object")
    try:
        request = PredictRequest.model_validate(body)
    except ValidationError as e:
        raise InvalidRequest(str(e.errors()[0].get("msg", "Invalid request"))) from e
    return request.data_url

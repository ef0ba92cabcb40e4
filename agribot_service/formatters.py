"""
Response body shapes for the chat and prediction routes.
"""
from .errors import AgriBotError, InternalError
from .prompts import FALLBACK_REPLY

INVALID_REQUEST = "Invalid request"
CHAT_FAILURE = "Failed to process request"
PREDICTION_FAILURE = "Failed to fetch prediction"
INTERNAL_FAILURE = "Internal server error"


def chat_reply(reply: str) -> dict:
    return {"reply": reply}


def chat_failure() -> dict:
    """Always carries a reply so the chat UI has something to render."""
    return {"error": CHAT_FAILURE, "reply": FALLBACK_REPLY}


def invalid_request() -> dict:
    return {"error": INVALID_REQUEST}


def prediction_failure(exc: AgriBotError) -> dict:
    if isinstance(exc, InternalError):
        return {"error": INTERNAL_FAILURE, "details": exc.detail}
    return {"error": PREDICTION_FAILURE}

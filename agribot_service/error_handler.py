"""
Translates pipeline failures into safe HTTP responses.

Raw upstream bodies and tracebacks go to the log, never to the caller.
"""
from fastapi.responses import JSONResponse

from . import formatters
from .errors import AgriBotError, InternalError, InvalidRequest
from .structured_logging import StructuredLogger, log_failure

logger = StructuredLogger(__name__)


def classify(exc: Exception) -> AgriBotError:
    """Map any exception onto the service taxonomy."""
    if isinstance(exc, AgriBotError):
        return exc
    logger.exception("Unexpected error", error_type=type(exc).__name__)
    return InternalError(str(exc))


def chat_error_response(exc: Exception) -> JSONResponse:
    error = classify(exc)
    if isinstance(error, InvalidRequest):
        logger.info("chat rejected", reason=error.message)
        return JSONResponse(formatters.invalid_request(), status_code=error.status_code)
    log_failure("chat", error)
    return JSONResponse(formatters.chat_failure(), status_code=error.status_code)


def predict_error_response(exc: Exception) -> JSONResponse:
    error = classify(exc)
    if isinstance(error, InvalidRequest):
        logger.info("predict rejected", reason=error.message)
        return JSONResponse(formatters.invalid_request(), status_code=error.status_code)
    log_failure("predict", error)
    return JSONResponse(formatters.prediction_failure(error), status_code=error.status_code)

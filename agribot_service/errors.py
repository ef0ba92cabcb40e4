"""
Error taxonomy shared by the chat and prediction paths.

Every failure that leaves a pipeline stage is one of these kinds. The HTTP
layer only ever needs ``status_code`` and the safe message; upstream bodies
stay in the logs.
"""
from typing import Optional


class AgriBotError(Exception):
    """Base class for failures the service knows how to report."""

    status_code = 500
    retryable = False

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class InvalidRequest(AgriBotError):
    """Client sent a body we cannot use. Caller must fix and resend."""

    status_code = 400


class UpstreamError(AgriBotError):
    """Upstream answered, but with a non-success status or an unusable body."""

    retryable = True

    def __init__(
        self,
        message: str = "",
        upstream_status: Optional[int] = None,
        reason: str = "status",
    ):
        super().__init__(message)
        self.upstream_status = upstream_status
        self.reason = reason  # "status" or "shape"


class UpstreamUnreachable(AgriBotError):
    """Network failure or timeout talking to an upstream."""

    retryable = True


class InternalError(AgriBotError):
    """Unexpected failure inside this service."""

    def __init__(self, message: str = "", detail: str = "Unexpected error"):
        super().__init__(message)
        # Safe to return to the caller; never a traceback or upstream body.
        self.detail = detail


class ConfigurationError(RuntimeError):
    """Required settings are missing at startup."""

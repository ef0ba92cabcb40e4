"""
Completion Client - HTTP client for an OpenAI-compatible chat completions API.

Used against Groq. Translates transport and protocol failures into the
service's error taxonomy; the upstream body is only ever logged.
"""
import httpx
from typing import Optional

from .config import DEFAULT_COMPLETION_MODEL, DEFAULT_GROQ_BASE_URL, DEFAULT_TIMEOUT_SECONDS
from .errors import UpstreamError, UpstreamUnreachable
from .models import CompletionRequest
from .structured_logging import StructuredLogger

logger = StructuredLogger(__name__)


class CompletionClient:
    """Async client for /chat/completions with a bearer credential."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_GROQ_BASE_URL,
        model: str = DEFAULT_COMPLETION_MODEL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {api_key}",
            },
        )

    async def complete(self, request: CompletionRequest) -> str:
        """Send the request and return the first choice's message content.

        Raises:
            UpstreamError: non-2xx status, or a body without choices/content
            UpstreamUnreachable: connection failure or timeout
        """
        try:
            response = await self.client.post("/chat/completions", json=request.to_payload())
        except httpx.TimeoutException as e:
            logger.error("Completion request timed out", timeout=self.timeout)
            raise UpstreamUnreachable(f"Completion endpoint timed out after {self.timeout}s") from e
        except httpx.RequestError as e:
            logger.error("Completion endpoint unreachable", error=str(e))
            raise UpstreamUnreachable(f"Completion endpoint unreachable: {e}") from e

        if not response.is_success:
            logger.error(
                "Completion endpoint error",
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise UpstreamError(
                f"Completion endpoint returned {response.status_code}",
                upstream_status=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            logger.error("Completion response is not JSON", body=response.text[:200])
            raise UpstreamError(
                "Completion response is not JSON",
                upstream_status=response.status_code,
                reason="shape",
            ) from e

        content = _first_choice_content(data)
        if content is None:
            logger.error("Completion response missing choices/message content")
            raise UpstreamError(
                "Completion response missing choices/message content",
                upstream_status=response.status_code,
                reason="shape",
            )
        return content

    async def close(self):
        await self.client.aclose()


def _first_choice_content(data: object) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first_choice = choices[0]
    if not isinstance(first_choice, dict):
        return None
    message = first_choice.get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    return content if isinstance(content, str) else None

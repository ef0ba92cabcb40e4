"""
Prediction Proxy - forwards image data URLs to the classification endpoint.

The upstream body is relayed unchanged once it has been checked against the
shape the UI reads (``predictions.class.clean`` / ``predictions.confidence``).
"""
import httpx
from typing import Optional

from pydantic import ValidationError

from .config import DEFAULT_TIMEOUT_SECONDS
from .errors import InternalError, UpstreamError, UpstreamUnreachable
from .models import PredictionEnvelope, PredictionResult
from .structured_logging import StructuredLogger

logger = StructuredLogger(__name__)

PREDICT_PATH = "/predict-data-url"


def parse_prediction(body: object) -> PredictionResult:
    """Normalized view of an inference response.

    Raises UpstreamError (reason "shape") if the body does not match.
    """
    try:
        envelope = PredictionEnvelope.model_validate(body)
    except ValidationError as e:
        raise UpstreamError(
            "Prediction response has unexpected shape",
            reason="shape",
        ) from e
    return PredictionResult(
        class_label=envelope.predictions.class_.clean,
        confidence=envelope.predictions.confidence,
    )


class PredictionProxy:
    """Async client for the inference endpoint."""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    async def predict(self, data_url: str) -> dict:
        """Forward the payload and return the upstream JSON body verbatim.

        Raises:
            UpstreamError: non-2xx status or unexpected body shape
            UpstreamUnreachable: connection failure or timeout
            InternalError: body is not JSON
        """
        try:
            response = await self.client.post(PREDICT_PATH, json={"data_url": data_url})
        except httpx.TimeoutException as e:
            logger.error("Prediction request timed out", timeout=self.timeout)
            raise UpstreamUnreachable(f"Inference endpoint timed out after {self.timeout}s") from e
        except httpx.RequestError as e:
            logger.error("Inference endpoint unreachable", error=str(e))
            raise UpstreamUnreachable(f"Inference endpoint unreachable: {e}") from e

        if not response.is_success:
            logger.error(
                "Inference endpoint error",
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise UpstreamError(
                f"Inference endpoint returned {response.status_code}",
                upstream_status=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            logger.error("Inference response is not JSON", body=response.text[:200])
            raise InternalError(
                "Inference response is not JSON",
                detail="Invalid response from prediction service",
            ) from e

        result = parse_prediction(data)
        logger.info(
            "Prediction received",
            class_label=result.class_label,
            confidence=result.confidence,
        )
        return data

    async def close(self):
        await self.client.aclose()

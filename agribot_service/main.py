"""
AgriBot Service - FastAPI Backend

Request-transformation layer for the plant-health assistant:
  - /chat:    transcript -> condition-aware prompt -> Groq completion
  - /predict: image data URL -> classification endpoint, relayed back
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Optional
import logging
import time

from .chat_service import ChatService
from .completion_client import CompletionClient
from .config import Settings, cors_origins_from_env
from .error_handler import chat_error_response, predict_error_response
from .errors import InvalidRequest
from .formatters import chat_reply
from .knowledge_base import KnowledgeBase, get_knowledge_base
from .prediction_proxy import PredictionProxy
from .structured_logging import StructuredLogger, bind_request, log_request, setup_logging
from .validation import validate_chat_request, validate_predict_request

logger = StructuredLogger(__name__)


async def _read_json(request: Request):
    try:
        return await request.json()
    except ValueError as e:
        raise InvalidRequest("Request body is not valid JSON") from e


def create_app(
    settings: Optional[Settings] = None,
    knowledge_base: Optional[KnowledgeBase] = None,
    completion_client: Optional[CompletionClient] = None,
    prediction_proxy: Optional[PredictionProxy] = None,
) -> FastAPI:
    """Build the ASGI app.

    Settings are resolved at startup, not import, so a missing credential
    stops the server from starting instead of breaking imports.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        resolved = settings or Settings.from_env()
        setup_logging(
            level=getattr(logging, resolved.log_level, logging.INFO),
            use_json=resolved.log_json,
        )
        logger.info("Starting AgriBot Service...", model=resolved.completion_model)

        client = completion_client or CompletionClient(
            api_key=resolved.groq_api_key,
            base_url=resolved.groq_base_url,
            model=resolved.completion_model,
            timeout=resolved.upstream_timeout,
        )
        proxy = prediction_proxy or PredictionProxy(
            base_url=resolved.api_endpoint,
            timeout=resolved.upstream_timeout,
        )
        kb = knowledge_base or get_knowledge_base()

        app.state.settings = resolved
        app.state.knowledge_base = kb
        app.state.chat_service = ChatService(kb, client)
        app.state.prediction_proxy = proxy

        logger.info("Ready to serve requests.")
        try:
            yield
        finally:
            logger.info("Shutting down...")
            try:
                await client.close()
            finally:
                await proxy.close()

    app = FastAPI(
        title="AgriBot Service",
        description="Plant disease chat and classification proxy",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins if settings else cors_origins_from_env(),
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        """Request ID tracking and access logging."""
        start_time = time.time()
        request_id = bind_request(request.url.path, request.headers.get("X-Request-ID"))

        response = await call_next(request)

        duration_ms = (time.time() - start_time) * 1000
        if request.url.path not in ["/health", "/docs", "/openapi.json"]:
            log_request(
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=duration_ms,
            )

        response.headers["X-Request-ID"] = request_id
        return response

    @app.get("/health")
    async def health(request: Request):
        state = request.app.state
        return {
            "status": "healthy",
            "completion_model": state.settings.completion_model,
            "inference_endpoint_configured": bool(state.settings.api_endpoint),
            "known_conditions": len(state.knowledge_base.names()),
        }

    async def chat(request: Request):
        """Answer the latest user turn with condition-aware context."""
        try:
            transcript = validate_chat_request(await _read_json(request))
            reply = await request.app.state.chat_service.reply(transcript)
        except Exception as e:
            return chat_error_response(e)
        return JSONResponse(chat_reply(reply))

    async def predict(request: Request):
        """Relay an image data URL to the classifier."""
        try:
            data_url = validate_predict_request(await _read_json(request))
            result = await request.app.state.prediction_proxy.predict(data_url)
        except Exception as e:
            return predict_error_response(e)
        return JSONResponse(result)

    app.add_api_route("/chat", chat, methods=["POST"])
    app.add_api_route("/predict", predict, methods=["POST"])
    # Paths the Next.js frontend calls.
    app.add_api_route("/api/predict/chat", chat, methods=["POST"], include_in_schema=False)
    app.add_api_route("/api/predict", predict, methods=["POST"], include_in_schema=False)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)

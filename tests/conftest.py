"""Shared fixtures: settings and mocked upstream transports."""
import json
import sys
import os

import httpx
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from agribot_service.completion_client import CompletionClient
from agribot_service.config import Settings
from agribot_service.prediction_proxy import PredictionProxy


GROQ_BASE_URL = "https://groq.test/openai/v1"
API_ENDPOINT = "https://inference.test"


def completion_body(content: str = "Apply neem oil weekly.") -> dict:
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "choices": [
            {"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}
        ],
    }


def prediction_body(label: str = "Powdery Mildew", confidence: float = 0.92) -> dict:
    return {"predictions": {"class": {"clean": label, "raw": label.lower()}, "confidence": confidence}}


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler):
        self.requests = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)

    def json_bodies(self):
        return [json.loads(r.content) for r in self.requests]


def respond_json(body, status_code: int = 200):
    return lambda request: httpx.Response(status_code, json=body)


@pytest.fixture
def settings():
    return Settings(
        groq_api_key="test-key",
        api_endpoint=API_ENDPOINT,
        groq_base_url=GROQ_BASE_URL,
        upstream_timeout=5.0,
        log_json=False,
    )


@pytest.fixture
def make_completion_client():
    def _make(handler):
        transport = RecordingTransport(handler)
        client = CompletionClient(
            api_key="test-key",
            base_url=GROQ_BASE_URL,
            timeout=5.0,
            transport=transport,
        )
        return client, transport
    return _make


@pytest.fixture
def make_prediction_proxy():
    def _make(handler):
        transport = RecordingTransport(handler)
        proxy = PredictionProxy(base_url=API_ENDPOINT, timeout=5.0, transport=transport)
        return proxy, transport
    return _make

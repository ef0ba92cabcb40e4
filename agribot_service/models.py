"""
Pydantic request/response models for the AgriBot Service API.
"""
from pydantic import BaseModel, Field, field_validator
from typing import Literal, Optional, List


# --- Chat ---

class ChatMessage(BaseModel):
    # Any role is accepted here; only user and assistant reach the model.
    role: str
    content: str
    # Tagged condition name; set by producers of the detection message.
    condition: Optional[str] = None


class ChatRequest(BaseModel):
    messages: List[ChatMessage]

    @field_validator("messages")
    @classmethod
    def messages_not_empty(cls, v: List[ChatMessage]) -> List[ChatMessage]:
        if not v:
            raise ValueError("messages cannot be empty")
        return v


class CompletionRequest(BaseModel):
    messages: List[ChatMessage]
    model: str
    temperature: float = 0.5
    max_completion_tokens: int = 1024
    top_p: float = 1
    stream: Literal[False] = False

    def to_payload(self) -> dict:
        """Body for an OpenAI-compatible /chat/completions call."""
        return {
            "messages": [{"role": m.role, "content": m.content} for m in self.messages],
            "model": self.model,
            "temperature": self.temperature,
            "max_completion_tokens": self.max_completion_tokens,
            "top_p": self.top_p,
            "stream": self.stream,
        }


# --- Prediction ---

class PredictRequest(BaseModel):
    data_url: str

    @field_validator("data_url")
    @classmethod
    def data_url_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("data_url cannot be empty")
        return v


class PredictedClass(BaseModel):
    clean: str


class Predictions(BaseModel):
    class_: PredictedClass = Field(alias="class")
    confidence: float = Field(ge=0.0, le=1.0, strict=True)


class PredictionEnvelope(BaseModel):
    """Shape the inference endpoint is expected to return."""
    predictions: Predictions


class PredictionResult(BaseModel):
    class_label: str
    confidence: float

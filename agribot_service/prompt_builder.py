"""
Assembles the message list sent to the completion model.
"""
from typing import List, Sequence

from .models import ChatMessage, CompletionRequest
from .prompts import SYSTEM_PROMPT

ALLOWED_ROLES = ("user", "assistant")


def filter_transcript(transcript: Sequence[ChatMessage]) -> List[ChatMessage]:
    """Keep user/assistant turns in order. System, tool and any other roles are dropped."""
    return [message for message in transcript if message.role in ALLOWED_ROLES]


def build_system_prompt(condition: str, knowledge: str) -> str:
    return SYSTEM_PROMPT.format(condition=condition, knowledge=knowledge)


def build_messages(
    condition: str,
    knowledge: str,
    transcript: Sequence[ChatMessage],
) -> List[ChatMessage]:
    """System message first, then the filtered transcript. Inputs are not modified."""
    system = ChatMessage(role="system", content=build_system_prompt(condition, knowledge))
    return [system, *filter_transcript(transcript)]


def build_completion_request(
    condition: str,
    knowledge: str,
    transcript: Sequence[ChatMessage],
    model: str,
) -> CompletionRequest:
    return CompletionRequest(
        messages=build_messages(condition, knowledge, transcript),
        model=model,
    )

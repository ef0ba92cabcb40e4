"""
Chat pipeline: condition extraction -> knowledge lookup -> prompt -> completion.
"""
from typing import Sequence

from .completion_client import CompletionClient
from .context_extractor import extract_condition
from .knowledge_base import KnowledgeBase
from .models import ChatMessage
from .prompt_builder import build_completion_request
from .structured_logging import StructuredLogger

logger = StructuredLogger(__name__)


class ChatService:
    def __init__(self, knowledge_base: KnowledgeBase, client: CompletionClient):
        self.knowledge_base = knowledge_base
        self.client = client

    async def reply(self, transcript: Sequence[ChatMessage]) -> str:
        condition = extract_condition(transcript)
        knowledge = self.knowledge_base.get(condition.name)

        request = build_completion_request(
            condition=condition.name,
            knowledge=knowledge,
            transcript=transcript,
            model=self.client.model,
        )
        logger.info(
            "Sending completion request",
            condition=condition.name,
            condition_source=condition.source,
            message_count=len(request.messages),
        )
        return await self.client.complete(request)

"""Completion types and the chat provider abstraction."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass
class Completion:
    """Structured response from the AI service."""

    content: str
    model_id: str | None = None
    prompt_tokens: int | None = None
    output_tokens: int | None = None
    total_tokens: int | None = None
    response_id: str | None = None

    def model_info(self) -> dict[str, Any]:
        return {
            "modelId": self.model_id,
            "totalTokens": self.total_tokens,
            "promptTokens": self.prompt_tokens,
            "outputTokens": self.output_tokens,
        }


class ChatProvider(ABC):
    """Abstract base for providers that answer a system + user message pair."""

    @abstractmethod
    async def generate(self, query: str, system_prompt: str | None = None) -> Completion:
        """Send one two-turn conversation and return the completion."""
        pass

# context_compare/llm/client.py
import logging
import os
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

import anthropic

from context_compare.config import LLM_MODEL
from context_compare.models import TokenUsage

logger = logging.getLogger(__name__)

SystemPrompt = Union[str, List[Dict]]


@dataclass
class LLMResponse:
    text: str
    usage: TokenUsage


class LLMClient:
    """
    Client for the Anthropic Messages API.

    Sends one system prompt (plain string or cacheable text blocks) and a
    single user message, and returns the answer text with normalized usage.
    """

    def __init__(self, model: str = LLM_MODEL, api_key: Optional[str] = None):
        """
        Args:
            model: Anthropic model identifier
            api_key: Overrides ANTHROPIC_API_KEY when given
        """
        self.model = model
        self._api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        self._client: Optional[anthropic.Anthropic] = None

        if not self._api_key:
            logger.warning("ANTHROPIC_API_KEY not set. Model calls will fail.")

    def _get_client(self) -> anthropic.Anthropic:
        """Lazily initialize the Anthropic client."""
        if self._client is None:
            self._client = anthropic.Anthropic(api_key=self._api_key)
        return self._client

    def generate(
        self,
        system: SystemPrompt,
        question: str,
        max_tokens: int,
    ) -> LLMResponse:
        """
        Run one model call.

        Raises:
            anthropic.APIError: passed through untouched; callers decide how
            to surface it.
        """
        start = time.time()

        response = self._get_client().messages.create(
            model=self.model,
            max_tokens=max_tokens,
            system=system,
            messages=[
                {
                    "role": "user",
                    "content": question,
                }
            ],
        )

        latency = time.time() - start

        text = "".join(
            block.text for block in response.content
            if getattr(block, "type", None) == "text"
        )

        usage = usage_from_response(response.usage)

        logger.info(
            "LLM call completed",
            extra={
                "model": self.model,
                "latency_seconds": round(latency, 3),
                "input_tokens": usage.input_tokens,
                "output_tokens": usage.output_tokens,
                "cache_creation_input_tokens": usage.cache_creation_input_tokens,
                "cache_read_input_tokens": usage.cache_read_input_tokens,
            },
        )

        return LLMResponse(text=text, usage=usage)


def usage_from_response(usage) -> TokenUsage:
    """Cache counters are optional in API responses; missing means zero."""

    return TokenUsage(
        input_tokens=getattr(usage, "input_tokens", 0) or 0,
        output_tokens=getattr(usage, "output_tokens", 0) or 0,
        cache_creation_input_tokens=getattr(usage, "cache_creation_input_tokens", 0) or 0,
        cache_read_input_tokens=getattr(usage, "cache_read_input_tokens", 0) or 0,
    )

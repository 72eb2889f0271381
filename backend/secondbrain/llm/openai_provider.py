"""
OpenAI LLM Provider

Implementation using OpenAI's Chat Completions and Embeddings APIs.
Also serves OpenAI-compatible gateways through OPENAI_BASE_URL.
"""
from typing import Optional
import logging

from openai import AsyncOpenAI
from tenacity import retry, stop_after_attempt, wait_exponential

from .base import LLMProvider, LLMError, LLMRateLimitError
from ..config import settings

logger = logging.getLogger(__name__)


class OpenAIProvider(LLMProvider):
    """
    OpenAI API implementation.

    Default models: gpt-4o replies and extracts, gpt-4o-mini categorizes
    quick notes, text-embedding-3-small embeds.
    """

    def __init__(self):
        if not settings.openai_api_key:
            raise ValueError("OPENAI_API_KEY is required for OpenAI provider")
        self.client = AsyncOpenAI(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url or None,
        )

    async def _complete(
        self,
        messages: list[dict[str, str]],
        model: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
            )
            return response.choices[0].message.content or ""
        except Exception as e:
            if "rate_limit" in str(e).lower():
                raise LLMRateLimitError(f"OpenAI rate limit: {e}")
            raise LLMError(f"OpenAI error: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def generate_text(
        self,
        prompt: str,
        model: str,
        max_tokens: int = 2048,
        temperature: float = 0.7,
        system_prompt: Optional[str] = None,
    ) -> str:
        """Generate text using OpenAI Chat Completions API."""
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return await self._complete(messages, model, max_tokens, temperature)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def generate_chat(
        self,
        messages: list[dict[str, str]],
        model: str,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        system_prompt: Optional[str] = None,
    ) -> str:
        """Generate the next assistant turn using Chat Completions."""
        turns = []
        if system_prompt:
            turns.append({"role": "system", "content": system_prompt})
        turns.extend(
            {"role": m["role"], "content": m["content"]} for m in messages
        )
        return await self._complete(turns, model, max_tokens, temperature)

    async def embed_text(
        self,
        texts: list[str],
        model: str,
    ) -> list[list[float]]:
        """
        Generate embeddings using OpenAI Embeddings API.

        No retry here: EmbeddingClient owns the retry policy for embeddings.
        """
        try:
            response = await self.client.embeddings.create(
                model=model,
                input=texts,
            )
            return [item.embedding for item in response.data]

        except Exception as e:
            if "rate_limit" in str(e).lower():
                raise LLMRateLimitError(f"OpenAI rate limit: {e}")
            raise LLMError(f"OpenAI embedding error: {e}")

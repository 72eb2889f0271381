"""
Google Gemini LLM Provider

Implementation using Google's Generative AI SDK.
"""
import asyncio
from typing import Optional
import logging

import google.generativeai as genai
from tenacity import retry, stop_after_attempt, wait_exponential

from .base import LLMProvider, LLMError, LLMRateLimitError
from ..config import settings

logger = logging.getLogger(__name__)

# Gemini calls the assistant side of a chat "model"
_GEMINI_ROLES = {"user": "user", "assistant": "model"}


def _wrap_error(e: Exception, what: str) -> LLMError:
    error_str = str(e).lower()
    if "quota" in error_str or "rate" in error_str:
        return LLMRateLimitError(f"Gemini rate limit: {e}")
    return LLMError(f"Gemini {what} error: {e}")


class GeminiProvider(LLMProvider):
    """
    Google Gemini API implementation.

    Model names per tier are configured in config.py.
    """

    def __init__(self):
        if not settings.gemini_api_key:
            raise ValueError("GEMINI_API_KEY is required for Gemini provider")
        genai.configure(api_key=settings.gemini_api_key)

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
        """Generate text using Gemini Generative API."""
        try:
            gen_model = genai.GenerativeModel(
                model_name=model,
                system_instruction=system_prompt,
            )
            response = await gen_model.generate_content_async(
                prompt,
                generation_config=genai.GenerationConfig(
                    max_output_tokens=max_tokens,
                    temperature=temperature,
                ),
            )
            return response.text or ""
        except Exception as e:
            raise _wrap_error(e, "generation")

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
        """Generate the next assistant turn from the full conversation."""
        contents = [
            {"role": _GEMINI_ROLES[m["role"]], "parts": [m["content"]]}
            for m in messages
        ]
        try:
            gen_model = genai.GenerativeModel(
                model_name=model,
                system_instruction=system_prompt,
            )
            response = await gen_model.generate_content_async(
                contents,
                generation_config=genai.GenerationConfig(
                    max_output_tokens=max_tokens,
                    temperature=temperature,
                ),
            )
            return response.text or ""
        except Exception as e:
            raise _wrap_error(e, "chat")

    async def embed_text(
        self,
        texts: list[str],
        model: str,
    ) -> list[list[float]]:
        """Generate embeddings using Gemini Embeddings API."""
        logger.debug(f"embed_text called with {len(texts)} texts, model={model}")

        def _embed_batch_sync() -> list[list[float]]:
            """Synchronous embedding for all texts - runs in thread."""
            return [
                genai.embed_content(
                    model=model,
                    content=text,
                    task_type="retrieval_document",
                )["embedding"]
                for text in texts
            ]

        try:
            # The SDK call is blocking; keep it off the event loop
            return await asyncio.to_thread(_embed_batch_sync)
        except Exception as e:
            logger.error(f"Embedding failed: {e}")
            raise _wrap_error(e, "embedding")

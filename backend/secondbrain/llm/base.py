"""
LLM Provider Base Class

Abstract interface that all LLM providers must implement.
Includes JSON response handling and error types.
"""
from abc import ABC, abstractmethod
from typing import Any, Optional
import json
import logging

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Base exception for LLM errors."""
    pass


class LLMRateLimitError(LLMError):
    """Rate limit exceeded."""
    pass


class LLMInvalidResponseError(LLMError):
    """Invalid response from LLM."""
    pass


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code block, if the model added one."""
    cleaned = text.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    if cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


class LLMProvider(ABC):
    """
    Interface every model backend implements.

    Replies, extraction, categorization and embeddings all go through it,
    so OpenAI and Gemini are interchangeable.
    """

    @abstractmethod
    async def generate_text(
        self,
        prompt: str,
        model: str,
        max_tokens: int = 2048,
        temperature: float = 0.7,
        system_prompt: Optional[str] = None,
    ) -> str:
        """Single-prompt completion, used for JSON extraction and categorization."""
        pass

    @abstractmethod
    async def generate_chat(
        self,
        messages: list[dict[str, str]],
        model: str,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        system_prompt: Optional[str] = None,
    ) -> str:
        """
        Generate the next assistant turn of a conversation.

        Args:
            messages: Ordered {"role", "content"} turns, roles "user"/"assistant"
            model: Model name to use
            max_tokens: Maximum tokens in response
            temperature: Sampling temperature
            system_prompt: Optional system prompt

        Returns:
            Generated reply text
        """
        pass

    @abstractmethod
    async def embed_text(
        self,
        texts: list[str],
        model: str,
    ) -> list[list[float]]:
        """Embed texts in one call. Returns one vector per text, in input order."""
        pass

    async def extract_json(
        self,
        prompt: str,
        model: str,
        max_tokens: int = 4096,
        temperature: float = 0.3,
        system_prompt: Optional[str] = None,
        max_retries: int = 2,
    ) -> Any:
        """
        Generate a response and parse it as JSON.

        Retries when the model returns something that is not valid JSON.
        Shape validation is left to the caller.

        Raises:
            LLMInvalidResponseError: every attempt returned unparsable output
        """
        last_error = None
        for attempt in range(max_retries):
            response = await self.generate_text(
                prompt=prompt,
                model=model,
                max_tokens=max_tokens,
                temperature=temperature,
                system_prompt=system_prompt,
            )
            try:
                return json.loads(strip_code_fences(response))
            except json.JSONDecodeError as e:
                last_error = LLMInvalidResponseError(f"Invalid JSON: {e}")
                logger.warning(f"JSON parse error on attempt {attempt + 1}: {e}")
                continue

        raise last_error or LLMInvalidResponseError("Failed to extract valid JSON")

"""
Embedding Client

Wraps the provider's embedding call with bounded retries and
exponential backoff. Only the last attempt's error is reported.
"""
import asyncio
import functools
import logging
from typing import Awaitable, Callable, List, Optional, Sequence

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..llm import LLMProvider, LLMInvalidResponseError
from ..tracer import trace_result

logger = logging.getLogger(__name__)

EmbedFn = Callable[[List[str]], Awaitable[List[List[float]]]]
SleepFn = Callable[[float], Awaitable[None]]


def describe_error(error: Optional[BaseException]) -> str:
    """Readable message for an error, falling back to 'Unknown error'."""
    if error is None:
        return "Unknown error"
    message = str(error).strip()
    return message or f"Unknown error ({type(error).__name__})"


class EmbeddingRetryError(Exception):
    """Every embedding attempt failed."""

    def __init__(self, attempts: int, last_error: Optional[BaseException]):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Failed to generate embedding after {attempts} attempts: {describe_error(last_error)}"
        )


class EmbeddingClient:
    """
    Text to vector, with retries.

    With the defaults (3 attempts, 1s base delay) a persistently failing
    call is tried three times with waits of 1s and 2s in between.
    """

    def __init__(
        self,
        embed_fn: EmbedFn,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        sleep: SleepFn = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._embed_fn = embed_fn
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._sleep = sleep

    @classmethod
    def from_provider(
        cls,
        provider: LLMProvider,
        model: str,
        **kwargs,
    ) -> "EmbeddingClient":
        return cls(functools.partial(provider.embed_text, model=model), **kwargs)

    async def embed(self, text: str) -> List[float]:
        """Embed one text."""
        vectors = await self.embed_batch([text])
        return vectors[0]

    async def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        """Embed several texts in one provider call."""
        if not texts:
            return []

        batch = list(texts)
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.base_delay, exp_base=2),
            retry=retry_if_exception_type(Exception),
            sleep=self._sleep,
            before_sleep=self._log_retry,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    vectors = await self._embed_fn(batch)
                    if not vectors or len(vectors) != len(batch):
                        raise LLMInvalidResponseError(
                            f"Expected {len(batch)} embeddings, got {len(vectors or [])}"
                        )
        except RetryError as e:
            last_error = e.last_attempt.exception()
            trace_result("embedding", "embed_batch", False, describe_error(last_error))
            raise EmbeddingRetryError(self.max_attempts, last_error) from last_error

        return [list(vector) for vector in vectors]

    @staticmethod
    def _log_retry(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0
        logger.warning(
            f"Embedding attempt {retry_state.attempt_number} failed: "
            f"{describe_error(error)}; retrying in {delay:.1f}s"
        )

"""
Completion service: system prompt + user message in, reply text out.

Server-side failures (5xx, connection drops, timeouts) are retried a bounded
number of times with a doubling delay. Client errors and empty replies are
raised immediately.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional, Protocol

import anthropic

_logger = logging.getLogger(__name__)


class CompletionError(Exception):
    """The completion service did not produce a usable reply."""


class TransientCompletionError(CompletionError):
    """Server-class failure; still failing after all retries."""


class PermanentCompletionError(CompletionError):
    """Client-class failure; not worth retrying."""


class EmptyCompletionError(PermanentCompletionError):
    """The service answered with no text."""


class CompletionService(Protocol):
    async def complete(self, system_prompt: str, user_message: str) -> str: ...


def is_transient(error: Exception) -> bool:
    if isinstance(error, anthropic.APIConnectionError):  # includes timeouts
        return True
    if isinstance(error, anthropic.APIStatusError):
        return error.status_code >= 500
    return False


class AnthropicCompletionService:
    """Anthropic Messages API with our own retry policy (the SDK's is disabled)."""

    def __init__(
        self,
        client: anthropic.AsyncAnthropic,
        model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 1024,
        max_retries: int = 2,
        backoff_seconds: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        logger: Optional[logging.Logger] = None,
    ):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self.sleep = sleep
        self.logger = logger or _logger

    @classmethod
    def from_settings(cls, settings) -> "AnthropicCompletionService":
        client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key, max_retries=0)
        return cls(
            client,
            model=settings.model,
            max_tokens=settings.max_tokens,
            max_retries=settings.max_retries,
            backoff_seconds=settings.retry_backoff,
        )

    async def _create(self, system_prompt: str, user_message: str) -> str:
        response = await self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            system=system_prompt or "You are a helpful assistant.",
            messages=[{"role": "user", "content": user_message}],
        )
        return "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )

    async def complete(self, system_prompt: str, user_message: str) -> str:
        attempt = 0
        while True:
            try:
                text = await self._create(system_prompt, user_message)
                break
            except anthropic.APIError as e:
                if not is_transient(e):
                    self.logger.error("Completion request failed: %s", e)
                    raise PermanentCompletionError(str(e)) from e
                if attempt >= self.max_retries:
                    self.logger.error("Completion request failed after %d attempts: %s", attempt + 1, e)
                    raise TransientCompletionError(str(e)) from e

                delay = self.backoff_seconds * (2 ** attempt)
                attempt += 1
                self.logger.warning(
                    "Completion request failed (%s), retry %d/%d in %.1fs",
                    e, attempt, self.max_retries, delay,
                    extra={"attempt": attempt, "delay": delay},
                )
                await self.sleep(delay)

        if not text.strip():
            self.logger.error("Completion service returned an empty reply")
            raise EmptyCompletionError("Empty response from completion service")
        return text

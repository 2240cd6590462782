"""OpenAI chat-completion adapter used as the classifier's model call."""

from __future__ import annotations

import logging

import openai
from openai import AsyncOpenAI
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .constants import DEFAULT_MAX_TOKENS, DEFAULT_MODEL
from .exceptions import ModelCallError

logger = logging.getLogger(__name__)

_TRANSIENT_ERRORS = (
    openai.RateLimitError,
    openai.APIConnectionError,
    openai.APITimeoutError,
    openai.InternalServerError,
)


class OpenAIModel:
    """Async callable: ``await model(prompt) -> str``.

    Transient API errors are retried here; anything else surfaces as
    ModelCallError so the decision engine can fall back to its rules.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self._client = client or AsyncOpenAI(api_key=api_key, max_retries=0)

    @retry(
        retry=retry_if_exception_type(_TRANSIENT_ERRORS),
        wait=wait_exponential(multiplier=1, min=1, max=30),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    async def _complete(self, prompt: str):
        return await self._client.chat.completions.create(
            model=self.model,
            max_tokens=self.max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )

    async def __call__(self, prompt: str) -> str:
        try:
            response = await self._complete(prompt)
        except openai.OpenAIError as e:
            raise ModelCallError(f"{type(e).__name__}: {e}") from e

        if not response.choices or not response.choices[0].message.content:
            raise ModelCallError("Model returned an empty response")

        usage = getattr(response, "usage", None)
        if usage is not None:
            logger.debug(
                "Model %s used %s prompt / %s completion tokens",
                self.model,
                usage.prompt_tokens,
                usage.completion_tokens,
            )
        return response.choices[0].message.content

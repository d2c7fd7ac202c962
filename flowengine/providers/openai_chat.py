# flowengine/providers/openai_chat.py
import logging
from typing import Any, Optional

import openai
from openai import AsyncOpenAI

from ..config import Settings, get_settings
from ..errors import ConfigurationError, ProviderError, RateLimitExceededError
from ..retry import retry_with_backoff
from .placeholder import KeywordPlaceholderStrategy, PlaceholderStrategy

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o"
DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 1000


class OpenAIChatAdapter:
    """
    LLM-chat provider backed by the OpenAI chat completions API.

    Without an API key (and no injected client) the adapter runs degraded:
    it answers with the placeholder strategy instead of calling OpenAI.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        client: Optional[Any] = None,
        placeholder: Optional[PlaceholderStrategy] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self._api_key = api_key if api_key is not None else self.settings.openai_api_key
        self._client = client
        self.placeholder = placeholder or KeywordPlaceholderStrategy()

    @property
    def configured(self) -> bool:
        return self._client is not None or bool(self._api_key)

    def _get_client(self):
        if self._client is None:
            if not self._api_key:
                raise ConfigurationError("OpenAI API key is not configured")
            # retries are handled below so rate limits follow our own schedule
            self._client = AsyncOpenAI(
                api_key=self._api_key,
                timeout=self.settings.http_timeout_seconds,
                max_retries=0,
            )
        return self._client

    async def complete(
        self,
        prompt: str,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        model: str = DEFAULT_MODEL,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> str:
        if not self.configured:
            logger.info("no OpenAI API key configured, using placeholder response")
            return self.placeholder.generate(prompt, system_prompt)
        client = self._get_client()
        attempts = self.settings.rate_limit_max_attempts

        async def _call():
            return await client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )

        try:
            response = await retry_with_backoff(
                _call,
                retry_on=(openai.RateLimitError,),
                max_attempts=attempts,
                base_delay=self.settings.rate_limit_base_delay,
            )
        except openai.RateLimitError as e:
            logger.warning("openai rate limit persisted for model %s: %s", model, e)
            raise RateLimitExceededError(
                f"OpenAI rate limit exceeded after {attempts} attempts (quota exceeded); try again later"
            )
        except openai.OpenAIError as e:
            raise ProviderError(f"OpenAI request failed: {e}")

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

# flowengine/providers/huggingface.py
"""
Community inference through the Hugging Face Inference API.

This adapter always produces text. Without a token, after every model has
failed, or when the model answers with next to nothing, the configured
placeholder strategy fills in.
"""
import logging
import re
from typing import Any, List, Optional

import httpx

from ..config import Settings
from ..errors import ProviderError, ProviderUnavailableError
from .base import HTTPProvider
from .placeholder import KeywordPlaceholderStrategy, PlaceholderStrategy

logger = logging.getLogger(__name__)

# models known to answer on the free inference tier
ALLOWED_MODELS = [
    "gpt2",
    "distilgpt2",
    "microsoft/DialoGPT-small",
    "facebook/blenderbot-400M-distill",
]
DEFAULT_MODEL = "gpt2"
MAX_ALTERNATES = 2
MAX_NEW_TOKENS = 250

_ROLE_LABEL_RE = re.compile(r"^\s*(human|assistant|user|system|ai)\s*:\s*", re.IGNORECASE | re.MULTILINE)


class HuggingFaceAdapter(HTTPProvider):
    def __init__(
        self,
        api_key: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        placeholder: Optional[PlaceholderStrategy] = None,
        settings: Optional[Settings] = None,
    ):
        super().__init__(client=client, settings=settings)
        self._api_key = api_key if api_key is not None else self.settings.huggingface_api_key
        self.placeholder = placeholder or KeywordPlaceholderStrategy()

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    @staticmethod
    def resolve_model(model: Optional[str]) -> str:
        if model in ALLOWED_MODELS:
            return model
        if model:
            logger.info("model %r is not supported, using %s", model, DEFAULT_MODEL)
        return DEFAULT_MODEL

    @staticmethod
    def candidate_models(model: str) -> List[str]:
        alternates = [m for m in ALLOWED_MODELS if m != model]
        return [model] + alternates[:MAX_ALTERNATES]

    async def complete(
        self,
        prompt: str,
        system_prompt: str = "",
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = MAX_NEW_TOKENS,
    ) -> str:
        model = self.resolve_model(model)
        if not self.configured:
            logger.info("no Hugging Face token configured, using placeholder response")
            return self.placeholder.generate(prompt, system_prompt)

        full_prompt = build_prompt(prompt, system_prompt)
        for candidate in self.candidate_models(model):
            try:
                raw = await self._generate(candidate, full_prompt, temperature, max_tokens)
            except ProviderError as e:
                logger.warning("hugging face model %s failed: %s", candidate, e)
                continue
            text = clean_response(raw, full_prompt, prompt)
            if len(text) < self.settings.min_response_length:
                logger.info("model %s returned %d chars, using placeholder", candidate, len(text))
                return self.placeholder.generate(prompt, system_prompt)
            return text

        logger.warning("all hugging face models failed, using placeholder response")
        return self.placeholder.generate(prompt, system_prompt)

    async def _generate(self, model: str, prompt: str, temperature: float, max_tokens: int) -> str:
        url = f"{self.settings.huggingface_api_url.rstrip('/')}/{model}"
        payload = {
            "inputs": prompt,
            "parameters": {
                "max_new_tokens": min(int(max_tokens), MAX_NEW_TOKENS),
                # the API rejects a temperature of exactly 0
                "temperature": max(float(temperature), 0.01),
                "return_full_text": False,
            },
            "options": {"wait_for_model": True},
        }
        headers = {"Authorization": f"Bearer {self._api_key}"}
        try:
            async with self.http_client() as client:
                response = await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise ProviderUnavailableError(f"Hugging Face request failed: {e}", endpoint=url)

        if not response.is_success:
            raise ProviderError(f"Hugging Face returned status {response.status_code}")
        try:
            body = response.json()
        except ValueError:
            raise ProviderError("Hugging Face returned a non-JSON body")
        return extract_generated_text(body)


def build_prompt(prompt: str, system_prompt: str = "") -> str:
    turn = f"Human: {prompt}\nAssistant:"
    return f"{system_prompt}\n\n{turn}" if system_prompt else turn


def extract_generated_text(body: Any) -> str:
    if isinstance(body, list):
        if not body:
            return ""
        body = body[0]
    if isinstance(body, dict):
        if body.get("error"):
            raise ProviderError(f"Hugging Face error: {body['error']}")
        text = body.get("generated_text")
        if text is None:
            text = body.get("summary_text", "")
        return str(text)
    raise ProviderError("Unexpected Hugging Face response shape")


def clean_response(text: str, full_prompt: str, user_input: str) -> str:
    """Drop a leading echo of the prompt and role labels from a completion."""
    if full_prompt and text.startswith(full_prompt):
        text = text[len(full_prompt):]
    echo = user_input.strip()
    text = text.lstrip()
    if echo and text.startswith(echo):
        text = text[len(echo):]
    text = _ROLE_LABEL_RE.sub("", text)
    return text.strip()

# flowengine/providers/ollama.py
import logging
from typing import Optional

import httpx

from ..errors import ProviderError, ProviderUnavailableError
from .base import HTTPProvider

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "http://localhost:11434"
DEFAULT_MODEL = "llama2"


class OllamaAdapter(HTTPProvider):
    """Local inference against an operator-run Ollama server. No retries."""

    async def complete(
        self,
        prompt: str,
        system_prompt: str = "",
        model: str = DEFAULT_MODEL,
        endpoint: Optional[str] = None,
        temperature: float = 0.7,
    ) -> str:
        endpoint = (endpoint or DEFAULT_ENDPOINT).rstrip("/")
        payload = {
            "model": model,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": temperature},
        }
        if system_prompt:
            payload["system"] = system_prompt

        try:
            async with self.http_client() as client:
                response = await client.post(f"{endpoint}/api/generate", json=payload)
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            logger.warning("ollama at %s unreachable: %s", endpoint, e)
            raise ProviderUnavailableError(
                f"Ollama server not reachable at {endpoint}. Make sure Ollama is running.",
                endpoint=endpoint,
            )
        except httpx.HTTPError as e:
            raise ProviderError(f"Ollama request to {endpoint} failed: {e}")

        if not response.is_success:
            raise ProviderError(f"Ollama request failed with status {response.status_code}")
        try:
            body = response.json()
        except ValueError:
            raise ProviderError("Ollama returned a non-JSON body")
        return str(body.get("response", "")) if isinstance(body, dict) else ""

# flowengine/providers/http_api.py
import json
import logging
from typing import Any, Dict, Optional, Union

import httpx

from ..errors import ConfigurationError, ProviderError, ProviderUnavailableError
from .base import HTTPProvider

logger = logging.getLogger(__name__)

BODYLESS_METHODS = ("GET", "HEAD")


def parse_headers(headers: Union[None, str, Dict[str, Any]]) -> Dict[str, str]:
    """Headers come from the editor either as a JSON string or a mapping."""
    if not headers:
        return {}
    if isinstance(headers, str):
        try:
            headers = json.loads(headers)
        except ValueError:
            raise ConfigurationError("API headers must be valid JSON")
    if not isinstance(headers, dict):
        raise ConfigurationError("API headers must be a JSON object")
    return {str(k): str(v) for k, v in headers.items()}


class HTTPAPIAdapter(HTTPProvider):
    """Calls an arbitrary HTTP endpoint and returns its body as text."""

    async def request(
        self,
        endpoint: Optional[str],
        method: str = "GET",
        headers: Union[None, str, Dict[str, Any]] = None,
        query: str = "",
    ) -> str:
        if not endpoint:
            raise ConfigurationError("API endpoint not specified")
        method = (method or "GET").upper()
        request_headers = {"Content-Type": "application/json"}
        request_headers.update(parse_headers(headers))

        kwargs: Dict[str, Any] = {"headers": request_headers}
        if method not in BODYLESS_METHODS:
            kwargs["json"] = {"query": query}

        try:
            async with self.http_client() as client:
                response = await client.request(method, endpoint, **kwargs)
        except httpx.InvalidURL:
            raise ConfigurationError(f"API endpoint is not a valid URL: {endpoint}")
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, endpoint, e)
            raise ProviderUnavailableError(f"API request to {endpoint} failed: {e}", endpoint=endpoint)

        if not response.is_success:
            raise ProviderError(f"API request to {endpoint} failed with status {response.status_code}")
        # body goes downstream exactly as the endpoint sent it
        return response.text

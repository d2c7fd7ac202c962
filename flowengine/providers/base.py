# flowengine/providers/base.py
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx

from ..config import Settings, get_settings


class HTTPProvider:
    """Shared plumbing for adapters that talk plain HTTP through httpx."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._client = client

    @asynccontextmanager
    async def http_client(self) -> AsyncIterator[httpx.AsyncClient]:
        # an injected client is shared and stays open; otherwise one per call
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self.settings.http_timeout_seconds) as client:
            yield client

"""Pytest configuration and fixtures."""
from types import SimpleNamespace
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock

import httpx
import pytest

from flowengine.config import Settings
from flowengine.engine import FlowEngine
from flowengine.models import GraphDocument
from flowengine.providers import (
    HTTPAPIAdapter,
    HuggingFaceAdapter,
    OllamaAdapter,
    OpenAIChatAdapter,
    Providers,
)
from flowengine.store import FlowStore


def chat_response(content: Optional[str]) -> SimpleNamespace:
    """Minimal openai-style chat completion."""
    message = SimpleNamespace(content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message, finish_reason="stop")])


def fake_openai_client(content: str = "DOGS SUMMARY", side_effect: Any = None) -> SimpleNamespace:
    create = AsyncMock(return_value=chat_response(content))
    if side_effect is not None:
        create.side_effect = side_effect
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


def make_graph(nodes: List[Dict[str, Any]], edges: List[Dict[str, Any]]) -> GraphDocument:
    return GraphDocument.model_validate({"nodes": nodes, "edges": edges})


def node(node_id: str, node_type: str, **data: Any) -> Dict[str, Any]:
    return {"id": node_id, "type": node_type, "data": data}


def edge(source: str, target: str, handle: Optional[str] = None, edge_id: Optional[str] = None) -> Dict[str, Any]:
    e = {"id": edge_id or f"{source}->{target}", "source": source, "target": target}
    if handle:
        e["sourceHandle"] = handle
    return e


@pytest.fixture
def settings():
    return Settings(
        openai_api_key="",
        huggingface_api_key="",
        node_timeout_seconds=5,
        run_timeout_seconds=10,
        http_timeout_seconds=5,
        parallel_branches=False,
    )


@pytest.fixture
def openai_client():
    return fake_openai_client()


@pytest.fixture
def http_handler():
    """Replace ``handler.respond`` in a test to control fake HTTP answers."""

    class Handler:
        def __init__(self):
            self.requests: List[httpx.Request] = []
            self.respond = lambda request: httpx.Response(200, json={"ok": True})

        def __call__(self, request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return self.respond(request)

    return Handler()


@pytest.fixture
def http_client(http_handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(http_handler))


@pytest.fixture
def providers(settings, openai_client, http_client):
    return Providers(
        openai=OpenAIChatAdapter(client=openai_client, settings=settings),
        huggingface=HuggingFaceAdapter(client=http_client, settings=settings),
        ollama=OllamaAdapter(client=http_client, settings=settings),
        http=HTTPAPIAdapter(client=http_client, settings=settings),
    )


@pytest.fixture
def engine(providers, settings):
    return FlowEngine(providers=providers, settings=settings, store=FlowStore(flows={}, runs={}))

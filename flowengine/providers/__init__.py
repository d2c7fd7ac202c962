# flowengine/providers/__init__.py
from dataclasses import dataclass
from typing import Optional

from ..config import Settings, get_settings
from .http_api import HTTPAPIAdapter
from .huggingface import HuggingFaceAdapter
from .ollama import OllamaAdapter
from .openai_chat import OpenAIChatAdapter
from .placeholder import KeywordPlaceholderStrategy, PlaceholderStrategy


@dataclass
class Providers:
    """The adapters a run dispatches to; swap any of them out in tests."""

    openai: OpenAIChatAdapter
    huggingface: HuggingFaceAdapter
    ollama: OllamaAdapter
    http: HTTPAPIAdapter

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        placeholder: Optional[PlaceholderStrategy] = None,
    ) -> "Providers":
        settings = settings or get_settings()
        return cls(
            openai=OpenAIChatAdapter(placeholder=placeholder, settings=settings),
            huggingface=HuggingFaceAdapter(placeholder=placeholder, settings=settings),
            ollama=OllamaAdapter(settings=settings),
            http=HTTPAPIAdapter(settings=settings),
        )


__all__ = [
    "Providers",
    "OpenAIChatAdapter",
    "HuggingFaceAdapter",
    "OllamaAdapter",
    "HTTPAPIAdapter",
    "PlaceholderStrategy",
    "KeywordPlaceholderStrategy",
]

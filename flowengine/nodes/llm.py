# flowengine/nodes/llm.py
from typing import Any, Dict

from ..errors import ConfigurationError
from ..models import NodeOutput, NodeType
from ..providers import huggingface, ollama, openai_chat
from .registry import NodeCall, register_node


def _number(config: Dict[str, Any], key: str, default, cast):
    # the editor stores numbers as strings now and then
    value = config.get(key)
    if value is None or value == "":
        return default
    try:
        return cast(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"'{key}' must be a number, got {value!r}")


@register_node(NodeType.GPT.value, family="llm")
async def gpt_node(call: NodeCall) -> NodeOutput:
    cfg = call.config
    text = await call.providers.openai.complete(
        call.text,
        system_prompt=cfg.get("systemPrompt") or openai_chat.DEFAULT_SYSTEM_PROMPT,
        model=cfg.get("model") or openai_chat.DEFAULT_MODEL,
        temperature=_number(cfg, "temperature", openai_chat.DEFAULT_TEMPERATURE, float),
        max_tokens=_number(cfg, "maxTokens", openai_chat.DEFAULT_MAX_TOKENS, int),
    )
    return NodeOutput.success(text)


@register_node(NodeType.HUGGING_FACE.value, family="llm")
async def hugging_face_node(call: NodeCall) -> NodeOutput:
    cfg = call.config
    text = await call.providers.huggingface.complete(
        call.text,
        system_prompt=cfg.get("systemPrompt") or "",
        model=cfg.get("model"),
        temperature=_number(cfg, "temperature", 0.7, float),
        max_tokens=_number(cfg, "maxTokens", huggingface.MAX_NEW_TOKENS, int),
    )
    return NodeOutput.success(text)


@register_node(NodeType.OLLAMA.value, family="llm")
async def ollama_node(call: NodeCall) -> NodeOutput:
    cfg = call.config
    text = await call.providers.ollama.complete(
        call.text,
        system_prompt=cfg.get("systemPrompt") or "",
        model=cfg.get("model") or ollama.DEFAULT_MODEL,
        endpoint=cfg.get("endpoint") or ollama.DEFAULT_ENDPOINT,
        temperature=_number(cfg, "temperature", 0.7, float),
    )
    return NodeOutput.success(text)

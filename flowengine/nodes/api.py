# flowengine/nodes/api.py
from ..models import NodeOutput, NodeType
from .registry import NodeCall, register_node


@register_node(NodeType.API.value, family="integration")
async def api_node(call: NodeCall) -> NodeOutput:
    cfg = call.config
    body = await call.providers.http.request(
        cfg.get("endpoint"),
        method=cfg.get("method") or "GET",
        headers=cfg.get("headers"),
        query=call.text,
    )
    return NodeOutput.success(body)

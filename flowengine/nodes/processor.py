# flowengine/nodes/processor.py
import logging
from typing import Collection, Dict, List, Tuple

from ..errors import FlowError
from ..models import INPUT_TYPES, FlowNode, GraphDocument, NodeOutput
from ..providers import Providers
from .registry import NodeCall, get_handler

logger = logging.getLogger(__name__)


def join_inputs(
    node: FlowNode,
    outputs: Dict[str, NodeOutput],
    graph: GraphDocument,
    untaken: Collection[str] = (),
) -> str:
    """
    Combine upstream payloads in edge order.

    A single contribution passes through verbatim; several become
    ``"<label>: <payload>"`` blocks separated by blank lines. Failed,
    pending and pruned upstreams contribute nothing.
    """
    nodes = graph.node_map()
    parts: List[Tuple[str, str]] = []
    for edge in graph.incoming(node.id):
        if edge.id in untaken:
            continue
        upstream = outputs.get(edge.source)
        if upstream is None or upstream.payload is None:
            continue
        parts.append((nodes[edge.source].label, upstream.payload))
    if len(parts) == 1:
        return parts[0][1]
    return "\n\n".join(f"{label}: {payload}" for label, payload in parts)


async def process(
    node: FlowNode,
    outputs: Dict[str, NodeOutput],
    graph: GraphDocument,
    providers: Providers,
    untaken: Collection[str] = (),
) -> NodeOutput:
    """Run one node. Always returns a NodeOutput; failures land in ``error``."""
    handler = get_handler(node.type)
    if handler is None:
        return NodeOutput.failure(f"Unsupported node type: {node.type}")
    try:
        call = NodeCall(
            node=node,
            text=join_inputs(node, outputs, graph, untaken),
            seeded=outputs.get(node.id) if node.type in INPUT_TYPES else None,
            providers=providers,
        )
        return await handler(call)
    except FlowError as e:
        logger.warning("node %s (%s) failed: %s", node.id, node.type, e.message)
        return NodeOutput.failure(e.message)
    except Exception as e:
        logger.exception("unexpected error in node %s (%s)", node.id, node.type)
        return NodeOutput.failure(str(e) or "Unknown error processing node")

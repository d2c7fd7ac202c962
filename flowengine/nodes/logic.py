# flowengine/nodes/logic.py
import logging

from ..errors import ConfigurationError
from ..expressions import evaluate_condition
from ..models import NodeOutput, NodeType
from .registry import NodeCall, register_node

logger = logging.getLogger(__name__)


@register_node(NodeType.LOGIC.value, family="logic")
async def logic_node(call: NodeCall) -> NodeOutput:
    """
    Evaluate ``condition`` with the joined upstream text bound to ``input``.

    A condition that fails to parse or evaluate counts as false. Edges
    leaving this node on the ``true``/``false`` handles are routed by the
    engine from the returned payload.
    """
    condition = (call.config.get("condition") or "").strip()
    if not condition:
        raise ConfigurationError("Logic condition not specified")
    variable = call.config.get("variable") or "input"
    result = evaluate_condition(condition, call.text, name=variable)
    logger.debug("logic node %s: %r -> %s", call.node.id, condition, result)
    return NodeOutput.success("true" if result else "false")

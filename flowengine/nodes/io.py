# flowengine/nodes/io.py
from ..models import INPUT_TYPES, OUTPUT_TYPES, NodeOutput
from .registry import NodeCall, register_node


@register_node(*sorted(INPUT_TYPES), family="input")
async def input_node(call: NodeCall) -> NodeOutput:
    # input nodes were seeded before the run; they never compute anything
    if call.seeded is not None:
        return call.seeded
    return NodeOutput.success(call.text or "")


@register_node(*sorted(OUTPUT_TYPES), family="output")
async def output_node(call: NodeCall) -> NodeOutput:
    """Sinks forward the joined upstream text untouched."""
    return NodeOutput.success(call.text)

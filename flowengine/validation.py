# flowengine/validation.py
import logging
from collections import deque
from typing import Dict, List, Set

from .expressions import ExpressionError, parse
from .models import INPUT_TYPES, GraphDocument, NodeType, ValidationReport
from .nodes import get_handler

logger = logging.getLogger(__name__)


def reachable_from_inputs(graph: GraphDocument) -> Set[str]:
    nodes = graph.node_map()
    outgoing: Dict[str, List[str]] = {nid: [] for nid in nodes}
    for edge in graph.valid_edges():
        outgoing[edge.source].append(edge.target)
    seen = {n.id for n in graph.input_nodes()}
    queue = deque(seen)
    while queue:
        for target in outgoing[queue.popleft()]:
            if target not in seen:
                seen.add(target)
                queue.append(target)
    return seen


def find_stuck_nodes(graph: GraphDocument) -> List[str]:
    """
    Nodes reachable from an input that could never become ready.

    Drains the dependency counts from the input nodes without running
    anything. Whatever is reachable but never drains sits on a cycle or
    waits on a node no input leads to. Returned in document order.
    """
    nodes = graph.node_map()
    input_ids = {n.id for n in graph.input_nodes()}
    remaining = {nid: 0 for nid in nodes}
    outgoing: Dict[str, List[str]] = {nid: [] for nid in nodes}
    for edge in graph.valid_edges():
        outgoing[edge.source].append(edge.target)
        if edge.target not in input_ids:
            remaining[edge.target] += 1

    drained = set(input_ids)
    queue = deque(input_ids)
    while queue:
        for target in outgoing[queue.popleft()]:
            if target in input_ids:
                continue
            remaining[target] -= 1
            if remaining[target] == 0 and target not in drained:
                drained.add(target)
                queue.append(target)

    reachable = reachable_from_inputs(graph)
    return [nid for nid in nodes if nid in reachable and nid not in drained]


def validate_graph(graph: GraphDocument) -> ValidationReport:
    errors: List[str] = []
    warnings: List[str] = []
    nodes = graph.node_map()

    seen: Set[str] = set()
    for node in graph.nodes:
        if node.id in seen:
            warnings.append(f"Duplicate node id '{node.id}'; only the first is used")
        seen.add(node.id)

    if not graph.input_nodes():
        errors.append("No input node found in the flow")
    if not graph.output_nodes():
        errors.append("No output node found in the flow")

    for edge in graph.edges:
        if edge.source not in nodes or edge.target not in nodes:
            warnings.append(f"Edge '{edge.id}' references a missing node and is ignored")

    stuck = find_stuck_nodes(graph)
    if stuck:
        errors.append(f"Nodes can never run (cycle or unreachable dependency): {', '.join(stuck)}")

    reachable = reachable_from_inputs(graph)
    for node in nodes.values():
        if get_handler(node.type) is None:
            warnings.append(f"Node '{node.id}' has unsupported type '{node.type}'")
        if node.id not in reachable and node.type not in INPUT_TYPES:
            warnings.append(f"Node '{node.id}' is not connected to any input and will not run")
        if node.type == NodeType.LOGIC.value:
            condition = (node.config.get("condition") or "").strip()
            if not condition:
                warnings.append(f"Logic node '{node.id}' has no condition")
            else:
                try:
                    parse(condition)
                except ExpressionError as e:
                    warnings.append(f"Logic node '{node.id}' condition will evaluate as false: {e.message}")
        if node.type == NodeType.API.value and not node.config.get("endpoint"):
            warnings.append(f"API node '{node.id}' has no endpoint")

    if errors:
        logger.info("flow validation failed: %s", "; ".join(errors))
    return ValidationReport(valid=not errors, errors=errors, warnings=warnings)

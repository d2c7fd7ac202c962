# flowengine/nodes/registry.py
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional

from ..models import FlowNode, NodeOutput
from ..providers import Providers


@dataclass
class NodeCall:
    node: FlowNode
    # upstream payloads joined into one string
    text: str
    # value placed on an input node before the run started
    seeded: Optional[NodeOutput]
    providers: Providers

    @property
    def config(self):
        return self.node.config


NodeHandler = Callable[[NodeCall], Awaitable[NodeOutput]]

NODE_HANDLERS: Dict[str, NodeHandler] = {}
NODE_FAMILIES: Dict[str, str] = {}


def register_node(*node_types: str, family: str):
    def decorator(fn: NodeHandler) -> NodeHandler:
        for node_type in node_types:
            NODE_HANDLERS[node_type] = fn
            NODE_FAMILIES[node_type] = family
        return fn
    return decorator


def get_handler(node_type: str) -> Optional[NodeHandler]:
    return NODE_HANDLERS.get(node_type)


def catalog() -> Dict[str, List[str]]:
    families: Dict[str, List[str]] = {}
    for node_type, family in NODE_FAMILIES.items():
        families.setdefault(family, []).append(node_type)
    return families

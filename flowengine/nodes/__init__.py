# flowengine/nodes/__init__.py
# handler modules are imported for their register_node side effects
from . import api, io, llm, logic  # noqa: F401
from .processor import join_inputs, process
from .registry import NODE_HANDLERS, NodeCall, catalog, get_handler, register_node

__all__ = [
    "NODE_HANDLERS",
    "NodeCall",
    "catalog",
    "get_handler",
    "join_inputs",
    "process",
    "register_node",
]

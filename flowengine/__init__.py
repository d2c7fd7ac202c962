# flowengine/__init__.py
from .engine import FlowEngine, RunContext
from .models import FlowEdge, FlowNode, GraphDocument, NodeOutput, NodeType, RunResult
from .providers import Providers

__version__ = "0.1.0"

__all__ = [
    "FlowEngine",
    "RunContext",
    "FlowEdge",
    "FlowNode",
    "GraphDocument",
    "NodeOutput",
    "NodeType",
    "RunResult",
    "Providers",
]

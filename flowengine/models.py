# flowengine/models.py
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class NodeType(str, Enum):
    INPUT = "inputNode"
    FILE_INPUT = "fileInputNode"
    IMAGE_INPUT = "imageInputNode"
    WEBHOOK_INPUT = "webhookInputNode"
    GPT = "gptNode"
    HUGGING_FACE = "huggingFaceNode"
    OLLAMA = "ollamaNode"
    API = "apiNode"
    LOGIC = "logicNode"
    OUTPUT = "outputNode"
    IMAGE_OUTPUT = "imageOutputNode"
    EMAIL = "emailNode"
    NOTIFICATION = "notificationNode"


INPUT_TYPES = frozenset(
    t.value for t in (NodeType.INPUT, NodeType.FILE_INPUT, NodeType.IMAGE_INPUT, NodeType.WEBHOOK_INPUT)
)
OUTPUT_TYPES = frozenset(
    t.value for t in (NodeType.OUTPUT, NodeType.IMAGE_OUTPUT, NodeType.EMAIL, NodeType.NOTIFICATION)
)
BRANCH_HANDLES = ("true", "false")


class Position(BaseModel):
    x: float = 0
    y: float = 0


class Viewport(BaseModel):
    x: float = 0
    y: float = 0
    zoom: float = 1


class FlowNode(BaseModel):
    id: str
    # kept as a plain string so documents with unknown tags still parse
    type: str
    data: Dict[str, Any] = Field(default_factory=dict)
    position: Optional[Position] = None

    @property
    def config(self) -> Dict[str, Any]:
        return self.data

    @property
    def label(self) -> str:
        label = self.data.get("label")
        return str(label) if label else self.id


class FlowEdge(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    source: str
    target: str
    source_handle: Optional[str] = Field(default=None, alias="sourceHandle")
    target_handle: Optional[str] = Field(default=None, alias="targetHandle")


class GraphDocument(BaseModel):
    nodes: List[FlowNode] = Field(default_factory=list)
    edges: List[FlowEdge] = Field(default_factory=list)
    viewport: Optional[Viewport] = None

    def node_map(self) -> Dict[str, FlowNode]:
        """Nodes by id; the first node wins when ids collide."""
        nodes: Dict[str, FlowNode] = {}
        for node in self.nodes:
            nodes.setdefault(node.id, node)
        return nodes

    def valid_edges(self) -> List[FlowEdge]:
        """Edges in document order, minus those pointing at unknown nodes."""
        known = self.node_map()
        return [e for e in self.edges if e.source in known and e.target in known]

    def incoming(self, node_id: str) -> List[FlowEdge]:
        return [e for e in self.valid_edges() if e.target == node_id]

    def input_nodes(self) -> List[FlowNode]:
        return [n for n in self.node_map().values() if n.type in INPUT_TYPES]

    def output_nodes(self) -> List[FlowNode]:
        return [n for n in self.node_map().values() if n.type in OUTPUT_TYPES]


class NodeOutput(BaseModel):
    payload: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, payload: Optional[str]) -> "NodeOutput":
        return cls(payload=payload if payload is not None else "")

    @classmethod
    def failure(cls, error: str) -> "NodeOutput":
        return cls(payload=None, error=error)

    @property
    def ok(self) -> bool:
        return self.error is None


class RunResult(BaseModel):
    payload: Optional[str] = None
    error: Optional[str] = None
    completed: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    # nodes that could never run, when the structural check failed
    stuck: List[str] = Field(default_factory=list)
    node_outputs: Dict[str, NodeOutput] = Field(default_factory=dict)
    logs: List[str] = Field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None


class RunRecord(BaseModel):
    run_id: str
    flow_id: str
    input: str
    result: RunResult
    finished: bool = True


class ValidationReport(BaseModel):
    valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

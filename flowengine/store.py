# flowengine/store.py
import uuid
from typing import Dict, Optional

from .models import GraphDocument, RunRecord

# In-memory stores (the real app reads flows from its database)
FLOWS: Dict[str, GraphDocument] = {}
RUNS: Dict[str, RunRecord] = {}


class FlowStore:
    def __init__(self, flows: Optional[Dict[str, GraphDocument]] = None, runs: Optional[Dict[str, RunRecord]] = None):
        self.flows = FLOWS if flows is None else flows
        self.runs = RUNS if runs is None else runs

    def add_flow(self, graph: GraphDocument, flow_id: Optional[str] = None) -> str:
        flow_id = flow_id or str(uuid.uuid4())
        # stored as a copy so later edits by the caller don't leak into runs
        self.flows[flow_id] = graph.model_copy(deep=True)
        return flow_id

    def get_flow(self, flow_id: str) -> Optional[GraphDocument]:
        return self.flows.get(flow_id)

    def save_run(self, record: RunRecord) -> None:
        self.runs[record.run_id] = record

    def get_run(self, run_id: str) -> Optional[RunRecord]:
        return self.runs.get(run_id)

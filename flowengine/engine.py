# flowengine/engine.py
import asyncio
import logging
import time
import uuid
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterable, List, Optional, Set, Tuple

from .config import Settings, get_settings
from .errors import GraphStructureError
from .models import (
    BRANCH_HANDLES,
    FlowEdge,
    FlowNode,
    GraphDocument,
    NodeOutput,
    NodeType,
    RunRecord,
    RunResult,
)
from .nodes import process
from .providers import Providers
from .store import FlowStore
from .validation import find_stuck_nodes

logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    """Everything one run owns; never shared between runs."""

    graph: GraphDocument
    caller_input: str
    nodes: Dict[str, FlowNode] = field(default_factory=dict)
    outgoing: Dict[str, List[FlowEdge]] = field(default_factory=dict)
    input_ids: Set[str] = field(default_factory=set)
    outputs: Dict[str, NodeOutput] = field(default_factory=dict)
    completed: List[str] = field(default_factory=list)
    completed_set: Set[str] = field(default_factory=set)
    skipped: List[str] = field(default_factory=list)
    queue: Deque[str] = field(default_factory=deque)
    # in-edges still unresolved, and how many of the resolved ones were taken
    remaining: Dict[str, int] = field(default_factory=dict)
    taken_in: Dict[str, int] = field(default_factory=dict)
    untaken: Set[str] = field(default_factory=set)
    logs: List[str] = field(default_factory=list)

    def result(self, payload: Optional[str] = None, error: Optional[str] = None) -> RunResult:
        return RunResult(
            payload=payload,
            error=error,
            completed=list(self.completed),
            skipped=list(self.skipped),
            node_outputs=dict(self.outputs),
            logs=list(self.logs),
        )


class FlowEngine:
    def __init__(
        self,
        providers: Optional[Providers] = None,
        settings: Optional[Settings] = None,
        store: Optional[FlowStore] = None,
    ):
        self.settings = settings or get_settings()
        self.providers = providers or Providers.from_settings(self.settings)
        self.store = store or FlowStore()
        self._background: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # stored flows
    # ------------------------------------------------------------------

    def create_flow(self, graph: GraphDocument) -> str:
        return self.store.add_flow(graph)

    async def run_flow(self, flow_id: str, caller_input: str, run_in_background: bool = False) -> str:
        graph = self.store.get_flow(flow_id)
        if graph is None:
            raise KeyError("flow not found")

        run_id = str(uuid.uuid4())
        record = RunRecord(run_id=run_id, flow_id=flow_id, input=caller_input, result=RunResult(), finished=False)
        self.store.save_run(record)

        async def _runner():
            try:
                record.result = await self.run(graph, caller_input)
            except Exception as e:
                logger.exception("run %s of flow %s failed", run_id, flow_id)
                record.result = RunResult(error=str(e) or type(e).__name__)
            finally:
                record.finished = True

        if run_in_background:
            task = asyncio.create_task(_runner())
            self._background.add(task)
            task.add_done_callback(self._background.discard)
        else:
            await _runner()
        return run_id

    # ------------------------------------------------------------------
    # a single run
    # ------------------------------------------------------------------

    async def run(self, graph: GraphDocument, caller_input: str) -> RunResult:
        """Execute ``graph`` with ``caller_input`` and return the terminal node's result."""
        started = time.perf_counter()
        ctx = RunContext(graph=graph, caller_input=caller_input)
        deadline = self.settings.run_timeout_seconds
        try:
            self._prepare(ctx)
            await asyncio.wait_for(self._execute(ctx), timeout=deadline)
            result = self._assemble(ctx)
        except GraphStructureError as e:
            logger.warning("flow can not run: %s", e.message)
            ctx.logs.append(e.message)
            result = ctx.result(error=e.message)
            result.stuck = list(e.node_ids)
        except asyncio.TimeoutError:
            message = f"Flow run exceeded the {deadline:g} second deadline"
            logger.warning(message)
            ctx.logs.append(message)
            result = ctx.result(error=message)
        result.duration_ms = (time.perf_counter() - started) * 1000
        return result

    def _prepare(self, ctx: RunContext) -> None:
        graph = ctx.graph
        inputs = graph.input_nodes()
        if not inputs:
            raise GraphStructureError("No input node found in the flow")

        stuck = find_stuck_nodes(graph)
        if stuck:
            raise GraphStructureError(
                f"Flow contains a cycle or a dependency no input reaches; stuck nodes: {', '.join(stuck)}",
                stuck,
            )

        ctx.nodes = graph.node_map()
        ctx.input_ids = {n.id for n in inputs}
        ctx.outgoing = {nid: [] for nid in ctx.nodes}
        ctx.remaining = {nid: 0 for nid in ctx.nodes}
        ctx.taken_in = {nid: 0 for nid in ctx.nodes}
        for edge in graph.valid_edges():
            ctx.outgoing[edge.source].append(edge)
            # input nodes are always ready, so edges into them are not waited on
            if edge.target not in ctx.input_ids:
                ctx.remaining[edge.target] += 1

        # first input (document order) gets the caller's text, the rest their defaults
        for i, node in enumerate(inputs):
            if i == 0:
                value = ctx.caller_input
            else:
                default = node.config.get("defaultValue")
                value = "" if default is None else str(default)
            ctx.outputs[node.id] = NodeOutput.success(value)
            ctx.queue.append(node.id)
        ctx.logs.append(f"seeded {len(inputs)} input node(s); first: {inputs[0].id}")

    async def _execute(self, ctx: RunContext) -> None:
        while ctx.queue:
            if self.settings.parallel_branches:
                batch = list(ctx.queue)
                ctx.queue.clear()
            else:
                batch = [ctx.queue.popleft()]
            batch = [nid for nid in batch if nid not in ctx.completed_set]
            results = await asyncio.gather(*(self._call_node(ctx, nid) for nid in batch))
            # commit in queue order so the run stays deterministic
            for nid, output in zip(batch, results):
                self._complete(ctx, nid, output)

    async def _call_node(self, ctx: RunContext, node_id: str) -> NodeOutput:
        node = ctx.nodes[node_id]
        ctx.logs.append(f"running {node_id} ({node.type})")
        timeout = self.settings.node_timeout_seconds
        try:
            return await asyncio.wait_for(
                process(node, ctx.outputs, ctx.graph, self.providers, ctx.untaken),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("node %s timed out after %ss", node_id, timeout)
            return NodeOutput.failure(f"Node timed out after {timeout:g} seconds")

    def _complete(self, ctx: RunContext, node_id: str, output: NodeOutput) -> None:
        ctx.outputs[node_id] = output
        ctx.completed.append(node_id)
        ctx.completed_set.add(node_id)
        if output.error:
            ctx.logs.append(f"{node_id}: error: {output.error}")

        node = ctx.nodes[node_id]
        edges = [(edge, self._is_taken(node, output, edge)) for edge in ctx.outgoing[node_id]]
        self._resolve(ctx, edges)
        ctx.logs.append(f"{node_id} -> next: {[e.target for e, taken in edges if taken]}")

    @staticmethod
    def _is_taken(node: FlowNode, output: NodeOutput, edge: FlowEdge) -> bool:
        # only a logic node's true/false handles are conditional
        if node.type == NodeType.LOGIC.value and edge.source_handle in BRANCH_HANDLES:
            return output.payload == edge.source_handle
        return True

    def _resolve(self, ctx: RunContext, edges: Iterable[Tuple[FlowEdge, bool]]) -> None:
        pending = deque(edges)
        while pending:
            edge, taken = pending.popleft()
            target = edge.target
            if target in ctx.input_ids:
                continue
            if taken:
                ctx.taken_in[target] += 1
            else:
                ctx.untaken.add(edge.id)
            ctx.remaining[target] -= 1
            if ctx.remaining[target] > 0:
                continue
            if ctx.taken_in[target] > 0:
                ctx.queue.append(target)
            else:
                # every way into this node was pruned: skip it and prune onwards
                ctx.skipped.append(target)
                ctx.logs.append(f"{target} skipped (branch not taken)")
                pending.extend((e, False) for e in ctx.outgoing[target])

    def _assemble(self, ctx: RunContext) -> RunResult:
        terminal = next((n for n in ctx.graph.output_nodes() if n.id in ctx.completed_set), None)
        if terminal is None:
            ctx.logs.append("no output node completed")
            return ctx.result(error="No output was generated from the flow")
        output = ctx.outputs[terminal.id]
        ctx.logs.append(f"terminal node: {terminal.id}")
        return ctx.result(payload=output.payload, error=output.error)

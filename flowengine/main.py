# flowengine/main.py
import logging
from typing import List, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel

from .config import configure_logging, get_settings
from .engine import FlowEngine
from .models import GraphDocument, RunRecord, RunResult, ValidationReport
from .nodes import catalog
from .samples import build_test_agent
from .validation import validate_graph

logger = logging.getLogger(__name__)

app = FastAPI(title="Flow Execution Engine")

engine = FlowEngine()


def get_engine() -> FlowEngine:
    return engine


class RunPayload(BaseModel):
    flow: GraphDocument
    input: str = ""


class StoredRunPayload(BaseModel):
    input: str = ""
    run_in_background: Optional[bool] = False


class InputPayload(BaseModel):
    input: str = ""


class RunResponse(BaseModel):
    success: bool
    output: Optional[str] = None
    error: Optional[str] = None
    logs: List[str] = []


def _require_input(text: str) -> None:
    if not text or not text.strip():
        raise HTTPException(status_code=400, detail="Input is required")


def _response(result: RunResult) -> RunResponse:
    return RunResponse(success=result.success, output=result.payload, error=result.error, logs=result.logs)


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/node-types")
async def list_node_types():
    return {"node_types": catalog()}


@app.post("/flows/validate", response_model=ValidationReport)
async def validate_flow(flow: GraphDocument):
    return validate_graph(flow)


@app.post("/flows/run", response_model=RunResponse)
async def run_flow(payload: RunPayload, engine: FlowEngine = Depends(get_engine)):
    _require_input(payload.input)
    logger.info("running flow: %d nodes, %d edges", len(payload.flow.nodes), len(payload.flow.edges))
    result = await engine.run(payload.flow, payload.input)
    logger.info("flow finished: success=%s error=%s", result.success, result.error)
    return _response(result)


@app.post("/flows")
async def create_flow(flow: GraphDocument, engine: FlowEngine = Depends(get_engine)):
    return {"flow_id": engine.create_flow(flow)}


@app.get("/flows/{flow_id}", response_model=GraphDocument)
async def get_flow(flow_id: str, engine: FlowEngine = Depends(get_engine)):
    flow = engine.store.get_flow(flow_id)
    if flow is None:
        raise HTTPException(status_code=404, detail="flow not found")
    return flow


@app.post("/flows/{flow_id}/run", response_model=RunRecord)
async def run_stored_flow(flow_id: str, payload: StoredRunPayload, engine: FlowEngine = Depends(get_engine)):
    _require_input(payload.input)
    try:
        run_id = await engine.run_flow(flow_id, payload.input, run_in_background=bool(payload.run_in_background))
    except KeyError:
        raise HTTPException(status_code=404, detail="flow not found")
    # a background run answers straight away with finished=False
    return engine.store.get_run(run_id)


@app.get("/runs/{run_id}", response_model=RunRecord)
async def get_run(run_id: str, engine: FlowEngine = Depends(get_engine)):
    record = engine.store.get_run(run_id)
    if record is None:
        raise HTTPException(status_code=404, detail="run not found")
    return record


# small demo endpoint: build the test agent and run it in one go
@app.post("/example/run-test-agent", response_model=RunResponse)
async def example_run_test_agent(payload: InputPayload, engine: FlowEngine = Depends(get_engine)):
    _require_input(payload.input)
    result = await engine.run(build_test_agent(), payload.input)
    return _response(result)


def serve() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run("flowengine.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    serve()

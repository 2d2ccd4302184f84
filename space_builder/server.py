"""
FastAPI HTTP server for the space builder.

Exposes:
- POST /api/space              - Full pipeline: request -> verified configuration
- POST /api/validate/design    - Coverage/geometry check of a design plan or matrix
- POST /api/convert            - Design -> space configuration (deterministic)
- POST /api/verify             - Design vs built configuration
- POST /api/analyze/layout     - Coverage of a rectangle-list configuration
- GET  /api/tools              - OpenAI function schemas of the agent tools
- POST /api/tools/{name}       - Run one agent tool
- GET  /api/catalog            - Grid policy, fidget types and default theme

Malformed payloads are answered with 422 and the ingestion error code;
well-formed layouts that break a rule are answered with 200 and a
result object carrying the issue.
"""

import logging
import os
import sys
import uuid
from typing import Any, Optional
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .agent_tools import create_default_registry
from .agent_types import ToolCall
from .catalog import DEFAULT_THEME, FIDGET_PURPOSES, FIDGET_SIZES
from .config import load_grid_policy
from .converter import convert
from .coverage import analyze_design, analyze_matrix, analyze_rectangles
from .ingest import (
    IngestionError,
    extract_layout_placements,
    load_design_matrix,
    load_design_plan,
    load_space_config,
)
from .orchestrator import run_pipeline
from .serializer import serialize_pipeline_result
from .verifier import verify

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    stream=sys.stdout,
    force=True
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Space Builder API",
    description="REST API for generating and validating grid-based space layouts",
    version="1.0.0",
)

# Configure CORS
origins_env = os.getenv("BACKEND_CORS_ORIGINS")
if origins_env:
    allow_origins = [o.strip() for o in origins_env.split(",") if o.strip()]
else:
    allow_origins = ["*"]

logger.info("CORS allow_origins = %r", allow_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

policy = load_grid_policy()
registry = create_default_registry(policy)

logger.info("grid policy = %r", policy)


# =============================================================================
# REQUEST MODELS
# =============================================================================

class SpaceRequest(BaseModel):
    """Request body for POST /api/space."""
    user_request: str = Field(..., min_length=1, description="Natural language description of the space")
    max_design_attempts: int = Field(default=3, ge=1, le=10, description="Upper bound on design attempts")
    retry_on_warn: bool = Field(default=False, description="Send WARN verdicts back to the designer")


class DesignRequest(BaseModel):
    """A design plan {fidgets, gridLayout?} or a design matrix {width, height, cells, items}."""
    design: dict[str, Any]


class ConvertRequest(DesignRequest):
    layout_id: Optional[str] = Field(default=None, description="layoutID to write (defaults to layout-<epoch ms>)")


class VerifyRequest(BaseModel):
    design: dict[str, Any]
    config: dict[str, Any]
    collect_all: bool = Field(default=True, description="Report every violation, not just the first")


class LayoutRequest(BaseModel):
    config: dict[str, Any]


class ToolRequest(BaseModel):
    arguments: dict[str, Any] = Field(default_factory=dict)


def _is_matrix_payload(design: dict[str, Any]) -> bool:
    return "cells" in design


def _dump(model: BaseModel) -> dict:
    return model.model_dump(mode="json", by_alias=True)


# =============================================================================
# ERROR HANDLING
# =============================================================================

@app.exception_handler(IngestionError)
def ingestion_error_handler(request: Request, exc: IngestionError) -> JSONResponse:
    logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=422,
        content={"code": exc.code, "message": exc.message, "details": exc.details},
    )


# =============================================================================
# ENDPOINTS
# =============================================================================

@app.post("/api/space")
def space_endpoint(req: SpaceRequest) -> dict:
    """
    Run the full pipeline for one request.

    Returns the serialized PipelineResult: status (DONE, DESIGN_REJECTED,
    VERIFY_FAILED), research, design, coverage, config, verification,
    attempts, errors and the debug payload.
    """
    logger.info("POST /api/space request=%r attempts=%d", req.user_request[:100], req.max_design_attempts)

    result = run_pipeline(
        req.user_request,
        policy=policy,
        max_design_attempts=req.max_design_attempts,
        retry_on_warn=req.retry_on_warn,
    )
    return serialize_pipeline_result(result)


@app.post("/api/validate/design")
def validate_design_endpoint(req: DesignRequest) -> dict:
    if _is_matrix_payload(req.design):
        report = analyze_matrix(load_design_matrix(req.design), policy)
    else:
        report = analyze_design(load_design_plan(req.design), policy)

    body = _dump(report)
    body["malformed"] = report.is_malformed
    return body


@app.post("/api/convert")
def convert_endpoint(req: ConvertRequest) -> dict:
    """Build the space configuration; `config` is in the renderer's exact shape."""
    if _is_matrix_payload(req.design):
        matrix = load_design_matrix(req.design)
    else:
        matrix = load_design_plan(req.design).to_matrix(policy)

    result = convert(matrix, policy, layout_id=req.layout_id)
    return {
        "ok": result.ok,
        "config": result.config.to_json_dict() if result.config else None,
        "issue": _dump(result.issue) if result.issue else None,
    }


@app.post("/api/verify")
def verify_endpoint(req: VerifyRequest) -> dict:
    design = load_design_plan(req.design)
    config = load_space_config(req.config)
    return _dump(verify(design, config, collect_all=req.collect_all))


@app.post("/api/analyze/layout")
def analyze_layout_endpoint(req: LayoutRequest) -> dict:
    placements = extract_layout_placements(req.config)
    return _dump(analyze_rectangles(placements, policy))


@app.get("/api/tools")
def list_tools() -> list[dict]:
    """OpenAI function-calling schemas for every registered tool."""
    return registry.get_openai_schemas()


@app.post("/api/tools/{name}")
def run_tool(name: str, req: ToolRequest) -> dict:
    if registry.get(name) is None:
        raise HTTPException(status_code=404, detail=f"Unknown tool: {name}")

    call = ToolCall(id=str(uuid.uuid4())[:8], name=name, arguments=req.arguments)
    result = registry.dispatch(call)
    logger.info("tool %s (%s): success=%s", name, call.id, result.success)
    return result.model_dump(mode="json")


@app.get("/api/catalog")
def catalog_endpoint() -> dict:
    return {
        "grid": policy.model_dump(),
        "fidgets": [
            {
                "type": name,
                "min_width": size.min_width,
                "min_height": size.min_height,
                "max_height": size.max_height,
                "purpose": FIDGET_PURPOSES.get(name, ""),
            }
            for name, size in FIDGET_SIZES.items()
        ],
        "theme": _dump(DEFAULT_THEME),
    }


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "ok"}

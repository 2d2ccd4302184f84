"""
Type definitions for pipeline debug payloads.

This module defines the shape of the debug data attached to every pipeline
result: one PipelineStageRecord per executed stage (including each retry of
the design/validate/build/verify stages), plus a summary of the inputs.
"""

from enum import Enum
from typing import Any, Literal, Optional
from pydantic import BaseModel, Field


class StageStatus(str, Enum):
    """Status of a single pipeline stage execution.

    - SUCCESS: Stage completed without errors
    - FAILED: Stage raised or produced a rejecting result
    - SKIPPED: Stage was skipped (e.g., due to prior failure)
    """

    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


class StageKind(str, Enum):
    """Kind/category of a pipeline stage.

    - RESEARCH: request -> research data (LLM)
    - DESIGN: research -> design plan (LLM)
    - VALIDATION: design plan -> coverage report
    - BUILD: design matrix -> space configuration
    - VERIFICATION: design plan vs configuration
    """

    RESEARCH = "RESEARCH"
    DESIGN = "DESIGN"
    VALIDATION = "VALIDATION"
    BUILD = "BUILD"
    VERIFICATION = "VERIFICATION"


class DebugInputs(BaseModel):
    """Summary of inputs to the pipeline."""

    request_chars: int = Field(
        ..., description="Total character count of the user request"
    )
    request_preview: str = Field(
        ..., description="First ~200 chars of the user request"
    )


class PayloadPreview(BaseModel):
    """Preview of a structured payload (e.g., LLM response, parsed JSON)."""

    type: Literal["json", "text", "summary"] = Field(
        ..., description="Type of preview: raw JSON, plain text, or summary"
    )
    content: str = Field(
        ..., description="Preview content (may be truncated)"
    )
    truncated: bool = Field(
        ..., description="True if content was truncated due to size limits"
    )


StageSummary = dict[str, Any]


class PipelineStageRecord(BaseModel):
    """Record of a single stage in the pipeline execution."""

    id: str = Field(
        ..., description="Stage identifier, e.g. 'R0', 'D1', 'V1', 'B1', 'C1'"
    )
    name: str = Field(
        ..., description="Human-readable stage name, e.g. 'Validate Design'"
    )
    kind: StageKind = Field(
        ..., description="Kind of stage"
    )
    status: StageStatus = Field(
        ..., description="Execution status: SUCCESS, FAILED, or SKIPPED"
    )
    attempt: int = Field(
        default=0, description="Design attempt this stage belongs to (0 for research)"
    )
    agent_model: Optional[str] = Field(
        default=None, description="Model used by the stage, if any"
    )
    summary: StageSummary = Field(
        default_factory=dict, description="Stage-specific summary (verdict, counts, ...)"
    )
    errors: list[str] = Field(
        default_factory=list, description="List of error messages, if any"
    )
    payload_preview: Optional[PayloadPreview] = Field(
        default=None, description="Optional preview of stage output"
    )


class PipelineDebugPayload(BaseModel):
    """Debug payload attached to pipeline results.

    Semantics of overall_status:
    - SUCCESS: every recorded stage succeeded
    - PARTIAL: some stage failed but a later attempt produced a verified config
    - FAILED: no verified config was produced
    """

    inputs: DebugInputs = Field(
        ..., description="Summary of pipeline inputs"
    )
    overall_status: Literal["SUCCESS", "PARTIAL", "FAILED"] = Field(
        ..., description="Overall pipeline execution status"
    )
    stages: list[PipelineStageRecord] = Field(
        default_factory=list, description="Ordered list of stage execution records"
    )

"""
Agent Type Definitions

Shared types for the tool surface and the pipeline:
- ErrorInfo: Structured error information for typed error handling
- ToolCall: A request to execute a specific tool
- ToolResult: The outcome of a tool execution
- PipelineStatus / PipelineResult: The outcome of a full pipeline run
"""

from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field

from .debug_types import PipelineDebugPayload
from .models import (
    CoverageReport,
    DesignPlan,
    IssueKind,
    LayoutIssue,
    ResearchData,
    SpaceConfig,
    VerificationResult,
)


# =============================================================================
# ENUMS
# =============================================================================

class ErrorType(str, Enum):
    """Explicit error taxonomy for tool failures."""
    STRUCTURAL = "structural"      # Malformed input: invalid JSON, missing field, wrong shape
    DESIGN_RULE = "design_rule"    # Well-formed input that breaks a layout rule
    TOOL_FATAL = "tool_fatal"      # Unexpected failure inside the tool


class PipelineStatus(str, Enum):
    """Final status of a pipeline run."""
    DONE = "DONE"                          # Verified configuration produced
    DESIGN_REJECTED = "DESIGN_REJECTED"    # No design passed validation within the attempt bound
    VERIFY_FAILED = "VERIFY_FAILED"        # Last built config did not match its design


# =============================================================================
# ERROR TYPES
# =============================================================================

class ErrorInfo(BaseModel):
    """Structured error information for typed error handling."""
    type: ErrorType = Field(..., description="Category of error")
    message: str = Field(..., description="Human-readable error message")
    context: dict[str, Any] = Field(default_factory=dict, description="Additional context")
    recoverable: bool = Field(default=True, description="Whether a corrected input might succeed")

    @classmethod
    def from_issue(cls, issue: LayoutIssue) -> "ErrorInfo":
        """Map a LayoutIssue to an ErrorInfo, keeping malformed input apart from rule failures."""
        error_type = ErrorType.STRUCTURAL if issue.kind == IssueKind.STRUCTURAL else ErrorType.DESIGN_RULE
        return cls(
            type=error_type,
            message=issue.message,
            context={"kind": issue.kind.value, "code": issue.code, "item_id": issue.item_id, **issue.details},
        )


# =============================================================================
# TOOL CALL TYPES
# =============================================================================

class ToolCall(BaseModel):
    """
    A request to run a specific tool.

    Mirrors the OpenAI function-calling shape so LLM tool calls can be
    dispatched through the registry unchanged.
    """
    id: str = Field(..., description="Unique ID for this tool call (for tracking)")
    name: str = Field(..., description="Name of the tool to call")
    arguments: dict[str, Any] = Field(default_factory=dict, description="Arguments to pass to the tool")


class ToolResult(BaseModel):
    """The outcome of executing a tool."""
    tool_call_id: str = Field(..., description="Links back to the ToolCall.id")
    tool_name: str
    success: bool
    output: Any = None          # JSON-native result (report, config, verification)
    error: Optional[str] = None # Error message if success=False
    error_info: Optional[ErrorInfo] = None


# =============================================================================
# PIPELINE RESULT
# =============================================================================

class PipelineResult(BaseModel):
    """
    Everything a pipeline run produced.

    research is always set (the researcher falls back rather than failing).
    design/coverage/config/verification describe the final attempt; config
    is only set once that attempt's design passed validation.
    """
    status: PipelineStatus
    research: ResearchData
    design: Optional[DesignPlan] = None
    coverage: Optional[CoverageReport] = None
    config: Optional[SpaceConfig] = None
    verification: Optional[VerificationResult] = None
    attempts: int = Field(default=0, description="Design attempts made")
    errors: list[str] = Field(default_factory=list, description="Per-attempt failure messages")
    debug: Optional[PipelineDebugPayload] = None

"""
Agent Tools Module

Defines the Tool interface and implements the tools exposed to LLM agents
and to the HTTP API. Each tool wraps deterministic functionality (coverage
analysis, conversion, verification) behind a standard interface.

Tools take JSON strings as arguments, the way LLM tool calls deliver them,
run them through the ingestion adapter and hand typed models to the core.
Malformed input comes back as ErrorInfo(type=structural); layouts that are
well-formed but break a rule come back as ErrorInfo(type=design_rule).
"""

import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Mapping, Type
from pydantic import BaseModel, Field, ValidationError

from .agent_types import ErrorInfo, ErrorType, ToolCall, ToolResult
from .catalog import FIDGET_SIZES, FidgetSize
from .converter import convert
from .coverage import analyze_config, analyze_design, analyze_matrix, analyze_rectangles
from .ingest import (
    IngestionError,
    extract_layout_placements,
    load_design_matrix,
    load_design_plan,
    load_research,
    load_space_config,
    parse_llm_json,
)
from .models import DesignMatrix, GridPolicy, Verdict
from .verifier import validate_config, verify

logger = logging.getLogger(__name__)


# =============================================================================
# TOOL INTERFACE (Abstract Base Class)
# =============================================================================

class Tool(ABC):
    """
    Abstract base class for all tools.

    Each tool must define:
    - name: Unique identifier the LLM uses to call it
    - description: What the tool does (shown to LLM)
    - args_schema: Pydantic model defining required arguments
    - execute(): The actual implementation
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique tool identifier."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of what the tool does."""
        pass

    @property
    @abstractmethod
    def args_schema(self) -> Type[BaseModel]:
        """Pydantic model defining the tool's arguments."""
        pass

    @abstractmethod
    def execute(self, args: dict[str, Any]) -> ToolResult:
        """
        Execute the tool with the given arguments.

        Args:
            args: Dictionary of arguments (validated against args_schema)

        Returns:
            ToolResult with success/failure and output/error
        """
        pass

    def to_openai_schema(self) -> dict:
        """Convert tool definition to OpenAI function calling format."""
        schema = self.args_schema.model_json_schema()
        # Remove the title field that Pydantic adds
        schema.pop("title", None)

        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": schema,
            }
        }


class LayoutTool(Tool):
    """Base for tools that run against a grid policy and fidget catalog."""

    def __init__(
        self,
        policy: GridPolicy | None = None,
        catalog: Mapping[str, FidgetSize] = FIDGET_SIZES,
    ):
        self.policy = policy or GridPolicy()
        self.catalog = catalog

    def execute(self, args: dict[str, Any]) -> ToolResult:
        tool_call_id = str(uuid.uuid4())[:8]
        try:
            parsed = self.args_schema.model_validate(args)
            return self._run(tool_call_id, parsed)
        except ValidationError as e:
            return self._failure(tool_call_id, ErrorInfo(
                type=ErrorType.STRUCTURAL,
                message=f"Invalid arguments for {self.name}: {e.errors()[0]['msg']}",
                context={"errors": [str(err["loc"]) for err in e.errors()]},
            ))
        except IngestionError as e:
            return self._failure(tool_call_id, ErrorInfo(
                type=ErrorType.STRUCTURAL,
                message=e.message,
                context={"code": e.code, **e.details},
            ))
        except Exception as e:
            logger.exception("tool %s failed", self.name)
            return self._failure(tool_call_id, ErrorInfo(
                type=ErrorType.TOOL_FATAL,
                message=f"{type(e).__name__}: {str(e)[:200]}",
                recoverable=False,
            ))

    @abstractmethod
    def _run(self, tool_call_id: str, args: Any) -> ToolResult:
        pass

    def _success(self, tool_call_id: str, output: Any) -> ToolResult:
        return ToolResult(tool_call_id=tool_call_id, tool_name=self.name, success=True, output=output)

    def _failure(self, tool_call_id: str, error_info: ErrorInfo, output: Any = None) -> ToolResult:
        return ToolResult(
            tool_call_id=tool_call_id,
            tool_name=self.name,
            success=False,
            output=output,
            error=error_info.message,
            error_info=error_info,
        )

    def _report_result(self, tool_call_id: str, report) -> ToolResult:
        """A coverage report is a success unless its verdict is REJECT."""
        output = report.model_dump(mode="json")
        if report.verdict == Verdict.REJECT:
            return self._failure(tool_call_id, ErrorInfo.from_issue(report.issue), output=output)
        return self._success(tool_call_id, output)


# =============================================================================
# TOOL ARGUMENT SCHEMAS
# =============================================================================

class ResearchArgs(BaseModel):
    research_json: str = Field(..., description="Research data as a JSON string")


class DesignArgs(BaseModel):
    design_json: str = Field(
        ...,
        description=(
            "Design as a JSON string: either a design plan {fidgets, gridLayout?, rationale} "
            "or a design matrix {width, height, cells, items}"
        ),
    )


class ConfigArgs(BaseModel):
    config_json: str = Field(..., description="Built space configuration as a JSON string")


class ImplementationArgs(BaseModel):
    design_json: str = Field(..., description="Design plan as a JSON string")
    config_json: str = Field(..., description="Built space configuration as a JSON string")


def _is_matrix_payload(data: Any) -> bool:
    return isinstance(data, dict) and "cells" in data


# =============================================================================
# TOOLS
# =============================================================================

class ValidateResearchTool(LayoutTool):
    """Check that research data has the shape the designer expects."""

    @property
    def name(self) -> str:
        return "validate_research"

    @property
    def description(self) -> str:
        return (
            "Validate research data (summary, keyTopics, socialAccounts, relevantLinks, "
            "contentSuggestions). Reports missing fields by name."
        )

    @property
    def args_schema(self) -> Type[BaseModel]:
        return ResearchArgs

    def _run(self, tool_call_id: str, args: ResearchArgs) -> ToolResult:
        research = load_research(args.research_json)
        return self._success(tool_call_id, {
            "valid": True,
            "topics": len(research.key_topics),
            "links": len(research.relevant_links),
            "content_suggestions": len(research.content_suggestions),
        })


class ValidateDesignTool(LayoutTool):
    """
    Validate a design against the grid, the catalog and the coverage policy.

    Accepts a design plan or a bare design matrix. Output is the coverage
    report; a REJECT verdict makes the call fail with the report attached.
    """

    @property
    def name(self) -> str:
        return "validate_design"

    @property
    def description(self) -> str:
        return (
            f"Validate a layout design on the {self.policy.width}x{self.policy.height} grid. "
            "Checks bounds, rectangular regions, overlaps, minimum fidget sizes and coverage "
            f"(reject below {self.policy.reject_threshold:g}%, target {self.policy.target_threshold:g}%)."
        )

    @property
    def args_schema(self) -> Type[BaseModel]:
        return DesignArgs

    def _run(self, tool_call_id: str, args: DesignArgs) -> ToolResult:
        data = parse_llm_json(args.design_json)
        if _is_matrix_payload(data):
            report = analyze_matrix(load_design_matrix(data), self.policy, self.catalog)
        else:
            report = analyze_design(load_design_plan(data), self.policy, self.catalog)
        return self._report_result(tool_call_id, report)


class ConvertMatrixToConfigTool(LayoutTool):
    """Deterministically build the space configuration from a design."""

    @property
    def name(self) -> str:
        return "convert_matrix_to_config"

    @property
    def description(self) -> str:
        return (
            "Convert a design (plan or matrix) into the full space configuration "
            "(fidgetInstanceDatums, layoutDetails, theme). No LLM involved."
        )

    @property
    def args_schema(self) -> Type[BaseModel]:
        return DesignArgs

    def _run(self, tool_call_id: str, args: DesignArgs) -> ToolResult:
        data = parse_llm_json(args.design_json)
        if _is_matrix_payload(data):
            matrix: DesignMatrix = load_design_matrix(data)
        else:
            matrix = load_design_plan(data).to_matrix(self.policy)

        result = convert(matrix, self.policy, catalog=self.catalog)
        if not result.ok:
            return self._failure(tool_call_id, ErrorInfo.from_issue(result.issue))
        return self._success(tool_call_id, result.config.to_json_dict())


class ValidateConfigTool(LayoutTool):
    """Check a built configuration on its own: records, ids, types and coverage."""

    @property
    def name(self) -> str:
        return "validate_config"

    @property
    def description(self) -> str:
        return (
            "Validate a built space configuration: every instance has a layout entry, "
            "ids are unique, fidget types are known, and the layout covers the grid."
        )

    @property
    def args_schema(self) -> Type[BaseModel]:
        return ConfigArgs

    def _run(self, tool_call_id: str, args: ConfigArgs) -> ToolResult:
        config = load_space_config(args.config_json)
        issue = validate_config(config, self.catalog)
        if issue is not None:
            return self._failure(tool_call_id, ErrorInfo.from_issue(issue))
        return self._report_result(tool_call_id, analyze_config(config, self.policy))


class ValidateDesignImplementationTool(LayoutTool):
    """Compare a design plan with the configuration built from it."""

    @property
    def name(self) -> str:
        return "validate_design_implementation"

    @property
    def description(self) -> str:
        return (
            "Verify that a built configuration implements a design plan exactly: "
            "same fidget ids, same positions, same types."
        )

    @property
    def args_schema(self) -> Type[BaseModel]:
        return ImplementationArgs

    def _run(self, tool_call_id: str, args: ImplementationArgs) -> ToolResult:
        design = load_design_plan(args.design_json)
        config = load_space_config(args.config_json)
        result = verify(design, config, collect_all=True)
        output = result.model_dump(mode="json")
        if not result.ok:
            return self._failure(tool_call_id, ErrorInfo.from_issue(result.issue), output=output)
        return self._success(tool_call_id, output)


class AnalyzeLayoutTool(LayoutTool):
    """Score the layout of any rectangle-list configuration."""

    @property
    def name(self) -> str:
        return "analyze_layout"

    @property
    def description(self) -> str:
        return (
            "Analyze grid usage of a configuration's layoutDetails.layoutConfig.layout "
            "(i, x, y, w, h entries): coverage, rows and columns used, overlaps."
        )

    @property
    def args_schema(self) -> Type[BaseModel]:
        return ConfigArgs

    def _run(self, tool_call_id: str, args: ConfigArgs) -> ToolResult:
        placements = extract_layout_placements(args.config_json)
        return self._report_result(tool_call_id, analyze_rectangles(placements, self.policy))


# =============================================================================
# TOOL REGISTRY
# =============================================================================

class ToolRegistry:
    """
    Registry of all available tools.

    Provides lookup by name and generates the OpenAI function schema for all tools.
    """

    def __init__(self):
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        """Register a tool by name."""
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool | None:
        """Look up a tool by name."""
        return self._tools.get(name)

    def list_tools(self) -> list[Tool]:
        """Return all registered tools."""
        return list(self._tools.values())

    def get_openai_schemas(self) -> list[dict]:
        """Get OpenAI function calling schemas for all tools."""
        return [tool.to_openai_schema() for tool in self._tools.values()]

    def get_tools_description(self) -> str:
        """Get a human-readable description of all tools for the system prompt."""
        lines = ["Available tools:"]
        for tool in self._tools.values():
            lines.append(f"\n- {tool.name}: {tool.description}")
        return "\n".join(lines)

    def dispatch(self, call: ToolCall) -> ToolResult:
        """Run a tool call; unknown tool names fail without raising."""
        tool = self.get(call.name)
        if tool is None:
            return ToolResult(
                tool_call_id=call.id,
                tool_name=call.name,
                success=False,
                error=f"Unknown tool: {call.name}",
                error_info=ErrorInfo(
                    type=ErrorType.STRUCTURAL,
                    message=f"Unknown tool: {call.name}",
                    context={"available": sorted(self._tools)},
                    recoverable=False,
                ),
            )
        result = tool.execute(call.arguments)
        return result.model_copy(update={"tool_call_id": call.id})


def create_default_registry(
    policy: GridPolicy | None = None,
    catalog: Mapping[str, FidgetSize] = FIDGET_SIZES,
) -> ToolRegistry:
    """Create and populate the default tool registry."""
    registry = ToolRegistry()

    registry.register(ValidateResearchTool(policy, catalog))

    # Design checks
    registry.register(ValidateDesignTool(policy, catalog))
    registry.register(AnalyzeLayoutTool(policy, catalog))

    # Build and verify
    registry.register(ConvertMatrixToConfigTool(policy, catalog))
    registry.register(ValidateConfigTool(policy, catalog))
    registry.register(ValidateDesignImplementationTool(policy, catalog))

    return registry

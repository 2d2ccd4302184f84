"""
Tests for agent_tools.py - the Tool interface and the default registry.

Tests:
- Registry contents and OpenAI function schemas
- Each tool on good input
- Malformed input fails with ErrorInfo(type=structural)
- Rule violations fail with ErrorInfo(type=design_rule) and keep the report
- Unknown tools dispatch to a failed result
"""

import json

import pytest

from space_builder.agent_tools import create_default_registry
from space_builder.agent_types import ErrorType, ToolCall
from space_builder.converter import convert


@pytest.fixture
def registry(policy):
    return create_default_registry(policy)


@pytest.fixture
def config_json(policy, sample_plan):
    return json.dumps(convert(sample_plan.to_matrix(policy), policy).config.to_json_dict())


def _run(registry, name, **arguments):
    return registry.get(name).execute(arguments)


class TestRegistry:

    def test_default_tools(self, registry):
        """The default registry holds the six layout tools."""
        assert {t.name for t in registry.list_tools()} == {
            "validate_research",
            "validate_design",
            "convert_matrix_to_config",
            "validate_config",
            "validate_design_implementation",
            "analyze_layout",
        }

    def test_openai_schemas(self, registry):
        """Schemas are OpenAI function specs without pydantic titles."""
        schemas = {s["function"]["name"]: s for s in registry.get_openai_schemas()}
        params = schemas["validate_design_implementation"]["function"]["parameters"]

        assert schemas["validate_design"]["type"] == "function"
        assert "title" not in params
        assert set(params["required"]) == {"design_json", "config_json"}

    def test_description_mentions_policy(self, registry):
        """Tool descriptions quote the live grid size and thresholds."""
        assert "12x8 grid" in registry.get("validate_design").description
        assert "reject below 60%" in registry.get("validate_design").description

    def test_tools_description(self, registry):
        """The text listing names every tool."""
        text = registry.get_tools_description()
        assert text.startswith("Available tools:")
        assert "- analyze_layout:" in text

    def test_dispatch_unknown_tool(self, registry):
        """Dispatching an unknown name fails structurally and keeps the call id."""
        result = registry.dispatch(ToolCall(id="abc", name="delete_everything"))
        assert not result.success
        assert result.tool_call_id == "abc"
        assert result.error_info.type == ErrorType.STRUCTURAL

    def test_dispatch_keeps_call_id(self, registry, sample_payload):
        """A dispatched result carries the id of its call."""
        call = ToolCall(id="call-1", name="validate_design", arguments={"design_json": json.dumps(sample_payload)})
        result = registry.dispatch(call)
        assert result.success
        assert result.tool_call_id == "call-1"


class TestValidateDesignTool:

    def test_accepts_sample_design(self, registry, sample_payload):
        """The sample designer payload is accepted."""
        result = _run(registry, "validate_design", design_json=json.dumps(sample_payload))
        assert result.success
        assert result.output["verdict"] == "accept"
        assert result.output["occupied_cells"] == 88

    def test_accepts_matrix_payload(self, registry, sample_plan, policy):
        """A payload with cells is scored as a matrix."""
        matrix = sample_plan.to_matrix(policy)
        result = _run(registry, "validate_design", design_json=matrix.model_dump_json())
        assert result.success
        assert result.output["verdict"] == "accept"

    def test_reject_is_design_rule_failure(self, registry):
        """A rule violation fails as design_rule and keeps the report."""
        design = {"fidgets": [
            {"id": "text:a", "type": "text", "position": {"x": 10, "y": 0, "width": 4, "height": 2}},
        ]}
        result = _run(registry, "validate_design", design_json=json.dumps(design))

        assert not result.success
        assert result.error_info.type == ErrorType.DESIGN_RULE
        assert result.error_info.context["code"] == "OUT_OF_BOUNDS"
        assert result.output["verdict"] == "reject"

    def test_invalid_json_is_structural(self, registry):
        """Unparseable JSON fails as structural."""
        result = _run(registry, "validate_design", design_json="{not json")
        assert not result.success
        assert result.error_info.type == ErrorType.STRUCTURAL
        assert result.error_info.context["code"] == "INVALID_JSON"

    def test_missing_argument_is_structural(self, registry):
        """Missing tool arguments fail as structural."""
        result = registry.get("validate_design").execute({})
        assert not result.success
        assert result.error_info.type == ErrorType.STRUCTURAL

    def test_dimension_mismatch_is_structural(self, registry, sample_payload):
        """A gridLayout of the wrong height fails as structural."""
        sample_payload["gridLayout"] = [[None] * 12 for _ in range(10)]
        result = _run(registry, "validate_design", design_json=json.dumps(sample_payload))
        assert result.error_info.type == ErrorType.STRUCTURAL
        assert result.error_info.context["code"] == "DIMENSION_MISMATCH"


class TestBuildAndVerifyTools:

    def test_convert_returns_renderer_shape(self, registry, sample_payload):
        """Conversion returns the renderer's config shape."""
        result = _run(registry, "convert_matrix_to_config", design_json=json.dumps(sample_payload))
        assert result.success
        assert "fidgetInstanceDatums" in result.output
        assert len(result.output["layoutDetails"]["layoutConfig"]["layout"]) == 6

    def test_convert_unknown_type(self, registry, sample_payload):
        """Conversion refuses an unknown fidget type."""
        sample_payload["fidgets"][0]["type"] = "hologram"
        result = _run(registry, "convert_matrix_to_config", design_json=json.dumps(sample_payload))
        assert not result.success
        assert result.error_info.context["code"] == "UNKNOWN_FIDGET_TYPE"

    def test_validate_config(self, registry, config_json):
        """A converted config passes validation and scoring."""
        result = _run(registry, "validate_config", config_json=config_json)
        assert result.success
        assert result.output["verdict"] == "accept"

    def test_validate_config_missing_field(self, registry):
        """A config without layoutID names the missing field."""
        result = _run(registry, "validate_config", config_json=json.dumps({"fidgetInstanceDatums": {}}))
        assert result.error_info.type == ErrorType.STRUCTURAL
        assert "layoutID" in result.error

    def test_design_implementation_match(self, registry, sample_payload, config_json):
        """A config built from the design verifies."""
        result = _run(
            registry, "validate_design_implementation",
            design_json=json.dumps(sample_payload), config_json=config_json,
        )
        assert result.success
        assert result.output["ok"] is True

    def test_design_implementation_mismatch(self, registry, sample_payload, config_json):
        """A type change is reported as a design_rule failure."""
        sample_payload["fidgets"][1]["type"] = "Rss"
        result = _run(
            registry, "validate_design_implementation",
            design_json=json.dumps(sample_payload), config_json=config_json,
        )
        assert not result.success
        assert result.error_info.type == ErrorType.DESIGN_RULE
        assert result.output["issues"][0]["code"] == "TYPE_MISMATCH"

    def test_analyze_layout(self, registry, config_json):
        """Layout analysis counts occupied cells of a config."""
        result = _run(registry, "analyze_layout", config_json=config_json)
        assert result.success
        assert result.output["occupied_cells"] == 88

    def test_validate_research(self, registry):
        """Complete research data is accepted."""
        research = {"summary": "dogs", "keyTopics": ["dogs"], "socialAccounts": {}}
        result = _run(registry, "validate_research", research_json=json.dumps(research))
        assert result.success
        assert result.output["topics"] == 1

    def test_validate_research_missing_fields(self, registry):
        """Research without keyTopics fails with MISSING_FIELD."""
        result = _run(registry, "validate_research", research_json='{"summary": "dogs"}')
        assert not result.success
        assert result.error_info.context["code"] == "MISSING_FIELD"

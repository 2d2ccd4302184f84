"""
Tests for orchestrator.py - the research → design → validate → build → verify pipeline.

Ensures:
- A good first design produces a verified config in one attempt
- REJECT verdicts and designer failures are retried with feedback
- The attempt bound is respected
- WARN verdicts proceed unless retry_on_warn is set
- Every stage is recorded in the debug payload
"""

import pytest
from unittest.mock import patch

from space_builder.agent_types import PipelineStatus
from space_builder.debug_types import StageKind, StageStatus
from space_builder.models import DesignPlan, ResearchData, SocialAccounts, Verdict
from space_builder.orchestrator import run_pipeline


@pytest.fixture
def research():
    return ResearchData(
        summary="A club for dog photographers.",
        key_topics=["dogs"],
        social_accounts=SocialAccounts(),
    )


@pytest.fixture
def sparse_plan():
    """A valid but nearly empty design: 6 of 96 cells."""
    return DesignPlan.model_validate({"fidgets": [
        {"id": "text:only", "type": "text", "position": {"x": 0, "y": 0, "width": 3, "height": 2}},
    ]})


@pytest.fixture
def short_plan():
    """75% coverage but only 6 rows used."""
    return DesignPlan.model_validate({"fidgets": [
        {"id": "feed:a", "type": "feed", "position": {"x": 0, "y": 0, "width": 6, "height": 6}},
        {"id": "feed:b", "type": "feed", "position": {"x": 6, "y": 0, "width": 6, "height": 6}},
    ]})


class TestRunPipelineSuccess:

    def test_first_design_accepted(self, research, sample_plan):
        """An accepted first design finishes in one attempt."""
        with patch("space_builder.orchestrator.ResearchAgent.run", return_value=research), \
             patch("space_builder.orchestrator.DesignAgent.run", return_value=sample_plan) as mock_design:

            result = run_pipeline("dog photography club")

        assert result.status == PipelineStatus.DONE
        assert result.attempts == 1
        assert result.research == research
        assert result.design == sample_plan
        assert result.coverage.verdict == Verdict.ACCEPT
        assert result.verification.ok
        assert set(result.config.fidget_instance_datums) == {f.id for f in sample_plan.fidgets}
        assert mock_design.call_count == 1
        assert result.errors == []

    def test_grid_layout_plan_accepted(self, research, sample_plan_with_grid):
        """A plan with a gridLayout builds from the matrix."""
        with patch("space_builder.orchestrator.ResearchAgent.run", return_value=research), \
             patch("space_builder.orchestrator.DesignAgent.run", return_value=sample_plan_with_grid):

            result = run_pipeline("dog photography club")

        assert result.status == PipelineStatus.DONE

    def test_debug_records_every_stage(self, research, sample_plan):
        """Every stage leaves a record."""
        with patch("space_builder.orchestrator.ResearchAgent.run", return_value=research), \
             patch("space_builder.orchestrator.DesignAgent.run", return_value=sample_plan):

            result = run_pipeline("dog photography club")

        stages = result.debug.stages
        assert [s.id for s in stages] == ["R0", "D1", "V1", "B1", "C1"]
        assert [s.kind for s in stages] == [
            StageKind.RESEARCH, StageKind.DESIGN, StageKind.VALIDATION,
            StageKind.BUILD, StageKind.VERIFICATION,
        ]
        assert all(s.status == StageStatus.SUCCESS for s in stages)
        assert stages[2].summary["verdict"] == "accept"
        assert result.debug.overall_status == "SUCCESS"
        assert result.debug.inputs.request_chars == len("dog photography club")


class TestRunPipelineRetries:

    def test_reject_is_retried_with_feedback(self, research, sparse_plan, sample_plan):
        """A rejected design is retried with the reject message."""
        with patch("space_builder.orchestrator.ResearchAgent.run", return_value=research), \
             patch("space_builder.orchestrator.DesignAgent.run", side_effect=[sparse_plan, sample_plan]) as mock_design:

            result = run_pipeline("dog photography club")

        assert result.status == PipelineStatus.DONE
        assert result.attempts == 2
        first_feedback = mock_design.call_args_list[0].args[1]
        second_feedback = mock_design.call_args_list[1].args[1]
        assert first_feedback is None
        assert second_feedback.startswith("Grid coverage too low")
        assert len(result.errors) == 1
        assert result.debug.overall_status == "PARTIAL"

    def test_stops_after_attempt_bound(self, research, sparse_plan):
        """Rejections stop at the attempt bound."""
        with patch("space_builder.orchestrator.ResearchAgent.run", return_value=research), \
             patch("space_builder.orchestrator.DesignAgent.run", return_value=sparse_plan) as mock_design:

            result = run_pipeline("dog photography club", max_design_attempts=2)

        assert result.status == PipelineStatus.DESIGN_REJECTED
        assert mock_design.call_count == 2
        assert result.attempts == 2
        assert result.config is None
        assert result.coverage.verdict == Verdict.REJECT
        assert result.debug.overall_status == "FAILED"
        assert [s.id for s in result.debug.stages] == ["R0", "D1", "V1", "D2", "V2"]

    def test_designer_exception_counts_as_attempt(self, research, sample_plan):
        """A designer error uses up an attempt."""
        with patch("space_builder.orchestrator.ResearchAgent.run", return_value=research), \
             patch("space_builder.orchestrator.DesignAgent.run",
                   side_effect=[RuntimeError("LLM timeout"), sample_plan]) as mock_design:

            result = run_pipeline("dog photography club")

        assert result.status == PipelineStatus.DONE
        assert result.attempts == 2
        assert "LLM timeout" in mock_design.call_args_list[1].args[1]
        assert result.debug.stages[1].status == StageStatus.FAILED

    def test_designer_always_failing(self, research):
        """A designer that always raises ends rejected with one error per attempt."""
        with patch("space_builder.orchestrator.ResearchAgent.run", return_value=research), \
             patch("space_builder.orchestrator.DesignAgent.run", side_effect=RuntimeError("LLM down")):

            result = run_pipeline("dog photography club", max_design_attempts=3)

        assert result.status == PipelineStatus.DESIGN_REJECTED
        assert result.design is None
        assert len(result.errors) == 3

    def test_invalid_attempt_bound(self):
        """Fewer than one attempt is refused."""
        with pytest.raises(ValueError):
            run_pipeline("anything", max_design_attempts=0)


class TestRunPipelineWarnings:

    def test_warn_proceeds_by_default(self, research, short_plan):
        """A warning still builds by default."""
        with patch("space_builder.orchestrator.ResearchAgent.run", return_value=research), \
             patch("space_builder.orchestrator.DesignAgent.run", return_value=short_plan) as mock_design:

            result = run_pipeline("dog photography club")

        assert result.status == PipelineStatus.DONE
        assert result.coverage.verdict == Verdict.WARN
        assert mock_design.call_count == 1

    def test_retry_on_warn(self, research, short_plan, sample_plan):
        """With retry_on_warn a warning is retried."""
        with patch("space_builder.orchestrator.ResearchAgent.run", return_value=research), \
             patch("space_builder.orchestrator.DesignAgent.run", side_effect=[short_plan, sample_plan]) as mock_design:

            result = run_pipeline("dog photography club", retry_on_warn=True)

        assert result.status == PipelineStatus.DONE
        assert result.attempts == 2
        assert mock_design.call_args_list[1].args[1].startswith("Design only uses 6 rows")

    def test_last_attempt_accepts_warn(self, research, short_plan):
        """The last attempt builds despite a warning."""
        with patch("space_builder.orchestrator.ResearchAgent.run", return_value=research), \
             patch("space_builder.orchestrator.DesignAgent.run", return_value=short_plan):

            result = run_pipeline("dog photography club", max_design_attempts=2, retry_on_warn=True)

        assert result.status == PipelineStatus.DONE
        assert result.attempts == 2
        assert result.coverage.verdict == Verdict.WARN


class TestRunPipelineVerification:

    def test_verify_failure_is_reported(self, research, sample_plan):
        """Verification failures end as VERIFY_FAILED."""
        from space_builder.models import VerificationResult

        failed = VerificationResult(ok=False, message="Type mismatch for text:welcome.")
        with patch("space_builder.orchestrator.ResearchAgent.run", return_value=research), \
             patch("space_builder.orchestrator.DesignAgent.run", return_value=sample_plan), \
             patch("space_builder.orchestrator.verify", return_value=failed):

            result = run_pipeline("dog photography club", max_design_attempts=1)

        assert result.status == PipelineStatus.VERIFY_FAILED
        assert result.config is not None
        assert result.verification.message == "Type mismatch for text:welcome."
        assert result.debug.stages[-1].status == StageStatus.FAILED

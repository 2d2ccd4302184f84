"""
Orchestration & Pipeline Module

Defines the pipeline that turns a free-text request into a verified space
configuration:
1. ResearchAgent (request -> ResearchData), falls back instead of failing
2. DesignAgent (ResearchData + feedback -> DesignPlan)
3. analyze_design (DesignPlan -> CoverageReport)
4. convert (DesignPlan matrix -> SpaceConfig), deterministic
5. verify (DesignPlan vs SpaceConfig -> VerificationResult)

Steps 2-5 form one design attempt. A rejected design, a failed conversion
or a failed verification sends its message back to the designer as feedback
for the next attempt, up to max_design_attempts.
"""

import logging

from .agent_types import PipelineResult, PipelineStatus
from .agents import DesignAgent, ResearchAgent
from .config import OPENAI_MODEL
from .converter import convert
from .coverage import analyze_design
from .debug_types import PipelineStageRecord, StageKind
from .models import GridPolicy, Verdict
from .pipeline_instrumentation import build_payload, mark_failed, preview_payload, run_stage
from .verifier import verify

logger = logging.getLogger(__name__)


def run_pipeline(
    user_request: str,
    policy: GridPolicy | None = None,
    max_design_attempts: int = 3,
    retry_on_warn: bool = False,
    research_agent: ResearchAgent | None = None,
    design_agent: DesignAgent | None = None,
) -> PipelineResult:
    """Run research -> design -> validate -> build -> verify for one request.

    Args:
        user_request: Free-text description of the space to build.
        policy: Grid dimensions and coverage thresholds (defaults to GridPolicy()).
        max_design_attempts: Upper bound on design attempts, at least 1.
        retry_on_warn: Also send WARN verdicts back to the designer while
            attempts remain. The final attempt always proceeds on WARN.
        research_agent / design_agent: Injected agents (default to new instances).

    Returns:
        PipelineResult. design, coverage, config and verification describe
        the final attempt; status is DONE only if its config was verified.
    """
    if max_design_attempts < 1:
        raise ValueError("max_design_attempts must be at least 1")

    policy = policy or GridPolicy()
    research_agent = research_agent or ResearchAgent()
    design_agent = design_agent or DesignAgent(policy)

    logger.info("run_pipeline request=%r", user_request[:200])

    stages: list[PipelineStageRecord] = []

    # Step 1: Research (never raises)
    research = run_stage(
        stages, "R0", "Research", StageKind.RESEARCH,
        lambda: research_agent.run(user_request),
        agent_model=OPENAI_MODEL,
    )
    stages[-1].summary = {
        "topics": len(research.key_topics),
        "links": len(research.relevant_links),
    }

    result = PipelineResult(status=PipelineStatus.DESIGN_REJECTED, research=research)
    feedback: str | None = None

    for attempt in range(1, max_design_attempts + 1):
        result.attempts = attempt
        result.design = result.coverage = result.config = result.verification = None
        result.status = PipelineStatus.DESIGN_REJECTED

        # Step 2: Design
        try:
            design = run_stage(
                stages, f"D{attempt}", "Design", StageKind.DESIGN,
                lambda: design_agent.run(research, feedback),
                attempt=attempt, agent_model=OPENAI_MODEL,
            )
        except Exception as e:
            feedback = f"Your previous response could not be used: {str(e)[:300]}"
            result.errors.append(f"attempt {attempt}: design failed: {str(e)[:200]}")
            continue

        result.design = design
        stages[-1].summary = {"fidgets": len(design.fidgets), "grid_layout": design.grid_layout is not None}
        stages[-1].payload_preview = preview_payload(design)

        # Step 3: Validate
        report = run_stage(
            stages, f"V{attempt}", "Validate Design", StageKind.VALIDATION,
            lambda: analyze_design(design, policy, design_agent.catalog),
            attempt=attempt,
        )
        result.coverage = report
        stages[-1].summary = {
            "verdict": report.verdict.value,
            "coverage_percentage": round(report.coverage_percentage, 1),
            "code": report.issue.code if report.issue else None,
        }
        logger.info(
            "attempt %d: verdict=%s coverage=%.1f%%",
            attempt, report.verdict.value, report.coverage_percentage,
        )

        if report.verdict == Verdict.REJECT:
            mark_failed(stages[-1], report.message)
            feedback = report.message
            result.errors.append(f"attempt {attempt}: {report.message}")
            continue

        if report.verdict == Verdict.WARN and retry_on_warn and attempt < max_design_attempts:
            feedback = report.message
            result.errors.append(f"attempt {attempt}: {report.message}")
            continue

        # Step 4: Build
        conversion = run_stage(
            stages, f"B{attempt}", "Build Config", StageKind.BUILD,
            lambda: convert(design.to_matrix(policy), policy, catalog=design_agent.catalog),
            attempt=attempt,
        )
        if not conversion.ok:
            mark_failed(stages[-1], conversion.issue.message)
            feedback = conversion.issue.message
            result.errors.append(f"attempt {attempt}: {conversion.issue.message}")
            continue

        config = conversion.config
        result.config = config
        stages[-1].summary = {"layout_id": config.layout_id, "fidgets": len(config.fidget_instance_datums)}

        # Step 5: Verify
        verification = run_stage(
            stages, f"C{attempt}", "Verify Implementation", StageKind.VERIFICATION,
            lambda: verify(design, config),
            attempt=attempt,
        )
        result.verification = verification

        if not verification.ok:
            mark_failed(stages[-1], verification.message)
            result.status = PipelineStatus.VERIFY_FAILED
            feedback = verification.message
            result.errors.append(f"attempt {attempt}: {verification.message}")
            continue

        result.status = PipelineStatus.DONE
        break

    logger.info("run_pipeline finished: status=%s attempts=%d", result.status.value, result.attempts)

    result.debug = build_payload(user_request, stages, result.status == PipelineStatus.DONE)
    return result

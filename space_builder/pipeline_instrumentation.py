"""
Pipeline instrumentation for debug payload construction.

Wraps individual pipeline stages to collect PipelineStageRecords and
assembles them into a PipelineDebugPayload.

The instrumentation is additive and does not change the control flow or
error handling semantics of the underlying stage: exceptions are recorded
and re-raised.

See debug_types.py for the PipelineDebugPayload and PipelineStageRecord schemas.
"""

import json
import logging
from typing import Any, Callable, TypeVar

from pydantic import BaseModel

from .debug_types import (
    DebugInputs,
    PayloadPreview,
    PipelineDebugPayload,
    PipelineStageRecord,
    StageKind,
    StageStatus,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

PREVIEW_CHARS = 500


def _build_stage_record(
    stage_id: str,
    stage_name: str,
    stage_kind: StageKind,
    attempt: int = 0,
    agent_model: str | None = None,
) -> PipelineStageRecord:
    """Create a new PipelineStageRecord with default values."""
    return PipelineStageRecord(
        id=stage_id,
        name=stage_name,
        kind=stage_kind,
        status=StageStatus.SUCCESS,
        attempt=attempt,
        agent_model=agent_model,
        summary={},
        errors=[],
        payload_preview=None,
    )


def run_stage(
    records: list[PipelineStageRecord],
    stage_id: str,
    stage_name: str,
    stage_kind: StageKind,
    func: Callable[[], T],
    attempt: int = 0,
    agent_model: str | None = None,
) -> T:
    """
    Run func as an instrumented stage and append its record to records.

    The record is appended whether func returns or raises; exceptions propagate.
    """
    record = _build_stage_record(stage_id, stage_name, stage_kind, attempt, agent_model)
    records.append(record)
    try:
        return func()
    except Exception as e:
        record.status = StageStatus.FAILED
        record.errors.append(str(e)[:200])
        logger.warning("stage %s (%s) failed: %s", stage_id, stage_name, str(e)[:200])
        raise


def mark_failed(record: PipelineStageRecord, message: str) -> None:
    """Mark a stage that returned normally but produced a failing result."""
    record.status = StageStatus.FAILED
    record.errors.append(message[:200])


def preview_payload(value: Any) -> PayloadPreview:
    """Build a truncated JSON (or text) preview of a stage output."""
    if isinstance(value, BaseModel):
        content = json.dumps(value.model_dump(by_alias=True, mode="json"))
        kind = "json"
    elif isinstance(value, (dict, list)):
        content = json.dumps(value, default=str)
        kind = "json"
    else:
        content = str(value)
        kind = "text"
    truncated = len(content) > PREVIEW_CHARS
    return PayloadPreview(type=kind, content=content[:PREVIEW_CHARS], truncated=truncated)


def build_debug_inputs(user_request: str) -> DebugInputs:
    """Build DebugInputs from the raw request."""
    return DebugInputs(
        request_chars=len(user_request),
        request_preview=user_request[:200],
    )


def compute_overall_status(stages: list[PipelineStageRecord], succeeded: bool) -> str:
    """
    Compute overall_status from stage records.

    Logic:
    - FAILED: the pipeline did not produce a verified configuration
    - SUCCESS: it did, and every stage succeeded
    - PARTIAL: it did, after at least one failed stage (fallback or retry)
    """
    if not succeeded:
        return "FAILED"
    if all(s.status == StageStatus.SUCCESS for s in stages):
        return "SUCCESS"
    return "PARTIAL"


def build_payload(
    user_request: str,
    stages: list[PipelineStageRecord],
    succeeded: bool,
) -> PipelineDebugPayload:
    """Build a complete PipelineDebugPayload from components."""
    return PipelineDebugPayload(
        inputs=build_debug_inputs(user_request),
        overall_status=compute_overall_status(stages, succeeded),
        stages=stages,
    )

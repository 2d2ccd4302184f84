"""
Serialization utilities for making pipeline outputs JSON-friendly.

Converts Pydantic models and enums to plain dicts and native Python types.
Models are dumped by alias so the built configuration keeps the renderer's
field names (fidgetInstanceDatums, layoutID, ...).
"""

from enum import Enum
from pydantic import BaseModel

from .agent_types import PipelineResult


def serialize_pipeline_result(result: PipelineResult) -> dict:
    """
    Convert a PipelineResult to a JSON-serializable dict.

    Handles:
    - Pydantic models (converts to dicts via .model_dump(by_alias=True))
    - Enum values (converts to string via .value)
    - Nested structures (lists, dicts with the above)

    Args:
        result: PipelineResult returned by run_pipeline

    Returns:
        A new dict with status, research, design, coverage, config,
        verification, attempts, errors and debug as JSON-native values.
    """
    return _serialize_value(result)


def _serialize_value(value):
    """
    Recursively serialize a single value.

    - Pydantic BaseModel instances → dict (by alias)
    - Enum instances → string value
    - Lists and tuples → list of serialized items
    - Dicts → dict of serialized key-value pairs
    - Primitives (str, int, float, bool, None) → pass through
    """
    if isinstance(value, BaseModel):
        return _serialize_value(value.model_dump(by_alias=True))

    if isinstance(value, Enum):
        return value.value

    if isinstance(value, (list, tuple)):
        return [_serialize_value(item) for item in value]

    if isinstance(value, dict):
        return {k: _serialize_value(v) for k, v in value.items()}

    return value

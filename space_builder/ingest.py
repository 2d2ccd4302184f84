"""
Ingestion Module

Boundary adapter between raw JSON (usually produced by an LLM) and the typed
models the core works with. The core never sees malformed input: everything
either becomes a pydantic model here or raises IngestionError.

- parse_llm_json(text): tolerant JSON parsing of LLM output
- load_design_matrix / load_design_plan / load_space_config / load_research:
  dict-or-string payload -> typed model
- extract_layout_placements(payload): rectangle-list config -> list[Placement]
"""

import json
import logging
import re
from typing import Any, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .models import DesignMatrix, DesignPlan, Placement, ResearchData, SpaceConfig

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\}|\[[\s\S]*?\])\s*```")


class IngestionError(Exception):
    """
    Raised when a payload cannot be turned into a typed model.

    Carries structured error information:
    - code: 'INVALID_JSON', 'MISSING_FIELD', 'SCHEMA_MISMATCH'
    - message: human-readable description naming the offending field(s)
    - details: optional dict with debug information
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(f"{code}: {message}")


def _candidates(text: str) -> list[str]:
    """Strings worth handing to json.loads, most literal first."""
    candidates = [text.strip()]

    match = _FENCED_BLOCK.search(text)
    if match:
        candidates.append(match.group(1))

    start, end = text.find("{"), text.rfind("}")
    if 0 <= start < end:
        candidates.append(text[start:end + 1])

    return candidates


def parse_llm_json(text: str) -> Any:
    """
    Parse JSON from LLM output.

    Tries, in order: the raw text, the first ```json fenced block, the
    outermost {...} span, and finally each of those with escaped quotes and
    newlines unescaped.

    Raises:
        IngestionError: code 'INVALID_JSON' if nothing parses
    """
    if not isinstance(text, str):
        raise IngestionError("INVALID_JSON", f"Expected a JSON string, got {type(text).__name__}")

    candidates = _candidates(text)
    last_error: Exception | None = None

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError as exc:
            last_error = exc

    for candidate in candidates:
        unescaped = candidate.replace('\\"', '"').replace("\\n", "\n")
        if unescaped == candidate:
            continue
        try:
            parsed = json.loads(unescaped)
            logger.debug("parse_llm_json: recovered after unescaping")
            return parsed
        except json.JSONDecodeError as exc:
            last_error = exc

    preview = text[:200] + ("..." if len(text) > 200 else "")
    raise IngestionError(
        "INVALID_JSON",
        f"Invalid JSON format: {last_error}",
        details={"preview": preview},
    )


def _as_dict(payload: Any) -> Any:
    if isinstance(payload, (str, bytes)):
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8")
        return parse_llm_json(payload)
    return payload


def _field_path(loc: tuple) -> str:
    return ".".join(str(part) for part in loc)


def _load(payload: Any, schema: Type[T]) -> T:
    """Validate payload against schema, translating pydantic errors into IngestionError."""
    data = _as_dict(payload)
    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        errors = exc.errors()
        missing = [_field_path(e["loc"]) for e in errors if e["type"] == "missing"]
        if missing:
            raise IngestionError(
                "MISSING_FIELD",
                f"Invalid {schema.__name__} format. Missing required field(s): {', '.join(missing)}",
                details={"missing": missing},
            ) from exc
        problems = [f"{_field_path(e['loc'])}: {e['msg']}" for e in errors]
        raise IngestionError(
            "SCHEMA_MISMATCH",
            f"Invalid {schema.__name__} format: {'; '.join(problems[:5])}",
            details={"errors": problems},
        ) from exc


def load_design_matrix(payload: Any) -> DesignMatrix:
    """Cell matrix JSON {width, height, cells, items|fidgets} -> DesignMatrix."""
    return _load(payload, DesignMatrix)


def load_design_plan(payload: Any) -> DesignPlan:
    """Designer JSON {fidgets, gridLayout?, rationale} -> DesignPlan."""
    return _load(payload, DesignPlan)


def load_space_config(payload: Any) -> SpaceConfig:
    """Built configuration JSON (renderer field names) -> SpaceConfig."""
    return _load(payload, SpaceConfig)


def load_research(payload: Any) -> ResearchData:
    """Researcher JSON -> ResearchData."""
    return _load(payload, ResearchData)


def extract_layout_placements(payload: Any) -> list[Placement]:
    """
    Pull positioned rectangles out of a rectangle-list config.

    Expects {layoutDetails: {layoutConfig: {layout: [{i, x, y, w, h, ...}]}}};
    i, x, y, w, h map to id, x, y, width, height. Extra keys are ignored.

    Raises:
        IngestionError: 'MISSING_FIELD' naming the first missing key
    """
    data = _as_dict(payload)
    if not isinstance(data, dict):
        raise IngestionError("SCHEMA_MISMATCH", "Configuration must be a JSON object.")

    node: Any = data
    path = []
    for key in ("layoutDetails", "layoutConfig", "layout"):
        path.append(key)
        if not isinstance(node, dict) or key not in node:
            raise IngestionError(
                "MISSING_FIELD",
                f"Missing required field: {'.'.join(path)}",
                details={"missing": ['.'.join(path)]},
            )
        node = node[key]

    if not isinstance(node, list):
        raise IngestionError("SCHEMA_MISMATCH", "layoutDetails.layoutConfig.layout must be a list.")

    placements = []
    for index, item in enumerate(node):
        if not isinstance(item, dict):
            raise IngestionError("SCHEMA_MISMATCH", f"layout[{index}] must be an object.")
        missing = [key for key in ("i", "x", "y", "w", "h") if key not in item]
        if missing:
            raise IngestionError(
                "MISSING_FIELD",
                f"layout[{index}] is missing field(s): {', '.join(missing)}",
                details={"index": index, "missing": missing},
            )
        try:
            placements.append(Placement(
                id=item["i"], x=item["x"], y=item["y"], width=item["w"], height=item["h"]
            ))
        except ValidationError as exc:
            raise IngestionError(
                "SCHEMA_MISMATCH",
                f"layout[{index}] ({item.get('i')}) has invalid geometry: {exc.errors()[0]['msg']}",
                details={"index": index},
            ) from exc

    return placements

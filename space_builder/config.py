"""
Runtime configuration.

Values come from the environment (a local .env file is loaded on import):
- OPENAI_API_KEY: required only for LLM-backed stages
- OPENAI_MODEL: chat model used by the research and design agents
- SPACE_GRID_WIDTH / SPACE_GRID_HEIGHT: grid dimensions
- SPACE_REJECT_THRESHOLD / SPACE_TARGET_THRESHOLD: coverage thresholds in percent
- SPACE_MAX_ITEM_SIZE: maxW/maxH written to every layout item
"""

import os
from dotenv import load_dotenv

from .models import GridPolicy

load_dotenv()

OPENAI_MODEL = os.environ.get("OPENAI_MODEL", "gpt-4o")
OPENAI_TEMPERATURE = 0.1


def get_openai_api_key() -> str:
    """
    Return the OPENAI_API_KEY from environment.

    Raises:
        RuntimeError: if the env var is missing or empty.
    """
    api_key = os.environ.get("OPENAI_API_KEY", "").strip()
    if not api_key:
        raise RuntimeError(
            "OPENAI_API_KEY not set; please export it before running LLM-backed code."
        )
    return api_key


def _env_number(name: str, cast):
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    try:
        return cast(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name}={raw!r} is not a valid {cast.__name__}") from exc


def load_grid_policy() -> GridPolicy:
    """
    Build the GridPolicy from environment overrides.

    Unset variables keep the GridPolicy defaults (12×8 grid, reject below 60%,
    target 70%, max item size 36).
    """
    overrides = {
        "width": _env_number("SPACE_GRID_WIDTH", int),
        "height": _env_number("SPACE_GRID_HEIGHT", int),
        "reject_threshold": _env_number("SPACE_REJECT_THRESHOLD", float),
        "target_threshold": _env_number("SPACE_TARGET_THRESHOLD", float),
        "max_item_size": _env_number("SPACE_MAX_ITEM_SIZE", int),
    }
    return GridPolicy(**{k: v for k, v in overrides.items() if v is not None})

"""
LLM Helper Module

Provides call_llm_json, which sends a system and user prompt to the OpenAI
chat completion API in JSON mode and validates the reply against a Pydantic
model. Replies go through parse_llm_json first, so fenced or wrapped JSON is
still accepted.

The OpenAI library is imported inside the function to avoid a hard dependency at import time,
allowing tests to monkeypatch this function without requiring the openai package.
"""

import logging
import time
from typing import Type, TypeVar

from pydantic import BaseModel

from .config import get_openai_api_key, OPENAI_MODEL, OPENAI_TEMPERATURE
from .ingest import parse_llm_json

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

DEFAULT_SYSTEM_PROMPT = "You are a precise JSON-emitting assistant."


def call_llm_json(prompt: str, schema: Type[T], system_prompt: str | None = None) -> T:
    """
    Ask the model for a single JSON object and parse it into `schema`.

    Args:
        prompt: The user message sent to the LLM.
        schema: A Pydantic BaseModel class to validate and parse the response into.
        system_prompt: Role instructions; defaults to DEFAULT_SYSTEM_PROMPT.

    Returns:
        An instance of the provided schema, populated from the LLM response.

    Raises:
        RuntimeError: If the openai package is not installed, the API key is
            missing, or the reply is empty.
        IngestionError / ValidationError: If the reply is not valid JSON for the schema.
    """
    try:
        from openai import OpenAI
    except ImportError as exc:
        raise RuntimeError(
            "openai package is not installed. Install it to use LLM-backed agents."
        ) from exc

    client = OpenAI(api_key=get_openai_api_key())
    logger.info("calling LLM for schema %s", schema.__name__)

    start_time = time.time()
    try:
        response = client.chat.completions.create(
            model=OPENAI_MODEL,
            temperature=OPENAI_TEMPERATURE,
            messages=[
                {"role": "system", "content": system_prompt or DEFAULT_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            response_format={"type": "json_object"},
        )
        content = response.choices[0].message.content
        if content is None:
            raise RuntimeError("LLM response was empty")

        parsed = schema.model_validate(parse_llm_json(content))
    except Exception:
        logger.exception("LLM call for %s failed", schema.__name__)
        raise

    usage = response.usage
    logger.debug(
        "LLM %s reply in %d ms (tokens in=%s out=%s)",
        schema.__name__,
        int((time.time() - start_time) * 1000),
        usage.prompt_tokens if usage else None,
        usage.completion_tokens if usage else None,
    )
    return parsed

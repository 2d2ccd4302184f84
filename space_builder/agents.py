"""
Agentic Interpretation Layer

LLM-backed agents at the two points where free text has to become structure:

1. ResearchAgent: Maps a user request to ResearchData
   - Input: user request text
   - Output: ResearchData
   - Falls back to a minimal ResearchData built from the request on error

2. DesignAgent: Maps ResearchData (plus optional validator feedback) to a DesignPlan
   - Input: ResearchData, feedback from the previous attempt
   - Output: DesignPlan
   - Raises on error; the orchestrator counts it as a failed attempt

The build and verify stages are deterministic and live in converter.py and
verifier.py. Both agents call llm.call_llm_json; tests monkeypatch it.
"""

import logging
from typing import Mapping

from .catalog import FIDGET_SIZES, FidgetSize
from .llm import call_llm_json
from .models import DesignPlan, GridPolicy, ResearchData, SocialAccounts
from .prompts import (
    PromptConfig,
    designer_system_prompt,
    designer_user_prompt,
    researcher_system_prompt,
    researcher_user_prompt,
)

logger = logging.getLogger(__name__)


def fallback_research(user_request: str) -> ResearchData:
    """Minimal research used when the researcher is unavailable."""
    summary = user_request.strip()[:300] or "A new community space."
    return ResearchData(
        summary=summary,
        key_topics=[],
        social_accounts=SocialAccounts(),
    )


class ResearchAgent:
    """LLM-backed researcher.

    Error handling: Never throws. Logs and returns fallback_research(request).
    """

    def __init__(self, prompt_config: PromptConfig | None = None):
        self.prompt_config = prompt_config or PromptConfig()

    def run(self, user_request: str) -> ResearchData:
        preview = user_request[:200] if user_request else "(empty)"
        logger.debug(f"ResearchAgent: received request len={len(user_request)}, preview={preview}...")

        try:
            research = call_llm_json(
                researcher_user_prompt(user_request),
                ResearchData,
                system_prompt=researcher_system_prompt(self.prompt_config),
            )
            logger.info(
                "ResearchAgent: %d topics, %d links, %d content suggestions",
                len(research.key_topics),
                len(research.relevant_links),
                len(research.content_suggestions),
            )
            return research
        except Exception as e:
            logger.warning(
                f"ResearchAgent: LLM call failed, using minimal research: {type(e).__name__}: {str(e)[:100]}"
            )
            return fallback_research(user_request)


class DesignAgent:
    """LLM-backed layout designer.

    The system prompt is rendered from the same GridPolicy and catalog the
    validators use. Exceptions from the LLM call propagate to the caller.
    """

    def __init__(
        self,
        policy: GridPolicy,
        prompt_config: PromptConfig | None = None,
        catalog: Mapping[str, FidgetSize] = FIDGET_SIZES,
    ):
        self.policy = policy
        self.prompt_config = prompt_config or PromptConfig()
        self.catalog = catalog

    def run(self, research: ResearchData, feedback: str | None = None) -> DesignPlan:
        plan = call_llm_json(
            designer_user_prompt(research, feedback),
            DesignPlan,
            system_prompt=designer_system_prompt(self.prompt_config, self.policy, self.catalog),
        )
        logger.info(
            "DesignAgent: %d fidgets, gridLayout=%s",
            len(plan.fidgets),
            "yes" if plan.grid_layout is not None else "no",
        )
        return plan

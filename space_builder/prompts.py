"""
Prompt rendering for the LLM-backed stages.

Prompts are rendered from a PromptConfig plus the live GridPolicy and fidget
catalog, so the numbers the designer is told (grid size, thresholds, minimum
sizes) are always the numbers the validators enforce.
"""

import json
from dataclasses import dataclass
from typing import Mapping

from .catalog import FIDGET_SIZES, FidgetSize, describe_catalog
from .coverage import cells_for_threshold
from .models import GridPolicy, ResearchData


@dataclass(frozen=True)
class PromptConfig:
    """Tunable wording for the agent prompts."""
    platform_name: str = "Blank Space"
    min_fidgets: int = 5
    max_fidgets: int = 10


def researcher_system_prompt(config: PromptConfig) -> str:
    return f"""You are a research expert specialized in gathering information for space creation on the {config.platform_name} platform.

## YOUR ROLE
Research the user's request and gather the information needed to build a relevant space for their community or project.

## REQUIRED OUTPUT FORMAT
Respond with a JSON object containing exactly these fields:
{{
  "summary": "Brief 2-3 sentence summary of the community/topic",
  "keyTopics": ["topic1", "topic2", "topic3"],
  "socialAccounts": {{"farcaster": ["@username"], "twitter": ["@handle"]}},
  "relevantLinks": [{{"title": "Website Name", "url": "https://example.com", "type": "official"}}],
  "contentSuggestions": [{{"type": "feed", "source": "farcaster", "filter": "keyword", "value": "dogs"}}],
  "colors": {{"primary": "#hex", "secondary": "#hex"}}
}}

## RESEARCH PRIORITIES
1. Official social media accounts and communities
2. Key topics, hashtags, and keywords
3. Relevant websites, resources, and tools
4. The community's interests and needs
5. Content types that suit the space

Be thorough but concise."""


def researcher_user_prompt(user_request: str) -> str:
    return f"Research this request and return the JSON object:\n\n{user_request}"


def designer_system_prompt(
    config: PromptConfig,
    policy: GridPolicy,
    catalog: Mapping[str, FidgetSize] = FIDGET_SIZES,
) -> str:
    grid = f"{policy.width} columns × {policy.height} rows"
    total = policy.total_cells
    reject_cells = cells_for_threshold(policy, policy.reject_threshold)
    target_cells = cells_for_threshold(policy, policy.target_threshold)
    fidgets = "\n".join(describe_catalog(catalog))

    return f"""You are a space layout designer for the {config.platform_name} platform. Create a grid layout using the available fidgets.

## AVAILABLE FIDGETS (with minimum sizes)
{fidgets}

## DESIGN CONSTRAINTS
- Grid is exactly {grid} ({total} cells), x in 0..{policy.width - 1}, y in 0..{policy.height - 1}
- x + width <= {policy.width} and y + height <= {policy.height}
- Layouts below {policy.reject_threshold:g}% coverage ({reject_cells} cells) are rejected
- Aim for at least {policy.target_threshold:g}% coverage ({target_cells}+ cells)
- Extend fidgets down through at least {policy.height - 1} rows
- Every fidget occupies exactly one rectangle; fidgets never overlap
- Every fidget meets its minimum size
- Use {config.min_fidgets}-{config.max_fidgets} fidgets
- Put the most important content top-left and group related fidgets

## REQUIRED OUTPUT FORMAT
Respond with a JSON object:
{{
  "fidgets": [
    {{
      "id": "text:welcome",
      "type": "text",
      "position": {{"x": 0, "y": 0, "width": 6, "height": 2}},
      "settings": {{"title": "Welcome", "text": "Join our community!"}}
    }}
  ],
  "gridLayout": [["text:welcome", "text:welcome", ...one label or null per column...], ...one row per grid row...],
  "rationale": "Brief explanation of the layout"
}}

gridLayout must have exactly {policy.height} rows of {policy.width} cells, and each fidget's cells
must form exactly the rectangle given in its position."""


def designer_user_prompt(research: ResearchData, feedback: str | None = None) -> str:
    research_json = json.dumps(research.model_dump(by_alias=True), indent=2)
    prompt = f"Design a space from this research:\n\n{research_json}"
    if feedback:
        prompt += (
            "\n\nYour previous design was not accepted. Fix this and return a complete new design:\n"
            f"{feedback}"
        )
    return prompt

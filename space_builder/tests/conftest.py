"""
Shared fixtures: the default grid policy and a sample design that covers
88 of 96 cells of the 12×8 grid and reaches the bottom row.

Layout (columns 0-11, rows 0-7):
    text:welcome   (0,0,6×2)   feed:main     (6,0,6×4)
    gallery:photos (0,2,3×3)   links:resources (3,2,3×3)
    cast:pinned    (0,5,6×3)   Chat:community (6,4,4×4)
"""

import copy

import pytest

from space_builder.geometry import rasterize
from space_builder.models import DesignPlan, GridPolicy

SAMPLE_FIDGETS = [
    {"id": "text:welcome", "type": "text", "position": {"x": 0, "y": 0, "width": 6, "height": 2},
     "settings": {"title": "Welcome", "text": "Join the club!"}},
    {"id": "feed:main", "type": "feed", "position": {"x": 6, "y": 0, "width": 6, "height": 4},
     "settings": {"feedType": "filter", "keyword": "dogs"}},
    {"id": "gallery:photos", "type": "gallery", "position": {"x": 0, "y": 2, "width": 3, "height": 3},
     "settings": {}},
    {"id": "links:resources", "type": "links", "position": {"x": 3, "y": 2, "width": 3, "height": 3},
     "settings": {"title": "Resources"}},
    {"id": "cast:pinned", "type": "cast", "position": {"x": 0, "y": 5, "width": 6, "height": 3},
     "settings": {}},
    {"id": "Chat:community", "type": "Chat", "position": {"x": 6, "y": 4, "width": 4, "height": 4},
     "settings": {}},
]


@pytest.fixture
def policy():
    """The default 12×8 policy (reject 60, target 70)."""
    return GridPolicy()


@pytest.fixture
def sample_payload():
    """Designer JSON for the sample layout, without gridLayout."""
    return {"fidgets": copy.deepcopy(SAMPLE_FIDGETS), "rationale": "Welcome first, feed beside it."}


@pytest.fixture
def sample_plan(sample_payload):
    return DesignPlan.model_validate(sample_payload)


@pytest.fixture
def sample_plan_with_grid(sample_plan):
    """The sample plan with a matching gridLayout."""
    grid = rasterize(sample_plan.placements(), 12, 8)
    return sample_plan.model_copy(update={"grid_layout": grid})

"""
Core data models for the space builder.

These models define the domain objects used throughout the system:
- Grid policy (dimensions and coverage thresholds)
- Design artifacts (item specs, design matrix, design plan)
- The built space configuration consumed by the rendering system
- Validation outputs (coverage reports, conversion and verification results)

The built configuration keeps the renderer's camelCase field names through
aliases; always dump it with by_alias=True.
"""

from enum import Enum
from typing import Any, Optional, Literal
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


class Verdict(str, Enum):
    """Graded outcome of a coverage check."""
    REJECT = "reject"
    WARN = "warn"
    ACCEPT = "accept"


class IssueKind(str, Enum):
    """Taxonomy of layout problems.

    - STRUCTURAL: malformed input (missing field, dimension mismatch, duplicate id)
    - GEOMETRY: out-of-bounds, non-rectangular region, overlapping items
    - CATALOG: unknown item type or size outside the type's limits
    - POLICY: coverage or vertical extent below threshold
    - CONSISTENCY: two artifacts disagree (ids, positions, types)
    """
    STRUCTURAL = "structural"
    GEOMETRY = "geometry"
    CATALOG = "catalog"
    POLICY = "policy"
    CONSISTENCY = "consistency"


# =============================================================================
# GRID
# =============================================================================

class GridPolicy(BaseModel):
    """Grid dimensions and the thresholds applied when scoring coverage."""
    model_config = ConfigDict(frozen=True)

    width: int = Field(default=12, ge=1, description="Number of columns")
    height: int = Field(default=8, ge=1, description="Number of rows")
    reject_threshold: float = Field(default=60.0, description="Coverage % below which a layout is rejected")
    target_threshold: float = Field(default=70.0, description="Coverage % a layout should reach")
    max_item_size: int = Field(default=36, ge=1, description="maxW/maxH ceiling written to every layout item")

    @model_validator(mode="after")
    def validate_thresholds(self):
        """Thresholds must be percentages with reject <= target."""
        if not (0.0 <= self.reject_threshold <= 100.0):
            raise ValueError("reject_threshold must be between 0 and 100")
        if not (0.0 <= self.target_threshold <= 100.0):
            raise ValueError("target_threshold must be between 0 and 100")
        if self.reject_threshold > self.target_threshold:
            raise ValueError("reject_threshold must not exceed target_threshold")
        return self

    @property
    def total_cells(self) -> int:
        return self.width * self.height


class Rectangle(BaseModel):
    """Footprint of one item on the grid, origin top-left, zero-based."""
    model_config = ConfigDict(frozen=True)

    x: int = Field(..., ge=0, description="Left column")
    y: int = Field(..., ge=0, description="Top row")
    width: int = Field(..., ge=1, description="Columns spanned")
    height: int = Field(..., ge=1, description="Rows spanned")

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def right(self) -> int:
        """Exclusive right edge."""
        return self.x + self.width

    @property
    def bottom(self) -> int:
        """Exclusive bottom edge."""
        return self.y + self.height

    def cells(self) -> list[tuple[int, int]]:
        """All (x, y) cells covered by this rectangle, row-major."""
        return [
            (cx, cy)
            for cy in range(self.y, self.bottom)
            for cx in range(self.x, self.right)
        ]

    def describe(self) -> str:
        return f"({self.x},{self.y},{self.width}×{self.height})"


class Placement(Rectangle):
    """A rectangle tagged with the id of the item occupying it."""
    id: str = Field(..., description="Item id")

    def rect(self) -> Rectangle:
        return Rectangle(x=self.x, y=self.y, width=self.width, height=self.height)


# =============================================================================
# DESIGN ARTIFACTS
# =============================================================================

class ItemSpec(BaseModel):
    """An item (fidget) to place: id, type tag and free-form settings."""
    id: str = Field(..., min_length=1, description="Unique item id, e.g. 'text:welcome'")
    type: str = Field(..., description="Fidget type tag, e.g. 'text', 'feed'")
    settings: dict[str, Any] = Field(default_factory=dict, description="Fidget settings")


class DesignItem(ItemSpec):
    """An item together with its declared position."""
    position: Rectangle = Field(..., description="Declared footprint on the grid")


class DesignMatrix(BaseModel):
    """Compact design representation: a label matrix plus item specs."""
    model_config = ConfigDict(populate_by_name=True)

    width: int = Field(..., description="Declared number of columns")
    height: int = Field(..., description="Declared number of rows")
    cells: list[list[Optional[str]]] = Field(..., description="height rows of width labels (or null)")
    items: list[ItemSpec] = Field(
        ...,
        validation_alias=AliasChoices("items", "fidgets"),
        description="Specs for the labels used in cells",
    )


class DesignPlan(BaseModel):
    """The designer's proposed arrangement: items with positions plus an optional matrix."""
    model_config = ConfigDict(populate_by_name=True)

    fidgets: list[DesignItem] = Field(..., description="Designed items with declared positions")
    grid_layout: Optional[list[list[Optional[str]]]] = Field(
        default=None, alias="gridLayout", description="Optional label matrix"
    )
    rationale: str = Field(default="", description="Why the layout looks the way it does")

    def item_specs(self) -> list[ItemSpec]:
        return [ItemSpec(id=f.id, type=f.type, settings=dict(f.settings)) for f in self.fidgets]

    def placements(self) -> list[Placement]:
        return [Placement(id=f.id, **f.position.model_dump()) for f in self.fidgets]

    def to_matrix(self, policy: GridPolicy) -> DesignMatrix:
        """
        Build the matrix handed to the converter.

        Uses gridLayout when present, otherwise rasterizes the declared
        positions onto the policy's grid (later items win on overlap).
        """
        from .geometry import rasterize

        if self.grid_layout is not None:
            cells = [list(row) for row in self.grid_layout]
            width = len(cells[0]) if cells else 0
            height = len(cells)
        else:
            cells = rasterize(self.placements(), policy.width, policy.height)
            width, height = policy.width, policy.height
        return DesignMatrix(width=width, height=height, cells=cells, items=self.item_specs())


# =============================================================================
# BUILT CONFIGURATION (external rendering contract)
# =============================================================================

class FidgetConfig(BaseModel):
    editable: bool = True
    settings: dict[str, Any] = Field(default_factory=dict)
    data: dict[str, Any] = Field(default_factory=dict)


class FidgetInstanceDatum(BaseModel):
    """One entry of fidgetInstanceDatums."""
    model_config = ConfigDict(populate_by_name=True)

    config: FidgetConfig = Field(default_factory=FidgetConfig)
    fidget_type: str = Field(..., alias="fidgetType")
    id: str


class LayoutItem(BaseModel):
    """One absolute-position entry of the grid layout."""
    model_config = ConfigDict(populate_by_name=True)

    i: str = Field(..., description="Item id")
    x: int = Field(..., ge=0)
    y: int = Field(..., ge=0)
    w: int = Field(..., ge=1)
    h: int = Field(..., ge=1)
    min_w: int = Field(default=1, alias="minW")
    max_w: int = Field(default=36, alias="maxW")
    min_h: int = Field(default=1, alias="minH")
    max_h: int = Field(default=36, alias="maxH")
    moved: bool = False
    static: bool = False

    def placement(self) -> Placement:
        return Placement(id=self.i, x=self.x, y=self.y, width=self.w, height=self.h)


class LayoutConfig(BaseModel):
    layout: list[LayoutItem] = Field(default_factory=list)


class LayoutDetails(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    layout_fidget: str = Field(default="grid", alias="layoutFidget")
    layout_config: LayoutConfig = Field(default_factory=LayoutConfig, alias="layoutConfig")


class Theme(BaseModel):
    id: str
    name: str
    properties: dict[str, str] = Field(default_factory=dict)


class SpaceConfig(BaseModel):
    """The built configuration: instance map, absolute layout and theme."""
    model_config = ConfigDict(populate_by_name=True)

    fidget_instance_datums: dict[str, FidgetInstanceDatum] = Field(
        default_factory=dict, alias="fidgetInstanceDatums"
    )
    layout_id: str = Field(..., alias="layoutID")
    layout_details: LayoutDetails = Field(default_factory=LayoutDetails, alias="layoutDetails")
    is_editable: bool = Field(default=True, alias="isEditable")
    fidget_tray_contents: list[Any] = Field(default_factory=list, alias="fidgetTrayContents")
    theme: Theme

    @property
    def layout(self) -> list[LayoutItem]:
        return self.layout_details.layout_config.layout

    def to_json_dict(self) -> dict:
        """Dump with the renderer's field names."""
        return self.model_dump(by_alias=True)


# =============================================================================
# RESEARCH
# =============================================================================

class SocialAccounts(BaseModel):
    farcaster: list[str] = Field(default_factory=list)
    twitter: list[str] = Field(default_factory=list)


class RelevantLink(BaseModel):
    title: str
    url: str
    type: Literal["official", "resource", "community"] = "resource"


class ContentSuggestion(BaseModel):
    type: str
    source: Optional[str] = None
    filter: Optional[str] = None
    value: Optional[str] = None
    purpose: Optional[str] = None
    content: Optional[str] = None


class BrandColors(BaseModel):
    primary: str = "#000000"
    secondary: str = "#ffffff"


class ResearchData(BaseModel):
    """Structured research handed from the researcher to the designer."""
    model_config = ConfigDict(populate_by_name=True)

    summary: str = Field(..., description="2-3 sentence summary of the community/topic")
    key_topics: list[str] = Field(..., alias="keyTopics")
    social_accounts: SocialAccounts = Field(..., alias="socialAccounts")
    relevant_links: list[RelevantLink] = Field(default_factory=list, alias="relevantLinks")
    content_suggestions: list[ContentSuggestion] = Field(default_factory=list, alias="contentSuggestions")
    colors: BrandColors = Field(default_factory=BrandColors)


# =============================================================================
# VALIDATION OUTPUTS
# =============================================================================

class LayoutIssue(BaseModel):
    """A single problem found while validating, converting or verifying a layout."""
    kind: IssueKind = Field(..., description="Problem category")
    code: str = Field(..., description="Stable machine-readable code, e.g. 'OUT_OF_BOUNDS'")
    message: str = Field(..., description="Human-readable description")
    item_id: Optional[str] = Field(default=None, description="Offending item id, if any")
    details: dict[str, Any] = Field(default_factory=dict, description="Coordinates, counts, etc.")


class CoverageReport(BaseModel):
    """Outcome of a coverage check. Recomputed on every call, never persisted."""
    occupied_cells: int = Field(..., ge=0)
    total_cells: int = Field(..., ge=0)
    coverage_percentage: float = Field(..., ge=0.0)
    max_row_used: int = Field(..., ge=0, description="max(y + height) over all items")
    max_col_used: int = Field(..., ge=0, description="max(x + width) over all items")
    verdict: Verdict
    message: str
    issue: Optional[LayoutIssue] = Field(default=None, description="Set for REJECT and WARN verdicts")

    @property
    def is_malformed(self) -> bool:
        """True when the input itself was broken rather than failing a design rule."""
        return self.issue is not None and self.issue.kind == IssueKind.STRUCTURAL

    @property
    def accepted(self) -> bool:
        return self.verdict != Verdict.REJECT


class ConversionResult(BaseModel):
    """Either a built configuration or the issue that prevented conversion."""
    config: Optional[SpaceConfig] = None
    issue: Optional[LayoutIssue] = None

    @property
    def ok(self) -> bool:
        return self.config is not None and self.issue is None


class VerificationResult(BaseModel):
    """Design-vs-implementation outcome. `issue` is the first violation found."""
    ok: bool
    message: str
    issue: Optional[LayoutIssue] = None
    issues: list[LayoutIssue] = Field(
        default_factory=list, description="Every violation, only filled when aggregation was requested"
    )

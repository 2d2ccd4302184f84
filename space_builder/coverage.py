"""
Coverage Analysis Module

Scores how well a layout fills the grid and checks its geometry.

- analyze_matrix(matrix, policy) -> CoverageReport: scan a label matrix
- analyze_rectangles(placements, policy) -> CoverageReport: score explicit rectangles
- analyze_design(plan, policy) -> CoverageReport: validate a designer's DesignPlan
- analyze_config(config, policy) -> CoverageReport: validate a built SpaceConfig
- score_coverage(occupied, max_row, max_col, policy) -> CoverageReport: shared scoring core

Scoring (thresholds from GridPolicy):
1. coverage = 100 * occupied / total
2. coverage < reject_threshold            -> REJECT
3. max_row_used < height - 1              -> WARN (extend vertically)
4. coverage < target_threshold            -> WARN (cells needed to reach target)
5. otherwise                              -> ACCEPT

Geometry, catalog and structural problems fail fast with a REJECT report that
still carries whatever metrics were accumulated before the failure.
"""

import logging
import math
from typing import Iterable, Mapping

from .catalog import FIDGET_SIZES, FidgetSize, get_fidget_size
from .converter import config_placements
from .geometry import (
    bounding_box_of,
    check_matrix_shape,
    in_bounds,
    is_exact_rectangle,
    labels_in_order,
)
from .models import (
    CoverageReport,
    DesignMatrix,
    DesignPlan,
    GridPolicy,
    IssueKind,
    LayoutIssue,
    Placement,
    Rectangle,
    SpaceConfig,
    Verdict,
)

logger = logging.getLogger(__name__)


def cells_for_threshold(policy: GridPolicy, threshold: float) -> int:
    """Smallest whole number of cells reaching threshold percent of the grid."""
    return math.ceil(round(policy.total_cells * threshold / 100.0, 9))


def _percentage(occupied: int, policy: GridPolicy) -> float:
    return 100.0 * occupied / policy.total_cells


def _grid_label(policy: GridPolicy) -> str:
    return f"{policy.width}×{policy.height}"


def _reject(
    issue: LayoutIssue,
    policy: GridPolicy,
    occupied: int = 0,
    max_row: int = 0,
    max_col: int = 0,
) -> CoverageReport:
    logger.debug("coverage reject: %s %s", issue.code, issue.message)
    return CoverageReport(
        occupied_cells=occupied,
        total_cells=policy.total_cells,
        coverage_percentage=_percentage(occupied, policy),
        max_row_used=max_row,
        max_col_used=max_col,
        verdict=Verdict.REJECT,
        message=issue.message,
        issue=issue,
    )


def score_coverage(
    occupied: int,
    max_row_used: int,
    max_col_used: int,
    policy: GridPolicy,
) -> CoverageReport:
    """
    Apply the graded threshold policy to already-accumulated metrics.

    Pure function: no I/O, no state.
    """
    total = policy.total_cells
    pct = _percentage(occupied, policy)
    grid = _grid_label(policy)

    verdict = Verdict.ACCEPT
    issue = None

    if pct < policy.reject_threshold:
        required = cells_for_threshold(policy, policy.reject_threshold)
        verdict = Verdict.REJECT
        message = (
            f"Grid coverage too low: {pct:.1f}% of {grid} grid. Design must cover at least "
            f"{policy.reject_threshold:g}% ({required}+ cells out of {total}). Add more fidgets "
            f"or increase existing fidget sizes to fill the space better."
        )
        issue = LayoutIssue(
            kind=IssueKind.POLICY,
            code="COVERAGE_BELOW_MINIMUM",
            message=message,
            details={
                "coverage_percentage": pct,
                "required_percentage": policy.reject_threshold,
                "cells_needed": required - occupied,
            },
        )
    elif max_row_used < policy.height - 1:
        verdict = Verdict.WARN
        message = (
            f"Design only uses {max_row_used} rows out of {policy.height}. Extend fidgets to use "
            f"the full height of the {grid} grid (at least {policy.height - 1} rows). "
            f"Current coverage: {pct:.1f}%."
        )
        issue = LayoutIssue(
            kind=IssueKind.POLICY,
            code="VERTICAL_EXTENT",
            message=message,
            details={
                "max_row_used": max_row_used,
                "rows_needed": policy.height - 1 - max_row_used,
            },
        )
    elif pct < policy.target_threshold:
        target_cells = cells_for_threshold(policy, policy.target_threshold)
        needed = target_cells - occupied
        verdict = Verdict.WARN
        message = (
            f"Grid coverage could be improved: {pct:.1f}% of {grid} grid. Add {needed} more "
            f"cells to reach the {policy.target_threshold:g}% target ({target_cells}+ cells "
            f"out of {total})."
        )
        issue = LayoutIssue(
            kind=IssueKind.POLICY,
            code="COVERAGE_BELOW_TARGET",
            message=message,
            details={
                "coverage_percentage": pct,
                "target_percentage": policy.target_threshold,
                "cells_needed": needed,
            },
        )
    else:
        message = (
            f"Layout is valid with {pct:.1f}% coverage of {grid} grid ({occupied} cells out of "
            f"{total}). Uses {max_row_used} rows and {max_col_used} columns."
        )

    report = CoverageReport(
        occupied_cells=occupied,
        total_cells=total,
        coverage_percentage=pct,
        max_row_used=max_row_used,
        max_col_used=max_col_used,
        verdict=verdict,
        message=message,
        issue=issue,
    )

    logger.debug(
        "score_coverage: occupied=%d/%d pct=%.1f rows=%d cols=%d verdict=%s",
        occupied, total, pct, max_row_used, max_col_used, verdict.value,
    )
    return report


def check_item_size(
    item_id: str,
    fidget_type: str,
    rect: Rectangle,
    catalog: Mapping[str, FidgetSize] = FIDGET_SIZES,
) -> LayoutIssue | None:
    """Check a placed item against its type's size limits. Unknown types are rejected."""
    size = get_fidget_size(fidget_type, catalog)
    if size is None:
        return LayoutIssue(
            kind=IssueKind.CATALOG,
            code="UNKNOWN_FIDGET_TYPE",
            message=f"Invalid fidget type: {fidget_type} (item {item_id}).",
            item_id=item_id,
            details={"type": fidget_type, "valid_types": sorted(catalog)},
        )

    if rect.width < size.min_width or rect.height < size.min_height:
        return LayoutIssue(
            kind=IssueKind.CATALOG,
            code="BELOW_MIN_SIZE",
            message=(
                f"Fidget {item_id} is too small ({rect.width}×{rect.height}). "
                f"Minimum size for {fidget_type}: {size.min_width}×{size.min_height}."
            ),
            item_id=item_id,
            details={
                "actual": {"width": rect.width, "height": rect.height},
                "minimum": {"width": size.min_width, "height": size.min_height},
            },
        )

    if size.max_height is not None and rect.height > size.max_height:
        return LayoutIssue(
            kind=IssueKind.CATALOG,
            code="ABOVE_MAX_HEIGHT",
            message=(
                f"Fidget {item_id} is too tall ({rect.height} rows). "
                f"Maximum height for {fidget_type}: {size.max_height}."
            ),
            item_id=item_id,
            details={"actual_height": rect.height, "max_height": size.max_height},
        )

    return None


def _out_of_bounds(item_id: str, rect: Rectangle, policy: GridPolicy) -> LayoutIssue:
    return LayoutIssue(
        kind=IssueKind.GEOMETRY,
        code="OUT_OF_BOUNDS",
        message=(
            f"Fidget {item_id} at {rect.describe()} lies outside the "
            f"{_grid_label(policy)} grid."
        ),
        item_id=item_id,
        details={"rect": rect.model_dump(), "grid": {"width": policy.width, "height": policy.height}},
    )


def _duplicate_ids(ids: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    dupes: list[str] = []
    for item_id in ids:
        if item_id in seen and item_id not in dupes:
            dupes.append(item_id)
        seen.add(item_id)
    return dupes


def _duplicate_issue(dupes: list[str]) -> LayoutIssue:
    return LayoutIssue(
        kind=IssueKind.STRUCTURAL,
        code="DUPLICATE_ID",
        message=f"Duplicate fidget ID(s): {', '.join(dupes)}",
        details={"ids": dupes},
    )


def analyze_matrix(
    matrix: DesignMatrix,
    policy: GridPolicy | None = None,
    catalog: Mapping[str, FidgetSize] = FIDGET_SIZES,
) -> CoverageReport:
    """
    Validate and score a label matrix.

    Every label present must be declared in matrix.items, occupy an exact
    axis-aligned rectangle inside the grid, and meet its type's size limits.

    Args:
        matrix: DesignMatrix with cells and item specs
        policy: grid dimensions and thresholds (defaults to GridPolicy())
        catalog: fidget type -> size limits

    Returns:
        CoverageReport; REJECT with an issue on the first violation found
    """
    policy = policy or GridPolicy()

    shape_issue = check_matrix_shape(matrix.width, matrix.height, matrix.cells, policy)
    if shape_issue:
        return _reject(shape_issue, policy)

    dupes = _duplicate_ids(spec.id for spec in matrix.items)
    if dupes:
        return _reject(_duplicate_issue(dupes), policy)

    specs = {spec.id: spec for spec in matrix.items}

    occupied = 0
    max_row = 0
    max_col = 0

    for label in labels_in_order(matrix.cells):
        spec = specs.get(label)
        if spec is None:
            issue = LayoutIssue(
                kind=IssueKind.CONSISTENCY,
                code="UNDECLARED_ITEM",
                message=f"Matrix cell label '{label}' has no matching fidget specification.",
                item_id=label,
            )
            return _reject(issue, policy, occupied, max_row, max_col)

        rect = bounding_box_of(matrix.cells, label)

        if not in_bounds(rect, policy):
            return _reject(_out_of_bounds(label, rect, policy), policy, occupied, max_row, max_col)

        if not is_exact_rectangle(matrix.cells, label, rect):
            issue = LayoutIssue(
                kind=IssueKind.GEOMETRY,
                code="NON_RECTANGULAR",
                message=(
                    f"Fidget {label} does not fill a single rectangle; its cells span "
                    f"{rect.describe()} but leave gaps or are split."
                ),
                item_id=label,
                details={"bounding_box": rect.model_dump()},
            )
            return _reject(issue, policy, occupied, max_row, max_col)

        size_issue = check_item_size(label, spec.type, rect, catalog)
        if size_issue:
            return _reject(size_issue, policy, occupied, max_row, max_col)

        occupied += rect.area
        max_row = max(max_row, rect.bottom)
        max_col = max(max_col, rect.right)

    return score_coverage(occupied, max_row, max_col, policy)


def analyze_rectangles(
    placements: Iterable[Placement],
    policy: GridPolicy | None = None,
) -> CoverageReport:
    """
    Validate and score an explicit list of positioned rectangles.

    Checks bounds per rectangle and rejects overlapping rectangles, so no
    cell is ever counted twice.
    """
    policy = policy or GridPolicy()
    placements = list(placements)

    dupes = _duplicate_ids(p.id for p in placements)
    if dupes:
        return _reject(_duplicate_issue(dupes), policy)

    owners: dict[tuple[int, int], str] = {}
    occupied = 0
    max_row = 0
    max_col = 0

    for placement in placements:
        rect = placement.rect()
        if not in_bounds(rect, policy):
            return _reject(_out_of_bounds(placement.id, rect, policy), policy, occupied, max_row, max_col)

        for cell in rect.cells():
            other = owners.get(cell)
            if other is not None:
                issue = LayoutIssue(
                    kind=IssueKind.GEOMETRY,
                    code="OVERLAP",
                    message=(
                        f"Fidgets {other} and {placement.id} overlap at cell "
                        f"({cell[0]},{cell[1]})."
                    ),
                    item_id=placement.id,
                    details={"ids": [other, placement.id], "cell": list(cell)},
                )
                return _reject(issue, policy, occupied, max_row, max_col)
            owners[cell] = placement.id

        occupied += rect.area
        max_row = max(max_row, rect.bottom)
        max_col = max(max_col, rect.right)

    return score_coverage(occupied, max_row, max_col, policy)


def analyze_design(
    plan: DesignPlan,
    policy: GridPolicy | None = None,
    catalog: Mapping[str, FidgetSize] = FIDGET_SIZES,
) -> CoverageReport:
    """
    Validate a designer's plan.

    Declared positions are checked against the catalog and the grid. When the
    plan carries a gridLayout, each declared position must equal the item's
    region in the matrix and the matrix is scored; otherwise the declared
    positions are scored directly.
    """
    policy = policy or GridPolicy()

    dupes = _duplicate_ids(f.id for f in plan.fidgets)
    if dupes:
        return _reject(_duplicate_issue(dupes), policy)

    if plan.grid_layout is not None:
        matrix = plan.to_matrix(policy)
        shape_issue = check_matrix_shape(matrix.width, matrix.height, matrix.cells, policy)
        if shape_issue:
            return _reject(shape_issue, policy)

    for fidget in plan.fidgets:
        size_issue = check_item_size(fidget.id, fidget.type, fidget.position, catalog)
        if size_issue:
            return _reject(size_issue, policy)
        if not in_bounds(fidget.position, policy):
            return _reject(_out_of_bounds(fidget.id, fidget.position, policy), policy)

    if plan.grid_layout is None:
        return analyze_rectangles(plan.placements(), policy)

    for fidget in plan.fidgets:
        region = bounding_box_of(matrix.cells, fidget.id)
        if region is None:
            issue = LayoutIssue(
                kind=IssueKind.CONSISTENCY,
                code="UNPLACED_ITEM",
                message=f"Fidget {fidget.id} is declared but never appears in gridLayout.",
                item_id=fidget.id,
            )
            return _reject(issue, policy)
        if region != fidget.position:
            issue = LayoutIssue(
                kind=IssueKind.CONSISTENCY,
                code="POSITION_MATRIX_MISMATCH",
                message=(
                    f"Position mismatch for {fidget.id}. Declared: {fidget.position.describe()} "
                    f"vs gridLayout: {region.describe()}"
                ),
                item_id=fidget.id,
                details={"declared": fidget.position.model_dump(), "matrix": region.model_dump()},
            )
            return _reject(issue, policy)

    return analyze_matrix(matrix, policy, catalog)


def analyze_config(config: SpaceConfig, policy: GridPolicy | None = None) -> CoverageReport:
    """Score the absolute layout of a built configuration."""
    return analyze_rectangles(config_placements(config), policy)

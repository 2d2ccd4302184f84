"""
Matrix-to-Config Conversion Module

Turns the compact design matrix into the verbose configuration consumed by
the renderer:
- one fidgetInstanceDatums entry per placed item
- one absolute layout entry per placed item (same id)
- the default theme, an empty tray, editable=True

Items that never appear in the matrix are skipped. Every matrix label must
be declared and fill an exact rectangle, otherwise nothing is built.
Instances and layout entries come from the same loop over placed items, so
the two always cover the same ids.
"""

import logging
import time
from typing import Any, Mapping

from .catalog import DEFAULT_THEME, FIDGET_SIZES, THEME_VARIABLE_DEFAULTS, FidgetSize, is_known_type
from .geometry import bounding_box_of, check_matrix_shape, is_exact_rectangle, labels_in_order
from .models import (
    ConversionResult,
    DesignMatrix,
    FidgetConfig,
    FidgetInstanceDatum,
    GridPolicy,
    IssueKind,
    LayoutConfig,
    LayoutDetails,
    LayoutIssue,
    LayoutItem,
    Placement,
    SpaceConfig,
    Theme,
)

logger = logging.getLogger(__name__)


def _themed_settings(settings: dict[str, Any]) -> dict[str, Any]:
    """Copy settings, filling unset color-like keys with theme variables."""
    merged = dict(settings)
    for key, placeholder in THEME_VARIABLE_DEFAULTS.items():
        if not merged.get(key):
            merged[key] = placeholder
    return merged


def convert(
    matrix: DesignMatrix,
    policy: GridPolicy | None = None,
    theme: Theme | None = None,
    layout_id: str | None = None,
    catalog: Mapping[str, FidgetSize] = FIDGET_SIZES,
) -> ConversionResult:
    """
    Convert a design matrix into a SpaceConfig.

    Args:
        matrix: DesignMatrix (cells + item specs)
        policy: expected grid; a matrix of any other size is a structural error
        theme: theme block to embed (defaults to DEFAULT_THEME)
        layout_id: layoutID to use (defaults to 'layout-<epoch ms>')
        catalog: recognized fidget types

    Returns:
        ConversionResult with config on success, issue on failure
    """
    policy = policy or GridPolicy()

    shape_issue = check_matrix_shape(matrix.width, matrix.height, matrix.cells, policy)
    if shape_issue:
        return ConversionResult(issue=shape_issue)

    seen: set[str] = set()
    for spec in matrix.items:
        if spec.id in seen:
            return ConversionResult(issue=LayoutIssue(
                kind=IssueKind.STRUCTURAL,
                code="DUPLICATE_ID",
                message=f"Duplicate fidget ID: {spec.id}",
                item_id=spec.id,
            ))
        seen.add(spec.id)
        if not is_known_type(spec.type, catalog):
            return ConversionResult(issue=LayoutIssue(
                kind=IssueKind.CATALOG,
                code="UNKNOWN_FIDGET_TYPE",
                message=f"Invalid fidget type: {spec.type} (item {spec.id}).",
                item_id=spec.id,
                details={"type": spec.type},
            ))

    for label in labels_in_order(matrix.cells):
        if label not in seen:
            return ConversionResult(issue=LayoutIssue(
                kind=IssueKind.CONSISTENCY,
                code="UNDECLARED_ITEM",
                message=f"Matrix cell label '{label}' has no matching fidget specification.",
                item_id=label,
            ))
        rect = bounding_box_of(matrix.cells, label)
        if not is_exact_rectangle(matrix.cells, label, rect):
            return ConversionResult(issue=LayoutIssue(
                kind=IssueKind.GEOMETRY,
                code="NON_RECTANGULAR",
                message=f"Fidget {label} does not fill a single rectangle; its cells span {rect.describe()}.",
                item_id=label,
                details={"bounding_box": rect.model_dump()},
            ))

    instances: dict[str, FidgetInstanceDatum] = {}
    layout: list[LayoutItem] = []
    skipped: list[str] = []

    for spec in matrix.items:
        rect = bounding_box_of(matrix.cells, spec.id)
        if rect is None:
            skipped.append(spec.id)
            continue

        instances[spec.id] = FidgetInstanceDatum(
            config=FidgetConfig(editable=True, settings=_themed_settings(spec.settings), data={}),
            fidget_type=spec.type,
            id=spec.id,
        )
        layout.append(LayoutItem(
            i=spec.id,
            x=rect.x,
            y=rect.y,
            w=rect.width,
            h=rect.height,
            min_w=rect.width,
            max_w=policy.max_item_size,
            min_h=rect.height,
            max_h=policy.max_item_size,
            moved=False,
            static=False,
        ))

    if skipped:
        logger.debug("convert: skipped unplaced items %s", skipped)

    config = SpaceConfig(
        fidget_instance_datums=instances,
        layout_id=layout_id or f"layout-{int(time.time() * 1000)}",
        layout_details=LayoutDetails(layout_fidget="grid", layout_config=LayoutConfig(layout=layout)),
        is_editable=True,
        fidget_tray_contents=[],
        theme=(theme or DEFAULT_THEME).model_copy(deep=True),
    )

    logger.info(
        "convert: built config %s with %d fidgets (%d unplaced)",
        config.layout_id, len(instances), len(skipped),
    )
    return ConversionResult(config=config)


def config_placements(config: SpaceConfig) -> list[Placement]:
    """Absolute rectangles of a built configuration, in layout order."""
    return [item.placement() for item in config.layout]

"""
Grid Geometry Module

Pure functions over a rectangular label matrix:
- bounding_box_of(matrix, label) -> Rectangle | None
- is_exact_rectangle(matrix, label, rect) -> bool
- in_bounds(rect, policy) -> bool
- check_matrix_shape(width, height, cells, policy) -> LayoutIssue | None
- rasterize(placements, width, height) -> matrix

A matrix is a list of rows; matrix[y][x] holds a label or None.
These functions inspect one label at a time; overlap between labels is
the coverage analyzer's concern.
"""

from typing import Iterable, Optional, Sequence

from .models import GridPolicy, IssueKind, LayoutIssue, Placement, Rectangle

Matrix = Sequence[Sequence[Optional[str]]]


def bounding_box_of(matrix: Matrix, label: str) -> Rectangle | None:
    """
    Return the minimal rectangle covering every occurrence of label.

    Returns None if the label does not occur (including for an empty matrix).
    """
    min_x = min_y = None
    max_x = max_y = -1

    for y, row in enumerate(matrix):
        for x, cell in enumerate(row):
            if cell != label:
                continue
            min_x = x if min_x is None else min(min_x, x)
            min_y = y if min_y is None else min(min_y, y)
            max_x = max(max_x, x)
            max_y = max(max_y, y)

    if min_x is None:
        return None

    return Rectangle(x=min_x, y=min_y, width=max_x - min_x + 1, height=max_y - min_y + 1)


def is_exact_rectangle(matrix: Matrix, label: str, rect: Rectangle) -> bool:
    """
    True iff every cell inside rect holds label and no cell outside rect does.

    Cells of rect that fall outside the matrix count as not holding label.
    """
    for y, row in enumerate(matrix):
        for x, cell in enumerate(row):
            inside = rect.x <= x < rect.right and rect.y <= y < rect.bottom
            if inside and cell != label:
                return False
            if not inside and cell == label:
                return False

    # rect may reach past ragged or short rows
    for cx, cy in rect.cells():
        if cy >= len(matrix) or cx >= len(matrix[cy]):
            return False
    return True


def in_bounds(rect: Rectangle, policy: GridPolicy) -> bool:
    return (
        rect.x >= 0
        and rect.y >= 0
        and rect.x + rect.width <= policy.width
        and rect.y + rect.height <= policy.height
    )


def labels_in_order(matrix: Matrix) -> list[str]:
    """Distinct non-empty labels in row-major order of first appearance."""
    seen: dict[str, None] = {}
    for row in matrix:
        for cell in row:
            if cell is not None and cell != "" and cell not in seen:
                seen[cell] = None
    return list(seen)


def check_matrix_shape(
    width: int,
    height: int,
    cells: Matrix,
    policy: GridPolicy,
) -> LayoutIssue | None:
    """
    Check that a matrix has exactly the policy's dimensions.

    Both the declared width/height and the actual cell rows are checked,
    so a matrix that lies about its size is caught too.
    """
    if width != policy.width or height != policy.height:
        return LayoutIssue(
            kind=IssueKind.STRUCTURAL,
            code="DIMENSION_MISMATCH",
            message=(
                f"Matrix declares {width}×{height} but the grid is "
                f"{policy.width}×{policy.height}."
            ),
            details={
                "expected": {"width": policy.width, "height": policy.height},
                "actual": {"width": width, "height": height},
            },
        )

    if len(cells) != policy.height:
        return LayoutIssue(
            kind=IssueKind.STRUCTURAL,
            code="DIMENSION_MISMATCH",
            message=f"Matrix has {len(cells)} rows but the grid has {policy.height}.",
            details={"expected_rows": policy.height, "actual_rows": len(cells)},
        )

    for y, row in enumerate(cells):
        if len(row) != policy.width:
            return LayoutIssue(
                kind=IssueKind.STRUCTURAL,
                code="DIMENSION_MISMATCH",
                message=f"Matrix row {y} has {len(row)} cells but the grid has {policy.width} columns.",
                details={"row": y, "expected_cells": policy.width, "actual_cells": len(row)},
            )

    return None


def rasterize(placements: Iterable[Placement], width: int, height: int) -> list[list[Optional[str]]]:
    """
    Paint placements onto an empty width×height matrix.

    Cells outside the grid are dropped; later placements overwrite earlier
    ones where they overlap.
    """
    matrix: list[list[Optional[str]]] = [[None] * width for _ in range(height)]
    for placement in placements:
        for cx, cy in placement.cells():
            if 0 <= cx < width and 0 <= cy < height:
                matrix[cy][cx] = placement.id
    return matrix

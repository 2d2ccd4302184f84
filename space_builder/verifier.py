"""
Design/Implementation Verification Module

Checks that a built SpaceConfig implements a DesignPlan exactly.

verify(design, built) runs four checks in a fixed order and stops at the
first one that fails:
1. missing ids  - designed fidgets absent from fidgetInstanceDatums
2. extra ids    - instances that were never designed
3. position     - one layout entry per designed fidget, at exactly the designed
                  rectangle; duplicate and orphan layout entries fail here too
4. type         - instance fidgetType must equal the designed type

validate_config(config) checks a configuration on its own (complete
instance records, unique ids, known types, one layout entry per instance).
"""

import logging
from typing import Collection, Mapping

from .catalog import FIDGET_SIZES, FidgetSize, is_known_type
from .models import (
    DesignPlan,
    IssueKind,
    LayoutIssue,
    SpaceConfig,
    VerificationResult,
)

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = (
    "Builder implementation matches the design plan. "
    "All fidgets, positions, and types are correctly implemented."
)


def _missing_ids(design: DesignPlan, built: SpaceConfig) -> list[LayoutIssue]:
    missing = [f.id for f in design.fidgets if f.id not in built.fidget_instance_datums]
    if not missing:
        return []
    return [LayoutIssue(
        kind=IssueKind.CONSISTENCY,
        code="MISSING_IDS",
        message=(
            f"Missing fidgets in implementation: {', '.join(missing)}. "
            f"All designed fidgets must be included in the final configuration."
        ),
        details={"ids": missing},
    )]


def _extra_ids(design: DesignPlan, built: SpaceConfig) -> list[LayoutIssue]:
    designed = {f.id for f in design.fidgets}
    extra = [key for key in built.fidget_instance_datums if key not in designed]
    if not extra:
        return []
    return [LayoutIssue(
        kind=IssueKind.CONSISTENCY,
        code="EXTRA_IDS",
        message=(
            f"Extra fidgets in implementation: {', '.join(extra)}. "
            f"Only designed fidgets should be included."
        ),
        details={"ids": extra},
    )]


def _duplicate_layout_ids(config: SpaceConfig) -> list[str]:
    seen: set[str] = set()
    dupes: list[str] = []
    for item in config.layout:
        if item.i in seen and item.i not in dupes:
            dupes.append(item.i)
        seen.add(item.i)
    return dupes


def _orphan_layout_ids(config: SpaceConfig, ignore: Collection[str] = ()) -> list[str]:
    """Layout ids with no instance record and not in ignore, in layout order."""
    orphaned: list[str] = []
    for item in config.layout:
        if item.i in config.fidget_instance_datums or item.i in ignore:
            continue
        if item.i not in orphaned:
            orphaned.append(item.i)
    return orphaned


def _duplicate_layout_issue(item_id: str) -> LayoutIssue:
    return LayoutIssue(
        kind=IssueKind.STRUCTURAL,
        code="DUPLICATE_ID",
        message=f"Duplicate fidget ID in layout: {item_id}",
        item_id=item_id,
    )


def _orphan_layout_issue(orphaned: list[str]) -> LayoutIssue:
    return LayoutIssue(
        kind=IssueKind.CONSISTENCY,
        code="ORPHAN_LAYOUT",
        message=f"Layout entries without an instance: {', '.join(orphaned)}",
        details={"ids": orphaned},
    )


def _position_mismatches(design: DesignPlan, built: SpaceConfig) -> list[LayoutIssue]:
    issues = [_duplicate_layout_issue(item_id) for item_id in _duplicate_layout_ids(built)]
    duplicated = {issue.item_id for issue in issues}

    by_id = {item.i: item for item in built.layout}
    for fidget in design.fidgets:
        if fidget.id in duplicated:
            continue
        item = by_id.get(fidget.id)
        if item is None:
            # ids without an instance are already reported as missing
            if fidget.id in built.fidget_instance_datums:
                issues.append(LayoutIssue(
                    kind=IssueKind.CONSISTENCY,
                    code="LAYOUT_MISSING",
                    message=f"Layout missing for fidget: {fidget.id}",
                    item_id=fidget.id,
                ))
            continue

        pos = fidget.position
        if (item.x, item.y, item.w, item.h) != (pos.x, pos.y, pos.width, pos.height):
            issues.append(LayoutIssue(
                kind=IssueKind.CONSISTENCY,
                code="POSITION_MISMATCH",
                message=(
                    f"Position mismatch for {fidget.id}. "
                    f"Design: {pos.describe()} vs "
                    f"Implementation: ({item.x},{item.y},{item.w}×{item.h})"
                ),
                item_id=fidget.id,
                details={
                    "design": pos.model_dump(),
                    "implementation": {"x": item.x, "y": item.y, "width": item.w, "height": item.h},
                },
            ))

    # layout ids of designed fidgets without an instance are reported as missing
    orphaned = _orphan_layout_ids(built, ignore={f.id for f in design.fidgets})
    if orphaned:
        issues.append(_orphan_layout_issue(orphaned))
    return issues


def _type_mismatches(design: DesignPlan, built: SpaceConfig) -> list[LayoutIssue]:
    issues = []
    for fidget in design.fidgets:
        instance = built.fidget_instance_datums.get(fidget.id)
        if instance is None:
            continue
        if instance.fidget_type != fidget.type:
            issues.append(LayoutIssue(
                kind=IssueKind.CONSISTENCY,
                code="TYPE_MISMATCH",
                message=(
                    f"Type mismatch for {fidget.id}. Design: {fidget.type} "
                    f"vs Implementation: {instance.fidget_type}"
                ),
                item_id=fidget.id,
                details={"design": fidget.type, "implementation": instance.fidget_type},
            ))
    return issues


_CHECKS = (_missing_ids, _extra_ids, _position_mismatches, _type_mismatches)


def verify(design: DesignPlan, built: SpaceConfig, collect_all: bool = False) -> VerificationResult:
    """
    Compare a design plan against a built configuration.

    Args:
        design: the designer's plan (ids, types, positions)
        built: the builder's configuration
        collect_all: also run the remaining checks and list every violation
            in `issues`; `message` and `issue` still describe the first one

    Returns:
        VerificationResult (ok=True only if every check passes)
    """
    found: list[LayoutIssue] = []
    for check in _CHECKS:
        issues = check(design, built)
        if issues and not collect_all:
            logger.info("verify: %s", issues[0].message)
            return VerificationResult(ok=False, message=issues[0].message, issue=issues[0])
        found.extend(issues)

    if found:
        logger.info("verify: %d violation(s), first: %s", len(found), found[0].message)
        return VerificationResult(ok=False, message=found[0].message, issue=found[0], issues=found)

    return VerificationResult(ok=True, message=SUCCESS_MESSAGE)


def validate_config(
    config: SpaceConfig,
    catalog: Mapping[str, FidgetSize] = FIDGET_SIZES,
) -> LayoutIssue | None:
    """
    Check a built configuration on its own.

    Returns the first problem found, or None if the configuration is valid.
    """
    for key, instance in config.fidget_instance_datums.items():
        if instance.id != key:
            return LayoutIssue(
                kind=IssueKind.STRUCTURAL,
                code="INSTANCE_ID_MISMATCH",
                message=f"Instance stored under '{key}' declares id '{instance.id}'.",
                item_id=key,
            )
        if not is_known_type(instance.fidget_type, catalog):
            return LayoutIssue(
                kind=IssueKind.CATALOG,
                code="UNKNOWN_FIDGET_TYPE",
                message=f"Invalid fidget type: {instance.fidget_type} (item {key}).",
                item_id=key,
                details={"type": instance.fidget_type},
            )

    dupes = _duplicate_layout_ids(config)
    if dupes:
        return _duplicate_layout_issue(dupes[0])

    seen = {item.i for item in config.layout}
    without_layout = sorted(set(config.fidget_instance_datums) - seen)
    if without_layout:
        return LayoutIssue(
            kind=IssueKind.CONSISTENCY,
            code="LAYOUT_MISSING",
            message=f"Instances without a layout entry: {', '.join(without_layout)}",
            details={"ids": without_layout},
        )
    orphaned = sorted(_orphan_layout_ids(config))
    if orphaned:
        return _orphan_layout_issue(orphaned)

    return None

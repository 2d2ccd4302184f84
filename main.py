"""
CLI Entrypoint Module

Space builder CLI:
- With a free-text description, runs the pipeline
  (research → design → validate → build → verify) and prints the
  configuration JSON to stdout
- --validate FILE checks a design plan or matrix JSON file offline
- --convert FILE builds the configuration for a design JSON file offline

Usage:
    python -m main "a space for our dog photography club"
    python -m main --validate design.json
    python -m main --convert design.json
    python -m main  # interactive mode
"""

import argparse
import json
import logging
from pathlib import Path

from space_builder.config import load_grid_policy
from space_builder.converter import convert
from space_builder.coverage import analyze_design, analyze_matrix
from space_builder.ingest import IngestionError, load_design_matrix, load_design_plan, parse_llm_json
from space_builder.models import Verdict
from space_builder.orchestrator import run_pipeline
from space_builder.agent_types import PipelineStatus


def _load_design(path: str, policy):
    """Read a design file; returns a DesignMatrix (plans are rasterized) and the raw payload."""
    data = parse_llm_json(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, dict) and "cells" in data:
        return load_design_matrix(data), None
    plan = load_design_plan(data)
    return plan.to_matrix(policy), plan


def _validate(path: str, policy) -> int:
    matrix, plan = _load_design(path, policy)
    report = analyze_design(plan, policy) if plan is not None else analyze_matrix(matrix, policy)
    print(json.dumps(report.model_dump(mode="json"), indent=2))
    return 1 if report.verdict == Verdict.REJECT else 0


def _convert(path: str, policy) -> int:
    matrix, _ = _load_design(path, policy)
    result = convert(matrix, policy)
    if not result.ok:
        print(f"ERROR ({result.issue.code}): {result.issue.message}")
        return 1
    print(json.dumps(result.config.to_json_dict(), indent=2))
    return 0


def main() -> int:
    """Run the space builder CLI.

    Returns:
        0 on success, 1 on error, rejection or user abort.
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    parser = argparse.ArgumentParser(
        description="Grid space builder (research → design → validate → build → verify)."
    )
    parser.add_argument(
        "description",
        nargs="*",
        help="Free-text description of the space to build.",
    )
    parser.add_argument("--validate", metavar="FILE", help="Validate a design JSON file and print the coverage report.")
    parser.add_argument("--convert", metavar="FILE", help="Convert a design JSON file and print the configuration.")
    parser.add_argument("--attempts", type=int, default=3, help="Maximum design attempts (default: 3).")
    args = parser.parse_args()

    policy = load_grid_policy()

    try:
        if args.validate:
            return _validate(args.validate, policy)
        if args.convert:
            return _convert(args.convert, policy)
    except (OSError, IngestionError) as exc:
        print(f"ERROR: {exc}")
        return 1

    if args.description:
        user_text = " ".join(args.description)
    else:
        print("describe the space you want (community, topics, content), then press enter:")
        try:
            user_text = input("> ").strip()
        except KeyboardInterrupt:
            print("\naborted.")
            return 1

    if not user_text:
        print("no description provided; nothing to do.")
        return 1

    try:
        result = run_pipeline(user_text, policy=policy, max_design_attempts=args.attempts)
    except Exception as exc:  # noqa: BLE001
        logging.exception("pipeline crashed")
        print(f"\nERROR: {exc}")
        return 1

    if result.status != PipelineStatus.DONE:
        print(f"\n=== {result.status.value} after {result.attempts} attempt(s) ===\n")
        for error in result.errors:
            print(f"- {error}")
        return 1

    print(json.dumps(result.config.to_json_dict(), indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

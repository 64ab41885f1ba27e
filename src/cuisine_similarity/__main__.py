"""Command line entry point: ``cuisine-similarity`` / ``python -m cuisine_similarity``."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List

from .common.logging_setup import LOG_LEVELS, setup_logging
from .core import StageResult
from .runner import PIPELINE_ORDER, PipelineRunner


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Cluster cuisines by ingredient usage and render the post figures")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to pipeline YAML (default: bundled cuisine_similarity/config/pipeline.yaml)",
    )
    parser.add_argument(
        "--input",
        type=Path,
        default=None,
        help="Tab-separated recipe file (overrides load_corpus.data.input_path)",
    )
    parser.add_argument(
        "--stages",
        type=str,
        nargs="*",
        default=None,
        help=f"Stages to run, in order (default: {' '.join(PIPELINE_ORDER)})",
    )
    parser.add_argument("--list", action="store_true", help="List available stages and exit")
    parser.add_argument(
        "--workdir",
        type=Path,
        default=None,
        help="Directory that relative input, report and figure paths resolve against (default: current directory)",
    )
    parser.add_argument(
        "--keep-going",
        action="store_true",
        help="Run the remaining stages after a failure (they fail too if they need its artifacts)",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Override the configured log level",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write the log to this file (relative to --workdir)",
    )
    return parser.parse_args(argv)


def print_summary(results: List[StageResult]) -> bool:
    """Print one block per stage; return True when any stage failed."""
    failed = False
    print("=" * 60)
    for result in results:
        print(f"{result.status.upper():>8}  {result.name}")
        if result.status == "failed" and "error_stage" in result.artifacts:
            print(f"    {result.artifacts['error_type']} raised in stage '{result.artifacts['error_stage']}'")
        if result.details:
            print(f"    {result.details}")
        for key, value in result.outputs.items():
            print(f"    - {key}: {value}")
        failed = failed or result.status == "failed"
    print("=" * 60)
    return failed


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        runner = PipelineRunner.from_file(args.config, workdir=args.workdir)
    except (FileNotFoundError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    if args.input is not None:
        config = runner.config.with_overrides("load_corpus", "data", {"input_path": str(args.input)})
        runner = PipelineRunner(config, workdir=args.workdir)

    if args.list:
        print("Available stages:")
        for name in runner.available_stages():
            prefix = " *" if name in PIPELINE_ORDER else "  "
            print(f"{prefix} {name}")
        return 0

    # explicit options replace whatever logging is already installed
    setup_logging(
        runner.config.logging("pipeline"),
        level=args.log_level,
        log_file=args.log_file,
        base_dir=runner.context.workdir,
        force=args.log_level is not None or args.log_file is not None,
    )

    results = runner.run(stages=args.stages, stop_on_failure=not args.keep_going)
    return 1 if print_summary(results) else 0


if __name__ == "__main__":
    sys.exit(main())

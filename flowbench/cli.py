#!/usr/bin/env python3
"""
CLI entrypoint for flowbench.

Usage:
    flowbench <tool> [--config DIR] [--kind TYPE | --indices N ...]
              [--length NUM] [--output DIR] [--parallel]

Returns:
    0: every evaluated testcase was robustly detected on every variant
    1: evaluation finished, at least one testcase was not fully robust,
       or no testcase matched the selection
    3: Error (missing tool, malformed catalog, index out of range, etc.)
"""

import argparse
import logging
import sys
from pathlib import Path

KINDS = ["UAF", "DF", "BO", "Uninit", "NPD", "Other"]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flowbench",
        description="flowbench: evaluate a bug-finding tool on flow-nested testcase variants",
    )
    parser.add_argument("tool", type=Path, help="Tool to be evaluated")
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        metavar="DIR",
        help="Catalog directory with testcases.yaml and expressions.yaml (default: ./config)",
    )

    selection = parser.add_mutually_exclusive_group()
    selection.add_argument(
        "-k", "--kind",
        choices=KINDS,
        default=None,
        help="Evaluate only testcases of this vulnerability kind",
    )
    selection.add_argument(
        "-i", "--indices",
        type=int,
        nargs="+",
        default=None,
        metavar="N",
        help="Indices of the testcases to evaluate (default: all)",
    )

    parser.add_argument(
        "-l", "--length",
        type=int,
        default=None,
        metavar="NUM",
        help="Maximum number of nested flows per variant (default: 2)",
    )
    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        metavar="DIR",
        help="Output directory (default: ./output)",
    )
    parser.add_argument(
        "-p", "--parallel",
        action="store_true",
        help="Explore several testcases at once",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Concurrent explorations with --parallel (default: 5)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for fragment sampling, for reproducible runs",
    )
    parser.add_argument(
        "--no-images",
        action="store_true",
        help="Do not render evaluation trees to PNG",
    )
    parser.add_argument("--verbose", action="store_true", help="Verbose output")
    return parser


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not verbose:
        logging.getLogger("flowbench").setLevel(logging.INFO)


def _apply_overrides(cfg, args: argparse.Namespace) -> None:
    """Command-line flags win over flowbench.yml."""
    if args.length is not None:
        cfg.exploration.length = args.length
    if args.parallel:
        cfg.exploration.parallel = True
    if args.workers is not None:
        cfg.exploration.workers = args.workers
    if args.seed is not None:
        cfg.exploration.seed = args.seed
    if args.no_images:
        cfg.report.render_images = False
    cfg.validate()


def main(argv=None):
    from .catalog import Catalog
    from .config import FlowbenchConfig
    from .engine import Evaluator
    from .errors import FlowbenchError
    from .runner import ToolRunner, resolve_tool

    args = _build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    current_dir = Path.cwd()
    config_dir = args.config or current_dir / "config"
    output_root = args.output or current_dir / "output"

    try:
        tool = resolve_tool(args.tool)
        cfg = FlowbenchConfig.load(config_dir)
        _apply_overrides(cfg, args)
        catalog = Catalog.load(config_dir)

        output = output_root / tool.stem
        runner = ToolRunner(tool, output / "harness", cfg.runner)
        evaluator = Evaluator(runner, catalog, output, cfg, targets=args.indices)
        if args.kind:
            evaluator.set_target_by_ty(args.kind)

        run = evaluator.main()
    except FlowbenchError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 3

    print(run.summary.table())
    print(run.summary.report())
    print(f"Results saved to {output}")

    return 0 if run.all_robust else 1


if __name__ == "__main__":
    sys.exit(main())

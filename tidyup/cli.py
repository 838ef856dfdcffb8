"""Command-line front door for tidyup.

Parses CLI options, merges them over persisted settings, and dispatches to
the tree / plan / apply / config subcommands. Recommendation text is read
from a file or stdin; fetching it from a recommender is left to the user.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from .config import Settings, config_path, load_settings, save_settings
from .errors import PlanError, SerializeError, TreeParseError
from .organize import Reconciliation, execute, reconcile, snapshot
from .reconcile.executor import AppliedSummary
from .reconcile.planner import MATCH_STRATEGIES

EXIT_EXECUTION_FAILED = 1
EXIT_INVALID_INPUT = 2


def _add_walk_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--recurse",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Expand subfolders instead of listing them as 'name/'.",
    )
    parser.add_argument(
        "--hidden",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Include dot-files and dot-folders.",
    )


def _add_plan_options(parser: argparse.ArgumentParser) -> None:
    _add_walk_options(parser)
    parser.add_argument("path", help="Directory to organize.")
    parser.add_argument("recommendation", help="File holding recommender output, or '-' for stdin.")
    parser.add_argument("--match", choices=MATCH_STRATEGIES, default=None, help="How entries are paired.")
    parser.add_argument(
        "--prune-empty",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Remove folders left empty by the moves.",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tidyup",
        description="Reorganize a directory to match a revised directory tree.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log planning and execution details.")
    sub = parser.add_subparsers(dest="command", required=True)

    tree_parser = sub.add_parser("tree", help="Print the directory tree text.")
    tree_parser.add_argument("path", nargs="?", default=None, help="Directory to walk. Defaults to current directory.")
    _add_walk_options(tree_parser)

    plan_parser = sub.add_parser("plan", help="Show the operations a recommendation implies.")
    _add_plan_options(plan_parser)

    apply_parser = sub.add_parser("apply", help="Plan and execute a recommendation.")
    _add_plan_options(apply_parser)
    apply_parser.add_argument("--dry-run", action="store_true", help="Report operations without touching files.")

    config_parser = sub.add_parser("config", help="Show or update persisted defaults.")
    _add_walk_options(config_parser)
    config_parser.add_argument("--match", choices=MATCH_STRATEGIES, default=None, help="Default pairing strategy.")
    config_parser.add_argument(
        "--prune-empty",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Default for removing emptied folders.",
    )
    return parser


def resolve_settings(args: argparse.Namespace, base: Settings) -> Settings:
    """Overlay explicitly passed flags on ``base`` settings."""
    overrides: dict[str, object] = {}
    if getattr(args, "recurse", None) is not None:
        overrides["recurse"] = args.recurse
    if getattr(args, "hidden", None) is not None:
        overrides["include_hidden"] = args.hidden
    if getattr(args, "match", None) is not None:
        overrides["match_strategy"] = args.match
    if getattr(args, "prune_empty", None) is not None:
        overrides["remove_empty_folders"] = args.prune_empty
    return replace(base, **overrides)


def _read_recommendation_text(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    path = Path(source)
    if not path.is_file():
        raise SystemExit(f"Recommendation file not found: {path}")
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise SystemExit(f"Recommendation file is not valid UTF-8: {path}") from exc
    except OSError as exc:
        raise SystemExit(f"Cannot read recommendation file {path}: {exc}") from exc


def format_summary(summary: AppliedSummary, base: Path | None = None) -> str:
    """Render one line per attempted and pending operation."""
    lines: list[str] = []
    for result in summary.results:
        line = f"{result.status:<8}{result.operation.describe(base)}"
        if result.detail:
            line += f" ({result.detail})"
        lines.append(line)
    for operation in summary.pending:
        lines.append(f"{'pending':<8}{operation.describe(base)}")
    return "\n".join(lines) + ("\n" if lines else "")


def _reconcile_from_args(args: argparse.Namespace, settings: Settings) -> Reconciliation:
    current = snapshot(Path(args.path), settings.recurse, include_hidden=settings.include_hidden)
    return reconcile(
        current,
        _read_recommendation_text(args.recommendation),
        strategy=settings.match_strategy,
        remove_empty_folders=settings.remove_empty_folders,
        include_hidden=settings.include_hidden,
    )


def _run_tree(args: argparse.Namespace, settings: Settings, default_path: Path) -> None:
    current = snapshot(Path(args.path or default_path), settings.recurse, include_hidden=settings.include_hidden)
    sys.stdout.write(current.text)


def _run_plan(args: argparse.Namespace, settings: Settings) -> None:
    result = _reconcile_from_args(args, settings)
    if not result.plan:
        sys.stdout.write("Nothing to do; the directory already matches.\n")
        return
    sys.stdout.write("".join(line + "\n" for line in result.plan.describe()))


def _run_apply(args: argparse.Namespace, settings: Settings) -> None:
    result = _reconcile_from_args(args, settings)
    if not result.plan:
        sys.stdout.write("Nothing to do; the directory already matches.\n")
        return
    summary = execute(result, dry_run=args.dry_run)
    sys.stdout.write(format_summary(summary, result.plan.base_path))
    if summary.error is not None:
        sys.stderr.write(f"Stopped: {summary.error}\n")
        raise SystemExit(EXIT_EXECUTION_FAILED)


def _run_config(args: argparse.Namespace, settings: Settings, base: Settings) -> None:
    if settings != base:
        save_settings(settings)
    sys.stdout.write(f"# {config_path()}\n")
    for key, value in vars(settings).items():
        sys.stdout.write(f"{key} = {value}\n")


def main(default_path: Path | None = None, argv: list[str] | None = None) -> None:
    """Parse CLI arguments and run one subcommand.

    ``default_path`` is primarily for tests; when omitted the current working
    directory is used by ``tidyup tree``.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    base = load_settings()
    settings = resolve_settings(args, base)
    if default_path is None:
        default_path = Path.cwd()

    try:
        if args.command == "tree":
            _run_tree(args, settings, default_path)
        elif args.command == "plan":
            _run_plan(args, settings)
        elif args.command == "apply":
            _run_apply(args, settings)
        else:
            _run_config(args, settings, base)
    except (SerializeError, TreeParseError, PlanError) as exc:
        sys.stderr.write(f"tidyup: {exc}\n")
        raise SystemExit(EXIT_INVALID_INPUT) from exc


if __name__ == "__main__":
    main()

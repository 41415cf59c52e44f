"""CLI entrypoints for ngaudit commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .checks import discover_checks
from .errors import CheckLoadError, ConfigError, RunnerError, UnknownCheckError
from .logging import configure_logging
from .models import TIERS
from .orchestrator import Orchestrator
from .report import dump_json, render_summary


def _add_logging_options(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )
    quiet_kwargs = dict(kwargs, help="Only log warnings and errors.")
    parser.add_argument(
        "-q",
        "--quiet",
        **quiet_kwargs,
    )


def _workers(value: str) -> int | str:
    if value == "auto":
        return value
    try:
        workers = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("workers must be 'auto' or a positive integer") from exc
    if workers < 1:
        raise argparse.ArgumentTypeError("workers must be 'auto' or a positive integer")
    return workers


def _add_audit_options(parser: argparse.ArgumentParser) -> None:
    _add_logging_options(parser, suppress_default=True)
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the project root (defaults to current directory).",
    )
    parser.add_argument("--tier", choices=TIERS, help="Check tier to run (cumulative).")
    parser.add_argument(
        "--workers",
        type=_workers,
        help="Worker count, or 'auto' for one per CPU minus one.",
    )
    parser.add_argument(
        "--executor",
        choices=("thread", "process"),
        help="Run checks in a thread pool or a process pool.",
    )
    parser.add_argument(
        "--check",
        dest="checks",
        action="append",
        metavar="NAME",
        help="Only run this check (repeatable).",
    )
    parser.add_argument("--output", type=Path, help="Write the JSON result to this file.")
    parser.add_argument("--log-file", type=Path, help="Also write logs to this file.")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ngaudit",
        description="Static accessibility audits for Angular component trees.",
    )
    _add_logging_options(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan_parser = subparsers.add_parser(
        "scan",
        help="Audit every component's own templates and styles.",
    )
    _add_audit_options(scan_parser)

    pages_parser = subparsers.add_parser(
        "pages",
        help="Audit the full template closure of one or more page entries.",
    )
    _add_audit_options(pages_parser)
    pages_parser.add_argument(
        "--entry",
        dest="entries",
        action="append",
        metavar="FILE",
        help="Entry template for a page (repeatable; defaults to `pages` in .ngaudit.yml, then routing files).",
    )
    pages_parser.add_argument(
        "--no-optimize",
        action="store_true",
        help="Report every page issue instead of collapsing shared root causes.",
    )

    checks_parser = subparsers.add_parser("checks", help="List available checks.")
    _add_logging_options(checks_parser, suppress_default=True)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for ngaudit commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        verbose=bool(args.verbose),
        quiet=bool(args.quiet),
        log_file=getattr(args, "log_file", None),
    )

    if args.command == "checks":
        try:
            checks = discover_checks()
        except CheckLoadError as exc:
            parser.exit(2, f"{exc}\n")
        for check in sorted(checks, key=lambda item: (TIERS.index(item.tier), item.name)):
            print(f"{check.name:<24} {check.tier:<9} {check.file_type:<5} weight={check.weight}")
        return

    orchestrator = Orchestrator()
    options = {
        "tier": args.tier,
        "workers": args.workers,
        "executor": args.executor,
        "only": args.checks,
    }
    try:
        if args.command == "scan":
            result = orchestrator.analyze_components(args.path, **options)
        elif args.command == "pages":
            result = orchestrator.analyze_pages(
                args.path,
                args.entries,
                optimize=False if args.no_optimize else None,
                **options,
            )
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(1, "Unknown command\n")
    except (ConfigError, RunnerError, CheckLoadError, UnknownCheckError) as exc:
        parser.exit(2, f"ngaudit {args.command} failed: {exc}\nRun with --verbose for more details.\n")

    if args.command == "pages" and not result.pages:
        parser.exit(
            2,
            "No page entries given or found in routing files; "
            "pass --entry or list `pages` in .ngaudit.yml.\n",
        )

    print(render_summary(result))
    if args.output is not None:
        written = dump_json(result, args.output)
        print(f"Result written to {_relativize(written)}")

    if not result.passed:
        parser.exit(1)


def _relativize(path: Path) -> str:
    try:
        return str(path.resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])

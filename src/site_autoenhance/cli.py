"""Command-line interface for the site auto-enhancer.

Entry point
-----------
The ``main()`` function is registered as a console script in
``pyproject.toml``::

    [project.scripts]
    site-autoenhance = "site_autoenhance.cli:main"

Usage examples::

    site-autoenhance --root ./site run
    site-autoenhance --config enhancer.yaml history --limit 10
    site-autoenhance --config enhancer.yaml start --interval 3600
    site-autoenhance --root ./site status
    site-autoenhance --root ./site maintenance off
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

from site_autoenhance.domain.enums import BreakerState
from site_autoenhance.domain.exceptions import PublishFailure
from site_autoenhance.domain.values import utc_now
from site_autoenhance.infrastructure.artifact_store import FileArtifactStore
from site_autoenhance.infrastructure.config import EnhancerConfig, default_config, load_config
from site_autoenhance.infrastructure.history_log import HistoryLog
from site_autoenhance.infrastructure.publisher import build_publisher
from site_autoenhance.presentation.console import EnhancerConsole
from site_autoenhance.services.circuit_breaker import CircuitBreaker
from site_autoenhance.services.engine import MutationEngine
from site_autoenhance.services.scheduler import Scheduler

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    """Build the top-level argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="site-autoenhance",
        description=(
            "Site auto-enhancer -- apply small, idempotent improvements to a "
            "website's stylesheets, scripts and pages on a schedule."
        ),
    )
    parser.add_argument(
        "--version",
        action="store_true",
        default=False,
        help="Show version and exit.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML or JSON configuration file (default: built-in configuration).",
    )
    parser.add_argument(
        "--root",
        type=str,
        default=None,
        help="Site root directory; overrides the configured root_dir.",
    )
    parser.add_argument(
        "--no-publish",
        action="store_true",
        default=False,
        help="Do not commit or push; only log what would be published.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Enable debug logging.",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available subcommands")

    # -- run ---------------------------------------------------------------
    subparsers.add_parser(
        "run",
        help="Run one enhancement cycle now.",
        description="Select an artifact and category, apply edits, record and publish.",
    )

    # -- history -----------------------------------------------------------
    history_parser = subparsers.add_parser(
        "history",
        help="Show recent enhancements.",
        description="Print the newest entries of the history log.",
    )
    history_parser.add_argument(
        "--format",
        type=str,
        default="table",
        choices=["table", "json"],
        help="Output format (default: table).",
    )
    history_parser.add_argument(
        "--limit",
        type=int,
        default=20,
        help="Number of entries to show (default: 20).",
    )

    # -- start -------------------------------------------------------------
    start_parser = subparsers.add_parser(
        "start",
        help="Run cycles on a schedule until interrupted.",
        description="Start the scheduler; Ctrl-C stops it.",
    )
    start_parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between cycles (default: scheduler.interval_seconds).",
    )
    start_parser.add_argument(
        "--max-cycles",
        type=int,
        default=None,
        help="Stop after this many cycles (default: run forever).",
    )

    # -- status ------------------------------------------------------------
    subparsers.add_parser(
        "status",
        help="Show maintenance state and recent mutation rate.",
        description="Report the circuit breaker state and trailing-window count.",
    )

    # -- maintenance -------------------------------------------------------
    maintenance_parser = subparsers.add_parser(
        "maintenance",
        help="Manually switch maintenance mode on or off.",
        description="Swap the entry page for the placeholder, or restore it.",
    )
    maintenance_parser.add_argument(
        "state",
        choices=["on", "off"],
        help="Target state.",
    )

    return parser


def _configure_logging(verbose: bool) -> None:
    """Route the package's log records to a rich handler on stderr."""
    handler = RichHandler(console=Console(stderr=True), show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    package_logger = logging.getLogger("site_autoenhance")
    for existing in [h for h in package_logger.handlers if isinstance(h, RichHandler)]:
        package_logger.removeHandler(existing)
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG if verbose else logging.INFO)


def _load_config(args: argparse.Namespace) -> EnhancerConfig:
    """Resolve the configuration from ``--config``, ``--root`` and ``--no-publish``."""
    if args.config:
        config = load_config(args.config)
        if args.root:
            config = config.with_overrides(root_dir=args.root)
    else:
        config = default_config(args.root or ".")
    if args.no_publish:
        config = config.with_overrides(publisher=replace(config.publisher, kind="none"))
    return config


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


def _cmd_run(args: argparse.Namespace) -> int:
    config = _load_config(args)
    engine = MutationEngine(config)
    result = engine.run_cycle()
    EnhancerConsole().print_cycle(result)
    return 0


def _cmd_history(args: argparse.Namespace) -> int:
    config = _load_config(args)
    records = HistoryLog(config.history_file).recent(max(args.limit, 0))
    if args.format == "json":
        print(json.dumps([r.to_dict() for r in records], indent=2))
    else:
        EnhancerConsole().print_history(records)
    return 0


def _cmd_start(args: argparse.Namespace) -> int:
    config = _load_config(args)
    interval = args.interval if args.interval is not None else config.scheduler.interval_seconds
    console = EnhancerConsole()
    scheduler = Scheduler(
        MutationEngine(config),
        interval_seconds=interval,
        run_immediately=config.scheduler.run_immediately,
        max_cycles=args.max_cycles,
        on_result=console.print_cycle,
    )
    cycles = asyncio.run(scheduler.run())
    console.print_message(f"Ran {cycles} cycle(s).")
    return 0


def _cmd_status(args: argparse.Namespace) -> int:
    config = _load_config(args)
    breaker = CircuitBreaker(FileArtifactStore(config.root), config.breaker)
    records = HistoryLog(config.history_file).records()
    now = utc_now()
    EnhancerConsole().print_status(
        current=breaker.current_state(),
        desired=breaker.desired_state(records, now),
        recent_count=breaker.recent_count(records, now),
        threshold=config.breaker.threshold,
        window_seconds=config.breaker.window_seconds,
        total_records=len(records),
    )
    return 0


def _cmd_maintenance(args: argparse.Namespace) -> int:
    config = _load_config(args)
    target = BreakerState.MAINTENANCE if args.state == "on" else BreakerState.NORMAL
    breaker = CircuitBreaker(FileArtifactStore(config.root), config.breaker)
    console = EnhancerConsole()

    transition = breaker.force(target)
    if transition is None:
        console.print_message(f"Site already in {target.value} state.")
        return 0

    publisher = build_publisher(config.publisher, config.root)
    try:
        publisher.publish(
            list(transition.changed_paths),
            config.publisher.message(f"maintenance mode {target.value} (manual)"),
        )
    except PublishFailure as exc:
        logger.warning("Maintenance switch applied locally but not published: %s", exc)
    console.print_message(
        f"Site switched {transition.from_state.value} -> {transition.to_state.value}."
    )
    return 0


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    Parameters
    ----------
    argv:
        Command-line arguments.  Defaults to ``sys.argv[1:]``.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        from site_autoenhance import __version__
        print(f"site-autoenhance {__version__}")
        sys.exit(0)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    _configure_logging(args.verbose)

    handlers: dict[str, Any] = {
        "run": _cmd_run,
        "history": _cmd_history,
        "start": _cmd_start,
        "status": _cmd_status,
        "maintenance": _cmd_maintenance,
    }

    handler = handlers.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)

    try:
        exit_code = handler(args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        exit_code = 130
    except Exception as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)

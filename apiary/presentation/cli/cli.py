"""
CLI Module

Architectural Intent:
- Command-line interface for apiary
- Entry point for all user interactions
- Delegates to the apply use case via the composition root
- The only place that turns a run result into a process exit status
"""

import argparse
import asyncio
import logging
import sys
import traceback
from typing import Optional, Sequence

from rich.console import Console

from apiary import composition_root
from apiary.application.dtos.apply_dtos import ApplyRequest
from apiary.domain.errors import ApiaryError, SelectionEmptyError
from apiary.domain.services.outcome_aggregation import (
    EXIT_FAILURE,
    EXIT_NO_MATCH,
    EXIT_OK,
)
from apiary.domain.value_objects.deployment_goal import DeploymentGoal, GOAL_TOKENS
from apiary.infrastructure.config import ApiaryConfig, load_config
from apiary.infrastructure.logging import configure_logging, parse_level
from apiary.infrastructure.telemetry.otel_exporter import configure_telemetry


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError("The value must be a valid number")
    if number < 0:
        raise argparse.ArgumentTypeError("The value must be a valid number")
    return number


def register_selector_args(parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
    parser.add_argument(
        "--on",
        metavar="FILTER",
        help=(
            "Select a list of machines. The list is comma-separated and globs "
            "are supported. To match tags, prepend the filter with @."
        ),
    )
    return parser


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="apiary",
        description="apiary: deploy NixOS configurations to a fleet of hosts",
    )
    parser.add_argument(
        "--config", "-c", help="Path to apiary.json (default: ./apiary.json)"
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug output with tracebacks"
    )
    parser.add_argument(
        "--json-logs", action="store_true", help="Emit structured JSON logs"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    apply_parser = subparsers.add_parser(
        "apply", help="Apply configurations on remote machines"
    )
    apply_parser.add_argument(
        "goal",
        nargs="?",
        choices=GOAL_TOKENS,
        help=(
            "Deployment goal, same as the targets of switch-to-configuration. "
            '"push" only copies the closures to remote nodes. (default: switch)'
        ),
    )
    apply_parser.add_argument(
        "--parallel",
        "-p",
        type=_non_negative_int,
        metavar="LIMIT",
        help=(
            "Maximum number of hosts deployed in parallel. "
            "Set to 0 to disable the limit. (default: 10)"
        ),
    )
    apply_parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Deactivate the progress spinner and print every transition",
    )
    apply_parser.add_argument(
        "--no-substitutes",
        action="store_true",
        help="Do not use substituters when copying closures to the remote host",
    )
    apply_parser.add_argument(
        "--no-gzip",
        action="store_true",
        help="Do not use gzip when copying closures to the remote host",
    )
    apply_parser.add_argument(
        "--hive", help="Path to the hive file (default: hive.nix)"
    )
    register_selector_args(apply_parser)

    return parser


def _build_request(args: argparse.Namespace, config: ApiaryConfig) -> ApplyRequest:
    return ApplyRequest(
        goal=DeploymentGoal.parse(args.goal or config.apply.goal),
        parallel=args.parallel if args.parallel is not None else config.apply.parallel,
        verbose=args.verbose,
        use_substitutes=config.apply.substitutes and not args.no_substitutes,
        use_gzip=config.apply.gzip and not args.no_gzip,
        on=args.on,
    )


async def _run_apply(
    args: argparse.Namespace, config: ApiaryConfig, console: Console
) -> int:
    try:
        request = _build_request(args, config)
        telemetry = configure_telemetry(config.telemetry)
    except ValueError as e:
        print(f"[-] Invalid configuration: {e}")
        return EXIT_FAILURE

    container = composition_root.create_container(
        config, hive_path=args.hive, console=console
    )

    try:
        summary = await container.apply.execute(request)
    except SelectionEmptyError as e:
        print(f"[-] {e}")
        return EXIT_NO_MATCH
    except ApiaryError as e:
        print(f"[-] Apply failed: {e}")
        if args.debug:
            traceback.print_exc()
        return EXIT_FAILURE
    finally:
        if telemetry is not None:
            telemetry.shutdown()

    print(container.aggregator.render(summary))
    status = container.aggregator.exit_status(summary)
    if status == EXIT_OK:
        print("[+] Apply successful.")
    elif summary.interrupted:
        print("[-] Apply interrupted.")
    else:
        print("[-] Apply finished with errors.")
    return status


async def async_main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config)
    level = logging.DEBUG if args.debug else parse_level(config.log_level)
    # logs and the progress display share one stderr console
    console = Console(stderr=True)
    configure_logging(level=level, json_format=args.json_logs, console=console)

    if args.command == "apply":
        return await _run_apply(args, config, console)

    parser.print_help()
    return EXIT_OK


def main():
    sys.exit(asyncio.run(async_main()))


if __name__ == "__main__":
    main()

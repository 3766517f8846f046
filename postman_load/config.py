from __future__ import annotations

import argparse
import os
from dataclasses import dataclass
from pathlib import Path

from .runner import REQUEST_TIMEOUT_S_DEFAULT


@dataclass(frozen=True)
class RunConfiguration:
    """Immutable parameters of one load-test run. Durations are milliseconds."""

    file: str
    user_count: int
    interval_ms: int
    total_duration_ms: int
    stagger: bool = False
    report_on_exit: bool = False
    data_file_path: str | None = None
    output_dir: Path | None = None
    request_timeout_s: float = REQUEST_TIMEOUT_S_DEFAULT


def positive_int(value: str) -> int:
    try:
        parsed = int(value, 10)
    except (TypeError, ValueError):
        raise argparse.ArgumentTypeError("Not a number.")
    if parsed <= 0:
        raise argparse.ArgumentTypeError("Must be a positive integer.")
    return parsed


def positive_float(value: str) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        raise argparse.ArgumentTypeError("Not a number.")
    if parsed <= 0:
        raise argparse.ArgumentTypeError("Must be a positive number.")
    return parsed


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run a Postman collection export as a timed multi-user load test"
    )
    parser.add_argument(
        "-f", "--file", required=True, help="Target Postman collection export file"
    )
    parser.add_argument(
        "-u", "--users", type=positive_int, required=True, help="Number of simulated users"
    )
    parser.add_argument(
        "-i",
        "--interval",
        type=positive_int,
        required=True,
        help="Time between user requests (in seconds)",
    )
    parser.add_argument(
        "-t", "--total", type=positive_int, required=True, help="Total time to run (in seconds)"
    )
    parser.add_argument(
        "-s",
        "--stagger",
        action="store_true",
        help="Stagger users by a random amount within the interval",
    )
    parser.add_argument(
        "-r",
        "--report",
        action="store_true",
        help="Print a per-request latency and status code report on exit",
    )
    parser.add_argument(
        "-d",
        "--data",
        default=None,
        help="Optional JSON file of request bodies rotated across users",
    )
    parser.add_argument(
        "--output-dir",
        default=os.environ.get("POSTMAN_LOAD_OUTPUT_DIR"),
        help="Directory to store report artefacts (CSV files and charts)",
    )
    parser.add_argument(
        "--timeout",
        type=positive_float,
        default=os.environ.get("POSTMAN_LOAD_REQUEST_TIMEOUT", str(REQUEST_TIMEOUT_S_DEFAULT)),
        help="Per-request timeout in seconds",
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("POSTMAN_LOAD_LOG_LEVEL", "INFO"),
        help="Logging level",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> RunConfiguration:
    return RunConfiguration(
        file=args.file,
        user_count=args.users,
        interval_ms=args.interval * 1000,
        total_duration_ms=args.total * 1000,
        stagger=args.stagger,
        report_on_exit=args.report,
        data_file_path=args.data,
        output_dir=Path(args.output_dir) if args.output_dir else None,
        request_timeout_s=args.timeout,
    )


__all__ = ["RunConfiguration", "build_config", "parse_args", "positive_int"]

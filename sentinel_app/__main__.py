"""
Command line entry point.

    python -m sentinel_app indicators
    python -m sentinel_app evaluate --dry-run --leverage 1.3
    python -m sentinel_app run --interval 604800
    python -m sentinel_app check-config --config config/sentinel.yaml
"""

import argparse
import sys
from pathlib import Path
from typing import Any, Optional

import structlog

from .config.defaults import DefaultConfig
from .config.loader import ConfigLoader
from .config.validation import ConfigValidator
from .delivery.stdout_delivery import StdoutReportDelivery
from .engine import SentinelEngine
from .errors import DataQualityError, SystemFailureError
from .logging.config import configure_logging
from .report.formatter import render_indicator_details

logger = structlog.get_logger("sentinel_app")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sentinel_app",
        description="Valuation-driven accumulation advisor for BTC and ETH"
    )
    parser.add_argument("--config", type=Path, default=None,
                        help="Path to sentinel.yaml (default: config/sentinel.yaml)")
    parser.add_argument("--leverage", type=float, default=None,
                        help="Current account leverage ratio")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--json-logs", action="store_true",
                        help="Emit logs as JSON lines")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("indicators", help="Compute and print the indicators")

    evaluate_parser = subparsers.add_parser("evaluate", help="Run one evaluation")
    evaluate_parser.add_argument("--dry-run", action="store_true",
                                 help="Print the report instead of sending it")

    run_parser = subparsers.add_parser("run", help="Evaluate on a fixed interval")
    run_parser.add_argument("--interval", type=int, default=None,
                            help="Seconds between runs (default: schedule.interval_seconds)")
    run_parser.add_argument("--max-runs", type=int, default=None)

    subparsers.add_parser("check-config", help="Validate the merged configuration")

    return parser


def load_config(args: argparse.Namespace) -> DefaultConfig:
    overrides: dict[str, Any] = {}
    if args.leverage is not None:
        overrides["account"] = {"leverage": args.leverage}
    return ConfigLoader.create(args.config).load(overrides)


def _print_validation_errors(errors: list) -> None:
    for error in errors:
        print(f"  {error.field}: {error.message} (value: {error.value!r})", file=sys.stderr)


def cmd_check_config(config: DefaultConfig) -> int:
    errors = ConfigValidator.validate_loaded(config)
    if errors:
        print(f"Found {len(errors)} configuration errors:", file=sys.stderr)
        _print_validation_errors(errors)
        return 1
    print("Configuration is valid")
    return 0


def cmd_indicators(config: DefaultConfig) -> int:
    engine = SentinelEngine.create_from_config(config, deliveries=[])
    bundle = engine.compute_indicators()
    print(render_indicator_details(bundle.valuation, bundle.trend, bundle.dispersion))
    for name, error in sorted(bundle.errors.items()):
        print(f"{name}: {error}", file=sys.stderr)
    return 0


def cmd_evaluate(config: DefaultConfig, dry_run: bool) -> int:
    deliveries = [StdoutReportDelivery()] if dry_run else None
    engine = SentinelEngine.create_from_config(config, deliveries=deliveries)
    engine.run_once()
    return 0


def cmd_run(config: DefaultConfig, interval: Optional[int], max_runs: Optional[int]) -> int:
    engine = SentinelEngine.create_from_config(config)
    engine.run_forever(interval, max_runs=max_runs)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level=args.log_level, format_json=args.json_logs)

    try:
        config = load_config(args)

        if args.command == "check-config":
            return cmd_check_config(config)

        errors = ConfigValidator.validate_loaded(config)
        if args.command == "indicators" or (args.command == "evaluate" and args.dry_run):
            # Delivery settings are irrelevant when printing
            errors = [e for e in errors if not e.field.startswith(("delivery.", "telegram."))]
        if errors:
            print("Invalid configuration:", file=sys.stderr)
            _print_validation_errors(errors)
            return 2

        if args.command == "indicators":
            return cmd_indicators(config)
        if args.command == "evaluate":
            return cmd_evaluate(config, args.dry_run)
        return cmd_run(config, args.interval, args.max_runs)

    except (DataQualityError, SystemFailureError) as e:
        logger.error(
            "Command failed",
            command=args.command,
            error=str(e),
            error_type=type(e).__name__
        )
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted", command=args.command)
        return 130


if __name__ == "__main__":
    sys.exit(main())

"""Command line entry point: ``rulefilter [options] RULE_FILE``."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import pathlib
import sys

from rulefilter.core import (
    ConfigConstants,
    FilterConfiguration,
    LoggerConfigurator,
    configure_loggers,
    getLogger,
)
from rulefilter.errors import (
    MalformedExpressionError,
    MalformedRuleError,
    OracleUnavailableError,
)
from rulefilter.expr.parser import parse_file
from rulefilter.rules.classifier import ClassificationSession
from rulefilter.rules.oracle import create_oracle

logger = getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rulefilter",
        description=(
            "Re-synthesize the predicates of a corpus of rewrite rules and "
            "report which rules are worth keeping."
        ),
    )
    parser.add_argument(
        "rule_file",
        nargs="?",
        default=None,
        help="Text file of rewrite(lhs, rhs, predicate) terms.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="JSON configuration file (flags below override its values).",
    )
    parser.add_argument(
        "--oracle",
        choices=ConfigConstants.BACKENDS,
        default=None,
        help="Arithmetic oracle backend (default: z3).",
    )
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=None,
        help="Synthesis iterations per rule.",
    )
    parser.add_argument(
        "--search-radius",
        type=int,
        default=None,
        help="Largest absolute value tried during enumeration.",
    )
    parser.add_argument(
        "--accepted-out",
        default=None,
        help="Write the accepted rules to this file, one per line.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print a machine-readable report instead of text lines.",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Console log level (default: WARNING).",
    )
    parser.add_argument(
        "--log-dir",
        default=None,
        help=f"Directory for log files (default: ./{ConfigConstants.DEFAULT_LOG_DIRNAME}).",
    )
    return parser


def _load_configuration(args: argparse.Namespace) -> FilterConfiguration:
    if args.config is not None:
        config = FilterConfiguration.from_file(args.config)
    else:
        config = FilterConfiguration()

    synthesis = {}
    if args.max_iterations is not None:
        synthesis["max_iterations"] = args.max_iterations
    if args.search_radius is not None:
        synthesis["search_radius"] = args.search_radius
        config.oracle = dataclasses.replace(config.oracle, search_radius=args.search_radius)
    if synthesis:
        config.synthesis = dataclasses.replace(config.synthesis, **synthesis)
    if args.oracle is not None:
        config.oracle_backend = args.oracle
    if args.log_level is not None:
        config.log_level = args.log_level
    if args.log_dir is not None:
        config.log_dir = pathlib.Path(args.log_dir)
    return config


def _setup_logging(config: FilterConfiguration) -> None:
    configure_loggers(config.effective_log_dir, console_level=config.log_level)
    if getattr(logging, config.log_level.upper(), logging.INFO) < logging.INFO:
        for name in LoggerConfigurator.available_loggers("rulefilter"):
            LoggerConfigurator.set_level(name, config.log_level)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.rule_file is None:
        parser.print_usage(sys.stdout)
        return 0

    try:
        config = _load_configuration(args)
    except (OSError, json.JSONDecodeError, TypeError, ValueError) as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

    _setup_logging(config)
    logger.info("Running with %r", config)

    try:
        terms = parse_file(args.rule_file)
    except (OSError, UnicodeDecodeError) as exc:
        print(f"Cannot read {args.rule_file}: {exc}", file=sys.stderr)
        return 2
    except MalformedExpressionError as exc:
        print(f"{args.rule_file}: {exc}", file=sys.stderr)
        return 1

    try:
        oracle = create_oracle(config.oracle_backend, config.oracle)
    except OracleUnavailableError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    session = ClassificationSession(oracle, config.synthesis)
    try:
        report = session.classify_terms(terms)
    except MalformedRuleError as exc:
        print(f"{args.rule_file}: {exc}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        for line in report.lines():
            print(line)

    if args.accepted_out is not None:
        out = pathlib.Path(args.accepted_out)
        out.write_text(
            "".join(rule.to_term() + "\n" for rule in report.accepted()),
            encoding="utf-8",
        )
        logger.info("Wrote %d accepted rules to %s", len(report.accepted()), out)
    return 0


def run() -> None:
    raise SystemExit(main(sys.argv[1:]))


if __name__ == "__main__":
    run()

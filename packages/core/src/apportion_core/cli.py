"""Command line entry point.

Usage:
    apportion calculate settlement.json
    apportion calculate settlement.json --strict --indent 2
    apportion calculate draft.json --preview
    apportion compare settlement.json
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

import structlog
from pydantic import TypeAdapter

from .calculator import ApportionmentCalculator
from .config import load_config
from .exceptions import ApportionError
from .logging_config import configure_logging
from .preview import StrategyComparison, compare_strategies, preview_settlement
from .validation import load_settlement_file, read_settlement_payload

logger = structlog.get_logger()

EXIT_OK = 0
EXIT_INVALID = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="apportion",
        description="Apportion a personal-injury settlement between fees, creditors and the client.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    calculate = subparsers.add_parser(
        "calculate", help="Print the settlement breakdown as JSON"
    )
    calculate.add_argument("file", type=Path, help="Settlement JSON document")
    calculate.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="Reject negative amounts and percentages outside 0-100",
    )
    calculate.add_argument(
        "--preview",
        action="store_true",
        help="Fill missing top-level fields with blank-form defaults",
    )
    calculate.add_argument(
        "--indent", type=int, default=2, help="JSON indentation (default: 2)"
    )

    compare = subparsers.add_parser(
        "compare", help="Show percentage and pro rata reductions for every item"
    )
    compare.add_argument("file", type=Path, help="Settlement JSON document")
    compare.add_argument(
        "--indent", type=int, default=2, help="JSON indentation (default: 2)"
    )

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Run the command line interface and return the exit code."""
    args = _build_parser().parse_args(argv)

    try:
        config = load_config()
        configure_logging(config)
        calculator = ApportionmentCalculator.from_config(config)

        if args.command == "calculate":
            if args.preview:
                breakdown = preview_settlement(
                    read_settlement_payload(args.file), calculator=calculator, config=config
                )
            else:
                settlement = load_settlement_file(
                    args.file, strict=args.strict, config=config
                )
                breakdown = calculator.calculate(settlement)
            output = breakdown.model_dump_json(by_alias=True, indent=args.indent)
        else:
            settlement = load_settlement_file(args.file, config=config)
            comparisons = compare_strategies(settlement, calculator)
            output = TypeAdapter(list[StrategyComparison]).dump_json(
                comparisons, by_alias=True, indent=args.indent
            ).decode("utf-8")
    except OSError as e:
        logger.error("settlement_file_unreadable", path=str(args.file), error=str(e))
        print(json.dumps({"error": f"Cannot read {args.file}: {e.strerror}"}), file=sys.stderr)
        return EXIT_INVALID
    except ApportionError as e:
        logger.error("settlement_rejected", error=e.message, details=e.details)
        print(
            json.dumps({"error": e.message, "details": e.details}, default=str),
            file=sys.stderr,
        )
        return EXIT_INVALID

    print(output)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())

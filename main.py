"""
main.py - CLI orchestration for the footprint and eco-rewards engine.

This module is orchestration-only:
1. load rules
2. ingest transactions
3. aggregate (or batch-enrich)
4. explain
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from datetime import datetime, timezone
from typing import Optional, Sequence

from aggregate import calculate_batch, filter_by_category, summarize
from explain import format_breakdown, format_report, format_report_json
from ingest import load_transactions
from logging_config import get_logger, setup_logging
from models import Transaction
from normalize import parse_date
from points import score_transaction
from rules import RuleSet, load_rules

logger = get_logger("ecotrack")


def _configure_output_symbols() -> str:
    """Configure stdout encoding and return a safe failure symbol."""
    try:
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    except (OSError, ValueError):
        pass

    try:
        "✗•".encode(sys.stdout.encoding or "utf-8")
        return "✗"
    except (LookupError, UnicodeEncodeError):
        return "X"


FAIL_CHAR = _configure_output_symbols()


def run_pipeline(
    transactions_path: str,
    now: Optional[datetime] = None,
    rules: Optional[RuleSet] = None,
    category: Optional[str] = None,
    as_json: bool = False,
    breakdown: bool = False,
) -> str:
    """Load, score and summarize one transactions file; return the rendered output."""
    pipeline_start = time.time()
    reference = now or datetime.now(timezone.utc)

    # Stage 1: ingest.
    stage_start = time.time()
    logger.info("pipeline_stage | stage=1/3 | name=ingest | status=start | path=%s", transactions_path)
    transactions: list[Transaction] = load_transactions(transactions_path, rules)
    if category:
        transactions = filter_by_category(transactions, category)
    ingest_time = time.time() - stage_start
    logger.info(
        "pipeline_stage | stage=1/3 | name=ingest | status=complete | transactions=%s | category=%s | duration_s=%.2f",
        len(transactions),
        category or "all",
        ingest_time,
    )

    # Stage 2: aggregate.
    stage_start = time.time()
    logger.info("pipeline_stage | stage=2/3 | name=aggregate | status=start | now=%s", reference.isoformat())
    summary = summarize(transactions, reference, rules)
    aggregate_time = time.time() - stage_start
    logger.info(
        "pipeline_stage | stage=2/3 | name=aggregate | status=complete | duration_s=%.2f",
        aggregate_time,
    )

    # Stage 3: explain.
    if as_json:
        output = json.dumps(format_report_json(summary), indent=2)
    else:
        output = format_report(summary)
        if breakdown:
            details = [format_breakdown(t.id, score_transaction(t, rules=rules)) for t in transactions]
            output += "\n  Points Breakdown:\n" + "\n".join(details) + "\n"

    logger.info(
        "pipeline_complete | total_duration_s=%.2f | ingest_s=%.2f | aggregate_s=%.2f",
        time.time() - pipeline_start,
        ingest_time,
        aggregate_time,
    )
    return output


def run_batch(transactions_path: str, rules: Optional[RuleSet] = None) -> str:
    """Enrich every transaction with footprint and points; return the JSON result."""
    transactions = load_transactions(transactions_path, rules)
    result = calculate_batch(transactions, rules)
    return json.dumps({"success": True, "data": result.model_dump(mode="json")}, indent=2)


def _parse_now(value: str) -> datetime:
    parsed = parse_date(value)
    if parsed is None:
        raise argparse.ArgumentTypeError(f"invalid --now value: {value!r} (expected ISO 8601)")
    return parsed


def main(argv: Optional[Sequence[str]] = None) -> None:
    """CLI entry point for the eco-rewards engine."""
    parser = argparse.ArgumentParser(
        prog="ecotrack",
        description=(
            "Carbon Footprint & Eco-Rewards Engine\n"
            "Estimates the footprint of purchase history and converts "
            "lower-carbon choices into eco-points and garden progress."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s --transactions test_data/transactions.json\n"
            "  %(prog)s -t test_data/transactions.csv --now 2025-10-05T12:00:00Z --json\n"
            "  %(prog)s -t test_data/transactions.json --batch\n"
            "  %(prog)s -t test_data/transactions.json --category electronics --breakdown\n"
        ),
    )
    parser.add_argument(
        "--transactions",
        "-t",
        type=str,
        required=True,
        help="Path to a transactions file (.json array / {'transactions': [...]} or line-item .csv)",
    )
    parser.add_argument(
        "--now",
        type=_parse_now,
        default=None,
        help="Reference instant for the weekly/monthly windows (ISO 8601, default: current UTC time)",
    )
    parser.add_argument(
        "--rules",
        type=str,
        default=None,
        help="Path to a JSON rule-override file (default: $ECOTRACK_RULES_FILE or built-in rules)",
    )
    parser.add_argument(
        "--category",
        "-c",
        type=str,
        default=None,
        help="Only include transactions with a product in this category",
    )
    parser.add_argument(
        "--batch",
        action="store_true",
        help="Output every transaction enriched with carbon_footprint and eco_points (JSON)",
    )
    parser.add_argument(
        "--breakdown",
        action="store_true",
        help="Append a per-transaction points breakdown to the text report",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose (DEBUG-level) logging",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output the summary as JSON instead of formatted text",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Output logs as JSON lines (for production/log aggregation)",
    )

    args = parser.parse_args(argv)
    setup_logging(
        level=logging.DEBUG if args.verbose else None,
        json_format=args.log_json,
    )

    try:
        rules = load_rules(args.rules)
        if args.batch:
            logger.info("cli_mode | mode=batch | transactions=%s", args.transactions)
            print(run_batch(args.transactions, rules))
            return

        logger.info("cli_mode | mode=summary | transactions=%s", args.transactions)
        print(
            run_pipeline(
                args.transactions,
                now=args.now,
                rules=rules,
                category=args.category,
                as_json=args.json,
                breakdown=args.breakdown,
            )
        )
    except FileNotFoundError as exc:
        logger.error("cli_error | type=FileNotFoundError | error=%s", exc)
        print(f"\n{FAIL_CHAR} Error: {exc}")
        raise SystemExit(1) from exc
    except ValueError as exc:
        logger.error("cli_error | type=%s | error=%s", type(exc).__name__, exc)
        print(f"\n{FAIL_CHAR} Error: {exc}")
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        print("\nInterrupted.")
        raise SystemExit(130)
    except Exception as exc:
        logger.error(
            "cli_error | type=%s | error=%s",
            type(exc).__name__,
            exc,
            exc_info=True,
        )
        print(f"\nUnexpected error: {exc}")
        print("Run with --verbose for full traceback.")
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()

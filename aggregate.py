"""
aggregate.py - Temporal aggregation and batch enrichment.

Rolls per-transaction footprints and points up into dashboard totals:

- all-time totals and the per-category footprint breakdown over the FULL set
- trailing 7-day and 30-day windows relative to an explicit `now`

Window rule (inclusive lower bound):

    in_week  = date >= now - 7 days
    in_month = date >= now - 30 days

Future-dated transactions satisfy both bounds and are counted. A
transaction whose date is missing or unparseable is left out of both
windows (with a warning) but still contributes to the all-time totals
and to by_category.

Nothing here reads the clock: callers pass `now`, so the same input always
produces the same output.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Optional

from footprint import product_footprint, transaction_footprint
from ingest import coerce_transactions
from logging_config import get_logger
from models import (
    BatchResult,
    BatchSummary,
    CarbonFootprintSummary,
    Category,
    DashboardSummary,
    EcoPointsSummary,
    EnrichedTransaction,
    Transaction,
)
from normalize import parse_date
from points import transaction_points
from progression import plants_unlocked, progression
from rules import RuleSet

logger = get_logger(__name__)

WEEK_WINDOW = timedelta(days=7)
MONTH_WINDOW = timedelta(days=30)


def _reference_instant(now: Any) -> datetime:
    reference = parse_date(now)
    if reference is None:
        raise ValueError(f"now must be a datetime or ISO 8601 string, got {now!r}")
    return reference


def _window_flags(
    transaction: Transaction,
    week_start: datetime,
    month_start: datetime,
) -> Optional[tuple[bool, bool]]:
    """Return (in_week, in_month), or None when the date cannot be parsed."""
    occurred = parse_date(transaction.date)
    if occurred is None:
        logger.warning(
            "aggregate_date_warning | id=%s | date=%r | excluded_from=weekly,monthly",
            transaction.id,
            transaction.date,
        )
        return None
    return occurred >= week_start, occurred >= month_start


def _accumulate(
    transactions: list[Transaction],
    now: datetime,
    rules: Optional[RuleSet],
) -> tuple[CarbonFootprintSummary, EcoPointsSummary, list[str]]:
    week_start = now - WEEK_WINDOW
    month_start = now - MONTH_WINDOW

    total = weekly = monthly = 0.0
    by_category: dict[Category, float] = {}
    points_total = points_week = points_month = 0
    skipped: list[str] = []

    for transaction in transactions:
        footprint = 0.0
        for product in transaction.products:
            value = product_footprint(product, rules)
            footprint += value
            by_category[product.category] = by_category.get(product.category, 0.0) + value
        points = transaction_points(transaction, footprint, rules)

        total += footprint
        points_total += points

        flags = _window_flags(transaction, week_start, month_start)
        if flags is None:
            skipped.append(transaction.id)
            continue
        in_week, in_month = flags
        if in_week:
            weekly += footprint
            points_week += points
        if in_month:
            monthly += footprint
            points_month += points

    carbon = CarbonFootprintSummary(
        total=total,
        weekly=weekly,
        monthly=monthly,
        by_category=by_category,
    )
    eco_points = EcoPointsSummary(
        total=points_total,
        earned_this_week=points_week,
        earned_this_month=points_month,
        plants_unlocked=plants_unlocked(points_total),
    )
    return carbon, eco_points, skipped


def aggregate_footprint(
    transactions: Any,
    now: Any,
    rules: Optional[RuleSet] = None,
) -> CarbonFootprintSummary:
    """Footprint totals (all-time, 7-day, 30-day, per category) as of `now`."""
    carbon, _points, _skipped = _accumulate(
        coerce_transactions(transactions), _reference_instant(now), rules
    )
    return carbon


def aggregate_points(
    transactions: Any,
    now: Any,
    rules: Optional[RuleSet] = None,
) -> EcoPointsSummary:
    """Eco-points totals (all-time, 7-day, 30-day, plants unlocked) as of `now`."""
    _carbon, points, _skipped = _accumulate(
        coerce_transactions(transactions), _reference_instant(now), rules
    )
    return points


def summarize(
    transactions: Any,
    now: Any,
    rules: Optional[RuleSet] = None,
) -> DashboardSummary:
    """Footprint, points and garden progression in one pass."""
    reference = _reference_instant(now)
    items = coerce_transactions(transactions)
    carbon, eco_points, skipped = _accumulate(items, reference, rules)

    summary = DashboardSummary(
        generated_at=reference.isoformat(),
        transaction_count=len(items),
        carbon=carbon,
        eco_points=eco_points,
        garden=progression(eco_points.total),
        skipped_dates=skipped,
    )
    logger.info(
        "summary_complete | transactions=%s | total_carbon=%.2f | weekly=%.2f | monthly=%.2f | "
        "points=%s | plants=%s | skipped_dates=%s",
        summary.transaction_count,
        carbon.total,
        carbon.weekly,
        carbon.monthly,
        eco_points.total,
        eco_points.plants_unlocked,
        len(skipped),
    )
    return summary


def enrich_transaction(transaction: Transaction, rules: Optional[RuleSet] = None) -> EnrichedTransaction:
    """Return a copy of the transaction with carbon_footprint and eco_points set."""
    footprint = transaction_footprint(transaction, rules)
    points = transaction_points(transaction, footprint, rules)
    data = transaction.model_dump()
    data.update(carbon_footprint=footprint, eco_points=points)
    return EnrichedTransaction.model_validate(data)


def calculate_batch(transactions: Any, rules: Optional[RuleSet] = None) -> BatchResult:
    """Enrich every transaction and total the batch.

    Uses the same scoring formula as the dashboard aggregation, so a
    transaction earns identical points on both paths.
    """
    items = coerce_transactions(transactions)
    enriched = [enrich_transaction(transaction, rules) for transaction in items]
    result = BatchResult(
        transactions=enriched,
        summary=BatchSummary(
            total_carbon=sum(t.carbon_footprint for t in enriched),
            total_eco_points=sum(t.eco_points for t in enriched),
        ),
    )
    logger.info(
        "batch_complete | transactions=%s | total_carbon=%.2f | total_eco_points=%s",
        len(enriched),
        result.summary.total_carbon,
        result.summary.total_eco_points,
    )
    return result


def filter_by_category(transactions: Any, category: Any) -> list[Transaction]:
    """Transactions with at least one product in `category` ('all' or None keeps everything)."""
    items = coerce_transactions(transactions)
    if category is None or str(category).strip().lower() in ("", "all"):
        return items
    wanted = Category.parse(category)
    if wanted is None:
        raise ValueError(f"Unknown category '{category}'")
    return [t for t in items if any(p.category == wanted for p in t.products)]

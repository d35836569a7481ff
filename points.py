"""
points.py - Eco-points scoring for a single transaction.

One canonical formula, two additive parts:

1. Sustainability bonus - per sustainable product, max(5, round(price x 0.1)).
2. Carbon-savings bonus - once per transaction:
       baseline = total_amount x 0.8
       saved    = max(0, baseline - actual footprint)
       bonus    = floor(saved / 5) x 10

Batch enrichment and dashboard aggregation both score through
`score_transaction`.
"""

from __future__ import annotations

import math
from typing import Optional

from footprint import transaction_footprint
from logging_config import get_logger
from models import PointsBreakdown, Transaction
from rules import RuleSet, default_rules

logger = get_logger(__name__)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def sustainability_bonus(transaction: Transaction, rules: Optional[RuleSet] = None) -> tuple[int, int, str]:
    """Return (bonus, sustainable_count, evidence) for a transaction's products."""
    active = rules or default_rules()
    bonus = 0
    count = 0
    for product in transaction.products:
        if not product.is_sustainable:
            continue
        count += 1
        bonus += max(
            active.sustainable_min_points,
            round_half_up(product.price * active.sustainable_price_factor),
        )

    if count == 0:
        evidence = "No sustainable products - sustainability bonus 0"
    else:
        evidence = f"{count} sustainable product(s) - sustainability bonus {bonus}"
    return bonus, count, evidence


def carbon_bonus(
    transaction: Transaction,
    footprint: float,
    rules: Optional[RuleSet] = None,
) -> tuple[int, float, float, str]:
    """Return (bonus, baseline, carbon_saved, evidence) for a transaction."""
    active = rules or default_rules()
    baseline = transaction.total_amount * active.baseline_intensity
    saved = max(0.0, baseline - footprint)
    steps = math.floor(saved / active.carbon_points_step_kg)
    bonus = int(steps) * active.carbon_points_per_step

    if saved <= 0:
        evidence = (
            f"Footprint {footprint:.2f} kg meets or exceeds baseline {baseline:.2f} kg - "
            "no carbon-savings bonus"
        )
    else:
        evidence = (
            f"Saved {saved:.2f} kg vs baseline {baseline:.2f} kg - "
            f"{int(steps)} full {active.carbon_points_step_kg:g} kg step(s), bonus {bonus}"
        )
    return bonus, baseline, saved, evidence


def score_transaction(
    transaction: Transaction,
    precomputed_footprint: Optional[float] = None,
    rules: Optional[RuleSet] = None,
) -> PointsBreakdown:
    """Itemized eco-points for one transaction."""
    footprint = (
        precomputed_footprint
        if precomputed_footprint is not None
        else transaction_footprint(transaction, rules)
    )
    footprint = max(0.0, float(footprint))

    s_bonus, s_count, s_evidence = sustainability_bonus(transaction, rules)
    c_bonus, baseline, saved, c_evidence = carbon_bonus(transaction, footprint, rules)

    breakdown = PointsBreakdown(
        sustainability_bonus=s_bonus,
        carbon_bonus=c_bonus,
        baseline_footprint=baseline,
        actual_footprint=footprint,
        carbon_saved=saved,
        sustainable_products=s_count,
        evidence=[s_evidence, c_evidence],
    )
    logger.debug(
        "points_scoring | id=%s | sustainable=%s | s_bonus=%s | footprint=%.2f | baseline=%.2f | c_bonus=%s | total=%s",
        transaction.id,
        s_count,
        s_bonus,
        footprint,
        baseline,
        c_bonus,
        breakdown.total,
    )
    return breakdown


def transaction_points(
    transaction: Transaction,
    precomputed_footprint: Optional[float] = None,
    rules: Optional[RuleSet] = None,
) -> int:
    """Integer eco-points for one transaction (never negative)."""
    return score_transaction(transaction, precomputed_footprint, rules).total

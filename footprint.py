"""
footprint.py - Carbon footprint from spend x category intensity.

    get_carbon_rate(category)          -> kg CO2e per currency unit
    product_footprint(product)         -> price x quantity x rate
    transaction_footprint(transaction) -> sum over products (0.0 when empty)

No currency conversion: every monetary field is assumed to share one
implicit unit.
"""

from __future__ import annotations

from typing import Any, Optional

from logging_config import get_logger
from models import Category, Product, Transaction
from rules import RuleSet, default_rules

logger = get_logger(__name__)


def get_carbon_rate(category: Any, rules: Optional[RuleSet] = None) -> float:
    """Return the carbon-intensity multiplier for a category.

    Falls back to the rule set's default rate (not the 'other' rate) when the
    category is missing, unrecognized, or absent from the rate table.
    """
    active = rules or default_rules()
    parsed = Category.parse(category)
    if parsed is not None and parsed in active.carbon_rates:
        return active.carbon_rates[parsed]

    logger.debug(
        "carbon_rate | category=%r | fallback=default_rate | rate=%.2f",
        category,
        active.default_carbon_rate,
    )
    return active.default_carbon_rate


def product_footprint(product: Product, rules: Optional[RuleSet] = None) -> float:
    """Footprint of one line item in kg CO2e.

    A product whose category was missing or unrecognized is priced at the
    default rate, not the `other` rate it is reported under.
    """
    category = None if product.category_defaulted else product.category
    rate = get_carbon_rate(category, rules)
    return product.price * product.quantity * rate


def transaction_footprint(transaction: Transaction, rules: Optional[RuleSet] = None) -> float:
    """Footprint of a whole transaction in kg CO2e."""
    total = 0.0
    for product in transaction.products:
        total += product_footprint(product, rules)

    logger.debug(
        "transaction_footprint | id=%s | products=%s | footprint=%.3f",
        transaction.id,
        len(transaction.products),
        total,
    )
    return total

"""
test_points.py - Eco-Points Scoring Tests

Sustainability bonus: max(5, round(price x 0.1)) per sustainable product.
Carbon bonus: floor(max(0, total x 0.8 - footprint) / 5) x 10 per transaction.

Usage: pytest test_points.py
"""

from __future__ import annotations

import os
import sys

# Ensure we can import from project root
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import pytest

from models import Product, Transaction
from points import round_half_up, score_transaction, transaction_points
from rules import DEFAULT_RULES, merge_rules


def _transaction(total: float, *products: Product) -> Transaction:
    return Transaction(id="tx", date="2025-10-04", total_amount=total, products=list(products))


def test_round_half_up_rounds_halves_away_from_zero():
    assert round_half_up(2.5) == 3
    assert round_half_up(0.5) == 1
    assert round_half_up(2.49) == 2
    assert round_half_up(0.0) == 0


def test_high_carbon_purchase_earns_nothing():
    laptop = Product(name="Laptop", category="electronics", price=100)
    transaction = _transaction(100, laptop)

    breakdown = score_transaction(transaction)
    assert breakdown.actual_footprint == pytest.approx(150.0)
    assert breakdown.baseline_footprint == pytest.approx(80.0)
    assert breakdown.carbon_saved == 0.0
    assert breakdown.total == 0


def test_sustainable_low_carbon_purchase():
    trail_mix = Product(name="Organic Trail Mix", category="food", price=50, is_sustainable=True)
    breakdown = score_transaction(_transaction(50, trail_mix))

    assert breakdown.actual_footprint == pytest.approx(20.0)
    assert breakdown.carbon_saved == pytest.approx(20.0)
    assert breakdown.carbon_bonus == 40
    assert breakdown.sustainability_bonus == 5
    assert breakdown.sustainable_products == 1
    assert breakdown.total == 45
    assert len(breakdown.evidence) == 2


def test_sustainability_bonus_scales_with_price():
    jacket = Product(name="Recycled Jacket", category="clothing", price=125, is_sustainable=True)
    # round(12.5) rounds half up to 13; footprint 100 equals baseline 125 x 0.8.
    assert transaction_points(_transaction(125, jacket)) == 13


def test_sustainability_bonus_minimum_applies_to_cheap_products():
    straw = Product(name="Bamboo Straw", category="other", price=2, quantity=3, is_sustainable=True)
    breakdown = score_transaction(_transaction(6, straw))
    assert breakdown.sustainability_bonus == 5


def test_sustainability_bonus_ignores_quantity():
    bottle = Product(name="Yeti Bottle", category="other", price=40, quantity=5, is_sustainable=True)
    breakdown = score_transaction(_transaction(200, bottle))
    assert breakdown.sustainability_bonus == 5


def test_carbon_bonus_has_no_partial_credit():
    groceries = Product(name="Bread", category="groceries", price=10)
    # baseline 8.0, footprint 4.0, saved 4.0 -> less than one full 5 kg step.
    assert transaction_points(_transaction(10, groceries)) == 0

    bigger = Product(name="Bread", category="groceries", price=25)
    # baseline 20.0, footprint 10.0, saved 10.0 -> two steps.
    assert transaction_points(_transaction(25, bigger)) == 20


def test_empty_transaction_uses_total_amount_baseline():
    # No products: footprint 0, saved = 50 x 0.8 = 40 -> 8 steps.
    assert transaction_points(_transaction(50)) == 80


def test_precomputed_footprint_is_used():
    milk = Product(name="Milk", category="groceries", price=50)
    breakdown = score_transaction(_transaction(50, milk), precomputed_footprint=40.0)
    assert breakdown.actual_footprint == 40.0
    assert breakdown.carbon_bonus == 0


def test_points_are_never_negative():
    tv = Product(name="TV", category="electronics", price=1000)
    assert transaction_points(_transaction(0, tv)) == 0


def test_scoring_respects_rule_overrides():
    rules = merge_rules(DEFAULT_RULES, {"sustainable_min_points": 10})
    straw = Product(name="Bamboo Straw", category="other", price=2, is_sustainable=True)
    # saved 1.6 - 1.2 = 0.4 kg, below one step; the bonus is the raised minimum.
    assert transaction_points(_transaction(2, straw), rules=rules) == 10

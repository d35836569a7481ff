"""
test_classify.py - Product Classification Tests

Keyword classifier (first match wins, electronics -> clothing -> food ->
groceries -> other) and the sustainability detector.

Usage: pytest test_classify.py
"""

from __future__ import annotations

import os
import sys

# Ensure we can import from project root
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import pytest

from classify import classify, is_sustainable, match_category, sustainability_signals
from models import Category
from rules import DEFAULT_RULES, merge_rules


@pytest.mark.parametrize(
    "name, hint, expected",
    [
        ("Wireless Headphones", None, Category.ELECTRONICS),
        ("Apple iPhone 15", "", Category.ELECTRONICS),
        ("Nike Running Socks", None, Category.CLOTHING),
        ("Cotton T-Shirt", "Apparel", Category.CLOTHING),
        ("Cold Brew Coffee", None, Category.FOOD),
        ("Trail Mix", "Snacks", Category.FOOD),
        ("Tide Detergent Pods", None, Category.GROCERIES),
        ("Whole Milk", "Dairy", Category.GROCERIES),
        ("Garden Hose", None, Category.OTHER),
        ("Hydro Flask stainless steel bottle", None, Category.OTHER),
    ],
)
def test_classify_by_keyword(name, hint, expected):
    assert classify(name, hint) == expected


def test_classify_hint_alone_is_enough():
    assert classify("", "Electronics") == Category.ELECTRONICS
    assert classify(None, "groceries") == Category.GROCERIES


def test_classify_empty_inputs_default_to_other():
    assert classify(None) == Category.OTHER
    assert classify("", "") == Category.OTHER
    assert classify("   ") == Category.OTHER


def test_classify_priority_electronics_beats_food():
    # "phone" (electronics) and "food" both present; electronics is checked first.
    assert classify("Food Delivery Phone Stand") == Category.ELECTRONICS


def test_classify_is_case_insensitive():
    assert classify("LAPTOP SLEEVE") == classify("laptop sleeve") == Category.ELECTRONICS


def test_match_category_reports_evidence():
    category, evidence = match_category("Trail Mix", "Snacks")
    assert category == Category.FOOD
    assert "'snack'" in evidence
    assert "category hint" in evidence

    category, evidence = match_category("Garden Hose")
    assert category == Category.OTHER
    assert "other" in evidence


def test_classify_uses_rule_overrides():
    rules = merge_rules(DEFAULT_RULES, {"category_keywords": {"groceries": ["bananas"]}})
    assert classify("Organic Bananas") == Category.OTHER
    assert classify("Organic Bananas", rules=rules) == Category.GROCERIES


@pytest.mark.parametrize(
    "name, description",
    [
        ("Organic Trail Mix", None),
        ("Bamboo Toothbrush", None),
        ("Hydro Flask stainless steel bottle", None),
        ("Running Shoes", "Made from recycled ocean plastic"),
        ("ECO Dish Soap", ""),
    ],
)
def test_is_sustainable_positive(name, description):
    assert is_sustainable(name, description) is True


@pytest.mark.parametrize("name, description", [("Wireless Headphones", None), (None, None), ("", "")])
def test_is_sustainable_negative(name, description):
    assert is_sustainable(name, description) is False


def test_sustainability_has_no_negation_handling():
    assert is_sustainable("Non-recycled paper") is True


def test_sustainability_signals_lists_every_hit():
    signals = sustainability_signals("Organic bamboo towel", "fair trade cotton")
    assert signals == ["organic", "bamboo", "fair trade"]

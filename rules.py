"""
rules.py - Editable rule table for classification, rates and scoring.

This is the single source of truth for every heuristic the engine applies:
    - carbon-intensity rates per category (kg CO2e per currency unit)
    - ordered keyword lists for product classification
    - sustainability keywords
    - eco-points scoring constants

Operators extend coverage by editing the tables below or by pointing
ECOTRACK_RULES_FILE (or `load_rules(path)`) at a JSON override file:

    {
      "category_keywords": {"electronics": ["kindle"]},
      "sustainability_keywords": ["refurbished"],
      "carbon_rates": {"clothing": 0.9}
    }

Keyword lists are EXTENDED by overrides; rates and scalar constants are
REPLACED. Unknown keys are ignored.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from logging_config import get_logger
from models import Category
from normalize import normalize_text

logger = get_logger(__name__)

try:
    load_dotenv()
except UnicodeDecodeError:
    # Fallback for legacy Windows-encoded .env files.
    load_dotenv(encoding="cp1252")

RULES_FILE_ENV = "ECOTRACK_RULES_FILE"

# -- Carbon-intensity rates --
# kg CO2e per currency unit of spend. Coarse multipliers, not an
# emissions-factor database.

CARBON_RATES: dict[Category, float] = {
    Category.ELECTRONICS: 1.5,
    Category.CLOTHING: 0.8,
    Category.FOOD: 0.4,
    Category.GROCERIES: 0.4,
    Category.OTHER: 0.6,
}

DEFAULT_CARBON_RATE = 0.7
# Used when a category is missing or unrecognized. Distinct from
# CARBON_RATES[Category.OTHER]: "other" is a classification result, this is
# a lookup miss.

# -- Classification --
# Evaluated in this order; the first category with any matching keyword wins.

CLASSIFICATION_ORDER: tuple[Category, ...] = (
    Category.ELECTRONICS,
    Category.CLOTHING,
    Category.FOOD,
    Category.GROCERIES,
)

CATEGORY_KEYWORDS: dict[Category, tuple[str, ...]] = {
    Category.ELECTRONICS: (
        "phone", "iphone", "headphone", "laptop", "tablet", "computer", "tv",
        "wemo", "smart plug", "webcam", "sandisk", "memory card", "ring",
        "doorbell", "echo", "alexa", "sony", "speaker", "oculus", "vr",
        "gaming", "gpu", "rtx", "logitech", "mouse", "spigen", "case",
        "asus", "zenbook", "thermometer", "digital", "dymo", "label maker",
        "electronics", "tech",
    ),
    Category.CLOTHING: (
        "nike", "socks", "ray-ban", "sunglasses", "shirt", "pants", "dress",
        "shoes", "jacket", "jeans", "clothing", "apparel", "fashion",
    ),
    Category.FOOD: (
        "almonds", "snack", "essentia water", "meal", "restaurant", "pizza",
        "burger", "coffee", "food", "dining",
    ),
    Category.GROCERIES: (
        "tide", "detergent", "shampoo", "mascara", "moisturizer", "vitamin",
        "sunscreen", "lip balm", "toothbrush", "dental", "eye drops",
        "bed sheet", "grocery", "groceries", "supermarket", "milk", "bread",
        "fruit", "vegetable", "market",
    ),
    Category.OTHER: (),
}

# -- Sustainability signals --
# Plain substring OR; no negation handling ("non-recycled" matches "recycled").

SUSTAINABILITY_KEYWORDS: tuple[str, ...] = (
    "organic", "eco", "sustainable", "green", "renewable", "recycled",
    "bamboo", "hemp", "local", "fair trade", "carbon neutral",
    "biodegradable", "compostable", "reusable", "solar", "plant-based",
    "hydro flask", "yeti", "stainless steel", "vacuum insulated",
    "yoga mat", "tpe",
    "vitamin", "natural",
    "blue diamond almonds",
)

# -- Eco-points scoring --

SUSTAINABLE_MIN_POINTS = 5
# Floor for a sustainable product's bonus: max(5, round(price x 0.1)).

SUSTAINABLE_PRICE_FACTOR = 0.1

BASELINE_INTENSITY = 0.8
# Flat "average" intensity for the savings baseline (total_amount x 0.8),
# independent of the transaction's actual category mix.

CARBON_POINTS_STEP_KG = 5.0
CARBON_POINTS_PER_STEP = 10
# 10 points per FULL 5 kg saved; no partial credit.


def _check_exhaustive() -> None:
    members = set(Category)
    missing_rates = members - set(CARBON_RATES)
    missing_keywords = members - set(CATEGORY_KEYWORDS)
    if missing_rates or missing_keywords:
        raise RuntimeError(
            "Rule tables must cover every category: "
            f"missing rates={sorted(c.value for c in missing_rates)}, "
            f"missing keywords={sorted(c.value for c in missing_keywords)}"
        )
    if CATEGORY_KEYWORDS[Category.OTHER]:
        raise RuntimeError("'other' is the no-match fallback and must not carry keywords")


_check_exhaustive()


class RuleSet(BaseModel):
    """Immutable bundle of every tunable the engine reads."""

    model_config = ConfigDict(frozen=True)

    carbon_rates: dict[Category, float] = Field(default_factory=lambda: dict(CARBON_RATES))
    default_carbon_rate: float = Field(default=DEFAULT_CARBON_RATE, ge=0)
    category_keywords: dict[Category, tuple[str, ...]] = Field(
        default_factory=lambda: dict(CATEGORY_KEYWORDS)
    )
    sustainability_keywords: tuple[str, ...] = SUSTAINABILITY_KEYWORDS
    sustainable_min_points: int = Field(default=SUSTAINABLE_MIN_POINTS, ge=0)
    sustainable_price_factor: float = Field(default=SUSTAINABLE_PRICE_FACTOR, ge=0)
    baseline_intensity: float = Field(default=BASELINE_INTENSITY, ge=0)
    carbon_points_step_kg: float = Field(default=CARBON_POINTS_STEP_KG, gt=0)
    carbon_points_per_step: int = Field(default=CARBON_POINTS_PER_STEP, ge=0)


DEFAULT_RULES = RuleSet()

_SCALAR_KEYS = (
    "default_carbon_rate",
    "sustainable_min_points",
    "sustainable_price_factor",
    "baseline_intensity",
    "carbon_points_step_kg",
    "carbon_points_per_step",
)


def default_rules() -> RuleSet:
    """Return the built-in rule set."""
    return DEFAULT_RULES


def _clean_keywords(values: Any) -> list[str]:
    if isinstance(values, str):
        values = [values]
    if not isinstance(values, (list, tuple)):
        raise ValueError(f"Keyword overrides must be a list of strings, got {type(values).__name__}")
    return [text for text in (normalize_text(value) for value in values) if text]


def _extend(base: tuple[str, ...], extra: list[str]) -> tuple[str, ...]:
    merged = list(base)
    for keyword in extra:
        if keyword not in merged:
            merged.append(keyword)
    return tuple(merged)


def _section(overrides: dict[str, Any], key: str) -> dict[str, Any]:
    value = overrides.get(key) or {}
    if not isinstance(value, dict):
        raise ValueError(f"Rule override '{key}' must be a JSON object, got {type(value).__name__}")
    return value


def merge_rules(base: RuleSet, overrides: dict[str, Any]) -> RuleSet:
    """Apply a JSON-style override mapping on top of a rule set."""
    if not isinstance(overrides, dict):
        raise ValueError(f"Rule overrides must be a JSON object, got {type(overrides).__name__}")

    known = {"carbon_rates", "category_keywords", "sustainability_keywords", *_SCALAR_KEYS}
    ignored = sorted(key for key in overrides if key not in known)
    if ignored:
        logger.debug("rules_merge | ignored_keys=%s", ignored)

    rates = dict(base.carbon_rates)
    for raw_category, raw_rate in _section(overrides, "carbon_rates").items():
        category = Category.parse(raw_category)
        if category is None:
            logger.warning("rules_merge | unknown_rate_category=%r | action=skip", raw_category)
            continue
        try:
            rate = float(raw_rate)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Carbon rate for {category.value} must be a number, got {raw_rate!r}") from exc
        if rate < 0:
            raise ValueError(f"Carbon rate for {category.value} must be non-negative, got {rate}")
        rates[category] = rate

    keywords = dict(base.category_keywords)
    for raw_category, raw_keywords in _section(overrides, "category_keywords").items():
        category = Category.parse(raw_category)
        if category is None or category is Category.OTHER:
            logger.warning("rules_merge | unsupported_keyword_category=%r | action=skip", raw_category)
            continue
        keywords[category] = _extend(keywords.get(category, ()), _clean_keywords(raw_keywords))

    sustainability = base.sustainability_keywords
    if "sustainability_keywords" in overrides:
        sustainability = _extend(sustainability, _clean_keywords(overrides["sustainability_keywords"]))

    updates: dict[str, Any] = {
        "carbon_rates": rates,
        "category_keywords": keywords,
        "sustainability_keywords": sustainability,
    }
    for key in _SCALAR_KEYS:
        if key in overrides:
            updates[key] = overrides[key]

    merged = RuleSet.model_validate({**base.model_dump(), **updates})
    logger.info(
        "rules_merged | rate_overrides=%s | keyword_categories=%s | sustainability_keywords=%s",
        len(overrides.get("carbon_rates") or {}),
        len(overrides.get("category_keywords") or {}),
        len(merged.sustainability_keywords),
    )
    return merged


def load_rules(path: Optional[str | Path] = None) -> RuleSet:
    """Load the active rule set.

    Resolution order: explicit path -> ECOTRACK_RULES_FILE -> built-in rules.
    """
    target = str(path).strip() if path is not None else os.getenv(RULES_FILE_ENV, "").strip()
    if not target:
        return DEFAULT_RULES

    rules_path = Path(target)
    if not rules_path.exists():
        raise FileNotFoundError(f"Rules file not found: {rules_path}")

    try:
        raw = json.loads(rules_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValueError(f"Failed to read rules file '{rules_path}': {exc}") from exc

    logger.info("rules_load | path=%s", rules_path)
    return merge_rules(DEFAULT_RULES, raw)

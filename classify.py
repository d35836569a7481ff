"""
classify.py - Deterministic product classification rules.

Two classifiers, both driven by the keyword tables in rules.py:

    classify(name, category_hint)      -> Category   (first match wins)
    is_sustainable(name, description)  -> bool       (substring OR)

No scoring and no weighting: the keyword tables ARE the model. Every call
site (ingestion, batch scoring) goes through these functions.
"""

from __future__ import annotations

from typing import Any, Optional

from logging_config import get_logger
from models import Category
from normalize import normalize_text
from rules import CLASSIFICATION_ORDER, RuleSet, default_rules

logger = get_logger(__name__)


def _first_keyword(keywords: tuple[str, ...], texts: tuple[str, ...]) -> Optional[str]:
    for keyword in keywords:
        if not keyword:
            continue
        for text in texts:
            if text and keyword in text:
                return keyword
    return None


def match_category(
    name: Any,
    category_hint: Any = None,
    rules: Optional[RuleSet] = None,
) -> tuple[Category, str]:
    """Classify a product and return the category with an evidence string."""
    active = rules or default_rules()
    name_text = normalize_text(name)
    hint_text = normalize_text(category_hint)

    if not name_text and not hint_text:
        evidence = "Name and category hint are empty - defaulting to other"
        logger.debug("classify | name=%r | hint=%r | category=other | reason=empty", name, category_hint)
        return Category.OTHER, evidence

    texts = (name_text, hint_text)
    for category in CLASSIFICATION_ORDER:
        keyword = _first_keyword(active.category_keywords.get(category, ()), texts)
        if keyword is not None:
            source = "name" if keyword in name_text else "category hint"
            evidence = f"Matched '{keyword}' in {source} -> {category.value}"
            logger.debug(
                "classify | name=%r | hint=%r | category=%s | keyword=%r",
                name,
                category_hint,
                category.value,
                keyword,
            )
            return category, evidence

    evidence = f"No category keyword in '{name_text}' / '{hint_text}' -> other"
    logger.debug("classify | name=%r | hint=%r | category=other | reason=no_match", name, category_hint)
    return Category.OTHER, evidence


def classify(name: Any, category_hint: Any = None, rules: Optional[RuleSet] = None) -> Category:
    """Map a product name and optional category hint to one canonical category."""
    category, _evidence = match_category(name, category_hint, rules)
    return category


def _sustainability_text(name: Any, description: Any) -> str:
    name_part = "" if name is None else str(name)
    description_part = "" if description is None else str(description)
    return f"{name_part} {description_part}".lower()


def sustainability_signals(
    name: Any,
    description: Any = None,
    rules: Optional[RuleSet] = None,
) -> list[str]:
    """Return every sustainability keyword found in the product text."""
    active = rules or default_rules()
    text = _sustainability_text(name, description)
    return [keyword for keyword in active.sustainability_keywords if keyword and keyword in text]


def is_sustainable(name: Any, description: Any = None, rules: Optional[RuleSet] = None) -> bool:
    """True when the name or description contains a sustainability keyword."""
    active = rules or default_rules()
    text = _sustainability_text(name, description)
    result = any(keyword and keyword in text for keyword in active.sustainability_keywords)
    logger.debug("sustainability | name=%r | sustainable=%s", name, result)
    return result

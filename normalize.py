"""
normalize.py - Data normalization module.

Four core normalizers:
    normalize_text(value)       -> lowercased, stripped text ('' when absent)
    normalize_amount(amount)    -> non-negative float
    normalize_quantity(qty)     -> positive int (default 1)
    parse_date(value)           -> timezone-aware datetime or None

Design principles:
    - Pure transformations, no clock reads, no external calls
    - Invalid input degrades to neutral defaults and logs a warning
    - Naive datetimes are interpreted as UTC
"""

from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from typing import Any, Optional

from dateutil import parser as dateparser

from logging_config import get_logger

logger = get_logger(__name__)

NULL_TOKENS = {"n/a", "na", "none", "null", "unknown", "nan"}

# Fills missing day/month components; never the current date.
_PARSE_DEFAULT = datetime(2000, 1, 1)


def normalize_text(value: Any) -> str:
    """Lowercase and strip free text for keyword matching."""
    if value is None:
        return ""
    if not isinstance(value, str):
        try:
            value = str(value)
        except Exception:
            return ""
    return value.strip().lower()


def normalize_amount(amount: Any) -> float:
    """Normalize a monetary value into a non-negative float."""
    if amount is None:
        return 0.0

    if isinstance(amount, bool):
        return 0.0

    if isinstance(amount, (int, float)):
        value = float(amount)
        if not math.isfinite(value):
            logger.warning("normalize_amount | non_finite=%r | fallback=0.0", amount)
            return 0.0
        if value < 0:
            logger.warning("normalize_amount | negative=%r | fallback=0.0", amount)
            return 0.0
        return value

    try:
        cleaned = str(amount).strip()
    except Exception:
        return 0.0

    if not cleaned or cleaned.lower() in NULL_TOKENS:
        return 0.0

    is_negative = (
        cleaned.startswith("-")
        or (cleaned.startswith("(") and cleaned.endswith(")"))
        or "-$" in cleaned
        or "$-" in cleaned
    )

    cleaned = (
        cleaned.replace("$", "")
        .replace("€", "")
        .replace("£", "")
        .replace("(", "")
        .replace(")", "")
        .replace(",", "")
        .strip()
    )
    if not cleaned:
        return 0.0

    try:
        value = float(cleaned)
    except (ValueError, TypeError):
        logger.warning("normalize_amount | parse_failed | raw=%r | fallback=0.0", amount)
        return 0.0

    if not math.isfinite(value):
        logger.warning("normalize_amount | non_finite_parsed=%r | fallback=0.0", amount)
        return 0.0

    if is_negative or value < 0:
        logger.warning("normalize_amount | negative=%r | fallback=0.0", amount)
        return 0.0

    return value


def normalize_quantity(quantity: Any) -> int:
    """Normalize a unit count into a positive integer (fractional counts truncate)."""
    if quantity is None or isinstance(quantity, bool):
        return 1

    try:
        value = float(str(quantity).strip()) if isinstance(quantity, str) else float(quantity)
    except (TypeError, ValueError):
        logger.warning("normalize_quantity | parse_failed | raw=%r | fallback=1", quantity)
        return 1

    if not math.isfinite(value) or int(value) < 1:
        logger.warning("normalize_quantity | out_of_range=%r | fallback=1", quantity)
        return 1
    return int(value)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_date(value: Any) -> Optional[datetime]:
    """Parse a transaction date into an aware UTC datetime.

    Returns None for anything that cannot be placed on the timeline:
    empty values, text without a four-digit year, or unparseable strings.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return _as_utc(value)

    text = str(value).strip()
    if not text or text.lower() in NULL_TOKENS:
        return None

    if re.fullmatch(r"\d+", text) or not re.search(r"\d{4}", text):
        logger.debug("parse_date | rejected_ambiguous | raw=%r", text)
        return None

    try:
        parsed = dateparser.parse(text, default=_PARSE_DEFAULT)
    except (ValueError, TypeError, OverflowError) as exc:
        logger.warning(
            "parse_date | parse_error=%s | raw=%r | fallback=None",
            type(exc).__name__,
            text,
        )
        return None

    if parsed is None:
        logger.warning("parse_date | parse_failed | raw=%r | fallback=None", text)
        return None

    return _as_utc(parsed)

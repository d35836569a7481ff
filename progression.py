"""
progression.py - Points-to-garden progression.

Pure integer arithmetic over a cumulative points total:

    plants_unlocked = total // 50
    trees           = total // 100
    sprouts         = (total % 100) // 50          (0 or 1)
    seedlings       = plants_unlocked - trees - sprouts
    next_milestone  = (plants_unlocked + 1) * 50
    progress        = (total % 50) / 50

The plant list holds one entry per occupied tier with its count. Plant
positions are a presentation concern and are not computed here.
"""

from __future__ import annotations

import math
from typing import Any

from logging_config import get_logger
from models import GardenProgression, PlantEntry, PlantTier

logger = get_logger(__name__)

POINTS_PER_PLANT = 50
POINTS_PER_TREE = 100

# Display values per tier: (growth %, points invested label).
TIER_DISPLAY: dict[PlantTier, tuple[int, int]] = {
    PlantTier.SEEDLING: (50, 25),
    PlantTier.SPROUT: (75, 50),
    PlantTier.TREE: (100, 100),
}


def plants_unlocked(total_points: int) -> int:
    return max(0, int(total_points)) // POINTS_PER_PLANT


def _coerce_total(total_points: Any) -> int:
    try:
        value = float(total_points)
    except (TypeError, ValueError):
        logger.warning("progression_input | invalid_total=%r | fallback=0", total_points)
        return 0
    if not math.isfinite(value):
        logger.warning("progression_input | non_finite_total=%r | fallback=0", total_points)
        return 0
    if value < 0:
        logger.warning("progression_input | negative_total=%r | fallback=0", total_points)
        return 0
    return int(math.floor(value))


def progression(total_points: Any) -> GardenProgression:
    """Derive garden tiers and milestone progress from a points total."""
    total = _coerce_total(total_points)

    unlocked = plants_unlocked(total)
    trees = total // POINTS_PER_TREE
    sprouts = (total % POINTS_PER_TREE) // POINTS_PER_PLANT
    seedlings = unlocked - trees - sprouts

    plants: list[PlantEntry] = []
    for tier, count in (
        (PlantTier.TREE, trees),
        (PlantTier.SPROUT, sprouts),
        (PlantTier.SEEDLING, seedlings),
    ):
        if count:
            growth, invested = TIER_DISPLAY[tier]
            plants.append(PlantEntry(tier=tier, count=count, growth=growth, points_invested=invested))

    garden = GardenProgression(
        total_points=total,
        plants_unlocked=unlocked,
        trees=trees,
        sprouts=sprouts,
        seedlings=seedlings,
        next_milestone=(unlocked + 1) * POINTS_PER_PLANT,
        progress_fraction=(total % POINTS_PER_PLANT) / POINTS_PER_PLANT,
        plants=plants,
    )
    logger.debug(
        "progression | total=%s | unlocked=%s | trees=%s | sprouts=%s | seedlings=%s | next=%s",
        total,
        unlocked,
        trees,
        sprouts,
        seedlings,
        garden.next_milestone,
    )
    return garden

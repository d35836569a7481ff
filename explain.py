"""
explain.py - Human-readable and JSON-ready dashboard formatting.

This module converts a structured `DashboardSummary` into:
- terminal-friendly text output for CLI usage
- machine-friendly dictionary output for APIs/logging/storage

It also renders a per-transaction points breakdown so a user can see why a
purchase earned what it earned.
"""

from __future__ import annotations

from logging_config import get_logger
from models import Category, DashboardSummary, PlantTier, PointsBreakdown

logger = get_logger(__name__)

CATEGORY_LABELS: dict[Category, str] = {
    Category.ELECTRONICS: "Electronics",
    Category.CLOTHING: "Clothing",
    Category.FOOD: "Food & Dining",
    Category.GROCERIES: "Groceries",
    Category.OTHER: "Other",
}

TIER_LABELS: dict[PlantTier, str] = {
    PlantTier.TREE: "Trees",
    PlantTier.SPROUT: "Sprouts",
    PlantTier.SEEDLING: "Seedlings",
}

OUTPUT_WIDTH = 56
SEPARATOR = "=" * OUTPUT_WIDTH


def _error_block(title: str, detail: str = "") -> str:
    body = f"  {title}\n"
    if detail:
        body += f"\n  {detail}\n"
    return "\n" + SEPARATOR + "\n" + body + SEPARATOR + "\n"


def format_report(summary: DashboardSummary | None) -> str:
    """Format a DashboardSummary into a clean, human-readable text block."""
    if summary is None:
        logger.error("report_input_error | summary_none=True | fallback=error_block")
        return _error_block("ERROR: No summary data available")

    try:
        carbon = summary.carbon
        points = summary.eco_points
        garden = summary.garden

        lines: list[str] = [""]
        lines.append(SEPARATOR)
        lines.append("  Eco Footprint Summary")
        lines.append(f"  as of {summary.generated_at}")
        lines.append(SEPARATOR)

        lines.append("")
        lines.append(f"  Transactions: {summary.transaction_count}")
        lines.append("")
        lines.append("  Carbon Footprint (kg CO2e):")
        lines.append(f"    This week:   {carbon.weekly:>10.2f}")
        lines.append(f"    This month:  {carbon.monthly:>10.2f}")
        lines.append(f"    All time:    {carbon.total:>10.2f}")

        lines.append("")
        lines.append("  By Category:")
        if not carbon.by_category:
            lines.append("    • (no purchases recorded)")
        else:
            ranked = sorted(carbon.by_category.items(), key=lambda item: item[1], reverse=True)
            for category, value in ranked:
                share = value / carbon.total if carbon.total > 0 else 0.0
                lines.append(
                    f"    • {CATEGORY_LABELS.get(category, category.value):<14} "
                    f"{value:>9.2f}  ({share:.0%})"
                )

        lines.append("")
        lines.append("  Eco Points:")
        lines.append(f"    This week:   {points.earned_this_week:>10}")
        lines.append(f"    This month:  {points.earned_this_month:>10}")
        lines.append(f"    All time:    {points.total:>10}")

        lines.append("")
        lines.append(f"  Garden: {garden.plants_unlocked} plant(s) unlocked")
        for tier, count in garden.tier_counts.items():
            lines.append(f"    {TIER_LABELS[tier]:<10} {count}")
        lines.append(
            f"  Next plant at {garden.next_milestone} points "
            f"({garden.points_to_next} to go, {garden.progress_fraction:.0%} there)"
        )

        if summary.skipped_dates:
            lines.append("")
            lines.append(
                f"  WARNING: {len(summary.skipped_dates)} transaction(s) had no usable date"
            )
            lines.append("    Counted in all-time totals only: " + ", ".join(summary.skipped_dates))

        lines.append("")
        lines.append(SEPARATOR)
        lines.append("")
        return "\n".join(lines)
    except Exception as exc:
        logger.error(
            "report_format_error | error_type=%s | error=%s",
            type(exc).__name__,
            exc,
            exc_info=True,
        )
        return _error_block("REPORT FORMAT ERROR", f"Error: {type(exc).__name__}: {exc}")


def format_breakdown(transaction_id: str, breakdown: PointsBreakdown) -> str:
    """One transaction's points, itemized with the scoring evidence."""
    lines = [
        f"  {transaction_id or '(no id)'}: {breakdown.total} pts "
        f"(sustainable +{breakdown.sustainability_bonus}, carbon +{breakdown.carbon_bonus})"
    ]
    for evidence in breakdown.evidence:
        lines.append(f"    • {evidence}")
    return "\n".join(lines)


def format_report_json(summary: DashboardSummary | None) -> dict:
    """Format a DashboardSummary as a structured JSON-compatible dictionary."""
    if summary is None:
        logger.error("report_json_input_error | summary_none=True | fallback=error_payload")
        return {
            "status": "error",
            "carbon_footprint": None,
            "eco_points": None,
            "garden": None,
            "warnings": ["Summary object was None"],
        }

    carbon = summary.carbon
    garden = summary.garden

    warnings: list[str] = []
    if summary.skipped_dates:
        warnings.append(
            f"{len(summary.skipped_dates)} transaction(s) excluded from weekly/monthly "
            "windows because their date could not be parsed."
        )

    return {
        "status": "ok",
        "generated_at": summary.generated_at,
        "transaction_count": summary.transaction_count,
        "carbon_footprint": {
            "total": round(carbon.total, 2),
            "weekly": round(carbon.weekly, 2),
            "monthly": round(carbon.monthly, 2),
            "by_category": {
                category.value: round(value, 2) for category, value in carbon.by_category.items()
            },
        },
        "eco_points": summary.eco_points.model_dump(),
        "garden": {
            "plants_unlocked": garden.plants_unlocked,
            "trees": garden.trees,
            "sprouts": garden.sprouts,
            "seedlings": garden.seedlings,
            "next_milestone": garden.next_milestone,
            "points_to_next": garden.points_to_next,
            "progress_fraction": round(garden.progress_fraction, 2),
            "plants": [plant.model_dump(mode="json") for plant in garden.plants],
        },
        "skipped_dates": list(summary.skipped_dates),
        "warnings": warnings,
    }

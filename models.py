"""
models.py - Data Models for the footprint and eco-rewards engine

This file defines ALL data structures used across the engine.
Every module communicates exclusively through these models:

    ingest.py      ->  list[Transaction]
    footprint.py   ->  float (per product / per transaction)
    points.py      ->  PointsBreakdown
    aggregate.py   ->  CarbonFootprintSummary, EcoPointsSummary, BatchResult
    progression.py ->  GardenProgression
    explain.py     ->  str / dict (uses DashboardSummary as input)

Design principles:
1. Inputs are lenient: noisy upstream records coerce to neutral defaults
   (missing price -> 0.0, missing quantity -> 1, unknown category -> other,
   non-list products -> [])
2. Outputs are derived and recomputed per call - never mutated in place
3. Category is a closed enum so every category-indexed table can be checked
   for exhaustiveness

Schema relationships:
    Category        --used by--> Product.category, CarbonFootprintSummary.by_category
    Product         --used by--> Transaction.products
    Transaction     --used by--> EnrichedTransaction (subclass)
    PlantEntry      --used by--> GardenProgression.plants
    GardenProgression, CarbonFootprintSummary, EcoPointsSummary
                    --used by--> DashboardSummary
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from logging_config import get_logger
from normalize import normalize_amount, normalize_quantity, normalize_text

logger = get_logger(__name__)


class TransactionInputError(ValueError):
    """Raised when the top-level transaction collection has an invalid shape."""


class Category(str, Enum):
    """Closed set of canonical product categories."""

    ELECTRONICS = "electronics"
    CLOTHING = "clothing"
    FOOD = "food"
    GROCERIES = "groceries"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Any) -> Optional["Category"]:
        """Return the matching member for a raw value, or None if unrecognized."""
        if isinstance(value, cls):
            return value
        text = normalize_text(value)
        if not text:
            return None
        try:
            return cls(text)
        except ValueError:
            return None


class PlantTier(str, Enum):
    """Garden progression stages, least to most mature."""

    SEEDLING = "seedling"
    SPROUT = "sprout"
    TREE = "tree"


class Product(BaseModel):
    """One purchased line item.

    A product is immutable once classified. The category is always one of
    the five canonical values: a missing or unrecognized category resolves
    to `other` instead of failing validation. `category_defaulted` records
    that fallback so the footprint applies the default rate instead of the
    `other` rate. Raw merchant labels should go through ingest.py, which
    runs the keyword classifier before building the model.
    """

    id: str = Field(default="", description="Product identifier from the merchant.")
    name: str = Field(default="", description="Display name as sent by the merchant.")
    category: Category = Field(
        default=Category.OTHER,
        description=(
            "Canonical category. Drives the carbon-intensity rate applied to "
            "this product. Unknown values coerce to 'other'."
        ),
    )
    price: float = Field(
        default=0.0,
        ge=0,
        description=(
            "Unit price in the transaction's (implicit) currency. Missing, "
            "negative or unparseable prices coerce to 0.0."
        ),
    )
    quantity: int = Field(
        default=1,
        ge=1,
        description="Units purchased. Missing or invalid quantities coerce to 1.",
    )
    is_sustainable: bool = Field(
        default=False,
        description=(
            "Whether the product carries a sustainability signal. Set by the "
            "keyword detector during ingestion; defaults to False when unknown."
        ),
    )
    description: Optional[str] = Field(
        default=None,
        description="Optional merchant description, used only for sustainability detection.",
    )
    category_defaulted: bool = Field(
        default=False,
        description=(
            "True when the category was missing or unrecognized and resolved to "
            "'other'. Such products are priced at the default carbon rate."
        ),
    )

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        json_schema_extra={
            "examples": [
                {
                    "id": "p_001",
                    "name": "Organic Bananas",
                    "category": "groceries",
                    "price": 3.49,
                    "quantity": 2,
                    "is_sustainable": True,
                }
            ]
        },
    )

    @field_validator("id", "name", mode="before")
    @classmethod
    def _coerce_str(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("description", mode="before")
    @classmethod
    def _coerce_description(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)

    @model_validator(mode="before")
    @classmethod
    def _flag_defaulted_category(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and "category_defaulted" not in data:
            data = dict(data)
            data["category_defaulted"] = Category.parse(data.get("category")) is None
        return data

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value: Any) -> Category:
        return Category.parse(value) or Category.OTHER

    @field_validator("price", mode="before")
    @classmethod
    def _coerce_price(cls, value: Any) -> float:
        return normalize_amount(value)

    @field_validator("quantity", mode="before")
    @classmethod
    def _coerce_quantity(cls, value: Any) -> int:
        return normalize_quantity(value)

    @field_validator("is_sustainable", mode="before")
    @classmethod
    def _coerce_flag(cls, value: Any) -> bool:
        if value is None:
            return False
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "y"}
        return bool(value)

    @property
    def line_total(self) -> float:
        """Spend attributed to this line item (price x quantity)."""
        return self.price * self.quantity


class Transaction(BaseModel):
    """One purchase as synced from a connected merchant.

    The total amount and the sum of the product line items are NOT
    guaranteed to match - merchants fold in tax, shipping and discounts
    differently. The engine tolerates the divergence: footprints come from
    the line items, the carbon-savings baseline comes from total_amount.

    `date` is kept as the raw string and parsed only when a windowed
    aggregation needs it, so an unparseable date never blocks ingestion.
    Unknown fields are preserved so batch responses echo the request.
    """

    id: str = Field(default="", description="Transaction identifier.")
    merchant_id: Optional[Union[int, str]] = Field(
        default=None,
        description="Merchant reference from the transaction-sync provider.",
    )
    external_user_id: str = Field(
        default="",
        description="External user reference from the transaction-sync provider.",
    )
    date: str = Field(
        default="",
        description=(
            "Occurrence date as sent upstream (ISO 8601 date or datetime). "
            "Empty or unparseable dates are excluded from weekly/monthly "
            "windows but still count toward all-time totals."
        ),
    )
    total_amount: float = Field(
        default=0.0,
        ge=0,
        description=(
            "Amount charged for the whole transaction. Used for the carbon-"
            "savings baseline (total_amount x 0.8)."
        ),
    )
    currency: str = Field(default="USD", description="ISO currency code. No conversion is performed.")
    products: list[Product] = Field(
        default_factory=list,
        description="Ordered line items. A missing list is treated as empty.",
    )

    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={
            "examples": [
                {
                    "id": "tx_0001",
                    "merchant_id": 44,
                    "external_user_id": "user_123",
                    "date": "2025-10-04",
                    "total_amount": 50.0,
                    "currency": "USD",
                    "products": [
                        {
                            "id": "p_001",
                            "name": "Organic Trail Mix",
                            "category": "food",
                            "price": 50.0,
                            "quantity": 1,
                            "is_sustainable": True,
                        }
                    ],
                }
            ]
        },
    )

    @field_validator("id", "external_user_id", mode="before")
    @classmethod
    def _coerce_str(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("date", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> str:
        if value is None:
            return ""
        isoformat = getattr(value, "isoformat", None)
        if callable(isoformat):
            return str(isoformat())
        return str(value).strip()

    @field_validator("total_amount", mode="before")
    @classmethod
    def _coerce_total(cls, value: Any) -> float:
        return normalize_amount(value)

    @field_validator("currency", mode="before")
    @classmethod
    def _coerce_currency(cls, value: Any) -> str:
        text = "" if value is None else str(value).strip().upper()
        return text or "USD"

    @field_validator("merchant_id", mode="before")
    @classmethod
    def _coerce_merchant(cls, value: Any) -> Optional[Union[int, str]]:
        if value is None or isinstance(value, (int, str)) and not isinstance(value, bool):
            return value
        return str(value)

    @field_validator("products", mode="before")
    @classmethod
    def _coerce_products(cls, value: Any) -> list[Any]:
        if value is None:
            return []
        if not isinstance(value, (list, tuple)):
            logger.warning("transaction_products | got_type=%s | fallback=[]", type(value).__name__)
            return []

        products: list[Any] = []
        for index, item in enumerate(value):
            if isinstance(item, Product):
                products.append(item)
            elif isinstance(item, Mapping):
                products.append(dict(item))
            else:
                logger.warning(
                    "transaction_product_skipped | index=%s | got_type=%s",
                    index,
                    type(item).__name__,
                )
        return products

    @property
    def line_items_total(self) -> float:
        """Sum of price x quantity over products (may differ from total_amount)."""
        return sum(product.line_total for product in self.products)


class EnrichedTransaction(Transaction):
    """Transaction annotated with its computed footprint and points."""

    carbon_footprint: float = Field(default=0.0, ge=0, description="kg CO2e for this transaction.")
    eco_points: int = Field(default=0, ge=0, description="Eco-points earned by this transaction.")


class PointsBreakdown(BaseModel):
    """Itemized eco-points for a single transaction.

    The evidence list carries one human-readable line per scoring part so
    reports can show why a transaction earned what it earned.
    """

    sustainability_bonus: int = Field(default=0, ge=0)
    carbon_bonus: int = Field(default=0, ge=0)
    baseline_footprint: float = Field(
        default=0.0,
        ge=0,
        description="Expected footprint at the flat average intensity (total_amount x 0.8).",
    )
    actual_footprint: float = Field(default=0.0, ge=0)
    carbon_saved: float = Field(default=0.0, ge=0)
    sustainable_products: int = Field(default=0, ge=0)
    evidence: list[str] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return self.sustainability_bonus + self.carbon_bonus


class CarbonFootprintSummary(BaseModel):
    """Footprint totals across a transaction set (kg CO2e).

    by_category only contains categories that actually occur and is always
    accumulated over the FULL set, not just the trailing windows.
    """

    total: float = Field(default=0.0, ge=0, description="All-time footprint.")
    weekly: float = Field(default=0.0, ge=0, description="Trailing 7-day footprint.")
    monthly: float = Field(default=0.0, ge=0, description="Trailing 30-day footprint.")
    by_category: dict[Category, float] = Field(default_factory=dict)


class EcoPointsSummary(BaseModel):
    """Eco-points totals across a transaction set."""

    total: int = Field(default=0, ge=0)
    earned_this_week: int = Field(default=0, ge=0)
    earned_this_month: int = Field(default=0, ge=0)
    plants_unlocked: int = Field(
        default=0,
        ge=0,
        description="floor(total / 50) - one plant per 50 points.",
    )


class PlantEntry(BaseModel):
    """One tier of unlocked plants in the garden."""

    tier: PlantTier
    count: int = Field(..., ge=1, description="Unlocked plants at this tier.")
    growth: int = Field(..., ge=0, le=100, description="Display growth percentage for the tier.")
    points_invested: int = Field(..., ge=0, description="Display label only; not used for computation.")


class GardenProgression(BaseModel):
    """Garden state derived from a cumulative points total.

    Tier counts are consistent with plants_unlocked: the `count` values in
    `plants` sum to it. `plants` holds one entry per occupied tier, trees
    first, then sprouts, then seedlings, so its size stays bounded however
    large the points total gets. Spatial placement is left to the
    presentation layer.
    """

    total_points: int = Field(default=0, ge=0)
    plants_unlocked: int = Field(default=0, ge=0)
    trees: int = Field(default=0, ge=0)
    sprouts: int = Field(default=0, ge=0)
    seedlings: int = Field(default=0, ge=0)
    next_milestone: int = Field(default=50, ge=0)
    progress_fraction: float = Field(default=0.0, ge=0, lt=1)
    plants: list[PlantEntry] = Field(default_factory=list)

    @property
    def points_to_next(self) -> int:
        return self.next_milestone - self.total_points

    @property
    def tier_counts(self) -> dict[PlantTier, int]:
        return {
            PlantTier.TREE: self.trees,
            PlantTier.SPROUT: self.sprouts,
            PlantTier.SEEDLING: self.seedlings,
        }


class BatchSummary(BaseModel):
    total_carbon: float = Field(default=0.0, ge=0)
    total_eco_points: int = Field(default=0, ge=0)


class BatchResult(BaseModel):
    """Result of the batch calculate-carbon contract."""

    transactions: list[EnrichedTransaction] = Field(default_factory=list)
    summary: BatchSummary = Field(default_factory=BatchSummary)


class DashboardSummary(BaseModel):
    """Everything a dashboard needs, computed against one reference instant."""

    generated_at: str = Field(..., description="ISO 8601 reference instant used for the windows.")
    transaction_count: int = Field(default=0, ge=0)
    carbon: CarbonFootprintSummary = Field(default_factory=CarbonFootprintSummary)
    eco_points: EcoPointsSummary = Field(default_factory=EcoPointsSummary)
    garden: GardenProgression = Field(default_factory=GardenProgression)
    skipped_dates: list[str] = Field(
        default_factory=list,
        description="Ids of transactions left out of the windows because their date could not be parsed.",
    )

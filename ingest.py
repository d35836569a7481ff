"""
ingest.py - Purchase-record ingestion boundary.

This module converts raw merchant purchase records into `Transaction`
models. It is the only module that knows what upstream records look like:

- JSON records as delivered by the transaction-sync provider
  (nested `price.unit_price` / `price.total`, `external_id`, free-text
  `category` labels, optional `description`)
- CSV line-item exports (one row per product, grouped by transaction id)

Every product passes through the keyword classifier and the sustainability
detector here, so downstream modules only ever see canonical categories.
Identifiers that are missing upstream are derived from record position,
keeping ingestion deterministic.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

import pandas as pd
from pydantic import ValidationError

from classify import classify, is_sustainable
from logging_config import get_logger
from models import Product, Transaction, TransactionInputError
from normalize import normalize_amount, normalize_quantity
from rules import RuleSet

logger = get_logger(__name__)

DEFAULT_PRODUCT_NAME = "Unknown Product"
DEFAULT_CURRENCY = "USD"

CSV_REQUIRED_COLUMNS = ["transaction_id", "date", "product_name", "price"]
CSV_OPTIONAL_COLUMNS = [
    "merchant_id",
    "external_user_id",
    "total_amount",
    "currency",
    "product_id",
    "category",
    "quantity",
    "description",
    "is_sustainable",
]


def _check_collection(value: Any) -> None:
    if value is None:
        raise TransactionInputError("transactions array is required")
    if not isinstance(value, (list, tuple)):
        raise TransactionInputError(f"transactions must be a list, got {type(value).__name__}")


def coerce_transactions(transactions: Any) -> list[Transaction]:
    """Validate the top-level collection shape and build Transaction models.

    This is the one place a caller-visible error is raised: the collection
    itself must be a list or tuple of mappings / Transaction objects.
    Field-level noise inside each record degrades to defaults instead.
    """
    _check_collection(transactions)

    result: list[Transaction] = []
    for index, item in enumerate(transactions):
        if isinstance(item, Transaction):
            result.append(item)
            continue
        if not isinstance(item, Mapping):
            raise TransactionInputError(
                f"transactions[{index}] must be an object, got {type(item).__name__}"
            )
        try:
            result.append(Transaction.model_validate(dict(item)))
        except ValidationError as exc:
            raise TransactionInputError(f"transactions[{index}] is malformed: {exc}") from exc
    return result


def _raw_price(raw: Mapping[str, Any]) -> float:
    price = raw.get("price")
    if isinstance(price, Mapping):
        for key in ("unit_price", "total"):
            value = normalize_amount(price.get(key))
            if value > 0:
                return value
        return 0.0
    return normalize_amount(price)


def build_product(
    raw: Mapping[str, Any],
    fallback_id: str,
    rules: Optional[RuleSet] = None,
) -> Product:
    """Classify and build one product from a raw merchant line item."""
    name = str(raw.get("name") or "").strip() or DEFAULT_PRODUCT_NAME
    description = raw.get("description")
    product_id = raw.get("external_id") or raw.get("id") or fallback_id

    # An explicit upstream flag wins over the keyword detector.
    flag = raw.get("is_sustainable")
    sustainable = flag if flag is not None else is_sustainable(name, description, rules)

    return Product(
        id=str(product_id),
        name=name,
        category=classify(name, raw.get("category"), rules),
        price=_raw_price(raw),
        quantity=normalize_quantity(raw.get("quantity")),
        is_sustainable=sustainable,
        description=str(description) if description is not None else None,
    )


def _raw_total(raw: Mapping[str, Any]) -> Any:
    if raw.get("total_amount") is not None:
        return raw.get("total_amount")
    price = raw.get("price")
    if isinstance(price, Mapping):
        return price.get("total")
    return None


def build_transaction(
    raw: Mapping[str, Any],
    position: int = 0,
    rules: Optional[RuleSet] = None,
) -> Transaction:
    """Build one classified Transaction from a raw merchant record."""
    transaction_id = str(raw.get("id") or raw.get("external_id") or f"tx_{position:04d}")
    raw_products = raw.get("products") or []
    if not isinstance(raw_products, (list, tuple)):
        logger.warning(
            "ingest_products_warning | id=%s | got_type=%s | fallback=[]",
            transaction_id,
            type(raw_products).__name__,
        )
        raw_products = []

    products: list[Product] = []
    for index, raw_product in enumerate(raw_products):
        if not isinstance(raw_product, Mapping):
            logger.warning(
                "ingest_product_skipped | id=%s | index=%s | got_type=%s",
                transaction_id,
                index,
                type(raw_product).__name__,
            )
            continue
        products.append(build_product(raw_product, f"{transaction_id}_p{index + 1}", rules))

    transaction = Transaction(
        id=transaction_id,
        merchant_id=raw.get("merchant_id"),
        external_user_id=raw.get("external_user_id"),
        date=raw.get("date") or raw.get("datetime"),
        total_amount=_raw_total(raw),
        currency=raw.get("currency") or DEFAULT_CURRENCY,
        products=products,
    )

    divergence = abs(transaction.total_amount - transaction.line_items_total)
    if products and divergence > 0.01:
        logger.debug(
            "ingest_total_divergence | id=%s | total_amount=%.2f | line_items=%.2f",
            transaction.id,
            transaction.total_amount,
            transaction.line_items_total,
        )
    return transaction


def ingest_records(records: Any, rules: Optional[RuleSet] = None) -> list[Transaction]:
    """Build classified transactions from a list of raw merchant records."""
    _check_collection(records)

    transactions: list[Transaction] = []
    for position, raw in enumerate(records):
        if not isinstance(raw, Mapping):
            raise TransactionInputError(
                f"transactions[{position}] must be an object, got {type(raw).__name__}"
            )
        transactions.append(build_transaction(raw, position, rules))

    logger.info(
        "ingest_complete | transactions=%s | products=%s",
        len(transactions),
        sum(len(t.products) for t in transactions),
    )
    return transactions


def _csv_value(row: Mapping[str, Any], column: str) -> Any:
    value = row.get(column)
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return value


def _rows_to_records(rows: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    grouped: dict[str, dict[str, Any]] = {}
    for row in rows:
        transaction_id = str(_csv_value(row, "transaction_id") or "").strip()
        if not transaction_id:
            continue
        record = grouped.get(transaction_id)
        if record is None:
            record = {
                "id": transaction_id,
                "merchant_id": _csv_value(row, "merchant_id"),
                "external_user_id": _csv_value(row, "external_user_id"),
                "date": _csv_value(row, "date"),
                "total_amount": _csv_value(row, "total_amount"),
                "currency": _csv_value(row, "currency"),
                "products": [],
            }
            grouped[transaction_id] = record

        record["products"].append(
            {
                "id": _csv_value(row, "product_id"),
                "name": _csv_value(row, "product_name"),
                "category": _csv_value(row, "category"),
                "price": _csv_value(row, "price"),
                "quantity": _csv_value(row, "quantity"),
                "description": _csv_value(row, "description"),
                "is_sustainable": _csv_value(row, "is_sustainable"),
            }
        )

    records = list(grouped.values())
    for record in records:
        if record["total_amount"] is None:
            record["total_amount"] = sum(
                normalize_amount(p["price"]) * normalize_quantity(p["quantity"])
                for p in record["products"]
            )
    return records


def load_csv_records(csv_path: Path) -> list[dict[str, Any]]:
    """Load a line-item CSV export into raw transaction records."""
    try:
        df = pd.read_csv(csv_path, encoding="utf-8-sig", dtype=str)
    except UnicodeDecodeError:
        logger.warning(
            "csv_encoding_warning | path=%s | reason='utf-8 decode failed' | fallback=latin-1",
            csv_path,
        )
        df = pd.read_csv(csv_path, encoding="latin-1", dtype=str)
    except Exception as exc:
        raise ValueError(f"Failed to read CSV '{csv_path}': {exc}") from exc

    df.columns = [str(col).strip().lower() for col in df.columns]
    df = df.dropna(how="all").copy()
    if df.empty:
        raise ValueError(f"Transactions CSV is empty: {csv_path}")

    missing = [column for column in CSV_REQUIRED_COLUMNS if column not in df.columns]
    if missing:
        raise ValueError(
            f"Transactions CSV missing required columns: {missing}\n"
            f"Required: {CSV_REQUIRED_COLUMNS}\n"
            f"Found: {list(df.columns)}"
        )
    for optional in CSV_OPTIONAL_COLUMNS:
        if optional not in df.columns:
            df[optional] = None

    records = _rows_to_records(df.to_dict(orient="records"))
    logger.info("csv_loaded | path=%s | rows=%s | transactions=%s", csv_path, len(df), len(records))
    return records


def load_json_records(json_path: Path) -> list[Any]:
    """Load raw transaction records from a JSON array or {"transactions": [...]} file."""
    try:
        payload = json.loads(json_path.read_text(encoding="utf-8-sig"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValueError(f"Failed to read JSON '{json_path}': {exc}") from exc

    if isinstance(payload, Mapping):
        payload = payload.get("transactions")
    if not isinstance(payload, list):
        raise ValueError(
            f"JSON '{json_path}' must be an array of transactions or an object with a 'transactions' array"
        )
    return payload


def load_transactions(path: str | Path, rules: Optional[RuleSet] = None) -> list[Transaction]:
    """Load, classify and validate transactions from a JSON or CSV file."""
    if path is None:
        raise ValueError("path cannot be None")
    text_path = str(path).strip()
    if not text_path:
        raise ValueError("path cannot be empty")

    file_path = Path(text_path)
    if not file_path.exists():
        raise FileNotFoundError(
            f"Transactions file not found: {file_path}\n"
            "Provide a valid JSON or CSV path with --transactions"
        )

    suffix = file_path.suffix.lower()
    if suffix == ".csv":
        records = load_csv_records(file_path)
    elif suffix == ".json":
        records = load_json_records(file_path)
    else:
        raise ValueError(f"Unsupported transactions file type '{suffix}' (expected .json or .csv)")

    return ingest_records(records, rules)

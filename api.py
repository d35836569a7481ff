"""
api.py - FastAPI HTTP layer for the footprint and eco-rewards engine.

Endpoints:
  - GET  /health
  - POST /transactions/calculate-carbon   batch enrichment
  - POST /transactions/ingest             raw merchant records -> classified transactions
  - POST /summary                         dashboard totals and garden progression

Every response uses the same envelope:

    {"success": true,  "data": {...}}
    {"success": false, "error": {"message": "..."}}

No footprint or scoring logic is implemented here.
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

import uvicorn
from fastapi import Body, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from aggregate import calculate_batch, summarize
from explain import format_report_json
from ingest import ingest_records
from logging_config import get_logger, setup_logging
from rules import RuleSet, load_rules

logger = get_logger("ecotrack-api")

app = FastAPI(
    title="Eco Rewards Engine API",
    version="1.0.0",
)

# Allows the dashboard frontend to call the API from another local host/port.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def active_rules() -> RuleSet:
    """Rule set for this process (built-ins plus $ECOTRACK_RULES_FILE overrides)."""
    return load_rules()


def _success(data: Any) -> dict[str, Any]:
    return {"success": True, "data": data}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": {"message": message}},
    )


def _transactions_from(payload: dict[str, Any]) -> Any:
    """Return the `transactions` array from a request body, or None when it is absent or not an array."""
    transactions = payload.get("transactions")
    return transactions if isinstance(transactions, list) else None


def _handle_unexpected(route: str, exc: Exception) -> JSONResponse:
    logger.error(
        "api_%s_error | error_type=%s | error=%s",
        route,
        type(exc).__name__,
        exc,
        exc_info=True,
    )
    return _error(500, "Unexpected server error while processing transactions.")


@app.get("/health")
def health() -> dict[str, str]:
    """Service health check."""
    return {"status": "ok"}


@app.post("/transactions/calculate-carbon", response_model=None)
def calculate_carbon(payload: dict[str, Any] = Body(...)) -> dict[str, Any] | JSONResponse:
    """Enrich each transaction with carbon_footprint and eco_points, plus batch totals."""
    transactions = _transactions_from(payload)
    if transactions is None:
        return _error(400, "transactions array is required")

    try:
        result = calculate_batch(transactions, active_rules())
        logger.info(
            "api_calculate_carbon | transactions=%s | total_carbon=%.2f | total_eco_points=%s",
            len(result.transactions),
            result.summary.total_carbon,
            result.summary.total_eco_points,
        )
        return _success(result.model_dump(mode="json"))
    except (ValueError, ValidationError) as exc:
        return _error(400, str(exc))
    except Exception as exc:
        return _handle_unexpected("calculate_carbon", exc)


@app.post("/transactions/ingest", response_model=None)
def ingest(payload: dict[str, Any] = Body(...)) -> dict[str, Any] | JSONResponse:
    """Classify raw merchant purchase records into canonical transactions."""
    records = _transactions_from(payload)
    if records is None:
        return _error(400, "transactions array is required")

    try:
        transactions = ingest_records(records, active_rules())
        return _success({"transactions": [t.model_dump(mode="json") for t in transactions]})
    except (ValueError, ValidationError) as exc:
        return _error(400, str(exc))
    except Exception as exc:
        return _handle_unexpected("ingest", exc)


@app.post("/summary", response_model=None)
def summary(payload: dict[str, Any] = Body(...)) -> dict[str, Any] | JSONResponse:
    """Dashboard summary as of `now` (defaults to the current UTC time)."""
    transactions = _transactions_from(payload)
    if transactions is None:
        return _error(400, "transactions array is required")

    now = payload.get("now") or datetime.now(timezone.utc)
    try:
        result = summarize(transactions, now, active_rules())
        return _success(format_report_json(result))
    except (ValueError, ValidationError) as exc:
        return _error(400, str(exc))
    except Exception as exc:
        return _handle_unexpected("summary", exc)


if __name__ == "__main__":
    setup_logging()
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run("api:app", host="0.0.0.0", port=port, reload=False)

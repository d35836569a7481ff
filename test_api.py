"""
test_api.py - HTTP Layer Tests

Exercises the FastAPI app in-process with TestClient.

Usage: pytest test_api.py
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

# Ensure we can import from project root
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import pytest
from fastapi.testclient import TestClient

from api import app

DATA_DIR = Path(__file__).parent / "test_data"

client = TestClient(app)


def _trail_mix_transaction(tx_id: str = "tx_1", date: str = "2025-10-04") -> dict:
    return {
        "id": tx_id,
        "merchant_id": 44,
        "external_user_id": "user_123",
        "date": date,
        "total_amount": 50.0,
        "currency": "USD",
        "products": [
            {
                "id": "p_1",
                "name": "Organic Trail Mix",
                "category": "food",
                "price": 50.0,
                "quantity": 1,
                "is_sustainable": True,
            }
        ],
    }


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_calculate_carbon_enriches_transactions():
    laptop = {
        "id": "tx_2",
        "date": "2025-10-03",
        "total_amount": 100,
        "products": [{"id": "p_2", "name": "Laptop", "category": "electronics", "price": 100}],
    }
    response = client.post(
        "/transactions/calculate-carbon",
        json={"transactions": [_trail_mix_transaction(), laptop]},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True

    enriched = body["data"]["transactions"]
    assert enriched[0]["carbon_footprint"] == pytest.approx(20.0)
    assert enriched[0]["eco_points"] == 45
    assert enriched[0]["merchant_id"] == 44
    assert enriched[1]["carbon_footprint"] == pytest.approx(150.0)
    assert enriched[1]["eco_points"] == 0
    assert body["data"]["summary"] == {"total_carbon": pytest.approx(170.0), "total_eco_points": 45}


def test_calculate_carbon_empty_list():
    response = client.post("/transactions/calculate-carbon", json={"transactions": []})
    assert response.status_code == 200
    assert response.json()["data"]["summary"] == {"total_carbon": 0.0, "total_eco_points": 0}


def test_calculate_carbon_requires_transactions():
    response = client.post("/transactions/calculate-carbon", json={})
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": {"message": "transactions array is required"}}


@pytest.mark.parametrize("route", ["/transactions/calculate-carbon", "/transactions/ingest", "/summary"])
@pytest.mark.parametrize("bad", [{"id": "x"}, "tx_1", 42, None])
def test_non_array_transactions_get_contract_message(route, bad):
    response = client.post(route, json={"transactions": bad, "now": "2025-10-05T12:00:00Z"})
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": {"message": "transactions array is required"}}


def test_calculate_carbon_tolerates_malformed_optional_fields():
    record = _trail_mix_transaction()
    record["products"][0]["description"] = 5
    broken = {"id": "tx_2", "total_amount": 10, "products": {"name": "x"}}
    response = client.post("/transactions/calculate-carbon", json={"transactions": [record, broken]})
    assert response.status_code == 200
    data = response.json()["data"]
    assert [t["eco_points"] for t in data["transactions"]] == [45, 10]
    assert data["transactions"][1]["products"] == []


def test_ingest_classifies_raw_records():
    raw = json.loads((DATA_DIR / "transactions.json").read_text(encoding="utf-8"))
    response = client.post("/transactions/ingest", json=raw)
    assert response.status_code == 200
    transactions = response.json()["data"]["transactions"]
    assert [t["products"][0]["category"] for t in transactions] == [
        "electronics",
        "food",
        "clothing",
        "groceries",
    ]


def test_summary_with_explicit_now():
    response = client.post(
        "/summary",
        json={
            "transactions": [
                _trail_mix_transaction("recent", "2025-10-04"),
                _trail_mix_transaction("older", "2025-09-20"),
                _trail_mix_transaction("undated", ""),
            ],
            "now": "2025-10-05T12:00:00Z",
        },
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["eco_points"]["total"] == 135
    assert data["eco_points"]["earned_this_week"] == 45
    assert data["eco_points"]["earned_this_month"] == 90
    assert data["garden"]["plants_unlocked"] == 2
    assert data["skipped_dates"] == ["undated"]


def test_summary_rejects_bad_now():
    response = client.post("/summary", json={"transactions": [], "now": "whenever"})
    assert response.status_code == 400


def test_summary_requires_transactions():
    response = client.post("/summary", json={"now": "2025-10-05T12:00:00Z"})
    assert response.status_code == 400

import pytest
import sys
import os
from decimal import Decimal

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from fastapi.testclient import TestClient

from supply_pricing.api.main import app
from supply_pricing.api.state import get_service
from supply_pricing.services import SupplyRecordsService


@pytest.fixture(scope="function")
def client(tmp_path):
    service = SupplyRecordsService(csv_path=tmp_path / "supply_records.csv")
    app.dependency_overrides[get_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


RECORD = {
    "product_id": "P-100",
    "supplier_id": 3,
    "price": "12.00",
    "moq": 1,
    "price_tiers": [
        {"min_qty": 51, "max_qty": None, "unit_price": "8.0"},
        {"min_qty": 1, "max_qty": 50, "unit_price": "10.0"},
    ],
}


def test_root(client):
    assert client.get("/").json()["status"] == "online"


def test_validate_touching_ranges(client):
    resp = client.post("/api/price-tiers/validate", json={"tiers": [
        {"min_qty": 1, "max_qty": 50, "unit_price": 10.0},
        {"min_qty": 50, "max_qty": 100, "unit_price": 8.0},
    ]})
    assert resp.status_code == 200
    body = resp.json()
    assert body["valid"] is False
    assert body["errors"][0]["code"] == "OVERLAPPING_RANGES"
    assert body["errors"][0]["indices"] == [0, 1]


def test_validate_normalizes_by_default(client):
    resp = client.post("/api/price-tiers/validate", json={"tiers": [
        {"min_qty": 100, "max_qty": None, "unit_price": 7.0},
        {"min_qty": 1, "max_qty": 99, "unit_price": 10.0},
    ]})
    body = resp.json()
    assert body["valid"] is True
    assert [t["min_qty"] for t in body["tiers"]] == [1, 100]
    assert body["tiers"][1]["max_qty"] is None


def test_validate_collect_all(client):
    resp = client.post("/api/price-tiers/validate", json={
        "tiers": [
            {"min_qty": 1, "max_qty": None, "unit_price": 10.0},
            {"min_qty": 50, "max_qty": None, "unit_price": -1},
        ],
        "collect_all": True,
    })
    codes = [e["code"] for e in resp.json()["errors"]]
    assert "MULTIPLE_UNBOUNDED" in codes
    assert "NEGATIVE_PRICE" in codes


def test_validate_malformed(client):
    resp = client.post("/api/price-tiers/validate", json={"tiers": [{"min_qty": "x", "unit_price": 1}]})
    body = resp.json()
    assert body["valid"] is False
    assert body["errors"][0]["code"] == "MALFORMED_TIER"


def test_lookup_with_fallback(client):
    tiers = [
        {"min_qty": 1, "max_qty": 10, "unit_price": "5.0"},
        {"min_qty": 20, "max_qty": 30, "unit_price": "4.0"},
    ]
    resp = client.post("/api/price-tiers/lookup", json={"tiers": tiers, "quantity": 15, "fallback_price": "4.5"})
    body = resp.json()
    assert body["found"] is False
    assert Decimal(body["unit_price"]) == Decimal("4.5")

    resp = client.post("/api/price-tiers/lookup", json={"tiers": tiers, "quantity": 15})
    assert resp.json()["unit_price"] is None

    resp = client.post("/api/price-tiers/lookup", json={"tiers": tiers, "quantity": 25})
    assert Decimal(resp.json()["unit_price"]) == Decimal("4.0")


def test_lookup_rejects_invalid_tiers(client):
    resp = client.post("/api/price-tiers/lookup", json={"tiers": [], "quantity": 1})
    assert resp.status_code == 422
    assert resp.json()["detail"]["errors"][0]["code"] == "EMPTY_SET"


def test_record_crud(client):
    resp = client.post("/api/supply-records", json=RECORD)
    assert resp.status_code == 200
    created = resp.json()
    record_id = created["record_id"]
    assert [t["min_qty"] for t in created["price_tiers"]] == [1, 51]

    assert client.get(f"/api/supply-records/{record_id}").status_code == 200
    assert len(client.get("/api/supply-records", params={"supplier_id": 3}).json()) == 1

    resp = client.put(f"/api/supply-records/{record_id}", json={"moq": 5, "notes": "updated"})
    assert resp.status_code == 200
    assert resp.json()["moq"] == 5
    assert resp.json()["notes"] == "updated"

    resp = client.delete(f"/api/supply-records/{record_id}")
    assert resp.json()["success"] is True
    assert client.get(f"/api/supply-records/{record_id}").status_code == 404


def test_create_with_overlap_returns_422(client):
    payload = dict(RECORD, price_tiers=[
        {"min_qty": 1, "max_qty": 50, "unit_price": "10.0"},
        {"min_qty": 50, "max_qty": 100, "unit_price": "8.0"},
    ])
    resp = client.post("/api/supply-records", json=payload)
    assert resp.status_code == 422
    error = resp.json()["detail"]["errors"][0]
    assert error["code"] == "OVERLAPPING_RANGES"
    assert error["indices"] == [0, 1]
    assert client.get("/api/supply-records").json() == []


def test_create_without_tiers_gets_default_tier(client):
    payload = {k: v for k, v in RECORD.items() if k != "price_tiers"}
    resp = client.post("/api/supply-records", json=dict(payload, moq=10))
    assert resp.status_code == 200
    assert resp.json()["price_tiers"] == [{"min_qty": 10, "max_qty": None, "unit_price": "12.00"}]

    resp = client.post("/api/supply-records", json=dict(payload, price_tiers=None))
    assert resp.status_code == 200
    assert len(resp.json()["price_tiers"]) == 1


def test_create_with_empty_tiers_returns_422(client):
    resp = client.post("/api/supply-records", json=dict(RECORD, price_tiers=[]))
    assert resp.status_code == 422
    assert resp.json()["detail"]["errors"][0]["code"] == "EMPTY_SET"
    assert client.get("/api/supply-records").json() == []


def test_create_with_non_iso_date_returns_400(client):
    resp = client.post("/api/supply-records", json=dict(RECORD, valid_until="31/12/2026"))
    assert resp.status_code == 400
    assert "ISO date" in resp.json()["detail"]


def test_create_with_bad_moq_returns_400(client):
    resp = client.post("/api/supply-records", json=dict(RECORD, moq=0))
    assert resp.status_code == 400


def test_update_missing_returns_404(client):
    assert client.put("/api/supply-records/nope", json={"notes": "x"}).status_code == 404
    assert client.delete("/api/supply-records/nope").status_code == 404


def test_quote_and_stats(client):
    record_id = client.post("/api/supply-records", json=RECORD).json()["record_id"]

    quote = client.get(f"/api/supply-records/{record_id}/quote", params={"quantity": 51}).json()
    assert quote["source"] == "Tier"
    assert quote["unit_price"] == 8.0
    assert quote["extended_price"] == 408.0

    stats = client.get("/api/supply-records/stats").json()
    assert stats["total"] == 1
    assert stats["tiered"] == 1

    assert client.get("/api/supply-records/nope/quote", params={"quantity": 1}).status_code == 404

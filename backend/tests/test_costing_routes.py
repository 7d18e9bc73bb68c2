"""
test_costing_routes.py: HTTP surface exercised through FastAPI's TestClient.

The API is stateless, so every request posts the whole calculation.
"""

import pytest
from fastapi.testclient import TestClient

from conftest import make_supplier
from rackcalc.main import app
from rackcalc.models.calculation import CalculationData, PaymentTerms


@pytest.fixture(scope="module")
def client():
    return TestClient(app)


def payload(data: CalculationData) -> dict:
    return data.model_dump(mode="json")


class TestCostingEndpoints:

    def test_breakdown(self, client, scenario_b):
        resp = client.post("/api/costing/breakdown", json={"data": payload(scenario_b), "rate": 4.3})
        assert resp.status_code == 200
        body = resp.json()
        assert body["suppliers"] == pytest.approx(500.0)
        assert body["fee"] == pytest.approx(8.0)
        assert body["total"] == pytest.approx(508.0)
        assert body["currency"] == "PLN"

    def test_breakdown_rejects_non_positive_rate(self, client, scenario_a):
        resp = client.post("/api/costing/breakdown", json={"data": payload(scenario_a), "rate": 0})
        assert resp.status_code == 422

    def test_invalid_payment_terms_rejected(self, client):
        body = payload(CalculationData())
        body["payment_terms"] = {"advance1_percent": 80, "advance2_percent": 30}
        resp = client.post("/api/costing/breakdown", json={"data": body, "rate": 4.3})
        assert resp.status_code == 422

    def test_document_breakdown(self, client):
        doc = {
            "initial": payload(CalculationData(suppliers=[make_supplier()])),
            "exchange_rate": 4.0,
            "offer_currency": "EUR",
        }
        resp = client.post("/api/costing/document-breakdown", json=doc)
        assert resp.status_code == 200
        assert resp.json()["total"] == pytest.approx(250.0)
        assert resp.json()["mode"] == "INITIAL"

    def test_stage_cost(self, client):
        stage = {"id": "st1", "pallet_spots": 8, "pallet_spot_price": 12.5}
        resp = client.post("/api/costing/stage-cost", json={"stage": stage})
        assert resp.json() == {"stage_id": "st1", "cost_pln": 100.0}

    def test_approval(self, client, scenario_a):
        body = {"data": payload(scenario_a), "rate": 4.3, "target_margin": 10}
        resp = client.post("/api/costing/approval", json=body)
        assert resp.status_code == 200
        result = resp.json()
        assert result["approved"] is False
        assert result["reasons"] == ["Advance payment is 30% (minimum 50% required)"]
        assert result["submission_stage"] == "PENDING_APPROVAL"
        assert result["breakdown"]["total"] == pytest.approx(1000.0)

    def test_approval_passes(self, client, scenario_a):
        scenario_a.payment_terms = PaymentTerms(advance1_percent=50)
        body = {"data": payload(scenario_a), "rate": 4.3, "target_margin": 10}
        result = client.post("/api/costing/approval", json=body).json()
        assert result["approved"] is True
        assert result["submission_stage"] == "APPROVED"

    def test_convert(self, client):
        body = {"amount": 100, "from_currency": "EUR", "to_currency": "PLN", "rate": 4.3}
        resp = client.post("/api/costing/convert", json=body)
        assert resp.json()["amount"] == pytest.approx(430.0)


class TestVariantEndpoints:

    def test_exclusions(self, client, full_project):
        full_project.variants[3].status = "EXCLUDED"
        resp = client.post("/api/variants/exclusions", json=payload(full_project))
        assert resp.status_code == 200
        s2 = resp.json()["suppliers"][1]
        assert all(item["is_excluded"] for item in s2["items"])

    def test_status_toggle(self, client, full_project):
        body = {"data": payload(full_project), "status": "INCLUDED"}
        resp = client.post("/api/variants/v-loose/status", json=body)
        assert resp.status_code == 200
        variants = {v["id"]: v["status"] for v in resp.json()["variants"]}
        assert variants["v-loose"] == "INCLUDED"

    def test_solo(self, client, full_project):
        resp = client.post("/api/variants/v-child/solo", json=payload(full_project))
        statuses = {v["id"]: v["status"] for v in resp.json()["variants"]}
        assert statuses == {"v-root": "NEUTRAL", "v-child": "INCLUDED", "v-grand": "NEUTRAL", "v-loose": "NEUTRAL"}

    def test_unknown_variant_is_404(self, client, full_project):
        resp = client.post("/api/variants/ghost/solo", json=payload(full_project))
        assert resp.status_code == 404

    def test_cyclic_parent_is_409(self, client, full_project):
        body = {"data": payload(full_project), "parent_id": "v-grand"}
        resp = client.post("/api/variants/v-root/parent", json=body)
        assert resp.status_code == 409
        assert resp.json()["detail"].startswith("VARIANT_CYCLE")

    def test_parent_none_makes_root(self, client, full_project):
        body = {"data": payload(full_project), "parent_id": None}
        resp = client.post("/api/variants/v-grand/parent", json=body)
        parents = {v["id"]: v["parent_id"] for v in resp.json()["variants"]}
        assert parents["v-grand"] is None

    def test_variant_value(self, client, full_project):
        body = {"data": payload(full_project), "rate": 4.3}
        resp = client.post("/api/variants/v-child/value", json=body)
        assert resp.json()["value"] == pytest.approx(340.0)


class TestAmbientEndpoints:

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "active"

    def test_request_headers(self, client):
        resp = client.get("/health", headers={"X-Request-ID": "abc123"})
        assert resp.headers["X-Request-ID"] == "abc123"
        assert float(resp.headers["X-Process-Time"]) >= 0

    def test_metrics_reflect_engine_calls(self, client, scenario_a):
        client.post("/api/costing/breakdown", json={"data": payload(scenario_a), "rate": 4.3})
        metrics = client.get("/metrics").json()
        assert metrics["calls_by_operation"]["calculate_project_costs"] == 1
        assert metrics["error_count"] == 0

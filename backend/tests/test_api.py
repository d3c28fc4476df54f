"""Tests for FastAPI endpoints."""
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from app.clients.arcium_client import ArciumClient
from app.contracts import CollateralValidation, InterestCalculation, RiskAssessment
from app.errors import ComputationTimeout, RiskAssessmentFailed, StatusUnavailable
from app.main import create_app
from app.models import ComputationResult, ComputationStatus, CostEstimate, NetworkStatus

AUTH = {"Authorization": "Bearer test-token"}


@pytest.fixture
def arcium():
    """Arcium client double; every async method is an AsyncMock."""
    return AsyncMock(spec=ArciumClient)


@pytest.fixture
def client(settings, arcium):
    """Create a test client for the gateway app."""
    return TestClient(create_app(settings, client=arcium))


class TestAuth:
    """Bearer token enforcement."""

    @pytest.mark.parametrize(
        "method, path",
        [
            ("post", "/arcium/api/compute"),
            ("post", "/arcium/api/risk-assessment"),
            ("post", "/arcium/api/collateral-validation"),
            ("post", "/arcium/api/interest-calculation"),
            ("post", "/arcium/api/estimate-cost"),
            ("get", "/arcium/api/computation/comp-1"),
            ("get", "/arcium/api/network-status"),
            ("get", "/arcium/api/computation-history"),
            ("get", "/arcium/api/functions"),
        ],
    )
    def test_protected_routes_require_token(self, client, method, path):
        response = getattr(client, method)(path)
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_wrong_token_rejected(self, client, arcium):
        response = client.get("/arcium/api/network-status", headers={"Authorization": "Bearer nope"})

        assert response.status_code == 401
        arcium.get_network_status.assert_not_awaited()

    def test_no_configured_tokens_rejects_everything(self, settings, arcium):
        settings = settings.model_copy(update={"auth_tokens": []})
        client = TestClient(create_app(settings, client=arcium))

        response = client.get("/arcium/api/functions", headers=AUTH)

        assert response.status_code == 401

    def test_health_is_public(self, client, arcium):
        arcium.health_check.return_value = True

        response = client.get("/arcium/api/health")

        assert response.status_code == 200
        assert response.json() == {"healthy": True}


class TestEndpoints:
    """Each endpoint delegates to exactly one client operation."""

    def test_root_endpoint(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json() == {"message": "Arcium Gateway API", "version": "1.0.0"}

    def test_compute(self, client, arcium):
        arcium.run_encrypted_computation.return_value = ComputationResult(
            success=True, result=[1], computation_id="comp-1", execution_time=1500
        )

        response = client.post(
            "/arcium/api/compute",
            json={"functionName": "sum", "inputs": [1, 2], "metadata": {"a": 1}},
            headers=AUTH,
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "result": [1],
            "computationId": "comp-1",
            "error": None,
            "executionTime": 1500,
            "gasUsed": None,
        }
        request = arcium.run_encrypted_computation.await_args.args[0]
        assert request.function_name == "sum"
        assert request.inputs == [1, 2]
        assert request.metadata == {"a": 1}

    def test_compute_failure_is_returned_verbatim(self, client, arcium):
        arcium.run_encrypted_computation.return_value = ComputationResult(
            success=False, error="No available MXE found", execution_time=3
        )

        response = client.post(
            "/arcium/api/compute", json={"functionName": "riskAssessment", "inputs": [1]}, headers=AUTH
        )

        assert response.status_code == 200
        assert response.json()["success"] is False
        assert response.json()["error"] == "No available MXE found"

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"functionName": ""},
            {"functionName": "f", "inputs": "not-a-list"},
            {"functionName": "f", "metadata": [1]},
        ],
    )
    def test_compute_invalid_payload(self, client, arcium, body):
        response = client.post("/arcium/api/compute", json=body, headers=AUTH)

        assert response.status_code == 422
        arcium.run_encrypted_computation.assert_not_awaited()

    def test_risk_assessment(self, client, arcium):
        arcium.assess_risk.return_value = RiskAssessment(risk_score=30, computation_id="c")

        response = client.post(
            "/arcium/api/risk-assessment", json={"encryptedParams": {"blob": "x"}}, headers=AUTH
        )

        assert response.status_code == 200
        assert response.json() == {
            "riskScore": 30,
            "approved": False,
            "maxAmount": 0,
            "confidence": 0.5,
            "computationId": "c",
        }
        arcium.assess_risk.assert_awaited_once_with({"blob": "x"})

    def test_risk_assessment_failure(self, client, arcium):
        arcium.assess_risk.side_effect = RiskAssessmentFailed("Risk assessment failed: bad input")

        response = client.post("/arcium/api/risk-assessment", json={"encryptedParams": 1}, headers=AUTH)

        assert response.status_code == 502
        assert response.json()["detail"] == "Risk assessment failed: bad input"

    def test_risk_assessment_requires_params(self, client):
        response = client.post("/arcium/api/risk-assessment", json={}, headers=AUTH)
        assert response.status_code == 422

    def test_collateral_validation(self, client, arcium):
        arcium.validate_collateral.return_value = CollateralValidation(is_valid=True, current_ratio=2)

        response = client.post(
            "/arcium/api/collateral-validation",
            json={"collateralValue": 2000, "loanAmount": 1000},
            headers=AUTH,
        )

        assert response.status_code == 200
        assert response.json()["isValid"] is True
        assert response.json()["requiredRatio"] == 1.5
        arcium.validate_collateral.assert_awaited_once_with(2000, 1000)

    def test_collateral_validation_rejects_text(self, client):
        response = client.post(
            "/arcium/api/collateral-validation",
            json={"collateralValue": "lots", "loanAmount": 1000},
            headers=AUTH,
        )
        assert response.status_code == 422

    def test_interest_calculation(self, client, arcium):
        arcium.calculate_interest.return_value = InterestCalculation(interest=50, total_amount=1050)

        response = client.post(
            "/arcium/api/interest-calculation",
            json={"principal": 1000, "rate": 0.05, "time": 1},
            headers=AUTH,
        )

        assert response.status_code == 200
        assert response.json()["totalAmount"] == 1050
        arcium.calculate_interest.assert_awaited_once_with(1000, 0.05, 1)

    def test_interest_calculation_timeout(self, client, arcium):
        arcium.calculate_interest.side_effect = ComputationTimeout("timed out")

        response = client.post(
            "/arcium/api/interest-calculation",
            json={"principal": 1000, "rate": 0.05, "time": 1},
            headers=AUTH,
        )

        assert response.status_code == 504

    def test_computation_status(self, client, arcium):
        arcium.get_computation_status.return_value = ComputationStatus(
            id="comp-1", status="processing", progress=40
        )

        response = client.get("/arcium/api/computation/comp-1", headers=AUTH)

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == "comp-1"
        assert data["status"] == "processing"
        assert data["progress"] == 40
        arcium.get_computation_status.assert_awaited_once_with("comp-1")

    def test_computation_status_unavailable(self, client, arcium):
        arcium.get_computation_status.side_effect = StatusUnavailable("Failed to get computation status")

        response = client.get("/arcium/api/computation/comp-1", headers=AUTH)

        assert response.status_code == 502
        assert "Failed to get computation status" in response.json()["detail"]

    def test_network_status(self, client, arcium):
        arcium.get_network_status.return_value = NetworkStatus.disconnected()

        response = client.get("/arcium/api/network-status", headers=AUTH)

        assert response.status_code == 200
        assert response.json() == {
            "connected": False,
            "activeNodes": 0,
            "averageLatency": 0.0,
            "networkHealth": "disconnected",
            "mxeCount": 0,
            "totalComputations": 0,
        }

    def test_computation_history_default_limit(self, client, arcium):
        arcium.get_computation_history.return_value = []

        response = client.get("/arcium/api/computation-history", headers=AUTH)

        assert response.status_code == 200
        assert response.json() == []
        arcium.get_computation_history.assert_awaited_once_with(50)

    def test_computation_history_limit(self, client, arcium):
        arcium.get_computation_history.return_value = [
            ComputationStatus(id="comp-1", status="completed", progress=100)
        ]

        response = client.get("/arcium/api/computation-history?limit=5", headers=AUTH)

        assert response.status_code == 200
        assert response.json()[0]["id"] == "comp-1"
        arcium.get_computation_history.assert_awaited_once_with(5)

    @pytest.mark.parametrize("limit", ["0", "-3", "abc", "5000"])
    def test_computation_history_invalid_limit(self, client, limit):
        response = client.get(f"/arcium/api/computation-history?limit={limit}", headers=AUTH)
        assert response.status_code == 422

    def test_estimate_cost(self, client, arcium):
        arcium.estimate_computation_cost.return_value = CostEstimate()

        response = client.post(
            "/arcium/api/estimate-cost", json={"functionName": "f", "inputs": [1]}, headers=AUTH
        )

        assert response.status_code == 200
        assert response.json() == {
            "estimatedCost": 0.001,
            "estimatedGas": 100000,
            "estimatedTime": 30000,
            "currency": "SOL",
        }

    def test_functions(self, client, arcium):
        arcium.get_available_functions.return_value = ["riskAssessment"]

        response = client.get("/arcium/api/functions", headers=AUTH)

        assert response.status_code == 200
        assert response.json() == ["riskAssessment"]


def test_module_level_app_is_importable():
    from app.main import app

    paths = app.openapi()["paths"]
    assert "/arcium/api/compute" in paths
    assert "/arcium/api/health" in paths

"""Tests for the HTTP API."""

import json
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from bastion.api.main import app
from bastion.db.session import get_session

KNOWN_POSTURE = json.dumps({"isKnownDevice": True, "fingerprint": "fp-1"})


def headers(posture=KNOWN_POSTURE, **context) -> dict:
    return {"X-Device-Posture": posture, "X-Access-Context": json.dumps(context)}


@pytest.fixture
def client(session_factory):
    def override():
        with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestInfoEndpoints:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_root(self, client):
        assert "authorize" in client.get("/").json()["endpoints"]


class TestDevicePosture:
    def test_list(self, client):
        devices = client.get("/device-posture").json()
        assert [d["device_id"] for d in devices] == ["dev-001", "dev-002"]

    def test_get(self, client):
        device = client.get("/device-posture/dev-002").json()
        assert device["firewall_enabled"] is False
        assert device["compliance_score"] == 30

    def test_unknown_device(self, client):
        response = client.get("/device-posture/dev-404")
        assert response.status_code == 404
        assert "not found" in response.json()["error"]


class TestRiskAssessment:
    def test_compliant_user(self, client):
        response = client.post("/risk-assessment", json={"user_id": "user-1"})
        assert response.status_code == 200
        body = response.json()
        assert body["level"] == "LOW"
        assert body["decision"] == "ALLOW"
        assert "raw_score" not in body

    def test_non_compliant_user(self, client):
        body = client.post("/risk-assessment", json={"user_id": "user-2"}).json()
        assert body["score"] == 100
        assert body["block_access"] is True
        assert {f["name"] for f in body["factors"]} >= {"Firewall Disabled", "Low Compliance Score"}

    def test_unknown_user(self, client):
        response = client.post("/risk-assessment", json={"user_id": "nobody"})
        assert response.status_code == 404
        assert response.json() == {"error": "User not found: nobody"}

    def test_negative_amount_rejected(self, client):
        response = client.post("/risk-assessment", json={"user_id": "user-1", "transaction_amount": -5})
        assert response.status_code == 422


class TestAssess:
    def test_known_context(self, client):
        response = client.post("/assess", json={"user_id": "user-1"}, headers=headers(country="US"))
        assert response.status_code == 200
        assert response.json()["score"] == 0

    def test_new_country_for_low_tolerance_user(self, client):
        response = client.post(
            "/assess",
            json={"user_id": "user-2"},
            headers=headers(posture=json.dumps({"isKnownDevice": False}), country="BR"),
        )
        body = response.json()
        assert body["score"] == 35
        assert body["level"] == "HIGH"
        assert body["requires_mfa"] is True

    def test_malformed_headers_treated_as_absent(self, client):
        response = client.post(
            "/assess",
            json={"user_id": "user-1"},
            headers={"X-Device-Posture": "{not json", "X-Access-Context": "[]"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["score"] == 15
        assert body["level"] == "LOW"

    def test_unknown_user(self, client):
        assert client.post("/assess", json={"user_id": "nobody"}).status_code == 404


class TestAuthorize:
    def test_allowed(self, client):
        response = client.post("/authorize", json={"user_id": "user-1"}, headers=headers(country="US"))
        assert response.status_code == 200
        assert response.json() == {"success": True, "risk_level": "LOW", "score": 0}

    def test_tor_is_denied(self, client):
        response = client.post(
            "/authorize", json={"user_id": "user-1"}, headers=headers(country="US", isTor=True)
        )
        assert response.status_code == 403
        body = response.json()
        assert body["error"] == "Access denied"
        assert "Tor or anonymization network detected" in body["reason"]

    def test_low_reputation_requires_mfa(self, client):
        request_headers = headers(country="US", ipReputation=20)
        response = client.post("/authorize", json={"user_id": "user-1"}, headers=request_headers)
        assert response.status_code == 401
        assert response.json()["mfa_required"] is True

        verified = {**request_headers, "X-MFA-Verified": "true"}
        response = client.post("/authorize", json={"user_id": "user-1"}, headers=verified)
        assert response.status_code == 200
        assert response.json()["risk_level"] == "MEDIUM"

    def test_allowed_country_is_remembered(self, client):
        first = client.post("/assess", json={"user_id": "user-1"}, headers=headers(country="FR")).json()
        assert first["score"] == 20

        response = client.post("/authorize", json={"user_id": "user-1"}, headers=headers(country="FR"))
        assert response.status_code == 200

        after = client.post("/assess", json={"user_id": "user-1"}, headers=headers(country="FR")).json()
        assert after["score"] == 0

    def test_collector_payload_is_allowed(self, client):
        posture = json.dumps(
            {
                "diskEncrypted": True,
                "antivirus": True,
                "osVersion": "Windows 10/11",
                "os": "Windows",
                "isJailbroken": False,
                "fingerprint": "fp-1",
                "isKnownDevice": True,
                "lastSecurityUpdate": datetime.now(timezone.utc).isoformat(),
            }
        )
        response = client.post(
            "/authorize", json={"user_id": "user-1"}, headers=headers(posture=posture, country="US")
        )
        assert response.status_code == 200
        assert response.json()["score"] == 0

    def test_non_finite_header_value_is_not_a_server_error(self, client):
        response = client.post(
            "/assess",
            json={"user_id": "user-1"},
            headers={"X-Device-Posture": KNOWN_POSTURE, "X-Access-Context": '{"ipReputation": NaN}'},
        )
        assert response.status_code == 200
        assert response.json()["score"] == 0

    def test_denied_attempt_does_not_lock_out_owner(self, client):
        home = headers(country="US", latitude=40.71, longitude=-74.0)
        assert client.post("/authorize", json={"user_id": "user-1"}, headers=home).status_code == 200

        abroad = headers(country="UK", latitude=51.5, longitude=-0.12)
        assert client.post("/authorize", json={"user_id": "user-1"}, headers=abroad).status_code == 403

        response = client.post("/authorize", json={"user_id": "user-1"}, headers=home)
        assert response.status_code == 200
        assert response.json()["risk_level"] == "LOW"

    def test_impossible_travel_is_denied(self, client):
        client.post(
            "/authorize",
            json={"user_id": "user-1"},
            headers=headers(country="US", latitude=40.71, longitude=-74.0),
        )
        response = client.post(
            "/authorize",
            json={"user_id": "user-1"},
            headers=headers(country="UK", latitude=51.5, longitude=-0.12),
        )
        assert response.status_code == 403
        assert response.json()["risk_level"] == "CRITICAL"

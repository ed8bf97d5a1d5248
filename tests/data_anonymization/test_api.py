"""
Tests for the Anonymization API.

Tests cover:
- Request/response schema shape
- Anonymization and export endpoints
- Subject-scoped log history
- Admin-only statistics
- Method catalog
"""

import json

import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from data_anonymization.config import AnonymizationConfig
from data_anonymization.models import DataType
from data_anonymization.router import create_app
from data_anonymization.schemas import AnonymizationRequestCreate
from data_anonymization.stores import InMemoryLogStore, InMemoryRecordStore


SUBJECT_HEADERS = {"X-Subject-Id": "user-1"}
ADMIN_HEADERS = {"X-Subject-Id": "admin-1", "X-Subject-Role": "admin"}


# =============================================================
# FIXTURES
# =============================================================

@pytest.fixture
def log_store():
    return InMemoryLogStore()


@pytest.fixture
def client(log_store):
    records = InMemoryRecordStore({
        "user-1": {
            DataType.VITAL_SIGNS: [
                {"id": "vs_1", "user_id": "user-1", "type": "heart_rate",
                 "value": 130, "measured_at": "2024-03-14T15:30:00Z"},
            ],
            DataType.FAMILY_HISTORY: [
                {"id": "fh_1", "user_id": "user-1", "relation": "father",
                 "birth_year": 1948, "death_year": 2011},
            ],
        },
    })
    app = create_app(records, log_store, AnonymizationConfig(salt="api-pepper"))
    return TestClient(app)


# =============================================================
# TEST: Schemas
# =============================================================

class TestRequestSchema:
    """Test request schema validation."""

    def test_valid_request(self):
        """Minimal request is accepted."""
        request = AnonymizationRequestCreate(data_types=["vital_signs"], purpose="research")
        assert request.method is None

    def test_missing_purpose(self):
        """Purpose is required."""
        with pytest.raises(ValidationError):
            AnonymizationRequestCreate(data_types=["vital_signs"])

    def test_data_types_must_be_list(self):
        """Data types must be a list."""
        with pytest.raises(ValidationError):
            AnonymizationRequestCreate(data_types="vital_signs", purpose="research")


# =============================================================
# TEST: Anonymization Endpoints
# =============================================================

class TestAnonymizeEndpoint:
    """Test POST /anonymization."""

    def test_anonymize(self, client, log_store):
        """Anonymize returns 201 with generalized data."""
        response = client.post(
            "/anonymization",
            json={"data_types": ["vital_signs", "family_history"], "purpose": "research"},
            headers=SUBJECT_HEADERS,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["pseudonymous_subject_id"].startswith("anon_")
        assert body["data_count"] == 2
        assert body["data_sets"][0]["records"][0]["value"] == "≥ 120"
        assert body["data_sets"][1]["records"][0]["birth_year"] == 1940
        assert body["log"]["method"] == "k_anonymity"
        assert body["log"]["data_types"] == ["vital_signs", "family_history"]
        assert len(log_store) == 1

    def test_no_data(self, client, log_store):
        """No matching records still returns 201 and logs."""
        response = client.post(
            "/anonymization",
            json={"data_types": ["medications"], "purpose": "research"},
            headers=SUBJECT_HEADERS,
        )

        assert response.status_code == 201
        assert response.json()["data_count"] == 0
        assert response.json()["average_quality"] is None
        assert len(log_store) == 1

    @pytest.mark.parametrize("payload", [
        {"data_types": ["vital_signs", "x_rays"], "purpose": "research"},
        {"data_types": [], "purpose": "research"},
        {"data_types": ["vital_signs"], "purpose": " "},
    ])
    def test_invalid_request(self, client, log_store, payload):
        """Invalid requests return 400 and write no log."""
        response = client.post("/anonymization", json=payload, headers=SUBJECT_HEADERS)

        assert response.status_code == 400
        assert len(log_store) == 0

    def test_missing_subject_header(self, client):
        """Missing subject header returns 422."""
        response = client.post(
            "/anonymization",
            json={"data_types": ["vital_signs"], "purpose": "research"},
        )
        assert response.status_code == 422

    def test_log_store_failure(self, client, log_store, monkeypatch):
        """Log store failure returns 500."""
        def fail(draft):
            raise RuntimeError("disk full")

        monkeypatch.setattr(log_store, "append", fail)
        response = client.post(
            "/anonymization",
            json={"data_types": ["vital_signs"], "purpose": "research"},
            headers=SUBJECT_HEADERS,
        )
        assert response.status_code == 500


class TestExportEndpoint:
    """Test POST /anonymization/export."""

    def test_export_json(self, client, log_store):
        """JSON export is returned inline."""
        response = client.post(
            "/anonymization/export?format=json",
            json={"data_types": ["family_history"], "purpose": "research", "method": "basic"},
            headers=SUBJECT_HEADERS,
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/json")
        document = json.loads(response.text)
        assert document["metadata"]["method"] == "basic"
        assert document["data"]["family_history"][0]["birth_year"] == 1948
        assert len(log_store) == 1

    def test_export_csv(self, client):
        """CSV export is returned as an attachment."""
        response = client.post(
            "/anonymization/export?format=csv",
            json={"data_types": ["family_history"], "purpose": "research"},
            headers=SUBJECT_HEADERS,
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment" in response.headers["content-disposition"]
        lines = response.text.splitlines()
        assert lines[0] == "data_type,field,value"
        assert "family_history,death_year,2010" in lines

    def test_export_unknown_format(self, client):
        """Unknown export format returns 422."""
        response = client.post(
            "/anonymization/export?format=xml",
            json={"data_types": ["family_history"], "purpose": "research"},
            headers=SUBJECT_HEADERS,
        )
        assert response.status_code == 422


# =============================================================
# TEST: Audit Endpoints
# =============================================================

class TestLogsEndpoint:
    """Test GET /anonymization/logs."""

    def test_logs_scoped_to_subject(self, client):
        """Callers only see their own logs."""
        body = {"data_types": ["vital_signs"], "purpose": "research"}
        client.post("/anonymization", json=body, headers=SUBJECT_HEADERS)
        client.post("/anonymization", json={**body, "purpose": "insurance"}, headers=SUBJECT_HEADERS)
        client.post("/anonymization", json=body, headers={"X-Subject-Id": "user-2"})

        response = client.get("/anonymization/logs", headers=SUBJECT_HEADERS)

        assert response.status_code == 200
        logs = response.json()["logs"]
        assert len(logs) == 2
        assert {log["subject_id"] for log in logs} == {"user-1"}

        filtered = client.get("/anonymization/logs?purpose=insurance&limit=5", headers=SUBJECT_HEADERS)
        assert [log["purpose"] for log in filtered.json()["logs"]] == ["insurance"]

    def test_limit_clamped_to_configured_max(self, log_store):
        """Large limits are clamped to the configured maximum."""
        config = AnonymizationConfig(salt="api-pepper", default_log_limit=2, max_log_limit=3)
        client = TestClient(create_app(InMemoryRecordStore(), log_store, config))
        body = {"data_types": ["vital_signs"], "purpose": "research"}
        for _ in range(5):
            client.post("/anonymization", json=body, headers=SUBJECT_HEADERS)

        response = client.get("/anonymization/logs?limit=500", headers=SUBJECT_HEADERS)

        assert response.status_code == 200
        assert len(response.json()["logs"]) == 3
        assert len(client.get("/anonymization/logs", headers=SUBJECT_HEADERS).json()["logs"]) == 2

    def test_limit_must_be_positive(self, client):
        """Zero limit returns 422."""
        response = client.get("/anonymization/logs?limit=0", headers=SUBJECT_HEADERS)
        assert response.status_code == 422


class TestStatsEndpoint:
    """Test GET /anonymization/stats."""

    def test_requires_admin(self, client):
        """Stats need the admin role."""
        assert client.get("/anonymization/stats", headers=SUBJECT_HEADERS).status_code == 403
        assert client.get("/anonymization/stats").status_code == 403

    def test_stats(self, client):
        """Admin sees aggregate stats."""
        body = {"data_types": ["vital_signs", "family_history"], "purpose": "research"}
        client.post("/anonymization", json=body, headers=SUBJECT_HEADERS)

        response = client.get("/anonymization/stats", headers=ADMIN_HEADERS)

        assert response.status_code == 200
        stats = response.json()
        assert stats["total_anonymizations"] == 1
        assert stats["data_type_stats"] == {"vital_signs": 1, "family_history": 1}
        assert stats["purpose_stats"] == {"research": 1}
        assert stats["quality_stats"]["average_quality"] == 85.5


class TestQualityEndpoint:
    """Test GET /anonymization/quality/{pseudonymous_subject_id}."""

    def test_quality_of_own_anonymization(self, client):
        """Quality report for the caller's pseudonym."""
        created = client.post(
            "/anonymization",
            json={"data_types": ["vital_signs"], "purpose": "research"},
            headers=SUBJECT_HEADERS,
        ).json()
        pseudonym = created["pseudonymous_subject_id"]

        response = client.get(f"/anonymization/quality/{pseudonym}", headers=SUBJECT_HEADERS)

        assert response.status_code == 200
        report = response.json()
        assert report["pseudonymous_subject_id"] == pseudonym
        assert set(report["quality_metrics"]) == {"data_utility", "privacy_protection", "data_quality"}
        assert len(report["recommendations"]) == 2

    def test_unknown_pseudonym(self, client):
        """Unknown pseudonym returns 404."""
        response = client.get("/anonymization/quality/anon_ffffffffffffffff", headers=SUBJECT_HEADERS)
        assert response.status_code == 404

    def test_other_subjects_pseudonym(self, client):
        """Another subject's pseudonym returns 404."""
        created = client.post(
            "/anonymization",
            json={"data_types": ["vital_signs"], "purpose": "research"},
            headers={"X-Subject-Id": "user-2"},
        ).json()

        response = client.get(
            f"/anonymization/quality/{created['pseudonymous_subject_id']}",
            headers=SUBJECT_HEADERS,
        )
        assert response.status_code == 404


class TestMethodsEndpoint:
    """Test GET /anonymization/methods."""

    def test_catalog(self, client):
        """Catalog lists every method with parameters."""
        response = client.get("/anonymization/methods")

        assert response.status_code == 200
        methods = {m["name"]: m for m in response.json()["methods"]}
        assert set(methods) == {
            "basic", "k_anonymity", "l_diversity", "t_closeness", "differential_privacy",
        }
        assert methods["k_anonymity"]["parameters"]["k"]["default"] == 5
        assert methods["differential_privacy"]["parameters"]["epsilon"]["default"] == 1.0

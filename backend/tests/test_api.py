"""Tests for the unit alias REST API endpoints.

Tests the alias endpoints using TestClient.
"""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from unittags.app import create_app
from unittags.config import AppConfig, UnitTagsConfig
from unittags.decoders.moto_alias_encoders import build_phase1_fragments, build_phase2_fragments
from unittags.store import UnitTagStore


@pytest.fixture
def client(rules_file: Path, ota_file: Path) -> TestClient:
    """Create a test client backed by the fixture rule file and an empty log."""
    cfg = AppConfig(unit_tags=UnitTagsConfig(file=str(rules_file), ota_file=str(ota_file)))
    return TestClient(create_app(cfg))


class TestUnitAliasAPI:
    def test_get_rule_alias(self, client: TestClient) -> None:
        response = client.get("/api/v1/aliases/units/100")
        assert response.status_code == 200
        assert response.json() == {"unitId": 100, "alias": "Dispatch", "mode": "user_first"}

    def test_get_unknown_unit(self, client: TestClient) -> None:
        response = client.get("/api/v1/aliases/units/200")
        assert response.status_code == 200
        assert response.json()["alias"] == ""

    def test_non_numeric_unit_rejected(self, client: TestClient) -> None:
        response = client.get("/api/v1/aliases/units/abc")
        assert response.status_code == 422

    def test_put_override(self, client: TestClient, ota_file: Path) -> None:
        response = client.put("/api/v1/aliases/units/100", json={"alias": "Command"})
        assert response.status_code == 200
        assert response.json() == {"unitId": 100, "alias": "Command", "changed": True}
        assert client.get("/api/v1/aliases/units/100").json()["alias"] == "Command"
        assert ",manual," in ota_file.read_text(encoding="utf-8")

        again = client.put("/api/v1/aliases/units/100", json={"alias": "Command"})
        assert again.json()["changed"] is False

    def test_put_empty_alias_rejected(self, client: TestClient) -> None:
        response = client.put("/api/v1/aliases/units/100", json={"alias": ""})
        assert response.status_code == 422


class TestModeAPI:
    def test_get_and_set_mode(self, client: TestClient) -> None:
        assert client.get("/api/v1/aliases/mode").json() == {"mode": "user_first"}
        response = client.put("/api/v1/aliases/mode", json={"mode": "none"})
        assert response.status_code == 200
        assert response.json() == {"mode": "none"}
        assert client.get("/api/v1/aliases/units/100").json()["alias"] == ""

    def test_unknown_mode_rejected(self, client: TestClient) -> None:
        response = client.put("/api/v1/aliases/mode", json={"mode": "loudest"})
        assert response.status_code == 400
        assert client.get("/api/v1/aliases/mode").json() == {"mode": "user_first"}


class TestOtaAPI:
    def test_phase1_ingest(self, client: TestClient) -> None:
        fragments = build_phase1_fragments(
            1234567, "ENGINE 7", wacn=0xBEE00, system_id=0x3A1, talkgroup=101
        )
        response = client.post(
            "/api/v1/aliases/ota",
            json={"phase": 1, "fragments": [f.hex() for f in fragments]},
        )
        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "radioId": 1234567,
            "alias": "ENGINE 7",
            "source": "MotoP25_FDMA",
            "wacn": "BEE00",
            "sys": "3A1",
            "talkgroupId": 101,
            "changed": True,
        }
        assert client.get("/api/v1/aliases/units/1234567").json()["alias"] == "ENGINE 7"

        learned = client.get("/api/v1/aliases/learned").json()
        assert len(learned) == 1
        assert learned[0]["unitId"] == 1234567
        assert learned[0]["needsEnrichment"] is False

    def test_phase2_ingest_is_idempotent(self, client: TestClient) -> None:
        fragments = [f.hex() for f in build_phase2_fragments(2345678, "MEDIC 4")]
        first = client.post("/api/v1/aliases/ota", json={"phase": 2, "fragments": fragments})
        second = client.post("/api/v1/aliases/ota", json={"phase": 2, "fragments": fragments})
        assert first.json()["changed"] is True
        assert second.json()["success"] is True
        assert second.json()["changed"] is False

    def test_failed_decode_reported(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/aliases/ota", json={"phase": 1, "fragments": ["1590", "1790"]}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert body["changed"] is False

    def test_bad_hex_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/aliases/ota", json={"phase": 1, "fragments": ["zz", "00", "00"]}
        )
        assert response.status_code == 400

    def test_too_many_fragments_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/aliases/ota", json={"phase": 2, "fragments": ["00"] * 11}
        )
        assert response.status_code == 422

    def test_unknown_phase_rejected(self, client: TestClient) -> None:
        response = client.post("/api/v1/aliases/ota", json={"phase": 3, "fragments": []})
        assert response.status_code == 422


class TestStatsAndHealth:
    def test_stats(self, client: TestClient, ota_file: Path) -> None:
        response = client.get("/api/v1/aliases/stats")
        assert response.status_code == 200
        assert response.json() == {
            "mode": "user_first",
            "ruleCount": 3,
            "learnedCount": 0,
            "needsEnrichment": 0,
            "learnedPath": str(ota_file),
        }

    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_injected_store(self) -> None:
        store = UnitTagStore("ota_first")
        store.add_rule("5", "Five")
        client = TestClient(create_app(AppConfig(), store=store))
        assert client.get("/api/v1/aliases/units/5").json() == {
            "unitId": 5,
            "alias": "Five",
            "mode": "ota_first",
        }

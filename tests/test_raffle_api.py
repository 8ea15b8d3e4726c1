"""
==============================================================================
Raffle Entry Notifier Tests
==============================================================================

Tests for /api/raffle endpoints and the entry service.

==============================================================================
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.core.exceptions import AppException
from app.schemas.raffle import RaffleEntryCreate
from app.services.raffle_service import RaffleService


TX_HASH = "0x" + "ab" * 32
USER = "0x" + "12" * 20


def entry_body(**overrides) -> dict:
    body = {"qrId": "abc", "txHash": TX_HASH, "userAddress": USER, "chain": "fuji"}
    body.update(overrides)
    return body


class TestEnterEndpoint:
    """Tests for POST /api/raffle/{raffle_id}/enter."""

    def test_entry_recorded(self, client: TestClient):
        response = client.post("/api/raffle/42/enter", json=entry_body())
        assert response.status_code == 200
        assert response.json() == {"ok": True}

    def test_reused_qr_is_conflict(self, client: TestClient):
        client.post("/api/raffle/42/enter", json=entry_body())

        response = client.post("/api/raffle/42/enter", json=entry_body(txHash="0x" + "cd" * 32))
        assert response.status_code == 409
        assert "already used" in response.text

    def test_same_qr_in_another_raffle(self, client: TestClient):
        client.post("/api/raffle/42/enter", json=entry_body())

        response = client.post("/api/raffle/43/enter", json=entry_body())
        assert response.status_code == 200

    def test_entries_without_qr_are_not_deduplicated(self, client: TestClient):
        first = client.post("/api/raffle/42/enter", json=entry_body(qrId=None))
        second = client.post("/api/raffle/42/enter", json=entry_body(qrId=""))

        assert first.status_code == 200
        assert second.status_code == 200

    def test_invalid_json(self, client: TestClient):
        response = client.post(
            "/api/raffle/42/enter",
            content=b"{not json",
            headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        assert response.text == "Invalid JSON body"

    def test_body_must_be_object(self, client: TestClient):
        response = client.post("/api/raffle/42/enter", json=["abc"])
        assert response.status_code == 400
        assert response.text == "Body must be a JSON object"

    def test_invalid_tx_hash(self, client: TestClient):
        response = client.post("/api/raffle/42/enter", json=entry_body(txHash="0x1234"))
        assert response.status_code == 400
        assert response.text.startswith("Invalid body: ")
        assert "txHash" in response.text
        assert "64 hex digits" in response.text

    def test_missing_user_address(self, client: TestClient):
        body = entry_body()
        del body["userAddress"]

        response = client.post("/api/raffle/42/enter", json=body)
        assert response.status_code == 400
        assert "userAddress" in response.text

    def test_unknown_chain(self, client: TestClient):
        response = client.post("/api/raffle/42/enter", json=entry_body(chain="ethereum"))
        assert response.status_code == 400
        assert "Unknown chain" in response.text

    def test_chain_defaults_to_configured_chain(self, client: TestClient):
        body = entry_body()
        del body["chain"]

        client.post("/api/raffle/42/enter", json=body)
        response = client.get("/api/raffle/42/entries")
        assert response.json()["entries"][0]["chain"] == "fuji"


class TestEntriesEndpoint:
    """Tests for GET /api/raffle/{raffle_id}/entries."""

    def test_lists_entries_for_raffle(self, client: TestClient):
        client.post("/api/raffle/42/enter", json=entry_body(qrId="a"))
        client.post("/api/raffle/42/enter", json=entry_body(qrId="b"))
        client.post("/api/raffle/7/enter", json=entry_body(qrId="c"))

        response = client.get("/api/raffle/42/entries")
        assert response.status_code == 200
        data = response.json()
        assert data["raffle_id"] == "42"
        assert data["total"] == 2
        assert sorted(e["qr_id"] for e in data["entries"]) == ["a", "b"]
        assert {e["user_address"] for e in data["entries"]} == {USER}
        assert {e["tx_hash"] for e in data["entries"]} == {TX_HASH}

    def test_limit(self, client: TestClient):
        for qr_id in ("a", "b", "c"):
            client.post("/api/raffle/42/enter", json=entry_body(qrId=qr_id))

        response = client.get("/api/raffle/42/entries", params={"limit": 2})
        assert response.json()["total"] == 2

    def test_empty_raffle(self, client: TestClient):
        response = client.get("/api/raffle/unknown/entries")
        assert response.json()["entries"] == []


class TestRaffleService:
    """Tests for the entry service."""

    def test_record_and_check(self, db: Session):
        service = RaffleService(db)
        data = RaffleEntryCreate.model_validate(entry_body())

        record = service.record_entry("42", data)

        assert record.id
        assert record.chain == "fuji"
        assert service.is_qr_used("42", "abc")
        assert not service.is_qr_used("42", "other")

    def test_duplicate_raises(self, db: Session):
        service = RaffleService(db)
        data = RaffleEntryCreate.model_validate(entry_body())
        service.record_entry("42", data)

        with pytest.raises(AppException) as exc_info:
            service.record_entry("42", data)

        assert exc_info.value.code == "QR_ALREADY_USED"
        assert exc_info.value.status_code == 409

    def test_qr_id_is_trimmed(self):
        data = RaffleEntryCreate.model_validate(entry_body(qrId="  abc  ", chain="FUJI"))

        assert data.qr_id == "abc"
        assert data.chain == "fuji"

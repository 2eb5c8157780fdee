"""Integration tests for the REST API adapter."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from ab_database.adapters.inbound.rest_api import create_app
from ab_database.application import ABDatabase


@pytest.fixture
def client(database: ABDatabase) -> TestClient:
    """Provide a test client bound to an open database."""
    return TestClient(create_app(database))


@pytest.mark.integration
class TestRestAPI:
    """Tests for /health, /stats and /actions."""

    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_stats(self, client: TestClient) -> None:
        response = client.get("/stats")

        assert response.status_code == 200
        body = response.json()
        assert body["open"] is True
        assert body["current_token"] is None
        assert body["next_token"] == 0

    def test_list_actions(self, client: TestClient) -> None:
        response = client.get("/actions")

        assert response.status_code == 200
        assert "querySelect" in response.json()

    def test_transaction_round_trip(self, client: TestClient) -> None:
        """Start, write, commit and read back over HTTP."""
        client.post("/actions/queryExecute", json={"query": "CREATE TABLE t (a INT)"})

        started = client.post("/actions/transactionStart", json={}).json()
        assert started == {"success": True, "result": 0, "error": None, "message": ""}

        inserted = client.post(
            "/actions/queryExecute",
            json={"query": "INSERT INTO t VALUES (5)", "transactionId": 0},
        ).json()
        assert inserted["success"] is True

        finished = client.post(
            "/actions/transactionFinish", json={"transactionId": 0, "commit": True}
        ).json()
        assert finished["success"] is True

        selected = client.post(
            "/actions/querySelect",
            json={"query": "SELECT a FROM t", "columnTypes": ["Int"]},
        ).json()
        assert selected["result"] == [[5]]

    def test_database_error_is_reported_in_body(self, client: TestClient) -> None:
        client.post("/actions/transactionStart", content=b"")

        response = client.post("/actions/transactionStart", json={"timeout": 0})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "other_transaction_already_in_progress"
        assert body["message"] == "other transaction already in progress(0)"

    def test_unknown_action_is_404(self, client: TestClient) -> None:
        response = client.post("/actions/dropEverything", json={})

        assert response.status_code == 404

    def test_malformed_arguments_are_400(self, client: TestClient) -> None:
        response = client.post("/actions/queryExecute", content=b"{not json")

        assert response.status_code == 400

    def test_unknown_column_type_is_400(self, client: TestClient) -> None:
        response = client.post(
            "/actions/querySelect",
            json={"query": "SELECT 1", "columnTypes": ["Decimal"]},
        )

        assert response.status_code == 400
        assert "unknown column type" in response.json()["detail"]

    def test_closed_database_is_503(self, client: TestClient, database: ABDatabase) -> None:
        database.close()

        assert client.get("/health").json()["status"] == "unhealthy"
        assert client.get("/stats").status_code == 503
        assert client.post("/actions/getTableNames", json={}).status_code == 503

    def test_string_token_is_400(self, client: TestClient) -> None:
        response = client.post(
            "/actions/queryExecute", json={"query": "SELECT 1", "transactionId": "0"}
        )

        assert response.status_code == 400
        assert "transactionId" in response.json()["detail"]

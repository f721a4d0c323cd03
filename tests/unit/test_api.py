"""Tests for REST API endpoints."""

from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from zkpool.api.routes import create_app
from zkpool.client.transaction import prepare_transaction
from zkpool.core.keypair import Keypair
from zkpool.core.note import Note
from zkpool.models.schemas import TransactionModel
from zkpool.utils.encoding import to_fixed_hex

ETHER = 10**18


@pytest.fixture
def client(pool):
    """Create test client."""
    return TestClient(create_app(pool))


@pytest.fixture
def deposit_tx(pool, prover, token):
    token.approve("alice", pool.address, ETHER // 10)
    return prepare_transaction(
        prover=prover,
        events=pool.events,
        tree_height=pool.state.accumulator.height,
        outputs=[Note(amount=ETHER // 10)],
    )


def transact_body(tx, sender="alice"):
    return {"sender": sender, "transaction": TransactionModel.from_domain(tx).model_dump()}


class TestHealthEndpoints:
    """Test health and system endpoints."""

    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "operational"

    def test_state_endpoint(self, client, pool):
        response = client.get("/state")
        assert response.status_code == 200
        data = response.json()
        assert data["num_commitments"] == 0
        assert data["num_nullifiers"] == 0
        assert data["current_root"] == hex(pool.current_root())
        assert data["tree_height"] == 5

    def test_statistics_endpoint(self, client):
        response = client.get("/statistics")
        assert response.status_code == 200
        assert response.json()["total_transactions"] == 0


class TestTransactEndpoint:
    """Test transaction submission."""

    def test_valid_deposit(self, client, deposit_tx):
        response = client.post("/transact", json=transact_body(deposit_tx))
        assert response.status_code == 200
        data = response.json()
        assert data["commitment_indices"] == [0, 1]
        assert data["states"][-1] == "complete"
        assert len(data["events"]) == 4

        state = client.get("/state").json()
        assert state["num_commitments"] == 2
        assert state["custody"] == ETHER // 10

    def test_invalid_proof(self, client, deposit_tx):
        response = client.post("/transact", json=transact_body(replace(deposit_tx, proof=bytes(64))))
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_proof"

    def test_double_spend(self, client, deposit_tx):
        assert client.post("/transact", json=transact_body(deposit_tx)).status_code == 200
        response = client.post("/transact", json=transact_body(deposit_tx))
        assert response.status_code == 409
        assert response.json()["code"] == "double_spend"

    def test_malformed_body(self, client):
        response = client.post("/transact", json={"transaction": {"proof": "zz"}})
        assert response.status_code == 400

    def test_oversized_nullifier(self, client, pool, deposit_tx):
        body = transact_body(deposit_tx)
        body["transaction"]["input_nullifiers"][0] = "0x" + "ff" * 33
        response = client.post("/transact", json=body)
        assert response.status_code == 400
        assert pool.events == []


class TestQueryEndpoints:
    """Test root, nullifier and event queries."""

    def test_root_status(self, client, pool, deposit_tx):
        old_root = pool.current_root()
        client.post("/transact", json=transact_body(deposit_tx))
        data = client.get(f"/roots/{to_fixed_hex(old_root)}").json()
        assert data["known"] is True
        assert data["current"] is False
        data = client.get(f"/roots/{hex(pool.current_root())}").json()
        assert data["current"] is True
        assert client.get("/roots/0x1234").json()["known"] is False

    def test_nullifier_status(self, client, deposit_tx):
        nullifier = to_fixed_hex(deposit_tx.public_inputs.input_nullifiers[0])
        assert client.get(f"/nullifiers/{nullifier}").json()["spent"] is False
        client.post("/transact", json=transact_body(deposit_tx))
        data = client.get(f"/nullifiers/{nullifier}").json()
        assert data["spent"] is True
        assert data["spent_at"] is not None

    def test_invalid_hex(self, client):
        assert client.get("/nullifiers/not-hex").status_code == 400

    def test_events(self, client, deposit_tx):
        client.post("/transact", json=transact_body(deposit_tx))
        data = client.get("/events", params={"since": 2}).json()
        assert data["total_count"] == 4
        assert [event["event"] for event in data["events"]] == ["NewNullifier", "NewNullifier"]


class TestRegisterEndpoint:
    """Test public key registration."""

    def test_register(self, client, pool):
        address = Keypair().address()
        response = client.post("/register", json={"owner": "alice", "sender": "alice", "public_key": address})
        assert response.status_code == 200
        assert response.json() == {"event": "PublicKey", "owner": "alice", "key": address}
        assert len(pool.events) == 1

    def test_register_bad_key(self, client):
        response = client.post("/register", json={"owner": "alice", "sender": "alice", "public_key": "0x1234"})
        assert response.status_code == 400

    def test_register_for_another_owner(self, client, pool):
        response = client.post(
            "/register", json={"owner": "alice", "sender": "mallory", "public_key": Keypair().address()}
        )
        assert response.status_code == 403
        assert response.json()["code"] == "unauthorized"
        assert pool.events == []

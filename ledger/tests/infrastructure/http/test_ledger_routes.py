from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from upline_ledger.domain.ledger import PayoutObligation
from upline_ledger.runtime.bootstrap import RuntimeContext, build_runtime
from upline_ledger.runtime.settings import Settings
from upline_ledger.server import create_app


class RejectingGateway:
    def transfer(self, obligation: PayoutObligation) -> str:
        raise TimeoutError("gateway timed out")


@pytest.fixture
def runtime(monkeypatch: pytest.MonkeyPatch) -> RuntimeContext:
    monkeypatch.setenv("OPTIMIZER_SEED", "17")
    monkeypatch.setenv("OPTIMIZER_WORKER_ENABLED", "false")
    return build_runtime(Settings())


@pytest.fixture
def client(runtime: RuntimeContext) -> TestClient:
    app: FastAPI = create_app(runtime)
    return TestClient(app)


def test_distribute_by_provider_then_query_balances(client: TestClient) -> None:
    client.post("/v1/uplines", json={"member": "provider", "referrer": "u1"})

    response = client.post("/v1/ledger/distributions", json={"volume": 10_000, "provider": "provider"})

    assert response.status_code == 200
    body = response.json()
    assert body["sequence"] == 1
    assert body["credited"] == {"provider": 3000, "u1": 2000, "reserve": 5000}
    assert body["remainder"] == 0
    assert [credit["amount"] for credit in body["records"][0]["credits"]] == [3000, 2000, 1500, 1000, 500, 2000]

    balance = client.get("/v1/ledger/balances/u1")
    assert balance.json() == {"recipient": "u1", "balance": 2000}
    assert client.get("/v1/ledger/balances/nobody").json()["balance"] == 0
    assert client.get("/v1/ledger/balances").json()["balances"]["reserve"] == 5000


def test_distribute_with_explicit_recipients_and_weights(client: TestClient) -> None:
    response = client.post(
        "/v1/ledger/distributions",
        json={"volume": 100, "recipients": ["a", "b"], "weights": [0.29, 0.71]},
    )

    assert response.status_code == 200
    assert response.json()["credited"] == {"a": 29, "b": 71}


@pytest.mark.parametrize(
    "payload",
    [
        {"volume": -1, "recipients": ["a"], "weights": [1.0]},
        {"volume": 100, "recipients": ["a", "b"], "weights": [0.6, 0.6]},
        {"volume": 100, "recipients": ["a", "b"], "weights": [1.0]},
        {"volume": 100},
    ],
)
def test_invalid_distribution_returns_400(client: TestClient, payload: dict[str, object]) -> None:
    response = client.post("/v1/ledger/distributions", json=payload)

    assert response.status_code == 400
    assert client.get("/v1/ledger/balances").json()["balances"] == {}


def test_unknown_fields_are_rejected(client: TestClient) -> None:
    response = client.post("/v1/ledger/distributions", json={"volume": 1, "provider": "p", "tip": 5})

    assert response.status_code == 422


def test_withdraw_then_nothing_left(client: TestClient, runtime: RuntimeContext) -> None:
    client.post("/v1/ledger/distributions", json={"volume": 50, "recipients": ["a"], "weights": [1.0]})

    first = client.post("/v1/ledger/withdrawals", json={"recipient": "a"})
    second = client.post("/v1/ledger/withdrawals", json={"recipient": "a"})

    assert first.status_code == 200
    assert first.json()["amount"] == 50
    assert first.json()["transfer_ref"] in runtime.payout_gateway.pending()
    assert second.status_code == 409


def test_settled_payout_leaves_pending_queue(client: TestClient, runtime: RuntimeContext) -> None:
    client.post("/v1/ledger/distributions", json={"volume": 50, "recipients": ["a"], "weights": [1.0]})
    transfer_ref = client.post("/v1/ledger/withdrawals", json={"recipient": "a"}).json()["transfer_ref"]

    pending = client.get("/v1/payouts/pending").json()["payouts"]
    assert [(payout["transfer_ref"], payout["amount"]) for payout in pending] == [(transfer_ref, 50)]

    settled = client.post(f"/v1/payouts/{transfer_ref}/ack")
    again = client.post(f"/v1/payouts/{transfer_ref}/ack")

    assert settled.status_code == 200
    assert settled.json()["recipient"] == "a"
    assert again.status_code == 404
    assert client.get("/v1/payouts/pending").json()["payouts"] == []
    assert runtime.payout_gateway.pending() == {}


def test_payout_failure_returns_502(runtime: RuntimeContext) -> None:
    runtime.withdrawal_service._gateway = RejectingGateway()
    client = TestClient(create_app(runtime))
    client.post("/v1/ledger/distributions", json={"volume": 50, "recipients": ["a"], "weights": [1.0]})

    response = client.post("/v1/ledger/withdrawals", json={"recipient": "a"})

    assert response.status_code == 502
    assert "retained" in response.json()["detail"]
    assert runtime.ledger.balance("a") == 0


def test_records_and_audit(client: TestClient) -> None:
    for volume in (10, 20, 30):
        client.post("/v1/ledger/distributions", json={"volume": volume, "recipients": ["a"], "weights": [1.0]})

    records = client.get("/v1/ledger/records", params={"limit": 2}).json()["records"]
    audit = client.get("/v1/ledger/audit").json()

    assert [record["volume"] for record in records] == [20, 30]
    assert audit == {"consistent": True, "mismatches": []}


def test_upline_registration_conflict_returns_400(client: TestClient) -> None:
    created = client.post("/v1/uplines", json={"member": "a", "referrer": "b"})
    conflict = client.post("/v1/uplines", json={"member": "b", "referrer": "a"})

    assert created.json() == {"member": "a", "referrer": "b", "upline": ["b"]}
    assert conflict.status_code == 400


def test_response_carries_request_id(client: TestClient) -> None:
    response = client.get("/status", headers={"x-request-id": "req-1"})

    assert response.headers["x-request-id"] == "req-1"

import pytest
from fastapi.testclient import TestClient

from stakeledger.ledger.rpc import api
from stakeledger.protocol.crypto.addresses import address_from_pubkey
from stakeledger.protocol.crypto.keys import generate_private_key, public_key_from_private
from stakeledger.protocol.types.common import ActionType
from stakeledger.protocol.types.tx import LedgerTx

from conftest import MAX_SUPPLY, MIN_DURATION, RATE_BPS


def make_key():
    priv = generate_private_key()
    pub = public_key_from_private(priv)
    return priv, pub, address_from_pubkey(pub)


def signed_tx(key, action, nonce, **fields) -> dict:
    priv, pub, address = key
    tx = LedgerTx(action=action, from_address=address, nonce=nonce, pub_key=pub.hex(), **fields)
    tx.sign(priv)
    return tx.model_dump(mode="json")


@pytest.fixture
def admin_key():
    return make_key()


@pytest.fixture
def client(make_ledger, admin_key):
    ledger = make_ledger()
    ledger.initialize(admin_key[2], MAX_SUPPLY)
    ledger.initialize_v2(admin_key[2], RATE_BPS, MIN_DURATION)
    api.ledger = ledger
    yield TestClient(api.app)
    api.ledger = None


def test_status(client, admin_key):
    resp = client.get("/status")
    assert resp.status_code == 200
    data = resp.json()
    assert data["logic"] == "v2"
    assert data["schema_version"] == 2
    assert data["administrator"] == admin_key[2]
    assert data["max_supply"] == str(MAX_SUPPLY)


def test_submit_tx_and_query(client, admin_key):
    user = make_key()
    resp = client.post("/tx", json=signed_tx(admin_key, ActionType.MINT, 0, to_address=user[2], amount=5_000))
    assert resp.status_code == 200
    assert resp.json()["status"] == "committed"

    balance = client.get(f"/balance/{user[2]}").json()
    assert balance["balance"] == "5000"
    assert balance["nonce"] == 0

    resp = client.post("/tx", json=signed_tx(user, ActionType.STAKE, 0, amount=1_000))
    assert resp.status_code == 200

    stake = client.get(f"/stake/{user[2]}").json()
    assert stake["staked_amount"] == "1000"
    assert stake["pending_reward"] == "0"

    events = client.get("/events", params={"kind": "Staked"}).json()["events"]
    assert events[-1]["fields"]["account"] == user[2]


def test_ledger_error_maps_to_400(client):
    user = make_key()
    resp = client.post("/tx", json=signed_tx(user, ActionType.STAKE, 0, amount=1))
    assert resp.status_code == 400
    assert resp.json()["code"] == "insufficient_balance"


def test_unauthorized_maps_to_403(client):
    user = make_key()
    resp = client.post("/tx", json=signed_tx(user, ActionType.PAUSE, 0))
    assert resp.status_code == 403
    assert resp.json()["code"] == "unauthorized"


def test_bad_nonce_rejected(client, admin_key):
    resp = client.post("/tx", json=signed_tx(admin_key, ActionType.PAUSE, 3))
    assert resp.status_code == 400
    assert resp.json()["code"] == "invalid_tx"


def test_metrics_endpoint(client, admin_key):
    user = make_key()
    client.post("/tx", json=signed_tx(admin_key, ActionType.MINT, 0, to_address=user[2], amount=42))

    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "stakeledger_total_supply 42.0" in resp.text
    assert "stakeledger_operations_total" in resp.text


def test_uninitialized_node_returns_503():
    api.ledger = None
    resp = TestClient(api.app).get("/status")
    assert resp.status_code == 503


def test_bad_upgrade_params_map_to_400(client, admin_key):
    plan = {"name": "Reconfigure", "logic": "v2", "setup_version": 2, "setup_params": {"bogus": 1}}
    resp = client.post("/tx", json=signed_tx(admin_key, ActionType.UPGRADE, 0, payload=plan))
    assert resp.status_code == 400
    assert resp.json()["code"] == "invalid_tx"


def test_balance_query_for_unknown_address_writes_nothing(client):
    root = api.ledger.state.compute_state_root()
    rows = len(api.ledger.db.get_state_by_prefix("acc:"))

    for i in range(20):
        balance = client.get(f"/balance/stk1nobody{i}").json()
        assert balance["balance"] == "0"
    client.get("/metrics")

    assert api.ledger.state.compute_state_root() == root
    assert len(api.ledger.db.get_state_by_prefix("acc:")) == rows

import argparse
import json
import os

import pytest

from stakeledger.cli.keystore import KeyStore
from stakeledger.cli import main as client_cli
from stakeledger.cli.main import format_units, to_units
from stakeledger.ledger.cli.node_cli import cmd_init
from stakeledger.ledger.core.ledger import Ledger
from stakeledger.protocol.config.params import DECIMALS, get_network
from stakeledger.protocol.crypto.addresses import is_valid_address
from stakeledger.protocol.types.common import ActionType


def test_unit_conversion():
    assert to_units("1") == 10**DECIMALS
    assert to_units("0.5") == 5 * 10**(DECIMALS - 1)
    assert format_units(15 * 10**(DECIMALS - 1)).startswith("1.5")

    with pytest.raises(ValueError):
        to_units("abc")
    with pytest.raises(ValueError):
        to_units("0." + "0" * DECIMALS + "1")


def test_keystore_roundtrip(db_dir):
    ks = KeyStore(os.path.join(db_dir, "keys"))
    created = ks.create_key("alice")

    assert is_valid_address(created["address"], "stk")
    assert ks.get_key("alice")["private_key"] == created["private_key"]
    assert [k["name"] for k in ks.list_keys()] == ["alice"]
    assert "private_key" not in ks.list_keys()[0]

    with pytest.raises(ValueError):
        ks.create_key("alice")

    imported = ks.import_key("bob", created["private_key"])
    assert imported["address"] == created["address"]
    with pytest.raises(ValueError):
        ks.import_key("carol", "abcd")

    assert ks.delete_key("bob")
    assert not ks.delete_key("bob")


def test_node_init_writes_bootable_genesis(db_dir):
    args = argparse.Namespace(datadir=db_dir, network="devnet", max_supply=None, premine=1_000)
    cmd_init(args)

    with open(os.path.join(db_dir, "genesis.json")) as f:
        genesis = json.load(f)
    admin = genesis["administrator"]
    assert genesis["max_supply"] == get_network("devnet").initial_max_supply
    assert genesis["alloc"] == {admin: 1_000}

    # Running init again keeps the existing key and genesis
    cmd_init(args)
    with open(os.path.join(db_dir, "genesis.json")) as f:
        assert json.load(f)["administrator"] == admin

    ledger = Ledger(os.path.join(db_dir, "ledger.db"), config=get_network("devnet"))
    try:
        assert ledger.schema_version == 2
        assert ledger.administrator == admin
        assert ledger.balance_of(admin) == 1_000
        assert ledger.min_staking_duration == 60
    finally:
        ledger.close()


@pytest.mark.parametrize("argv, action, amount, to_address", [
    (["transfer", "stk1bob", "1", "--from", "alice"], ActionType.TRANSFER, 10**DECIMALS, "stk1bob"),
    (["burn", "2", "--from", "alice"], ActionType.BURN, 2 * 10**DECIMALS, None),
    (["add-minter", "stk1bob", "--from", "admin"], ActionType.ADD_MINTER, 0, "stk1bob"),
    (["remove-minter", "stk1bob", "--from", "admin"], ActionType.REMOVE_MINTER, 0, "stk1bob"),
    (["transfer-admin", "stk1carol", "--from", "admin"], ActionType.TRANSFER_ADMIN, 0, "stk1carol"),
    (["pause", "--from", "admin"], ActionType.PAUSE, 0, None),
    (["unpause", "--from", "admin"], ActionType.UNPAUSE, 0, None),
    (["set-max-supply", "5", "--from", "admin"], ActionType.UPDATE_MAX_SUPPLY, 5 * 10**DECIMALS, None),
    (["set-rate", "250", "--from", "admin"], ActionType.SET_REWARD_RATE, 250, None),
    (["claim", "--from", "alice"], ActionType.CLAIM_REWARDS, 0, None),
])
def test_tx_subcommands_send_matching_action(monkeypatch, argv, action, amount, to_address):
    sent = []

    def fake_send(args, action, amount=0, to_address=None, payload=None):
        sent.append((args.from_name, action, amount, to_address))

    monkeypatch.setattr(client_cli, "send_action", fake_send)
    client_cli.main(["tx"] + argv)

    assert sent == [(argv[-1], action, amount, to_address)]


def test_tx_upgrade_sends_plan(monkeypatch):
    payloads = []
    monkeypatch.setattr(client_cli, "send_action",
                        lambda args, action, payload=None, **kwargs: payloads.append((action, payload)))

    client_cli.main(["tx", "upgrade", "EnableStaking", "v2", "--setup-version", "2",
                     "--setup-params", '{"reward_rate_bps": 500}', "--from", "admin"])

    assert payloads == [(ActionType.UPGRADE, {
        "name": "EnableStaking",
        "logic": "v2",
        "setup_version": 2,
        "setup_params": {"reward_rate_bps": 500},
    })]

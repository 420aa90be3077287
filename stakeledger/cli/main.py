# MIT License
# Copyright (c) 2025 Hashborn

import argparse
import sys
import json
import os
from decimal import Decimal, InvalidOperation
import requests
from .keystore import KeyStore
from ..protocol.types.tx import LedgerTx
from ..protocol.types.common import ActionType
from ..protocol.config.params import DECIMALS, DENOM

DEFAULT_NODE = "http://localhost:8000"

def get_node_url(args):
    return args.node or os.environ.get("STAKELEDGER_NODE", DEFAULT_NODE)

def to_units(amount: str) -> int:
    """'1.5' -> 1.5 * 10**DECIMALS minimal units."""
    try:
        value = Decimal(amount) * (10 ** DECIMALS)
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {amount}")
    if value != value.to_integral_value():
        raise ValueError(f"Amount {amount} has more than {DECIMALS} decimals")
    return int(value)

def format_units(units: int) -> str:
    return f"{Decimal(units) / (10 ** DECIMALS)} {DENOM}"

def fail(msg: str):
    print(f"Error: {msg}")
    sys.exit(1)

# --- Keys Commands ---
def cmd_keys_add(args):
    ks = KeyStore()
    try:
        key = ks.create_key(args.name)
    except ValueError as e:
        fail(str(e))
    print(f"Key '{args.name}' created.")
    print(f"Address: {key['address']}")
    print(f"Pubkey:  {key['public_key']}")
    print("Important: Private key saved unencrypted. Do not share!")

def cmd_keys_import(args):
    ks = KeyStore()
    try:
        key = ks.import_key(args.name, args.private_key)
    except ValueError as e:
        fail(str(e))
    print(f"Key '{args.name}' imported.")
    print(f"Address: {key['address']}")

def cmd_keys_list(args):
    keys = KeyStore().list_keys()
    if not keys:
        print("No keys found.")
        return

    print(f"{'Name':<15} {'Address':<45}")
    print("-" * 60)
    for k in keys:
        print(f"{k['name']:<15} {k['address']:<45}")

# --- Query Commands ---
def _get(url: str, path: str) -> dict:
    try:
        resp = requests.get(f"{url}{path}", timeout=10)
    except requests.RequestException as e:
        fail(f"Connection error: {e}")
    if resp.status_code != 200:
        fail(resp.text)
    return resp.json()

def cmd_query_status(args):
    print(json.dumps(_get(get_node_url(args), "/status"), indent=2))

def cmd_query_balance(args):
    data = _get(get_node_url(args), f"/balance/{args.address}")
    print(f"Balance: {format_units(int(data['balance']))}")
    print(f"Nonce: {data['nonce']}")

def cmd_query_stake(args):
    data = _get(get_node_url(args), f"/stake/{args.address}")
    print(f"Staked:   {format_units(int(data['staked_amount']))}")
    print(f"Pending:  {format_units(int(data['pending_reward']))}")
    print(f"Since:    {data['stake_started_at']}")
    if data.get("unlocks_at") is not None:
        print(f"Unlocks:  {data['unlocks_at']}")

# --- Tx Commands ---
def broadcast_tx(url: str, tx: LedgerTx):
    try:
        resp = requests.post(f"{url}/tx", json=tx.model_dump(mode="json"), timeout=10)
    except requests.RequestException as e:
        fail(f"Connection error: {e}")
    if resp.status_code == 200:
        print(f"Success! TxHash: {resp.json()['tx_hash']}")
    else:
        fail(f"broadcasting: {resp.text}")

def send_action(args, action: ActionType, amount: int = 0, to_address: str = None, payload: dict = None):
    sender_key = KeyStore().get_key(args.from_name)
    if not sender_key:
        fail(f"Key '{args.from_name}' not found.")

    url = get_node_url(args)
    from_addr = sender_key['address']
    nonce = _get(url, f"/balance/{from_addr}")['nonce']

    tx = LedgerTx(
        action=action,
        from_address=from_addr,
        to_address=to_address,
        amount=amount,
        nonce=nonce,
        pub_key=sender_key['public_key'],
        payload=payload or {},
    )
    tx.sign(bytes.fromhex(sender_key['private_key']))
    broadcast_tx(url, tx)

def cmd_tx_transfer(args):
    print(f"Sending {args.amount} {DENOM} to {args.to_address}...")
    send_action(args, ActionType.TRANSFER, to_units(args.amount), args.to_address)

def cmd_tx_mint(args):
    print(f"Minting {args.amount} {DENOM} to {args.to_address}...")
    send_action(args, ActionType.MINT, to_units(args.amount), args.to_address)

def cmd_tx_stake(args):
    print(f"Staking {args.amount} {DENOM}...")
    send_action(args, ActionType.STAKE, to_units(args.amount))

def cmd_tx_unstake(args):
    print(f"Unstaking {args.amount} {DENOM}...")
    send_action(args, ActionType.UNSTAKE, to_units(args.amount))

def cmd_tx_claim(args):
    send_action(args, ActionType.CLAIM_REWARDS)

def cmd_tx_set_rate(args):
    send_action(args, ActionType.SET_REWARD_RATE, args.bps)

def cmd_tx_set_min_duration(args):
    send_action(args, ActionType.SET_MIN_STAKING_DURATION, args.seconds)

def cmd_tx_burn(args):
    print(f"Burning {args.amount} {DENOM}...")
    send_action(args, ActionType.BURN, to_units(args.amount))

def cmd_tx_add_minter(args):
    send_action(args, ActionType.ADD_MINTER, to_address=args.address)

def cmd_tx_remove_minter(args):
    send_action(args, ActionType.REMOVE_MINTER, to_address=args.address)

def cmd_tx_transfer_admin(args):
    print(f"Handing administrator role to {args.address}...")
    send_action(args, ActionType.TRANSFER_ADMIN, to_address=args.address)

def cmd_tx_pause(args):
    send_action(args, ActionType.PAUSE)

def cmd_tx_unpause(args):
    send_action(args, ActionType.UNPAUSE)

def cmd_tx_set_max_supply(args):
    send_action(args, ActionType.UPDATE_MAX_SUPPLY, to_units(args.amount))

def cmd_tx_upgrade(args):
    plan = {"name": args.name, "logic": args.logic}
    if args.setup_version is not None:
        plan["setup_version"] = args.setup_version
        plan["setup_params"] = json.loads(args.setup_params)
    send_action(args, ActionType.UPGRADE, payload=plan)

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="StakeLedger Client CLI")
    parser.add_argument("--node", help="Node RPC URL (default: $STAKELEDGER_NODE or localhost:8000)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # Keys
    p_keys = subparsers.add_parser("keys", help="Manage keys")
    sp_keys = p_keys.add_subparsers(dest="subcommand", required=True)
    pk_add = sp_keys.add_parser("add", help="Create new key")
    pk_add.add_argument("name")
    pk_add.set_defaults(func=cmd_keys_add)
    pk_imp = sp_keys.add_parser("import", help="Import private key")
    pk_imp.add_argument("name")
    pk_imp.add_argument("--private-key", required=True)
    pk_imp.set_defaults(func=cmd_keys_import)
    pk_list = sp_keys.add_parser("list", help="List keys")
    pk_list.set_defaults(func=cmd_keys_list)

    # Query
    p_query = subparsers.add_parser("query", help="Query ledger state")
    sp_query = p_query.add_subparsers(dest="subcommand", required=True)
    pq_status = sp_query.add_parser("status", help="Ledger status")
    pq_status.set_defaults(func=cmd_query_status)
    pq_bal = sp_query.add_parser("balance", help="Get account balance")
    pq_bal.add_argument("address")
    pq_bal.set_defaults(func=cmd_query_balance)
    pq_stake = sp_query.add_parser("stake", help="Get stake and pending reward")
    pq_stake.add_argument("address")
    pq_stake.set_defaults(func=cmd_query_stake)

    # Tx
    p_tx = subparsers.add_parser("tx", help="Create and send transactions")
    sp_tx = p_tx.add_subparsers(dest="subcommand", required=True)

    def tx_parser(name, help_text, func):
        p = sp_tx.add_parser(name, help=help_text)
        p.add_argument("--from", dest="from_name", required=True, help="Key name to sign with")
        p.set_defaults(func=func)
        return p

    pt = tx_parser("transfer", f"Send {DENOM} tokens", cmd_tx_transfer)
    pt.add_argument("to_address")
    pt.add_argument("amount")
    pt = tx_parser("mint", "Mint new supply (minters only)", cmd_tx_mint)
    pt.add_argument("to_address")
    pt.add_argument("amount")
    pt = tx_parser("stake", "Stake tokens", cmd_tx_stake)
    pt.add_argument("amount")
    pt = tx_parser("unstake", "Unstake tokens and settle rewards", cmd_tx_unstake)
    pt.add_argument("amount")
    tx_parser("claim", "Claim pending staking rewards", cmd_tx_claim)
    pt = tx_parser("set-rate", "Set annual reward rate (admin)", cmd_tx_set_rate)
    pt.add_argument("bps", type=int)
    pt = tx_parser("set-min-duration", "Set minimum staking duration (admin)", cmd_tx_set_min_duration)
    pt.add_argument("seconds", type=int)
    pt = tx_parser("upgrade", "Swap processing logic (admin)", cmd_tx_upgrade)
    pt.add_argument("name")
    pt.add_argument("logic")
    pt.add_argument("--setup-version", type=int, default=None)
    pt.add_argument("--setup-params", default="{}", help="JSON object of setup arguments")
    pt = tx_parser("burn", "Destroy tokens from your balance", cmd_tx_burn)
    pt.add_argument("amount")
    pt = tx_parser("add-minter", "Grant the minter role (admin)", cmd_tx_add_minter)
    pt.add_argument("address")
    pt = tx_parser("remove-minter", "Revoke the minter role (admin)", cmd_tx_remove_minter)
    pt.add_argument("address")
    pt = tx_parser("transfer-admin", "Hand over the administrator role (admin)", cmd_tx_transfer_admin)
    pt.add_argument("address")
    tx_parser("pause", "Halt gated operations (admin)", cmd_tx_pause)
    tx_parser("unpause", "Re-enable gated operations (admin)", cmd_tx_unpause)
    pt = tx_parser("set-max-supply", "Change the supply ceiling (admin)", cmd_tx_set_max_supply)
    pt.add_argument("amount")
    return parser

def main(argv=None):
    args = build_parser().parse_args(argv)
    try:
        args.func(args)
    except ValueError as e:
        fail(str(e))

if __name__ == "__main__":
    main()

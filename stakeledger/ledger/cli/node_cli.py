# MIT License
# Copyright (c) 2025 Hashborn

import argparse
import asyncio
import json
import logging
import os
from uvicorn import Config, Server
from ...protocol.crypto.keys import generate_private_key, public_key_from_private
from ...protocol.crypto.addresses import address_from_pubkey
from ...protocol.config.params import get_network
from ..core.ledger import Ledger
from ..rpc import api # import module to set globals

logger = logging.getLogger(__name__)

def cmd_init(args):
    """Initialize node: create admin key and genesis.json in the data dir."""
    data_dir = args.datadir
    os.makedirs(data_dir, exist_ok=True)
    network = get_network(args.network)

    key_path = os.path.join(data_dir, "admin_key.hex")
    if not os.path.exists(key_path):
        priv = generate_private_key()
        with open(key_path, "w") as f:
            f.write(priv.hex())
        print("Generated new administrator key.")
    else:
        print(f"Key already exists at {key_path}")
        with open(key_path, "r") as f:
            priv = bytes.fromhex(f.read().strip())

    pub = public_key_from_private(priv)
    admin_addr = address_from_pubkey(pub, prefix=network.address_prefix)
    print(f"Address: {admin_addr}")
    print(f"PubKey Hex: {pub.hex()}")

    genesis_path = os.path.join(data_dir, "genesis.json")
    if os.path.exists(genesis_path):
        print(f"Genesis already exists at {genesis_path}")
    else:
        genesis_data = {
            "administrator": admin_addr,
            "max_supply": args.max_supply if args.max_supply is not None else network.initial_max_supply,
            "name": network.token_name,
            "symbol": network.token_symbol,
            "decimals": network.decimals,
            "reward_rate_bps": network.reward_rate_bps,
            "min_staking_duration": network.min_staking_duration,
            "alloc": {admin_addr: args.premine} if args.premine else {},
        }
        with open(genesis_path, "w") as f:
            f.write(json.dumps(genesis_data, indent=2))
        print(f"Wrote genesis to {genesis_path}")

    print(f"\nNode initialized in {data_dir}")

async def run_node_async(args):
    data_dir = args.datadir
    db_path = os.path.join(data_dir, "ledger.db")

    print("Starting StakeLedger node...")
    print(f"Data DB: {db_path}")
    print(f"RPC: {args.host}:{args.port}")

    ledger = Ledger(db_path, config=get_network(args.network))
    api.ledger = ledger

    config = Config(app=api.app, host=args.host, port=args.port, log_level="info")
    server = Server(config)
    try:
        await server.serve()
    except asyncio.CancelledError:
        pass
    finally:
        ledger.close()

def cmd_run(args):
    """Wrapper to run async main."""
    try:
        asyncio.run(run_node_async(args))
    except KeyboardInterrupt:
        pass

def main():
    parser = argparse.ArgumentParser(description="StakeLedger Node CLI")
    parser.add_argument("--datadir", default="./.stakeledger", help="Data directory")
    parser.add_argument("--network", default=None, help="devnet | testnet | mainnet (default: $STAKELEDGER_NETWORK or devnet)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init", help="Initialize node configuration")
    init_parser.add_argument("--max-supply", type=int, default=None, help="Override initial max supply (minimal units)")
    init_parser.add_argument("--premine", type=int, default=0, help="Amount minted to the administrator at genesis")

    run_parser = subparsers.add_parser("run", help="Run the node")
    run_parser.add_argument("--host", default="127.0.0.1", help="RPC Host")
    run_parser.add_argument("--port", type=int, default=8000, help="RPC Port")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s %(levelname)s: %(message)s',
        datefmt='%H:%M:%S'
    )

    if args.command == "init":
        cmd_init(args)
    elif args.command == "run":
        cmd_run(args)

if __name__ == "__main__":
    main()

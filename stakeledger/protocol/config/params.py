# MIT License
# Copyright (c) 2025 Hashborn

import os
from typing import Dict

# Global Constants
DENOM = "stk"
DECIMALS = 18

MAX_UINT256 = 2**256 - 1
BPS_DENOMINATOR = 10_000
SECONDS_PER_DAY = 86_400
SECONDS_PER_YEAR = 365 * SECONDS_PER_DAY

# Reserved account holding every staked token. Not derivable from any key.
CUSTODY_ADDRESS = "stk1custody0000000000000000000000000000000"

LATEST_LOGIC = "v2"

class LedgerConfig:
    def __init__(self,
                 network_id: str,
                 token_name: str,
                 token_symbol: str,
                 initial_max_supply: int,
                 decimals: int = DECIMALS,
                 address_prefix: str = "stk",
                 # Staking params
                 reward_rate_bps: int = 500,
                 min_staking_duration: int = 7 * SECONDS_PER_DAY,
                 # Logic deployed on a fresh data dir
                 default_logic: str = LATEST_LOGIC,
                 # Bounded in-memory event history
                 max_events: int = 10_000):
        self.network_id = network_id
        self.token_name = token_name
        self.token_symbol = token_symbol
        self.initial_max_supply = initial_max_supply
        self.decimals = decimals
        self.address_prefix = address_prefix
        self.reward_rate_bps = reward_rate_bps
        self.min_staking_duration = min_staking_duration
        self.default_logic = default_logic
        self.max_events = max_events

NETWORKS: Dict[str, LedgerConfig] = {
    "devnet": LedgerConfig(
        network_id="devnet",
        token_name="StakeLedger Devnet",
        token_symbol="dSTK",
        initial_max_supply=1_000_000_000 * 10**DECIMALS,
        reward_rate_bps=500,
        min_staking_duration=60,
    ),
    "testnet": LedgerConfig(
        network_id="testnet",
        token_name="StakeLedger Testnet",
        token_symbol="tSTK",
        initial_max_supply=1_000_000_000 * 10**DECIMALS,
        reward_rate_bps=500,
        min_staking_duration=SECONDS_PER_DAY,
    ),
    "mainnet": LedgerConfig(
        network_id="mainnet",
        token_name="StakeLedger",
        token_symbol="STK",
        initial_max_supply=100_000_000 * 10**DECIMALS,
        reward_rate_bps=500,
        min_staking_duration=7 * SECONDS_PER_DAY,
    ),
}

def get_network(name: str = None) -> LedgerConfig:
    name = name or os.environ.get("STAKELEDGER_NETWORK", "devnet")
    if name not in NETWORKS:
        raise ValueError(f"Unknown network '{name}' (choose from {', '.join(NETWORKS)})")
    return NETWORKS[name]

CURRENT_NETWORK = get_network()

# MIT License
# Copyright (c) 2025 Hashborn

from pydantic import BaseModel, Field
from typing import List, Optional

class Account(BaseModel):
    """Base balance layer record."""
    address: str
    balance: int = 0
    nonce: int = 0

class SupplyInfo(BaseModel):
    total_supply: int = 0

class InitializerStorage(BaseModel):
    schema_version: int = 0

class LedgerStorageV1(BaseModel):
    """Supply ceiling, roles and pause gate (partition v1)."""
    name: str = ""
    symbol: str = ""
    decimals: int = 18
    administrator: Optional[str] = None
    minters: List[str] = Field(default_factory=list)
    max_supply: int = 0
    operations_allowed: bool = True

class StakingStorageV2(BaseModel):
    """Staking parameters and aggregate (partition v2)."""
    reward_rate_bps: int = 0
    min_staking_duration: int = 0
    total_staked: int = 0

class StakeRecord(BaseModel):
    """Per-account staking state (partition v2)."""
    address: str
    staked_amount: int = 0
    stake_started_at: int = 0
    banked_reward: int = 0

    @property
    def is_staked(self) -> bool:
        return self.staked_amount > 0

class LogicPointer(BaseModel):
    """Which logic version is authoritative for this data dir."""
    name: str
    version: int
    activated_at: int = 0

class LedgerClock(BaseModel):
    """Latest timestamp any operation has run at."""
    last_timestamp: int = 0

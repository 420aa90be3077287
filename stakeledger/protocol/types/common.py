# MIT License
# Copyright (c) 2025 Hashborn

from enum import Enum

class ActionType(str, Enum):
    TRANSFER = "TRANSFER"
    BURN = "BURN"

    # Supply (minters / admin)
    MINT = "MINT"
    UPDATE_MAX_SUPPLY = "UPDATE_MAX_SUPPLY"

    # Roles & gate (admin)
    ADD_MINTER = "ADD_MINTER"
    REMOVE_MINTER = "REMOVE_MINTER"
    TRANSFER_ADMIN = "TRANSFER_ADMIN"
    PAUSE = "PAUSE"
    UNPAUSE = "UNPAUSE"

    # Staking
    STAKE = "STAKE"
    UNSTAKE = "UNSTAKE"
    CLAIM_REWARDS = "CLAIM_REWARDS"
    SET_REWARD_RATE = "SET_REWARD_RATE"
    SET_MIN_STAKING_DURATION = "SET_MIN_STAKING_DURATION"

    # Logic swap (admin)
    UPGRADE = "UPGRADE"

class EventKind(str, Enum):
    INITIALIZED = "Initialized"
    TRANSFER = "Transfer"
    BURNED = "Burned"
    MINTED = "Minted"
    MAX_SUPPLY_UPDATED = "MaxSupplyUpdated"
    MINTER_ADDED = "MinterAdded"
    MINTER_REMOVED = "MinterRemoved"
    ADMIN_TRANSFERRED = "AdminTransferred"
    PAUSED = "Paused"
    UNPAUSED = "Unpaused"
    STAKED = "Staked"
    UNSTAKED = "Unstaked"
    REWARDS_CLAIMED = "RewardsClaimed"
    REWARD_RATE_UPDATED = "RewardRateUpdated"
    MIN_STAKING_DURATION_UPDATED = "MinStakingDurationUpdated"
    UPGRADE_AUTHORIZED = "UpgradeAuthorized"
    UPGRADED = "Upgraded"

class ProtocolError(Exception):
    pass

class ValidationError(ProtocolError):
    """Malformed request or unverifiable signed transaction."""
    code = "invalid_tx"

class LedgerError(ProtocolError):
    """Base class for ledger operation failures. Each subclass has a stable code."""
    code = "ledger_error"

class InvalidIdentity(LedgerError):
    code = "invalid_identity"

class InvalidAmount(LedgerError):
    code = "invalid_amount"

class InsufficientBalance(LedgerError):
    code = "insufficient_balance"

class SupplyCapExceeded(LedgerError):
    code = "supply_cap_exceeded"

class DurationNotMet(LedgerError):
    code = "duration_not_met"

class Unauthorized(LedgerError):
    code = "unauthorized"

class AlreadyInitialized(LedgerError):
    code = "already_initialized"

class VersionTooLow(LedgerError):
    code = "version_too_low"

class OperationsPaused(LedgerError):
    code = "operations_paused"

class UnsupportedOperation(LedgerError):
    code = "unsupported_operation"

class NoStakedTokens(LedgerError):
    # Declared for API completeness; no current code path raises it.
    code = "no_staked_tokens"

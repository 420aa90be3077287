# MIT License
# Copyright (c) 2025 Hashborn

"""StakeLedger: upgrade-safe token ledger with linear staking rewards."""

__version__ = "0.2.0"

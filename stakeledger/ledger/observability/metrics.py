# MIT License
# Copyright (c) 2025 Hashborn

"""
Prometheus Metrics Exporter

Exports ledger metrics in Prometheus format.

Metrics:
- Supply (total, max), staking aggregate, custody balance
- Schema version / active logic
- Operation counts and failures by error code
- Settled rewards: minted vs forfeited at the supply cap
"""

from prometheus_client import Counter, Gauge, CollectorRegistry, generate_latest

# Create registry for metrics
metrics_registry = CollectorRegistry()

# ═══════════════════════════════════════════════════════════════════
# SUPPLY METRICS
# ═══════════════════════════════════════════════════════════════════

total_supply = Gauge(
    'stakeledger_total_supply',
    'Total token supply',
    registry=metrics_registry
)

max_supply = Gauge(
    'stakeledger_max_supply',
    'Configured supply ceiling',
    registry=metrics_registry
)

# ═══════════════════════════════════════════════════════════════════
# STAKING METRICS
# ═══════════════════════════════════════════════════════════════════

total_staked = Gauge(
    'stakeledger_total_staked',
    'Total tokens currently staked',
    registry=metrics_registry
)

custody_balance = Gauge(
    'stakeledger_custody_balance',
    'Balance of the custody account holding staked tokens',
    registry=metrics_registry
)

reward_rate_bps = Gauge(
    'stakeledger_reward_rate_bps',
    'Annual reward rate in basis points',
    registry=metrics_registry
)

rewards_minted_total = Counter(
    'stakeledger_rewards_minted_total',
    'Staking rewards minted on settlement',
    registry=metrics_registry
)

rewards_forfeited_total = Counter(
    'stakeledger_rewards_forfeited_total',
    'Staking rewards skipped because they would exceed max supply',
    registry=metrics_registry
)

# ═══════════════════════════════════════════════════════════════════
# OPERATION METRICS
# ═══════════════════════════════════════════════════════════════════

schema_version = Gauge(
    'stakeledger_schema_version',
    'Highest initialized storage schema version',
    registry=metrics_registry
)

logic_version = Gauge(
    'stakeledger_logic_version',
    'Version of the active processing logic',
    registry=metrics_registry
)

operations_total = Counter(
    'stakeledger_operations_total',
    'Committed ledger operations',
    ['action'],
    registry=metrics_registry
)

failed_operations_total = Counter(
    'stakeledger_failed_operations_total',
    'Rejected ledger operations',
    ['error'],
    registry=metrics_registry
)


def update_metrics(ledger):
    """
    Sync gauges from the ledger's committed state.

    Args:
        ledger: Ledger instance
    """
    from ...protocol.config.params import CUSTODY_ADDRESS

    state = ledger.state
    total_supply.set(state.supply.total_supply)
    custody_balance.set(state.get_account(CUSTODY_ADDRESS).balance)
    schema_version.set(state.schema_version)
    if ledger.logic is not None:
        logic_version.set(ledger.logic.version)

    if state.schema_version >= 1:
        max_supply.set(state.ledger_v1.max_supply)
    if state.schema_version >= 2:
        total_staked.set(state.staking_v2.total_staked)
        reward_rate_bps.set(state.staking_v2.reward_rate_bps)


def record_operation(action: str, rewards_minted: int = 0, rewards_forfeited: int = 0):
    operations_total.labels(action=action).inc()
    if rewards_minted:
        rewards_minted_total.inc(rewards_minted)
    if rewards_forfeited:
        rewards_forfeited_total.inc(rewards_forfeited)


def record_failure(error_code: str):
    failed_operations_total.labels(error=error_code).inc()


def get_metrics() -> bytes:
    """Render the registry in Prometheus text format."""
    return generate_latest(metrics_registry)

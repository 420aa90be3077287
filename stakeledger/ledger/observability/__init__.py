# MIT License
# Copyright (c) 2025 Hashborn

"""
Observability Module

Provides Prometheus metrics for the ledger.
"""

from .metrics import metrics_registry, update_metrics, get_metrics

__all__ = ['metrics_registry', 'update_metrics', 'get_metrics']

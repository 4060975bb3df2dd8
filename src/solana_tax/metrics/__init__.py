"""Metrics — Prometheus metrics collection."""

from __future__ import annotations

from solana_tax.metrics.collector import EngineMetrics, MetricsCollector

__all__ = ["EngineMetrics", "MetricsCollector"]

"""Prometheus metrics for perpbook."""

from __future__ import annotations

from perpbook.monitoring.metrics import MetricsCollector

__all__ = ["MetricsCollector"]

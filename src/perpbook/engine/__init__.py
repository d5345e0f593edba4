"""Opportunity book engine: metrics, synthetic fallback, reconciliation, views."""

from perpbook.engine.metrics import DerivedMetrics, derive
from perpbook.engine.reconciler import BookReconciler, ReconcileResult, sort_book
from perpbook.engine.synthetic import SyntheticGenerator
from perpbook.engine.universe import InvalidAnchorError, Universe, UniverseError
from perpbook.engine.views import aggregate_pnl, filter_book, top_ideas, venue_counts

__all__ = [
    "BookReconciler",
    "DerivedMetrics",
    "InvalidAnchorError",
    "ReconcileResult",
    "SyntheticGenerator",
    "Universe",
    "UniverseError",
    "aggregate_pnl",
    "derive",
    "filter_book",
    "sort_book",
    "top_ideas",
    "venue_counts",
]

"""Customer intelligence analyses.

Builds on the foundation records to produce what the dashboard shows:

1. Dashboard snapshot - one-shot recompute from raw rows
2. Summary - headline metrics and lifecycle segment buckets
3. View - search, status/segment filters and sorting
4. Profile - per-customer insights, order and reservation history, admin patches
"""

from .dashboard import CustomerSnapshot, build_snapshot
from .profile import (
    CustomerPatch,
    InsightRow,
    build_blacklist_patch,
    build_notes_patch,
    orders_for_customer,
    profile_insights,
    reservations_for_customer,
)
from .summary import (
    SEGMENT_DEFINITIONS,
    CustomerMetrics,
    MetricCard,
    SegmentBucket,
    SegmentDefinition,
    metric_cards,
    summarize_metrics,
    summarize_segments,
)
from .view import SegmentThresholds, ViewOptions, view_customers

__all__ = [
    # Dashboard
    "CustomerSnapshot",
    "build_snapshot",
    # Summary
    "CustomerMetrics",
    "MetricCard",
    "SEGMENT_DEFINITIONS",
    "SegmentBucket",
    "SegmentDefinition",
    "metric_cards",
    "summarize_metrics",
    "summarize_segments",
    # View
    "SegmentThresholds",
    "ViewOptions",
    "view_customers",
    # Profile
    "CustomerPatch",
    "InsightRow",
    "build_blacklist_patch",
    "build_notes_patch",
    "orders_for_customer",
    "profile_insights",
    "reservations_for_customer",
]

"""Dashboard metrics and lifecycle segment summaries.

Answers the questions the customer dashboard headlines:
- How many customers are there, and how many are VIPs?
- How many orders does an average customer place?
- What is the average lifetime value?
- How is the base distributed across lifecycle segments?
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Sequence

from customer_intelligence.foundation.enrichment import EnrichedCustomer
from customer_intelligence.foundation.status import CustomerStatus

# Placeholder shown in place of a trend when there is nothing to compare
NO_TREND = "—"


@dataclass(frozen=True)
class CustomerMetrics:
    """Aggregate metrics across a set of customers.

    Attributes
    ----------
    total:
        Number of customers.
    vip_count:
        Customers flagged as VIP.
    avg_orders:
        Mean orders per customer (0 for an empty set).
    avg_lifetime_value:
        Mean lifetime value per customer (0 for an empty set).
    """

    total: int
    vip_count: int
    avg_orders: float
    avg_lifetime_value: float

    def __post_init__(self) -> None:
        if self.total < 0:
            raise ValueError(f"Total customers cannot be negative: {self.total}")
        if not 0 <= self.vip_count <= self.total:
            raise ValueError(
                f"VIP count ({self.vip_count}) must be between 0 and total ({self.total})"
            )


@dataclass(frozen=True)
class SegmentDefinition:
    """Named dashboard segment grouping one or more statuses."""

    label: str
    statuses: frozenset[CustomerStatus]
    tone: str


@dataclass(frozen=True)
class SegmentBucket:
    """Population of one segment."""

    label: str
    count: int
    percent: int
    tone: str


@dataclass(frozen=True)
class MetricCard:
    """Headline card rendered at the top of the dashboard."""

    label: str
    value: str
    trend: str
    tone: str


#: Ordered segment definitions. Their status sets partition CustomerStatus.
SEGMENT_DEFINITIONS: tuple[SegmentDefinition, ...] = (
    SegmentDefinition("VIP Advocates", frozenset({CustomerStatus.VIP}), "positive"),
    SegmentDefinition(
        "Active Guests",
        frozenset({CustomerStatus.ACTIVE, CustomerStatus.ENGAGED}),
        "positive",
    ),
    SegmentDefinition("At-Risk", frozenset({CustomerStatus.AT_RISK}), "warning"),
    SegmentDefinition(
        "Dormant",
        frozenset({CustomerStatus.INACTIVE, CustomerStatus.PROSPECT}),
        "neutral",
    ),
    SegmentDefinition("Blacklisted", frozenset({CustomerStatus.BLACKLISTED}), "negative"),
)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _finite_or_zero(value: float | None) -> float:
    if value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def percent_of(count: int, total: int) -> int:
    """Whole-number percentage of ``count`` in ``total`` (0 when empty)."""
    if total == 0:
        return 0
    return round_half_up(count / total * 100)


def summarize_metrics(customers: Sequence[EnrichedCustomer]) -> CustomerMetrics:
    """Compute headline metrics.

    Examples
    --------
    >>> summarize_metrics([])
    CustomerMetrics(total=0, vip_count=0, avg_orders=0.0, avg_lifetime_value=0.0)
    """
    total = len(customers)
    if total == 0:
        return CustomerMetrics(total=0, vip_count=0, avg_orders=0.0, avg_lifetime_value=0.0)

    vip_count = sum(1 for customer in customers if customer.is_vip)
    total_orders = sum(customer.orders_count or 0 for customer in customers)
    total_lifetime = sum(_finite_or_zero(customer.lifetime_value) for customer in customers)

    return CustomerMetrics(
        total=total,
        vip_count=vip_count,
        avg_orders=total_orders / total,
        avg_lifetime_value=total_lifetime / total,
    )


def summarize_segments(customers: Sequence[EnrichedCustomer]) -> list[SegmentBucket]:
    """Count customers per lifecycle segment.

    Buckets are always returned in :data:`SEGMENT_DEFINITIONS` order, with
    zero counts for an empty input.

    Examples
    --------
    >>> [bucket.label for bucket in summarize_segments([])]
    ['VIP Advocates', 'Active Guests', 'At-Risk', 'Dormant', 'Blacklisted']
    """
    total = len(customers)
    buckets: list[SegmentBucket] = []
    for definition in SEGMENT_DEFINITIONS:
        count = sum(1 for customer in customers if customer.status in definition.statuses)
        buckets.append(
            SegmentBucket(
                label=definition.label,
                count=count,
                percent=percent_of(count, total),
                tone=definition.tone,
            )
        )
    return buckets


def format_currency(value: float | None) -> str:
    """Whole-dollar currency string, e.g. ``$1,235``."""
    amount = _finite_or_zero(value)
    sign = "-" if amount < 0 else ""
    return f"{sign}${round_half_up(abs(amount)):,}"


def metric_cards(metrics: CustomerMetrics) -> list[MetricCard]:
    """Render metrics as the four dashboard cards."""
    if metrics.total == 0:
        return [
            MetricCard("Total Customers", "0", NO_TREND, "neutral"),
            MetricCard("VIP Customers", "0", NO_TREND, "neutral"),
            MetricCard("Average Orders", "0", NO_TREND, "neutral"),
            MetricCard("Avg. Lifetime Value", "$0", NO_TREND, "neutral"),
        ]

    vip_pct = percent_of(metrics.vip_count, metrics.total)
    return [
        MetricCard(
            "Total Customers",
            f"{metrics.total:,}",
            f"{metrics.vip_count} VIP",
            "neutral",
        ),
        MetricCard("VIP Customers", f"{metrics.vip_count:,}", f"{vip_pct}%", "positive"),
        MetricCard("Average Orders", f"{metrics.avg_orders:.1f}", "per customer", "neutral"),
        MetricCard(
            "Avg. Lifetime Value",
            format_currency(metrics.avg_lifetime_value),
            "per customer",
            "neutral",
        ),
    ]

"""One-shot customer dashboard snapshot.

The dashboard never patches a previous result: on every change signal it
re-reads the raw rows and recomputes the whole snapshot from scratch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Mapping

from customer_intelligence.analyses.summary import (
    CustomerMetrics,
    SegmentBucket,
    summarize_metrics,
    summarize_segments,
)
from customer_intelligence.foundation.enrichment import EnrichedCustomer, enrich
from customer_intelligence.foundation.order_aggregation import aggregate_orders
from customer_intelligence.foundation.records import (
    load_customer_records,
    load_order_records,
    parse_timestamp,
)
from customer_intelligence.foundation.status import utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CustomerSnapshot:
    """Everything the dashboard renders, computed at one instant."""

    customers: list[EnrichedCustomer]
    metrics: CustomerMetrics
    segments: list[SegmentBucket]
    computed_at: datetime


def build_snapshot(
    customer_rows: Iterable[Mapping[str, Any]],
    order_rows: Iterable[Mapping[str, Any]],
    now: datetime | None = None,
) -> CustomerSnapshot:
    """Normalise raw rows, aggregate orders, enrich customers and summarise.

    Parameters
    ----------
    customer_rows:
        Raw ``customers`` rows as returned by the store.
    order_rows:
        Raw ``orders`` rows as returned by the store.
    now:
        Reference instant; defaults to the current UTC time.

    Returns
    -------
    CustomerSnapshot
        Identical inputs and ``now`` always produce an equal snapshot.
    """
    computed_at = parse_timestamp(now) if now is not None else utc_now()

    customers = load_customer_records(customer_rows)
    orders = load_order_records(order_rows)
    by_id, by_email = aggregate_orders(orders)
    enriched = enrich(customers, by_id, by_email, computed_at)

    snapshot = CustomerSnapshot(
        customers=enriched,
        metrics=summarize_metrics(enriched),
        segments=summarize_segments(enriched),
        computed_at=computed_at,
    )
    logger.info(
        f"Built customer snapshot: {len(customers)} customers, {len(orders)} orders "
        f"({len(by_id)} id buckets, {len(by_email)} email buckets)"
    )
    return snapshot

"""Filter and sort enriched customers for display.

Stages run in a fixed order, each operating on the previous stage's output:
text search, status filter, segment filter, then sort. The input sequence
is never mutated.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Literal, Sequence

from pydantic import BaseModel, ConfigDict, Field

from customer_intelligence.foundation.enrichment import EnrichedCustomer
from customer_intelligence.foundation.records import parse_timestamp
from customer_intelligence.foundation.status import CustomerStatus, days_between, utc_now

SegmentName = Literal["all", "vip", "highLtv", "repeat", "new", "dormant"]
SortKey = Literal["recent", "ltv", "orders", "name"]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class SegmentThresholds:
    """Thresholds behind the segment filters.

    Attributes
    ----------
    high_ltv:
        Minimum lifetime value for the ``highLtv`` segment.
    dormant_days:
        Minimum days since last order/visit for the ``dormant`` segment.
    repeat_count:
        Minimum orders or visits for the ``repeat`` segment.
    """

    high_ltv: float = 500.0
    dormant_days: int = 90
    repeat_count: int = 3


DEFAULT_THRESHOLDS = SegmentThresholds()


class ViewOptions(BaseModel):
    """Display options selected in the dashboard toolbar."""

    model_config = ConfigDict(frozen=True)

    search: str = Field(default="", description="Case-insensitive text query")
    status: Literal["all"] | CustomerStatus = Field(
        default="all", description="Exact lifecycle status or 'all'"
    )
    segment: SegmentName = Field(default="all", description="Named segment filter")
    sort: SortKey = Field(default="recent", description="Sort order")


def matches_search(customer: EnrichedCustomer, query: str) -> bool:
    """Substring match over name, email and tags (case-insensitive)."""
    needle = query.lower()
    if customer.name and needle in customer.name.lower():
        return True
    if customer.email and needle in customer.email.lower():
        return True
    return any(needle in tag.lower() for tag in customer.tags)


def in_segment(
    customer: EnrichedCustomer,
    segment: SegmentName,
    now: datetime,
    thresholds: SegmentThresholds = DEFAULT_THRESHOLDS,
) -> bool:
    """Whether a customer belongs to a named segment."""
    if segment == "all":
        return True
    if segment == "vip":
        return customer.is_vip
    if segment == "highLtv":
        return (customer.lifetime_value or 0) >= thresholds.high_ltv
    if segment == "repeat":
        return (customer.orders_count or 0) >= thresholds.repeat_count or (
            customer.total_visits or 0
        ) >= thresholds.repeat_count
    if segment == "new":
        joined = parse_timestamp(customer.created_at)
        if joined is None:
            return False
        joined = joined.astimezone(now.tzinfo)
        return joined.month == now.month and joined.year == now.year
    if segment == "dormant":
        days = days_between(customer.last_order_at or customer.last_visit_date, now)
        return days is not None and days >= thresholds.dormant_days
    raise ValueError(f"Unknown segment: {segment}")


def _recent_key(customer: EnrichedCustomer) -> datetime:
    return (
        parse_timestamp(customer.last_order_at or customer.last_visit_date or customer.created_at)
        or _EPOCH
    )


def _name_key(customer: EnrichedCustomer) -> tuple[str, str]:
    # Accent- and case-insensitive primary key, exact name as the tie-breaker
    decomposed = unicodedata.normalize("NFKD", customer.name or "")
    base = "".join(char for char in decomposed if not unicodedata.combining(char))
    return base.casefold(), customer.name or ""


_SORTS: dict[str, tuple[Callable[[EnrichedCustomer], object], bool]] = {
    "recent": (_recent_key, True),
    "ltv": (lambda customer: customer.lifetime_value or 0, True),
    "orders": (lambda customer: customer.orders_count or 0, True),
    "name": (_name_key, False),
}


def sort_customers(customers: Sequence[EnrichedCustomer], sort: SortKey) -> list[EnrichedCustomer]:
    """Stable sort; equal keys keep their input order (also when descending)."""
    key, descending = _SORTS[sort]
    return sorted(customers, key=key, reverse=descending)


def view_customers(
    customers: Sequence[EnrichedCustomer],
    options: ViewOptions | None = None,
    now: datetime | None = None,
    thresholds: SegmentThresholds = DEFAULT_THRESHOLDS,
) -> list[EnrichedCustomer]:
    """Project customers into the filtered, sorted table view.

    Parameters
    ----------
    customers:
        Enriched customers (not modified).
    options:
        Search, status, segment and sort selections. Defaults show
        everything, most recent activity first.
    now:
        Reference instant for the ``new`` and ``dormant`` segments.
    thresholds:
        Segment thresholds; defaults reproduce the dashboard's constants.

    Returns
    -------
    list[EnrichedCustomer]
        A new list.
    """
    options = options or ViewOptions()
    reference = parse_timestamp(now) if now is not None else utc_now()

    data = list(customers)
    if options.search:
        data = [customer for customer in data if matches_search(customer, options.search)]
    if options.status != "all":
        data = [customer for customer in data if customer.status == options.status]
    if options.segment != "all":
        data = [
            customer
            for customer in data
            if in_segment(customer, options.segment, reference, thresholds)
        ]
    return sort_customers(data, options.sort)

"""Customer lifecycle status classification.

Every customer receives exactly one status. Relationship flags take
precedence (blacklist beats VIP), after which the status is derived from
the number of whole days since the customer's last known activity.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol

from customer_intelligence.foundation.records import parse_timestamp

# Recency thresholds in whole days (inclusive upper bounds)
ACTIVE_MAX_DAYS = 14
ENGAGED_MAX_DAYS = 45
AT_RISK_MAX_DAYS = 120

_SECONDS_PER_DAY = 24 * 60 * 60


class CustomerStatus(str, Enum):
    """Lifecycle status values, serialised exactly as their value."""

    VIP = "vip"
    BLACKLISTED = "blacklisted"
    ACTIVE = "active"
    ENGAGED = "engaged"
    AT_RISK = "at-risk"
    INACTIVE = "inactive"
    PROSPECT = "prospect"

    def __str__(self) -> str:
        return self.value


class StatusInputs(Protocol):
    """Fields the classifier reads from a (partially) enriched customer."""

    is_blacklisted: bool
    is_vip: bool
    last_order_at: Any
    last_visit_date: Any
    created_at: Any
    orders_count: int
    total_visits: int


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def days_between(start: Any, now: datetime | None = None) -> int | None:
    """Whole days elapsed from ``start`` to ``now`` (floored).

    Returns ``None`` when ``start`` is missing or cannot be parsed.

    >>> from datetime import datetime, timezone
    >>> days_between("2024-01-01T00:00:00Z", datetime(2024, 1, 15, 12, tzinfo=timezone.utc))
    14
    """
    parsed = parse_timestamp(start)
    if parsed is None:
        return None
    reference = parse_timestamp(now) if now is not None else utc_now()
    elapsed = (reference - parsed).total_seconds()
    return int(elapsed // _SECONDS_PER_DAY)


def last_activity(customer: StatusInputs) -> datetime | None:
    """First parseable of ``last_order_at``, ``last_visit_date``, ``created_at``."""
    for candidate in (
        customer.last_order_at,
        customer.last_visit_date,
        customer.created_at,
    ):
        parsed = parse_timestamp(candidate)
        if parsed is not None:
            return parsed
    return None


def classify(customer: StatusInputs, now: datetime | None = None) -> CustomerStatus:
    """Assign a lifecycle status to a customer.

    Precedence (first match wins):

    1. blacklisted
    2. VIP
    3. recency of last activity: no activity -> prospect, <= 14 days ->
       active, <= 45 -> engaged, <= 120 -> at-risk, older -> inactive when
       the customer ever ordered or visited, otherwise prospect.

    Parameters
    ----------
    customer:
        Any object exposing the :class:`StatusInputs` fields.
    now:
        Reference instant; defaults to the current UTC time.
    """
    if customer.is_blacklisted:
        return CustomerStatus.BLACKLISTED
    if customer.is_vip:
        return CustomerStatus.VIP

    days_since_activity = days_between(last_activity(customer), now)
    if days_since_activity is None:
        return CustomerStatus.PROSPECT
    if days_since_activity <= ACTIVE_MAX_DAYS:
        return CustomerStatus.ACTIVE
    if days_since_activity <= ENGAGED_MAX_DAYS:
        return CustomerStatus.ENGAGED
    if days_since_activity <= AT_RISK_MAX_DAYS:
        return CustomerStatus.AT_RISK
    if (customer.orders_count or 0) > 0 or (customer.total_visits or 0) > 0:
        return CustomerStatus.INACTIVE
    return CustomerStatus.PROSPECT

"""Combine customer records with order aggregates into enriched customers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Mapping

from customer_intelligence.foundation.order_aggregation import (
    OrderAggregate,
    lookup_aggregate,
)
from customer_intelligence.foundation.records import CustomerRecord
from customer_intelligence.foundation.status import CustomerStatus, classify, utc_now

logger = logging.getLogger(__name__)

_CITY_PREFIX = "city:"


@dataclass(frozen=True)
class EnrichedCustomer:
    """A customer as consumed by the dashboard.

    Carries every :class:`CustomerRecord` field plus the derived values
    below. Instances are recomputed from scratch on every snapshot and have
    no identity beyond the underlying record.

    Attributes
    ----------
    name:
        Display name (full name, then email, then a placeholder).
    lifetime_value:
        ``total_spent`` when stored, otherwise the order aggregate value.
    orders_count:
        Orders attributed to the customer (by id, falling back to email).
    last_order_at:
        Most recent order, else the last visit, else None.
    location:
        City/location from preferences or notes.
    status:
        Lifecycle status from :func:`classify`.
    """

    id: str | None
    name: str
    email: str | None = None
    full_name: str | None = None
    created_at: datetime | None = None
    is_vip: bool = False
    is_blacklisted: bool = False
    blacklist_reason: str | None = None
    tags: tuple[str, ...] = ()
    notes: str = ""
    preferences: Mapping[str, Any] = field(default_factory=dict)
    total_spent: float | None = None
    total_visits: int = 0
    last_visit_date: datetime | None = None
    dietary_restrictions: tuple[str, ...] = ()
    location: str | None = None
    lifetime_value: float = 0.0
    orders_count: int = 0
    last_order_at: datetime | None = None
    status: CustomerStatus = CustomerStatus.PROSPECT

    def as_dict(self) -> dict[str, object]:
        """Return a JSON-serialisable representation."""

        def iso(value: datetime | None) -> str | None:
            return value.isoformat() if value is not None else None

        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "status": str(self.status),
            "is_vip": self.is_vip,
            "is_blacklisted": self.is_blacklisted,
            "blacklist_reason": self.blacklist_reason,
            "tags": list(self.tags),
            "location": self.location,
            "dietary_restrictions": list(self.dietary_restrictions),
            "total_visits": self.total_visits,
            "orders_count": self.orders_count,
            "lifetime_value": self.lifetime_value,
            "last_order_at": iso(self.last_order_at),
            "last_visit_date": iso(self.last_visit_date),
            "created_at": iso(self.created_at),
        }


@dataclass
class _StatusView:
    # Fully populated inputs for the classifier, built before status exists.
    is_blacklisted: bool
    is_vip: bool
    last_order_at: datetime | None
    last_visit_date: datetime | None
    created_at: datetime | None
    orders_count: int
    total_visits: int


def resolve_location(preferences: Mapping[str, Any] | None, notes: str | None) -> str | None:
    """Derive a customer's location.

    ``preferences["city"]`` wins, then ``preferences["location"]``, then the
    first note line starting with ``city:`` (case-insensitive).

    >>> resolve_location({}, "Allergies: none\\nCity: Dhaka ")
    'Dhaka'
    >>> resolve_location({"location": "Uptown"}, "")
    'Uptown'
    """
    preferences = preferences or {}
    for key in ("city", "location"):
        value = preferences.get(key)
        if value:
            return str(value)

    if not notes:
        return None
    for line in notes.split("\n"):
        if line.lower().startswith(_CITY_PREFIX):
            # Text between the first and second colon, as in "City: X"
            value = line.split(":")[1].strip()
            return value or None
    return None


def enrich_customer(
    record: CustomerRecord,
    aggregate: OrderAggregate,
    now: datetime | None = None,
) -> EnrichedCustomer:
    """Enrich a single customer with its matched order aggregate."""
    lifetime_value = (
        record.total_spent if record.total_spent is not None else aggregate.lifetime_value
    )
    last_order_at = aggregate.last_order_at or record.last_visit_date

    status = classify(
        _StatusView(
            is_blacklisted=record.is_blacklisted,
            is_vip=record.is_vip,
            last_order_at=last_order_at,
            last_visit_date=record.last_visit_date,
            created_at=record.created_at,
            orders_count=aggregate.orders_count,
            total_visits=record.total_visits,
        ),
        now,
    )

    return EnrichedCustomer(
        id=record.id,
        name=record.display_name,
        email=record.email,
        full_name=record.full_name,
        created_at=record.created_at,
        is_vip=record.is_vip,
        is_blacklisted=record.is_blacklisted,
        blacklist_reason=record.blacklist_reason,
        tags=record.tags,
        notes=record.notes,
        preferences=record.preferences,
        total_spent=record.total_spent,
        total_visits=record.total_visits,
        last_visit_date=record.last_visit_date,
        dietary_restrictions=record.dietary_restrictions,
        location=resolve_location(record.preferences, record.notes),
        lifetime_value=lifetime_value,
        orders_count=aggregate.orders_count,
        last_order_at=last_order_at,
        status=status,
    )


def enrich(
    customers: Iterable[CustomerRecord],
    by_id: Mapping[str, OrderAggregate],
    by_email: Mapping[str, OrderAggregate],
    now: datetime | None = None,
) -> list[EnrichedCustomer]:
    """Enrich customer records with order aggregates and lifecycle status.

    Parameters
    ----------
    customers:
        Customer records; output preserves their order.
    by_id, by_email:
        Maps produced by :func:`aggregate_orders`.
    now:
        Reference instant for status classification. Resolved once so that
        every customer in the batch is classified against the same instant.

    Returns
    -------
    list[EnrichedCustomer]
        One enriched customer per input record.
    """
    reference = now or utc_now()
    enriched = [
        enrich_customer(
            record,
            lookup_aggregate(record.id, record.email, by_id, by_email),
            reference,
        )
        for record in customers
    ]
    logger.debug(f"Enriched {len(enriched)} customers as of {reference.isoformat()}")
    return enriched

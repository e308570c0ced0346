"""Customer profile details and admin update requests.

The profile drawer shows a handful of insight rows, the customer's most
recent orders and their latest table reservations. Admin actions
(blacklisting, editing notes) are expressed as patch requests for the
data-access layer; nothing here writes to the store.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Mapping

from customer_intelligence.analyses.summary import NO_TREND, format_currency
from customer_intelligence.foundation.enrichment import EnrichedCustomer
from customer_intelligence.foundation.records import (
    OrderRecord,
    ReservationRecord,
    normalize_email,
    parse_timestamp,
)

MANUAL_BLACKLIST_REASON = "Flagged manually by admin"
DEFAULT_ORDER_HISTORY_LIMIT = 20
DEFAULT_RESERVATION_HISTORY_LIMIT = 10


@dataclass(frozen=True)
class InsightRow:
    label: str
    value: str


@dataclass(frozen=True)
class CustomerPatch:
    """Update request for a single ``customers`` row."""

    id: str
    fields: Mapping[str, Any]


def _format_datetime(value: datetime | None) -> str:
    parsed = parse_timestamp(value)
    if parsed is None:
        return NO_TREND
    return f"{parsed:%b} {parsed.day}, {parsed.year}, {parsed:%I:%M %p}"


def _format_date(value: datetime | None) -> str:
    parsed = parse_timestamp(value)
    if parsed is None:
        return NO_TREND
    return f"{parsed:%b} {parsed.day}, {parsed.year}"


def profile_insights(customer: EnrichedCustomer) -> list[InsightRow]:
    """Insight rows shown at the top of the profile drawer."""
    status = str(customer.status) if customer.status else ""
    return [
        InsightRow("Lifetime Value", format_currency(customer.lifetime_value)),
        InsightRow("Orders", str(customer.orders_count or 0)),
        InsightRow("Total Visits", str(customer.total_visits or 0)),
        InsightRow("Last Order", _format_datetime(customer.last_order_at)),
        InsightRow("Last Visit", _format_date(customer.last_visit_date)),
        InsightRow("Status", status.replace("-", " ", 1) if status else NO_TREND),
    ]


def orders_for_customer(
    customer: EnrichedCustomer,
    orders: Iterable[OrderRecord],
    limit: int = DEFAULT_ORDER_HISTORY_LIMIT,
) -> list[OrderRecord]:
    """Most recent orders placed by a customer, matched by id or email.

    Orders with an unparseable timestamp sort last.
    """
    email = normalize_email(customer.email)
    if not customer.id and not email:
        return []

    matched = [
        order
        for order in orders
        if (customer.id and order.customer_id == customer.id)
        or (email and normalize_email(order.customer_email) == email)
    ]

    def order_key(order: OrderRecord) -> tuple[bool, float]:
        placed = parse_timestamp(order.created_at)
        return placed is not None, placed.timestamp() if placed else 0.0

    matched.sort(key=order_key, reverse=True)
    return matched[: max(limit, 0)]


def reservations_for_customer(
    customer: EnrichedCustomer,
    reservations: Iterable[ReservationRecord],
    limit: int = DEFAULT_RESERVATION_HISTORY_LIMIT,
) -> list[ReservationRecord]:
    """Latest table reservations booked under a customer's email.

    Reservations carry no customer id, so a customer without an email has
    none. Ordered by date, then time, newest first; missing dates sort last.
    """
    email = normalize_email(customer.email)
    if not email:
        return []

    matched = [
        reservation
        for reservation in reservations
        if normalize_email(reservation.customer_email) == email
    ]
    matched.sort(
        key=lambda r: (
            r.reservation_date is not None,
            r.reservation_date or "",
            r.reservation_time or "",
        ),
        reverse=True,
    )
    return matched[: max(limit, 0)]


def _require_id(customer: EnrichedCustomer) -> str:
    if not customer.id:
        raise ValueError(
            "Unable to update this record. Missing customer identifier.",
            {"email": customer.email},
        )
    return customer.id


def build_blacklist_patch(customer: EnrichedCustomer, blacklisted: bool) -> CustomerPatch:
    """Patch that adds a customer to, or lifts them from, the blacklist."""
    return CustomerPatch(
        id=_require_id(customer),
        fields={
            "is_blacklisted": blacklisted,
            "blacklist_reason": MANUAL_BLACKLIST_REASON if blacklisted else None,
        },
    )


def build_notes_patch(customer: EnrichedCustomer, notes: str) -> CustomerPatch:
    """Patch replacing a customer's admin notes."""
    return CustomerPatch(id=_require_id(customer), fields={"notes": notes})

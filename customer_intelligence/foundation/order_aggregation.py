"""Order aggregation keyed by customer identity.

Orders reference their customer either by account id (``user_id``) or by
the email used at checkout, and guest orders placed by email should still
count for a registered account. Every order is therefore folded into two
independent maps: one keyed by customer id and one keyed by normalised
email. An order carrying both keys updates both maps.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Mapping

from customer_intelligence.foundation.records import (
    OrderRecord,
    normalize_email,
    parse_amount,
    parse_timestamp,
)


@dataclass(frozen=True)
class OrderAggregate:
    """Summary of all orders attributed to one customer identity.

    Attributes
    ----------
    orders_count:
        Number of orders folded into the bucket.
    lifetime_value:
        Sum of order totals. Unparseable totals contribute 0.
    last_order_at:
        Most recent valid order timestamp, or None.
    """

    orders_count: int = 0
    lifetime_value: float = 0.0
    last_order_at: datetime | None = None


EMPTY_AGGREGATE = OrderAggregate()


def _fold(bucket: dict[str, object], amount: Decimal, ordered_at: datetime | None) -> None:
    bucket["orders_count"] += 1
    bucket["lifetime_value"] += amount
    if ordered_at is not None and (
        bucket["last_order_at"] is None or ordered_at > bucket["last_order_at"]
    ):
        bucket["last_order_at"] = ordered_at


def _freeze(buckets: dict[str, dict[str, object]]) -> dict[str, OrderAggregate]:
    return {
        key: OrderAggregate(
            orders_count=int(payload["orders_count"]),
            lifetime_value=float(payload["lifetime_value"]),
            last_order_at=payload["last_order_at"],
        )
        for key, payload in buckets.items()
    }


def aggregate_orders(
    orders: Iterable[OrderRecord],
) -> tuple[dict[str, OrderAggregate], dict[str, OrderAggregate]]:
    """Aggregate orders by customer id and by normalised customer email.

    Totals are accumulated as ``Decimal`` so the result does not depend on
    the order in which rows are folded.

    Parameters
    ----------
    orders:
        Order records in any order.

    Returns
    -------
    tuple[dict[str, OrderAggregate], dict[str, OrderAggregate]]
        ``(by_id, by_email)``. Keys that never appear have no bucket.

    Examples
    --------
    >>> from customer_intelligence.foundation.records import OrderRecord
    >>> by_id, by_email = aggregate_orders(
    ...     [OrderRecord(id="o1", customer_id="c1", customer_email=" A@B.com ", total="12.50")]
    ... )
    >>> by_id["c1"].orders_count, by_email["a@b.com"].lifetime_value
    (1, 12.5)
    """
    by_id: dict[str, dict[str, object]] = {}
    by_email: dict[str, dict[str, object]] = {}

    for order in orders:
        amount = Decimal(str(parse_amount(order.total)))
        ordered_at = parse_timestamp(order.created_at)

        keys = (
            (by_id, order.customer_id or None),
            (by_email, normalize_email(order.customer_email)),
        )
        for buckets, key in keys:
            if not key:
                continue
            bucket = buckets.setdefault(
                key,
                {
                    "orders_count": 0,
                    "lifetime_value": Decimal("0"),
                    "last_order_at": None,
                },
            )
            _fold(bucket, amount, ordered_at)

    return _freeze(by_id), _freeze(by_email)


def lookup_aggregate(
    customer_id: str | None,
    email: str | None,
    by_id: Mapping[str, OrderAggregate],
    by_email: Mapping[str, OrderAggregate],
) -> OrderAggregate:
    """Find the aggregate for a customer: id first, then email, else zero."""
    if customer_id and customer_id in by_id:
        return by_id[customer_id]
    normalised = normalize_email(email)
    if normalised and normalised in by_email:
        return by_email[normalised]
    return EMPTY_AGGREGATE

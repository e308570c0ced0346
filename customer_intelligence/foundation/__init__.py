"""Foundational building blocks for customer intelligence.

This package exposes the customer, order and reservation record
definitions, the dual-key order aggregation, lifecycle status
classification and the enrichment step that combines them.
"""

from .enrichment import EnrichedCustomer, enrich, enrich_customer, resolve_location
from .order_aggregation import (
    EMPTY_AGGREGATE,
    OrderAggregate,
    aggregate_orders,
    lookup_aggregate,
)
from .records import (
    CustomerRecord,
    OrderRecord,
    ReservationRecord,
    load_customer_records,
    load_order_records,
    load_reservation_records,
    normalize_email,
    parse_amount,
    parse_timestamp,
)
from .status import CustomerStatus, classify, days_between

__all__ = [
    "CustomerRecord",
    "CustomerStatus",
    "EMPTY_AGGREGATE",
    "EnrichedCustomer",
    "OrderAggregate",
    "OrderRecord",
    "ReservationRecord",
    "aggregate_orders",
    "classify",
    "days_between",
    "enrich",
    "enrich_customer",
    "load_customer_records",
    "load_order_records",
    "load_reservation_records",
    "lookup_aggregate",
    "normalize_email",
    "parse_amount",
    "parse_timestamp",
    "resolve_location",
]

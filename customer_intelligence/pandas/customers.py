"""Pandas DataFrame adapters for customer intelligence."""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd  # type: ignore

from customer_intelligence.analyses.dashboard import CustomerSnapshot, build_snapshot
from customer_intelligence.analyses.summary import SegmentBucket
from customer_intelligence.foundation.enrichment import EnrichedCustomer

CUSTOMER_COLUMNS = [
    "id",
    "name",
    "email",
    "status",
    "is_vip",
    "is_blacklisted",
    "orders_count",
    "lifetime_value",
    "total_visits",
    "last_order_at",
    "last_visit_date",
    "created_at",
    "location",
    "tags",
]


def customers_to_dataframe(customers: Sequence[EnrichedCustomer]) -> pd.DataFrame:
    """Convert enriched customers to a DataFrame.

    Args:
        customers: Sequence of EnrichedCustomer objects

    Returns:
        DataFrame with one row per customer in input order, columns as in
        CUSTOMER_COLUMNS. ``status`` holds the plain status string.

    Example:
        >>> snapshot = build_snapshot(customer_rows, order_rows)
        >>> df = customers_to_dataframe(snapshot.customers)
        >>> df[df["status"] == "at-risk"]
    """
    if not customers:
        return pd.DataFrame(columns=CUSTOMER_COLUMNS)

    rows = [
        {
            "id": c.id,
            "name": c.name,
            "email": c.email,
            "status": str(c.status),
            "is_vip": c.is_vip,
            "is_blacklisted": c.is_blacklisted,
            "orders_count": int(c.orders_count or 0),
            "lifetime_value": float(c.lifetime_value or 0),
            "total_visits": int(c.total_visits or 0),
            "last_order_at": c.last_order_at,
            "last_visit_date": c.last_visit_date,
            "created_at": c.created_at,
            "location": c.location,
            "tags": list(c.tags),
        }
        for c in customers
    ]
    return pd.DataFrame(rows, columns=CUSTOMER_COLUMNS)


def segments_to_dataframe(segments: Sequence[SegmentBucket]) -> pd.DataFrame:
    """Convert segment buckets to a DataFrame (label, count, percent, tone)."""
    return pd.DataFrame(
        [
            {
                "label": s.label,
                "count": s.count,
                "percent": s.percent,
                "tone": s.tone,
            }
            for s in segments
        ],
        columns=["label", "count", "percent", "tone"],
    )


def dataframe_to_rows(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """Convert a DataFrame of raw store rows to a list of dicts.

    NaN/NaT cells become None so that they read as absent values.

    Args:
        df: DataFrame with store column names (e.g. ``full_name``, ``user_id``)

    Returns:
        List of row dictionaries in DataFrame order
    """
    if df.empty:
        return []
    cleaned = df.astype(object).where(pd.notna(df), None)
    return cleaned.to_dict("records")


def build_snapshot_df(
    customers_df: pd.DataFrame,
    orders_df: pd.DataFrame,
    now: Optional[datetime] = None,
) -> CustomerSnapshot:
    """Build a dashboard snapshot from DataFrames of raw rows.

    Example:
        >>> customers_df = pd.read_parquet("customers.parquet")
        >>> orders_df = pd.read_parquet("orders.parquet")
        >>> snapshot = build_snapshot_df(customers_df, orders_df)
    """
    return build_snapshot(dataframe_to_rows(customers_df), dataframe_to_rows(orders_df), now)

"""Export customer views and dashboard summaries.

This module provides the CSV export behind the dashboard's "Export CSV"
button, the plain-text segment summary behind "Copy segment summary" and a
Markdown summary report for sharing a snapshot.
"""

from __future__ import annotations

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Sequence

import pandas as pd

from customer_intelligence.analyses.dashboard import CustomerSnapshot
from customer_intelligence.analyses.summary import SegmentBucket, format_currency, metric_cards
from customer_intelligence.foundation.enrichment import EnrichedCustomer
from customer_intelligence.foundation.records import parse_amount, parse_timestamp
from customer_intelligence.foundation.status import utc_now
from customer_intelligence.pandas.customers import customers_to_dataframe

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    "Name",
    "Email",
    "Status",
    "Orders",
    "Lifetime Value",
    "Last Order",
    "Joined",
]


def _isoformat(value: datetime | None) -> str:
    parsed = parse_timestamp(value)
    return parsed.isoformat() if parsed is not None else ""


def _bare_number(value: Any) -> int | float:
    # Integral amounts print without a decimal part: 999, not 999.0
    amount = parse_amount(value)
    return int(amount) if amount.is_integer() else amount


def _csv_frame(customers: Sequence[EnrichedCustomer]) -> pd.DataFrame:
    df = customers_to_dataframe(customers)
    return pd.DataFrame(
        {
            "Name": df["name"].fillna("").astype(str),
            "Email": df["email"].fillna("").astype(str),
            "Status": df["status"].astype(str),
            "Orders": df["orders_count"].astype(int),
            # Object dtype keeps ints as ints; a float column would print 999.0
            "Lifetime Value": pd.Series(
                [_bare_number(v) for v in df["lifetime_value"]], index=df.index, dtype=object
            ),
            # Taken from the records: a DataFrame column would turn gaps into NaT
            "Last Order": [_isoformat(c.last_order_at) for c in customers],
            "Joined": [_isoformat(c.created_at) for c in customers],
        },
        columns=CSV_COLUMNS,
    )


def export_customers_csv(customers: Sequence[EnrichedCustomer]) -> str:
    """Serialise customers to CSV text.

    An unquoted header row, then one row per customer in the given order.
    Text and date columns are double-quoted; ``Orders`` and ``Lifetime
    Value`` are bare numbers, integral values without a decimal part. Dates
    use ISO-8601 and are empty when unknown.

    Parameters
    ----------
    customers:
        Customers to export, typically the filtered view.

    Returns
    -------
    str
        Rows joined with ``\\n``, without a trailing newline.
    """
    body = _csv_frame(customers).to_csv(
        index=False,
        header=False,
        quoting=csv.QUOTE_NONNUMERIC,
        lineterminator="\n",
    )
    lines = [",".join(CSV_COLUMNS)]
    if body:
        lines.append(body[:-1] if body.endswith("\n") else body)
    return "\n".join(lines)


def segment_summary_text(segments: Iterable[SegmentBucket]) -> str:
    """Plain-text segment summary, one ``Label: count (percent%)`` line each.

    Examples
    --------
    >>> segment_summary_text([SegmentBucket("VIP Advocates", 2, 40, "positive")])
    'VIP Advocates: 2 (40%)'
    """
    return "\n".join(f"{b.label}: {b.count} ({b.percent}%)" for b in segments)


def write_customers_csv(
    customers: Sequence[EnrichedCustomer],
    output_dir: str | Path,
    now: datetime | None = None,
) -> Path:
    """Write customers to ``customers_export_<epoch-ms>.csv`` in ``output_dir``.

    Returns
    -------
    Path
        Path of the written file.
    """
    stamp = parse_timestamp(now) if now is not None else utc_now()
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / f"customers_export_{int(stamp.timestamp() * 1000)}.csv"

    with open(output_path, "w", encoding="utf-8", newline="") as f:
        f.write(export_customers_csv(customers))

    logger.info(f"Exported {len(customers)} customers to {output_path}")
    return output_path


def export_summary_markdown(
    snapshot: CustomerSnapshot,
    output_path: str | Path,
    title: str = "Customer Intelligence Report",
) -> None:
    """Export a snapshot's metrics and segments as a Markdown report.

    Parameters
    ----------
    snapshot:
        Snapshot from :func:`build_snapshot`.
    output_path:
        Path where the Markdown file will be saved.
    title:
        Report title.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    lines = []
    lines.append(f"# {title}\n")
    lines.append(f"**Computed:** {snapshot.computed_at.strftime('%Y-%m-%d %H:%M:%S %Z')}\n")

    lines.append("## Metrics\n")
    for card in metric_cards(snapshot.metrics):
        lines.append(f"- **{card.label}:** {card.value} ({card.trend})")
    lines.append("")

    lines.append("## Segments\n")
    lines.append("| Segment | Customers | Share |")
    lines.append("|---------|-----------|-------|")
    for bucket in snapshot.segments:
        lines.append(f"| {bucket.label} | {bucket.count} | {bucket.percent}% |")
    lines.append("")

    top = sorted(snapshot.customers, key=lambda c: c.lifetime_value or 0, reverse=True)[:5]
    if top:
        lines.append("## Top Customers by Lifetime Value\n")
        lines.append("| Customer | Status | Orders | Lifetime Value |")
        lines.append("|----------|--------|--------|----------------|")
        for customer in top:
            lines.append(
                f"| {customer.name} | {customer.status} | {customer.orders_count} "
                f"| {format_currency(customer.lifetime_value)} |"
            )

    with open(output_path, "w", encoding="utf-8") as f:
        f.write("\n".join(lines))

    logger.info(f"Customer summary exported to {output_path}")

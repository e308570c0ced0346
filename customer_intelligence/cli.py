"""Command line entry points for the customer intelligence toolkit."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Sequence

from customer_intelligence.analyses.dashboard import CustomerSnapshot, build_snapshot
from customer_intelligence.analyses.summary import metric_cards
from customer_intelligence.analyses.view import ViewOptions, view_customers
from customer_intelligence.foundation.enrichment import EnrichedCustomer
from customer_intelligence.foundation.records import parse_timestamp
from customer_intelligence.foundation.status import CustomerStatus
from customer_intelligence.reporting.exports import (
    export_customers_csv,
    export_summary_markdown,
)

logger = logging.getLogger(__name__)


MAX_INPUT_BYTES = 25 * 1024 * 1024  # 25 MiB cap to avoid accidental OOM

STATUS_CHOICES = ["all"] + [status.value for status in CustomerStatus]
SEGMENT_CHOICES = ["all", "vip", "highLtv", "repeat", "new", "dormant"]
SORT_CHOICES = ["recent", "ltv", "orders", "name"]


def _load_rows(path: Path) -> list[dict[str, Any]]:
    resolved = path.resolve()
    size = resolved.stat().st_size
    if size > MAX_INPUT_BYTES:
        raise ValueError(
            f"Input file {resolved} is {size} bytes; exceeds limit of {MAX_INPUT_BYTES} bytes"
        )
    with path.open("r", encoding="utf-8") as fh:
        try:
            payload = json.load(fh)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in {resolved}: {exc}") from exc
    if not isinstance(payload, list):
        raise ValueError(f"Expected a list of rows in {resolved}")
    return payload


def _as_of(value: str) -> datetime:
    parsed = parse_timestamp(value)
    if parsed is None:
        raise argparse.ArgumentTypeError(f"Invalid --as-of timestamp: {value}")
    return parsed


def _add_snapshot_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("customers", type=Path, help="JSON file with customer rows")
    parser.add_argument("orders", type=Path, help="JSON file with order rows")
    parser.add_argument(
        "--as-of",
        type=_as_of,
        help="Reference timestamp (ISO format). Defaults to now.",
    )
    parser.add_argument("--search", default="", help="Filter by name, email or tag")
    parser.add_argument("--status", default="all", choices=STATUS_CHOICES)
    parser.add_argument("--segment", default="all", choices=SEGMENT_CHOICES)
    parser.add_argument("--sort", default="recent", choices=SORT_CHOICES)


def _snapshot_from_args(
    args: argparse.Namespace,
) -> tuple[CustomerSnapshot, list[EnrichedCustomer]]:
    customer_rows = _load_rows(args.customers)
    order_rows = _load_rows(args.orders)
    logger.info(
        f"Loaded {len(customer_rows)} customer rows and {len(order_rows)} order rows"
    )

    snapshot = build_snapshot(customer_rows, order_rows, args.as_of)
    options = ViewOptions(
        search=args.search, status=args.status, segment=args.segment, sort=args.sort
    )
    visible = view_customers(snapshot.customers, options, snapshot.computed_at)
    logger.info(f"{len(visible)} of {len(snapshot.customers)} customers match the view")
    return snapshot, visible


def snapshot_payload(
    snapshot: CustomerSnapshot, visible: Sequence[EnrichedCustomer]
) -> dict[str, Any]:
    """JSON-serialisable dashboard payload."""
    metrics = snapshot.metrics
    return {
        "computed_at": snapshot.computed_at.isoformat(),
        "metrics": {
            "total": metrics.total,
            "vip_count": metrics.vip_count,
            "avg_orders": metrics.avg_orders,
            "avg_lifetime_value": metrics.avg_lifetime_value,
        },
        "cards": [
            {"label": c.label, "value": c.value, "trend": c.trend, "tone": c.tone}
            for c in metric_cards(metrics)
        ],
        "segments": [
            {"label": b.label, "count": b.count, "percent": b.percent, "tone": b.tone}
            for b in snapshot.segments
        ],
        "customers": [customer.as_dict() for customer in visible],
    }


def summarize_customers_cli(argv: list[str] | None = None) -> int:
    """Summarise customers and print (or write) the dashboard as JSON.

    Args:
        argv: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, 1 when there are no customers)
    """
    parser = argparse.ArgumentParser(
        description="Summarise customer lifecycle metrics and segments"
    )
    _add_snapshot_arguments(parser)
    parser.add_argument("--output", type=Path, help="Optional JSON output path")
    parser.add_argument(
        "--report",
        type=Path,
        help="Optional path for a Markdown summary report",
    )
    args = parser.parse_args(argv)

    snapshot, visible = _snapshot_from_args(args)
    if not snapshot.customers:
        logger.error("No customers found in input file")
        return 1

    payload = snapshot_payload(snapshot, visible)
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        with args.output.open("w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2)
        logger.info(f"Customer summary written to {args.output}")
    else:  # stdout fallback enables piping in shell usage.
        json.dump(payload, fp=sys.stdout, indent=2)
        print()

    if args.report:
        export_summary_markdown(snapshot, args.report)

    return 0


def export_customers_cli(argv: list[str] | None = None) -> int:
    """Export the filtered customer view to CSV.

    Args:
        argv: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, 1 when there are no customers)
    """
    parser = argparse.ArgumentParser(description="Export customers to CSV")
    _add_snapshot_arguments(parser)
    parser.add_argument(
        "--output",
        type=Path,
        required=True,
        help="Path for output CSV file",
    )
    args = parser.parse_args(argv)

    snapshot, visible = _snapshot_from_args(args)
    if not snapshot.customers:
        logger.error("No customers found in input file")
        return 1

    args.output.parent.mkdir(parents=True, exist_ok=True)
    with args.output.open("w", encoding="utf-8", newline="") as fh:
        fh.write(export_customers_csv(visible))

    logger.info(f"Exported {len(visible)} customers to {args.output}")
    return 0


def _configure_logging() -> None:
    logging.basicConfig(
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        level=logging.INFO,
    )


def main() -> None:
    _configure_logging()
    raise SystemExit(summarize_customers_cli())


def export_main() -> None:
    _configure_logging()
    raise SystemExit(export_customers_cli())


if __name__ == "__main__":  # pragma: no cover
    main()

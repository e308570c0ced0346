"""Snapshot loading and refresh tools for the MCP server.

The dashboard treats every change notification as a cue to recompute: raw
rows are (re)loaded and the whole snapshot is rebuilt from scratch.
"""

import json
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Any

import structlog
from customer_intelligence.analyses.dashboard import CustomerSnapshot, build_snapshot
from fastmcp import Context
from pydantic import BaseModel, Field

from analytics.services.mcp_server.instance import mcp
from analytics.services.mcp_server.state import get_shared_state

logger = structlog.get_logger(__name__)

# Project root is 5 levels up from this file
# analytics/services/mcp_server/tools/snapshot_loader.py -> project root
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent.parent


class LoadCustomerSnapshotRequest(BaseModel):
    """Request to load customer, order and reservation rows from JSON files."""

    customers_path: str = Field(
        default="customers.json",
        description="Path to customer rows (relative to project root or absolute path)",
    )
    orders_path: str = Field(
        default="orders.json",
        description="Path to order rows (relative to project root or absolute path)",
    )
    reservations_path: str | None = Field(
        default=None,
        description="Optional path to table reservation rows (relative to project root)",
    )
    as_of: datetime | None = Field(
        default=None, description="Reference timestamp for status derivation (default: now)"
    )


class RefreshCustomerSnapshotRequest(BaseModel):
    """Request to recompute the snapshot after a change notification."""

    customer_rows: list[dict[str, Any]] | None = Field(
        default=None, description="Fresh customer rows; omit to reuse the stored rows"
    )
    order_rows: list[dict[str, Any]] | None = Field(
        default=None, description="Fresh order rows; omit to reuse the stored rows"
    )
    reservation_rows: list[dict[str, Any]] | None = Field(
        default=None, description="Fresh reservation rows; omit to reuse the stored rows"
    )
    as_of: datetime | None = Field(
        default=None, description="Reference timestamp for status derivation (default: now)"
    )


class SnapshotResponse(BaseModel):
    """Summary of the computed snapshot."""

    customer_count: int
    order_count: int
    reservation_count: int = 0
    computed_at: str
    status_counts: dict[str, int]
    message: str


def _resolve_within_project(raw_path: str) -> Path:
    file_path = Path(raw_path)
    if not file_path.is_absolute():
        file_path = PROJECT_ROOT / file_path

    resolved_path = file_path.resolve()
    try:
        resolved_path.relative_to(PROJECT_ROOT.resolve())
    except ValueError as e:
        raise ValueError(
            f"Path {resolved_path} is outside allowed directory {PROJECT_ROOT.resolve()}. "
            f"Only files within the project directory can be loaded."
        ) from e

    if not resolved_path.exists():
        raise FileNotFoundError(f"Snapshot file not found: {resolved_path}")
    return resolved_path


def _read_rows(path: Path) -> list[dict[str, Any]]:
    try:
        with open(path, encoding="utf-8") as f:
            rows = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path.name}: {e}") from e

    if not isinstance(rows, list):
        raise ValueError(f"Expected a list of rows in {path.name}, got {type(rows).__name__}")
    return rows


def get_current_snapshot() -> CustomerSnapshot:
    """Return the stored snapshot or fail with a hint to load one."""
    snapshot = get_shared_state().get("customer_snapshot")
    if snapshot is None:
        raise ValueError("Customer snapshot not found. Run load_customer_snapshot first.")
    return snapshot


def _compute_and_store(
    customer_rows: list[dict[str, Any]],
    order_rows: list[dict[str, Any]],
    reservation_rows: list[dict[str, Any]],
    as_of: datetime | None,
) -> SnapshotResponse:
    snapshot = build_snapshot(customer_rows, order_rows, as_of)
    get_shared_state().replace_snapshot(customer_rows, order_rows, reservation_rows, snapshot)

    status_counts = Counter(str(customer.status) for customer in snapshot.customers)
    logger.info(
        "customer_snapshot_computed",
        customers=len(snapshot.customers),
        orders=len(order_rows),
        reservations=len(reservation_rows),
        computed_at=snapshot.computed_at.isoformat(),
    )
    return SnapshotResponse(
        customer_count=len(snapshot.customers),
        order_count=len(order_rows),
        reservation_count=len(reservation_rows),
        computed_at=snapshot.computed_at.isoformat(),
        status_counts=dict(status_counts),
        message=(
            f"Computed snapshot for {len(snapshot.customers)} customers "
            f"from {len(order_rows)} orders"
        ),
    )


async def _load_customer_snapshot_impl(
    request: LoadCustomerSnapshotRequest,
    ctx: Context,
    customer_rows: list[dict[str, Any]] | None = None,
    order_rows: list[dict[str, Any]] | None = None,
    reservation_rows: list[dict[str, Any]] | None = None,
) -> SnapshotResponse:
    """Implementation of snapshot loading.

    Pre-loaded rows may be passed directly (used by tests and callers that
    fetched rows themselves); otherwise the request paths are read.
    Reservations are optional and default to none.
    """
    await ctx.info("Loading customer snapshot")

    if customer_rows is None:
        customer_rows = _read_rows(_resolve_within_project(request.customers_path))
    if order_rows is None:
        order_rows = _read_rows(_resolve_within_project(request.orders_path))
    if reservation_rows is None:
        reservation_rows = (
            _read_rows(_resolve_within_project(request.reservations_path))
            if request.reservations_path
            else []
        )

    await ctx.report_progress(0.5, "Computing customer snapshot...")
    response = _compute_and_store(customer_rows, order_rows, reservation_rows, request.as_of)
    await ctx.info(response.message)
    return response


async def _refresh_customer_snapshot_impl(
    request: RefreshCustomerSnapshotRequest, ctx: Context
) -> SnapshotResponse:
    """Implementation of snapshot refresh."""
    shared_state = get_shared_state()
    customer_rows = request.customer_rows
    order_rows = request.order_rows
    if customer_rows is None:
        customer_rows = shared_state.get("customer_rows")
    if order_rows is None:
        order_rows = shared_state.get("order_rows")
    reservation_rows = request.reservation_rows
    if reservation_rows is None:
        reservation_rows = shared_state.get("reservation_rows", [])

    if customer_rows is None or order_rows is None:
        raise ValueError(
            "No customer/order rows available. Run load_customer_snapshot first "
            "or supply both customer_rows and order_rows."
        )

    await ctx.info("Refreshing customer snapshot")
    return _compute_and_store(customer_rows, order_rows, reservation_rows, request.as_of)


@mcp.tool()
async def load_customer_snapshot(
    request: LoadCustomerSnapshotRequest, ctx: Context
) -> SnapshotResponse:
    """
    Load customer, order and (optionally) reservation rows and compute a snapshot.

    The snapshot holds every enriched customer (lifetime value, orders count,
    last order, lifecycle status), headline metrics and segment buckets. It is
    stored for the summary, listing, export and profile tools.

    Args:
        request: File paths and optional reference timestamp

    Returns:
        Customer/order counts and the status distribution
    """
    return await _load_customer_snapshot_impl(request, ctx)


@mcp.tool()
async def refresh_customer_snapshot(
    request: RefreshCustomerSnapshotRequest, ctx: Context
) -> SnapshotResponse:
    """
    Recompute the customer snapshot from scratch.

    Call this whenever the customers, orders or table_reservations tables
    change. Fresh rows may
    be supplied inline; otherwise the previously loaded rows are reused.

    Args:
        request: Optional fresh rows and reference timestamp

    Returns:
        Customer/order counts and the status distribution
    """
    return await _refresh_customer_snapshot_impl(request, ctx)

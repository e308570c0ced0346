"""Customer dashboard MCP tools.

Wraps the summary, view and CSV export of the customer intelligence engine
as MCP tools operating on the stored snapshot.
"""

from typing import Literal

import structlog
from customer_intelligence.analyses.summary import metric_cards
from customer_intelligence.analyses.view import (
    SegmentName,
    SegmentThresholds,
    SortKey,
    ViewOptions,
    view_customers,
)
from customer_intelligence.foundation.enrichment import EnrichedCustomer
from customer_intelligence.foundation.status import CustomerStatus
from customer_intelligence.reporting.exports import export_customers_csv, segment_summary_text
from fastmcp import Context
from pydantic import BaseModel, Field

from analytics.services.mcp_server.instance import mcp
from analytics.services.mcp_server.tools.snapshot_loader import get_current_snapshot

logger = structlog.get_logger(__name__)


class SummaryRequest(BaseModel):
    """Request for the dashboard summary."""

    include_cards: bool = Field(
        default=True, description="Also render the four headline metric cards"
    )


class SummaryResponse(BaseModel):
    """Headline metrics and lifecycle segment breakdown."""

    total: int
    vip_count: int
    avg_orders: float
    avg_lifetime_value: float
    segments: list[dict[str, str | int]]
    segment_summary: str = Field(
        default="", description="One 'Label: count (percent%)' line per segment"
    )
    cards: list[dict[str, str]] = Field(default_factory=list)
    computed_at: str


class CustomerViewRequest(BaseModel):
    """Search, filter and sort selections."""

    search: str = Field(default="", description="Case-insensitive name/email/tag query")
    status: Literal["all"] | CustomerStatus = Field(
        default="all", description="Lifecycle status or 'all'"
    )
    segment: SegmentName = Field(default="all", description="Named segment filter")
    sort: SortKey = Field(default="recent", description="Sort order")
    high_ltv_threshold: float = Field(
        default=500.0, ge=0, description="Minimum lifetime value for the highLtv segment"
    )
    dormant_days: int = Field(
        default=90, ge=0, description="Minimum inactivity days for the dormant segment"
    )


class ListCustomersRequest(CustomerViewRequest):
    """Request for a page of the customer table."""

    limit: int = Field(default=50, ge=1, le=1000, description="Maximum rows to return")


class ListCustomersResponse(BaseModel):
    total_matching: int
    returned: int
    truncated: bool
    customers: list[dict]


class ExportCsvResponse(BaseModel):
    row_count: int
    csv: str


def _apply_view(request: CustomerViewRequest) -> list[EnrichedCustomer]:
    snapshot = get_current_snapshot()
    options = ViewOptions(
        search=request.search,
        status=request.status,
        segment=request.segment,
        sort=request.sort,
    )
    thresholds = SegmentThresholds(
        high_ltv=request.high_ltv_threshold,
        dormant_days=request.dormant_days,
    )
    return view_customers(snapshot.customers, options, snapshot.computed_at, thresholds)


async def _summarize_customer_base_impl(
    request: SummaryRequest, ctx: Context
) -> SummaryResponse:
    """Implementation of the dashboard summary."""
    snapshot = get_current_snapshot()
    await ctx.info("Summarising customer base")

    metrics = snapshot.metrics
    cards = []
    if request.include_cards:
        cards = [
            {"label": c.label, "value": c.value, "trend": c.trend, "tone": c.tone}
            for c in metric_cards(metrics)
        ]

    logger.info("customer_summary_generated", total=metrics.total, vip=metrics.vip_count)
    return SummaryResponse(
        total=metrics.total,
        vip_count=metrics.vip_count,
        avg_orders=metrics.avg_orders,
        avg_lifetime_value=metrics.avg_lifetime_value,
        segments=[
            {"label": b.label, "count": b.count, "percent": b.percent, "tone": b.tone}
            for b in snapshot.segments
        ],
        segment_summary=segment_summary_text(snapshot.segments),
        cards=cards,
        computed_at=snapshot.computed_at.isoformat(),
    )


async def _list_customers_impl(
    request: ListCustomersRequest, ctx: Context
) -> ListCustomersResponse:
    """Implementation of the customer listing."""
    visible = _apply_view(request)
    page = visible[: request.limit]
    await ctx.info(f"{len(visible)} customers match the current view")

    return ListCustomersResponse(
        total_matching=len(visible),
        returned=len(page),
        truncated=len(visible) > len(page),
        customers=[customer.as_dict() for customer in page],
    )


async def _export_customer_csv_impl(
    request: CustomerViewRequest, ctx: Context
) -> ExportCsvResponse:
    """Implementation of the CSV export."""
    visible = _apply_view(request)
    csv_text = export_customers_csv(visible)
    logger.info("customer_csv_exported", rows=len(visible))
    await ctx.info(f"Exported {len(visible)} customers to CSV")
    return ExportCsvResponse(row_count=len(visible), csv=csv_text)


@mcp.tool()
async def summarize_customer_base(request: SummaryRequest, ctx: Context) -> SummaryResponse:
    """
    Summarise the customer base.

    Returns total customers, VIP count, average orders and lifetime value per
    customer, and the population of each lifecycle segment (VIP Advocates,
    Active Guests, At-Risk, Dormant, Blacklisted).

    Args:
        request: Summary options

    Returns:
        Headline metrics, optional metric cards and segment buckets
    """
    return await _summarize_customer_base_impl(request, ctx)


@mcp.tool()
async def list_customers(
    request: ListCustomersRequest, ctx: Context
) -> ListCustomersResponse:
    """
    List customers matching a search, status and segment filter.

    Segments: vip, highLtv (lifetime value >= threshold), repeat (3+ orders or
    visits), new (joined this month), dormant (no order/visit for N days).
    Sort by recent activity, lifetime value, orders count or name.

    Args:
        request: View selections and row limit

    Returns:
        Matching customers (up to limit) with match count
    """
    return await _list_customers_impl(request, ctx)


@mcp.tool()
async def export_customer_csv(
    request: CustomerViewRequest, ctx: Context
) -> ExportCsvResponse:
    """
    Export the filtered customer view as CSV text.

    Columns: Name, Email, Status, Orders, Lifetime Value, Last Order, Joined.

    Args:
        request: View selections

    Returns:
        Row count and CSV document
    """
    return await _export_customer_csv_impl(request, ctx)

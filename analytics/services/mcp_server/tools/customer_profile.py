"""Customer profile MCP tools.

Returns the profile drawer contents (insights, recent orders, latest table
reservations) for one customer and prepares the admin update requests
(blacklist toggle, notes edit) for that customer.
"""

from dataclasses import asdict

import structlog
from customer_intelligence.analyses.profile import (
    DEFAULT_ORDER_HISTORY_LIMIT,
    DEFAULT_RESERVATION_HISTORY_LIMIT,
    CustomerPatch,
    build_blacklist_patch,
    build_notes_patch,
    orders_for_customer,
    profile_insights,
    reservations_for_customer,
)
from customer_intelligence.foundation.enrichment import EnrichedCustomer
from customer_intelligence.foundation.records import (
    load_order_records,
    load_reservation_records,
    normalize_email,
    parse_amount,
    parse_timestamp,
)
from fastmcp import Context
from pydantic import BaseModel, Field, model_validator

from analytics.services.mcp_server.instance import mcp
from analytics.services.mcp_server.state import get_shared_state
from analytics.services.mcp_server.tools.snapshot_loader import get_current_snapshot

logger = structlog.get_logger(__name__)


class CustomerLookup(BaseModel):
    """Identifies a customer by id or email."""

    customer_id: str | None = Field(default=None, description="Customer identifier")
    email: str | None = Field(default=None, description="Customer email (case-insensitive)")

    @model_validator(mode="after")
    def require_identifier(self):
        if not self.customer_id and not self.email:
            raise ValueError("Provide customer_id or email")
        return self


class CustomerProfileRequest(CustomerLookup):
    order_limit: int = Field(
        default=DEFAULT_ORDER_HISTORY_LIMIT,
        ge=0,
        le=200,
        description="Maximum number of recent orders to include",
    )
    reservation_limit: int = Field(
        default=DEFAULT_RESERVATION_HISTORY_LIMIT,
        ge=0,
        le=100,
        description="Maximum number of recent table reservations to include",
    )


class BlacklistUpdateRequest(CustomerLookup):
    blacklisted: bool = Field(description="True to blacklist, False to lift the flag")


class NotesUpdateRequest(CustomerLookup):
    notes: str = Field(description="Replacement admin notes")


class CustomerProfileResponse(BaseModel):
    customer: dict
    insights: list[dict[str, str]]
    recent_orders: list[dict]
    recent_reservations: list[dict] = Field(default_factory=list)


class CustomerPatchResponse(BaseModel):
    """Update request to be applied to the customers table by the caller."""

    id: str
    fields: dict


def _find_customer(lookup: CustomerLookup) -> EnrichedCustomer:
    snapshot = get_current_snapshot()
    email = normalize_email(lookup.email)
    if lookup.customer_id:
        for customer in snapshot.customers:
            if customer.id == lookup.customer_id:
                return customer
    if email:
        for customer in snapshot.customers:
            if normalize_email(customer.email) == email:
                return customer
    raise ValueError(
        f"Customer not found (customer_id={lookup.customer_id!r}, email={lookup.email!r})"
    )


def _patch_response(patch: CustomerPatch) -> CustomerPatchResponse:
    return CustomerPatchResponse(id=patch.id, fields=dict(patch.fields))


async def _get_customer_profile_impl(
    request: CustomerProfileRequest, ctx: Context
) -> CustomerProfileResponse:
    """Implementation of the profile lookup."""
    customer = _find_customer(request)
    await ctx.info(f"Building profile for {customer.name}")

    shared_state = get_shared_state()
    order_rows = shared_state.get("order_rows") or []
    reservation_rows = shared_state.get("reservation_rows") or []
    recent = orders_for_customer(customer, load_order_records(order_rows), request.order_limit)
    reservations = reservations_for_customer(
        customer, load_reservation_records(reservation_rows), request.reservation_limit
    )

    def order_dict(order) -> dict:
        placed = parse_timestamp(order.created_at)
        return {
            "id": order.id,
            "status": order.status,
            "total": parse_amount(order.total),
            "created_at": placed.isoformat() if placed else None,
        }

    logger.info(
        "customer_profile_built",
        customer_id=customer.id,
        orders=len(recent),
        reservations=len(reservations),
    )
    return CustomerProfileResponse(
        customer=customer.as_dict(),
        insights=[{"label": row.label, "value": row.value} for row in profile_insights(customer)],
        recent_orders=[order_dict(order) for order in recent],
        recent_reservations=[asdict(reservation) for reservation in reservations],
    )


async def _prepare_blacklist_update_impl(
    request: BlacklistUpdateRequest, ctx: Context
) -> CustomerPatchResponse:
    customer = _find_customer(request)
    patch = build_blacklist_patch(customer, request.blacklisted)
    await ctx.info(
        f"{'Blacklisting' if request.blacklisted else 'Lifting blacklist for'} {customer.name}"
    )
    logger.info("blacklist_patch_prepared", customer_id=patch.id, blacklisted=request.blacklisted)
    return _patch_response(patch)


async def _prepare_notes_update_impl(
    request: NotesUpdateRequest, ctx: Context
) -> CustomerPatchResponse:
    customer = _find_customer(request)
    patch = build_notes_patch(customer, request.notes)
    await ctx.info(f"Prepared notes update for {customer.name}")
    logger.info("notes_patch_prepared", customer_id=patch.id)
    return _patch_response(patch)


@mcp.tool()
async def get_customer_profile(
    request: CustomerProfileRequest, ctx: Context
) -> CustomerProfileResponse:
    """
    Get the profile of a single customer.

    Includes the enriched customer, insight rows (lifetime value, orders,
    visits, last order/visit, status), the most recent orders and the
    latest table reservations booked under the customer's email.

    Args:
        request: Customer id or email, and order/reservation history limits

    Returns:
        Customer details, insight rows, recent orders and reservations
    """
    return await _get_customer_profile_impl(request, ctx)


@mcp.tool()
async def prepare_blacklist_update(
    request: BlacklistUpdateRequest, ctx: Context
) -> CustomerPatchResponse:
    """
    Prepare an update that blacklists a customer or lifts the flag.

    The update is returned, not applied. Call refresh_customer_snapshot once
    the customers table has been updated.

    Args:
        request: Customer id or email and the desired flag

    Returns:
        Customer id and fields to write
    """
    return await _prepare_blacklist_update_impl(request, ctx)


@mcp.tool()
async def prepare_notes_update(
    request: NotesUpdateRequest, ctx: Context
) -> CustomerPatchResponse:
    """
    Prepare an update replacing a customer's admin notes.

    Args:
        request: Customer id or email and the new notes

    Returns:
        Customer id and fields to write
    """
    return await _prepare_notes_update_impl(request, ctx)

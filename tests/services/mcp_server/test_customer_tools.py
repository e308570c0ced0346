"""Integration tests for the customer intelligence MCP tools

Tests the snapshot, dashboard, profile and health tools:
1. load_customer_snapshot / refresh_customer_snapshot
2. summarize_customer_base / list_customers / export_customer_csv
3. get_customer_profile / prepare_blacklist_update / prepare_notes_update
4. health_check
"""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from analytics.services.mcp_server.state import get_shared_state
from analytics.services.mcp_server.tools.customer_dashboard import (
    CustomerViewRequest,
    ListCustomersRequest,
    SummaryRequest,
    _export_customer_csv_impl as export_customer_csv,
    _list_customers_impl as list_customers,
    _summarize_customer_base_impl as summarize_customer_base,
)
from analytics.services.mcp_server.tools.customer_profile import (
    BlacklistUpdateRequest,
    CustomerProfileRequest,
    NotesUpdateRequest,
    _get_customer_profile_impl as get_customer_profile,
    _prepare_blacklist_update_impl as prepare_blacklist_update,
    _prepare_notes_update_impl as prepare_notes_update,
)
from analytics.services.mcp_server.tools.health_check import _health_check_impl as health_check
from analytics.services.mcp_server.tools.snapshot_loader import (
    LoadCustomerSnapshotRequest,
    RefreshCustomerSnapshotRequest,
    _load_customer_snapshot_impl as load_customer_snapshot,
    _refresh_customer_snapshot_impl as refresh_customer_snapshot,
)

AS_OF = datetime(2024, 6, 1, tzinfo=timezone.utc)


def create_customer_rows():
    return [
        {"id": "c1", "email": "ana@example.com", "full_name": "Ana", "is_vip": True,
         "tags": ["wine"], "preferences": {"city": "Lisbon"}, "total_visits": 6},
        {"id": "c2", "email": "ben@example.com", "full_name": "Ben"},
        {"id": "c3", "email": "cy@example.com", "full_name": "Cy"},
        {"email": "guest@example.com", "full_name": "Walk-in"},
    ]


def create_order_rows():
    return [
        {"id": "o1", "user_id": "c1", "order_total": 600, "status": "paid",
         "created_at": "2024-05-28T19:00:00Z"},
        {"id": "o2", "user_id": "c1", "order_total": 40, "status": "paid",
         "created_at": "2024-04-02T19:00:00Z"},
        {"id": "o3", "user_id": "c2", "order_total": 80, "status": "paid",
         "created_at": "2024-03-01T12:00:00Z"},
        {"id": "o4", "customer_email": "GUEST@example.com", "order_total": "n/a",
         "created_at": "2024-05-30T12:00:00Z"},
    ]


def create_reservation_rows():
    return [
        {"id": "r1", "customer_email": "ana@example.com", "reservation_date": "2024-05-20",
         "reservation_time": "19:00:00", "status": "completed", "party_size": 2,
         "table_number": "T4", "occasion": "anniversary"},
        {"id": "r2", "customer_email": "ANA@example.com", "reservation_date": "2024-06-10",
         "reservation_time": "20:30:00", "status": "confirmed", "party_size": 4},
        {"id": "r3", "customer_email": "ben@example.com", "reservation_date": "2024-05-01",
         "reservation_time": "18:00:00", "status": "no_show", "party_size": 3},
    ]


def create_mock_context():
    """Create a mock FastMCP Context for testing."""
    ctx = AsyncMock()
    ctx.info = AsyncMock()
    ctx.report_progress = AsyncMock()
    return ctx


@pytest.fixture(autouse=True)
def clear_shared_state():
    get_shared_state().clear()
    yield
    get_shared_state().clear()


async def load_sample_snapshot(ctx):
    request = LoadCustomerSnapshotRequest(as_of=AS_OF)
    return await load_customer_snapshot(
        request, ctx, customer_rows=create_customer_rows(), order_rows=create_order_rows()
    )


@pytest.mark.asyncio
async def test_load_snapshot_workflow():
    ctx = create_mock_context()
    response = await load_sample_snapshot(ctx)

    assert response.customer_count == 4
    assert response.order_count == 4
    assert response.status_counts == {"vip": 1, "at-risk": 1, "prospect": 1, "active": 1}
    assert response.computed_at == "2024-06-01T00:00:00+00:00"

    shared_state = get_shared_state()
    assert shared_state.has("customer_rows")
    assert shared_state.has("order_rows")
    assert shared_state.get("reservation_rows") == []
    assert response.reservation_count == 0
    assert len(shared_state.get("customer_snapshot").customers) == 4
    ctx.report_progress.assert_awaited()


@pytest.mark.asyncio
async def test_load_snapshot_rejects_paths_outside_project():
    ctx = create_mock_context()
    request = LoadCustomerSnapshotRequest(customers_path="/etc/passwd", orders_path="/etc/hosts")
    with pytest.raises(ValueError, match="outside allowed directory"):
        await load_customer_snapshot(request, ctx)


@pytest.mark.asyncio
async def test_load_snapshot_missing_file():
    ctx = create_mock_context()
    request = LoadCustomerSnapshotRequest(customers_path="does_not_exist_customers.json")
    with pytest.raises(FileNotFoundError):
        await load_customer_snapshot(request, ctx)


@pytest.mark.asyncio
async def test_refresh_requires_loaded_rows():
    ctx = create_mock_context()
    with pytest.raises(ValueError, match="No customer/order rows available"):
        await refresh_customer_snapshot(RefreshCustomerSnapshotRequest(), ctx)


@pytest.mark.asyncio
async def test_refresh_recomputes_with_new_rows():
    ctx = create_mock_context()
    await load_sample_snapshot(ctx)

    customers = create_customer_rows()
    customers[1]["is_blacklisted"] = True
    response = await refresh_customer_snapshot(
        RefreshCustomerSnapshotRequest(customer_rows=customers, as_of=AS_OF), ctx
    )

    assert response.status_counts["blacklisted"] == 1
    assert "at-risk" not in response.status_counts
    # Orders were reused from the previous load
    assert response.order_count == 4


@pytest.mark.asyncio
async def test_summarize_requires_snapshot():
    ctx = create_mock_context()
    with pytest.raises(ValueError, match="Run load_customer_snapshot first"):
        await summarize_customer_base(SummaryRequest(), ctx)


@pytest.mark.asyncio
async def test_summarize_customer_base():
    ctx = create_mock_context()
    await load_sample_snapshot(ctx)

    response = await summarize_customer_base(SummaryRequest(), ctx)

    assert response.total == 4
    assert response.vip_count == 1
    assert response.avg_orders == 1.0
    assert response.avg_lifetime_value == 180.0
    assert [s["count"] for s in response.segments] == [1, 1, 1, 1, 0]
    assert response.cards[3]["value"] == "$180"
    assert response.segment_summary.split("\n")[0] == "VIP Advocates: 1 (25%)"

    response = await summarize_customer_base(SummaryRequest(include_cards=False), ctx)
    assert response.cards == []


@pytest.mark.asyncio
async def test_list_customers_filters_and_limits():
    ctx = create_mock_context()
    await load_sample_snapshot(ctx)

    response = await list_customers(ListCustomersRequest(sort="ltv", limit=2), ctx)
    assert response.total_matching == 4
    assert response.returned == 2
    assert response.truncated is True
    assert [c["id"] for c in response.customers] == ["c1", "c2"]
    assert response.customers[0]["location"] == "Lisbon"

    response = await list_customers(ListCustomersRequest(status="at-risk"), ctx)
    assert [c["name"] for c in response.customers] == ["Ben"]

    response = await list_customers(ListCustomersRequest(segment="repeat"), ctx)
    assert [c["name"] for c in response.customers] == ["Ana"]

    response = await list_customers(
        ListCustomersRequest(segment="highLtv", high_ltv_threshold=50.0), ctx
    )
    assert [c["name"] for c in response.customers] == ["Ana", "Ben"]


def test_view_request_validation():
    with pytest.raises(ValidationError):
        ListCustomersRequest(status="gold")
    with pytest.raises(ValidationError):
        ListCustomersRequest(limit=0)


@pytest.mark.asyncio
async def test_export_customer_csv():
    ctx = create_mock_context()
    await load_sample_snapshot(ctx)

    response = await export_customer_csv(CustomerViewRequest(search="example.com", sort="name"), ctx)

    lines = response.csv.splitlines()
    assert response.row_count == 4
    assert len(lines) == 5
    assert lines[0] == "Name,Email,Status,Orders,Lifetime Value,Last Order,Joined"
    assert lines[1].startswith('"Ana","ana@example.com","vip",2,640,')
    assert not response.csv.endswith("\n")


@pytest.mark.asyncio
async def test_get_customer_profile():
    ctx = create_mock_context()
    await load_sample_snapshot(ctx)

    response = await get_customer_profile(CustomerProfileRequest(email=" ANA@example.com"), ctx)

    assert response.customer["id"] == "c1"
    insights = {row["label"]: row["value"] for row in response.insights}
    assert insights["Lifetime Value"] == "$640"
    assert insights["Last Order"] == "May 28, 2024, 07:00 PM"
    assert insights["Status"] == "vip"
    assert [o["id"] for o in response.recent_orders] == ["o1", "o2"]
    assert response.recent_orders[0]["total"] == 600.0


@pytest.mark.asyncio
async def test_get_customer_profile_order_limit_and_guest_orders():
    ctx = create_mock_context()
    await load_sample_snapshot(ctx)

    response = await get_customer_profile(
        CustomerProfileRequest(customer_id="c1", order_limit=1), ctx
    )
    assert [o["id"] for o in response.recent_orders] == ["o1"]

    response = await get_customer_profile(CustomerProfileRequest(email="guest@example.com"), ctx)
    assert response.customer["id"] is None
    assert response.recent_orders == [
        {"id": "o4", "status": None, "total": 0.0, "created_at": "2024-05-30T12:00:00+00:00"}
    ]


@pytest.mark.asyncio
async def test_get_customer_profile_unknown_customer():
    ctx = create_mock_context()
    await load_sample_snapshot(ctx)
    with pytest.raises(ValueError, match="Customer not found"):
        await get_customer_profile(CustomerProfileRequest(customer_id="nope"), ctx)


def test_profile_request_requires_identifier():
    with pytest.raises(ValidationError):
        CustomerProfileRequest()


@pytest.mark.asyncio
async def test_prepare_updates():
    ctx = create_mock_context()
    await load_sample_snapshot(ctx)

    patch = await prepare_blacklist_update(
        BlacklistUpdateRequest(customer_id="c2", blacklisted=True), ctx
    )
    assert patch.id == "c2"
    assert patch.fields == {"is_blacklisted": True, "blacklist_reason": "Flagged manually by admin"}

    patch = await prepare_notes_update(NotesUpdateRequest(customer_id="c3", notes="City: Porto"), ctx)
    assert patch.fields == {"notes": "City: Porto"}
    json.dumps(patch.model_dump())


@pytest.mark.asyncio
async def test_prepare_update_without_identifier_fails():
    ctx = create_mock_context()
    await load_sample_snapshot(ctx)
    with pytest.raises(ValueError, match="Missing customer identifier"):
        await prepare_blacklist_update(
            BlacklistUpdateRequest(email="guest@example.com", blacklisted=True), ctx
        )


@pytest.mark.asyncio
async def test_health_check():
    ctx = create_mock_context()
    response = await health_check(ctx)
    assert response.status == "healthy"
    assert response.snapshot_data_status == {
        "customer_rows": False,
        "order_rows": False,
        "reservation_rows": False,
        "customer_snapshot": False,
    }
    assert "no data loaded" in response.checks["customer_snapshot"]

    await load_sample_snapshot(ctx)
    response = await health_check(ctx)
    assert response.snapshot_data_status["customer_snapshot"] is True
    assert response.checks["customer_snapshot"].startswith("available (4 customers")


@pytest.mark.asyncio
async def test_get_customer_profile_includes_reservations():
    ctx = create_mock_context()
    request = LoadCustomerSnapshotRequest(as_of=AS_OF)
    response = await load_customer_snapshot(
        request,
        ctx,
        customer_rows=create_customer_rows(),
        order_rows=create_order_rows(),
        reservation_rows=create_reservation_rows(),
    )
    assert response.reservation_count == 3

    profile = await get_customer_profile(CustomerProfileRequest(customer_id="c1"), ctx)
    assert [r["id"] for r in profile.recent_reservations] == ["r2", "r1"]
    assert profile.recent_reservations[1] == {
        "id": "r1",
        "customer_email": "ana@example.com",
        "reservation_date": "2024-05-20",
        "reservation_time": "19:00:00",
        "status": "completed",
        "party_size": 2,
        "table_number": "T4",
        "occasion": "anniversary",
    }

    profile = await get_customer_profile(
        CustomerProfileRequest(customer_id="c1", reservation_limit=1), ctx
    )
    assert [r["id"] for r in profile.recent_reservations] == ["r2"]

    profile = await get_customer_profile(CustomerProfileRequest(customer_id="c3"), ctx)
    assert profile.recent_reservations == []


@pytest.mark.asyncio
async def test_refresh_keeps_stored_reservations():
    ctx = create_mock_context()
    await load_customer_snapshot(
        LoadCustomerSnapshotRequest(as_of=AS_OF),
        ctx,
        customer_rows=create_customer_rows(),
        order_rows=create_order_rows(),
        reservation_rows=create_reservation_rows(),
    )

    response = await refresh_customer_snapshot(RefreshCustomerSnapshotRequest(as_of=AS_OF), ctx)
    assert response.reservation_count == 3

    response = await refresh_customer_snapshot(
        RefreshCustomerSnapshotRequest(reservation_rows=[], as_of=AS_OF), ctx
    )
    assert response.reservation_count == 0
    profile = await get_customer_profile(CustomerProfileRequest(customer_id="c1"), ctx)
    assert profile.recent_reservations == []

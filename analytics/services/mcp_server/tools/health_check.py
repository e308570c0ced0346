"""Health Check MCP Tool

Reports MCP server status, shared state availability and whether a
customer snapshot has been loaded.
"""

import time
from datetime import datetime, timezone

import structlog
from fastmcp import Context
from pydantic import BaseModel, Field

from analytics.services.mcp_server.instance import VERSION, mcp
from analytics.services.mcp_server.state import SNAPSHOT_KEYS, get_shared_state

logger = structlog.get_logger(__name__)


class HealthCheckResponse(BaseModel):
    """Health check response with system status."""

    status: str = Field(description="Overall health status: 'healthy' or 'unhealthy'")
    version: str
    timestamp: str = Field(description="ISO timestamp of health check")
    checks: dict[str, str] = Field(description="Individual component health checks")
    uptime_seconds: float = Field(description="Server uptime in seconds")
    snapshot_data_status: dict[str, bool] = Field(
        description="Availability of raw rows and the computed snapshot"
    )


# Track server start time
_SERVER_START_TIME = time.time()


async def _health_check_impl(ctx: Context) -> HealthCheckResponse:
    logger.info("health_check_starting")

    checks: dict[str, str] = {"mcp_server": "healthy"}
    status = "healthy"

    try:
        shared_state = get_shared_state()
        snapshot_data_status = {key: shared_state.has(key) for key in SNAPSHOT_KEYS}
        checks["shared_state"] = "healthy"
    except Exception as e:
        snapshot_data_status = {}
        checks["shared_state"] = f"unhealthy: {str(e)}"
        status = "unhealthy"
        logger.error("shared_state_check_failed", error=str(e))

    # Snapshot data is informational, not a health failure
    if snapshot_data_status.get("customer_snapshot"):
        snapshot = shared_state.get("customer_snapshot")
        checks["customer_snapshot"] = (
            f"available ({len(snapshot.customers)} customers, "
            f"computed {snapshot.computed_at.isoformat()})"
        )
    else:
        checks["customer_snapshot"] = "no data loaded (use load_customer_snapshot)"

    uptime_seconds = time.time() - _SERVER_START_TIME
    logger.info("health_check_complete", status=status, checks=checks)
    await ctx.info(f"Health: {status}")

    return HealthCheckResponse(
        status=status,
        version=VERSION,
        timestamp=datetime.now(timezone.utc).isoformat(),
        checks=checks,
        uptime_seconds=uptime_seconds,
        snapshot_data_status=snapshot_data_status,
    )


@mcp.tool()
async def health_check(ctx: Context) -> HealthCheckResponse:
    """
    Check health of the MCP server.

    Returns:
        HealthCheckResponse with component checks and snapshot availability
    """
    return await _health_check_impl(ctx)

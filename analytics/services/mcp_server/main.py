"""
Customer Intelligence MCP Server

This module configures structured logging and the server lifespan, then
registers the customer intelligence tools with the shared FastMCP instance.
"""

import logging
import os
import sys
from contextlib import asynccontextmanager

import structlog

# Configure structlog to write to stderr, not stdout (to avoid interfering with MCP JSON protocol)
logging.basicConfig(
    format="%(message)s",
    stream=sys.stderr,
    level=logging.INFO,
)

structlog.configure(
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
    logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def app_lifespan(app):
    """Log startup/shutdown and clear snapshot state on exit."""
    from analytics.services.mcp_server.state import get_shared_state

    logger.info(
        "mcp_server_starting",
        version=VERSION,
        environment=os.getenv("ENVIRONMENT", "development"),
    )

    yield

    get_shared_state().clear()
    logger.info("mcp_server_stopping")


# Import MCP server instance (must be imported before tools to avoid circular imports)
from analytics.services.mcp_server.instance import VERSION, mcp  # noqa: E402

# Configure lifespan
mcp.lifespan = app_lifespan

# These imports MUST happen before mcp.run() is called
# Each module registers its tools using the @mcp.tool() decorator
from analytics.services.mcp_server.tools import (  # noqa: E402, F401
    customer_dashboard,
    customer_profile,
    health_check,
    snapshot_loader,
)

logger.info(
    "mcp_server_initialized",
    tools=[
        "load_customer_snapshot",
        "refresh_customer_snapshot",
        "summarize_customer_base",
        "list_customers",
        "export_customer_csv",
        "get_customer_profile",
        "prepare_blacklist_update",
        "prepare_notes_update",
        "health_check",
    ],
)


if __name__ == "__main__":
    mcp.run()

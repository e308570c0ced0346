"""MCP Tools for the Customer Intelligence dashboard.

This module exports all MCP tools for snapshot management, dashboard views
and customer profiles.
"""

# Snapshot management
from .snapshot_loader import load_customer_snapshot, refresh_customer_snapshot

# Dashboard
from .customer_dashboard import export_customer_csv, list_customers, summarize_customer_base

# Profile and admin updates
from .customer_profile import (
    get_customer_profile,
    prepare_blacklist_update,
    prepare_notes_update,
)

# Observability
from .health_check import health_check

__all__ = [
    # Snapshot
    "load_customer_snapshot",
    "refresh_customer_snapshot",
    # Dashboard
    "summarize_customer_base",
    "list_customers",
    "export_customer_csv",
    # Profile
    "get_customer_profile",
    "prepare_blacklist_update",
    "prepare_notes_update",
    # Observability
    "health_check",
]

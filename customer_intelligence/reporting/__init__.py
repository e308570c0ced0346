"""Reporting module for CSV exports and Markdown summaries."""

from customer_intelligence.reporting.exports import (
    CSV_COLUMNS,
    export_customers_csv,
    export_summary_markdown,
    segment_summary_text,
    write_customers_csv,
)

__all__ = [
    "CSV_COLUMNS",
    "export_customers_csv",
    "export_summary_markdown",
    "segment_summary_text",
    "write_customers_csv",
]

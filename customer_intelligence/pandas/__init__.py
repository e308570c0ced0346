"""Pandas DataFrame adapters for customer intelligence components."""

from .customers import (
    build_snapshot_df,
    customers_to_dataframe,
    dataframe_to_rows,
    segments_to_dataframe,
)

__all__ = [
    "build_snapshot_df",
    "customers_to_dataframe",
    "dataframe_to_rows",
    "segments_to_dataframe",
]

"""Customer and order record definitions and row normalisation utilities.

Raw rows arrive from the hosted store with snake_case column names
(``full_name``, ``is_vip``, ``user_id``, ``order_total`` ...). The records
defined here are the read-only snapshots every downstream computation
relies on. Field-level problems (bad dates, non-numeric totals, missing
optional values) never raise: they degrade to ``None`` or ``0``.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Iterable, Mapping

import pandas as pd

#: Display name used when a customer has neither a name nor an email.
UNKNOWN_GUEST = "Unknown Guest"

_ISO_DATE_PREFIX = re.compile(r"\d{4}-\d{2}-\d{2}")


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a stored timestamp into a timezone-aware datetime.

    Accepts ``datetime``/``date`` instances and ISO-8601 strings (including a
    trailing ``Z``). Strings the stdlib parser rejects on older interpreters
    (short fractional seconds, ``+00`` offsets, a space separator) are handed
    to :class:`pandas.Timestamp`. Naive values are interpreted as UTC.
    Returns ``None`` for anything that cannot be parsed.

    Examples
    --------
    >>> parse_timestamp("2024-03-01T12:00:00Z").isoformat()
    '2024-03-01T12:00:00+00:00'
    >>> parse_timestamp("not a date") is None
    True
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            parsed = _parse_with_pandas(text)
            if parsed is None:
                return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_with_pandas(text: str) -> datetime | None:
    # Only ISO-like dates; pandas would otherwise accept "now" or a bare day.
    if not _ISO_DATE_PREFIX.match(text):
        return None
    try:
        stamp = pd.Timestamp(text)
    except (ValueError, OverflowError):
        return None
    if pd.isna(stamp):
        return None
    return stamp.to_pydatetime()


def parse_amount(value: Any) -> float:
    """Parse a monetary amount, treating anything unusable as zero."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    return amount if math.isfinite(amount) else 0.0


def normalize_email(value: Any) -> str | None:
    """Return the trimmed, lower-cased email or ``None`` when empty."""
    if not isinstance(value, str):
        return None
    normalised = value.strip().lower()
    return normalised or None


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text else None


def _optional_amount(value: Any) -> float | None:
    # A stored total_spent of 0 is still authoritative, so only None is "absent".
    if value is None:
        return None
    return parse_amount(value)


def _string_tuple(value: Any) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(str(item) for item in value)


@dataclass(frozen=True)
class CustomerRecord:
    """Read-only snapshot of a row from the ``customers`` table.

    Attributes
    ----------
    id:
        Opaque unique identifier.
    email:
        Contact email, may be absent.
    full_name:
        Display name, may be absent.
    created_at:
        Profile creation timestamp.
    is_vip, is_blacklisted:
        Relationship flags managed by admins.
    blacklist_reason:
        Present only when blacklisted.
    tags:
        Free-form labels; order and duplicates carry no meaning.
    notes:
        Free-text admin notes (may contain a ``city:`` line).
    preferences:
        Structured preference mapping (``city``, ``location`` ...).
    total_spent:
        Pre-aggregated spend. When present it overrides order aggregates.
    total_visits:
        Number of recorded visits.
    last_visit_date:
        Most recent visit timestamp.
    dietary_restrictions:
        Ordered, display-only labels.
    """

    id: str | None
    email: str | None = None
    full_name: str | None = None
    created_at: datetime | None = None
    is_vip: bool = False
    is_blacklisted: bool = False
    blacklist_reason: str | None = None
    tags: tuple[str, ...] = ()
    notes: str = ""
    preferences: Mapping[str, Any] = field(default_factory=dict)
    total_spent: float | None = None
    total_visits: int = 0
    last_visit_date: datetime | None = None
    dietary_restrictions: tuple[str, ...] = ()

    @property
    def display_name(self) -> str:
        return self.full_name or self.email or UNKNOWN_GUEST

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "CustomerRecord":
        """Build a record from a raw ``customers`` row."""
        preferences = row.get("preferences")
        try:
            total_visits = int(row.get("total_visits") or 0)
        except (TypeError, ValueError):
            total_visits = 0

        return cls(
            id=_optional_str(row.get("id")),
            email=_optional_str(row.get("email")),
            full_name=_optional_str(row.get("full_name")),
            created_at=parse_timestamp(row.get("created_at")),
            is_vip=row.get("is_vip") is True,
            is_blacklisted=row.get("is_blacklisted") is True,
            blacklist_reason=_optional_str(row.get("blacklist_reason")),
            tags=_string_tuple(row.get("tags")),
            notes=str(row.get("notes") or ""),
            preferences=dict(preferences) if isinstance(preferences, Mapping) else {},
            total_spent=_optional_amount(row.get("total_spent")),
            total_visits=total_visits,
            last_visit_date=parse_timestamp(row.get("last_visit_date")),
            dietary_restrictions=_string_tuple(row.get("dietary_restrictions")),
        )


@dataclass(frozen=True)
class OrderRecord:
    """Read-only snapshot of a row from the ``orders`` table.

    ``total`` and ``created_at`` are kept as stored; parsing happens during
    aggregation so that a bad value only affects its own contribution.
    """

    id: str | None
    customer_id: str | None = None
    customer_email: str | None = None
    total: Any = None
    status: str | None = None
    created_at: Any = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "OrderRecord":
        """Build a record from a raw ``orders`` row.

        The store names the customer reference ``user_id`` and the amount
        ``order_total``; the canonical names are accepted as well.
        """
        customer_id = row.get("user_id", row.get("customer_id"))
        total = row.get("order_total", row.get("total"))
        return cls(
            id=_optional_str(row.get("id")),
            customer_id=_optional_str(customer_id),
            customer_email=_optional_str(row.get("customer_email")),
            total=total,
            status=_optional_str(row.get("status")),
            created_at=row.get("created_at"),
        )


@dataclass(frozen=True)
class ReservationRecord:
    """Read-only snapshot of a row from the ``table_reservations`` table.

    Reservations are linked to customers by email only. ``reservation_date``
    and ``reservation_time`` stay as stored strings (``YYYY-MM-DD`` and
    ``HH:MM[:SS]``), which sort chronologically as text.
    """

    id: str | None
    customer_email: str | None = None
    reservation_date: str | None = None
    reservation_time: str | None = None
    status: str | None = None
    party_size: int | None = None
    table_number: str | None = None
    occasion: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ReservationRecord":
        """Build a record from a raw ``table_reservations`` row."""
        try:
            party_size = int(row["party_size"]) if row.get("party_size") is not None else None
        except (TypeError, ValueError):
            party_size = None
        return cls(
            id=_optional_str(row.get("id")),
            customer_email=_optional_str(row.get("customer_email")),
            reservation_date=_optional_str(row.get("reservation_date")),
            reservation_time=_optional_str(row.get("reservation_time")),
            status=_optional_str(row.get("status")),
            party_size=party_size,
            table_number=_optional_str(row.get("table_number")),
            occasion=_optional_str(row.get("occasion")),
        )


def _load(rows: Iterable[Mapping[str, Any]], factory, kind: str) -> list:
    records = []
    for idx, row in enumerate(rows):
        if not isinstance(row, Mapping):
            raise TypeError(
                f"{kind} rows must be mappings",
                {"record_index": idx, "value": row},
            )
        records.append(factory(row))
    return records


def load_customer_records(rows: Iterable[Mapping[str, Any]]) -> list[CustomerRecord]:
    """Normalise raw ``customers`` rows, preserving their order."""
    return _load(rows, CustomerRecord.from_row, "Customer")


def load_order_records(rows: Iterable[Mapping[str, Any]]) -> list[OrderRecord]:
    """Normalise raw ``orders`` rows, preserving their order."""
    return _load(rows, OrderRecord.from_row, "Order")


def load_reservation_records(
    rows: Iterable[Mapping[str, Any]],
) -> list[ReservationRecord]:
    """Normalise raw ``table_reservations`` rows, preserving their order."""
    return _load(rows, ReservationRecord.from_row, "Reservation")

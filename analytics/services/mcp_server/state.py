"""Shared state management for MCP server.

FastMCP's Context is per-request, so tool calls share one process-wide
store. Its main tenant is the customer snapshot:

1. ``load_customer_snapshot`` reads raw rows and builds a snapshot.
2. ``refresh_customer_snapshot`` rebuilds it, reusing any raw rows the
   caller does not resend.
3. Both go through :meth:`SharedState.replace_snapshot`, so the raw rows
   and the snapshot computed from them always change together.
4. Summary, listing, export and profile tools only read; the profile tool
   also reads the raw order and reservation rows.
5. The server lifespan clears everything at shutdown.
"""

import threading
from typing import Any

#: Keys written by :meth:`SharedState.replace_snapshot`.
SNAPSHOT_KEYS = (
    "customer_rows",
    "order_rows",
    "reservation_rows",
    "customer_snapshot",
)


class SharedState:
    """Thread-safe key/value store shared by the MCP tools.

    Ad-hoc keys are evicted oldest-first once ``MAX_ITEMS`` is reached.
    Snapshot keys are protected: they go only when nothing else is left to
    evict.
    """

    MAX_ITEMS = 100

    PROTECTED_KEYS = frozenset(SNAPSHOT_KEYS)

    def __init__(self):
        self._store: dict[str, Any] = {}
        self._lock = threading.RLock()

    def set(self, key: str, value: Any) -> None:
        """Store a single value, evicting the oldest unprotected key if full."""
        with self._lock:
            if len(self._store) >= self.MAX_ITEMS and key not in self._store:
                evicted = False
                for k in self._store:
                    if k not in self.PROTECTED_KEYS:
                        del self._store[k]
                        evicted = True
                        break

                if not evicted:
                    first_key = next(iter(self._store))
                    del self._store[first_key]

            self._store[key] = value

    def replace_snapshot(
        self,
        customer_rows: list[dict[str, Any]],
        order_rows: list[dict[str, Any]],
        reservation_rows: list[dict[str, Any]],
        snapshot: Any,
    ) -> None:
        """Swap in a new snapshot together with the rows it was built from.

        All four snapshot keys are overwritten under one lock acquisition, so
        a concurrent reader never pairs a new snapshot with stale rows.
        """
        with self._lock:
            self.set("customer_rows", customer_rows)
            self.set("order_rows", order_rows)
            self.set("reservation_rows", reservation_rows)
            self.set("customer_snapshot", snapshot)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._store.get(key, default)

    def has(self, key: str) -> bool:
        with self._lock:
            return key in self._store

    def clear(self) -> None:
        """Drop every key, snapshot included."""
        with self._lock:
            self._store.clear()

    def keys(self) -> list[str]:
        """Keys in insertion order (a copy, not a live view)."""
        with self._lock:
            return list(self._store.keys())


_shared_state = SharedState()


def get_shared_state() -> SharedState:
    """Get the process-wide shared state instance."""
    return _shared_state

"""Global hydration channel.

The server embeds the state it computed into the page as
``window.__INITIAL_STATE__``; the client session publishes that snapshot
into ``INITIAL_STATE`` before the first controller starts. The first
activation takes it and the slot is cleared, so a later unrelated
activation never observes a stale snapshot.

Thread safety:
    ``take()`` swaps the slot under a ``threading.Lock`` so exactly one
    caller receives a published snapshot, even under free-threading.
"""

import json
import threading
from typing import Any

# Characters that must not appear raw inside an inline <script>
_SCRIPT_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


class HydrationChannel:
    """A single slot carrying one pre-serialized initial-state snapshot."""

    __slots__ = ("_lock", "_snapshot")

    def __init__(self) -> None:
        self._snapshot: dict[str, Any] | None = None
        self._lock = threading.Lock()

    def publish(self, snapshot: dict[str, Any] | str) -> None:
        """Store a snapshot (a dict, or the JSON the server embedded)."""
        if isinstance(snapshot, str):
            snapshot = json.loads(snapshot)
        with self._lock:
            self._snapshot = snapshot

    def take(self) -> dict[str, Any] | None:
        """Return the snapshot and clear the slot."""
        with self._lock:
            snapshot, self._snapshot = self._snapshot, None
        return snapshot

    def peek(self) -> dict[str, Any] | None:
        return self._snapshot

    def __repr__(self) -> str:
        state = "empty" if self._snapshot is None else "loaded"
        return f"<HydrationChannel {state}>"


INITIAL_STATE = HydrationChannel()
"""The well-known process-wide hydration slot."""


def serialize_initial_state(state: Any) -> str:
    """Serialize state as JSON that is safe to embed in an inline script."""
    payload = json.dumps(state, ensure_ascii=False, default=str)
    for char, escaped in _SCRIPT_ESCAPES.items():
        payload = payload.replace(char, escaped)
    return payload

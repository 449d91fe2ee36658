"""Keep-alive controller cache for client sessions.

When a controller opts into ``keep_alive_on_push``, navigating forward
saves it here; navigating back to its URL lets the router call
``restore()`` on it instead of constructing a new one.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from perch.controller import Controller


class ControllerCache:
    """Least-recently-saved cache keyed by the controller's URL.

    Entries beyond ``capacity`` are evicted oldest-first and destroyed.
    """

    __slots__ = ("_entries", "capacity")

    def __init__(self, capacity: int = 5) -> None:
        self.capacity = capacity
        self._entries: OrderedDict[str, Controller] = OrderedDict()

    @staticmethod
    def key_of(controller: Controller) -> str | None:
        location = controller.location
        return location.raw if location is not None else None

    def get(self, url: str) -> Controller | None:
        return self._entries.get(url)

    def save(self, controller: Controller) -> None:
        key = self.key_of(controller)
        if key is None:
            return
        self._entries[key] = controller
        self._entries.move_to_end(key)
        while len(self._entries) > self.capacity:
            _, evicted = self._entries.popitem(last=False)
            evicted.destroy()

    def remove(self, controller: Controller) -> None:
        key = self.key_of(controller)
        if key is not None and self._entries.get(key) is controller:
            del self._entries[key]

    def __contains__(self, url: object) -> bool:
        return url in self._entries

    def __len__(self) -> int:
        return len(self._entries)

"""History collaborator for client sessions.

The controller only needs a narrow surface from history: listen before
a navigation happens, listen before the session unloads, and replace
the current entry (in-app or as a full document navigation).
``MemoryHistory`` implements that surface in-process.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

from perch.location import Location

BeforeListener = Callable[[Location], Any]


class History(Protocol):
    """What a controller consumes from the client history."""

    def listen_before(self, listener: BeforeListener) -> Callable[[], None]: ...

    def listen_before_unload(self, listener: BeforeListener) -> Callable[[], None]: ...

    def replace(self, url: str) -> None: ...

    def push(self, url: str) -> None: ...

    def replace_document(self, url: str) -> None: ...


class MemoryHistory:
    """An in-memory history stack.

    Listeners registered with ``listen_before`` receive the next
    ``Location`` before ``entries`` changes. ``replace_document`` records
    full navigations (absolute URLs or raw redirects) without touching
    the in-app stack.
    """

    __slots__ = (
        "_before",
        "_before_unload",
        "_next_key",
        "basename",
        "document_navigations",
        "entries",
    )

    def __init__(self, initial: str = "/", *, basename: str = "") -> None:
        self.basename = basename
        self.entries: list[Location] = [Location.from_url(initial, basename=basename, key="0")]
        self.document_navigations: list[str] = []
        self._before: list[BeforeListener] = []
        self._before_unload: list[BeforeListener] = []
        self._next_key = 1

    @property
    def location(self) -> Location:
        return self.entries[-1]

    def listen_before(self, listener: BeforeListener) -> Callable[[], None]:
        self._before.append(listener)
        return _remover(self._before, listener)

    def listen_before_unload(self, listener: BeforeListener) -> Callable[[], None]:
        self._before_unload.append(listener)
        return _remover(self._before_unload, listener)

    @property
    def listener_count(self) -> int:
        return len(self._before) + len(self._before_unload)

    def push(self, url: str) -> None:
        self.entries.append(self._transition(url, "PUSH"))

    def replace(self, url: str) -> None:
        self.entries[-1] = self._transition(url, "REPLACE")

    def back(self) -> None:
        if len(self.entries) < 2:
            return
        target = self.entries[-2]
        pop = Location.from_url(target.raw, action="POP", basename=self.basename, key=target.key)
        self._notify(self._before, pop)
        self.entries.pop()

    def replace_document(self, url: str) -> None:
        self.document_navigations.append(url)

    def unload(self) -> None:
        """Fire the before-unload listeners, as closing the session would."""
        self._notify(self._before_unload, self.location)

    def _transition(self, url: str, action: str) -> Location:
        location = Location.from_url(
            url, action=action, basename=self.basename, key=str(self._next_key),
        )
        self._next_key += 1
        self._notify(self._before, location)
        return location

    @staticmethod
    def _notify(listeners: list[BeforeListener], location: Location) -> None:
        for listener in list(listeners):
            listener(location)


def _remover(listeners: list[BeforeListener], listener: BeforeListener) -> Callable[[], None]:
    def unlisten() -> None:
        if listener in listeners:
            listeners.remove(listener)

    return unlisten

"""Lazily loaded components.

``lazy(loader)`` returns a component that renders its ``fallback`` until
``load()`` has resolved the real component. In a client session each
mounted consumer (typically a view refresh) is notified once loading
finishes; controllers usually await ``load()`` in
``component_will_create`` and ``view_will_hydrate`` so the first render
already has the component.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from perch._internal.invoke import invoke
from perch._internal.types import Unsubscribe
from perch.view.element import create_element

Loader = Callable[[], Awaitable[Any] | Any]


class LazyComponent:
    """A component whose implementation is loaded on demand."""

    display_name = "Lazy"

    __slots__ = ("_component", "_consumers", "_loader", "notify")

    def __init__(self, loader: Loader, *, notify: bool = True) -> None:
        self._loader = loader
        self._component: Any = None
        self._consumers: list[Callable[[], Any]] = []
        self.notify = notify

    @property
    def loaded(self) -> bool:
        return self._component is not None

    def __call__(self, fallback: Any = None, **props: Any) -> Any:
        if self._component is None:
            return fallback
        return create_element(self._component, props)

    async def load(self) -> Any:
        """Resolve the component once; later calls return the cached one."""
        if self._component is not None:
            return self._component
        result = await invoke(self._loader)
        # Modules exposing ``default`` are accepted as well as bare callables
        self._component = getattr(result, "default", result)
        if self.notify:
            self._publish()
        return self._component

    def subscribe(self, consumer: Callable[[], Any]) -> Unsubscribe:
        self._consumers.append(consumer)

        def unsubscribe() -> None:
            if consumer in self._consumers:
                self._consumers.remove(consumer)

        return unsubscribe

    def _publish(self) -> None:
        consumers, self._consumers = self._consumers, []
        for consumer in consumers:
            consumer()


def lazy(loader: Loader, *, notify: bool = True) -> LazyComponent:
    """Create a lazily loaded component from *loader*."""
    return LazyComponent(loader, notify=notify)

"""Error boundaries — one failing component must not take down the page.

``ErrorBoundaryProxy.wrap(component)`` returns a boundary around a
component factory: it renders the component normally, and when the
component (or anything below it without its own boundary) raises, it
flips that position in the tree to an error state, reports
``(error, "view")`` once, and renders the caller's fallback or
nothing. It never re-raises.

Two ways to apply it:

- explicitly, at composition time::

      SafeChart = proxy.wrap(Chart)
      h(SafeChart, {"series": data})

- implicitly for every component referenced while attached::

      with proxy.rendering():
          html = render_to_string(controller.render())

  ``attach()`` installs ``wrap`` as the ``create_element`` interceptor
  for the current context; ``detach()`` restores the nearest one that is
  still attached. A detached proxy left in the chain passes components
  through untouched.

Wrappers are memoized per component, so repeated renders reuse one
boundary. Its error state is keyed on ``render_path()`` and the element
key, so a failed slot stays failed when the tree is rebuilt. Components marked ``ignore_errors = True`` are left
alone.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from perch._internal.types import ErrorReporter
from perch.view.element import Element, element_interceptor
from perch.view.render import call_component, render_path

logger = logging.getLogger("perch.view")

FallbackResolver = Callable[[str, Any], Any]


def display_name(component: Any) -> str:
    return (
        getattr(component, "display_name", None)
        or getattr(component, "__name__", None)
        or type(component).__name__
    )


class ErrorBoundary:
    """A boundary wrapped around one component factory.

    Static attributes of the wrapped component are copied onto the
    boundary, so code inspecting a component's metadata sees the same
    values through the wrapper.
    """

    is_error_boundary = True

    def __init__(self, component: Any, proxy: ErrorBoundaryProxy) -> None:
        functools.update_wrapper(self, component)
        self.display_name = f"ErrorBoundary({display_name(component)})"
        self.wrapped_name = display_name(component)
        self._proxy = proxy
        self._failed: dict[tuple[Any, Any], BaseException] = {}

    def __call__(self, **props: Any) -> Any:
        return self.__wrapped__(**props)

    def __perch_render__(self, element: Element, render: Callable[[Any], str]) -> str:
        slot = (render_path(), element.key)
        if slot in self._failed:
            return self._render_fallback(render)
        try:
            return render(call_component(self.__wrapped__, element))
        except Exception as exc:
            self._failed[slot] = exc
            logger.debug("view error in %s: %r", self.wrapped_name, exc)
            self._proxy.report(exc, "view")
            return self._render_fallback(render)

    def failed(self, path: tuple[Any, ...] = (), key: Any = None) -> bool:
        """Whether the slot at *path* (with *key*) is in the error state."""
        return (path, key) in self._failed

    def _render_fallback(self, render: Callable[[Any], str]) -> str:
        resolver = self._proxy.fallback
        if resolver is None:
            return ""
        result = resolver(self.wrapped_name, self.__wrapped__)
        if result is None:
            return ""
        return render(result)

    def __repr__(self) -> str:
        return f"<{self.display_name}>"


class ErrorBoundaryProxy:
    """Wraps component factories in error boundaries for one controller.

    Args:
        report: Receives ``(error, "view")`` for each failing element.
        fallback: Resolves ``(display_name, component)`` to a substitute
            view; ``None`` (or a ``None`` result) renders nothing.
    """

    __slots__ = ("_attached", "_intercept", "_previous", "_wrappers", "fallback", "report")

    def __init__(self, report: ErrorReporter, fallback: FallbackResolver | None = None) -> None:
        self.report = report
        self.fallback = fallback
        self._wrappers: dict[Any, ErrorBoundary] = {}
        self._attached = False
        self._previous: Callable[[Any], Any] | None = None
        self._intercept = self._interceptor

    @property
    def attached(self) -> bool:
        return self._attached

    def wrap(self, component: Any) -> Any:
        """Return the memoized boundary for *component* (or *component* itself)."""
        if component is None:
            return component
        if getattr(component, "is_error_boundary", False):
            return component
        if getattr(component, "ignore_errors", False):
            return component
        try:
            wrapper = self._wrappers.get(component)
        except TypeError:
            # Unhashable callables cannot be memoized
            return ErrorBoundary(component, self)
        if wrapper is None:
            wrapper = self._wrappers[component] = ErrorBoundary(component, self)
        return wrapper

    def _interceptor(self, component: Any) -> Any:
        if self._attached:
            return self.wrap(component)
        previous = _live(self._previous)
        return previous(component) if previous is not None else component

    def attach(self) -> None:
        """Intercept ``create_element`` in the current context. Idempotent."""
        if self._attached:
            return
        self._previous = _live(element_interceptor.get())
        element_interceptor.set(self._intercept)
        self._attached = True

    def detach(self) -> None:
        """Stop intercepting. Idempotent.

        When this proxy is the active interceptor, the nearest attached
        one below it takes over. Otherwise it stays in the chain as a
        pass-through until the proxy above it detaches.
        """
        if not self._attached:
            return
        self._attached = False
        if element_interceptor.get() is self._intercept:
            element_interceptor.set(_live(self._previous))

    @contextmanager
    def rendering(self) -> Iterator[ErrorBoundaryProxy]:
        """Attach for one render pass and always detach afterwards.

        Reentrant: if already attached, the outer owner keeps control and
        nothing is detached on exit.
        """
        if self._attached:
            yield self
            return
        self.attach()
        try:
            yield self
        finally:
            self.detach()


def _live(interceptor: Callable[[Any], Any] | None) -> Callable[[Any], Any] | None:
    """Follow the chain past detached proxies to the first live interceptor."""
    seen: set[int] = set()
    while interceptor is not None:
        owner = getattr(interceptor, "__self__", None)
        if not isinstance(owner, ErrorBoundaryProxy) or owner.attached:
            return interceptor
        if id(owner) in seen:
            return None
        seen.add(id(owner))
        interceptor = owner._previous
    return None

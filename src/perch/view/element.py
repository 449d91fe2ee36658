"""View elements and the element-creation primitive.

Views are plain callables returning element trees built with
``create_element`` (``h`` for short)::

    def Counter(state, actions, **props):
        return h("button", {"on_click": actions.increment}, f"{state['count']}")

``create_element`` consults an interceptor held in a ``ContextVar``. The
error boundary proxy installs one there to wrap component factories as
they are referenced. Because the slot is a ``ContextVar`` it is scoped to
the current task (asyncio) or thread (free-threading): one controller's
interception never leaks into another's render.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

Interceptor = Callable[[Any], Any]

element_interceptor: ContextVar[Interceptor | None] = ContextVar(
    "perch_element_interceptor", default=None,
)
"""The active component interceptor, if any."""


@dataclass(eq=False, slots=True, weakref_slot=True)
class Element:
    """One node of a view tree.

    ``type`` is a tag name (``"div"``), ``Fragment``, or a component
    callable. Elements compare by identity: each one is a distinct
    rendered instance.
    """

    type: Any
    props: dict[str, Any] = field(default_factory=dict)
    children: tuple[Any, ...] = ()

    @property
    def key(self) -> Any:
        return self.props.get("key")


class _FragmentType:
    __slots__ = ()

    def __repr__(self) -> str:
        return "Fragment"


Fragment = _FragmentType()
"""Groups children without a wrapping tag."""


def create_element(type_: Any, props: Mapping[str, Any] | None = None, *children: Any) -> Element:
    """Create an element, passing component types through the interceptor."""
    if callable(type_) and not isinstance(type_, str):
        intercept = element_interceptor.get()
        if intercept is not None:
            type_ = intercept(type_)
    return Element(type_, dict(props or {}), children)


h = create_element

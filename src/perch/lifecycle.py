"""Controller lifecycle: states, hooks and capabilities.

``Lifecycle`` declares every hook a controller may override, each with a
no-op default. ``Capabilities`` records, once per instance, which hooks
the concrete class actually overrides, so the orchestrator never probes
for attributes at runtime.

States::

    CREATED -> INITIALIZING -> REDIRECTED | RENDERED | FALLBACK_RENDERED
    RENDERED -> RESTORING -> RENDERED
    DESTROYED -> RESTORING -> RENDERED     (keep-alive cache reuse)
    any state -> DESTROYED
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from perch.context import PageContext
    from perch.location import Location
    from perch.store import StoreChange


class LifecycleState(enum.Enum):
    CREATED = "created"
    INITIALIZING = "initializing"
    REDIRECTED = "redirected"
    RENDERED = "rendered"
    FALLBACK_RENDERED = "fallback-rendered"
    RESTORING = "restoring"
    DESTROYED = "destroyed"


_S = LifecycleState

TRANSITIONS: dict[LifecycleState, frozenset[LifecycleState]] = {
    _S.CREATED: frozenset({_S.INITIALIZING, _S.DESTROYED}),
    _S.INITIALIZING: frozenset({_S.REDIRECTED, _S.RENDERED, _S.FALLBACK_RENDERED, _S.DESTROYED}),
    _S.REDIRECTED: frozenset({_S.DESTROYED}),
    _S.RENDERED: frozenset({_S.RESTORING, _S.DESTROYED}),
    _S.FALLBACK_RENDERED: frozenset({_S.DESTROYED}),
    _S.RESTORING: frozenset({_S.RENDERED, _S.DESTROYED}),
    _S.DESTROYED: frozenset({_S.RESTORING}),
}


class Lifecycle:
    """Hooks a controller can override. Every default is a no-op.

    Hooks the orchestrator awaits may be ``def`` or ``async def``:
    ``should_server_render``, ``get_initial_state``, ``state_did_reuse``,
    ``should_component_create``, ``component_will_create``,
    ``view_will_hydrate``, ``page_did_back``, ``error_did_catch``.
    Listener hooks (``state_did_change``, ``page_will_leave``,
    ``window_will_unload``) and the fallback resolvers are called
    synchronously.
    """

    def should_server_render(self, location: Location, context: PageContext) -> Any:
        """Decide SSR per request. ``None`` defers to ``options.ssr``."""
        return None

    def get_initial_state(self, state: dict[str, Any]) -> Any:
        """Return the initial state to create the store with (fresh path only)."""
        return state

    def state_did_reuse(self, state: dict[str, Any]) -> Any:
        """Called when a server snapshot was reused (hydration path only)."""

    def get_final_actions(self, actions: dict[str, Any]) -> dict[str, Any]:
        """Adjust the action table before the store is created."""
        return actions

    def should_component_create(self) -> Any:
        """Return ``False`` to skip rendering (typically after ``redirect``)."""
        return True

    def component_will_create(self) -> Any:
        """Load data before the first render (fresh path only)."""

    def view_will_hydrate(self) -> Any:
        """Prepare for hydrating server markup (hydration path only)."""

    def state_did_change(self, change: StoreChange) -> None:
        """Called after each store change in a client session."""

    def page_will_leave(self, location: Location) -> None:
        """Called before navigating away in a client session."""

    def window_will_unload(self, location: Location) -> None:
        """Called before the client session unloads."""

    def page_did_back(self, location: Location, context: PageContext) -> Any:
        """Called when a cached instance is restored."""

    def error_did_catch(self, error: BaseException, phase: str) -> Any:
        """Report a failure. *phase* is ``controller``, ``model`` or ``view``."""

    def get_view_fallback(self) -> Any:
        """View shown when initialization failed."""
        return None

    def get_component_fallback(self, display_name: str, component: Any) -> Any:
        """Substitute for a component that failed to render (``None`` = nothing)."""
        return None


@dataclass(frozen=True, slots=True)
class Capabilities:
    """Which ``Lifecycle`` hooks a controller class overrides."""

    should_server_render: bool = False
    get_initial_state: bool = False
    state_did_reuse: bool = False
    get_final_actions: bool = False
    should_component_create: bool = False
    component_will_create: bool = False
    view_will_hydrate: bool = False
    state_did_change: bool = False
    page_will_leave: bool = False
    window_will_unload: bool = False
    page_did_back: bool = False
    error_did_catch: bool = False
    get_view_fallback: bool = False
    get_component_fallback: bool = False

    @classmethod
    def of(cls, controller_cls: type) -> Capabilities:
        return cls(**{
            f.name: getattr(controller_cls, f.name) is not getattr(Lifecycle, f.name)
            for f in fields(cls)
        })

    @property
    def catches_view_errors(self) -> bool:
        """Whether rendered components need error boundaries."""
        return self.error_did_catch or self.get_component_fallback

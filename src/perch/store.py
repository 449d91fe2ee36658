"""Unidirectional state container.

Actions are pure reducers ``(state, payload) -> new_state``. A store binds
each one into a dispatcher; calling it replaces ``state`` with the
reducer's result and notifies every subscriber before returning, so
observers never see two dispatches interleave.

Usage::

    store = create_store({"increment": lambda s, n: {**s, "count": s["count"] + (n or 1)}},
                         {"count": 0})
    unsubscribe = store.subscribe(lambda change: print(change.current_state))
    store.actions.increment()
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from perch._internal.types import ErrorReporter, Reducer, Unsubscribe

Listener = Callable[["StoreChange"], Any]


@dataclass(frozen=True, slots=True)
class StoreChange:
    """Delivered to subscribers after each dispatch."""

    action_type: str
    payload: Any
    previous_state: Any
    current_state: Any


class ActionTable(dict[str, Callable[..., Any]]):
    """Bound dispatchers, addressable by key or attribute.

    ``store.actions["increment"](1)`` and ``store.actions.increment(1)``
    are the same call.
    """

    def __getattr__(self, name: str) -> Callable[..., Any]:
        try:
            return self[name]
        except KeyError:
            msg = f"store has no action {name!r}"
            raise AttributeError(msg) from None


class Store:
    """A state container created once per controller activation."""

    __slots__ = ("_listeners", "_reducers", "actions", "state")

    def __init__(self, reducers: Mapping[str, Reducer], initial_state: Any) -> None:
        self.state: Any = initial_state
        self._reducers: dict[str, Reducer] = dict(reducers)
        self._listeners: list[Listener] = []
        self.actions = ActionTable({name: self._bind(name) for name in self._reducers})

    def _bind(self, name: str) -> Callable[..., Any]:
        def action(payload: Any = None) -> Any:
            return self.dispatch(name, payload)

        action.__name__ = name
        action.__qualname__ = f"Store.actions.{name}"
        return action

    def dispatch(self, name: str, payload: Any = None) -> Any:
        """Run reducer *name* and notify subscribers.

        A reducer that raises leaves ``state`` as it found it, except for
        whatever the reducer already mutated in place.
        """
        try:
            reducer = self._reducers[name]
        except KeyError:
            msg = f"store has no action {name!r}"
            raise KeyError(msg) from None
        previous = self.state
        self.state = reducer(previous, payload)
        change = StoreChange(
            action_type=name,
            payload=payload,
            previous_state=previous,
            current_state=self.state,
        )
        for listener in list(self._listeners):
            listener(change)
        return self.state

    def subscribe(self, listener: Listener) -> Unsubscribe:
        """Register *listener*; the returned callable removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def replace_state(self, state: Any) -> None:
        """Swap the state without dispatching (no notification)."""
        self.state = state

    @property
    def listener_count(self) -> int:
        return len(self._listeners)


def create_store(actions: Mapping[str, Reducer], initial_state: Any) -> Store:
    """Create a store from a reducer table and an initial state."""
    return Store(actions, initial_state)


def wrap_actions(store: Store, report: ErrorReporter) -> None:
    """Report action failures as ``(error, "model")`` and re-raise them.

    Replaces every dispatcher in ``store.actions`` in place. The caller
    still receives the exception.
    """
    for name, action in list(store.actions.items()):
        store.actions[name] = _reporting(action, report)


def _reporting(action: Callable[..., Any], report: ErrorReporter) -> Callable[..., Any]:
    def wrapped(payload: Any = None) -> Any:
        try:
            return action(payload)
        except Exception as exc:
            report(exc, "model")
            raise

    wrapped.__name__ = action.__name__
    wrapped.__qualname__ = action.__qualname__
    return wrapped

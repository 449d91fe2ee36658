"""Initialization outcomes.

``Controller.initialize()`` returns one of these instead of unwinding
with an exception. A redirect is ordinary data threaded back through
the call chain; ``Controller.init()`` maps outcomes onto what the router
expects (a view, or ``None``).
"""

from dataclasses import dataclass
from typing import Any, TypeAlias


@dataclass(frozen=True, slots=True)
class Rendered:
    """Normal completion: the bound view element."""

    view: Any


@dataclass(frozen=True, slots=True)
class Fallback:
    """A substitute view: the loading view (SSR disabled) or an error fallback."""

    view: Any


@dataclass(frozen=True, slots=True)
class Redirected:
    """Navigation must be redone at *target*; nothing is rendered."""

    target: str
    raw: bool = False


@dataclass(frozen=True, slots=True)
class Aborted:
    """``should_component_create`` vetoed the render."""


Outcome: TypeAlias = Rendered | Fallback | Redirected | Aborted


def view_of(outcome: Outcome) -> Any:
    """The element a router should display for *outcome*, or ``None``."""
    match outcome:
        case Rendered(view=view) | Fallback(view=view):
            return view
        case _:
            return None

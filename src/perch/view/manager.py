"""Binding a controller to its view.

``ViewBinding`` is the immutable record ``ViewManager`` renders from.
Per-view variants (``Controller.render_view``) copy it with
``dataclasses.replace`` instead of cloning the controller.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from perch.view.element import Element, create_element


@dataclass(frozen=True, slots=True)
class ViewBinding:
    """Which view a controller renders, and under which id."""

    controller: Any
    view: Any
    view_id: Any = None


def ViewManager(binding: ViewBinding) -> Element:  # noqa: N802
    """Render the bound view with the controller's current state."""
    ctrl = binding.controller
    store = ctrl.store
    return create_element(binding.view, {
        "state": store.state if store is not None else {},
        "actions": store.actions if store is not None else {},
        "handlers": ctrl.handlers,
        "ctrl": ctrl,
    })


ViewManager.ignore_errors = True  # type: ignore[attr-defined]


def EmptyView(**props: Any) -> None:  # noqa: N802
    """Renders nothing."""
    return None


EmptyView.ignore_errors = True  # type: ignore[attr-defined]
